"""Queries executed without a result limit.

A query created with ``createQuery``, ``getQuery`` or ``executeQuery`` must
be limited within ``lookaheadLines`` lines of its creation before it is
executed. Queries that are never executed in the method are not reported.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, QuickFix, Severity
from brxm_inspect.inspections.fixes import AddQueryLimitFix
from brxm_inspect.inspections.support import doc, int_option, new_issue
from brxm_inspect.parsing.java import (
    METHOD_NODES,
    TYPE_BODY_NODES,
    JavaSource,
    bound_variable,
    invocation_name,
    invocation_receiver,
    receiver_identifier,
)

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

CREATE_METHODS = frozenset({"createQuery", "getQuery", "executeQuery"})
EXECUTE_METHODS = frozenset({"execute", "getResultIterator", "getResult"})
LIMIT_METHODS = frozenset({"setLimit", "limit"})

DEFAULT_LOOKAHEAD_LINES = 10
DEFAULT_SUGGESTED_LIMIT = 100

_STATEMENTS = ("local_variable_declaration", "expression_statement")

_DESCRIPTION = doc(
    """
    A JCR or HST query without a limit loads every matching node. On a large
    repository that means long response times and memory pressure.

    Set a limit right after the query is created:

        Query query = queryManager.createQuery(statement, Query.XPATH);
        query.setLimit(100);
        QueryResult result = query.execute();
    """
)


class UnboundedQueryInspection:
    id = "performance.unbounded-query"
    name = "Unbounded JCR Query"
    description = _DESCRIPTION
    category = InspectionCategory.PERFORMANCE
    severity = Severity.WARNING
    applicable_file_types = frozenset({FileType.JAVA})
    default_options = {
        "lookaheadLines": DEFAULT_LOOKAHEAD_LINES,
        "suggestedLimit": DEFAULT_SUGGESTED_LIMIT,
    }

    def inspect(self, context: InspectionContext) -> list[Issue]:
        source = context.ast
        if not isinstance(source, JavaSource):
            return []
        options = context.options_for(self.id)
        lookahead = int_option(options, "lookaheadLines", DEFAULT_LOOKAHEAD_LINES)
        limit = int_option(options, "suggestedLimit", DEFAULT_SUGGESTED_LIMIT, minimum=1)

        issues: list[Issue] = []
        for method in source.find_all(METHOD_NODES):
            body = method.child_by_field_name("body")
            if body is None:
                continue
            calls = [n for n in source.walk(body, stop_at=TYPE_BODY_NODES) if n.type == "method_invocation"]
            for call in calls:
                if invocation_name(source, call) not in CREATE_METHODS:
                    continue
                variable = bound_variable(source, call)
                if variable is None:
                    issue = self._check_inline(context, source, call, limit)
                else:
                    issue = self._check_variable(context, source, call, variable, calls, lookahead, limit)
                if issue is not None:
                    issues.append(issue)
        return issues

    def _check_variable(
        self,
        context: InspectionContext,
        source: JavaSource,
        creation: Any,
        variable: str,
        calls: list[Any],
        lookahead: int,
        limit: int,
    ) -> Issue | None:
        created_at = source.line_of(creation)
        window_end = created_at + lookahead
        executions = []
        for call in calls:
            if call.start_byte <= creation.end_byte or receiver_identifier(source, call) != variable:
                continue
            name = invocation_name(source, call)
            if name in LIMIT_METHODS and source.line_of(call) <= window_end:
                return None
            if name in EXECUTE_METHODS:
                executions.append(call)
        if not executions:
            return None

        statement = source.enclosing(creation, _STATEMENTS)
        statement_end = source.range_of(statement).end_line if statement is not None else created_at
        return new_issue(
            self,
            context,
            message=f"Query '{variable}' executed without setLimit()",
            description=self.description,
            range=source.range_of(executions[0].child_by_field_name("name")),
            metadata={
                "variableName": variable,
                "suggestedLimit": limit,
                "queryType": "variable",
                "statementEndLine": statement_end,
            },
        )

    def _check_inline(
        self, context: InspectionContext, source: JavaSource, creation: Any, limit: int
    ) -> Issue | None:
        # Follow calls chained directly on the created query
        current = creation
        parent = current.parent
        while parent is not None and parent.type == "method_invocation" and invocation_receiver(parent) == current:
            name = invocation_name(source, parent)
            if name in LIMIT_METHODS:
                return None
            if name in EXECUTE_METHODS:
                return new_issue(
                    self,
                    context,
                    message="Inline query executed without limit",
                    description=self.description,
                    range=source.range_of(parent.child_by_field_name("name")),
                    metadata={"suggestedLimit": limit, "queryType": "inline"},
                )
            current, parent = parent, parent.parent
        return None

    def quick_fixes(self, issue: Issue) -> list[QuickFix]:
        if issue.metadata.get("queryType") != "variable":
            return []
        return [AddQueryLimitFix(int(issue.metadata.get("suggestedLimit", DEFAULT_SUGGESTED_LIMIT)))]
