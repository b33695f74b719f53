"""JCR session leak detection.

A session obtained with ``login``/``getSession``/``impersonate`` must be
released in a ``finally`` block of the same method. Sessions bound in
try-with-resources, returned, or passed straight into another call are not
tracked.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, QuickFix, Severity
from brxm_inspect.inspections.fixes import AddFinallyBlockFix
from brxm_inspect.inspections.support import doc, new_issue
from brxm_inspect.parsing.java import (
    METHOD_NODES,
    TYPE_BODY_NODES,
    JavaSource,
    bound_variable,
    invocation_name,
    receiver_identifier,
)

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

ACQUIRE_METHODS = frozenset({"login", "getSession", "impersonate"})
RELEASE_METHODS = frozenset({"logout", "close"})

_STATEMENTS = ("local_variable_declaration", "expression_statement")

_DESCRIPTION = doc(
    """
    JCR sessions hold repository resources until they are logged out. A session
    that is not released in a finally block leaks whenever the code between
    acquisition and logout throws, and leaked sessions exhaust the session pool.

    Release the session in a finally block:

        Session session = repository.login(credentials);
        try {
            // work with the session
        } finally {
            if (session != null) {
                session.logout();
            }
        }
    """
)


class SessionLeakInspection:
    id = "repository.session-leak"
    name = "JCR Session Leak Detection"
    description = _DESCRIPTION
    category = InspectionCategory.REPOSITORY_TIER
    severity = Severity.ERROR
    applicable_file_types = frozenset({FileType.JAVA})

    def inspect(self, context: InspectionContext) -> list[Issue]:
        source = context.ast
        if not isinstance(source, JavaSource):
            return []
        issues: list[Issue] = []
        for method in source.find_all(METHOD_NODES):
            body = method.child_by_field_name("body")
            if body is not None:
                issues.extend(self._check_method(context, source, body))
        return issues

    def _check_method(self, context: InspectionContext, source: JavaSource, body: Any) -> list[Issue]:
        # First acquisition per variable, in source order
        acquisitions: dict[str, Any] = {}
        for node in source.walk(body, stop_at=TYPE_BODY_NODES):
            if node.type != "method_invocation" or invocation_name(source, node) not in ACQUIRE_METHODS:
                continue
            variable = bound_variable(source, node)
            if variable is not None and variable not in acquisitions:
                acquisitions[variable] = node
        if not acquisitions:
            return []

        released = self._released_in_finally(source, body)
        issues = []
        for variable, call in acquisitions.items():
            if variable in released:
                continue
            statement = source.enclosing(call, _STATEMENTS)
            statement_end = source.range_of(statement).end_line if statement is not None else source.line_of(call)
            issues.append(
                new_issue(
                    self,
                    context,
                    message=f"JCR Session '{variable}' is not closed in finally block",
                    description=self.description,
                    range=source.range_of(call.child_by_field_name("name")),
                    metadata={
                        "variableName": variable,
                        "sessionType": "JCR Session",
                        "statementEndLine": statement_end,
                    },
                )
            )
        return issues

    def _released_in_finally(self, source: JavaSource, body: Any) -> set[str]:
        released = set()
        for clause in source.find_all("finally_clause", body, stop_at=TYPE_BODY_NODES):
            for call in source.find_all("method_invocation", clause, stop_at=TYPE_BODY_NODES):
                if invocation_name(source, call) in RELEASE_METHODS:
                    receiver = receiver_identifier(source, call)
                    if receiver is not None:
                        released.add(receiver)
        return released

    def quick_fixes(self, issue: Issue) -> list[QuickFix]:
        if "variableName" not in issue.metadata:
            return []
        return [AddFinallyBlockFix()]
