"""``System.out``/``System.err`` printing in production code."""

from __future__ import annotations

from typing import TYPE_CHECKING

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, QuickFix, Severity
from brxm_inspect.inspections.support import doc, new_issue
from brxm_inspect.parsing.java import JavaSource, invocation_name, invocation_receiver

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext

PRINT_METHODS = frozenset({"print", "println", "printf"})
STREAMS = frozenset({"System.out", "System.err"})

_DESCRIPTION = doc(
    """
    Console output bypasses the logging configuration: it cannot be filtered
    by level, has no timestamps or context, and ends up in the container's
    stdout. Use an SLF4J logger instead:

        private static final Logger log = LoggerFactory.getLogger(MyClass.class);
        log.info("Processing {}", item);
    """
)


class SystemOutCallsInspection:
    id = "config.system-out-calls"
    name = "System.out/err Usage"
    description = _DESCRIPTION
    category = InspectionCategory.CONFIGURATION
    severity = Severity.INFO
    applicable_file_types = frozenset({FileType.JAVA})

    def inspect(self, context: InspectionContext) -> list[Issue]:
        source = context.ast
        if not isinstance(source, JavaSource) or context.is_test_source():
            return []
        issues = []
        for call in source.find_all("method_invocation"):
            method = invocation_name(source, call)
            receiver = invocation_receiver(call)
            if method not in PRINT_METHODS or receiver is None:
                continue
            stream = "".join(source.text(receiver).split())
            if stream not in STREAMS:
                continue
            issues.append(
                new_issue(
                    self,
                    context,
                    message=f"{stream}.{method}() should use logging framework instead",
                    description=self.description,
                    range=source.range_of(call.child_by_field_name("name")),
                    metadata={"stream": stream, "method": method},
                )
            )
        return issues

    def quick_fixes(self, issue: Issue) -> list[QuickFix]:
        return []
