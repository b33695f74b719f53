"""Quick fixes and the text-edit helpers they share.

Fixes are line-based edits on the current file content. They are applied
only on request, never re-run the inspection afterwards, and do nothing when
the issue lacks the metadata they need.
"""

from __future__ import annotations

from dataclasses import dataclass

import structlog

from brxm_inspect.engine.models import QuickFixContext

log = structlog.get_logger()


def line_indent(line: str) -> str:
    return line[: len(line) - len(line.lstrip())]


def insert_lines_after(content: str, line_number: int, new_lines: list[str]) -> str:
    """Insert ``new_lines`` after the 1-based ``line_number``."""
    lines = content.split("\n")
    index = max(0, min(line_number, len(lines)))
    lines[index:index] = new_lines
    return "\n".join(lines)


def find_block_end(lines: list[str], start: int) -> int:
    """Index of the line that closes the block containing ``lines[start]``.

    Braces are counted from ``start`` onwards; the first line that takes the
    running count below zero closes the enclosing block. Falls back to the
    last line.
    """
    depth = 0
    for i in range(start, len(lines)):
        for char in lines[i]:
            if char == "{":
                depth += 1
            elif char == "}":
                depth -= 1
                if depth < 0:
                    return i
    return len(lines) - 1


@dataclass(frozen=True)
class AddFinallyBlockFix:
    """Wrap the rest of the block after a session acquisition in try/finally."""

    name: str = "Add finally block to close session"
    description: str = "Wraps the code after the session is acquired in try/finally and logs the session out"

    def apply(self, context: QuickFixContext) -> None:
        variable = context.issue.metadata.get("variableName")
        content = context.content or ""
        if not variable or f"{variable}.logout()" in content:
            return

        lines = content.split("\n")
        # The acquisition statement may span lines; wrap after its last line
        start = int(context.issue.metadata.get("statementEndLine", context.range.start_line)) - 1
        if not 0 <= start < len(lines):
            return
        indent = line_indent(lines[context.range.start_line - 1])
        end = find_block_end(lines, start + 1)

        finally_block = [
            f"{indent}}} finally {{",
            f"{indent}    if ({variable} != null) {{",
            f"{indent}        {variable}.logout();",
            f"{indent}    }}",
            f"{indent}}}",
        ]
        body = [f"    {line}" if line.strip() else line for line in lines[start + 1 : end]]
        lines[start + 1 : end] = [f"{indent}try {{", *body, *finally_block]
        context.write("\n".join(lines))
        log.debug("quick_fix_applied", fix=self.name, path=str(context.file.path))


@dataclass(frozen=True)
class AddQueryLimitFix:
    """Insert ``<query>.setLimit(N)`` right after the query is created."""

    limit: int = 100

    @property
    def name(self) -> str:
        return f"Add query.setLimit({self.limit})"

    @property
    def description(self) -> str:
        return f"Adds a setLimit({self.limit}) call after query creation"

    def apply(self, context: QuickFixContext) -> None:
        variable = context.issue.metadata.get("variableName")
        after = context.issue.metadata.get("statementEndLine")
        content = context.content or ""
        if not variable or not after:
            return
        lines = content.split("\n")
        line_number = int(after)
        if not 1 <= line_number <= len(lines):
            return
        indent = line_indent(lines[line_number - 1])
        context.write(insert_lines_after(content, line_number, [f"{indent}{variable}.setLimit({self.limit});"]))
        log.debug("quick_fix_applied", fix=self.name, path=str(context.file.path))
