"""Tree-sitter parsing for Java sources.

The grammar (``tree_sitter_java``) is loaded once and shared read-only; a
fresh ``tree_sitter.Parser`` is built per call, so one ``JavaParser`` can
serve every worker thread.

``JavaSource`` wraps the resulting tree with the small set of helpers the
inspections and extractors need: node text, pre-order walks that can stop
at nested type bodies, and conversion of node positions into 1-based
``TextRange`` values.
"""

from __future__ import annotations

import importlib
import threading
from collections.abc import Iterable, Iterator
from dataclasses import dataclass
from typing import Any

import structlog
import tree_sitter

from brxm_inspect.engine.models import FileType, TextRange
from brxm_inspect.parsing.base import ParseError, ParseFailure, ParseResult, ParseSuccess

log = structlog.get_logger()

# Stop reporting after this many syntax errors in one file
_MAX_REPORTED_ERRORS = 20

# Node types that open a nested type body; method-scoped walks stop here
TYPE_BODY_NODES: frozenset[str] = frozenset(
    {"class_body", "interface_body", "enum_body", "annotation_type_body"}
)

METHOD_NODES: frozenset[str] = frozenset(
    {"method_declaration", "constructor_declaration", "compact_constructor_declaration"}
)


@dataclass(frozen=True)
class JavaSource:
    """A parsed Java compilation unit."""

    tree: Any  # tree_sitter.Tree
    source: bytes

    @property
    def root(self) -> Any:
        return self.tree.root_node

    def text(self, node: Any) -> str:
        return self.source[node.start_byte : node.end_byte].decode("utf-8", "replace")

    def walk(self, node: Any | None = None, *, stop_at: frozenset[str] = frozenset()) -> Iterator[Any]:
        """Pre-order walk. Nodes whose type is in ``stop_at`` are neither yielded
        nor descended into (the starting node is always yielded)."""
        start = self.root if node is None else node
        stack = [start]
        while stack:
            current = stack.pop()
            yield current
            for child in reversed(current.children):
                if child.type not in stop_at:
                    stack.append(child)

    def find_all(
        self,
        types: str | Iterable[str],
        node: Any | None = None,
        *,
        stop_at: frozenset[str] = frozenset(),
    ) -> list[Any]:
        wanted = {types} if isinstance(types, str) else set(types)
        return [n for n in self.walk(node, stop_at=stop_at) if n.type in wanted]

    def ancestors(self, node: Any) -> Iterator[Any]:
        current = node.parent
        while current is not None:
            yield current
            current = current.parent

    def enclosing(self, node: Any, types: str | Iterable[str]) -> Any | None:
        wanted = {types} if isinstance(types, str) else set(types)
        for parent in self.ancestors(node):
            if parent.type in wanted:
                return parent
        return None

    def package_name(self) -> str:
        for child in self.root.named_children:
            if child.type == "package_declaration":
                for part in child.named_children:
                    if part.type in ("scoped_identifier", "identifier"):
                        return self.text(part)
        return ""

    def _char_column(self, byte_offset: int, byte_column: int) -> int:
        line_start = byte_offset - byte_column
        return len(self.source[line_start:byte_offset].decode("utf-8", "replace"))

    def line_of(self, node: Any) -> int:
        return int(node.start_point[0]) + 1

    def range_of(self, node: Any) -> TextRange:
        """1-based range; the end column is inclusive."""
        start_row, start_col = node.start_point
        end_row, end_col = node.end_point
        start_char = self._char_column(node.start_byte, start_col)
        end_char = self._char_column(node.end_byte, end_col)
        return TextRange(
            start_line=start_row + 1,
            start_column=start_char + 1,
            end_line=end_row + 1,
            end_column=max(end_char, 0),
        )


# =============================================================================
# Invocation helpers
# =============================================================================


def invocation_name(source: JavaSource, node: Any) -> str | None:
    """Method name of a ``method_invocation`` node."""
    if node.type != "method_invocation":
        return None
    name = node.child_by_field_name("name")
    return source.text(name) if name is not None else None


def invocation_receiver(node: Any) -> Any | None:
    """The ``object`` expression a method is invoked on (``foo`` in ``foo.bar()``)."""
    if node.type != "method_invocation":
        return None
    return node.child_by_field_name("object")


def receiver_identifier(source: JavaSource, node: Any) -> str | None:
    """Simple identifier a method is invoked on, if it is one."""
    receiver = invocation_receiver(node)
    if receiver is not None and receiver.type == "identifier":
        return source.text(receiver)
    return None


def bound_variable(source: JavaSource, node: Any) -> str | None:
    """Name of the local a call result is bound to, by declaration or assignment.

    ``Session s = repo.login();`` and ``s = repo.login();`` both yield ``s``.
    Try-with-resources bindings return ``None``: they are closed implicitly.
    """
    parent = node.parent
    while parent is not None and parent.type == "parenthesized_expression":
        parent = parent.parent
    if parent is None:
        return None
    if parent.type == "variable_declarator" and parent.child_by_field_name("value") == node:
        name = parent.child_by_field_name("name")
        return source.text(name) if name is not None else None
    if parent.type == "assignment_expression" and parent.child_by_field_name("right") == node:
        left = parent.child_by_field_name("left")
        if left is not None and left.type == "identifier":
            return source.text(left)
    return None


# =============================================================================
# Parser
# =============================================================================


class JavaParser:
    """Tree-sitter Java parser; thread-safe."""

    grammar_module = "tree_sitter_java"

    def __init__(self) -> None:
        self._language: Any = None
        self._lock = threading.Lock()

    def _get_language(self) -> Any:
        if self._language is None:
            with self._lock:
                if self._language is None:
                    mod = importlib.import_module(self.grammar_module)
                    self._language = tree_sitter.Language(mod.language())
        return self._language

    def supports(self, file_type: FileType) -> bool:
        return file_type is FileType.JAVA

    def parse(self, content: str) -> ParseResult:
        try:
            language = self._get_language()
        except (ImportError, AttributeError) as e:
            log.error("java_grammar_unavailable", error=str(e))
            return ParseFailure.single(f"Java grammar not available: {e}")

        source = content.encode("utf-8")
        parser = tree_sitter.Parser(language)
        tree = parser.parse(source)
        java = JavaSource(tree=tree, source=source)

        if tree.root_node.has_error:
            errors = _collect_errors(java)
            log.debug("java_parse_errors", count=len(errors))
            return ParseFailure(errors=tuple(errors))

        return ParseSuccess(java)


def _collect_errors(java: JavaSource) -> list[ParseError]:
    errors: list[ParseError] = []
    stack = [java.root]
    while stack and len(errors) < _MAX_REPORTED_ERRORS:
        node = stack.pop()
        row, col = node.start_point
        if node.is_missing:
            errors.append(ParseError(row + 1, col + 1, f"Missing '{node.type}'"))
            continue
        if node.is_error:
            snippet = java.text(node).splitlines()[0][:40] if node.end_byte > node.start_byte else ""
            errors.append(ParseError(row + 1, col + 1, f"Syntax error near '{snippet}'"))
            continue
        if node.has_error:
            stack.extend(reversed(node.children))
    if not errors:
        errors.append(ParseError(0, 0, "Syntax error"))
    return errors
