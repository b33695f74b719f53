"""YAML parsing that keeps node positions.

Documents are composed (not constructed) so every key keeps its mark and
unknown tags such as ``!binary`` payloads never fail the parse.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass

import yaml

from brxm_inspect.engine.models import FileType
from brxm_inspect.parsing.base import ParseError, ParseFailure, ParseResult, ParseSuccess


@dataclass(frozen=True)
class YamlEntry:
    """A mapping key with its scalar value (``None`` for nested values)."""

    key: str
    value: str | None
    line: int
    column: int
    path: tuple[str, ...]


@dataclass(frozen=True)
class YamlDocument:
    documents: tuple[yaml.Node, ...]

    def entries(self) -> Iterator[YamlEntry]:
        """Every mapping entry, depth-first in document order."""
        for doc in self.documents:
            yield from _walk(doc, ())

    def find(self, key: str) -> list[YamlEntry]:
        return [e for e in self.entries() if e.key == key]


def _walk(node: yaml.Node, path: tuple[str, ...]) -> Iterator[YamlEntry]:
    if isinstance(node, yaml.MappingNode):
        for key_node, value_node in node.value:
            key = str(key_node.value) if isinstance(key_node, yaml.ScalarNode) else ""
            value = str(value_node.value) if isinstance(value_node, yaml.ScalarNode) else None
            yield YamlEntry(
                key=key,
                value=value,
                line=key_node.start_mark.line + 1,
                column=key_node.start_mark.column + 1,
                path=path,
            )
            yield from _walk(value_node, (*path, key))
    elif isinstance(node, yaml.SequenceNode):
        for index, item in enumerate(node.value):
            yield from _walk(item, (*path, str(index)))


class YamlParser:
    def supports(self, file_type: FileType) -> bool:
        return file_type is FileType.YAML

    def parse(self, content: str) -> ParseResult:
        try:
            documents = tuple(d for d in yaml.compose_all(content, Loader=yaml.SafeLoader) if d is not None)
        except yaml.MarkedYAMLError as e:
            mark = e.problem_mark or e.context_mark
            line = mark.line + 1 if mark else 0
            column = mark.column + 1 if mark else 0
            return ParseFailure(errors=(ParseError(line, column, str(e.problem or e)),))
        except yaml.YAMLError as e:
            return ParseFailure.single(str(e))
        return ParseSuccess(YamlDocument(documents=documents))
