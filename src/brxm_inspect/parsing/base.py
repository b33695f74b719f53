"""Parser contract and parse results.

Every parser call returns a ``ParseResult``: ``ParseSuccess`` carrying the
language-specific tree, or ``ParseFailure`` carrying one or more
``ParseError`` records. Parsers never raise.
"""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from typing import Any, Generic, Protocol, TypeVar, runtime_checkable

import structlog

from brxm_inspect.core.errors import ParseException
from brxm_inspect.engine.models import FileType

log = structlog.get_logger()

T = TypeVar("T")


@dataclass(frozen=True)
class ParseError:
    """A single parse problem. ``line``/``column`` are 1-based; 0 means unknown."""

    line: int
    column: int
    message: str


@dataclass(frozen=True)
class ParseSuccess(Generic[T]):
    ast: T

    @property
    def is_success(self) -> bool:
        return True

    def get_or_none(self) -> T | None:
        return self.ast

    def get_or_raise(self) -> T:
        return self.ast


@dataclass(frozen=True)
class ParseFailure:
    errors: tuple[ParseError, ...] = field(default_factory=tuple)

    @property
    def is_success(self) -> bool:
        return False

    def get_or_none(self) -> None:
        return None

    def get_or_raise(self) -> Any:
        raise ParseException.from_errors(list(self.errors))

    @classmethod
    def single(cls, message: str, line: int = 0, column: int = 0) -> ParseFailure:
        return cls(errors=(ParseError(line=line, column=column, message=message),))


ParseResult = ParseSuccess[Any] | ParseFailure


@runtime_checkable
class Parser(Protocol):
    """Converts raw file content into a parse result for one or more file kinds.

    Implementations must be safe for concurrent calls: each call builds its
    own parser state, sharing only read-only configuration.
    """

    def parse(self, content: str) -> ParseResult: ...

    def supports(self, file_type: FileType) -> bool: ...


def safe_parse(parser: Parser, content: str) -> ParseResult:
    """Invoke a parser, converting any escaped exception into a failure."""
    try:
        return parser.parse(content)
    except Exception as e:
        log.error("parser_crashed", parser=type(parser).__name__, error=str(e))
        return ParseFailure.single(f"Unexpected error: {e}")


class ParserSet:
    """Dispatches a file kind to the first parser that supports it."""

    def __init__(self, parsers: Iterable[Parser] = ()) -> None:
        self._parsers: list[Parser] = list(parsers)
        self._by_type: dict[FileType, Parser | None] = {}

    def add(self, parser: Parser) -> None:
        self._parsers.append(parser)
        self._by_type.clear()

    def parser_for(self, file_type: FileType) -> Parser | None:
        if file_type not in self._by_type:
            self._by_type[file_type] = next(
                (p for p in self._parsers if p.supports(file_type)), None
            )
        return self._by_type[file_type]

    def supports(self, file_type: FileType) -> bool:
        return self.parser_for(file_type) is not None

    def parse(self, file_type: FileType, content: str) -> ParseResult | None:
        """Parse content for a kind; ``None`` when no parser handles it."""
        parser = self.parser_for(file_type)
        if parser is None:
            return None
        return safe_parse(parser, content)

    def __len__(self) -> int:
        return len(self._parsers)


def default_parsers() -> ParserSet:
    """The built-in parser set: Java, XML/SCXML, YAML and JSON."""
    from brxm_inspect.parsing.java import JavaParser
    from brxm_inspect.parsing.json import JsonParser
    from brxm_inspect.parsing.xml import XmlParser
    from brxm_inspect.parsing.yaml import YamlParser

    return ParserSet([JavaParser(), XmlParser(), YamlParser(), JsonParser()])
