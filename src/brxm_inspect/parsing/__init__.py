"""Parsers for the file kinds inspections consume."""

from brxm_inspect.parsing.base import (
    ParseError,
    ParseFailure,
    Parser,
    ParseResult,
    ParserSet,
    ParseSuccess,
    default_parsers,
    safe_parse,
)

__all__ = [
    "ParseError",
    "ParseFailure",
    "ParseResult",
    "ParseSuccess",
    "Parser",
    "ParserSet",
    "default_parsers",
    "safe_parse",
]
