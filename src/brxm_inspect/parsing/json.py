"""JSON parsing."""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from brxm_inspect.engine.models import FileType
from brxm_inspect.parsing.base import ParseError, ParseFailure, ParseResult, ParseSuccess


@dataclass(frozen=True)
class JsonDocument:
    data: Any


class JsonParser:
    def supports(self, file_type: FileType) -> bool:
        return file_type is FileType.JSON

    def parse(self, content: str) -> ParseResult:
        try:
            return ParseSuccess(JsonDocument(json.loads(content)))
        except json.JSONDecodeError as e:
            return ParseFailure(errors=(ParseError(e.lineno, e.colno, e.msg),))
