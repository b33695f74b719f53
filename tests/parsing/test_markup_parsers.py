"""Tests for the XML, YAML and JSON parsers."""

from __future__ import annotations

import pytest

from brxm_inspect.engine.models import FileType
from brxm_inspect.parsing.base import ParseFailure, ParserSet, ParseSuccess, default_parsers, safe_parse
from brxm_inspect.parsing.json import JsonDocument, JsonParser
from brxm_inspect.parsing.xml import XmlDocument, XmlParser
from brxm_inspect.parsing.yaml import YamlDocument, YamlParser

SYSTEM_VIEW = """\
<?xml version="1.0" encoding="UTF-8"?>
<sv:node sv:name="content" xmlns:sv="http://www.jcp.org/jcr/sv/1.0">
  <sv:node sv:name="news">
    <sv:property sv:name="jcr:uuid" sv:type="String">
      <sv:value>9a5b2c1e-0000-4000-8000-000000000001</sv:value>
    </sv:property>
  </sv:node>
</sv:node>
"""


class TestXmlParser:
    """Expat-backed XML parsing."""

    def test_elements_carry_positions(self) -> None:
        result = XmlParser().parse(SYSTEM_VIEW)

        assert isinstance(result, ParseSuccess)
        document = result.ast
        assert isinstance(document, XmlDocument)
        prop = next(document.iter("sv:property"))
        assert prop.line == 4
        assert prop.column == 5
        assert prop.attribute("sv:name") == "jcr:uuid"
        assert prop.first_child("sv:value").text == "9a5b2c1e-0000-4000-8000-000000000001"
        assert prop.parent.attribute("sv:name") == "news"

    def test_iter_is_document_order(self) -> None:
        document = XmlParser().parse(SYSTEM_VIEW).ast

        assert [e.attribute("sv:name") for e in document.iter("sv:node")] == ["content", "news"]

    def test_malformed_xml_reports_position(self) -> None:
        result = XmlParser().parse("<root>\n  <child>\n</root>\n")

        assert isinstance(result, ParseFailure)
        error = result.errors[0]
        assert error.line == 3
        assert "mismatched" in error.message

    def test_empty_document_fails(self) -> None:
        result = XmlParser().parse("   ")

        assert isinstance(result, ParseFailure)

    def test_supports_scxml(self) -> None:
        assert XmlParser().supports(FileType.SCXML)


class TestYamlParser:
    """Node-level YAML parsing."""

    def test_entries_have_lines_and_paths(self) -> None:
        text = "definitions:\n  config:\n    /hippo:configuration:\n      jcr:uuid: abc-123\n"

        document = YamlParser().parse(text).ast

        assert isinstance(document, YamlDocument)
        [entry] = document.find("jcr:uuid")
        assert entry.value == "abc-123"
        assert entry.line == 4
        assert entry.path == ("definitions", "config", "/hippo:configuration")

    def test_multiple_documents(self) -> None:
        document = YamlParser().parse("a: 1\n---\nb: 2\n").ast

        assert [e.key for e in document.entries()] == ["a", "b"]

    def test_syntax_error_reports_one_based_position(self) -> None:
        result = YamlParser().parse("a: [1, 2\nb: 3\n")

        assert isinstance(result, ParseFailure)
        assert result.errors[0].line >= 1

    def test_empty_file_is_an_empty_document(self) -> None:
        document = YamlParser().parse("").ast

        assert list(document.entries()) == []


class TestJsonParser:
    def test_parses(self) -> None:
        result = JsonParser().parse('{"name": "site"}')

        assert isinstance(result.ast, JsonDocument)
        assert result.ast.data == {"name": "site"}

    def test_error_position(self) -> None:
        result = JsonParser().parse('{\n  "a": 1,\n}')

        assert isinstance(result, ParseFailure)
        assert result.errors[0].line == 3


class TestParserSet:
    """Dispatch by file kind."""

    def test_default_set_covers_structured_kinds(self) -> None:
        parsers = default_parsers()

        for file_type in (FileType.JAVA, FileType.XML, FileType.SCXML, FileType.YAML, FileType.JSON):
            assert parsers.supports(file_type)
        assert parsers.parse(FileType.PROPERTIES, "a=b") is None
        assert len(parsers) == 4

    def test_crashing_parser_becomes_failure(self) -> None:
        class _Crashing:
            def supports(self, file_type: FileType) -> bool:
                return True

            def parse(self, content: str):
                raise RuntimeError("boom")

        result = safe_parse(_Crashing(), "x")

        assert isinstance(result, ParseFailure)
        assert "boom" in result.errors[0].message

    def test_added_parser_takes_unclaimed_kind(self) -> None:
        class _Properties:
            def supports(self, file_type: FileType) -> bool:
                return file_type is FileType.PROPERTIES

            def parse(self, content: str):
                return ParseSuccess(dict(line.split("=", 1) for line in content.splitlines()))

        parsers = ParserSet([XmlParser()])
        parsers.add(_Properties())

        assert parsers.parse(FileType.PROPERTIES, "a=b").ast == {"a": "b"}

    def test_failure_raises_on_demand(self) -> None:
        from brxm_inspect.core.errors import ParseException

        with pytest.raises(ParseException):
            ParseFailure.single("bad").get_or_raise()
