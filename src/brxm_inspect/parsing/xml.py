"""XML parsing with source positions.

``xml.etree`` drops line information, so the tree is built directly from
expat callbacks. Qualified names are kept verbatim (``sv:property``);
namespace processing is off.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from xml.parsers import expat

from brxm_inspect.engine.models import FileType
from brxm_inspect.parsing.base import ParseError, ParseFailure, ParseResult, ParseSuccess


@dataclass(eq=False)
class XmlElement:
    """An element with its 1-based start position."""

    tag: str
    attributes: dict[str, str]
    line: int
    column: int
    parent: XmlElement | None = field(default=None, repr=False)
    children: list[XmlElement] = field(default_factory=list, repr=False)
    _text: list[str] = field(default_factory=list, repr=False)

    @property
    def text(self) -> str:
        return "".join(self._text).strip()

    def attribute(self, name: str, default: str | None = None) -> str | None:
        return self.attributes.get(name, default)

    def children_named(self, tag: str) -> list[XmlElement]:
        return [c for c in self.children if c.tag == tag]

    def first_child(self, tag: str) -> XmlElement | None:
        return next((c for c in self.children if c.tag == tag), None)

    def iter(self, tag: str | None = None) -> Iterator[XmlElement]:
        """Depth-first over this element and its descendants, document order."""
        stack = [self]
        while stack:
            element = stack.pop()
            if tag is None or element.tag == tag:
                yield element
            stack.extend(reversed(element.children))


@dataclass
class XmlDocument:
    root: XmlElement

    def iter(self, tag: str | None = None) -> Iterator[XmlElement]:
        return self.root.iter(tag)


class _TreeBuilder:
    def __init__(self, parser: expat.XMLParserType) -> None:
        self._parser = parser
        self._stack: list[XmlElement] = []
        self.root: XmlElement | None = None

    def start(self, tag: str, attrs: dict[str, str]) -> None:
        parent = self._stack[-1] if self._stack else None
        element = XmlElement(
            tag=tag,
            attributes=dict(attrs),
            line=self._parser.CurrentLineNumber,
            column=self._parser.CurrentColumnNumber + 1,
            parent=parent,
        )
        if parent is None:
            self.root = element
        else:
            parent.children.append(element)
        self._stack.append(element)

    def end(self, _tag: str) -> None:
        self._stack.pop()

    def data(self, text: str) -> None:
        if self._stack:
            self._stack[-1]._text.append(text)


class XmlParser:
    """Parses XML and SCXML files into ``XmlDocument`` trees."""

    def supports(self, file_type: FileType) -> bool:
        return file_type in (FileType.XML, FileType.SCXML)

    def parse(self, content: str) -> ParseResult:
        if not content.strip():
            return ParseFailure.single("Empty XML document")

        parser = expat.ParserCreate()
        builder = _TreeBuilder(parser)
        parser.StartElementHandler = builder.start
        parser.EndElementHandler = builder.end
        parser.CharacterDataHandler = builder.data
        parser.buffer_text = True

        try:
            parser.Parse(content, True)
        except expat.ExpatError as e:
            message = expat.errors.messages.get(e.code, str(e)) if e.code else str(e)
            return ParseFailure(errors=(ParseError(e.lineno, e.offset + 1, message),))

        if builder.root is None:
            return ParseFailure.single("No root element")
        return ParseSuccess(XmlDocument(root=builder.root))
