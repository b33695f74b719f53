"""Extractors that populate the ProjectIndex from parsed files.

The executor runs every extractor over the whole file set before any
inspection runs, so cross-file facts are complete by the time they are read.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

from brxm_inspect.engine.models import FileType
from brxm_inspect.index.project import ClassInfo
from brxm_inspect.parsing.java import JavaSource
from brxm_inspect.parsing.xml import XmlDocument, XmlElement
from brxm_inspect.parsing.yaml import YamlDocument

if TYPE_CHECKING:
    from brxm_inspect.engine.files import VirtualFile
    from brxm_inspect.index.project import ProjectIndex
    from brxm_inspect.parsing.base import ParseResult

JCR_UUID = "jcr:uuid"

TYPE_DECLARATIONS: frozenset[str] = frozenset(
    {
        "class_declaration",
        "interface_declaration",
        "enum_declaration",
        "record_declaration",
        "annotation_type_declaration",
    }
)


@runtime_checkable
class IndexExtractor(Protocol):
    """Records cross-file facts from one parsed file into the index."""

    @property
    def file_types(self) -> frozenset[FileType]: ...

    def extract(self, file: VirtualFile, parse_result: ParseResult, index: ProjectIndex) -> None: ...


# =============================================================================
# Bootstrap UUIDs
# =============================================================================


@dataclass(frozen=True)
class UuidOccurrence:
    uuid: str
    line: int
    node_path: str


def _xml_node_path(element: XmlElement) -> str:
    parts: list[str] = []
    current: XmlElement | None = element
    while current is not None:
        if current.tag == "sv:node" and (name := current.attribute("sv:name")):
            parts.append(name)
        current = current.parent
    return "/" + "/".join(reversed(parts))


def _xml_uuids(document: XmlDocument) -> list[UuidOccurrence]:
    found = []
    for prop in document.iter("sv:property"):
        if prop.attribute("sv:name") != JCR_UUID:
            continue
        value = prop.first_child("sv:value")
        uuid = value.text if value is not None else ""
        if uuid:
            found.append(UuidOccurrence(uuid=uuid, line=prop.line, node_path=_xml_node_path(prop)))
    return found


def _yaml_node_path(path: tuple[str, ...]) -> str:
    node_path = ""
    for key in path:
        if key.startswith("/"):
            node_path = node_path.rstrip("/") + key
    return node_path or "/"


def _yaml_uuids(document: YamlDocument) -> list[UuidOccurrence]:
    return [
        UuidOccurrence(uuid=entry.value.strip(), line=entry.line, node_path=_yaml_node_path(entry.path))
        for entry in document.find(JCR_UUID)
        if entry.value and entry.value.strip()
    ]


def uuid_occurrences(ast: Any) -> list[UuidOccurrence]:
    """``jcr:uuid`` declarations in a JCR system-view XML or YAML bootstrap file."""
    if isinstance(ast, XmlDocument):
        return _xml_uuids(ast)
    if isinstance(ast, YamlDocument):
        return _yaml_uuids(ast)
    return []


class BootstrapUuidExtractor:
    file_types = frozenset({FileType.XML, FileType.YAML})

    def extract(self, file: VirtualFile, parse_result: ParseResult, index: ProjectIndex) -> None:
        ast = parse_result.get_or_none()
        for occurrence in uuid_occurrences(ast):
            index.record_uuid(occurrence.uuid, file, occurrence.line, occurrence.node_path)


# =============================================================================
# Java types
# =============================================================================


def _strip_generics(name: str) -> str:
    return name.split("<", 1)[0].strip()


def _type_list(source: JavaSource, node: Any) -> tuple[str, ...]:
    names: list[str] = []
    for child in node.named_children:
        if child.type == "type_list":
            names.extend(_strip_generics(source.text(t)) for t in child.named_children)
    return tuple(names)


def _has_modifier(source: JavaSource, declaration: Any, modifier: str) -> bool:
    for child in declaration.children:
        if child.type == "modifiers":
            return modifier in source.text(child).split()
    return False


def _class_info(source: JavaSource, declaration: Any, file: VirtualFile, package: str) -> ClassInfo | None:
    name_node = declaration.child_by_field_name("name")
    if name_node is None:
        return None
    names = [source.text(name_node)]
    for parent in source.ancestors(declaration):
        if parent.type in TYPE_DECLARATIONS and (outer := parent.child_by_field_name("name")) is not None:
            names.append(source.text(outer))
    simple = ".".join(reversed(names))
    fqn = f"{package}.{simple}" if package else simple

    is_interface = declaration.type in ("interface_declaration", "annotation_type_declaration")
    super_class = None
    interfaces: tuple[str, ...] = ()
    for child in declaration.children:
        if child.type == "superclass" and child.named_children:
            super_class = _strip_generics(source.text(child.named_children[0]))
        elif child.type in ("super_interfaces", "extends_interfaces"):
            interfaces = _type_list(source, child)

    return ClassInfo(
        fully_qualified_name=fqn,
        package_name=package,
        simple_name=names[0],
        file=file,
        is_interface=is_interface,
        is_abstract=is_interface or _has_modifier(source, declaration, "abstract"),
        super_class=super_class,
        interfaces=interfaces,
    )


def declared_types(source: JavaSource, file: VirtualFile) -> list[ClassInfo]:
    """Every type declared in the file, nested types included."""
    package = source.package_name()
    infos = []
    for node in source.find_all(TYPE_DECLARATIONS):
        info = _class_info(source, node, file, package)
        if info is not None:
            infos.append(info)
    return infos


class JavaTypeExtractor:
    file_types = frozenset({FileType.JAVA})

    def extract(self, file: VirtualFile, parse_result: ParseResult, index: ProjectIndex) -> None:
        source = parse_result.get_or_none()
        if not isinstance(source, JavaSource):
            return
        for info in declared_types(source, file):
            index.index_class_info(info)


DEFAULT_EXTRACTORS: tuple[IndexExtractor, ...] = (JavaTypeExtractor(), BootstrapUuidExtractor())
