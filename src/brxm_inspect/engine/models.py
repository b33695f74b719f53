"""Engine models - severities, file types, issues and the inspection contract."""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass, field, replace
from enum import Enum
from pathlib import Path
from types import MappingProxyType
from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from brxm_inspect.engine.context import InspectionContext
    from brxm_inspect.engine.files import VirtualFile


class Severity(Enum):
    """Issue severity level, ordered from ERROR (highest) to HINT (lowest)."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    HINT = "hint"

    @property
    def priority(self) -> int:
        return _SEVERITY_PRIORITY[self]

    def at_least(self, other: Severity) -> bool:
        """True if this severity is as severe as ``other`` or more."""
        return self.priority >= other.priority

    @classmethod
    def parse(cls, value: str | Severity) -> Severity:
        """Parse a severity name, case-insensitively ("WARN" is accepted)."""
        if isinstance(value, Severity):
            return value
        name = str(value).strip().upper()
        if name == "WARN":
            name = "WARNING"
        try:
            return cls[name]
        except KeyError:
            raise ValueError(
                f"Invalid severity: {value}. Must be one of: ERROR, WARNING, INFO, HINT"
            ) from None


_SEVERITY_PRIORITY: dict[Severity, int] = {
    Severity.ERROR: 4,
    Severity.WARNING: 3,
    Severity.INFO: 2,
    Severity.HINT: 1,
}


class FileType(Enum):
    """File kinds the engine knows how to dispatch on."""

    JAVA = "java"
    XML = "xml"
    YAML = "yaml"
    JSON = "json"
    PROPERTIES = "properties"
    CND = "cnd"
    SCXML = "scxml"

    @property
    def extensions(self) -> frozenset[str]:
        return _FILE_TYPE_EXTENSIONS[self]

    @classmethod
    def from_extension(cls, extension: str) -> FileType | None:
        ext = extension.lower().lstrip(".")
        for file_type, extensions in _FILE_TYPE_EXTENSIONS.items():
            if ext in extensions:
                return file_type
        return None

    @classmethod
    def from_filename(cls, filename: str) -> FileType | None:
        if "." not in filename:
            return None
        return cls.from_extension(filename.rsplit(".", 1)[1])


_FILE_TYPE_EXTENSIONS: dict[FileType, frozenset[str]] = {
    FileType.JAVA: frozenset({"java"}),
    FileType.XML: frozenset({"xml"}),
    FileType.YAML: frozenset({"yaml", "yml"}),
    FileType.JSON: frozenset({"json"}),
    FileType.PROPERTIES: frozenset({"properties"}),
    FileType.CND: frozenset({"cnd"}),
    FileType.SCXML: frozenset({"scxml"}),
}


class InspectionCategory(Enum):
    """Inspection categories, weighted by how often the problem shows up in practice."""

    REPOSITORY_TIER = ("Repository Tier Issues", 40)
    CONFIGURATION = ("Configuration Problems", 25)
    DEPLOYMENT = ("Deployment Issues", 20)
    INTEGRATION = ("Integration Challenges", 20)
    PERFORMANCE = ("Performance Issues", 15)
    SECURITY = ("Security Issues", 10)
    CODE_QUALITY = ("Code Quality", 5)

    @property
    def display_name(self) -> str:
        return self.value[0]

    @property
    def priority(self) -> int:
        return self.value[1]

    @classmethod
    def by_priority(cls) -> list[InspectionCategory]:
        """Categories sorted by priority, highest first (stable for ties)."""
        return sorted(cls, key=lambda c: -c.priority)


@dataclass(frozen=True)
class TextRange:
    """A 1-based line/column span in a file.

    A "whole line" range (column 0 to column 0) is a valid degenerate span.
    """

    start_line: int
    start_column: int
    end_line: int
    end_column: int

    def __post_init__(self) -> None:
        if self.start_line <= 0:
            raise ValueError(f"Start line must be positive, got: {self.start_line}")
        if self.end_line < self.start_line:
            raise ValueError(
                f"End line ({self.end_line}) must be >= start line ({self.start_line})"
            )
        if self.start_column < 0:
            raise ValueError(f"Start column must be non-negative, got: {self.start_column}")
        if self.end_column < 0:
            raise ValueError(f"End column must be non-negative, got: {self.end_column}")

    def is_single_line(self) -> bool:
        return self.start_line == self.end_line

    def line_count(self) -> int:
        return self.end_line - self.start_line + 1

    @classmethod
    def single_line(cls, line: int, start_column: int = 0, end_column: int = 0) -> TextRange:
        return cls(line, start_column, line, end_column)

    @classmethod
    def whole_line(cls, line: int) -> TextRange:
        return cls(line, 0, line, 0)


def _frozen_metadata(metadata: Mapping[str, str] | None) -> Mapping[str, str]:
    return MappingProxyType({str(k): str(v) for k, v in (metadata or {}).items()})


@dataclass(frozen=True)
class Issue:
    """A single finding produced by an inspection.

    Immutable once created. ``metadata`` values are always strings.
    """

    inspection_id: str
    file: VirtualFile
    severity: Severity
    message: str
    description: str
    range: TextRange
    category: InspectionCategory | None = None
    metadata: Mapping[str, str] = field(default_factory=dict, hash=False)

    def __post_init__(self) -> None:
        if not isinstance(self.severity, Severity):
            raise TypeError(f"Issue severity must be a Severity, got: {self.severity!r}")
        if not isinstance(self.range, TextRange):
            raise TypeError(f"Issue range must be a TextRange, got: {self.range!r}")
        if self.category is not None and not isinstance(self.category, InspectionCategory):
            raise TypeError(f"Issue category must be an InspectionCategory, got: {self.category!r}")
        object.__setattr__(self, "metadata", _frozen_metadata(self.metadata))

    @property
    def path(self) -> Path:
        return self.file.path

    def with_severity(self, severity: Severity) -> Issue:
        """Return a copy carrying a different severity (config overrides)."""
        if severity is self.severity:
            return self
        return replace(self, severity=severity)

    def sort_key(self) -> tuple[str, str, int, int, int, int, str]:
        return (
            self.file.path.as_posix(),
            self.inspection_id,
            self.range.start_line,
            self.range.start_column,
            self.range.end_line,
            self.range.end_column,
            self.message,
        )

    def __str__(self) -> str:
        return (
            f"[{self.severity.name}] {self.inspection_id} at "
            f"{self.file.name}:{self.range.start_line} - {self.message}"
        )


def default_writer(file: VirtualFile, content: str) -> None:
    """Write fixed content back to the file on disk."""
    file.path.write_text(content, encoding="utf-8")


@dataclass
class QuickFixContext:
    """Everything a quick fix needs to apply itself to one issue."""

    file: VirtualFile
    range: TextRange
    issue: Issue
    content: str | None = None
    writer: Callable[[VirtualFile, str], None] = default_writer

    def __post_init__(self) -> None:
        if self.content is None:
            self.content = self.file.read_text()

    def write(self, new_content: str) -> None:
        self.content = new_content
        self.writer(self.file, new_content)


@runtime_checkable
class QuickFix(Protocol):
    """An optional, user-invoked remediation for one issue.

    Fixes are applied on demand by a consumer, never during analysis, and
    ``apply`` does not re-run the inspection to verify its own effect.
    """

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    def apply(self, context: QuickFixContext) -> None: ...


@runtime_checkable
class Inspection(Protocol):
    """Capability set every inspection implements.

    Inspections are independent implementations of this protocol, not
    subclasses of a shared base. Identity is ``id``.
    """

    @property
    def id(self) -> str: ...

    @property
    def name(self) -> str: ...

    @property
    def description(self) -> str: ...

    @property
    def category(self) -> InspectionCategory: ...

    @property
    def severity(self) -> Severity: ...

    @property
    def applicable_file_types(self) -> frozenset[FileType]: ...

    def inspect(self, context: InspectionContext) -> list[Issue]: ...

    def quick_fixes(self, issue: Issue) -> list[QuickFix]: ...


INSPECTION_ATTRIBUTES: tuple[str, ...] = (
    "id",
    "name",
    "description",
    "category",
    "severity",
    "applicable_file_types",
    "inspect",
    "quick_fixes",
)


def is_applicable(inspection: Inspection, file_type: FileType | None) -> bool:
    """Check whether an inspection runs on the given file kind."""
    return file_type is not None and file_type in inspection.applicable_file_types
