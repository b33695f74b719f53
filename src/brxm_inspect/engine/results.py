"""Results of an inspection run: issues, failure records and statistics."""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from pathlib import Path

from brxm_inspect.engine.models import FileType, InspectionCategory, Issue, Severity
from brxm_inspect.parsing.base import ParseError


@dataclass(frozen=True)
class InspectionFault:
    """An inspection raised instead of returning; it contributed nothing for the file."""

    file: Path
    inspection_id: str
    error_type: str
    message: str


@dataclass(frozen=True)
class FileFailure:
    """A file that could not be read; no inspection ran on it."""

    file: Path
    error_type: str
    message: str


@dataclass(frozen=True)
class ParseFailureRecord:
    file: Path
    file_type: FileType
    errors: tuple[ParseError, ...]


@dataclass(frozen=True)
class IssueStatistics:
    total: int
    by_severity: dict[Severity, int]
    by_file_type: dict[FileType, int]
    by_category: dict[InspectionCategory, int]

    @property
    def errors(self) -> int:
        return self.by_severity.get(Severity.ERROR, 0)

    @property
    def warnings(self) -> int:
        return self.by_severity.get(Severity.WARNING, 0)


@dataclass
class InspectionResults:
    """Sorted issues plus everything that went wrong along the way."""

    issues: list[Issue] = field(default_factory=list)
    faults: list[InspectionFault] = field(default_factory=list)
    file_failures: list[FileFailure] = field(default_factory=list)
    parse_failures: list[ParseFailureRecord] = field(default_factory=list)
    files_scanned: int = 0
    inspections_run: int = 0
    cancelled: bool = False
    duration_sec: float = 0.0
    run_id: str | None = None  # matches the run_id on this run's log events

    @property
    def total_issues(self) -> int:
        return len(self.issues)

    @property
    def failure_count(self) -> int:
        return len(self.faults) + len(self.file_failures)

    def has_errors(self) -> bool:
        return any(i.severity is Severity.ERROR for i in self.issues)

    def by_severity(self) -> dict[Severity, list[Issue]]:
        grouped: dict[Severity, list[Issue]] = defaultdict(list)
        for issue in self.issues:
            grouped[issue.severity].append(issue)
        return dict(grouped)

    def by_file(self) -> dict[Path, list[Issue]]:
        grouped: dict[Path, list[Issue]] = defaultdict(list)
        for issue in self.issues:
            grouped[issue.path].append(issue)
        return dict(grouped)

    def by_inspection(self) -> dict[str, list[Issue]]:
        grouped: dict[str, list[Issue]] = defaultdict(list)
        for issue in self.issues:
            grouped[issue.inspection_id].append(issue)
        return dict(grouped)

    def statistics(self) -> IssueStatistics:
        by_severity: dict[Severity, int] = {}
        by_file_type: dict[FileType, int] = {}
        by_category: dict[InspectionCategory, int] = {}
        for issue in self.issues:
            by_severity[issue.severity] = by_severity.get(issue.severity, 0) + 1
            file_type = FileType.from_filename(issue.file.name)
            if file_type is not None:
                by_file_type[file_type] = by_file_type.get(file_type, 0) + 1
            if issue.category is not None:
                by_category[issue.category] = by_category.get(issue.category, 0) + 1
        return IssueStatistics(
            total=len(self.issues),
            by_severity=by_severity,
            by_file_type=by_file_type,
            by_category=by_category,
        )

    def summary(self) -> str:
        stats = self.statistics()
        parts = [
            f"{stats.total} issue(s) in {self.files_scanned} file(s)",
            ", ".join(f"{s.name}: {n}" for s, n in sorted(stats.by_severity.items(), key=lambda kv: -kv[0].priority)),
        ]
        if self.failure_count:
            parts.append(f"{self.failure_count} failure(s)")
        if self.cancelled:
            parts.append("cancelled")
        return "; ".join(p for p in parts if p)
