"""Inspection registry.

Inspections come from providers: zero-argument callables returning an
inspection (or an iterable of them), or ``"package.module:attribute"``
strings naming such a callable or an inspection object. A provider that
fails is recorded in ``failures`` and skipped; it never stops the others.
"""

from __future__ import annotations

import importlib
import threading
from collections.abc import Callable, Collection, Iterable
from dataclasses import dataclass, field
from typing import Any

import structlog

from brxm_inspect.core.errors import RegistrationError
from brxm_inspect.engine.models import (
    INSPECTION_ATTRIBUTES,
    FileType,
    Inspection,
    InspectionCategory,
    Severity,
    is_applicable,
)

log = structlog.get_logger()

Provider = str | Callable[[], Any]


@dataclass(frozen=True)
class RegistrationFailure:
    provider: str
    reason: str
    error: RegistrationError | None = None


@dataclass(frozen=True)
class RegistryStatistics:
    total: int
    by_category: dict[InspectionCategory, int] = field(default_factory=dict)
    by_severity: dict[Severity, int] = field(default_factory=dict)
    by_file_type: dict[FileType, int] = field(default_factory=dict)


def provider_name(provider: Provider) -> str:
    if isinstance(provider, str):
        return provider
    module = getattr(provider, "__module__", None) or "?"
    qualname = getattr(provider, "__qualname__", None) or type(provider).__name__
    return f"{module}:{qualname}"


def resolve_provider(dotted: str) -> Any:
    """Import ``package.module:attribute``."""
    module_name, _, attr_path = dotted.partition(":")
    if not module_name or not attr_path:
        raise ValueError(f"expected 'package.module:attribute', got {dotted!r}")
    target: Any = importlib.import_module(module_name)
    for part in attr_path.split("."):
        target = getattr(target, part)
    return target


def missing_attributes(candidate: Any) -> list[str]:
    if isinstance(candidate, type):
        # A class is a provider, not an inspection
        return list(INSPECTION_ATTRIBUTES)
    return [name for name in INSPECTION_ATTRIBUTES if not hasattr(candidate, name)]


def invalid_attributes(candidate: Any) -> list[str]:
    """Describe attributes that are present but hold the wrong kind of value."""
    problems = []
    inspection_id = getattr(candidate, "id", None)
    if not isinstance(inspection_id, str) or not inspection_id.strip():
        problems.append("id (non-empty str)")
    if not isinstance(getattr(candidate, "severity", None), Severity):
        problems.append("severity (Severity)")
    if not isinstance(getattr(candidate, "category", None), InspectionCategory):
        problems.append("category (InspectionCategory)")
    file_types = getattr(candidate, "applicable_file_types", None)
    # Membership is tested on every lookup, so one-shot iterators do not qualify
    if (
        not isinstance(file_types, Collection)
        or isinstance(file_types, str | bytes)
        or not all(isinstance(t, FileType) for t in file_types)
    ):
        problems.append("applicable_file_types (collection of FileType)")
    for name in ("inspect", "quick_fixes"):
        if not callable(getattr(candidate, name, None)):
            problems.append(f"{name} (callable)")
    return problems


def _is_instance_like(candidate: Any) -> bool:
    return not missing_attributes(candidate)


class InspectionRegistry:
    """Registry of inspections, keyed by id."""

    def __init__(self) -> None:
        self._inspections: dict[str, Inspection] = {}
        self._failures: list[RegistrationFailure] = []
        self._lock = threading.Lock()

    def register(self, inspection: Inspection, *, provider: str | None = None) -> bool:
        """Register an inspection. Returns False for duplicates and malformed objects.

        Malformed objects (missing attributes, or attributes of the wrong
        type) are recorded in ``failures`` rather than raised.
        """
        name = provider or type(inspection).__name__
        try:
            missing = missing_attributes(inspection)
            invalid = [] if missing else invalid_attributes(inspection)
        except Exception as e:
            missing, invalid = [], [f"attribute access raised {type(e).__name__}: {e}"]
        if missing:
            self._record_failure(name, RegistrationError.malformed(name, missing))
            return False
        if invalid:
            self._record_failure(name, RegistrationError.invalid(name, invalid))
            return False

        with self._lock:
            if inspection.id in self._inspections:
                duplicate = True
            else:
                self._inspections[inspection.id] = inspection
                duplicate = False

        if duplicate:
            log.warning("inspection_duplicate_id", inspection_id=inspection.id)
            return False
        log.debug("inspection_registered", inspection_id=inspection.id)
        return True

    def discover(self, providers: Iterable[Provider]) -> int:
        """Register every inspection the providers produce. Returns how many were added."""
        added = 0
        for provider in providers:
            name = provider_name(provider)
            try:
                produced = self._invoke(provider)
            except Exception as e:
                self._record_failure(name, RegistrationError.provider_failed(name, f"{type(e).__name__}: {e}"))
                continue

            for candidate in produced:
                if self.register(candidate, provider=name):
                    added += 1
        return added

    def _invoke(self, provider: Provider) -> list[Any]:
        target = resolve_provider(provider) if isinstance(provider, str) else provider
        # A string may name an inspection instance directly
        if _is_instance_like(target):
            return [target]
        if not callable(target):
            raise TypeError(f"{type(target).__name__} is neither an inspection nor callable")
        produced = target()
        if _is_instance_like(produced):
            return [produced]
        if isinstance(produced, Iterable) and not isinstance(produced, str | bytes):
            return list(produced)
        return [produced]

    def _record_failure(self, provider: str, error: RegistrationError) -> None:
        log.warning("registration_failed", provider=provider, reason=error.message, code=error.code.value)
        with self._lock:
            self._failures.append(RegistrationFailure(provider=provider, reason=error.message, error=error))

    @property
    def failures(self) -> list[RegistrationFailure]:
        with self._lock:
            return list(self._failures)

    def get(self, inspection_id: str) -> Inspection | None:
        return self._inspections.get(inspection_id)

    def is_registered(self, inspection_id: str) -> bool:
        return inspection_id in self._inspections

    def all(self) -> list[Inspection]:
        """All inspections, sorted by id."""
        return sorted(self._inspections.copy().values(), key=lambda i: i.id)

    def for_file_type(self, file_type: FileType | None) -> list[Inspection]:
        return [i for i in self.all() if is_applicable(i, file_type)]

    def for_category(self, category: InspectionCategory) -> list[Inspection]:
        return [i for i in self.all() if i.category == category]

    def ids_by_category(self) -> dict[InspectionCategory, list[str]]:
        """Inspection ids grouped by category, highest-priority category first."""
        grouped: dict[InspectionCategory, list[str]] = {}
        for category in InspectionCategory.by_priority():
            ids = [i.id for i in self.for_category(category)]
            if ids:
                grouped[category] = ids
        return grouped

    def size(self) -> int:
        return len(self._inspections)

    def clear(self) -> None:
        with self._lock:
            self._inspections.clear()
            self._failures.clear()

    def get_statistics(self) -> RegistryStatistics:
        by_category: dict[InspectionCategory, int] = {}
        by_severity: dict[Severity, int] = {}
        by_file_type: dict[FileType, int] = {}
        inspections = self.all()
        for inspection in inspections:
            by_category[inspection.category] = by_category.get(inspection.category, 0) + 1
            by_severity[inspection.severity] = by_severity.get(inspection.severity, 0) + 1
            for file_type in inspection.applicable_file_types:
                by_file_type[file_type] = by_file_type.get(file_type, 0) + 1
        return RegistryStatistics(
            total=len(inspections),
            by_category=by_category,
            by_severity=by_severity,
            by_file_type=by_file_type,
        )
