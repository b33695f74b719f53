"""Inspection orchestration.

``InspectionExecutor`` owns one analysis session: the parse cache, the
project index and a worker pool. A run has two phases:

1. Index pre-pass. Every file is registered in the project index and files
   that left the set are removed. Files of a kind that has an extractor and
   at least one enabled inspection are parsed (through the cache) and their
   cross-file facts recorded. Each file's previous records are dropped first.
2. Inspection pass. Files are processed on the pool. Per file, the applicable
   inspections run sequentially against one shared context, each inside its
   own fault boundary. Anything that escapes a file becomes a file failure.

Results are merged, filtered by ``min_severity`` and sorted once at the end,
so output order never depends on scheduling.
"""

from __future__ import annotations

import contextvars
import threading
import time
from collections.abc import Callable, Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import structlog
from pydantic import ValidationError

from brxm_inspect.config.models import InspectionConfig
from brxm_inspect.core.errors import ConfigError
from brxm_inspect.core.logging import bind_run
from brxm_inspect.engine.cache import InspectionCache, cache_key_for
from brxm_inspect.engine.context import InspectionContext
from brxm_inspect.engine.files import VirtualFile
from brxm_inspect.engine.models import FileType, Inspection, Issue, Severity
from brxm_inspect.engine.registry import InspectionRegistry
from brxm_inspect.engine.results import (
    FileFailure,
    InspectionFault,
    InspectionResults,
    ParseFailureRecord,
)
from brxm_inspect.index.extractors import DEFAULT_EXTRACTORS, IndexExtractor
from brxm_inspect.index.project import ProjectIndex
from brxm_inspect.parsing.base import ParseFailure, ParseResult, ParserSet, default_parsers

log = structlog.get_logger()

ProgressCallback = Callable[[int, int, Path], None]


class CancellationToken:
    """Cooperative cancellation, checked before each file starts."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def is_cancelled(self) -> bool:
        return self._event.is_set()


@dataclass
class _FileOutcome:
    path: Path
    issues: list[Issue] = field(default_factory=list)
    faults: list[InspectionFault] = field(default_factory=list)
    file_failure: FileFailure | None = None
    parse_failure: ParseFailureRecord | None = None
    inspections_run: int = 0
    skipped: bool = False


def _validate_config(config: InspectionConfig | Mapping[str, Any] | None) -> InspectionConfig:
    if config is None:
        return InspectionConfig()
    if isinstance(config, InspectionConfig):
        return config
    if isinstance(config, Mapping):
        try:
            return InspectionConfig.model_validate(dict(config))
        except ValidationError as e:
            err = e.errors()[0]
            field_name = ".".join(str(loc) for loc in err["loc"])
            raise ConfigError.invalid_value(field_name, err.get("input"), err["msg"]) from e
    raise ConfigError.invalid_value("config", type(config).__name__, "expected InspectionConfig or mapping")


def _dedupe(files: Iterable[VirtualFile]) -> list[VirtualFile]:
    seen: dict[Path, VirtualFile] = {}
    for file in files:
        seen.setdefault(file.path, file)
    return list(seen.values())


class InspectionExecutor:
    """Runs registered inspections over file collections for one session.

    Use as a context manager so the worker pool is shut down:

        with InspectionExecutor(registry, config) as executor:
            results = executor.execute(files, project_root=root)

    Raises:
        ConfigError: If ``config`` does not validate. Nothing is scanned.
    """

    def __init__(
        self,
        registry: InspectionRegistry,
        config: InspectionConfig | Mapping[str, Any] | None = None,
        *,
        cache: InspectionCache | None = None,
        project_index: ProjectIndex | None = None,
        parsers: ParserSet | None = None,
        extractors: Sequence[IndexExtractor] | None = None,
        project_root: Path | None = None,
    ) -> None:
        self.config = _validate_config(config)
        self.registry = registry
        self.project_root = project_root
        self.cache = cache if cache is not None else InspectionCache()
        self.project_index = project_index if project_index is not None else ProjectIndex(project_root)
        self.parsers = parsers if parsers is not None else default_parsers()
        self.extractors: tuple[IndexExtractor, ...] = (
            tuple(extractors) if extractors is not None else DEFAULT_EXTRACTORS
        )
        self._pool: ThreadPoolExecutor | None = None
        self._pool_lock = threading.Lock()

        for inspection_id in self.config.inspections:
            if not registry.is_registered(inspection_id):
                log.warning("unknown_inspection_override", inspection_id=inspection_id)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def __enter__(self) -> InspectionExecutor:
        return self

    def __exit__(self, *_exc: object) -> None:
        self.close()

    def close(self) -> None:
        with self._pool_lock:
            pool, self._pool = self._pool, None
        if pool is not None:
            pool.shutdown(wait=True)

    def _get_pool(self) -> ThreadPoolExecutor:
        with self._pool_lock:
            if self._pool is None:
                self._pool = ThreadPoolExecutor(
                    max_workers=self.config.thread_count,
                    thread_name_prefix="brxm-inspect",
                )
                log.debug("worker_pool_started", max_workers=self.config.thread_count)
            return self._pool

    def _use_pool(self, count: int) -> bool:
        return self.config.parallel and count > 1 and self.config.thread_count > 1

    def clear_session(self) -> None:
        """Empty the cache and the project index."""
        self.cache.clear()
        self.project_index.clear()
        log.info("session_cleared")

    # -------------------------------------------------------------------------
    # Parsing
    # -------------------------------------------------------------------------

    def _parse(self, file: VirtualFile, content: str, file_type: FileType) -> ParseResult | None:
        if not self.parsers.supports(file_type):
            return None
        if self.config.cache_enabled:
            key = cache_key_for(file, content, file_type)
            return self.cache.get_or_compute(key, lambda: self.parsers.parse(file_type, content))
        return self.parsers.parse(file_type, content)

    # -------------------------------------------------------------------------
    # Index pre-pass
    # -------------------------------------------------------------------------

    def rebuild_index(
        self,
        files: Iterable[VirtualFile],
        *,
        cancel_token: CancellationToken | None = None,
        prune: bool = False,
    ) -> int:
        """Register files and re-extract their cross-file facts. Returns files extracted.

        Only kinds some enabled inspection applies to are parsed. With
        ``prune``, files the index knows about that are not in ``files`` are
        removed first, so a full run never sees records from files outside
        its set.
        """
        unique = _dedupe(files)
        if prune:
            self.project_index.retain_only({f.path for f in unique})
        for file in unique:
            self.project_index.add_file(file)

        targets: list[tuple[VirtualFile, list[IndexExtractor]]] = []
        for file in unique:
            file_type = FileType.from_filename(file.name)
            extractors = [e for e in self.extractors if file_type in e.file_types]
            if not extractors:
                continue
            if not self._applicable(file_type):
                # Drop what an earlier run recorded; nothing reads it now
                self.project_index.forget_file(file.path)
                continue
            targets.append((file, extractors))

        indexed = 0
        if self._use_pool(len(targets)):
            pool = self._get_pool()
            futures = [
                pool.submit(contextvars.copy_context().run, self._index_guarded, file, extractors, cancel_token)
                for file, extractors in targets
            ]
            for future in as_completed(futures):
                indexed += int(future.result())
        else:
            for file, extractors in targets:
                indexed += int(self._index_guarded(file, extractors, cancel_token))
        return indexed

    def _index_guarded(
        self,
        file: VirtualFile,
        extractors: list[IndexExtractor],
        cancel_token: CancellationToken | None,
    ) -> bool:
        # The inspection pass reports the file; here it is only left unindexed
        try:
            return self._index_file(file, extractors, cancel_token)
        except Exception as e:
            log.error("index_file_failed", path=str(file.path), error_type=type(e).__name__, error=str(e))
            return False

    def _index_file(
        self,
        file: VirtualFile,
        extractors: list[IndexExtractor],
        cancel_token: CancellationToken | None,
    ) -> bool:
        if cancel_token is not None and cancel_token.is_cancelled:
            return False
        self.project_index.forget_file(file.path)
        file_type = FileType.from_filename(file.name)
        if file_type is None:
            return False
        try:
            content = file.read_text()
        except (OSError, UnicodeDecodeError) as e:
            log.warning("index_read_failed", path=str(file.path), error=str(e))
            return False

        parse_result = self._parse(file, content, file_type)
        if parse_result is None or not parse_result.is_success:
            return False

        for extractor in extractors:
            try:
                extractor.extract(file, parse_result, self.project_index)
            except Exception as e:
                log.warning(
                    "index_extraction_failed",
                    path=str(file.path),
                    extractor=type(extractor).__name__,
                    error=str(e),
                )
        return True

    # -------------------------------------------------------------------------
    # Inspection pass
    # -------------------------------------------------------------------------

    def _applicable(self, file_type: FileType | None) -> list[Inspection]:
        return [i for i in self.registry.for_file_type(file_type) if self.config.is_enabled(i.id)]

    def _inspect_file(
        self,
        file: VirtualFile,
        project_root: Path,
        scanned: frozenset[Path],
        cancel_token: CancellationToken | None,
    ) -> _FileOutcome | None:
        if cancel_token is not None and cancel_token.is_cancelled:
            return None

        outcome = _FileOutcome(path=file.path)
        file_type = FileType.from_filename(file.name)
        inspections = self._applicable(file_type)
        if file_type is None or not inspections:
            outcome.skipped = True
            return outcome

        try:
            content = file.read_text()
        except (OSError, UnicodeDecodeError) as e:
            log.warning("file_read_failed", path=str(file.path), error=str(e))
            outcome.file_failure = FileFailure(file=file.path, error_type=type(e).__name__, message=str(e))
            return outcome

        parse_result = self._parse(file, content, file_type)
        if isinstance(parse_result, ParseFailure):
            log.debug("parse_failed", path=str(file.path), errors=len(parse_result.errors))
            outcome.parse_failure = ParseFailureRecord(
                file=file.path, file_type=file_type, errors=parse_result.errors
            )

        context = InspectionContext(
            project_root=project_root,
            file=file,
            content=content,
            file_type=file_type,
            parse_result=parse_result,
            config=self.config,
            cache=self.cache if self.config.cache_enabled else None,
            project_index=self.project_index,
        )

        for inspection in inspections:
            outcome.inspections_run += 1
            try:
                outcome.issues.extend(self._collect(inspection, context, scanned))
            except Exception as e:
                log.error(
                    "inspection_failed",
                    path=str(file.path),
                    inspection_id=inspection.id,
                    error_type=type(e).__name__,
                    error=str(e),
                    exc_info=True,
                )
                outcome.faults.append(
                    InspectionFault(
                        file=file.path,
                        inspection_id=inspection.id,
                        error_type=type(e).__name__,
                        message=str(e),
                    )
                )

        return outcome

    def _collect(
        self,
        inspection: Inspection,
        context: InspectionContext,
        scanned: frozenset[Path],
    ) -> list[Issue]:
        """Run one inspection and keep the issues it may report.

        Anything raised here, including from a malformed issue, fails the
        whole (file, inspection) pair: none of its issues are kept.
        """
        override = self.config.severity_for(inspection.id)
        accepted = []
        for issue in inspection.inspect(context) or ():
            if not isinstance(issue, Issue):
                log.warning("issue_dropped", inspection_id=inspection.id, reason="not_an_issue")
                continue
            if issue.inspection_id != inspection.id:
                log.warning("issue_dropped", inspection_id=inspection.id, reason="foreign_inspection_id")
                continue
            if issue.file.path not in scanned:
                log.warning("issue_dropped", inspection_id=inspection.id, reason="file_not_scanned")
                continue
            if not isinstance(issue.severity, Severity):
                raise TypeError(f"issue severity must be a Severity, got {issue.severity!r}")
            accepted.append(issue.with_severity(override) if override else issue)
        return accepted

    def _inspect_guarded(
        self,
        file: VirtualFile,
        project_root: Path,
        scanned: frozenset[Path],
        cancel_token: CancellationToken | None,
    ) -> _FileOutcome | None:
        """``_inspect_file`` with anything that escapes it recorded as a file failure."""
        try:
            return self._inspect_file(file, project_root, scanned, cancel_token)
        except Exception as e:
            log.error("file_processing_failed", path=str(file.path), error=str(e), exc_info=True)
            return _FileOutcome(
                path=file.path,
                file_failure=FileFailure(file=file.path, error_type=type(e).__name__, message=str(e)),
            )

    def execute(
        self,
        files: Iterable[VirtualFile],
        *,
        project_root: Path | None = None,
        cancel_token: CancellationToken | None = None,
        progress_callback: ProgressCallback | None = None,
    ) -> InspectionResults:
        """Index, then inspect every file. Returns sorted, filtered results.

        The session index is pruned to exactly ``files`` first; use
        ``execute_incremental`` to re-check one file against the rest.
        """
        results = InspectionResults()
        if not self.config.enabled:
            log.info("inspections_disabled")
            return results

        start = time.perf_counter()
        unique = _dedupe(files)
        root = project_root or self.project_root or Path.cwd()
        with bind_run() as run_id:
            results.run_id = run_id
            log.info("inspection_run_started", files=len(unique), inspections=self.registry.size())
            self.rebuild_index(unique, cancel_token=cancel_token, prune=True)
            outcomes = self._run_files(unique, root, frozenset(f.path for f in unique), cancel_token, progress_callback)
            self._merge(results, outcomes, len(unique))
            results.duration_sec = time.perf_counter() - start
            log.info(
                "inspection_run_complete",
                files=results.files_scanned,
                issues=results.total_issues,
                faults=len(results.faults),
                file_failures=len(results.file_failures),
                cancelled=results.cancelled,
                duration_ms=round(results.duration_sec * 1000),
            )
        return results

    def execute_incremental(
        self,
        file: VirtualFile,
        *,
        project_root: Path | None = None,
    ) -> InspectionResults:
        """Re-index and re-inspect one file against the existing session index."""
        results = InspectionResults()
        if not self.config.enabled:
            return results
        start = time.perf_counter()
        root = project_root or self.project_root or Path.cwd()
        with bind_run() as run_id:
            results.run_id = run_id
            self.rebuild_index([file])
            outcome = self._inspect_guarded(file, root, frozenset({file.path}), None)
            self._merge(results, [outcome], 1)
        results.duration_sec = time.perf_counter() - start
        return results

    def _run_files(
        self,
        files: list[VirtualFile],
        root: Path,
        scanned: frozenset[Path],
        cancel_token: CancellationToken | None,
        progress_callback: ProgressCallback | None,
    ) -> list[_FileOutcome | None]:
        total = len(files)
        outcomes: list[_FileOutcome | None] = []

        if not self._use_pool(total):
            for done, file in enumerate(files, start=1):
                outcomes.append(self._inspect_guarded(file, root, scanned, cancel_token))
                self._report_progress(progress_callback, done, total, file.path)
            return outcomes

        pool = self._get_pool()
        futures = {
            pool.submit(contextvars.copy_context().run, self._inspect_guarded, file, root, scanned, cancel_token): file
            for file in files
        }
        for done, future in enumerate(as_completed(futures), start=1):
            file = futures[future]
            outcomes.append(future.result())
            self._report_progress(progress_callback, done, total, file.path)
        return outcomes

    @staticmethod
    def _report_progress(callback: ProgressCallback | None, done: int, total: int, path: Path) -> None:
        if callback is None:
            return
        try:
            callback(done, total, path)
        except Exception as e:
            log.warning("progress_callback_failed", error=str(e))

    def _merge(self, results: InspectionResults, outcomes: list[_FileOutcome | None], total: int) -> None:
        issues: list[Issue] = []
        for outcome in outcomes:
            if outcome is None:
                results.cancelled = True
                continue
            issues.extend(outcome.issues)
            results.faults.extend(outcome.faults)
            if outcome.file_failure is not None:
                results.file_failures.append(outcome.file_failure)
            if outcome.parse_failure is not None:
                results.parse_failures.append(outcome.parse_failure)
            results.inspections_run += outcome.inspections_run
            if not outcome.skipped:
                results.files_scanned += 1
        if len(outcomes) < total:
            results.cancelled = True

        min_severity = self.config.min_severity
        results.issues = sorted(
            (i for i in issues if i.severity.at_least(min_severity)),
            key=Issue.sort_key,
        )
        results.faults.sort(key=lambda f: (f.file.as_posix(), f.inspection_id))
        results.file_failures.sort(key=lambda f: f.file.as_posix())
        results.parse_failures.sort(key=lambda f: f.file.as_posix())


def run(
    files: Iterable[VirtualFile],
    registry: InspectionRegistry | None = None,
    config: InspectionConfig | Mapping[str, Any] | None = None,
    *,
    project_root: Path | None = None,
    cancel_token: CancellationToken | None = None,
    progress_callback: ProgressCallback | None = None,
    parsers: ParserSet | None = None,
) -> InspectionResults:
    """One-shot run with a fresh session cache and index.

    Without a registry, the built-in inspections (plus configured extra
    providers) are used.
    """
    effective = _validate_config(config)
    if registry is None:
        from brxm_inspect.inspections.definitions import create_default_registry

        registry = create_default_registry(effective)
    with InspectionExecutor(
        registry,
        effective,
        parsers=parsers,
        project_root=project_root,
    ) as executor:
        return executor.execute(
            files,
            project_root=project_root,
            cancel_token=cancel_token,
            progress_callback=progress_callback,
        )
