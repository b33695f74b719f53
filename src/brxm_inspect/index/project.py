"""Project-wide index for cross-file analysis.

Holds the file registry plus facts extracted from individual files (JCR
bootstrap UUIDs, declared Java types) that inspections need to check
consistency across files.

Writes are guarded by striped locks keyed on the record key, so files being
indexed in parallel only contend when they touch the same uuid, type name or
path. Record writes hold one stripe at a time; only ``clear()`` takes every
stripe, always in the same order. Reads return copies.
"""

from __future__ import annotations

import fnmatch
import threading
from collections.abc import Collection, Hashable, Iterator
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

if TYPE_CHECKING:
    from brxm_inspect.engine.files import VirtualFile

log = structlog.get_logger()

_STRIPES = 16


@dataclass(frozen=True)
class UuidDefinition:
    """One ``jcr:uuid`` occurrence. Several records under one uuid are a conflict."""

    uuid: str
    file: VirtualFile
    line: int
    node_path: str = ""


@dataclass(frozen=True)
class ClassInfo:
    fully_qualified_name: str
    package_name: str
    simple_name: str
    file: VirtualFile
    is_interface: bool = False
    is_abstract: bool = False
    super_class: str | None = None
    interfaces: tuple[str, ...] = field(default_factory=tuple)


class _StripedLocks:
    def __init__(self, stripes: int = _STRIPES) -> None:
        self._locks = tuple(threading.Lock() for _ in range(stripes))

    def for_key(self, key: Hashable) -> threading.Lock:
        return self._locks[hash(key) % len(self._locks)]

    def __iter__(self) -> Iterator[threading.Lock]:
        return iter(self._locks)


def matches_glob(path: str, pattern: str) -> bool:
    """Check if a POSIX path matches a glob pattern, with ** support."""
    if fnmatch.fnmatch(path, pattern):
        return True
    return pattern.startswith("**/") and fnmatch.fnmatch(path, pattern[3:])


class ProjectIndex:
    """Cross-file knowledge base for one analysis session."""

    def __init__(self, project_root: Path | None = None) -> None:
        self.project_root = project_root
        self._file_locks = _StripedLocks()
        self._uuid_locks = _StripedLocks()
        self._class_locks = _StripedLocks()
        # Insertion-ordered; dict keeps first-seen order for glob queries
        self._files: dict[Path, VirtualFile] = {}
        self._uuids: dict[str, list[UuidDefinition]] = {}
        self._classes: dict[str, ClassInfo] = {}
        self._uuids_by_file: dict[Path, set[str]] = {}
        self._classes_by_file: dict[Path, set[str]] = {}

    # -------------------------------------------------------------------------
    # Files
    # -------------------------------------------------------------------------

    def add_file(self, file: VirtualFile) -> None:
        with self._file_locks.for_key(file.path):
            self._files[file.path] = file

    def get_file(self, path: Path) -> VirtualFile | None:
        return self._files.get(path)

    def files(self) -> list[VirtualFile]:
        return list(self._files.copy().values())

    def find_files(self, pattern: str) -> list[VirtualFile]:
        """Files whose path matches ``pattern``, in insertion order.

        The pattern is tried against the project-relative path (when a root
        is set), the absolute POSIX path and, for patterns without ``/``,
        the bare file name.
        """
        matched = []
        for file in self.files():
            candidates = [file.path.as_posix()]
            if self.project_root is not None and file.path.is_relative_to(self.project_root):
                candidates.append(file.path.relative_to(self.project_root).as_posix())
            if "/" not in pattern:
                candidates.append(file.name)
            if any(matches_glob(c, pattern) for c in candidates):
                matched.append(file)
        return matched

    def forget_file(self, path: Path) -> None:
        """Drop the uuid and class records derived from ``path``.

        Called before a file is re-indexed so that a second pass over the
        same content does not record duplicate occurrences.
        """
        with self._file_locks.for_key(path):
            uuids = self._uuids_by_file.pop(path, set())
            classes = self._classes_by_file.pop(path, set())

        for uuid in uuids:
            with self._uuid_locks.for_key(uuid):
                remaining = [d for d in self._uuids.get(uuid, ()) if d.file.path != path]
                if remaining:
                    self._uuids[uuid] = remaining
                else:
                    self._uuids.pop(uuid, None)

        for fqn in classes:
            with self._class_locks.for_key(fqn):
                info = self._classes.get(fqn)
                if info is not None and info.file.path == path:
                    del self._classes[fqn]

    def remove_file(self, path: Path) -> None:
        """Drop ``path`` from the registry along with its derived records."""
        self.forget_file(path)
        with self._file_locks.for_key(path):
            self._files.pop(path, None)

    def retain_only(self, paths: Collection[Path]) -> list[Path]:
        """Remove every known file not in ``paths``. Returns the removed paths, sorted."""
        known = {*self._files.copy(), *self._uuids_by_file.copy(), *self._classes_by_file.copy()}
        stale = sorted((p for p in known if p not in paths), key=Path.as_posix)
        for path in stale:
            self.remove_file(path)
        if stale:
            log.debug("index_pruned", removed=len(stale))
        return stale

    # -------------------------------------------------------------------------
    # UUIDs
    # -------------------------------------------------------------------------

    def record_uuid(self, uuid: str, file: VirtualFile, line: int, node_path: str = "") -> None:
        definition = UuidDefinition(uuid=uuid, file=file, line=line, node_path=node_path)
        with self._uuid_locks.for_key(uuid):
            self._uuids.setdefault(uuid, []).append(definition)
        with self._file_locks.for_key(file.path):
            self._uuids_by_file.setdefault(file.path, set()).add(uuid)

    def find_uuid_conflicts(self, uuid: str) -> list[UuidDefinition]:
        """All occurrences of ``uuid`` if it was recorded at least twice, else []."""
        with self._uuid_locks.for_key(uuid):
            definitions = list(self._uuids.get(uuid, ()))
        return definitions if len(definitions) > 1 else []

    def get_all_uuids(self) -> dict[str, list[UuidDefinition]]:
        snapshot = self._uuids.copy()
        return {uuid: list(defs) for uuid, defs in snapshot.items()}

    # -------------------------------------------------------------------------
    # Java types
    # -------------------------------------------------------------------------

    def index_class_info(self, info: ClassInfo) -> None:
        """Record a declared type. The last record for a name wins."""
        fqn = info.fully_qualified_name
        with self._class_locks.for_key(fqn):
            previous = self._classes.get(fqn)
            self._classes[fqn] = info
        if previous is not None and previous.file.path != info.file.path:
            log.debug(
                "duplicate_class_declaration",
                fqn=fqn,
                previous=str(previous.file.path),
                current=str(info.file.path),
            )
        with self._file_locks.for_key(info.file.path):
            self._classes_by_file.setdefault(info.file.path, set()).add(fqn)

    def get_class_info(self, fully_qualified_name: str) -> ClassInfo | None:
        return self._classes.get(fully_qualified_name)

    def classes_in_file(self, path: Path) -> list[ClassInfo]:
        with self._file_locks.for_key(path):
            names = sorted(self._classes_by_file.get(path, ()))
        return [info for name in names if (info := self._classes.get(name)) is not None and info.file.path == path]

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def clear(self) -> None:
        locks = [*self._file_locks, *self._uuid_locks, *self._class_locks]
        for lock in locks:
            lock.acquire()
        try:
            self._files.clear()
            self._uuids.clear()
            self._classes.clear()
            self._uuids_by_file.clear()
            self._classes_by_file.clear()
        finally:
            for lock in reversed(locks):
                lock.release()

    def size(self) -> int:
        """Number of files in the registry."""
        return len(self._files)

    def uuid_count(self) -> int:
        return len(self._uuids)

    def class_count(self) -> int:
        return len(self._classes)
