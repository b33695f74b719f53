"""Session parse cache.

Entries are keyed by ``(path, content fingerprint, file type)``. Each key is
backed by a ``Future`` so concurrent first accesses for the same key wait on a
single parse instead of racing. The lock only guards dictionary bookkeeping;
computation always happens outside it, so distinct keys parse in parallel.

Only the newest fingerprint per ``(path, file type)`` is kept: installing an
entry for changed content evicts the stale one.
"""

from __future__ import annotations

import hashlib
import threading
from collections.abc import Callable
from concurrent.futures import Future
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING

import structlog

from brxm_inspect.engine.models import FileType

if TYPE_CHECKING:
    from brxm_inspect.engine.files import VirtualFile
    from brxm_inspect.parsing.base import ParseResult

log = structlog.get_logger()


def fingerprint(content: str) -> str:
    """SHA-256 hex digest of the UTF-8 content."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


@dataclass(frozen=True)
class CacheKey:
    path: Path
    fingerprint: str
    file_type: FileType


def cache_key_for(file: VirtualFile, content: str, file_type: FileType) -> CacheKey:
    return CacheKey(path=file.path, fingerprint=fingerprint(content), file_type=file_type)


@dataclass(frozen=True)
class CacheStats:
    hits: int
    misses: int
    evictions: int
    size: int

    @property
    def hit_rate(self) -> float:
        total = self.hits + self.misses
        return self.hits / total if total else 0.0


class InspectionCache:
    """Thread-safe parse-result cache for one analysis session."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._entries: dict[CacheKey, Future[ParseResult]] = {}
        self._current: dict[tuple[Path, FileType], CacheKey] = {}
        self._hits = 0
        self._misses = 0
        self._evictions = 0

    def get_or_compute(self, key: CacheKey, compute: Callable[[], ParseResult]) -> ParseResult:
        """Return the cached result for ``key``, computing it at most once.

        If ``compute`` raises, every waiter sees the exception and the key is
        dropped so a later call can retry.
        """
        with self._lock:
            future = self._entries.get(key)
            if future is not None:
                self._hits += 1
                owner = False
            else:
                self._misses += 1
                future = Future()
                self._install(key, future)
                owner = True

        if not owner:
            return future.result()

        try:
            result = compute()
        except BaseException as e:
            with self._lock:
                if self._entries.get(key) is future:
                    del self._entries[key]
                    if self._current.get((key.path, key.file_type)) == key:
                        del self._current[(key.path, key.file_type)]
            future.set_exception(e)
            raise
        future.set_result(result)
        return result

    def _install(self, key: CacheKey, future: Future[ParseResult]) -> None:
        # Caller holds the lock
        slot = (key.path, key.file_type)
        stale = self._current.get(slot)
        if stale is not None and stale != key:
            self._entries.pop(stale, None)
            self._evictions += 1
            log.debug("cache_evicted", path=str(key.path), file_type=key.file_type.value)
        self._current[slot] = key
        self._entries[key] = future

    def get(self, key: CacheKey) -> ParseResult | None:
        """Completed result for ``key``, or None (in-flight entries count as absent)."""
        with self._lock:
            future = self._entries.get(key)
        if future is None or not future.done() or future.exception() is not None:
            return None
        return future.result()

    def invalidate(self, path: Path) -> int:
        """Drop every entry for ``path``. Returns the number removed."""
        with self._lock:
            stale = [k for k in self._entries if k.path == path]
            for k in stale:
                del self._entries[k]
                self._current.pop((k.path, k.file_type), None)
            return len(stale)

    def size(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._current.clear()
            self._hits = 0
            self._misses = 0
            self._evictions = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                evictions=self._evictions,
                size=len(self._entries),
            )
