"""Tests for engine/cache.py."""

from __future__ import annotations

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from brxm_inspect.engine.cache import CacheKey, InspectionCache, cache_key_for, fingerprint
from brxm_inspect.engine.files import InMemoryVirtualFile
from brxm_inspect.engine.models import FileType
from brxm_inspect.parsing.base import ParseSuccess


def _key(content: str, path: str = "/p/a.xml", file_type: FileType = FileType.XML) -> CacheKey:
    return cache_key_for(InMemoryVirtualFile(path, content), content, file_type)


class TestFingerprint:
    def test_is_sha256_hex(self) -> None:
        assert fingerprint("") == "e3b0c44298fc1c149afbf4c8996fb92427ae41e4649b934ca495991b7852b855"

    def test_different_content_different_key(self) -> None:
        assert _key("a") != _key("b")
        assert _key("a") == _key("a")


class TestGetOrCompute:
    """Single-flight computation and coherence."""

    def test_second_call_hits(self) -> None:
        cache = InspectionCache()
        calls = []

        def compute() -> ParseSuccess:
            calls.append(1)
            return ParseSuccess("ast")

        first = cache.get_or_compute(_key("x"), compute)
        second = cache.get_or_compute(_key("x"), compute)

        assert first is second
        assert len(calls) == 1
        stats = cache.stats()
        assert (stats.hits, stats.misses, stats.size) == (1, 1, 1)
        assert stats.hit_rate == 0.5

    def test_concurrent_callers_compute_once(self) -> None:
        """Many threads asking for the same key share one computation."""
        # Given
        cache = InspectionCache()
        workers = 8
        barrier = threading.Barrier(workers)
        calls = []
        lock = threading.Lock()

        def compute() -> ParseSuccess:
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return ParseSuccess(object())

        def worker() -> ParseSuccess:
            barrier.wait()
            return cache.get_or_compute(_key("same"), compute)

        # When
        with ThreadPoolExecutor(max_workers=workers) as pool:
            results = list(pool.map(lambda _: worker(), range(workers)))

        # Then
        assert len(calls) == 1
        assert all(r is results[0] for r in results)

    def test_changed_content_evicts_stale_entry(self) -> None:
        cache = InspectionCache()
        cache.get_or_compute(_key("v1"), lambda: ParseSuccess("one"))

        result = cache.get_or_compute(_key("v2"), lambda: ParseSuccess("two"))

        assert result.get_or_none() == "two"
        assert cache.get(_key("v1")) is None
        assert cache.size() == 1
        assert cache.stats().evictions == 1

    def test_same_content_different_kind_kept_apart(self) -> None:
        cache = InspectionCache()
        cache.get_or_compute(_key("x", file_type=FileType.XML), lambda: ParseSuccess("xml"))
        cache.get_or_compute(_key("x", file_type=FileType.SCXML), lambda: ParseSuccess("scxml"))

        assert cache.size() == 2

    def test_failed_compute_is_not_cached(self) -> None:
        cache = InspectionCache()

        def boom() -> ParseSuccess:
            raise RuntimeError("parser crashed")

        with pytest.raises(RuntimeError):
            cache.get_or_compute(_key("x"), boom)

        assert cache.size() == 0
        assert cache.get_or_compute(_key("x"), lambda: ParseSuccess("ok")).get_or_none() == "ok"


class TestInvalidation:
    def test_invalidate_drops_path_entries(self) -> None:
        cache = InspectionCache()
        cache.get_or_compute(_key("a", "/p/one.xml"), lambda: ParseSuccess(1))
        cache.get_or_compute(_key("a", "/p/two.xml"), lambda: ParseSuccess(2))

        removed = cache.invalidate(_key("a", "/p/one.xml").path)

        assert removed == 1
        assert cache.get(_key("a", "/p/two.xml")) is not None

    def test_clear_resets_stats(self) -> None:
        cache = InspectionCache()
        cache.get_or_compute(_key("a"), lambda: ParseSuccess(1))

        cache.clear()

        assert cache.stats().misses == 0
        assert cache.size() == 0
