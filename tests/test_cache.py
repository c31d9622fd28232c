"""
Tests for the candidate cache.
"""

import threading
import time
from concurrent.futures import ThreadPoolExecutor

import pytest

from pq2sparql.engine.cache import CandidateCache
from pq2sparql.errors import LookupFailure


class TestCandidateCache:

    def test_computes_once(self):
        cache = CandidateCache()
        calls = []

        def compute():
            calls.append(1)
            return [1, 2, 3]

        assert cache.get_or_compute("resource", "dan brown", compute) == [1, 2, 3]
        assert cache.get_or_compute("resource", "dan brown", compute) == [1, 2, 3]
        assert len(calls) == 1
        assert cache.hits == 1
        assert cache.misses == 1
        assert len(cache) == 1
        assert ("resource", "dan brown") in cache

    def test_kinds_are_separate(self):
        cache = CandidateCache()
        cache.get_or_compute("resource", "x", lambda: ["r"])
        assert cache.get_or_compute("property", "x", lambda: ["p"]) == ["p"]

    def test_returns_copies(self):
        cache = CandidateCache()
        first = cache.get_or_compute("k", 1, lambda: [1])
        first.append(2)
        assert cache.get_or_compute("k", 1, lambda: []) == [1]

    def test_failures_are_not_cached(self):
        cache = CandidateCache()

        def fail():
            raise LookupFailure("timeout")

        with pytest.raises(LookupFailure):
            cache.get_or_compute("resource", "x", fail)
        assert len(cache) == 0
        assert cache.get_or_compute("resource", "x", lambda: ["ok"]) == ["ok"]

    def test_clear(self):
        cache = CandidateCache()
        cache.get_or_compute("k", 1, lambda: [1])
        cache.clear()
        assert len(cache) == 0
        assert cache.hits == 0

    def test_concurrent_callers_share_one_computation(self):
        cache = CandidateCache()
        calls = []
        lock = threading.Lock()
        start = threading.Barrier(8)

        def compute():
            with lock:
                calls.append(1)
            time.sleep(0.05)
            return list(range(100))

        def worker(_):
            start.wait()
            return cache.get_or_compute("property", ("author", None), compute)

        with ThreadPoolExecutor(max_workers=8) as executor:
            results = list(executor.map(worker, range(8)))

        assert len(calls) == 1
        # Every reader sees the complete entry
        assert all(r == list(range(100)) for r in results)

    def test_distinct_keys_compute_concurrently(self):
        cache = CandidateCache()
        started = threading.Event()
        release = threading.Event()

        def slow():
            started.set()
            release.wait(timeout=5)
            return ["slow"]

        with ThreadPoolExecutor(max_workers=2) as executor:
            slow_future = executor.submit(cache.get_or_compute, "k", "slow", slow)
            assert started.wait(timeout=5)
            # A different key is not blocked by the slow one
            assert cache.get_or_compute("k", "fast", lambda: ["fast"]) == ["fast"]
            release.set()
            assert slow_future.result(timeout=5) == ["slow"]

    def test_key_locks_are_released(self):
        cache = CandidateCache()
        cache.get_or_compute("resource", "a", lambda: [1])
        cache.get_or_compute("resource", "b", lambda: [2])
        with pytest.raises(LookupFailure):
            cache.get_or_compute("resource", "c", self._fail)
        assert cache._key_locks == {}

    def test_entry_computed_across_clear_is_not_stored(self):
        cache = CandidateCache()

        def compute():
            cache.clear()
            return ["stale"]

        assert cache.get_or_compute("type", "book", compute) == ["stale"]
        assert ("type", "book") not in cache
        assert cache.get_or_compute("type", "book", lambda: ["fresh"]) == ["fresh"]

    @staticmethod
    def _fail():
        raise LookupFailure("timeout")
