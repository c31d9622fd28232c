"""Memoization of knowledge base and lexicon lookups."""

import threading
from typing import Callable, Hashable, Iterable, TypeVar

T = TypeVar("T")


class CandidateCache:
    """
    Thread-safe cache of candidate lists keyed by (lookup kind, parameters).

    Each key is computed at most once at a time: concurrent callers asking for
    the same key wait on a per-key lock while the first one computes it.
    Entries are stored as tuples and published only once fully built, so a
    reader never sees a partially written entry. Failed computations are not
    cached. A computation that overlaps a :meth:`clear` is returned to its
    caller but not stored.
    """

    def __init__(self):
        self._entries: dict[tuple, tuple] = {}
        self._key_locks: dict[tuple, threading.Lock] = {}
        self._guard = threading.Lock()
        # Bumped by clear(); entries computed under an older generation are dropped
        self._generation = 0
        self.hits = 0
        self.misses = 0

    def get_or_compute(
        self,
        kind: str,
        key: Hashable,
        compute: Callable[[], Iterable[T]],
    ) -> list[T]:
        """
        Return the cached candidates for ``(kind, key)``, computing them if needed.

        Args:
            kind: Lookup kind ("resource", "property", "type", ...)
            key: Normalized lookup parameters
            compute: Function producing the candidates on a miss

        Returns:
            A fresh list of the cached candidates
        """
        cache_key = (kind, key)
        entry = self._entries.get(cache_key)
        if entry is not None:
            self._count_hit()
            return list(entry)

        with self._guard:
            lock = self._key_locks.setdefault(cache_key, threading.Lock())

        with lock:
            # Another thread may have filled the entry while we waited
            entry = self._entries.get(cache_key)
            if entry is not None:
                self._count_hit()
                return list(entry)
            with self._guard:
                generation = self._generation
            try:
                entry = tuple(compute())
            except Exception:
                with self._guard:
                    self._drop_key_lock(cache_key, lock)
                raise
            with self._guard:
                if self._generation == generation:
                    self._entries[cache_key] = entry
                self._drop_key_lock(cache_key, lock)
                self.misses += 1
        return list(entry)

    def _drop_key_lock(self, cache_key: tuple, lock: threading.Lock) -> None:
        # Callers hold the guard. Threads already waiting keep their reference
        if self._key_locks.get(cache_key) is lock:
            del self._key_locks[cache_key]

    def _count_hit(self) -> None:
        with self._guard:
            self.hits += 1

    def clear(self) -> None:
        """Drop all entries (e.g. after the knowledge base changed)."""
        with self._guard:
            self._generation += 1
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, cache_key: tuple) -> bool:
        return cache_key in self._entries

    def __len__(self) -> int:
        return len(self._entries)
