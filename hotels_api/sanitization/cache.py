"""Thread-safe compute-once cache.

``ResultCache.get_or_compute(key, compute)`` runs *compute* at most once per
distinct key, even when many threads ask for the same missing key at the same
time; every caller gets the same value.  Entries never expire.  With
``max_entries > 0`` the least recently used entry is evicted once the bound
is reached.
"""

from __future__ import annotations

import threading
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


class _KeySlot:
    """Per-key compute lock plus the number of callers waiting on it."""

    __slots__ = ("lock", "holders")

    def __init__(self) -> None:
        self.lock = threading.Lock()
        self.holders = 0


class ResultCache(Generic[K, V]):
    """Compute-once mapping shared across requests.

    Args:
        max_entries: Upper bound on stored entries.  ``0`` means unbounded.
    """

    def __init__(self, max_entries: int = 0) -> None:
        if max_entries < 0:
            raise ValueError("max_entries must be >= 0")
        self.max_entries = max_entries
        self._entries: OrderedDict[K, V] = OrderedDict()
        self._lock = threading.Lock()
        self._key_locks: dict[K, _KeySlot] = {}

        # Metrics
        self.hits = 0
        self.misses = 0

    def get_or_compute(self, key: K, compute: Callable[[], V]) -> V:
        """Return the cached value for *key*, computing it once on a miss.

        If *compute* raises, nothing is stored and the exception propagates;
        waiting callers then retry one at a time.
        """
        with self._lock:
            if key in self._entries:
                return self._hit(key)
            slot = self._key_locks.get(key)
            if slot is None:
                slot = self._key_locks[key] = _KeySlot()
            slot.holders += 1

        try:
            with slot.lock:
                # Another thread may have filled the entry while we waited
                with self._lock:
                    if key in self._entries:
                        return self._hit(key)
                value = compute()
                with self._lock:
                    self.misses += 1
                    self._entries[key] = value
                    self._evict()
                return value
        finally:
            # The slot outlives a failed compute while others still wait on it
            with self._lock:
                slot.holders -= 1
                if not slot.holders:
                    del self._key_locks[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    # ── Internals (call with self._lock held) ───────────────────────

    def _hit(self, key: K) -> V:
        self.hits += 1
        if self.max_entries:
            self._entries.move_to_end(key)
        return self._entries[key]

    def _evict(self) -> None:
        if not self.max_entries:
            return
        while len(self._entries) > self.max_entries:
            self._entries.popitem(last=False)
