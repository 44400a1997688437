"""In-memory cache with a fixed per-instance TTL."""

import time
from collections import OrderedDict
from collections.abc import Callable, Hashable
from typing import Generic, TypeVar

T = TypeVar("T")


class ExpiringCache(Generic[T]):
    """Key/value store whose entries vanish ``ttl`` seconds after being set.

    Expired entries are dropped lazily on access, so :meth:`cleanup` is only
    needed to reclaim memory. When ``max_entries`` is given the cache also
    evicts its least-recently-used entry once that capacity is exceeded.
    """

    def __init__(
        self,
        ttl: float,
        *,
        max_entries: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        if ttl < 0:
            raise ValueError(f"ttl must be non-negative, got {ttl}")
        if max_entries is not None and max_entries < 1:
            raise ValueError(f"max_entries must be at least 1, got {max_entries}")
        self._ttl = ttl
        self._max_entries = max_entries
        self._clock = clock
        self._store: OrderedDict[Hashable, tuple[T, float]] = OrderedDict()

    def get(self, key: Hashable) -> T | None:
        entry = self._store.get(key)
        if entry is None:
            return None
        value, expires_at = entry
        if self._clock() > expires_at:
            del self._store[key]
            return None
        self._store.move_to_end(key)
        return value

    def set(self, key: Hashable, value: T) -> None:
        self._store[key] = (value, self._clock() + self._ttl)
        self._store.move_to_end(key)
        if self._max_entries is not None:
            while len(self._store) > self._max_entries:
                self._store.popitem(last=False)

    def has(self, key: Hashable) -> bool:
        return self.get(key) is not None

    def delete(self, key: Hashable) -> bool:
        return self._store.pop(key, None) is not None

    def clear(self) -> None:
        self._store.clear()

    def cleanup(self) -> int:
        """Drop every expired entry and return how many were removed."""
        now = self._clock()
        expired = [key for key, (_, expires_at) in self._store.items() if now > expires_at]
        for key in expired:
            del self._store[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._store)
