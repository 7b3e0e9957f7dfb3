"""
Append-only memoization tables shared by every resolution call.

Entries are keyed by ``CacheKey`` and, once inserted, are never evicted or
replaced. Reads go to an immutable snapshot and never block. A miss computes
the value outside any lock and then swaps in a new snapshot only if the key
is still absent, so two threads racing on the same key may both compute but
exactly one value is kept and returned to both.
"""

import logging
import threading
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Callable, Dict, Generic, Mapping, Optional, Tuple, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

_MISSING = object()  # Distinguishes "cached None" from "not cached"


@dataclass(frozen=True)
class CacheKey:
    """Immutable cache key that can include multiple components."""
    components: Tuple[Any, ...]

    @classmethod
    def from_args(cls, *args) -> 'CacheKey':
        """Create cache key from variable arguments."""
        return cls(components=args)


class AppendOnlyCache(Generic[T]):
    """
    Process-wide memo table with insert-if-absent semantics.

    Example:
        cache = AppendOnlyCache('activators')

        activator = cache.get_or_compute(
            key=CacheKey.from_args(Employee, ('first_name',)),
            compute_fn=lambda: build_activator(Employee, {'first_name'})
        )
    """

    def __init__(self, name: str = 'cache'):
        """
        Initialize an empty cache.

        Args:
            name: Label used in log messages
        """
        self.name = name
        self._snapshot: Mapping[CacheKey, T] = MappingProxyType({})
        # Guards only the snapshot swap, never the compute function
        self._swap_lock = threading.Lock()

    def get(self, key: CacheKey, default: Optional[T] = None) -> Optional[T]:
        """Return the cached value for key, or default when absent."""
        return self._snapshot.get(key, default)

    def get_or_compute(self, key: CacheKey, compute_fn: Callable[[], T]) -> T:
        """
        Get cached value or compute and insert it.

        Args:
            key: Cache key
            compute_fn: Pure function of the key, called on a miss

        Returns:
            The value stored under key (the winner if several threads raced)
        """
        cached = self._snapshot.get(key, _MISSING)
        if cached is not _MISSING:
            return cached

        logger.debug(f"{self.name}: miss for {key.components!r}")
        value = compute_fn()
        return self.insert_if_absent(key, value)

    def insert_if_absent(self, key: CacheKey, value: T) -> T:
        """Insert value unless key is already present; return the stored value."""
        with self._swap_lock:
            current = self._snapshot
            existing = current.get(key, _MISSING)
            if existing is not _MISSING:
                logger.debug(f"{self.name}: lost insert race for {key.components!r}")
                return existing
            updated: Dict[CacheKey, T] = dict(current)
            updated[key] = value
            self._snapshot = MappingProxyType(updated)
        return value

    def snapshot(self) -> Mapping[CacheKey, T]:
        """Return the current immutable view of all entries."""
        return self._snapshot

    def clear(self) -> None:
        """Drop every entry. Intended for test isolation only."""
        with self._swap_lock:
            self._snapshot = MappingProxyType({})

    def __contains__(self, key: object) -> bool:
        return key in self._snapshot

    def __len__(self) -> int:
        return len(self._snapshot)
