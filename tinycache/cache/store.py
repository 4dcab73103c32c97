"""
Cache Store Module

This module implements the key-value storage behind the protocol.

Every entry carries a TTL in whole seconds. Reading an entry resets its
TTL to the value it was written with, and entries only ever expire when
sweep() counts their TTL down to zero. A read that happens after the
nominal lifetime but before the next sweep still succeeds.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple


class StoreResult(Enum):
    """Outcome of a storage operation."""
    STORED = "STORED"
    NOT_STORED = "NOT STORED"


@dataclass
class CacheEntry:
    """
    A stored value and its TTL bookkeeping.

    Attributes:
        value: The raw stored bytes
        ttl: Seconds remaining before the entry is evicted by a sweep
        max_ttl: TTL the entry was last written with
    """
    value: bytes
    ttl: int
    max_ttl: int

    @classmethod
    def create(cls, value: bytes, ttl: int) -> "CacheEntry":
        return cls(value=value, ttl=ttl, max_ttl=ttl)

    def refresh(self) -> None:
        """Extend the entry back to its full lifetime."""
        self.ttl = self.max_ttl

    @property
    def expired(self) -> bool:
        return self.ttl <= 0


class CacheStore:
    """
    In-memory key-value store with sweep-driven TTL expiry.

    One instance is created at startup and shared by every connection and
    by the expiry sweeper. All access happens on the event loop thread, so
    no locking is done here.

    Operations:
    - set: Unconditional write
    - add: Write only if the key is absent
    - replace: Write only if the key is present
    - get / get_multi: Read with TTL refresh
    - sweep: Count TTLs down and evict expired entries

    Internal Storage:
        Plain dict of key -> CacheEntry. No ordering is kept.
    """

    def __init__(self):
        self._store: Dict[str, CacheEntry] = {}

    def set(self, key: str, value: bytes, ttl: int) -> StoreResult:
        """
        Store a value, overwriting any existing entry.

        Args:
            key: The key to store
            value: The raw value bytes
            ttl: Lifetime in seconds; also becomes the entry's max TTL

        Returns:
            StoreResult.STORED
        """
        self._store[key] = CacheEntry.create(value, ttl)
        return StoreResult.STORED

    def add(self, key: str, value: bytes, ttl: int) -> StoreResult:
        """
        Store a value only if the key is not already present.

        Returns:
            STORED on insert, NOT_STORED if the key exists (left untouched)
        """
        if key in self._store:
            return StoreResult.NOT_STORED
        return self.set(key, value, ttl)

    def replace(self, key: str, value: bytes, ttl: int) -> StoreResult:
        """
        Overwrite a value only if the key is already present.

        Returns:
            STORED on overwrite, NOT_STORED if the key is absent
        """
        if key not in self._store:
            return StoreResult.NOT_STORED
        return self.set(key, value, ttl)

    def get(self, key: str) -> Optional[bytes]:
        """
        Retrieve a value and reset its TTL to the full lifetime.

        Args:
            key: The key to look up

        Returns:
            The value if present, None otherwise
        """
        entry = self._store.get(key)
        if entry is None:
            return None

        entry.refresh()
        return entry.value

    def get_multi(self, keys: Iterable[str]) -> List[Tuple[str, bytes]]:
        """
        Retrieve several values at once.

        Each present key is refreshed exactly like get(). Absent keys are
        skipped.

        Returns:
            (key, value) pairs for the keys that were found, in request order
        """
        found = []
        for key in keys:
            value = self.get(key)
            if value is not None:
                found.append((key, value))
        return found

    def sweep(self, elapsed: int) -> int:
        """
        Age every entry by `elapsed` seconds and evict the expired ones.

        Args:
            elapsed: Seconds since the previous sweep

        Returns:
            Number of entries removed
        """
        expired = []
        for key, entry in self._store.items():
            entry.ttl -= elapsed
            if entry.expired:
                expired.append(key)

        for key in expired:
            del self._store[key]
        return len(expired)

    def peek(self, key: str) -> Optional[CacheEntry]:
        """Return the entry for a key without refreshing it."""
        return self._store.get(key)

    def __contains__(self, key: str) -> bool:
        return key in self._store

    def size(self) -> int:
        """Get the current number of entries."""
        return len(self._store)

    def clear(self) -> None:
        """Remove all entries from the store."""
        self._store.clear()

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Entries currently held
            - total_bytes: Sum of stored value sizes
        """
        return {
            "total_keys": len(self._store),
            "total_bytes": sum(len(entry.value) for entry in self._store.values()),
        }
