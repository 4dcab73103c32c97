"""Cache module for TinyCache."""

from .store import CacheEntry, CacheStore, StoreResult
from .sweeper import ExpirySweeper

__all__ = ["CacheEntry", "CacheStore", "ExpirySweeper", "StoreResult"]
