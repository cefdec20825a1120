"""Durable keyed cache package."""

from .proxy import KeyedCache
from .store import CacheStorageError, CacheStore, JsonFileStore, key_hash

__all__ = ["CacheStorageError", "CacheStore", "JsonFileStore", "KeyedCache", "key_hash"]
