"""Read-through cache over a CacheStore."""

from __future__ import annotations

from collections.abc import Callable
from typing import TypeVar

from lang_drift.cache.store import CacheStorageError, CacheStore
from lang_drift.cancel import CancelToken, check_cancelled

T = TypeVar("T")


def _identity(value: object) -> object:
    return value


class KeyedCache:
    """Memoizes (category, key) lookups in durable storage."""

    def __init__(self, store: CacheStore) -> None:
        self._store = store

    def get(
        self,
        category: str,
        key: str,
        compute: Callable[[], T],
        *,
        is_invalid: Callable[[T], bool] | None = None,
        encode: Callable[[T], object] = _identity,
        decode: Callable[[object], T] = _identity,
        cancel: CancelToken | None = None,
    ) -> T:
        """Return the stored value, or compute, persist and return a fresh one.

        A stored value for which ``is_invalid`` returns True is treated as a miss.
        Errors raised by ``compute`` propagate and nothing is written.
        """
        operation = f"cache get {category}"
        check_cancelled(cancel, operation)
        found, raw = self._store.read(category, key)
        if found:
            value = self._decode(category, key, raw, decode)
            if is_invalid is None or not is_invalid(value):
                return value

        result = compute()
        check_cancelled(cancel, operation)
        self._store.write(category, key, encode(result))
        return result

    def lookup(
        self,
        category: str,
        key: str,
        decode: Callable[[object], T] = _identity,
    ) -> tuple[bool, T | None]:
        """Return (found, value) without computing anything."""
        found, raw = self._store.read(category, key)
        if not found:
            return False, None
        return True, self._decode(category, key, raw, decode)

    def put(
        self,
        category: str,
        key: str,
        value: T,
        encode: Callable[[T], object] = _identity,
        *,
        cancel: CancelToken | None = None,
    ) -> None:
        """Unconditionally overwrite the entry."""
        check_cancelled(cancel, f"cache put {category}")
        self._store.write(category, key, encode(value))

    def invalidate_key(
        self, category: str, key: str, *, cancel: CancelToken | None = None
    ) -> None:
        """Remove the entry if present."""
        check_cancelled(cancel, f"cache invalidate {category}")
        self._store.delete(category, key)

    def key_exists(
        self, category: str, key: str, *, cancel: CancelToken | None = None
    ) -> bool:
        """Return True when the entry is stored."""
        check_cancelled(cancel, f"cache exists {category}")
        return self._store.exists(category, key)

    @staticmethod
    def _decode(
        category: str, key: str, raw: object, decode: Callable[[object], T]
    ) -> T:
        try:
            return decode(raw)
        except (TypeError, ValueError, KeyError) as error:
            raise CacheStorageError("decode", category, key, str(error)) from error
