"""
Typed Key-Value Store

This module implements the keyed state behind every command: string,
hash and list values sharing one key space, with optional per-key
expiration and glob-based key enumeration.
"""

import math
import threading
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, Iterable, List, Mapping, Optional

from ..exceptions import WrongTypeError
from .pattern import compile_pattern


class ValueType(Enum):
    """Variants a key can hold. The value is the name reported by TYPE."""
    STRING = "string"
    HASH = "hash"
    LIST = "list"


@dataclass
class Entry:
    """
    A stored value together with its expiration metadata.

    Attributes:
        type: Which variant ``value`` holds
        value: bytes for STRING, dict for HASH, list for LIST
        expires_at: Deadline on the monotonic clock, None for no expiration
    """
    type: ValueType
    value: Any
    expires_at: Optional[float] = None

    def is_expired(self, now: float) -> bool:
        return self.expires_at is not None and self.expires_at <= now


class RedisStore:
    """
    In-memory store for string, hash and list values.

    Every public method holds the store lock for its whole duration, so a
    single call is atomic with respect to the keys it touches and ``flush``
    is atomic for the whole key space. The lock is re-entrant and the store
    can be shared between threads and asyncio connections alike.

    Expiration is lazy: an expired key is removed the first time an
    operation looks at it. ``cleanup_expired`` performs an active sweep.

    Operations that expect one variant but find another raise
    WrongTypeError before changing anything. A missing key is never an
    error; it reads as None, an empty collection, or zero.

    Internal Storage:
        Plain dict, key -> Entry
    """

    def __init__(self):
        self._data: Dict[str, Entry] = {}
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Internal helpers (caller must hold the lock)
    # ------------------------------------------------------------------

    def _lookup(self, key: str) -> Optional[Entry]:
        """Return the live entry for ``key``, dropping it if expired."""
        entry = self._data.get(key)
        if entry is None:
            return None
        if entry.is_expired(time.monotonic()):
            del self._data[key]
            return None
        return entry

    def _lookup_typed(self, key: str, value_type: ValueType) -> Optional[Entry]:
        entry = self._lookup(key)
        if entry is not None and entry.type is not value_type:
            raise WrongTypeError()
        return entry

    def _get_or_create(self, key: str, value_type: ValueType) -> Entry:
        entry = self._lookup_typed(key, value_type)
        if entry is None:
            empty = {} if value_type is ValueType.HASH else []
            entry = Entry(type=value_type, value=empty)
            self._data[key] = entry
        return entry

    def _drop_if_empty(self, key: str, entry: Entry) -> None:
        # An emptied hash or list does not survive as a key
        if not entry.value:
            del self._data[key]

    # ------------------------------------------------------------------
    # Keyspace
    # ------------------------------------------------------------------

    def delete(self, keys: Iterable[str]) -> int:
        """
        Remove each of ``keys`` if present.

        Returns:
            Number of keys that existed (and were not expired) before the call
        """
        count = 0
        with self._lock:
            for key in keys:
                if self._lookup(key) is not None:
                    del self._data[key]
                    count += 1
        return count

    def exists(self, keys: Iterable[str]) -> int:
        """Count how many of ``keys`` are live. Repeated keys count each time."""
        with self._lock:
            return sum(1 for key in keys if self._lookup(key) is not None)

    def keys(self, pattern: str) -> List[str]:
        """
        List every live key matching a glob pattern.

        Args:
            pattern: Glob where ``*`` matches any run of characters

        Returns:
            Matching keys, in no particular order
        """
        matches = compile_pattern(pattern)
        now = time.monotonic()
        with self._lock:
            return [
                key for key, entry in self._data.items()
                if not entry.is_expired(now) and matches(key)
            ]

    def type_of(self, key: str) -> Optional[ValueType]:
        """Return the variant stored at ``key``, or None if absent."""
        with self._lock:
            entry = self._lookup(key)
            return entry.type if entry is not None else None

    def flush(self) -> None:
        """Remove all keys, values and expirations."""
        with self._lock:
            self._data.clear()

    # ------------------------------------------------------------------
    # Expiration
    # ------------------------------------------------------------------

    def expire(self, key: str, seconds: int) -> bool:
        """
        Set a time-to-live on an existing key.

        A non-positive ``seconds`` deletes the key right away.

        Returns:
            True if the key existed, False otherwise
        """
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                return False
            if seconds <= 0:
                del self._data[key]
            else:
                entry.expires_at = time.monotonic() + seconds
            return True

    def persist(self, key: str) -> bool:
        """Remove the expiration of ``key``. True only if one was removed."""
        with self._lock:
            entry = self._lookup(key)
            if entry is None or entry.expires_at is None:
                return False
            entry.expires_at = None
            return True

    def ttl(self, key: str) -> int:
        """
        Remaining time-to-live in whole seconds.

        Returns:
            -2 if the key does not exist, -1 if it has no expiration,
            otherwise the remaining seconds rounded up
        """
        with self._lock:
            entry = self._lookup(key)
            if entry is None:
                return -2
            if entry.expires_at is None:
                return -1
            return max(0, math.ceil(entry.expires_at - time.monotonic()))

    def cleanup_expired(self) -> int:
        """
        Remove all expired keys from the store (active expiration).

        Returns:
            Number of keys removed
        """
        now = time.monotonic()
        with self._lock:
            expired = [key for key, entry in self._data.items() if entry.is_expired(now)]
            for key in expired:
                del self._data[key]
        return len(expired)

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def set(self, key: str, value: bytes) -> None:
        """Store a string value, replacing any previous value and expiration."""
        with self._lock:
            self._data[key] = Entry(type=ValueType.STRING, value=value)

    def set_with_expire(self, key: str, value: bytes, ttl: int) -> None:
        """
        Store a string value that expires after ``ttl`` seconds.

        A ttl of 0 stores a value that is already expired.

        Raises:
            ValueError: If ttl is negative
        """
        if ttl < 0:
            raise ValueError("ttl must be non-negative")
        with self._lock:
            self._data[key] = Entry(
                type=ValueType.STRING,
                value=value,
                expires_at=time.monotonic() + ttl,
            )

    def get(self, key: str) -> Optional[bytes]:
        """Return the string stored at ``key``, or None if absent."""
        with self._lock:
            entry = self._lookup_typed(key, ValueType.STRING)
            return entry.value if entry is not None else None

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    def hset(self, key: str, field: str, value: bytes) -> None:
        with self._lock:
            self._get_or_create(key, ValueType.HASH).value[field] = value

    def hmset(self, key: str, mapping: Mapping[str, bytes]) -> None:
        """Assign every field of ``mapping`` in one atomic update."""
        with self._lock:
            self._get_or_create(key, ValueType.HASH).value.update(mapping)

    def hget(self, key: str, field: str) -> Optional[bytes]:
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            return entry.value.get(field) if entry is not None else None

    def hmget(self, key: str, fields: Iterable[str]) -> List[Optional[bytes]]:
        """Return one value (or None) per requested field, in request order."""
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            hash_value = entry.value if entry is not None else {}
            return [hash_value.get(field) for field in fields]

    def hdel(self, key: str, fields: Iterable[str]) -> int:
        """Remove fields from a hash. Returns how many were present."""
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            if entry is None:
                return 0
            removed = 0
            for field in fields:
                if entry.value.pop(field, None) is not None:
                    removed += 1
            self._drop_if_empty(key, entry)
            return removed

    def hexists(self, key: str, field: str) -> bool:
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            return entry is not None and field in entry.value

    def hkeys(self, key: str) -> List[str]:
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            return list(entry.value) if entry is not None else []

    def hvals(self, key: str) -> List[bytes]:
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            return list(entry.value.values()) if entry is not None else []

    def hgetall(self, key: str) -> Dict[str, bytes]:
        """Return a copy of the whole hash (empty if absent)."""
        with self._lock:
            entry = self._lookup_typed(key, ValueType.HASH)
            return dict(entry.value) if entry is not None else {}

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def lpush(self, key: str, values: List[bytes]) -> int:
        """
        Push values onto the head of a list, one after another.

        ``lpush(k, [a, b])`` leaves the list starting with ``b, a``.

        Returns:
            Length of the list after the push
        """
        with self._lock:
            entry = self._get_or_create(key, ValueType.LIST)
            entry.value[0:0] = reversed(values)
            self._drop_if_empty(key, entry)
            return len(entry.value)

    def rpush(self, key: str, values: List[bytes]) -> int:
        """Append values to the tail of a list. Returns the new length."""
        with self._lock:
            entry = self._get_or_create(key, ValueType.LIST)
            entry.value.extend(values)
            self._drop_if_empty(key, entry)
            return len(entry.value)

    def llen(self, key: str) -> int:
        with self._lock:
            entry = self._lookup_typed(key, ValueType.LIST)
            return len(entry.value) if entry is not None else 0

    def lrange(self, key: str, start: int, stop: int) -> List[bytes]:
        """
        Return the elements between ``start`` and ``stop``, both inclusive.

        Negative indices count from the end (-1 is the last element).
        Out-of-range indices are clamped; an empty list is returned when
        the range is empty after clamping or the key does not exist.
        """
        with self._lock:
            entry = self._lookup_typed(key, ValueType.LIST)
            if entry is None:
                return []
            items = entry.value
            length = len(items)

            if start < 0:
                start = max(start + length, 0)
            if stop < 0:
                stop += length
            if stop >= length:
                stop = length - 1
            if start > stop or start >= length:
                return []
            return items[start:stop + 1]

    # ------------------------------------------------------------------
    # Statistics
    # ------------------------------------------------------------------

    def dbsize(self) -> int:
        """Number of live (non-expired) keys."""
        now = time.monotonic()
        with self._lock:
            return sum(1 for entry in self._data.values() if not entry.is_expired(now))

    def get_stats(self) -> Dict[str, Any]:
        """
        Get statistics about the store.

        Returns:
            Dictionary containing:
            - total_keys: Total entries in store
            - expired_keys: Expired entries not yet cleaned up
            - active_keys: Live entries
            - types: Live entry count per value type name
        """
        now = time.monotonic()
        with self._lock:
            total = len(self._data)
            types = {value_type.value: 0 for value_type in ValueType}
            expired = 0
            for entry in self._data.values():
                if entry.is_expired(now):
                    expired += 1
                else:
                    types[entry.type.value] += 1

        return {
            "total_keys": total,
            "expired_keys": expired,
            "active_keys": total - expired,
            "types": types,
        }
