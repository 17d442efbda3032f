"""Cache module for Embedded-Redis."""

from .pattern import compile_pattern, match
from .store import Entry, RedisStore, ValueType

__all__ = ["Entry", "RedisStore", "ValueType", "compile_pattern", "match"]
