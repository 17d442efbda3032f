"""
Glob Pattern Matching for KEYS

Only ``*`` is special: it matches any run of characters, including an empty
one. Everything else matches literally, and a pattern must cover the whole
key.
"""

import re
from functools import lru_cache
from typing import Callable


@lru_cache(maxsize=256)
def compile_pattern(pattern: str) -> Callable[[str], bool]:
    """
    Translate a glob pattern into a predicate over key strings.

    Args:
        pattern: Glob pattern, e.g. ``user:*``

    Returns:
        A callable returning True when the key matches the whole pattern.

    Examples:
        >>> compile_pattern("a*")("abc")
        True
        >>> compile_pattern("a*")("bac")
        False
        >>> compile_pattern("a.c")("abc")
        False
    """
    if pattern == "*":
        return lambda key: True
    if "*" not in pattern:
        return lambda key: key == pattern

    regex = ".*".join(re.escape(part) for part in pattern.split("*"))
    compiled = re.compile(regex, re.DOTALL)
    return lambda key: compiled.fullmatch(key) is not None


def match(pattern: str, key: str) -> bool:
    """Check whether ``key`` matches the glob ``pattern``."""
    return compile_pattern(pattern)(key)
