"""
Protocol Command and Reply Definitions

This module defines the data structures exchanged between the codec, the
router and the store: a decoded Command and a typed Reply.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Iterable, List, Optional, Union


def decode_text(data: bytes) -> str:
    """
    Interpret an argument as text (keys, field names, patterns).

    Undecodable bytes survive as surrogates so that ``encode_text`` gives
    back the exact original bytes.
    """
    return data.decode("utf-8", "surrogateescape")


def encode_text(text: str) -> bytes:
    """Inverse of decode_text."""
    return text.encode("utf-8", "surrogateescape")


class CommandType(Enum):
    """Enumeration of supported commands."""
    HELLO = auto()
    PING = auto()
    ECHO = auto()
    QUIT = auto()
    SET = auto()
    SETEX = auto()
    GET = auto()
    DEL = auto()
    EXISTS = auto()
    EXPIRE = auto()
    PERSIST = auto()
    TTL = auto()
    TYPE = auto()
    KEYS = auto()
    DBSIZE = auto()
    FLUSHDB = auto()
    FLUSHALL = auto()
    HSET = auto()
    HGET = auto()
    HMSET = auto()
    HMGET = auto()
    HDEL = auto()
    HEXISTS = auto()
    HKEYS = auto()
    HVALS = auto()
    HGETALL = auto()
    LPUSH = auto()
    RPUSH = auto()
    LLEN = auto()
    LRANGE = auto()

    @classmethod
    def lookup(cls, name: str) -> Optional["CommandType"]:
        """Case-insensitive lookup, None for unknown names."""
        return cls.__members__.get(name.upper())


@dataclass
class Command:
    """
    Represents a decoded request.

    Attributes:
        name: The command name exactly as the client sent it
        args: Positional arguments (excluding the name), as raw bytes
    """
    name: str
    args: List[bytes] = field(default_factory=list)

    @property
    def type(self) -> Optional[CommandType]:
        return CommandType.lookup(self.name)

    @classmethod
    def from_parts(cls, parts: List[bytes]) -> "Command":
        """Build a command from ``[name, arg1, arg2, ...]``."""
        return cls(name=decode_text(parts[0]), args=list(parts[1:]))


class ReplyType(Enum):
    """Enumeration of reply kinds."""
    STATUS = auto()
    ERROR = auto()
    INTEGER = auto()
    BULK = auto()
    NULL = auto()
    ARRAY = auto()


@dataclass
class Reply:
    """
    Represents a protocol reply.

    Attributes:
        type: Kind of reply
        value: str for STATUS/ERROR, int for INTEGER, bytes for BULK,
               list of Reply for ARRAY, None for NULL
    """
    type: ReplyType
    value: Any = None

    @property
    def is_error(self) -> bool:
        return self.type is ReplyType.ERROR

    @classmethod
    def status(cls, text: str) -> "Reply":
        """Create a status (simple string) reply."""
        return cls(ReplyType.STATUS, text)

    @classmethod
    def ok(cls) -> "Reply":
        return cls.status("OK")

    @classmethod
    def error(cls, message: str) -> "Reply":
        """Create an error reply. ``message`` includes the error prefix."""
        return cls(ReplyType.ERROR, message)

    @classmethod
    def integer(cls, number: int) -> "Reply":
        return cls(ReplyType.INTEGER, int(number))

    @classmethod
    def bulk(cls, data: Union[bytes, str]) -> "Reply":
        """Create a bulk reply; text is encoded the same way keys are."""
        if isinstance(data, str):
            data = encode_text(data)
        return cls(ReplyType.BULK, bytes(data))

    @classmethod
    def null(cls) -> "Reply":
        return cls(ReplyType.NULL)

    @classmethod
    def optional_bulk(cls, data: Union[bytes, str, None]) -> "Reply":
        """Bulk reply, or null reply when ``data`` is None."""
        return cls.null() if data is None else cls.bulk(data)

    @classmethod
    def array(cls, items: Iterable["Reply"]) -> "Reply":
        return cls(ReplyType.ARRAY, list(items))

    @classmethod
    def bulk_array(cls, values: Iterable[Union[bytes, str, None]]) -> "Reply":
        """Array of bulk replies, with None entries becoming null replies."""
        return cls.array(cls.optional_bulk(value) for value in values)
