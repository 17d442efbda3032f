"""
Embedded-Redis: In-Process Redis-Compatible Store

A small in-memory store with string, hash and list values and per-key
expiration, served over the Redis protocol with asyncio. Meant to be
started from a test suite as a stand-in for a real Redis server.
"""

from .cache.store import RedisStore, ValueType
from .embedded import EmbeddedRedis
from .network.tcp_server import RedisServer
from .protocol.commands import Command, Reply
from .protocol.router import CommandRouter

__version__ = "1.0.0"

__all__ = [
    "Command",
    "CommandRouter",
    "EmbeddedRedis",
    "RedisServer",
    "RedisStore",
    "Reply",
    "ValueType",
]
