"""Network module for Embedded-Redis."""

from .tcp_server import RedisServer

__all__ = ["RedisServer"]
