"""Protocol module for Embedded-Redis."""

from .commands import Command, CommandType, Reply, ReplyType
from .parser import ProtocolParser
from .router import CommandRouter

__all__ = [
    "Command",
    "CommandType",
    "CommandRouter",
    "Reply",
    "ReplyType",
    "ProtocolParser",
]
