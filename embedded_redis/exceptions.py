"""
Embedded-Redis Exceptions

Every error a command can produce is a RedisError subclass. The string form
of an exception is exactly the text sent back in the error reply, e.g.
``WRONGTYPE Operation against a key holding the wrong kind of value``.
"""


class RedisError(Exception):
    """
    Base exception for all errors reported to clients.

    Attributes:
        prefix: Error code placed in front of the message (e.g. 'ERR')
        message: Human readable message (without the prefix)
    """

    prefix = "ERR"

    def __init__(self, message: str = ""):
        self.message = message
        if message:
            super().__init__(f"{self.prefix} {message}")
        else:
            super().__init__(self.prefix)


class UnknownCommandError(RedisError):
    """Raised when the command name is not in the dispatch table."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"unknown command '{name}'")


class WrongArityError(RedisError):
    """Raised when a command is called with too few arguments."""

    def __init__(self, name: str):
        self.name = name
        super().__init__(f"wrong number of arguments for '{name.lower()}' command")


class MalformedArgumentError(RedisError):
    """Raised when an argument cannot be interpreted (e.g. not an integer)."""

    def __init__(self, message: str = "value is not an integer or out of range"):
        super().__init__(message)


class WrongTypeError(RedisError):
    """Raised when a command is executed against a key of another type."""

    prefix = "WRONGTYPE"

    def __init__(self):
        super().__init__("Operation against a key holding the wrong kind of value")


class ProtocolError(RedisError):
    """Raised by the codec when the incoming byte stream is malformed."""

    def __init__(self, message: str):
        super().__init__(f"Protocol error: {message}")
