"""
RESP Protocol Codec

This module turns the raw byte stream of a connection into Command objects
and Reply objects back into bytes, using the Redis serialization protocol
(RESP2).

Request Format:
    *<count>\\r\\n followed by <count> bulk strings ($<len>\\r\\n<data>\\r\\n)
    or an inline command: a plain text line, e.g. ``PING\\r\\n``

Reply Format:
    +OK\\r\\n                 status
    -ERR message\\r\\n        error
    :42\\r\\n                 integer
    $5\\r\\nhello\\r\\n        bulk string ($-1\\r\\n for null)
    *2\\r\\n...               array (*-1\\r\\n for null)
"""

import re
from typing import List, Optional, Tuple, Union

from ..config.settings import settings
from ..exceptions import ProtocolError
from .commands import Command, Reply, ReplyType, encode_text

CRLF = b"\r\n"

_NUMBER_RE = re.compile(rb"-?[0-9]+\Z")


class ProtocolParser:
    """
    Incremental RESP decoder and encoder.

    Bytes are fed in as they arrive from the socket; complete messages are
    pulled out one at a time. A partial message stays buffered until the
    rest of it has been fed.

    Usage:
        parser = ProtocolParser()
        parser.feed(b"*2\\r\\n$3\\r\\nGET\\r\\n$1\\r\\nk\\r\\n")
        command = parser.get_command()   # Command(name='GET', args=[b'k'])
        data = parser.format_reply(Reply.null())   # b'$-1\\r\\n'
    """

    def __init__(self):
        """Initialize the parser with limits from settings."""
        self.max_bulk_length = settings.MAX_BULK_LENGTH
        self.max_inline_length = settings.MAX_INLINE_LENGTH
        self.max_array_length = settings.MAX_ARRAY_LENGTH
        self._buffer = bytearray()

        # Request being assembled: bulks still expected and those already read
        self._pending: Optional[int] = None
        self._args: List[bytes] = []

    def feed(self, data: bytes) -> None:
        """Append received bytes to the internal buffer."""
        self._buffer.extend(data)

    def reset(self) -> None:
        """Discard any buffered data and any partially read request."""
        self._buffer.clear()
        self._pending = None
        self._args = []

    @property
    def buffered(self) -> int:
        """Number of bytes waiting to be parsed."""
        return len(self._buffer)

    # ------------------------------------------------------------------
    # Decoding
    # ------------------------------------------------------------------

    def get_command(self) -> Optional[Command]:
        """
        Pop the next complete request from the buffer.

        Each argument is removed from the buffer as soon as it is complete,
        so a large request arriving in many reads is scanned only once.

        Returns:
            The decoded Command, or None if more data is needed.

        Raises:
            ProtocolError: If the buffered data is not a valid request
        """
        while self._pending is None:
            if not self._buffer:
                return None

            if self._buffer[0:1] != b"*":
                command = self._get_inline_command()
                if command is False:
                    continue
                return command

            header = self._read_line(1)
            if header is None:
                return None
            line, end = header
            count = self._parse_number(line, "multibulk length")
            if count < -1 or count > self.max_array_length:
                raise ProtocolError("invalid multibulk length")
            del self._buffer[:end]

            # Null and empty arrays carry no command
            if count > 0:
                self._pending = count
                self._args = []

        while self._pending:
            arg = self._read_bulk_argument()
            if arg is None:
                return None
            self._args.append(arg)
            self._pending -= 1

        parts = self._args
        self._pending = None
        self._args = []
        return Command.from_parts(parts)

    def _read_bulk_argument(self) -> Optional[bytes]:
        # Request arguments are bulk strings only; nothing nests
        if not self._buffer:
            return None
        prefix = self._buffer[0:1]
        if prefix != b"$":
            raise ProtocolError(f"expected '$', got '{prefix.decode('latin-1')}'")

        header = self._read_line(1)
        if header is None:
            return None
        line, pos = header
        length = self._parse_number(line, "bulk length")
        if length < 0 or length > self.max_bulk_length:
            raise ProtocolError("invalid bulk length")

        end = pos + length
        if len(self._buffer) < end + 2:
            return None
        if self._buffer[end:end + 2] != CRLF:
            raise ProtocolError("bulk string not terminated by CRLF")
        value = bytes(self._buffer[pos:end])
        del self._buffer[:end + 2]
        return value

    def _get_inline_command(self) -> Union[Command, None, bool]:
        # Returns False for a blank line so the caller moves on
        newline = self._buffer.find(b"\n")
        if newline == -1:
            if len(self._buffer) > self.max_inline_length:
                raise ProtocolError("too big inline request")
            return None

        line = bytes(self._buffer[:newline]).rstrip(b"\r")
        del self._buffer[:newline + 1]

        parts = line.split()
        if not parts:
            return False
        return Command.from_parts(parts)

    def get_reply(self) -> Optional[Reply]:
        """
        Pop the next complete RESP value of any type from the buffer.

        Used on the client side to read replies.

        Returns:
            The decoded Reply, or None if more data is needed.
        """
        result = self._parse_value(0)
        if result is None:
            return None
        reply, end = result
        del self._buffer[:end]
        return reply

    def _read_line(self, pos: int) -> Optional[Tuple[bytes, int]]:
        end = self._buffer.find(CRLF, pos)
        if end == -1:
            if len(self._buffer) - pos > self.max_inline_length:
                raise ProtocolError("too big header line")
            return None
        return bytes(self._buffer[pos:end]), end + 2

    @staticmethod
    def _parse_number(line: bytes, what: str) -> int:
        if not _NUMBER_RE.match(line):
            raise ProtocolError(f"invalid {what}")
        return int(line)

    def _parse_value(self, pos: int) -> Optional[Tuple[Reply, int]]:
        """
        Decode one value starting at ``pos``.

        Returns:
            (reply, position after the value), or None if incomplete
        """
        if pos >= len(self._buffer):
            return None

        prefix = self._buffer[pos:pos + 1]
        header = self._read_line(pos + 1)
        if header is None:
            return None
        line, pos = header

        if prefix == b"+":
            return Reply.status(line.decode("utf-8", "replace")), pos

        if prefix == b"-":
            return Reply.error(line.decode("utf-8", "replace")), pos

        if prefix == b":":
            return Reply.integer(self._parse_number(line, "integer")), pos

        if prefix == b"$":
            length = self._parse_number(line, "bulk length")
            if length == -1:
                return Reply.null(), pos
            if length < 0 or length > self.max_bulk_length:
                raise ProtocolError("invalid bulk length")
            end = pos + length
            if len(self._buffer) < end + 2:
                return None
            if self._buffer[end:end + 2] != CRLF:
                raise ProtocolError("bulk string not terminated by CRLF")
            return Reply.bulk(bytes(self._buffer[pos:end])), end + 2

        if prefix == b"*":
            count = self._parse_number(line, "multibulk length")
            if count == -1:
                return Reply.null(), pos
            if count < 0 or count > self.max_array_length:
                raise ProtocolError("invalid multibulk length")
            items = []
            for _ in range(count):
                result = self._parse_value(pos)
                if result is None:
                    return None
                item, pos = result
                items.append(item)
            return Reply.array(items), pos

        raise ProtocolError(f"unexpected type byte {bytes(prefix)!r}")

    # ------------------------------------------------------------------
    # Encoding
    # ------------------------------------------------------------------

    def format_reply(self, reply: Reply) -> bytes:
        """
        Format a Reply object into RESP bytes.

        Examples:
            >>> parser = ProtocolParser()
            >>> parser.format_reply(Reply.ok())
            b'+OK\\r\\n'
            >>> parser.format_reply(Reply.bulk(b"hello"))
            b'$5\\r\\nhello\\r\\n'
            >>> parser.format_reply(Reply.error("ERR unknown command 'FOO'"))
            b"-ERR unknown command 'FOO'\\r\\n"
        """
        out = bytearray()
        self._encode(reply, out)
        return bytes(out)

    def _encode(self, reply: Reply, out: bytearray) -> None:
        if reply.type is ReplyType.STATUS:
            out += b"+" + _single_line(reply.value) + CRLF
        elif reply.type is ReplyType.ERROR:
            out += b"-" + _single_line(reply.value) + CRLF
        elif reply.type is ReplyType.INTEGER:
            out += b":%d\r\n" % reply.value
        elif reply.type is ReplyType.BULK:
            out += b"$%d\r\n" % len(reply.value) + reply.value + CRLF
        elif reply.type is ReplyType.NULL:
            out += b"$-1\r\n"
        elif reply.type is ReplyType.ARRAY:
            out += b"*%d\r\n" % len(reply.value)
            for item in reply.value:
                self._encode(item, out)
        else:
            raise ValueError(f"cannot encode reply type {reply.type}")

    def encode_command(self, *args: Union[bytes, str, int, float]) -> bytes:
        """
        Encode a request as an array of bulk strings (client side).

        Example:
            >>> ProtocolParser().encode_command("SET", "k", b"v")
            b'*3\\r\\n$3\\r\\nSET\\r\\n$1\\r\\nk\\r\\n$1\\r\\nv\\r\\n'
        """
        return self.format_reply(Reply.array(Reply.bulk(_to_bytes(arg)) for arg in args))


def _single_line(text: str) -> bytes:
    # Status and error lines cannot contain line breaks
    return encode_text(text.replace("\r", " ").replace("\n", " "))


def _to_bytes(value: Union[bytes, str, int, float]) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        return encode_text(value)
    return str(value).encode()
