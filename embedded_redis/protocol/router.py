"""
Command Router

Maps a decoded Command onto a RedisStore operation and builds the Reply.
Every failure (unknown command, missing arguments, malformed integers,
wrong value type) is turned into an error reply here; nothing raised by a
command ever reaches the connection handler.
"""

import logging
import re
from typing import Callable, Dict, List, Tuple

from ..cache.store import RedisStore
from ..exceptions import (
    MalformedArgumentError,
    RedisError,
    UnknownCommandError,
    WrongArityError,
)
from .commands import Command, CommandType, Reply, decode_text

logger = logging.getLogger(__name__)

_INTEGER_RE = re.compile(rb"-?[0-9]+\Z")
_INT64_MIN = -(2 ** 63)
_INT64_MAX = 2 ** 63 - 1

Handler = Callable[[List[bytes]], Reply]

_FIELD_PAIR_COMMANDS = (CommandType.HSET, CommandType.HMSET)


def parse_int(data: bytes) -> int:
    """
    Parse a strict decimal 64-bit integer argument.

    Raises:
        MalformedArgumentError: If the argument is not an integer or overflows
    """
    if not _INTEGER_RE.match(data):
        raise MalformedArgumentError()
    value = int(data)
    if not _INT64_MIN <= value <= _INT64_MAX:
        raise MalformedArgumentError()
    return value


class CommandRouter:
    """
    Dispatch table from command type to store operation.

    The router holds no state of its own besides the store it forwards to.
    Argument counts are checked before the handler runs, so a rejected
    command never has partial side effects.

    Usage:
        router = CommandRouter(RedisStore())
        reply = router.dispatch(Command("SET", [b"k", b"v"]))
        assert reply == Reply.ok()
    """

    def __init__(self, store: RedisStore):
        self.store = store

        # command type -> (minimum argument count, handler)
        self._handlers: Dict[CommandType, Tuple[int, Handler]] = {
            CommandType.HELLO: (0, self._hello),
            CommandType.PING: (0, self._ping),
            CommandType.ECHO: (1, self._echo),
            CommandType.QUIT: (0, self._quit),
            CommandType.SET: (2, self._set),
            CommandType.SETEX: (3, self._setex),
            CommandType.GET: (1, self._get),
            CommandType.DEL: (1, self._del),
            CommandType.EXISTS: (1, self._exists),
            CommandType.EXPIRE: (2, self._expire),
            CommandType.PERSIST: (1, self._persist),
            CommandType.TTL: (1, self._ttl),
            CommandType.TYPE: (1, self._type),
            CommandType.KEYS: (1, self._keys),
            CommandType.DBSIZE: (0, self._dbsize),
            CommandType.FLUSHDB: (0, self._flush),
            CommandType.FLUSHALL: (0, self._flush),
            CommandType.HSET: (3, self._hset),
            CommandType.HGET: (2, self._hget),
            CommandType.HMSET: (3, self._hmset),
            CommandType.HMGET: (2, self._hmget),
            CommandType.HDEL: (2, self._hdel),
            CommandType.HEXISTS: (2, self._hexists),
            CommandType.HKEYS: (1, self._hkeys),
            CommandType.HVALS: (1, self._hvals),
            CommandType.HGETALL: (1, self._hgetall),
            CommandType.LPUSH: (2, self._lpush),
            CommandType.RPUSH: (2, self._rpush),
            CommandType.LLEN: (1, self._llen),
            CommandType.LRANGE: (3, self._lrange),
        }

    def dispatch(self, command: Command) -> Reply:
        """
        Execute a command and return its reply.

        Args:
            command: Decoded command name and raw arguments

        Returns:
            The reply for the client; errors are returned as error replies
        """
        try:
            return self._execute(command)
        except RedisError as exc:
            logger.debug(f"Command {command.name} failed: {exc}")
            return Reply.error(str(exc))

    def _execute(self, command: Command) -> Reply:
        command_type = command.type
        if command_type is None:
            logger.warning(f"Unknown command: {command.name}")
            raise UnknownCommandError(command.name)

        min_args, handler = self._handlers[command_type]
        if len(command.args) < min_args:
            raise WrongArityError(command.name)
        if command_type in _FIELD_PAIR_COMMANDS and len(command.args) % 2 == 0:
            # key followed by field/value pairs
            raise WrongArityError(command.name)

        return handler(command.args)

    # ------------------------------------------------------------------
    # Connection
    # ------------------------------------------------------------------

    def _hello(self, args: List[bytes]) -> Reply:
        return Reply.array([Reply.status("server")])

    def _ping(self, args: List[bytes]) -> Reply:
        if args:
            return Reply.bulk(args[0])
        return Reply.bulk(b"PONG")

    def _echo(self, args: List[bytes]) -> Reply:
        return Reply.bulk(args[0])

    def _quit(self, args: List[bytes]) -> Reply:
        # The connection handler closes the socket after sending this
        return Reply.ok()

    # ------------------------------------------------------------------
    # Keyspace and strings
    # ------------------------------------------------------------------

    def _set(self, args: List[bytes]) -> Reply:
        self.store.set(decode_text(args[0]), args[1])
        return Reply.ok()

    def _setex(self, args: List[bytes]) -> Reply:
        key, ttl, value = decode_text(args[0]), parse_int(args[1]), args[2]
        if ttl < 0:
            raise MalformedArgumentError("invalid expire time in 'setex' command")
        self.store.set_with_expire(key, value, ttl)
        return Reply.ok()

    def _get(self, args: List[bytes]) -> Reply:
        return Reply.optional_bulk(self.store.get(decode_text(args[0])))

    def _del(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.delete([decode_text(key) for key in args]))

    def _exists(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.exists([decode_text(key) for key in args]))

    def _expire(self, args: List[bytes]) -> Reply:
        key, seconds = decode_text(args[0]), parse_int(args[1])
        return Reply.integer(1 if self.store.expire(key, seconds) else 0)

    def _persist(self, args: List[bytes]) -> Reply:
        return Reply.integer(1 if self.store.persist(decode_text(args[0])) else 0)

    def _ttl(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.ttl(decode_text(args[0])))

    def _type(self, args: List[bytes]) -> Reply:
        value_type = self.store.type_of(decode_text(args[0]))
        return Reply.status(value_type.value if value_type is not None else "none")

    def _keys(self, args: List[bytes]) -> Reply:
        return Reply.bulk_array(self.store.keys(decode_text(args[0])))

    def _dbsize(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.dbsize())

    def _flush(self, args: List[bytes]) -> Reply:
        self.store.flush()
        return Reply.ok()

    # ------------------------------------------------------------------
    # Hashes
    # ------------------------------------------------------------------

    @staticmethod
    def _field_pairs(args: List[bytes]) -> Dict[str, bytes]:
        return {
            decode_text(args[i]): args[i + 1]
            for i in range(1, len(args), 2)
        }

    def _hset(self, args: List[bytes]) -> Reply:
        if len(args) == 3:
            self.store.hset(decode_text(args[0]), decode_text(args[1]), args[2])
        else:
            self.store.hmset(decode_text(args[0]), self._field_pairs(args))
        return Reply.integer(1)

    def _hget(self, args: List[bytes]) -> Reply:
        return Reply.optional_bulk(self.store.hget(decode_text(args[0]), decode_text(args[1])))

    def _hmset(self, args: List[bytes]) -> Reply:
        self.store.hmset(decode_text(args[0]), self._field_pairs(args))
        return Reply.ok()

    def _hmget(self, args: List[bytes]) -> Reply:
        fields = [decode_text(field) for field in args[1:]]
        return Reply.bulk_array(self.store.hmget(decode_text(args[0]), fields))

    def _hdel(self, args: List[bytes]) -> Reply:
        fields = [decode_text(field) for field in args[1:]]
        return Reply.integer(self.store.hdel(decode_text(args[0]), fields))

    def _hexists(self, args: List[bytes]) -> Reply:
        exists = self.store.hexists(decode_text(args[0]), decode_text(args[1]))
        return Reply.integer(1 if exists else 0)

    def _hkeys(self, args: List[bytes]) -> Reply:
        return Reply.bulk_array(self.store.hkeys(decode_text(args[0])))

    def _hvals(self, args: List[bytes]) -> Reply:
        return Reply.bulk_array(self.store.hvals(decode_text(args[0])))

    def _hgetall(self, args: List[bytes]) -> Reply:
        flat = []
        for field, value in self.store.hgetall(decode_text(args[0])).items():
            flat.append(field)
            flat.append(value)
        return Reply.bulk_array(flat)

    # ------------------------------------------------------------------
    # Lists
    # ------------------------------------------------------------------

    def _lpush(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.lpush(decode_text(args[0]), list(args[1:])))

    def _rpush(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.rpush(decode_text(args[0]), list(args[1:])))

    def _llen(self, args: List[bytes]) -> Reply:
        return Reply.integer(self.store.llen(decode_text(args[0])))

    def _lrange(self, args: List[bytes]) -> Reply:
        key, start, stop = decode_text(args[0]), parse_int(args[1]), parse_int(args[2])
        return Reply.bulk_array(self.store.lrange(key, start, stop))
