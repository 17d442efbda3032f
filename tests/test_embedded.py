"""
Tests for EmbeddedRedis, the background-thread server.

Run with: python -m pytest tests/test_embedded.py -v
"""

import socket

import pytest
from embedded_redis.embedded import EmbeddedRedis
from embedded_redis.protocol.commands import Reply
from embedded_redis.protocol.parser import ProtocolParser


def call(port: int, *args) -> Reply:
    """Open a blocking connection, send one command, return its reply."""
    parser = ProtocolParser()
    with socket.create_connection(("127.0.0.1", port), timeout=5) as sock:
        sock.sendall(parser.encode_command(*args))
        while True:
            reply = parser.get_reply()
            if reply is not None:
                return reply
            data = sock.recv(4096)
            if not data:
                raise ConnectionError("connection closed by server")
            parser.feed(data)


@pytest.fixture
def embedded():
    """A running EmbeddedRedis on a free port."""
    with EmbeddedRedis() as redis_server:
        yield redis_server


class TestEmbeddedRedis:
    """Start, use and stop the embedded server from synchronous code."""

    def test_binds_free_port(self, embedded: EmbeddedRedis):
        assert embedded.port != 0
        assert embedded.address == ("127.0.0.1", embedded.port)
        assert embedded.is_running() is True

    def test_ping(self, embedded: EmbeddedRedis):
        assert call(embedded.port, "PING") == Reply.bulk(b"PONG")

    def test_set_and_get(self, embedded: EmbeddedRedis):
        assert call(embedded.port, "SET", "k", "v") == Reply.ok()
        assert call(embedded.port, "GET", "k") == Reply.bulk(b"v")

    def test_store_seeding(self, embedded: EmbeddedRedis):
        embedded.store.hset("h", "f", b"seeded")
        assert call(embedded.port, "HGET", "h", "f") == Reply.bulk(b"seeded")

        call(embedded.port, "RPUSH", "l", "a", "b")
        assert embedded.store.lrange("l", 0, -1) == [b"a", b"b"]

    def test_start_is_idempotent(self, embedded: EmbeddedRedis):
        port = embedded.port
        assert embedded.start() is embedded
        assert embedded.port == port

    def test_stop(self):
        redis_server = EmbeddedRedis().start()
        port = redis_server.port

        redis_server.stop()

        assert redis_server.is_running() is False
        with pytest.raises(OSError):
            call(port, "PING")

    def test_stop_without_start(self):
        EmbeddedRedis().stop()

    def test_port_in_use(self, embedded: EmbeddedRedis):
        with pytest.raises(OSError):
            EmbeddedRedis(port=embedded.port).start()

    def test_stop_with_open_client(self, embedded: EmbeddedRedis):
        sock = socket.create_connection(("127.0.0.1", embedded.port), timeout=5)
        try:
            sock.sendall(b"PING\r\n")
            assert sock.recv(64) == b"$4\r\nPONG\r\n"

            embedded.stop()

            assert embedded.is_running() is False
        finally:
            sock.close()
