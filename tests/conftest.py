"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import pytest
import pytest_asyncio
from typing import AsyncGenerator

from embedded_redis.cache.store import RedisStore
from embedded_redis.network.tcp_server import RedisServer
from embedded_redis.protocol.commands import Reply
from embedded_redis.protocol.parser import ProtocolParser
from embedded_redis.protocol.router import CommandRouter


# ============================================================================
# Store Fixtures
# ============================================================================

@pytest.fixture
def store() -> RedisStore:
    """Create a fresh, empty RedisStore."""
    return RedisStore()


@pytest.fixture
def router(store: RedisStore) -> CommandRouter:
    """Create a CommandRouter on top of the ``store`` fixture."""
    return CommandRouter(store)


# ============================================================================
# Protocol Fixtures
# ============================================================================

@pytest.fixture
def parser() -> ProtocolParser:
    """Create a ProtocolParser instance."""
    return ProtocolParser()


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def server() -> AsyncGenerator[RedisServer, None]:
    """
    Create and start a server instance for testing.

    This fixture:
    1. Creates a RedisServer on a free port picked by the OS
    2. Binds it, then serves it from a background task
    3. Yields the server for testing
    4. Cleans up after the test
    """
    srv = RedisServer(host='127.0.0.1', port=0, cleanup_interval=0)
    await srv.listen()

    server_task = asyncio.create_task(srv.start())

    yield srv

    # Cleanup
    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


# ============================================================================
# Client Fixtures
# ============================================================================

class AsyncClient:
    """
    Helper class for testing server interactions.

    Speaks RESP: commands are sent as arrays of bulk strings and replies
    are decoded into Reply objects.

    Usage:
        async with AsyncClient('127.0.0.1', port) as client:
            reply = await client.send_command("SET", "key", "value")
            assert reply == Reply.ok()
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None
        self.parser = ProtocolParser()

    async def connect(self) -> None:
        """Establish connection to server."""
        self.reader, self.writer = await asyncio.open_connection(
            self.host, self.port
        )

    async def disconnect(self) -> None:
        """Close connection to server."""
        if self.writer:
            self.writer.close()
            try:
                await self.writer.wait_closed()
            except OSError:
                pass

    async def send_command(self, *args) -> Reply:
        """
        Send a command and receive the reply.

        Args:
            args: Command name followed by its arguments (str, bytes or int)

        Returns:
            The decoded reply
        """
        return await self.send_raw(self.parser.encode_command(*args))

    async def send_raw(self, data: bytes) -> Reply:
        """Send raw bytes and read back one reply."""
        self.writer.write(data)
        await self.writer.drain()
        return await self.read_reply()

    async def read_reply(self) -> Reply:
        """Read one reply, waiting for more bytes as needed."""
        while True:
            reply = self.parser.get_reply()
            if reply is not None:
                return reply
            data = await asyncio.wait_for(self.reader.read(4096), timeout=5)
            if not data:
                raise ConnectionError("connection closed by server")
            self.parser.feed(data)

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server: RedisServer):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(client_factory):
            async with client_factory() as client:
                reply = await client.send_command("GET", "key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server.port)
    return factory


# ============================================================================
# Pytest Configuration
# ============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )
    config.addinivalue_line(
        "markers", "integration: marks tests as integration tests"
    )
