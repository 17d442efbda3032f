"""
Async TCP Server Module

This module implements the asynchronous RESP server for Embedded-Redis.

Each client connection is served by its own coroutine with its own
ProtocolParser; all connections share one RedisStore through one
CommandRouter. Several commands may arrive in a single read (pipelining);
they are executed in order and their replies flushed together.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional, Set

from ..cache.store import RedisStore
from ..config.settings import settings
from ..exceptions import ProtocolError
from ..protocol.commands import Command, CommandType, Reply
from ..protocol.parser import ProtocolParser
from ..protocol.router import CommandRouter

logger = logging.getLogger(__name__)


class RedisServer:
    """
    Asynchronous TCP server speaking the Redis protocol.

    Features:
    - Non-blocking I/O with asyncio
    - Persistent, pipelined connections
    - Error replies never close the connection; only QUIT, EOF or a
      malformed byte stream do
    - Periodic sweep of expired keys
    - Shared RedisStore across all connections

    Usage:
        server = RedisServer(host='127.0.0.1', port=6379)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address
        port: Server port number (the bound port once listening, useful with 0)
        store: The RedisStore instance shared by all connections
        router: The CommandRouter executing commands against the store
        cleanup_interval: Seconds between expiry sweeps (0 disables them)
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: RedisStore = None,
            cleanup_interval: float = None,
    ):
        """
        Initialize the server.

        Args:
            host: Bind address (default from settings)
            port: Port number (default from settings, 0 picks a free port)
            store: RedisStore instance (creates new one if not provided)
            cleanup_interval: Expiry sweep period in seconds (default from settings)
        """
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else RedisStore()
        self.router = CommandRouter(self.store)
        self.cleanup_interval = (
            cleanup_interval if cleanup_interval is not None else settings.CLEANUP_INTERVAL
        )

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._cleanup_task: Optional[asyncio.Task] = None
        self._clients: Set[StreamWriter] = set()
        self._running = False
        self._connection_count = 0
        self._total_requests = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection.

        Reads bytes until the client disconnects, sends QUIT, or sends
        something that is not valid RESP. Every complete command is
        executed and answered in order.

        Args:
            reader: StreamReader for reading from the client
            writer: StreamWriter for writing to the client
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        self._clients.add(writer)
        parser = ProtocolParser()
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                data = await reader.read(settings.READ_BUFFER_SIZE)
                if not data:
                    logger.debug(f"Client disconnected: {addr}")
                    break

                parser.feed(data)
                if not await self._process_buffer(parser, writer):
                    logger.debug(f"Closing connection: {addr}")
                    break

        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            self._clients.discard(writer)
            try:
                writer.close()
                await writer.wait_closed()
            except OSError:
                pass

    async def _process_buffer(self, parser: ProtocolParser, writer: StreamWriter) -> bool:
        """
        Execute every complete command currently buffered in ``parser``.

        Returns:
            False if the connection must be closed, True to keep reading
        """
        while True:
            try:
                command = parser.get_command()
            except ProtocolError as exc:
                logger.debug(f"Protocol error: {exc}")
                writer.write(parser.format_reply(Reply.error(str(exc))))
                await writer.drain()
                return False

            if command is None:
                await writer.drain()
                return True

            self._total_requests += 1
            reply = self.execute(command)
            writer.write(parser.format_reply(reply))

            if command.type is CommandType.QUIT:
                await writer.drain()
                return False

    def execute(self, command: Command) -> Reply:
        """
        Run a command through the router.

        Command errors are already replies; anything else escaping the
        router is a bug, logged and reported as a generic error.
        """
        try:
            return self.router.dispatch(command)
        except Exception:
            logger.exception(f"Unexpected error executing {command.name}")
            return Reply.error("ERR internal error")

    async def _cleanup_loop(self) -> None:
        """Periodically remove expired keys (active expiration)."""
        while True:
            await asyncio.sleep(self.cleanup_interval)
            removed = self.store.cleanup_expired()
            if removed:
                logger.debug(f"Removed {removed} expired keys")

    async def listen(self) -> None:
        """
        Bind the listening socket and start accepting connections.

        Returns as soon as the socket is bound; connections are served by
        the running event loop.
        """
        if self._server is not None:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
            limit=settings.READ_BUFFER_SIZE,
        )
        self._running = True

        sockets = self._server.sockets or []
        if sockets:
            self.port = sockets[0].getsockname()[1]

        addrs = ', '.join(str(sock.getsockname()) for sock in sockets)
        logger.info(f"Serving on {addrs}")

        if self.cleanup_interval > 0:
            self._cleanup_task = asyncio.create_task(self._cleanup_loop())

    async def start(self) -> None:
        """
        Start the server and serve until stopped or cancelled.

        Example:
            server = RedisServer(port=6379)
            asyncio.run(server.start())
        """
        await self.listen()
        server = self._server

        try:
            async with server:
                await server.serve_forever()
        except asyncio.CancelledError:
            # Expected during shutdown/fixture cleanup
            logger.debug("Server start cancelled")
        finally:
            self._running = False

    async def stop(self) -> None:
        """
        Stop the server gracefully.

        Stops the expiry sweep, closes the listener and every open client
        connection, then waits for the server to shut down.
        """
        if self._cleanup_task is not None:
            self._cleanup_task.cancel()
            try:
                await self._cleanup_task
            except asyncio.CancelledError:
                pass
            self._cleanup_task = None

        if self._server is None:
            return

        self._server.close()
        for writer in list(self._clients):
            writer.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False
            logger.info("Server stopped")

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with server stats including connection counts,
            request counts, and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "active_connections": len(self._clients),
            "total_requests": self._total_requests,
            "store_stats": self.store.get_stats(),
        }
