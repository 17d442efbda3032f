"""
Embedded Server

Runs a RedisServer on a background thread with its own event loop, so a
synchronous program (typically a test suite) can start a throwaway Redis
endpoint, point a client at it, and stop it again.

Usage:
    with EmbeddedRedis() as redis_server:
        client = redis.Redis(port=redis_server.port)
        client.set("k", "v")
"""

import asyncio
import logging
import threading
from typing import Optional, Tuple

from .cache.store import RedisStore
from .network.tcp_server import RedisServer

logger = logging.getLogger(__name__)


class EmbeddedRedis:
    """
    A RedisServer living on a daemon thread.

    Attributes:
        server: The wrapped RedisServer
        store: The RedisStore behind the server, for seeding or inspecting
               data directly from the calling thread
    """

    def __init__(
            self,
            host: str = "127.0.0.1",
            port: int = 0,
            store: RedisStore = None,
            cleanup_interval: float = None,
    ):
        """
        Args:
            host: Bind address
            port: Port number, 0 (the default) picks a free port
            store: RedisStore to serve (creates new one if not provided)
            cleanup_interval: Expiry sweep period in seconds
        """
        self.server = RedisServer(
            host=host,
            port=port,
            store=store,
            cleanup_interval=cleanup_interval,
        )
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._ready = threading.Event()
        self._error: Optional[BaseException] = None

    @property
    def store(self) -> RedisStore:
        return self.server.store

    @property
    def host(self) -> str:
        return self.server.host

    @property
    def port(self) -> int:
        """The bound port (only meaningful after start())."""
        return self.server.port

    @property
    def address(self) -> Tuple[str, int]:
        return self.server.host, self.server.port

    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> "EmbeddedRedis":
        """
        Start serving; blocks until the socket is bound.

        Raises:
            OSError: If the address cannot be bound
        """
        if self.is_running():
            return self

        self._ready.clear()
        self._error = None
        self._loop = asyncio.new_event_loop()
        self._thread = threading.Thread(
            target=self._run,
            name="embedded-redis",
            daemon=True,
        )
        self._thread.start()
        self._ready.wait()

        if self._error is not None:
            self._thread.join()
            self._thread = None
            raise self._error

        logger.debug(f"Embedded server listening on {self.host}:{self.port}")
        return self

    def _run(self) -> None:
        asyncio.set_event_loop(self._loop)
        try:
            self._loop.run_until_complete(self.server.listen())
        except Exception as exc:
            self._error = exc
            self._ready.set()
            self._loop.close()
            return

        self._ready.set()
        try:
            self._loop.run_forever()
        finally:
            self._loop.run_until_complete(self._shutdown())
            self._loop.close()

    async def _shutdown(self) -> None:
        await self.server.stop()

        tasks = [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the server and wait for its thread to finish."""
        if self._thread is None:
            return

        self._loop.call_soon_threadsafe(self._loop.stop)
        self._thread.join(timeout)
        if self._thread.is_alive():
            logger.warning("Embedded server thread did not stop in time")
        self._thread = None

    def __enter__(self) -> "EmbeddedRedis":
        return self.start()

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.stop()
