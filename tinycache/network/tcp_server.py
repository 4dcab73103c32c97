"""
Async TCP Server Module

Accepts client connections, feeds the bytes each one sends through its
own ConnectionStateMachine and writes the responses back. The expiry
sweeper runs as a task on the same event loop, so the shared CacheStore
is only ever touched from one thread.
"""

import asyncio
import logging
from asyncio import StreamReader, StreamWriter
from typing import Optional

from ..cache.store import CacheStore
from ..cache.sweeper import ExpirySweeper
from ..config.settings import settings
from ..protocol.connection import ConnectionStateMachine
from ..protocol.dispatcher import CommandDispatcher

logger = logging.getLogger(__name__)


class TinyCacheServer:
    """
    Asynchronous TCP server for TinyCache.

    Each client connection is handled in its own coroutine with its own
    protocol state. All connections share one CacheStore and one
    CommandDispatcher.

    Usage:
        server = TinyCacheServer(host='0.0.0.0', port=11211)
        await server.start()  # Runs forever

    Attributes:
        host: Server bind address
        port: Server port number
        store: The CacheStore shared by all connections
        sweeper: The ExpirySweeper driving TTL expiry
    """

    def __init__(
            self,
            host: str = None,
            port: int = None,
            store: CacheStore = None,
            sweep_interval: int = None,
    ):
        self.host = host if host is not None else settings.HOST
        self.port = port if port is not None else settings.PORT
        self.store = store if store is not None else CacheStore()
        self.dispatcher = CommandDispatcher(self.store)
        self.sweeper = ExpirySweeper(
            self.store,
            sweep_interval if sweep_interval is not None else settings.SWEEP_INTERVAL,
        )

        # Server state
        self._server: Optional[asyncio.Server] = None
        self._sweep_task: Optional[asyncio.Task] = None
        self._running = False
        self._connection_count = 0
        self._active_connections = 0

    async def handle_client(
            self,
            reader: StreamReader,
            writer: StreamWriter
    ) -> None:
        """
        Handle a single client connection until it disconnects.

        Reads whatever the client sends, lets the connection's state
        machine frame it into commands, and writes every completed
        response back in order.
        """
        addr = writer.get_extra_info('peername')
        self._connection_count += 1
        self._active_connections += 1
        machine = ConnectionStateMachine(self.dispatcher)
        logger.debug(f"Client connected: {addr}")

        try:
            while True:
                data = await reader.read(settings.READ_BUFFER_SIZE)
                if not data:
                    if machine.pending is not None:
                        logger.warning(
                            f"Client {addr} disconnected with an incomplete payload "
                            f"for '{machine.pending.key}'"
                        )
                    else:
                        logger.debug(f"Client disconnected: {addr}")
                    break

                responses = machine.feed(data)
                if responses:
                    writer.writelines(responses)
                    await writer.drain()

        except ConnectionResetError:
            logger.debug(f"Connection reset by client: {addr}")
        except Exception as exc:  # Log unexpected errors but keep server alive
            logger.exception(f"Error handling client {addr}: {exc}")
        finally:
            self._active_connections -= 1
            writer.close()
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass

    async def start(self) -> None:
        """
        Start the server and the sweeper, then serve until cancelled.

        Example:
            server = TinyCacheServer(port=11211)
            asyncio.run(server.start())
        """
        if self._running:
            return

        self._server = await asyncio.start_server(
            self.handle_client,
            self.host,
            self.port,
        )
        self._sweep_task = asyncio.create_task(self.sweeper.run())
        self._running = True

        addrs = ', '.join(str(sock.getsockname()) for sock in self._server.sockets or [])
        logger.info(f"Serving on {addrs}")

        try:
            async with self._server:
                await self._server.serve_forever()
        except asyncio.CancelledError:
            logger.debug("Server start cancelled")
        finally:
            if self._sweep_task is not None:
                self._sweep_task.cancel()
            self._running = False

    async def stop(self) -> None:
        """Stop accepting connections and stop the sweeper."""
        if self._sweep_task is not None:
            self._sweep_task.cancel()
            try:
                await self._sweep_task
            except asyncio.CancelledError:
                pass
            self._sweep_task = None

        if self._server is None:
            return

        self._server.close()
        try:
            await self._server.wait_closed()
        finally:
            self._server = None
            self._running = False

    def is_running(self) -> bool:
        """Check if the server is currently running."""
        return self._running

    def get_stats(self) -> dict:
        """
        Get server statistics.

        Returns:
            Dictionary with connection counts and store statistics.
        """
        return {
            "running": self._running,
            "host": self.host,
            "port": self.port,
            "total_connections": self._connection_count,
            "active_connections": self._active_connections,
            "sweep_interval": self.sweeper.interval,
            "store_stats": self.store.get_stats(),
        }

