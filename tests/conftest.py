"""
Pytest Configuration and Fixtures

This module provides shared fixtures and configuration for all tests.
"""

import asyncio
import socket
import pytest
import pytest_asyncio
from contextlib import closing
from typing import AsyncGenerator

from tinycache.cache.store import CacheStore
from tinycache.protocol.connection import ConnectionStateMachine
from tinycache.protocol.dispatcher import CommandDispatcher
from tinycache.network.tcp_server import TinyCacheServer


def find_free_port() -> int:
    """Find an available port for testing."""
    with closing(socket.socket(socket.AF_INET, socket.SOCK_STREAM)) as s:
        s.bind(('', 0))
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        return s.getsockname()[1]


# ============================================================================
# Store and Protocol Fixtures
# ============================================================================

@pytest.fixture
def store() -> CacheStore:
    """Create a fresh, empty CacheStore."""
    return CacheStore()


@pytest.fixture
def dispatcher(store: CacheStore) -> CommandDispatcher:
    """Create a dispatcher bound to the test store."""
    return CommandDispatcher(store)


@pytest.fixture
def machine(dispatcher: CommandDispatcher) -> ConnectionStateMachine:
    """Create a state machine for one simulated connection."""
    return ConnectionStateMachine(dispatcher)


# ============================================================================
# Server Fixtures
# ============================================================================

@pytest.fixture
def server_port() -> int:
    """Get a free port for server testing."""
    return find_free_port()


@pytest_asyncio.fixture
async def server(server_port: int) -> AsyncGenerator[TinyCacheServer, None]:
    """
    Create and start a server instance for testing.

    The sweep interval is long so that no sweep runs during a test
    unless the test drives one itself.
    """
    srv = TinyCacheServer(host='127.0.0.1', port=server_port, sweep_interval=3600)

    # Start server in background task
    server_task = asyncio.create_task(srv.start())

    # Wait for server to be ready
    await asyncio.sleep(0.1)

    yield srv

    # Cleanup
    await srv.stop()
    server_task.cancel()
    try:
        await server_task
    except asyncio.CancelledError:
        pass


@pytest_asyncio.fixture
async def sweeping_server(server_port: int) -> AsyncGenerator[TinyCacheServer, None]:
    """Start a server whose sweeper ticks every second."""
    srv = TinyCacheServer(host='127.0.0.1', port=server_port, sweep_interval=1)
    server_task = asyncio.create_task(srv.start())
    await asyncio.sleep(0.1)

    yield srv

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

    Usage:
        async with AsyncClient('127.0.0.1', 11211) as client:
            assert await client.store("set", "key", b"value") == "STORED"
            assert await client.send_command("GET key") == "VALUE key 0 5\\r\\nvalue\\r\\nEND"
    """

    def __init__(self, host: str, port: int):
        self.host = host
        self.port = port
        self.reader = None
        self.writer = None

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
            except Exception:
                pass

    async def send_raw(self, data: bytes) -> None:
        self.writer.write(data)
        await self.writer.drain()

    async def read_response(self) -> str:
        """
        Read one complete response, without its final CRLF.

        VALUE blocks are read through to the closing END line.
        """
        lines = []
        while True:
            line = await asyncio.wait_for(self.reader.readline(), timeout=2)
            if not line:
                break
            text = line.decode().rstrip('\r\n')
            lines.append(text)
            if text.startswith("VALUE "):
                # The data line follows its header
                data = await asyncio.wait_for(self.reader.readline(), timeout=2)
                lines.append(data.decode().rstrip('\r\n'))
                continue
            break
        return "\r\n".join(lines)

    async def send_command(self, command: str) -> str:
        """Send a command line and return its response."""
        await self.send_raw(command.encode() + b"\r\n")
        return await self.read_response()

    async def store(self, operation: str, key: str, value: bytes, ttl: int = 60) -> str:
        """Send a storage command with its payload."""
        header = f"{operation} {key} 0 {ttl} {len(value)}\r\n".encode()
        await self.send_raw(header + value + b"\r\n")
        return await self.read_response()

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()


@pytest.fixture
def client_factory(server_port: int):
    """
    Factory fixture to create test clients.

    Usage:
        async def test_something(server, client_factory):
            async with client_factory() as client:
                response = await client.send_command("GET key")
    """
    def factory() -> AsyncClient:
        return AsyncClient('127.0.0.1', server_port)
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
