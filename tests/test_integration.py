"""
Integration Tests

End-to-end tests that verify the complete system works together.

Run with: python -m pytest tests/test_integration.py -v
"""

import asyncio
import pytest


@pytest.mark.asyncio
@pytest.mark.integration
class TestEndToEnd:
    """End-to-end integration tests."""

    async def test_complete_workflow(self, server, client_factory):
        """Test a complete user workflow."""
        async with client_factory() as client:
            assert await client.store("SET", "mykey", b"hello", ttl=10) == "STORED"
            assert await client.send_command("GET mykey") == "VALUE mykey 0 5\r\nhello\r\nEND"

            assert await client.store("ADD", "mykey", b"other") == "NOT STORED"
            assert await client.store("ADD", "second", b"two") == "STORED"

            assert await client.store("REPLACE", "missing", b"x") == "NOT STORED"
            assert await client.store("REPLACE", "mykey", b"world") == "STORED"

            response = await client.send_command("GETS mykey missing second")
            assert response == "VALUE mykey 0 5\r\nworld\r\nVALUE second 0 3\r\ntwo\r\nEND"

            assert await client.send_command("FOO bar") == "ERROR"
            assert await client.send_command("GET mykey") == "VALUE mykey 0 5\r\nworld\r\nEND"

    async def test_malformed_header_recovers(self, server, client_factory):
        async with client_factory() as client:
            response = await client.send_command("SET k 0 soon 5")
            assert response == "CLIENT_ERROR bad command line format"
            assert await client.send_command("VERSION") == "VERSION 0.1 TinyCache"

    async def test_multiple_clients_shared_state(self, server, client_factory):
        """Test that multiple clients share the same cache state."""
        async with client_factory() as client1:
            async with client_factory() as client2:
                await client1.store("set", "shared:key", b"first")

                response = await client2.send_command("GET shared:key")
                assert response == "VALUE shared:key 0 5\r\nfirst\r\nEND"

                await client2.store("replace", "shared:key", b"second!")

                response = await client1.send_command("GET shared:key")
                assert response == "VALUE shared:key 0 7\r\nsecond!\r\nEND"

    async def test_interleaved_partial_payloads(self, server, server_port, client_factory):
        """Test one client's pending payload does not block another client."""
        reader, writer = await asyncio.open_connection('127.0.0.1', server_port)
        try:
            writer.write(b"SET slow 0 10 4\r\nab")
            await writer.drain()
            await asyncio.sleep(0.05)

            async with client_factory() as other:
                assert await other.store("set", "fast", b"ok") == "STORED"
                assert await other.send_command("GET slow") == "NOT FOUND"

            writer.write(b"cd\r\n")
            await writer.drain()
            assert await asyncio.wait_for(reader.readline(), timeout=2) == b"STORED\r\n"
        finally:
            writer.close()
            await writer.wait_closed()

    async def test_concurrent_clients(self, server, client_factory):
        """Test concurrent writes from multiple clients."""
        num_clients = 5
        num_operations = 20

        async def client_operations(client_id: int):
            async with client_factory() as client:
                for i in range(num_operations):
                    value = f"value:{client_id}:{i}".encode()
                    assert await client.store("set", f"key:{client_id}:{i}", value) == "STORED"

        await asyncio.gather(*(client_operations(c) for c in range(num_clients)))
        assert server.store.size() == num_clients * num_operations


@pytest.mark.asyncio
@pytest.mark.integration
@pytest.mark.slow
class TestExpiryThroughServer:
    """TTL expiry with the sweeper running on the server's loop."""

    async def test_entry_expires_after_sweeps(self, sweeping_server, client_factory):
        async with client_factory() as client:
            assert await client.store("set", "temp", b"value", ttl=1) == "STORED"

            await asyncio.sleep(1.5)

            assert await client.send_command("GET temp") == "NOT FOUND"

    async def test_reads_keep_entry_alive(self, sweeping_server, client_factory):
        async with client_factory() as client:
            assert await client.store("set", "hot", b"value", ttl=2) == "STORED"

            for _ in range(4):
                await asyncio.sleep(0.8)
                assert await client.send_command("GET hot") == "VALUE hot 0 5\r\nvalue\r\nEND"
