#!/usr/bin/env python3
"""
End-to-end tests: a real HostServer on localhost and real ChatClients.
"""

import asyncio
import socket
import unittest

from common.constants import BROADCAST, SYSTEM_SENDER, USERNAME_TAKEN
from common.protocol_definitions import create_join_message, create_text_message, encode_envelope
from server.main_server import HostServer
from server.utils.config import ServerConfig

from chat_test_utils import RecordingClient, wait_until


class ServerTestCase(unittest.IsolatedAsyncioTestCase):

    async def asyncSetUp(self):
        self.server = HostServer(ServerConfig(host='127.0.0.1', port=0))
        self.assertTrue(await self.server.start())
        self.clients = []

    async def asyncTearDown(self):
        for recorder in self.clients:
            await recorder.client.disconnect()
        await asyncio.wait_for(self.server.stop(), timeout=5.0)

    async def join(self, username):
        recorder = RecordingClient()
        self.clients.append(recorder)
        connected = await recorder.client.connect('127.0.0.1', self.server.port, username, retry_count=1)
        self.assertTrue(connected)
        return recorder


class TestChatScenario(ServerTestCase):

    async def test_alice_and_bob(self):
        alice = await self.join("alice")
        await wait_until(lambda: alice.last_roster == ["alice"]
                         and (SYSTEM_SENDER, "alice has joined") in alice.messages)

        bob = await self.join("bob")
        for recorder in (alice, bob):
            await wait_until(lambda: recorder.last_roster == ["alice", "bob"]
                             and (SYSTEM_SENDER, "bob has joined") in recorder.messages)
        self.assertEqual(self.server.member_count(), 2)

        self.assertTrue(await alice.client.send_text("bob", "hi"))
        await wait_until(lambda: ("alice", "hi") in bob.messages)

        await bob.client.disconnect()
        await wait_until(lambda: (SYSTEM_SENDER, "bob has left") in alice.messages
                         and alice.last_roster == ["alice"])
        self.assertNotIn(("alice", "hi"), alice.messages)
        self.assertEqual(bob.lost, 0)
        await wait_until(lambda: self.server.member_count() == 1)

    async def test_broadcast_echoes_to_sender(self):
        names = ["A", "B", "C"]
        recorders = [await self.join(name) for name in names]
        await wait_until(lambda: all(r.last_roster == names for r in recorders))

        await recorders[0].client.send_text(BROADCAST, "hello everyone")
        for recorder in recorders:
            await wait_until(lambda: ("A", "hello everyone") in recorder.messages)
            self.assertEqual(recorder.messages.count(("A", "hello everyone")), 1)

    async def test_message_to_unknown_user_is_dropped(self):
        alice = await self.join("alice")
        await wait_until(lambda: alice.last_roster == ["alice"])

        await alice.client.send_text("nobody", "anyone?")
        await alice.client.send_text(BROADCAST, "marker")
        await wait_until(lambda: ("alice", "marker") in alice.messages)
        self.assertNotIn(("alice", "anyone?"), alice.messages)
        self.assertTrue(alice.client.is_connected)

    async def test_transport_drop_removes_member(self):
        alice = await self.join("alice")
        bob = await self.join("bob")
        await wait_until(lambda: alice.last_roster == ["alice", "bob"])

        # Close bob's socket without sending a leave
        bob.client.running = False
        bob.client.writer.close()

        await wait_until(lambda: (SYSTEM_SENDER, "bob has left") in alice.messages
                         and alice.last_roster == ["alice"])
        self.assertEqual(self.server.member_count(), 1)


class TestHandshake(ServerTestCase):

    async def test_taken_name_can_retry_on_same_connection(self):
        await self.join("alice")
        second = await self.join("alice")

        await wait_until(lambda: second.errors == [USERNAME_TAKEN])
        self.assertTrue(second.client.is_connected)
        self.assertTrue(second.client.name_rejected)
        self.assertFalse(await second.client.send_text(BROADCAST, "blocked"))
        self.assertEqual(self.server.member_count(), 1)

        self.assertTrue(await second.client.join("alice2"))
        await wait_until(lambda: second.last_roster == ["alice", "alice2"])
        self.assertEqual(self.server.member_count(), 2)

    async def test_text_right_after_rejected_connect_keeps_connection(self):
        await self.join("alice")
        second = await self.join("alice")

        # Sent before the server answered the join, so it must not go out
        self.assertFalse(await second.client.send_text(BROADCAST, "hello"))
        await wait_until(lambda: second.errors == [USERNAME_TAKEN])
        self.assertTrue(second.client.is_connected)
        self.assertEqual(second.lost, 0)

        self.assertTrue(await second.client.join("alice2"))
        await wait_until(lambda: second.client.joined)
        self.assertTrue(await second.client.send_text(BROADCAST, "hello"))
        await wait_until(lambda: ("alice2", "hello") in second.messages)

    async def test_non_join_first_message_is_dropped(self):
        reader, writer = await asyncio.open_connection('127.0.0.1', self.server.port)
        writer.write(encode_envelope(create_text_message("mallory", BROADCAST, "hi")))
        await writer.drain()

        data = await asyncio.wait_for(reader.read(), timeout=2.0)
        self.assertEqual(data, b"")
        self.assertEqual(self.server.member_count(), 0)
        writer.close()


class TestStalledClient(unittest.IsolatedAsyncioTestCase):

    async def test_client_that_stops_reading_does_not_block_others(self):
        config = ServerConfig(host='127.0.0.1', port=0)
        config.close_timeout = 0.2
        server = HostServer(config)
        self.assertTrue(await server.start())
        loop = asyncio.get_running_loop()

        # Joins with a tiny receive buffer, then never reads
        slow = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        slow.setsockopt(socket.SOL_SOCKET, socket.SO_RCVBUF, 4096)
        slow.setblocking(False)
        recorders = []
        try:
            await loop.sock_connect(slow, ('127.0.0.1', server.port))
            await loop.sock_sendall(slow, encode_envelope(create_join_message("slow")))
            await wait_until(lambda: server.chat_server.has_member("slow"))

            bob = RecordingClient()
            recorders.append(bob)
            self.assertTrue(await bob.client.connect('127.0.0.1', server.port, "bob", retry_count=1))
            await wait_until(lambda: bob.client.joined)

            body = "x" * 200_000
            for _ in range(60):
                self.assertTrue(await bob.client.send_text(BROADCAST, body))
            await wait_until(lambda: bob.messages.count(("bob", body)) == 60, timeout=10.0)

            carol = RecordingClient()
            recorders.append(carol)
            self.assertTrue(await carol.client.connect('127.0.0.1', server.port, "carol", retry_count=1))
            await wait_until(lambda: carol.last_roster == ["bob", "carol", "slow"])

            await asyncio.wait_for(server.stop(), timeout=3.0)
            self.assertEqual(server.member_count(), 0)
            for recorder in recorders:
                await wait_until(lambda: recorder.lost == 1)
        finally:
            slow.close()
            await server.stop()


class TestServerLifecycle(unittest.IsolatedAsyncioTestCase):

    async def test_start_on_busy_port_fails(self):
        first = HostServer(ServerConfig(host='127.0.0.1', port=0))
        self.assertTrue(await first.start())
        try:
            second = HostServer(ServerConfig(host='127.0.0.1'))
            self.assertFalse(await second.start(first.port))
            self.assertFalse(second.is_running)
        finally:
            await first.stop()

    async def test_start_twice_is_rejected(self):
        server = HostServer(ServerConfig(host='127.0.0.1', port=0))
        self.assertTrue(await server.start())
        try:
            self.assertFalse(await server.start())
        finally:
            await server.stop()

    async def test_stop_disconnects_everyone(self):
        server = HostServer(ServerConfig(host='127.0.0.1', port=0))
        self.assertTrue(await server.start())
        port = server.port

        recorders = []
        for name in ("alice", "bob", "carol"):
            recorder = RecordingClient()
            self.assertTrue(await recorder.client.connect('127.0.0.1', port, name, retry_count=1))
            recorders.append(recorder)
        await wait_until(lambda: server.member_count() == 3)

        await asyncio.wait_for(server.stop(), timeout=5.0)
        self.assertEqual(server.member_count(), 0)
        self.assertFalse(server.is_running)
        for recorder in recorders:
            await wait_until(lambda: recorder.lost == 1)
            self.assertFalse(recorder.client.is_connected)

        # Stopping again is harmless
        await server.stop()

        # A stopped server no longer accepts connections
        late = RecordingClient()
        self.assertFalse(await late.client.connect('127.0.0.1', port, "late", retry_count=1))

    async def test_serve_until_stopped_returns_after_stop(self):
        server = HostServer(ServerConfig(host='127.0.0.1', port=0))
        self.assertTrue(await server.start())
        waiter = asyncio.create_task(server.serve_until_stopped())
        await asyncio.sleep(0.01)
        self.assertFalse(waiter.done())
        await server.stop()
        await asyncio.wait_for(waiter, timeout=1.0)


if __name__ == "__main__":
    unittest.main()
