"""
Chat client module.

This module handles client-side chat messaging functionality: it joins the
server under a username, sends text to one member or to everyone, and reports
what arrives through a set of callbacks.
"""

import asyncio
from dataclasses import dataclass
from typing import Callable, List, Optional

from common.constants import BROADCAST, SYSTEM_SENDER, USERNAME_TAKEN, MessageTypes
from common.protocol_definitions import (
    Envelope, MalformedEnvelopeError, create_join_message, create_leave_message,
    create_text_message, decode_envelope, encode_envelope
)
from client.utils.config import ClientConfig
from client.utils.logger import logger


@dataclass
class ClientCallbacks:
    """Functions the UI layer supplies to receive events. All optional."""
    on_message: Optional[Callable[[str, str], None]] = None
    on_roster: Optional[Callable[[List[str]], None]] = None
    on_connection_lost: Optional[Callable[[], None]] = None
    on_error: Optional[Callable[[str], None]] = None


class ChatClient:
    """Client-side chat functionality."""

    def __init__(self, callbacks: Optional[ClientCallbacks] = None, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig()
        self.callbacks = callbacks or ClientCallbacks()
        self.reader: Optional[asyncio.StreamReader] = None
        self.writer: Optional[asyncio.StreamWriter] = None
        self.username: Optional[str] = self.config.username
        self.connected_users: List[str] = []
        self.name_rejected = False
        self.joined = False  # set once a roster lists our name
        self.running = False
        self.listener_task: Optional[asyncio.Task] = None
        self._send_lock = asyncio.Lock()

    @property
    def is_connected(self) -> bool:
        return self.running and self.writer is not None

    async def connect(self, host: str, port: int, username: str, retry_count: Optional[int] = None) -> bool:
        """
        Open a connection to the server and send the join request.

        Retries with exponential backoff. Returns False if the server cannot
        be reached. A taken username is reported later through ``on_error``;
        the connection stays open so :meth:`join` can retry.
        """
        if self.is_connected:
            logger.warning("Already connected to server")
            return False

        self.config.host, self.config.port = host, port
        attempts = retry_count if retry_count is not None else self.config.connect_attempts

        for attempt in range(1, attempts + 1):
            try:
                self.reader, self.writer = await asyncio.open_connection(
                    host, port, limit=self.config.max_message_size
                )
                break
            except OSError as e:
                logger.log_connection(host, port, False)
                logger.log_error("connection", e)
                if attempt < attempts:
                    delay = self.config.retry_delay_base * (2 ** (attempt - 1))
                    logger.info(f"Retrying connection in {delay}s (attempt {attempt}/{attempts})...")
                    await asyncio.sleep(delay)
        else:
            return False

        logger.log_connection(host, port, True)
        self.running = True
        self.listener_task = asyncio.create_task(self.listen_for_messages())
        return await self.join(username)

    async def join(self, username: str) -> bool:
        """Send a join request, e.g. again with a new name after USERNAME_TAKEN."""
        if not self.is_connected:
            logger.warning("Not connected to server")
            return False

        self.username = username
        self.config.username = username
        self.name_rejected = False
        self.joined = False
        logger.show_login_info(username)
        return await self._send(create_join_message(username))

    async def send_text(self, recipient: str, body: str) -> bool:
        """Send ``body`` to ``recipient``, or to everyone when it is ``BROADCAST``."""
        if not self.is_connected:
            logger.warning("Not connected to server")
            return False
        if not body or not body.strip():
            logger.warning("Message content cannot be empty")
            return False
        if self.name_rejected:
            logger.warning("Join was rejected, pick another username first")
            return False
        if not self.joined:
            # The server drops a connection that sends text before its join is accepted
            logger.warning("Not joined yet, wait for the server to accept the username")
            return False

        return await self._send(create_text_message(self.username, recipient or BROADCAST, body))

    async def _send(self, envelope: Envelope) -> bool:
        try:
            async with self._send_lock:
                self.writer.write(encode_envelope(envelope))
                await self.writer.drain()
            return True
        except (ConnectionError, OSError) as e:
            logger.log_error("send", e)
            self._close_writer()
            return False

    async def disconnect(self):
        """Send a leave request and close the connection. Safe to call twice."""
        if not self.running:
            return
        self.running = False

        if self.writer is not None and not self.writer.is_closing():
            try:
                self.writer.write(encode_envelope(create_leave_message(self.username or '')))
                await self.writer.drain()
            except (ConnectionError, OSError):
                pass

        self._close_writer()
        if self.listener_task is not None and self.listener_task is not asyncio.current_task():
            self.listener_task.cancel()
            try:
                await self.listener_task
            except asyncio.CancelledError:
                pass
        self.listener_task = None
        self.connected_users = []
        self.joined = False
        logger.log_disconnect()

    def _close_writer(self):
        if self.writer is not None and not self.writer.is_closing():
            self.writer.close()

    async def listen_for_messages(self):
        """Read envelopes until the connection ends."""
        try:
            while self.running:
                data = await self.reader.readline()
                if not data:
                    logger.info("Connection closed by server")
                    break

                try:
                    envelope = decode_envelope(data)
                except MalformedEnvelopeError as e:
                    logger.error(f"Malformed message received: {e}")
                    continue

                if not self.handle_message(envelope):
                    break

        except asyncio.CancelledError:
            logger.debug("Listener cancelled")
            raise
        except (ConnectionError, OSError, ValueError) as e:
            logger.error(f"Error receiving message: {e}")
        finally:
            # running is still set only when the user did not ask to disconnect
            if self.running:
                self.running = False
                self._close_writer()
                self.connected_users = []
                self.joined = False
                self._notify(self.callbacks.on_connection_lost)

    def handle_message(self, envelope: Envelope) -> bool:
        """Dispatch one envelope to the callbacks. False ends the listener."""
        if envelope.kind == MessageTypes.TEXT:
            self._notify(self.callbacks.on_message, envelope.sender, envelope.body)

        elif envelope.kind == MessageTypes.ROSTER:
            self.connected_users = list(envelope.names)
            if self.username in self.connected_users:
                self.joined = True
            logger.show_roster(self.connected_users)
            self._notify(self.callbacks.on_roster, list(self.connected_users))

        elif envelope.kind == MessageTypes.ERROR:
            if envelope.reason == USERNAME_TAKEN:
                self.name_rejected = True
                self.joined = False
                logger.show_username_taken(envelope.recipient)
            else:
                logger.error(f"Server error: {envelope.reason}")
            self._notify(self.callbacks.on_error, envelope.reason)

        elif envelope.kind == MessageTypes.LEAVE and envelope.sender == SYSTEM_SENDER:
            logger.info("Server is shutting down")
            return False

        else:
            logger.warning(f"Unhandled message type: {envelope.kind}")
        return True

    def _notify(self, callback: Optional[Callable], *args):
        if callback is None:
            return
        try:
            callback(*args)
        except Exception as e:
            # UI errors must not break the network listener
            logger.log_error("callback", e)
