"""
Per-connection lifecycle.

A ConnectionTask drives one accepted connection through
AWAITING_JOIN -> ACTIVE -> CLOSING -> CLOSED. It reads envelopes one at a
time, performs the join handshake against the ChatServer and forwards text
messages to it. All coordination with other connections goes through the
ChatServer.
"""

import asyncio
from enum import Enum
from typing import Optional

from common.constants import SYSTEM_SENDER, USERNAME_TAKEN, MessageTypes
from common.protocol_definitions import (
    Envelope, MalformedEnvelopeError, create_error_message, create_leave_message, decode_envelope
)
from server.chat.chat_server import ChatServer, JoinResult
from server.chat.connection_handle import ConnectionHandle
from server.utils.logger import logger


class ConnectionState(Enum):
    AWAITING_JOIN = 'awaiting_join'
    ACTIVE = 'active'
    CLOSING = 'closing'
    CLOSED = 'closed'


class ConnectionTask:
    """Handles one client connection from handshake to cleanup."""

    def __init__(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter, chat_server: ChatServer,
                 **handle_options):
        self.reader = reader
        self.chat_server = chat_server
        self.handle = ConnectionHandle(writer, on_failure=self.request_close, **handle_options)
        self.peer = self.handle.peer
        self.state = ConnectionState.AWAITING_JOIN
        self._cleaned = False

    @property
    def username(self) -> Optional[str]:
        """Name registered for this connection, None before a successful join."""
        return self.handle.name

    async def run(self):
        """Run the connection until the client leaves or the transport fails."""
        logger.log_connection(self.peer)
        try:
            if await self._handshake():
                await self._read_loop()
        except asyncio.CancelledError:
            logger.info(f"Connection cancelled for {self.username or self.peer}")
            raise
        finally:
            await self.cleanup()

    async def _read_envelope(self) -> Optional[Envelope]:
        """Read the next envelope. None means the connection is finished."""
        who = self.username or self.peer
        try:
            line = await self.reader.readline()
            if not line:
                logger.info(f"{who} disconnected (EOF)")
                return None
            return decode_envelope(line)
        except MalformedEnvelopeError as e:
            logger.warning(f"Invalid message format from {who}: {e}")
        except (ConnectionError, OSError) as e:
            logger.error(f"IO Error with client {who}: {e}")
        except ValueError as e:
            # StreamReader raises ValueError when a line exceeds the limit
            logger.warning(f"Message too large from {who}: {e}")
        return None

    async def _handshake(self) -> bool:
        """Wait for a JOIN with a free name. False means drop the connection."""
        while self.state is ConnectionState.AWAITING_JOIN:
            envelope = await self._read_envelope()
            if envelope is None:
                return False

            if envelope.kind != MessageTypes.JOIN or not envelope.sender:
                logger.warning(f"Expected join from {self.peer}, got '{envelope.kind}'; dropping connection")
                return False

            result = await self.chat_server.try_join(envelope.sender, self.handle)
            if result is JoinResult.ACCEPTED:
                self.state = ConnectionState.ACTIVE
                return True

            # Keep the transport open so the client can retry with another name
            await self.handle.send(create_error_message(envelope.sender, USERNAME_TAKEN))
        return False

    async def _read_loop(self):
        while self.state is ConnectionState.ACTIVE:
            envelope = await self._read_envelope()
            if envelope is None:
                break

            if envelope.kind == MessageTypes.LEAVE:
                logger.info(f"Leave request from {self.username}")
                break
            elif envelope.kind == MessageTypes.TEXT:
                await self.chat_server.route(envelope)
            else:
                logger.warning(f"Unhandled message type '{envelope.kind}' from {self.username}")

    def request_close(self):
        """
        Abort the transport so a pending read returns and the task cleans up.

        Used when the handle fails. Nothing queued is flushed: the peer is
        either gone or no longer reading.
        """
        self.handle.abort()

    async def shutdown(self):
        """
        Tell the client the server is going away, then close the connection.

        The LEAVE notice gets the handle's close timeout to go out; a peer
        that is not reading is aborted. Either way the pending read returns
        and the task's own loop runs cleanup.
        """
        if self.state is ConnectionState.ACTIVE:
            await self.handle.send(create_leave_message(SYSTEM_SENDER))
        await self.handle.close()

    async def cleanup(self):
        """Remove the member and release the transport exactly once."""
        if self._cleaned:
            return
        self._cleaned = True
        self.state = ConnectionState.CLOSING
        self.handle.invalidate()

        username = self.username
        if username is not None:
            await self.chat_server.leave(username, self.handle)

        await self.handle.close()
        self.state = ConnectionState.CLOSED
