"""
Chat server module.

This module owns the registry of joined members and routes messages between
them. Every operation that changes membership or reads the whole member set
holds ``self.lock`` for its full duration, fan-out included, so no member can
observe a roster that was already superseded. Fan-out only queues envelopes on
each handle, so a slow member never holds the lock.
"""

import asyncio
from enum import Enum
from typing import Dict, List, Optional

from common.protocol_definitions import (
    Envelope, create_roster_message, create_user_joined_notice, create_user_left_notice
)
from server.chat.connection_handle import ConnectionHandle
from server.utils.logger import logger


class JoinResult(Enum):
    ACCEPTED = 'accepted'
    REJECTED_NAME_TAKEN = 'rejected_name_taken'


class ChatServer:
    """Registry of members and message router."""

    def __init__(self):
        self.members: Dict[str, ConnectionHandle] = {}  # username -> handle
        self.lock = asyncio.Lock()  # Protect shared state
        self._empty = asyncio.Event()
        self._empty.set()

    async def _broadcast_locked(self, envelope: Envelope) -> int:
        """Send to every member. Caller must hold the lock."""
        handles = list(self.members.values())
        if not handles:
            return 0
        sent = 0
        for handle in handles:
            if await handle.send(envelope):
                sent += 1
        logger.log_broadcast(envelope.kind, envelope.sender, len(handles))
        return sent

    async def _broadcast_roster_locked(self) -> int:
        roster = create_roster_message(self.members.keys())
        logger.log_roster(roster.names)
        return await self._broadcast_locked(roster)

    async def try_join(self, username: str, handle: ConnectionHandle) -> JoinResult:
        """
        Register ``username`` if it is free.

        On success every member, the new one included, receives the updated
        roster followed by a "<name> has joined" notice.
        """
        async with self.lock:
            if username in self.members:
                logger.log_join_rejected(username, handle.peer)
                return JoinResult.REJECTED_NAME_TAKEN

            self.members[username] = handle
            handle.name = username
            self._empty.clear()
            logger.log_join(username, handle.peer, len(self.members))

            await self._broadcast_roster_locked()
            await self._broadcast_locked(create_user_joined_notice(username))

        return JoinResult.ACCEPTED

    async def leave(self, username: str, handle: Optional[ConnectionHandle] = None) -> bool:
        """
        Remove ``username``; a name that is not registered is a no-op.

        When ``handle`` is given the entry is only removed if it still belongs
        to that handle. Remaining members get a "<name> has left" notice and
        the updated roster.
        """
        async with self.lock:
            current = self.members.get(username)
            if current is None or (handle is not None and current is not handle):
                return False

            del self.members[username]
            if not self.members:
                self._empty.set()
            logger.log_leave(username, len(self.members))

            await self._broadcast_locked(create_user_left_notice(username))
            await self._broadcast_roster_locked()

        return True

    async def route(self, envelope: Envelope) -> int:
        """
        Deliver a text envelope and return how many members received it.

        Broadcasts go to every member, the sender included. A direct message
        to a name that is not connected is dropped and only logged.
        """
        async with self.lock:
            if envelope.is_broadcast:
                return await self._broadcast_locked(envelope)

            handle = self.members.get(envelope.recipient)
            if handle is None:
                logger.log_route_miss(envelope.sender, envelope.recipient)
                return 0

            sent = await handle.send(envelope)
            logger.log_route(envelope.sender, envelope.recipient)
            return 1 if sent else 0

    async def broadcast_roster(self) -> int:
        """Send the current roster to every member."""
        async with self.lock:
            return await self._broadcast_roster_locked()

    async def wait_until_empty(self):
        """Block until no member is registered."""
        await self._empty.wait()

    def member_count(self) -> int:
        """Get the number of current members."""
        return len(self.members)

    def member_names(self) -> List[str]:
        return sorted(self.members)

    def has_member(self, username: str) -> bool:
        return username in self.members
