"""
Per-connection send primitive.

A ConnectionHandle owns the outbound half of one client transport. Envelopes
are queued and written in order by a dedicated writer task, so ``send`` never
waits on the peer. A peer that stops reading fills its own queue and is
dropped; nobody else waits for it.
"""

import asyncio
from typing import Callable, Optional

from common.constants import CLOSE_TIMEOUT, MAX_PENDING_MESSAGES
from common.protocol_definitions import Envelope, encode_envelope
from server.utils.logger import logger


class ConnectionHandle:
    """Outbound side of one client connection."""

    def __init__(self, writer: asyncio.StreamWriter, on_failure: Optional[Callable[[], None]] = None,
                 max_pending: int = MAX_PENDING_MESSAGES, close_timeout: float = CLOSE_TIMEOUT):
        self.writer = writer
        self.peer = writer.get_extra_info('peername')
        self.name: Optional[str] = None
        self.max_pending = max_pending
        self.close_timeout = close_timeout
        self._on_failure = on_failure
        self._queue: asyncio.Queue = asyncio.Queue()  # encoded lines, None stops the writer
        self._writer_task: Optional[asyncio.Task] = None
        self._closed = False
        self._closing = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def pending(self) -> int:
        """Number of envelopes queued but not yet written."""
        return self._queue.qsize()

    async def send(self, envelope: Envelope) -> bool:
        """
        Queue one envelope for delivery. Returns False if it was not accepted.

        Envelopes reach the transport whole and in the order they were queued.
        When the queue is full the peer is considered stalled: the handle is
        invalidated and the owner is told to close the connection.
        """
        if self._closed:
            return False

        if self._queue.qsize() >= self.max_pending:
            logger.warning(f"Outbound queue full for {self.name or self.peer}, dropping connection")
            self._fail()
            return False

        self._queue.put_nowait(encode_envelope(envelope))
        if self._writer_task is None:
            self._writer_task = asyncio.create_task(self._write_loop())
        return True

    async def _write_loop(self):
        try:
            while True:
                data = await self._queue.get()
                if data is None:
                    break
                self.writer.write(data)
                await self.writer.drain()
        except (ConnectionError, OSError) as e:
            logger.error(f"Failed to send to {self.name or self.peer}: {e}")
            self._fail()

    def invalidate(self):
        """Turn every later send into a no-op. Already queued envelopes are still written."""
        self._closed = True

    def _fail(self):
        self._closed = True
        if self._on_failure is not None:
            self._on_failure()

    def abort(self):
        """Drop the transport immediately, discarding anything not yet written."""
        self._closed = True
        if self._writer_task is not None and not self._writer_task.done():
            self._writer_task.cancel()
        self.writer.transport.abort()

    async def close(self):
        """
        Flush queued envelopes, then close the transport. Safe to call more than once.

        A peer that does not accept the remaining data within ``close_timeout``
        seconds gets its transport aborted instead.
        """
        self._closed = True
        if self._closing:
            return
        self._closing = True

        try:
            await asyncio.wait_for(self._flush_and_close(), self.close_timeout)
        except asyncio.TimeoutError:
            logger.warning(f"Timed out closing connection to {self.name or self.peer}, aborting")
            self.abort()

    async def _flush_and_close(self):
        if self._writer_task is not None and not self._writer_task.done():
            self._queue.put_nowait(None)
            await self._writer_task

        if self.writer.is_closing():
            return
        self.writer.close()
        try:
            await self.writer.wait_closed()
        except (ConnectionError, OSError):
            pass
