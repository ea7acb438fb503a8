"""
Qt bridge for the chat client.

NetworkThread runs the asyncio ChatClient on its own event loop in a QThread
and re-emits client events as Qt signals, so a window can connect slots to
them and stay on the GUI thread. The send/disconnect methods may be called
from the GUI thread.
"""

import asyncio
import threading
from typing import List, Optional

from PyQt6.QtCore import QThread, pyqtSignal

from client.chat.chat_client import ChatClient, ClientCallbacks
from client.utils.logger import logger


class NetworkThread(QThread):
    """Thread for handling network communication."""

    connected = pyqtSignal()
    connect_failed = pyqtSignal()
    message_received = pyqtSignal(str, str)   # sender, body
    roster_updated = pyqtSignal(list)          # usernames
    connection_lost = pyqtSignal()
    error_received = pyqtSignal(str)           # reason code

    def __init__(self, host: str, port: int, username: str, parent=None):
        super().__init__(parent)
        self.host = host
        self.port = port
        self.username = username
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self.loop_ready = threading.Event()
        self.client = ChatClient(self.build_callbacks())
        self._done: Optional[asyncio.Event] = None

    def build_callbacks(self) -> ClientCallbacks:
        """Callbacks that forward every client event to the matching signal."""
        return ClientCallbacks(
            on_message=self.message_received.emit,
            on_roster=self._emit_roster,
            on_connection_lost=self._on_connection_lost,
            on_error=self.error_received.emit,
        )

    def _emit_roster(self, names: List[str]):
        self.roster_updated.emit(list(names))

    def _on_connection_lost(self):
        self.connection_lost.emit()
        if self._done is not None:
            self._done.set()

    def run(self):
        """Run network loop."""
        self.loop = asyncio.new_event_loop()
        asyncio.set_event_loop(self.loop)
        try:
            self.loop.run_until_complete(self._connect_and_wait())
        finally:
            self.loop.close()

    async def _connect_and_wait(self):
        self._done = asyncio.Event()
        self.loop_ready.set()
        if not await self.client.connect(self.host, self.port, self.username):
            self.connect_failed.emit()
            return
        self.connected.emit()
        await self._done.wait()

    def _submit(self, coro):
        if self.loop is None or not self.loop_ready.is_set() or self.loop.is_closed():
            coro.close()
            logger.warning("Network loop is not running")
            return None
        return asyncio.run_coroutine_threadsafe(coro, self.loop)

    def send_text(self, recipient: str, body: str):
        """Queue a message; returns a concurrent.futures.Future or None."""
        return self._submit(self.client.send_text(recipient, body))

    def retry_join(self, username: str):
        self.username = username
        return self._submit(self.client.join(username))

    def disconnect(self):
        """Send leave and stop the network loop."""
        return self._submit(self._disconnect())

    async def _disconnect(self):
        await self.client.disconnect()
        if self._done is not None:
            self._done.set()
