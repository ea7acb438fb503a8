"""
LAN chat server.

HostServer binds the listening socket, spawns one ConnectionTask per accepted
connection and shuts everything down cooperatively on stop().
"""

import asyncio
from typing import Optional, Set

from server.chat.chat_server import ChatServer
from server.chat.connection_task import ConnectionTask
from server.utils.config import ServerConfig
from server.utils.logger import logger


class HostServer:
    """Listener plus the shared ChatServer registry."""

    def __init__(self, config: Optional[ServerConfig] = None):
        self.config = config or ServerConfig()
        self.chat_server = ChatServer()
        self.server: Optional[asyncio.Server] = None
        self.connections: Set[ConnectionTask] = set()
        self._tasks: Set[asyncio.Task] = set()
        self._accepting = False
        self._stopped = asyncio.Event()
        self._stopped.set()

    @property
    def is_running(self) -> bool:
        return self.server is not None

    @property
    def port(self) -> Optional[int]:
        """Port actually bound, which differs from the config when it was 0."""
        if self.server is None or not self.server.sockets:
            return None
        return self.server.sockets[0].getsockname()[1]

    def member_count(self) -> int:
        """Get number of joined clients."""
        return self.chat_server.member_count()

    async def start(self, port: Optional[int] = None) -> bool:
        """Bind and start accepting. Returns False if the port cannot be bound."""
        if self.is_running:
            logger.warning(f"Server already running on port {self.port}")
            return False

        if port is not None:
            self.config.port = port

        try:
            self.server = await asyncio.start_server(
                self.handle_client,
                self.config.host,
                self.config.port,
                limit=self.config.max_message_size
            )
        except OSError as e:
            logger.error(f"Could not start server on port {self.config.port}: {e}")
            return False

        self._accepting = True
        self._stopped.clear()
        logger.log_server_started(self.config.host, self.port)
        return True

    async def handle_client(self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter):
        """Handle individual client connection."""
        if not self._accepting:
            writer.close()
            return

        connection = ConnectionTask(
            reader, writer, self.chat_server,
            max_pending=self.config.max_pending_messages,
            close_timeout=self.config.close_timeout
        )
        task = asyncio.current_task()
        self.connections.add(connection)
        self._tasks.add(task)
        try:
            await connection.run()
        finally:
            self.connections.discard(connection)
            self._tasks.discard(task)

    async def stop(self):
        """Stop accepting, close every connection and wait for the registry to drain."""
        if self.server is None:
            return

        server = self.server
        self.server = None
        self._accepting = False
        server.close()

        # Let handlers for connections accepted just before close() register
        await asyncio.sleep(0)

        connections = list(self.connections)
        logger.info(f"Server shutting down, closing {len(connections)} connection(s)...")
        results = await asyncio.gather(*(c.shutdown() for c in connections), return_exceptions=True)
        for result in results:
            if isinstance(result, Exception):
                logger.log_error("shutdown", result)

        tasks = [t for t in self._tasks if t is not asyncio.current_task()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        await self.chat_server.wait_until_empty()
        await server.wait_closed()

        self._stopped.set()
        logger.log_server_stopped()

    async def serve_until_stopped(self):
        """Block until stop() has completed."""
        await self._stopped.wait()
