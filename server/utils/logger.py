"""
Server logging module.

This module handles server-side logging functionality.
"""

import logging
from pathlib import Path
from typing import Optional


class ServerLogger:
    """Server logging class."""

    def __init__(self, log_level: int = logging.INFO):
        # Set up main logger
        self.logger = logging.getLogger('chat_server')
        self.logger.setLevel(log_level)

        # Remove existing handlers
        for handler in self.logger.handlers[:]:
            self.logger.removeHandler(handler)

        # Create formatter
        self.formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        # Create console handler
        self.console_handler = logging.StreamHandler()
        self.console_handler.setLevel(log_level)
        self.console_handler.setFormatter(self.formatter)
        self.logger.addHandler(self.console_handler)

        self.file_handler: Optional[logging.FileHandler] = None

    def configure(self, log_level: int = logging.INFO, log_file: Optional[str] = None):
        """Change the log level and optionally mirror output to a file."""
        self.logger.setLevel(log_level)
        self.console_handler.setLevel(log_level)

        if self.file_handler is not None:
            self.logger.removeHandler(self.file_handler)
            self.file_handler.close()
            self.file_handler = None

        if log_file:
            path = Path(log_file)
            path.parent.mkdir(parents=True, exist_ok=True)
            self.file_handler = logging.FileHandler(path, encoding='utf-8')
            self.file_handler.setLevel(log_level)
            self.file_handler.setFormatter(self.formatter)
            self.logger.addHandler(self.file_handler)

    def info(self, message: str):
        """Log info message."""
        self.logger.info(message)

    def error(self, message: str):
        """Log error message."""
        self.logger.error(message)

    def warning(self, message: str):
        """Log warning message."""
        self.logger.warning(message)

    def debug(self, message: str):
        """Log debug message."""
        self.logger.debug(message)

    def log_server_started(self, host: str, port: int):
        self.info(f"Server started on {host}:{port}")

    def log_server_stopped(self):
        self.info("Server stopped")

    def log_connection(self, addr):
        """Log client connection."""
        self.info(f"New connection from {addr}")

    def log_join(self, username: str, addr, total: int):
        """Log accepted join."""
        self.info(f"User '{username}' joined from {addr} (Total: {total})")

    def log_join_rejected(self, username: str, addr):
        """Log join rejected because the name is in use."""
        self.warning(f"Username '{username}' already taken, rejected join from {addr}")

    def log_leave(self, username: str, total: int):
        """Log member removal."""
        self.info(f"User '{username}' left (Total: {total})")

    def log_route(self, sender: str, recipient: str):
        """Log a direct message delivery."""
        self.debug(f"Message routed from {sender} to {recipient}")

    def log_route_miss(self, sender: str, recipient: str):
        """Log a message dropped because the recipient is not connected."""
        self.warning(f"Recipient not found: {recipient} (from {sender}), message dropped")

    def log_broadcast(self, kind: str, sender: Optional[str], count: int):
        """Log a fan-out to every member."""
        self.debug(f"[BROADCAST] {kind} from {sender or '-'} to {count} clients")

    def log_roster(self, names):
        self.debug(f"User list broadcast: {list(names)}")

    def log_error(self, operation: str, error: Exception):
        """Log error with operation context."""
        self.error(f"Error in {operation}: {error}")


# Global logger instance
logger = ServerLogger()
