"""
Server configuration module.

This module handles server-side configuration settings.
"""

import logging
import os
from typing import Optional

from common.constants import (
    CLOSE_TIMEOUT, DEFAULT_SERVER_HOST, DEFAULT_PORT, LOG_DIR, MAX_MESSAGE_SIZE,
    MAX_PENDING_MESSAGES, SERVER_LOG_FILE
)


class ServerConfig:
    """Server configuration class."""

    def __init__(self, host: str = DEFAULT_SERVER_HOST, port: int = DEFAULT_PORT,
                 log_level: int = logging.INFO, log_file: Optional[str] = None):
        self.host = host
        self.port = port

        # Logging configuration
        self.log_level = log_level
        self.log_file = log_file

        # Connection settings
        self.max_message_size = MAX_MESSAGE_SIZE
        self.max_pending_messages = MAX_PENDING_MESSAGES
        self.close_timeout = CLOSE_TIMEOUT

    @staticmethod
    def default_log_file() -> str:
        """Path used when the launcher asks for file logging without a name."""
        return os.path.join(LOG_DIR, SERVER_LOG_FILE)
