"""
Client configuration module.

This module handles client-side configuration settings.
"""

from typing import Optional

from common.constants import DEFAULT_HOST, DEFAULT_PORT, MAX_MESSAGE_SIZE


class ClientConfig:
    """Client configuration class."""

    def __init__(self, host: str = DEFAULT_HOST, port: int = DEFAULT_PORT, username: Optional[str] = None):
        self.host = host
        self.port = port
        self.username = username

        # Connection settings
        self.connect_attempts = 3
        self.retry_delay_base = 0.5  # seconds, doubled after every failed attempt
        self.max_message_size = MAX_MESSAGE_SIZE
