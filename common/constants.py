"""
Shared constants for the LAN chat broker.

This module contains all constants used across client and server components.
"""

# Network Configuration
DEFAULT_HOST = 'localhost'
DEFAULT_SERVER_HOST = '0.0.0.0'
DEFAULT_PORT = 5000
MIN_PORT = 1024
MAX_PORT = 65535

# Framing
ENCODING = 'utf-8'
DELIMITER = b'\n'
MAX_MESSAGE_SIZE = 1024 * 1024  # one envelope per line, 1MB max
MAX_PENDING_MESSAGES = 256      # outbound envelopes queued per client before it is dropped
CLOSE_TIMEOUT = 1.0             # seconds to flush a closing connection before aborting it

# Usernames
MAX_USERNAME_LENGTH = 20

# Reserved tokens
BROADCAST = 'Broadcast'          # recipient meaning "every member"
SYSTEM_SENDER = 'Server'         # sender of join/leave notices and shutdown
USERNAME_TAKEN = 'USERNAME_TAKEN'

# Logging
LOG_DIR = 'logs'
SERVER_LOG_FILE = 'chat_server.log'


# Message Types
class MessageTypes:
    JOIN = 'join'
    LEAVE = 'leave'
    TEXT = 'text'
    ROSTER = 'roster'
    ERROR = 'error'

    ALL = (JOIN, LEAVE, TEXT, ROSTER, ERROR)
