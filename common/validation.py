"""
Input validation helpers used by the launchers before talking to the core.
"""

import ipaddress
from typing import Optional, Union

from common.constants import MAX_PORT, MAX_USERNAME_LENGTH, MIN_PORT


def is_valid_port(port: Union[str, int, None]) -> bool:
    """Check that ``port`` is an integer in the non-privileged range."""
    if port is None or isinstance(port, bool):
        return False
    try:
        value = int(str(port).strip())
    except ValueError:
        return False
    return MIN_PORT <= value <= MAX_PORT


def is_valid_username(username: Optional[str]) -> bool:
    """Usernames must be non-blank and at most MAX_USERNAME_LENGTH characters."""
    return bool(username and username.strip()) and len(username) <= MAX_USERNAME_LENGTH


def is_valid_ip_address(address: Optional[str]) -> bool:
    """Accept 'localhost' or a dotted-quad IPv4 address."""
    if not address or not address.strip():
        return False
    address = address.strip()
    if address == 'localhost':
        return True

    try:
        ipaddress.IPv4Address(address)
    except ValueError:
        return False
    return True
