"""
Protocol definitions for the LAN chat broker.

This module defines the envelope exchanged between client and server and its
wire form: one JSON object per line, carrying the ``type`` tag and only the
fields that kind uses.
"""

import json
from dataclasses import dataclass
from typing import Any, Dict, Iterable, Optional, Tuple

from common.constants import (
    BROADCAST, DELIMITER, ENCODING, SYSTEM_SENDER, MessageTypes
)


class MalformedEnvelopeError(ValueError):
    """Raised when a line read off the wire is not a valid envelope."""


@dataclass(frozen=True)
class Envelope:
    """One protocol message. ``kind`` decides which fields are meaningful."""
    kind: str
    sender: Optional[str] = None
    recipient: Optional[str] = None
    body: Optional[str] = None
    reason: Optional[str] = None
    names: Optional[Tuple[str, ...]] = None

    @property
    def is_broadcast(self) -> bool:
        """True when the recipient means every member."""
        return not self.recipient or self.recipient == BROADCAST


# Fields carried on the wire for each kind (besides ``type``)
_WIRE_FIELDS = {
    MessageTypes.JOIN: ('sender',),
    MessageTypes.LEAVE: ('sender',),
    MessageTypes.TEXT: ('sender', 'recipient', 'body'),
    MessageTypes.ROSTER: ('names',),
    MessageTypes.ERROR: ('sender', 'recipient', 'reason'),
}


def create_join_message(username: str) -> Envelope:
    """Create a join (handshake) message."""
    return Envelope(kind=MessageTypes.JOIN, sender=username)


def create_leave_message(username: str) -> Envelope:
    """Create a leave message."""
    return Envelope(kind=MessageTypes.LEAVE, sender=username)


def create_text_message(sender: str, recipient: str, body: str) -> Envelope:
    """Create a text message for one member or for ``BROADCAST``."""
    return Envelope(kind=MessageTypes.TEXT, sender=sender, recipient=recipient, body=body)


def create_roster_message(names: Iterable[str]) -> Envelope:
    """Create a roster message. Names are sorted so equal rosters compare equal."""
    return Envelope(kind=MessageTypes.ROSTER, names=tuple(sorted(names)))


def create_error_message(recipient: str, reason: str, sender: str = '') -> Envelope:
    """Create an error message addressed to ``recipient``."""
    return Envelope(kind=MessageTypes.ERROR, sender=sender, recipient=recipient, reason=reason)


def create_system_notice(text: str) -> Envelope:
    """Create a server notice delivered to every member."""
    return create_text_message(SYSTEM_SENDER, BROADCAST, text)


def create_user_joined_notice(username: str) -> Envelope:
    return create_system_notice(f"{username} has joined")


def create_user_left_notice(username: str) -> Envelope:
    return create_system_notice(f"{username} has left")


def envelope_to_dict(envelope: Envelope) -> Dict[str, Any]:
    """Convert an envelope to its wire dictionary."""
    try:
        fields = _WIRE_FIELDS[envelope.kind]
    except KeyError:
        raise MalformedEnvelopeError(f"Unknown message type: {envelope.kind!r}") from None

    data: Dict[str, Any] = {"type": envelope.kind}
    for field in fields:
        value = getattr(envelope, field)
        if field == 'names':
            value = list(value or ())
        elif value is None:
            value = ''
        data[field] = value
    return data


def envelope_from_dict(data: Any) -> Envelope:
    """
    Build an envelope from a wire dictionary.

    Only the fields of the given kind are read; anything else in the
    dictionary is ignored.
    """
    if not isinstance(data, dict):
        raise MalformedEnvelopeError("Envelope must be a JSON object")

    kind = data.get('type')
    fields = _WIRE_FIELDS.get(kind)
    if fields is None:
        raise MalformedEnvelopeError(f"Unknown message type: {kind!r}")

    values: Dict[str, Any] = {}
    for field in fields:
        if field not in data:
            raise MalformedEnvelopeError(f"Missing field '{field}' for {kind} message")
        value = data[field]
        if field == 'names':
            if not isinstance(value, list) or not all(isinstance(n, str) for n in value):
                raise MalformedEnvelopeError("Roster names must be a list of strings")
            value = tuple(value)
        elif not isinstance(value, str):
            raise MalformedEnvelopeError(f"Field '{field}' must be a string")
        values[field] = value

    return Envelope(kind=kind, **values)


def encode_envelope(envelope: Envelope) -> bytes:
    """Serialize an envelope to one newline-terminated line."""
    return json.dumps(envelope_to_dict(envelope), ensure_ascii=False).encode(ENCODING) + DELIMITER


def decode_envelope(line: bytes) -> Envelope:
    """Parse one line produced by :func:`encode_envelope`."""
    try:
        data = json.loads(line.decode(ENCODING).strip())
    except (UnicodeDecodeError, json.JSONDecodeError) as e:
        raise MalformedEnvelopeError(f"Malformed JSON: {e}") from e
    return envelope_from_dict(data)
