#!/usr/bin/env python3
"""
Unit tests for the envelope type and its wire form.
"""

import json
import unittest

from common.constants import BROADCAST, SYSTEM_SENDER, USERNAME_TAKEN, MessageTypes
from common.protocol_definitions import (
    Envelope, MalformedEnvelopeError, create_error_message, create_join_message,
    create_leave_message, create_roster_message, create_text_message,
    create_user_joined_notice, create_user_left_notice, decode_envelope,
    encode_envelope, envelope_to_dict
)


class TestEnvelopeConstruction(unittest.TestCase):
    """Factories only set the fields their kind uses."""

    def test_join_sets_only_sender(self):
        env = create_join_message("alice")
        self.assertEqual(env.kind, MessageTypes.JOIN)
        self.assertEqual(env.sender, "alice")
        self.assertIsNone(env.recipient)
        self.assertIsNone(env.body)
        self.assertIsNone(env.names)

    def test_roster_names_are_sorted_tuple(self):
        env = create_roster_message({"carol", "alice", "bob"})
        self.assertEqual(env.names, ("alice", "bob", "carol"))
        self.assertIsNone(env.sender)

    def test_error_addressed_to_attempted_name(self):
        env = create_error_message("alice", USERNAME_TAKEN)
        self.assertEqual(env.recipient, "alice")
        self.assertEqual(env.reason, USERNAME_TAKEN)
        self.assertEqual(env.sender, "")

    def test_envelope_is_immutable(self):
        env = create_text_message("alice", "bob", "hi")
        with self.assertRaises(AttributeError):
            env.body = "changed"

    def test_is_broadcast(self):
        self.assertTrue(create_text_message("a", BROADCAST, "x").is_broadcast)
        self.assertTrue(create_text_message("a", "", "x").is_broadcast)
        self.assertFalse(create_text_message("a", "bob", "x").is_broadcast)
        # Exact match only
        self.assertFalse(create_text_message("a", "broadcast", "x").is_broadcast)

    def test_system_notices(self):
        joined = create_user_joined_notice("bob")
        self.assertEqual((joined.sender, joined.recipient, joined.body), (SYSTEM_SENDER, BROADCAST, "bob has joined"))
        self.assertEqual(create_user_left_notice("bob").body, "bob has left")


class TestWireFormat(unittest.TestCase):
    """encode_envelope/decode_envelope are symmetric."""

    def test_round_trip_keeps_every_field(self):
        for env in (
            create_join_message("alice"),
            create_leave_message("alice"),
            create_text_message("alice", "bob", "héllo\nworld"),
            create_roster_message(["bob", "alice"]),
            create_error_message("alice", USERNAME_TAKEN),
        ):
            with self.subTest(kind=env.kind):
                self.assertEqual(decode_envelope(encode_envelope(env)), env)

    def test_one_line_per_envelope(self):
        data = encode_envelope(create_text_message("a", "b", "line1\nline2"))
        self.assertTrue(data.endswith(b"\n"))
        self.assertEqual(data.count(b"\n"), 1)

    def test_only_kind_fields_on_wire(self):
        self.assertEqual(envelope_to_dict(create_join_message("alice")), {"type": "join", "sender": "alice"})
        self.assertEqual(envelope_to_dict(create_roster_message([])), {"type": "roster", "names": []})

    def test_unused_fields_are_ignored_on_decode(self):
        line = json.dumps({"type": "join", "sender": "alice", "body": "ignored"}).encode() + b"\n"
        self.assertEqual(decode_envelope(line), Envelope(kind="join", sender="alice"))

    def test_malformed_lines_rejected(self):
        bad_lines = [
            b"not json\n",
            b"[1, 2]\n",
            b'{"type": "shout", "sender": "a"}\n',
            b'{"type": "text", "sender": "a", "body": "x"}\n',
            b'{"type": "join", "sender": 5}\n',
            b'{"type": "roster", "names": "alice"}\n',
            b"\xff\xfe\n",
        ]
        for line in bad_lines:
            with self.subTest(line=line):
                with self.assertRaises(MalformedEnvelopeError):
                    decode_envelope(line)

    def test_malformed_error_is_value_error(self):
        self.assertTrue(issubclass(MalformedEnvelopeError, ValueError))


if __name__ == "__main__":
    unittest.main()
