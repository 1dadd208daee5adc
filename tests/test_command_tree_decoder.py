from __future__ import annotations

import json
import unittest

from services.command_tree import (
    CommandTreeSnapshot,
    DecodeError,
    GroupCommand,
    LeafCommand,
    SnapshotDecoder,
    Subsystem,
)


DRIVE_PAYLOAD = json.dumps(
    {
        "subsystems": [
            {
                "name": "Drive",
                "command": {
                    "name": "Drive",
                    "commands": [
                        {"name": "Stop", "active": False},
                        {"name": "Turn", "active": True},
                    ],
                },
            }
        ],
        "scheduled": [],
    }
)


class SnapshotDecoderTests(unittest.TestCase):
    def setUp(self) -> None:
        self.decoder = SnapshotDecoder()

    def test_decodes_nested_tree(self) -> None:
        result = self.decoder.decode(DRIVE_PAYLOAD)

        self.assertIsNone(result.error)
        self.assertTrue(result.changed)
        self.assertEqual(result.issues, ())
        expected = CommandTreeSnapshot(
            subsystems=(
                Subsystem(
                    name="Drive",
                    root=GroupCommand(
                        name="Drive",
                        children=(LeafCommand("Stop", False), LeafCommand("Turn", True)),
                    ),
                ),
            ),
            scheduled=(),
        )
        self.assertEqual(result.snapshot, expected)

    def test_absent_sections_mean_empty(self) -> None:
        result = self.decoder.decode("{}")
        self.assertIsNone(result.error)
        self.assertTrue(result.snapshot.is_empty())

    def test_subsystem_without_command_has_no_root(self) -> None:
        result = self.decoder.decode(json.dumps({"subsystems": [{"name": "Arm"}]}))
        self.assertEqual(result.snapshot.subsystems, (Subsystem(name="Arm", root=None),))

    def test_identical_payload_is_not_reparsed(self) -> None:
        first = self.decoder.decode(DRIVE_PAYLOAD)
        second = self.decoder.decode(DRIVE_PAYLOAD)

        self.assertFalse(second.changed)
        self.assertIsNone(second.error)
        self.assertIs(second.snapshot, first.snapshot)

    def test_missing_payload_keeps_previous(self) -> None:
        previous = self.decoder.decode(DRIVE_PAYLOAD).snapshot
        result = self.decoder.decode(None, previous)

        self.assertIsInstance(result.error, DecodeError)
        self.assertFalse(result.changed)
        self.assertIs(result.snapshot, previous)

    def test_invalid_json_keeps_previous(self) -> None:
        previous = self.decoder.decode(DRIVE_PAYLOAD).snapshot
        result = self.decoder.decode("{not json", previous)

        self.assertIsInstance(result.error, DecodeError)
        self.assertIs(result.snapshot, previous)
        # last good payload is still the memo
        self.assertEqual(self.decoder.last_raw, DRIVE_PAYLOAD)

    def test_deeply_nested_payload_keeps_previous(self) -> None:
        previous = self.decoder.decode(DRIVE_PAYLOAD).snapshot
        depth = 2000
        raw = (
            '{"subsystems":[],"scheduled":['
            + '{"name":"a","commands":[' * depth
            + "]}" * depth
            + "]}"
        )

        result = self.decoder.decode(raw, previous)

        self.assertIsInstance(result.error, DecodeError)
        self.assertFalse(result.changed)
        self.assertIs(result.snapshot, previous)
        self.assertEqual(self.decoder.last_raw, DRIVE_PAYLOAD)

    def test_non_object_root_is_an_error(self) -> None:
        result = self.decoder.decode("[1, 2]")
        self.assertIsInstance(result.error, DecodeError)
        self.assertIsNone(result.snapshot)

    def test_non_list_sections_are_errors(self) -> None:
        self.assertIsNotNone(self.decoder.decode('{"subsystems": {}}').error)
        self.assertIsNotNone(self.decoder.decode('{"scheduled": "x"}').error)

    def test_malformed_nodes_are_skipped_with_siblings_kept(self) -> None:
        payload = json.dumps(
            {
                "scheduled": [
                    {"name": "Good", "active": True},
                    {"name": "Both", "active": True, "commands": []},
                    {"name": "Neither"},
                    {"active": True},
                    {"name": "BadActive", "active": "yes"},
                    {"name": "BadChildren", "commands": {}},
                    42,
                    {
                        "name": "Group",
                        "commands": [{"name": "Inner", "active": False}, {"name": "Broken"}],
                    },
                ]
            }
        )
        result = self.decoder.decode(payload)

        self.assertIsNone(result.error)
        self.assertEqual(
            result.snapshot.scheduled,
            (
                LeafCommand("Good", True),
                GroupCommand("Group", (LeafCommand("Inner", False),)),
            ),
        )
        self.assertEqual(len(result.issues), 7)
        paths = [issue.path for issue in result.issues]
        self.assertIn("scheduled[1]", paths)
        self.assertIn("scheduled[7].commands[1]", paths)

    def test_subsystem_without_name_is_skipped(self) -> None:
        payload = json.dumps({"subsystems": [{"command": {"name": "X", "active": True}}, {"name": "Arm"}]})
        result = self.decoder.decode(payload)

        self.assertEqual([s.name for s in result.snapshot.subsystems], ["Arm"])
        self.assertEqual(result.issues[0].path, "subsystems[0]")

    def test_reset_forgets_memo(self) -> None:
        self.decoder.decode(DRIVE_PAYLOAD)
        self.decoder.reset()

        self.assertIsNone(self.decoder.last_raw)
        self.assertTrue(self.decoder.decode(DRIVE_PAYLOAD).changed)


if __name__ == "__main__":
    unittest.main()
