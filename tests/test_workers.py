from __future__ import annotations

import json
import queue
import random
import tempfile
import threading
import unittest
from pathlib import Path

from services.command_tree import SnapshotDecoder
from services.ui_bridge import Patch, UiBridge
from services.worker_bus import WorkerBus
from services.worker_commands import DemoRobotCommands
from services.worker_registry import WorkerRegistry
from services.worker_topics import WorkerTopics
from services.workers.demo_robot_worker import DemoRobotWorker, build_demo_snapshot
from services.workers.log_replay_worker import LogReplayWorker, load_replay_log


def _drain(q: "queue.Queue") -> list:
    items = []
    while True:
        try:
            items.append(q.get_nowait())
        except queue.Empty:
            return items


def _worker_kwargs(name: str, bridge: UiBridge, bus: WorkerBus) -> dict:
    return {
        "name": name,
        "bridge": bridge,
        "worker_bus": bus,
        "commands": queue.Queue(),
        "stop": threading.Event(),
        "send_cmd": lambda *_a: None,
    }


class DemoSnapshotTests(unittest.TestCase):
    def test_every_tick_decodes_cleanly(self) -> None:
        decoder = SnapshotDecoder()
        for tick in range(0, 240, 7):
            result = decoder.decode(json.dumps(build_demo_snapshot(tick)))
            self.assertIsNone(result.error)
            self.assertEqual(result.issues, ())
            self.assertEqual([s.name for s in result.snapshot.subsystems], ["Drive", "Arm", "Intake"])
            self.assertEqual(len(result.snapshot.scheduled), 2)

    def test_flicker_only_turns_leaves_off(self) -> None:
        steady = build_demo_snapshot(5)
        noisy = build_demo_snapshot(5, random.Random(1), flicker=1.0)

        drive_steady = steady["subsystems"][0]["command"]["commands"]
        drive_noisy = noisy["subsystems"][0]["command"]["commands"]
        for a, b in zip(drive_steady, drive_noisy):
            self.assertEqual(a["name"], b["name"])
            self.assertFalse(b["active"])
        # LEDs is always on and not subject to flicker
        self.assertTrue(noisy["scheduled"][1]["active"])


class DemoRobotWorkerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.bus = WorkerBus()
        self.bridge = UiBridge()
        self.sub = self.bus.subscribe(WorkerTopics.VALUE_CHANGED)
        self.worker = DemoRobotWorker(key="commands/demo", seed=3, **_worker_kwargs("demo_robot", self.bridge, self.bus))

    def test_publish_once_puts_json_on_bus(self) -> None:
        raw = self.worker.publish_once()

        messages = _drain(self.sub.queue)
        self.assertEqual(len(messages), 1)
        self.assertEqual(messages[0].payload["key"], "commands/demo")
        self.assertEqual(messages[0].payload["value"], raw)
        self.assertIn("ts", messages[0].payload)
        self.assertEqual(self.worker.tick, 1)

    def test_commands_toggle_publishing(self) -> None:
        self.worker.commands.put((str(DemoRobotCommands.STOP), {}))
        self.worker.commands.put(("bogus", {}))
        self.worker.dispatch_commands({
            DemoRobotCommands.START: self.worker._on_start,
            DemoRobotCommands.STOP: self.worker._on_stop,
            DemoRobotCommands.RESET: self.worker._on_reset,
        })

        self.assertFalse(self.worker.publishing)
        patches = [m for m in _drain(self.bridge._outbox) if isinstance(m, Patch)]
        self.assertEqual(patches[-1].key, "demo_robot_state")
        self.assertFalse(patches[-1].value["running"])


class LogReplayTests(unittest.TestCase):
    def setUp(self) -> None:
        self._tmp = tempfile.TemporaryDirectory()
        self.path = Path(self._tmp.name) / "replay.jsonl"
        self.path.write_text(
            "\n".join([
                json.dumps({"ts": 2.0, "key": "commands", "value": "second"}),
                "not json",
                json.dumps({"ts": 1.0, "key": "commands", "value": "first"}),
                json.dumps({"ts": "x", "key": "commands", "value": "bad"}),
                "",
                json.dumps({"ts": 3.5, "key": "battery", "value": 12.1}),
            ]),
            encoding="utf-8",
        )
        self.bus = WorkerBus()
        self.bridge = UiBridge()
        self.sub = self.bus.subscribe(WorkerTopics.VALUE_CHANGED)

    def tearDown(self) -> None:
        self._tmp.cleanup()

    def _worker(self, loop: bool) -> LogReplayWorker:
        return LogReplayWorker(path=str(self.path), loop=loop, **_worker_kwargs("log_replay", self.bridge, self.bus))

    def test_load_skips_bad_lines_and_sorts(self) -> None:
        records = load_replay_log(str(self.path))
        self.assertEqual([r.value for r in records], ["first", "second", 12.1])

    def test_step_publishes_due_records(self) -> None:
        worker = self._worker(loop=False)
        worker._on_load({})
        worker._on_play({})
        t0 = worker._t0_wall

        self.assertEqual(worker.step(t0), 1)
        self.assertEqual(worker.step(t0 + 1.0), 1)
        self.assertEqual(worker.step(t0 + 1.2), 0)
        self.assertEqual(worker.step(t0 + 2.5), 1)

        values = [m.payload["value"] for m in _drain(self.sub.queue)]
        self.assertEqual(values, ["first", "second", 12.1])
        self.assertFalse(worker.playing)
        self.assertFalse(worker.is_connected())

    def test_loop_rewinds(self) -> None:
        worker = self._worker(loop=True)
        worker._on_load({})
        worker._on_play({})

        worker.step(worker._t0_wall + 10.0)

        self.assertTrue(worker.playing)
        self.assertEqual(worker.position, 0)

    def test_paused_worker_publishes_nothing(self) -> None:
        worker = self._worker(loop=False)
        worker._on_load({})
        worker._on_play({})
        worker._on_pause({})

        self.assertEqual(worker.step(worker._t0_wall + 10.0), 0)

    def test_missing_file_reports_error(self) -> None:
        errors = self.bus.subscribe(WorkerTopics.ERROR)
        worker = self._worker(loop=False)

        worker._on_load({"path": str(self.path) + ".missing"})

        self.assertEqual(worker.records, [])
        self.assertEqual(len(_drain(errors.queue)), 1)


class WorkerRegistryTests(unittest.TestCase):
    def test_start_send_and_stop(self) -> None:
        bridge = UiBridge()
        registry = WorkerRegistry(bridge, WorkerBus())
        registry.start_worker("demo_robot", DemoRobotWorker, autostart=False)

        self.assertTrue(registry.is_running("demo_robot"))
        self.assertTrue(registry.send_to("demo_robot", DemoRobotCommands.RESET))
        self.assertFalse(registry.send_to("missing", DemoRobotCommands.RESET))

        registry.stop_all(join_timeout_s=2.0)
        self.assertFalse(registry.is_running("demo_robot"))


if __name__ == "__main__":
    unittest.main()
