from __future__ import annotations

import unittest

from services.worker_bus import WorkerBus
from services.worker_topics import WorkerTopics


class WorkerBusTests(unittest.TestCase):
    def test_messages_reach_only_their_topic(self) -> None:
        bus = WorkerBus()
        values = bus.subscribe(WorkerTopics.VALUE_CHANGED)
        errors = bus.subscribe(WorkerTopics.ERROR)

        bus.publish(WorkerTopics.VALUE_CHANGED, source="w", source_id="w", key="commands", value="{}")

        msg = values.queue.get_nowait()
        self.assertEqual(msg.topic, WorkerTopics.VALUE_CHANGED.value)
        self.assertEqual(msg.payload, {"key": "commands", "value": "{}"})
        self.assertTrue(values.queue.empty())
        self.assertTrue(errors.queue.empty())

    def test_every_subscriber_gets_a_copy(self) -> None:
        bus = WorkerBus()
        first = bus.subscribe(WorkerTopics.VALUE_CHANGED)
        second = bus.subscribe("VALUE_CHANGED")

        bus.publish(WorkerTopics.VALUE_CHANGED, source="w", source_id="w", key="commands", value="{}")

        self.assertEqual(first.queue.qsize(), 1)
        self.assertEqual(second.queue.qsize(), 1)

    def test_close_is_idempotent(self) -> None:
        bus = WorkerBus()
        sub = bus.subscribe(WorkerTopics.VALUE_CHANGED)
        sub.close()
        sub.close()

        self.assertTrue(sub.closed)
        bus.publish(WorkerTopics.VALUE_CHANGED, source="w", source_id="w")
        self.assertTrue(sub.queue.empty())


if __name__ == "__main__":
    unittest.main()
