from __future__ import annotations

import unittest

from services.command_tree import ActivePhase, ActiveStateStore

from tests.fakes import ManualScheduler


NODE = "subsystem-0/Drive/0/Stop"


class ActiveStateStoreTests(unittest.TestCase):
    def setUp(self) -> None:
        self.scheduler = ManualScheduler()
        self.deactivated: list[str] = []
        self.store = ActiveStateStore(self.scheduler, delay_ms=100, on_deactivate=self.deactivated.append)

    def test_unknown_node_is_inactive(self) -> None:
        self.assertEqual(self.store.phase(NODE), ActivePhase.INACTIVE)
        self.assertFalse(self.store.display(NODE))
        self.assertFalse(self.store.update(NODE, False))
        self.assertEqual(self.scheduler.armed, 0)

    def test_activation_is_immediate(self) -> None:
        self.assertTrue(self.store.update(NODE, True))
        self.assertEqual(self.store.phase(NODE), ActivePhase.ACTIVE_HELD)
        self.assertEqual(self.scheduler.pending, 0)

    def test_deactivation_is_held_until_timer(self) -> None:
        self.store.update(NODE, True)

        self.assertTrue(self.store.update(NODE, False))
        self.assertEqual(self.store.phase(NODE), ActivePhase.PENDING_DEACTIVATE)
        self.assertEqual(self.store.pending_ids(), [NODE])

        self.scheduler.advance(99)
        self.assertTrue(self.store.display(NODE))
        self.assertEqual(self.deactivated, [])

        self.scheduler.advance(1)
        self.assertEqual(self.store.phase(NODE), ActivePhase.INACTIVE)
        self.assertEqual(self.deactivated, [NODE])

    def test_repeated_inactive_does_not_restart_timer(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)
        self.scheduler.advance(60)
        self.store.update(NODE, False)
        self.store.update(NODE, False)

        self.assertEqual(self.scheduler.armed, 1)
        self.scheduler.advance(40)
        self.assertFalse(self.store.display(NODE))
        self.assertEqual(self.deactivated, [NODE])

    def test_reactivation_cancels_pending_timer(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)

        self.assertTrue(self.store.update(NODE, True))
        self.assertEqual(self.store.phase(NODE), ActivePhase.ACTIVE_HELD)
        self.assertEqual(self.scheduler.pending, 0)

        self.scheduler.advance(500)
        self.assertTrue(self.store.display(NODE))
        self.assertEqual(self.deactivated, [])

    def test_flicker_never_displays_false(self) -> None:
        displayed = [self.store.update(NODE, True)]
        for observed in (False, True, False, True, False, True):
            self.scheduler.advance(20)
            displayed.append(self.store.update(NODE, observed))

        self.assertTrue(all(displayed))
        self.assertEqual(self.deactivated, [])

    def test_stale_timer_callback_is_ignored(self) -> None:
        captured = []

        class _KeepingScheduler(ManualScheduler):
            def cancel(self, token):
                # leave the callback queued to simulate a timer that already fired
                captured.append(token)

        scheduler = _KeepingScheduler()
        store = ActiveStateStore(scheduler, delay_ms=100, on_deactivate=self.deactivated.append)
        store.update(NODE, True)
        store.update(NODE, False)
        store.update(NODE, True)

        scheduler.advance(100)

        self.assertEqual(captured, [1])
        self.assertEqual(store.phase(NODE), ActivePhase.ACTIVE_HELD)
        self.assertEqual(self.deactivated, [])

    def test_cancel_missing_resets_unseen_entries(self) -> None:
        other = "subsystem-1/Arm"
        self.store.update(NODE, True)
        self.store.update(NODE, False)
        self.store.update(other, True)

        dropped = self.store.cancel_missing([])

        self.assertEqual(dropped, 2)
        self.assertEqual(self.store.phase(NODE), ActivePhase.INACTIVE)
        self.assertEqual(self.store.phase(other), ActivePhase.INACTIVE)
        self.assertFalse(self.store.update(other, False))
        self.assertEqual(self.scheduler.pending, 0)

    def test_cancel_missing_keeps_seen_nodes(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)

        self.assertEqual(self.store.cancel_missing([NODE]), 0)
        self.assertEqual(self.scheduler.pending, 1)

    def test_serialize_and_restore(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)
        self.store.update("a/b", False)

        fresh = ActiveStateStore(ManualScheduler())
        fresh.restore_from(self.store.serialize())

        self.assertEqual(fresh.phase(NODE), ActivePhase.ACTIVE_HELD)
        self.assertEqual(fresh.phase("a/b"), ActivePhase.INACTIVE)

    def test_restore_cancels_pending_timer(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)

        self.store.restore_from([(NODE, False)])

        self.assertEqual(self.scheduler.pending, 0)
        self.assertEqual(self.store.phase(NODE), ActivePhase.INACTIVE)
        self.assertEqual(self.deactivated, [NODE])

    def test_restore_of_unlit_entry_does_not_notify(self) -> None:
        self.store.restore_from([(NODE, False)])
        self.store.restore_from([(NODE, True)])

        self.assertEqual(self.deactivated, [])
        self.assertTrue(self.store.display(NODE))

    def test_dispose_cancels_timers(self) -> None:
        self.store.update(NODE, True)
        self.store.update(NODE, False)

        self.store.dispose()
        self.scheduler.advance(200)

        self.assertEqual(self.scheduler.pending, 0)
        self.assertEqual(self.deactivated, [])


if __name__ == "__main__":
    unittest.main()
