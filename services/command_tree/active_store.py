from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from typing import Callable, Iterable, Optional

from loguru import logger

from services.command_tree.scheduler import Scheduler, TimerToken


DEFAULT_DEACTIVATE_DELAY_MS = 100

DeactivateListener = Callable[[str], None]


class ActivePhase(StrEnum):
    INACTIVE = "inactive"
    ACTIVE_HELD = "active_held"
    PENDING_DEACTIVATE = "pending_deactivate"


@dataclass
class ActiveEntry:
    phase: ActivePhase = ActivePhase.INACTIVE
    timer: Optional[TimerToken] = None
    generation: int = 0

    @property
    def display(self) -> bool:
        return self.phase is not ActivePhase.INACTIVE


class ActiveStateStore:
    """
    Debounced "running" highlight per node.

    Activation shows immediately. Deactivation is held for ``delay_ms`` and only
    applied by the timer, so activity that flickers within a poll cycle never
    blinks the highlight off. A pending timer is not restarted by further inactive
    observations.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        *,
        delay_ms: int = DEFAULT_DEACTIVATE_DELAY_MS,
        on_deactivate: Optional[DeactivateListener] = None,
    ) -> None:
        self._scheduler = scheduler
        self._delay_ms = int(delay_ms)
        self._entries: dict[str, ActiveEntry] = {}
        self._on_deactivate = on_deactivate
        self._log = logger.bind(component="ActiveStateStore")

    @property
    def delay_ms(self) -> int:
        return self._delay_ms

    def set_listener(self, listener: Optional[DeactivateListener]) -> None:
        self._on_deactivate = listener

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._entries

    def phase(self, node_id: str) -> ActivePhase:
        entry = self._entries.get(node_id)
        return entry.phase if entry else ActivePhase.INACTIVE

    def display(self, node_id: str) -> bool:
        entry = self._entries.get(node_id)
        return entry.display if entry else False

    def pending_ids(self) -> list[str]:
        return [k for k, e in self._entries.items() if e.phase is ActivePhase.PENDING_DEACTIVATE]

    # ------------------------------------------------------------------ transitions

    def update(self, node_id: str, observed: bool) -> bool:
        """Feed one instantaneous observation; returns what should be displayed."""
        entry = self._entries.get(node_id)
        if entry is None:
            entry = ActiveEntry()
            self._entries[node_id] = entry

        match (entry.phase, bool(observed)):
            case (ActivePhase.INACTIVE, True):
                entry.phase = ActivePhase.ACTIVE_HELD
            case (ActivePhase.ACTIVE_HELD, False):
                entry.phase = ActivePhase.PENDING_DEACTIVATE
                self._arm(node_id, entry)
            case (ActivePhase.PENDING_DEACTIVATE, True):
                self._cancel(entry)
                entry.phase = ActivePhase.ACTIVE_HELD
            case _:
                # INACTIVE/false, ACTIVE_HELD/true, PENDING_DEACTIVATE/false: no change
                pass

        return entry.display

    def cancel_missing(self, seen: Iterable[str]) -> int:
        """
        Reset every displayed node that was not part of the last pass.

        Pending timers are cancelled, and held entries go inactive too: a
        different command that later lands on the same id starts unlit.
        """
        seen_ids = set(seen)
        dropped = 0
        for node_id, entry in self._entries.items():
            if node_id in seen_ids or entry.phase is ActivePhase.INACTIVE:
                continue
            self._cancel(entry)
            entry.phase = ActivePhase.INACTIVE
            dropped += 1
        if dropped:
            self._log.debug(f"[cancel_missing] - unseen_entries_reset - count={dropped}")
        return dropped

    def dispose(self) -> None:
        for entry in self._entries.values():
            self._cancel(entry)
            if entry.phase is ActivePhase.PENDING_DEACTIVATE:
                entry.phase = ActivePhase.INACTIVE

    # ------------------------------------------------------------------ persistence

    def serialize(self) -> list[tuple[str, bool]]:
        return [(node_id, entry.display) for node_id, entry in self._entries.items()]

    def restore_from(self, pairs: Iterable[tuple[str, bool]]) -> None:
        for node_id, active in pairs:
            key = str(node_id)
            entry = self._entries.setdefault(key, ActiveEntry())
            was_displayed = entry.display
            self._cancel(entry)
            entry.phase = ActivePhase.ACTIVE_HELD if active else ActivePhase.INACTIVE
            if was_displayed and not entry.display and self._on_deactivate is not None:
                self._on_deactivate(key)

    # ------------------------------------------------------------------ timers

    def _arm(self, node_id: str, entry: ActiveEntry) -> None:
        entry.generation += 1
        generation = entry.generation

        def _fire() -> None:
            self._on_timer(node_id, generation)

        entry.timer = self._scheduler.arm(self._delay_ms, _fire)

    def _cancel(self, entry: ActiveEntry) -> None:
        if entry.timer is not None:
            self._scheduler.cancel(entry.timer)
            entry.timer = None
        # any callback already queued for the old generation becomes a no-op
        entry.generation += 1

    def _on_timer(self, node_id: str, generation: int) -> None:
        entry = self._entries.get(node_id)
        if entry is None or entry.generation != generation:
            return
        if entry.phase is not ActivePhase.PENDING_DEACTIVATE:
            return

        entry.phase = ActivePhase.INACTIVE
        entry.timer = None
        if self._on_deactivate is not None:
            self._on_deactivate(node_id)
