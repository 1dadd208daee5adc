from __future__ import annotations

from typing import Any

from loguru import logger

from services.command_tree.active_store import DEFAULT_DEACTIVATE_DELAY_MS, ActiveStateStore
from services.command_tree.decoder import DecodeResult, SnapshotDecoder
from services.command_tree.expansion_store import ExpansionStateStore
from services.command_tree.models import CommandTreeSnapshot, CommandsRenderCommand
from services.command_tree.reconciler import RenderSink, TreeReconciler
from services.command_tree.scheduler import Scheduler


class CommandsView:
    """
    One commands tab: owns the decoder, both state stores and the reconciler for a sink.

    The sink is injected once and used only by this view.
    """

    def __init__(
        self,
        sink: RenderSink,
        scheduler: Scheduler,
        *,
        deactivate_delay_ms: int = DEFAULT_DEACTIVATE_DELAY_MS,
    ) -> None:
        self._sink = sink
        self._decoder = SnapshotDecoder()
        self.expansion = ExpansionStateStore()
        self.active = ActiveStateStore(scheduler, delay_ms=deactivate_delay_ms)
        self._reconciler = TreeReconciler(sink, self.expansion, self.active)
        self._snapshot: CommandTreeSnapshot | None = None
        self._placeholder_visible: bool | None = None
        self._log = logger.bind(component="CommandsView")

    @property
    def snapshot(self) -> CommandTreeSnapshot | None:
        return self._snapshot

    @property
    def reconciler(self) -> TreeReconciler:
        return self._reconciler

    def get_aspect_ratio(self) -> float | None:
        return None

    # ------------------------------------------------------------------ frame

    def render(self, command: CommandsRenderCommand) -> DecodeResult | None:
        """Render one frame. Returns the decode result, or None when no source key exists."""
        if not command.key_available:
            self._show_placeholder(True)
            return None

        result = self._decoder.decode(command.json, self._snapshot)
        if result.error is not None:
            return result

        self._show_placeholder(False)
        if result.changed:
            self._snapshot = result.snapshot
            self._reconciler.render(result.snapshot)
        return result

    def refresh(self) -> None:
        """Rebuild from the last good snapshot (e.g. after a restore)."""
        if self._snapshot is not None:
            self._reconciler.render(self._snapshot)

    def dispose(self) -> None:
        self.active.dispose()

    def _show_placeholder(self, visible: bool) -> None:
        if self._placeholder_visible == visible:
            return
        self._placeholder_visible = visible
        self._sink.set_placeholder_visible(visible)

    # ------------------------------------------------------------------ state

    def save_state(self) -> dict[str, list[list[Any]]]:
        # timers are not persisted; a pending deactivation is saved as still active
        return {
            "expansion": [[k, v] for k, v in self.expansion.serialize()],
            "active": [[k, v] for k, v in self.active.serialize()],
        }

    def restore_state(self, state: Any) -> None:
        if not isinstance(state, dict):
            return

        expansion = _pairs(state.get("expansion"))
        if expansion is not None:
            self.expansion.restore_from(expansion)

        active = _pairs(state.get("active"))
        if active is not None:
            self.active.restore_from(active)

        self._log.debug(
            f"[restore_state] - state_restored - expansion={len(expansion or [])} active={len(active or [])}"
        )


def _pairs(raw: Any) -> list[tuple[str, bool]] | None:
    if not isinstance(raw, list):
        return None
    out: list[tuple[str, bool]] = []
    for item in raw:
        if isinstance(item, (list, tuple)) and len(item) == 2 and isinstance(item[0], str):
            out.append((item[0], bool(item[1])))
    return out
