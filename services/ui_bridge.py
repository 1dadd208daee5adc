from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from typing import Any

from nicegui import ui
from loguru import logger


# ---------- worker -> UI messages (bridge inbox) ----------
@dataclass(frozen=True)
class Patch:
    """Update one attribute on ctx.state: setattr(state, key, value)."""
    key: str
    value: Any


@dataclass(frozen=True)
class Notify:
    """Show a NiceGUI notification."""
    message: str
    type: str = "info"  # "positive" | "negative" | "warning" | "info"


UiMsg = Patch | Notify


class UiBridge:
    """
    Thread-safe bridge between telemetry worker threads and the NiceGUI UI loop.

    Worker API (thread-safe):
      - emit_patch(key, value)
      - emit_notify(...)

    UI API (UI loop):
      - flush(ctx)   # apply queued messages to ctx.state

    Workers never touch ctx.state or the command tree stores directly.
    """

    def __init__(self) -> None:
        self._outbox: "queue.Queue[UiMsg]" = queue.Queue()
        self._dirty = threading.Event()
        self._stop = threading.Event()

    # ----- worker -> UI (thread-safe enqueue) -----
    def emit_patch(self, key: str, value: Any) -> None:
        self._outbox.put(Patch(key, value))
        self._dirty.set()

    def emit_notify(self, message: str, type: str = "info") -> None:
        self._outbox.put(Notify(message, type))
        self._dirty.set()

    # ----- lifecycle -----
    def stop(self) -> None:
        self._stop.set()
        self._dirty.set()

    def stopped(self) -> bool:
        return self._stop.is_set()

    # ----- UI loop flush -----
    def flush(self, ctx: Any, *, max_items: int = 200) -> int:
        """
        Apply queued messages on the UI loop.
        - cheap when idle (dirty flag)
        - at most max_items per tick, the rest stays queued for the next tick
        """
        if not self._dirty.is_set():
            return 0

        self._dirty.clear()

        processed = 0
        while processed < max_items:
            try:
                msg = self._outbox.get_nowait()
            except queue.Empty:
                break

            if isinstance(msg, Patch):
                self._apply_patch(ctx, msg.key, msg.value)

            elif isinstance(msg, Notify):
                ui.notify(msg.message, type=msg.type)

            processed += 1

        if not self._outbox.empty():
            self._dirty.set()
        return processed

    def _apply_patch(self, ctx: Any, key: str, value: Any) -> None:
        state = getattr(ctx, "state", None)
        if state is None:
            return
        if not hasattr(state, key):
            logger.warning(f"[_apply_patch] - unknown_state_key - key={key}")
            return
        setattr(state, key, value)
