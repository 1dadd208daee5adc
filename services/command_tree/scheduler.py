from __future__ import annotations

import asyncio
from typing import Any, Callable, Protocol

from loguru import logger


TimerToken = Any
TimerCallback = Callable[[], None]


class Scheduler(Protocol):
    """Delayed-callback capability used by the debounce machine."""

    def arm(self, delay_ms: int, callback: TimerCallback) -> TimerToken:
        ...

    def cancel(self, token: TimerToken) -> None:
        ...


class EventLoopScheduler:
    """
    Runs callbacks on the asyncio loop that drives the UI.

    Timers fire between render passes on the same thread, so store mutations
    from timers and from renders never interleave.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop
        self._log = logger.bind(component="EventLoopScheduler")

    def _get_loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def arm(self, delay_ms: int, callback: TimerCallback) -> asyncio.TimerHandle:
        return self._get_loop().call_later(max(0, delay_ms) / 1000.0, self._guarded(callback))

    def cancel(self, token: asyncio.TimerHandle) -> None:
        if token is not None:
            token.cancel()

    def _guarded(self, callback: TimerCallback) -> TimerCallback:
        def _run() -> None:
            try:
                callback()
            except Exception:
                self._log.exception("[_run] - timer_callback_failed")

        return _run
