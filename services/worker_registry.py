from __future__ import annotations

import queue
import threading
from dataclasses import dataclass
from enum import StrEnum
from typing import Any, Callable, Union

from loguru import logger

from services.ui_bridge import UiBridge
from services.worker_bus import WorkerBus


Cmd = Union[str, StrEnum]
SendCmdFn = Callable[[str, Cmd, dict[str, Any]], None]


@dataclass
class WorkerHandle:
    name: str
    commands: "queue.Queue[tuple[str, dict[str, Any]]]"
    stop_event: threading.Event
    thread: threading.Thread

    def stop(self) -> None:
        logger.bind(component="WorkerHandle", worker=self.name).info("stop requested")
        self.stop_event.set()
        try:
            self.commands.put_nowait(("__stop__", {}))
        except queue.Full:
            logger.warning("Failed enqueueing __stop__ command for worker '{}'", self.name)

    def is_alive(self) -> bool:
        return self.thread.is_alive()


class WorkerRegistry:
    """Owns the telemetry worker threads; one thread per worker class."""

    def __init__(self, bridge: UiBridge, worker_bus: WorkerBus) -> None:
        self.bridge = bridge
        self.worker_bus = worker_bus
        self._workers: dict[str, WorkerHandle] = {}
        self._log = logger.bind(component="WorkerRegistry")
        self._lock = threading.Lock()

    # ------------------------------------------------------------------ lifecycle

    def start_worker(self, name: str, target, **options: Any) -> WorkerHandle:
        """
        Start a worker if not already running.

        target is a BaseWorker subclass; options are passed to its constructor.
        """
        with self._lock:
            handle = self._workers.get(name)
        if handle and handle.is_alive():
            return handle

        commands: "queue.Queue[tuple[str, dict[str, Any]]]" = queue.Queue()
        stop_event = threading.Event()

        def send_cmd(target_worker: str, cmd: Cmd, payload: dict[str, Any]) -> None:
            with self._lock:
                h = self._workers.get(target_worker)
            if not h:
                return
            h.commands.put((str(cmd), payload))

        def run() -> None:
            wlog = logger.bind(component="Worker", worker=name)
            wlog.info("thread started")

            try:
                worker = target(
                    name=name,
                    bridge=self.bridge,
                    worker_bus=self.worker_bus,
                    commands=commands,
                    stop=stop_event,
                    send_cmd=send_cmd,
                    **options,
                )
                worker.run()

                wlog.info("thread exited normally")
            except Exception:
                wlog.exception("thread crashed")
                self.bridge.emit_notify(f"Worker '{name}' crashed (see logs)", "negative")

        thread = threading.Thread(target=run, daemon=True, name=f"worker:{name}")
        handle = WorkerHandle(name, commands, stop_event, thread)

        with self._lock:
            self._workers[name] = handle

        thread.start()
        self._log.info(f"started worker name='{name}' thread='{thread.name}'")

        return handle

    def stop_all(self, *, join_timeout_s: float = 0.0) -> None:
        with self._lock:
            handles = list(self._workers.values())
        self._log.info(f"stop_all requested count={len(handles)}")
        for h in handles:
            h.stop()
        if join_timeout_s > 0:
            for h in handles:
                h.thread.join(timeout=join_timeout_s)

    # ------------------------------------------------------------------ commands

    def send_to(self, target_worker: str, cmd: Cmd, **payload: Any) -> bool:
        with self._lock:
            h = self._workers.get(target_worker)
        if not h:
            return False
        h.commands.put((str(cmd), payload))
        return True

    # ------------------------------------------------------------------ query

    def is_running(self, name: str) -> bool:
        with self._lock:
            h = self._workers.get(name)
        return bool(h and h.thread.is_alive())

