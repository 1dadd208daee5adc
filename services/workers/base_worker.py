# services/workers/base_worker.py
from __future__ import annotations

import queue
import threading
import time
from typing import Any, Callable, Optional

from loguru import logger

from services.ui_bridge import UiBridge
from services.worker_bus import WorkerBus
from services.worker_registry import SendCmdFn
from services.worker_topics import WorkerTopics


CommandPayload = dict[str, Any]
CommandHandler = Callable[[CommandPayload], None]


class BaseWorker:
	"""
	Common plumbing for telemetry workers.

	Subclasses implement run(); they publish on the WorkerBus and report
	their status to the UI only through the UiBridge.
	"""

	def __init__(
		self,
		*,
		name: str,
		bridge: UiBridge,
		worker_bus: WorkerBus,
		commands: "queue.Queue[tuple[str, dict]]",
		stop: threading.Event,
		send_cmd: SendCmdFn,
	) -> None:
		self.name = name
		self.bridge = bridge
		self.worker_bus = worker_bus
		self.commands = commands
		self.stop_event = stop
		self.send_cmd = send_cmd
		self.log = logger.bind(component=name)

		self._running = False
		self._connected = False

		# every publish carries a source id; workers with one feed just use their name
		self.current_source_id: str = name

	# ------------------------------------------------------------------ lifecycle

	def run(self) -> None:
		raise NotImplementedError

	def should_stop(self) -> bool:
		return self.stop_event.is_set() or self.bridge.stopped()

	def start(self) -> None:
		self._running = True
		self.log.info("worker started")

	def stop(self) -> None:
		self.stop_event.set()
		try:
			self.commands.put_nowait(("__stop__", {}))
		except queue.Full:
			pass
		self._running = False
		self.log.info("worker stop requested")

	def mark_stopped(self) -> None:
		self._running = False
		self.set_connected(False, reason="stopped")
		self.log.info("worker stopped")

	def set_connected(self, connected: bool, reason: str = "") -> None:
		if self._connected == connected:
			return
		self._connected = connected
		self.log.info(f"connection status changed: connected={connected} reason={reason!r}")
		if connected:
			self._pub(WorkerTopics.CLIENT_CONNECTED)
			self.emit_patch("source_status", "Connected")
			self.emit_patch("source_name", self.name)
		else:
			self._pub(WorkerTopics.CLIENT_DISCONNECTED, reason=reason)
			self.emit_patch("source_status", "Disconnected")

	def is_connected(self) -> bool:
		return self._connected

	def is_running(self) -> bool:
		return self._running

	# ------------------------------------------------------------------ UI bridge

	def notify(self, message: str, type_: str = "info") -> None:
		self.bridge.emit_notify(message, type_)

	def emit_patch(self, key: str, value: Any) -> None:
		self.bridge.emit_patch(key, value)

	# ------------------------------------------------------------------ BUS

	def _pub(self, topic: WorkerTopics, **payload: Any) -> None:
		self.worker_bus.publish(
			topic=topic,
			source=self.name,
			source_id=self.current_source_id,
			**payload
		)

	def publish_value(self, key: str, value: Any, ts: Optional[float] = None) -> None:
		self._pub(WorkerTopics.VALUE_CHANGED, key=key, value=value, ts=time.time() if ts is None else ts)

	def publish_error(self, key: Optional[str], action: str, error: str) -> None:
		self._pub(WorkerTopics.ERROR, key=key, action=action, error=error)

	# ------------------------------------------------------------------ command helpers

	def drain_commands(self, limit: int = 50) -> list[tuple[str, dict]]:
		items: list[tuple[str, dict]] = []
		for _ in range(limit):
			try:
				items.append(self.commands.get_nowait())
			except queue.Empty:
				break
		return items

	def dispatch_commands(
		self,
		handlers: dict[str, CommandHandler],
		*,
		limit: int = 50,
	) -> None:
		for cmd, payload in self.drain_commands(limit=limit):
			name = str(cmd or "")
			data = payload or {}

			if name == "__stop__":
				return

			handler = handlers.get(name)
			if handler is None:
				self.log.warning(f"unknown command ignored: cmd={name}")
				continue

			try:
				handler(data)
			except Exception as ex:
				self.publish_error(key=self.name, action=f"cmd:{name}", error=str(ex))
				self.log.exception(f"command handler crashed: cmd={name} payload={data!r}")
