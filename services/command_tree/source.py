from __future__ import annotations

import bisect
import json
import queue
import time
from collections import deque
from typing import Any, Iterable, Optional

from loguru import logger

from services.command_tree.models import CommandsRenderCommand
from services.worker_bus import WorkerBus
from services.worker_topics import WorkerTopics


class CommandsSource:
	"""
	Collects raw commands payloads published by telemetry workers.

	Only the UI loop calls poll()/get_command(); workers just publish
	VALUE_CHANGED on the bus, so nothing here is shared across threads.
	"""

	def __init__(
		self,
		worker_bus: WorkerBus,
		source_keys: Iterable[str],
		*,
		history_size: int = 200,
	) -> None:
		self._prefixes = tuple(str(k) for k in source_keys if str(k))
		self._history_size = max(1, int(history_size))
		self._history: dict[str, deque[tuple[float, Any]]] = {}
		self._sub = worker_bus.subscribe(WorkerTopics.VALUE_CHANGED)
		self._last_ts = 0.0
		self._log = logger.bind(component="CommandsSource")

	def matches(self, key: str) -> bool:
		return any(key.startswith(prefix) for prefix in self._prefixes)

	@property
	def keys(self) -> list[str]:
		return list(self._history.keys())

	def poll(self, limit: int = 500) -> int:
		received = 0
		for _ in range(limit):
			try:
				msg = self._sub.queue.get_nowait()
			except queue.Empty:
				break

			payload = getattr(msg, "payload", None) or {}
			key = str(payload.get("key") or "")
			if not key or not self.matches(key):
				continue

			ts = payload.get("ts")
			ts = float(ts) if isinstance(ts, (int, float)) else time.time()
			self._append(key, ts, payload.get("value"))
			received += 1
		return received

	def get_command(self, render_time: Optional[float] = None) -> CommandsRenderCommand:
		key = self._active_key()
		if key is None:
			return CommandsRenderCommand(key_available=False, timestamp=render_time or self._last_ts)

		history = self._history[key]
		at = self._last_ts if render_time is None else float(render_time)
		value = _value_at(history, at)
		return CommandsRenderCommand(key_available=True, timestamp=at, json=_as_json_text(value))

	def close(self) -> None:
		self._sub.close()

	# ------------------------------------------------------------------ helpers

	def _active_key(self) -> Optional[str]:
		# first key seen wins, like picking the first matching log field
		return next(iter(self._history), None)

	def _append(self, key: str, ts: float, value: Any) -> None:
		history = self._history.get(key)
		if history is None:
			history = deque(maxlen=self._history_size)
			self._history[key] = history
			self._log.info(f"[poll] - commands_key_discovered - key={key}")

		if history and ts < history[-1][0]:
			# out-of-order sample: the history must stay sorted for lookups
			self._log.debug(f"[poll] - sample_reordered - key={key} ts={ts} last_ts={history[-1][0]}")
			ts = history[-1][0]
		history.append((ts, value))
		self._last_ts = max(self._last_ts, ts)


def _value_at(history: deque[tuple[float, Any]], at: float) -> Any:
	stamps = [ts for ts, _ in history]
	index = bisect.bisect_right(stamps, at)
	if index == 0:
		return None
	return history[index - 1][1]


def _as_json_text(value: Any) -> Optional[str]:
	if value is None:
		return None
	if isinstance(value, str):
		return value
	if isinstance(value, (dict, list)):
		return json.dumps(value, separators=(",", ":"))
	return None
