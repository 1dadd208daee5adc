from __future__ import annotations

import json
import time
from dataclasses import dataclass
from typing import Any

from loguru import logger

from services.logging_setup import log_timing
from services.worker_commands import LogReplayCommands as Commands
from services.workers.base_worker import BaseWorker


@dataclass(frozen=True)
class ReplayRecord:
	ts: float
	key: str
	value: Any


def load_replay_log(path: str) -> list[ReplayRecord]:
	"""
	Read a JSON-lines telemetry log: one ``{"ts": float, "key": str, "value": ...}`` per line.
	Bad lines are skipped (and counted in the log); records come back sorted by ts.
	"""
	records: list[ReplayRecord] = []
	skipped = 0
	with log_timing("load_replay_log", path=path):
		with open(path, "r", encoding="utf-8") as f:
			for line in f:
				line = line.strip()
				if not line:
					continue
				try:
					item = json.loads(line)
				except ValueError:
					skipped += 1
					continue
				if not isinstance(item, dict):
					skipped += 1
					continue
				ts = item.get("ts")
				key = item.get("key")
				if isinstance(ts, bool) or not isinstance(ts, (int, float)) or not isinstance(key, str):
					skipped += 1
					continue
				records.append(ReplayRecord(float(ts), key, item.get("value")))

	if skipped:
		logger.warning(f"[load_replay_log] - lines_skipped - path={path} skipped={skipped} kept={len(records)}")
	records.sort(key=lambda r: r.ts)
	return records


class LogReplayWorker(BaseWorker):
	"""Replays a recorded telemetry log onto the bus at recorded pace."""

	def __init__(
		self,
		*,
		path: str = "",
		loop: bool = True,
		speed: float = 1.0,
		autoplay: bool = True,
		**kwargs: Any,
	) -> None:
		super().__init__(**kwargs)
		self.path = path
		self.loop = bool(loop)
		self.speed = float(speed) if speed and speed > 0 else 1.0
		self.playing = False
		self.records: list[ReplayRecord] = []
		self.position = 0
		self._autoplay = bool(autoplay)
		self._t0_wall = 0.0
		self._t0_log = 0.0

	# ------------------------------------------------------------------ commands

	def _on_load(self, payload: dict) -> None:
		path = str(payload.get("path") or self.path or "")
		if not path:
			self.publish_error(key=self.name, action="load", error="no replay path configured")
			return
		try:
			self.records = load_replay_log(path)
		except OSError as ex:
			self.publish_error(key=self.name, action="load", error=str(ex))
			self.notify(f"Replay log could not be opened: {ex}", "negative")
			return
		self.path = path
		self.position = 0
		self.playing = False
		self._publish_state()

	def _on_play(self, _payload: dict) -> None:
		if not self.records:
			self.notify("Nothing to replay", "warning")
			return
		self.playing = True
		self._rebase()
		self.set_connected(True)
		self._publish_state()

	def _on_pause(self, _payload: dict) -> None:
		self.playing = False
		self._publish_state()

	# ------------------------------------------------------------------ playback

	def _rebase(self) -> None:
		if self.position >= len(self.records):
			self.position = 0
		self._t0_wall = time.monotonic()
		self._t0_log = self.records[self.position].ts if self.records else 0.0

	def _publish_state(self) -> None:
		self.emit_patch("replay_state", {
			"path": self.path,
			"playing": self.playing,
			"position": self.position,
			"records": len(self.records),
		})

	def step(self, now: float) -> int:
		"""Publish every record that is due at monotonic time ``now``; returns how many."""
		if not self.playing or not self.records:
			return 0

		due_log_ts = self._t0_log + (now - self._t0_wall) * self.speed
		published = 0
		while self.position < len(self.records) and self.records[self.position].ts <= due_log_ts:
			record = self.records[self.position]
			self.publish_value(record.key, record.value)
			self.position += 1
			published += 1

		if self.position >= len(self.records):
			if self.loop:
				self.position = 0
				self._rebase()
			else:
				self.playing = False
				self.set_connected(False, reason="replay finished")
				self._publish_state()
		return published

	def run(self) -> None:
		self.start()
		handlers = {
			Commands.LOAD: self._on_load,
			Commands.PLAY: self._on_play,
			Commands.PAUSE: self._on_pause,
		}

		if self.path:
			self._on_load({"path": self.path})
			if self._autoplay and self.records:
				self._on_play({})

		try:
			while not self.should_stop():
				self.dispatch_commands(handlers)
				self.step(time.monotonic())
				time.sleep(0.005)
		finally:
			self.mark_stopped()
