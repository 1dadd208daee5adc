from __future__ import annotations

import json
import random
import time
from typing import Any

from services.worker_commands import DemoRobotCommands as Commands
from services.workers.base_worker import BaseWorker


# (subsystem, [(command, cycle_ticks, duty)]) - a command is active for `duty` of every `cycle_ticks`
_DRIVE = [("Stop", 40, 0.25), ("Turn", 30, 0.5), ("DriveForward", 60, 0.4)]
_ARM = [("HoldPosition", 20, 0.9)]
_INTAKE_DEPLOY = [("Extend", 50, 0.2), ("Spin", 50, 0.6)]


def _phase_active(tick: int, cycle: int, duty: float, offset: int = 0) -> bool:
	return ((tick + offset) % cycle) < int(cycle * duty)


def _leaf(name: str, active: bool) -> dict[str, Any]:
	return {"name": name, "active": active}


def build_demo_snapshot(tick: int, rng: random.Random | None = None, flicker: float = 0.0) -> dict[str, Any]:
	"""
	Build one simulated commands payload for the given tick.

	``flicker`` is the probability that an active leaf is reported inactive for
	a single sample, which is what real measurement races look like.
	"""

	def active(cycle: int, duty: float, offset: int = 0) -> bool:
		value = _phase_active(tick, cycle, duty, offset)
		if value and rng is not None and flicker > 0 and rng.random() < flicker:
			return False
		return value

	drive = {
		"name": "Drive",
		"commands": [_leaf(name, active(cycle, duty, i * 7)) for i, (name, cycle, duty) in enumerate(_DRIVE)],
	}
	arm = _leaf(_ARM[0][0], active(_ARM[0][1], _ARM[0][2]))
	intake = {
		"name": "IntakeSequence",
		"commands": [
			{
				"name": "Deploy",
				"commands": [_leaf(name, active(cycle, duty, 11)) for name, cycle, duty in _INTAKE_DEPLOY],
			},
			_leaf("Retract", active(50, 0.2, 36)),
		],
	}

	scheduled = [
		{
			"name": "AutoRoutine",
			"commands": [_leaf("FollowPath", active(120, 0.5)), _leaf("Shoot", active(120, 0.1, 70))],
		},
		_leaf("LEDs", True),
	]

	return {
		"subsystems": [
			{"name": "Drive", "command": drive},
			{"name": "Arm", "command": arm},
			{"name": "Intake", "command": intake},
		],
		"scheduled": scheduled,
	}


class DemoRobotWorker(BaseWorker):
	"""Publishes a simulated robot's command tree as a JSON string on a fixed interval."""

	def __init__(
		self,
		*,
		key: str = "commands",
		publish_interval_ms: int = 50,
		autostart: bool = True,
		flicker: float = 0.05,
		seed: int | None = None,
		**kwargs: Any,
	) -> None:
		super().__init__(**kwargs)
		self.key = key
		self.interval_s = max(10, int(publish_interval_ms)) / 1000.0
		self.flicker = float(flicker)
		self.publishing = bool(autostart)
		self.tick = 0
		self._rng = random.Random(seed)

	def _publish_state(self) -> None:
		self.emit_patch("demo_robot_state", {"running": self.publishing, "tick": self.tick, "key": self.key})

	def _on_start(self, _payload: dict) -> None:
		self.publishing = True
		self.notify("Demo robot publishing", "positive")
		self._publish_state()

	def _on_stop(self, _payload: dict) -> None:
		self.publishing = False
		self.notify("Demo robot paused", "warning")
		self._publish_state()

	def _on_reset(self, _payload: dict) -> None:
		self.tick = 0
		self._publish_state()

	def publish_once(self) -> str:
		raw = json.dumps(build_demo_snapshot(self.tick, self._rng, self.flicker), separators=(",", ":"))
		self.publish_value(self.key, raw)
		self.tick += 1
		return raw

	def run(self) -> None:
		self.start()
		handlers = {
			Commands.START: self._on_start,
			Commands.STOP: self._on_stop,
			Commands.RESET: self._on_reset,
		}
		self.set_connected(True)
		self._publish_state()

		next_publish = time.monotonic()
		try:
			while not self.should_stop():
				self.dispatch_commands(handlers)

				now = time.monotonic()
				if self.publishing and now >= next_publish:
					next_publish = now + self.interval_s
					self.publish_once()
					if self.tick % 100 == 0:
						self._publish_state()

				time.sleep(0.01)
		finally:
			self.mark_stopped()
