from __future__ import annotations

from enum import StrEnum


class WorkerTopics(StrEnum):
	"""
	Topics published by telemetry workers.

	Payload contracts:

	ERROR:
		{ "key": str | None, "action": str, "error": str }

	CLIENT_CONNECTED:
		{ }

	CLIENT_DISCONNECTED:
		{ "reason": str }

	VALUE_CHANGED:
		{ "key": str, "value": Any, "ts": float }
	"""

	ERROR = "ERROR"
	CLIENT_CONNECTED = "CLIENT_CONNECTED"
	CLIENT_DISCONNECTED = "CLIENT_DISCONNECTED"
	VALUE_CHANGED = "VALUE_CHANGED"
