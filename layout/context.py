from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Any
from nicegui import ui

from services.app_state import AppState
from services.ui_bridge import UiBridge
from services.worker_registry import WorkerRegistry
from services.worker_bus import WorkerBus


@dataclass
class PageContext:
	# -----------------------------
	# Layout UI references
	# -----------------------------

	# The container where the page content is rendered
	main_area: Optional[ui.column] = None

	# Header label showing the telemetry source status
	source_status_label: Optional[ui.label] = None

	# -------- Application state (process wide) --------
	# UI-relevant state shared across all pages.
	# Updated by background workers via UiBridge.
	state: AppState = None

	# -------- Worker → UI communication --------
	# Thread-safe bridge used by telemetry workers to patch AppState
	# and send UI notifications.
	bridge: Optional[UiBridge] = None

	# -------- UI → Worker communication --------
	# Registry holding the telemetry workers.
	workers: Optional[WorkerRegistry] = None

	# -------- Worker → UI data --------
	# In-process pub/sub bus the telemetry workers publish on.
	# Pages subscribe to it and drain their queue on the UI loop.
	worker_bus: Optional[WorkerBus] = None

	def set_state(self, key: str, value: Any) -> None:
		setattr(self.state, key, value)
