from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class AppState:
    # ---- telemetry source ----
    source_status: str = "Disconnected"
    source_name: str = "-"

    # ---- demo robot ----
    demo_robot_state: dict[str, Any] = field(default_factory=dict)

    # ---- log replay ----
    replay_state: dict[str, Any] = field(default_factory=dict)

    # ---- commands view ----
    commands_key: str = ""
    commands_decode_error: str = ""
