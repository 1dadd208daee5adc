from __future__ import annotations

from enum import StrEnum


# ------------------------------------------------------------------ Worker names

class WorkerName(StrEnum):
	DEMO_ROBOT = "demo_robot"
	LOG_REPLAY = "log_replay"


# ------------------------------------------------------------------ Demo robot worker

class DemoRobotCommands(StrEnum):
	START = "demo_robot.start"
	STOP = "demo_robot.stop"
	RESET = "demo_robot.reset"


# ------------------------------------------------------------------ Log replay worker

class LogReplayCommands(StrEnum):
	LOAD = "log_replay.load"
	PLAY = "log_replay.play"
	PAUSE = "log_replay.pause"
