import os
from nicegui import ui, app

from layout.context import PageContext
from layout.header import build_header

from services.ui_bridge import UiBridge
from services.worker_registry import WorkerRegistry
from services.worker_bus import WorkerBus
from services.worker_commands import WorkerName
from services.app_config import (
	load_app_config,
	get_demo_robot_entry,
	get_log_replay_entry,
)
from services.app_state import AppState
from services.logging_setup import setup_logging
from services.workers.demo_robot_worker import DemoRobotWorker
from services.workers.log_replay_worker import LogReplayWorker

from pages import commands as commands_page
from loguru import logger


# ------------------------------------------------------------------
# GLOBAL BACKEND (PROCESS LIFETIME)
# ------------------------------------------------------------------

setup_logging(app_name="command_tree_monitor")
logger.info("Starting NiceGUI")

APP_CONFIG = load_app_config()

GLOBAL_WORKER_BUS = WorkerBus()
GLOBAL_BRIDGE = UiBridge()
GLOBAL_APP_STATE = AppState()

GLOBAL_WORKERS = WorkerRegistry(GLOBAL_BRIDGE, GLOBAL_WORKER_BUS)


# ------------------------------------------------------------------
# Start telemetry workers ONCE
# ------------------------------------------------------------------

def _worker_options(worker_name: str) -> dict:
	if worker_name == WorkerName.DEMO_ROBOT:
		entry = get_demo_robot_entry(APP_CONFIG)
		return {"key": entry.key, "publish_interval_ms": entry.publish_interval_ms, "autostart": entry.autostart}
	if worker_name == WorkerName.LOG_REPLAY:
		entry = get_log_replay_entry(APP_CONFIG)
		return {"path": entry.path, "loop": entry.loop, "speed": entry.speed, "autoplay": entry.autoplay}
	return {}


WORKER_CATALOG = {
	WorkerName.DEMO_ROBOT: DemoRobotWorker,
	WorkerName.LOG_REPLAY: LogReplayWorker,
}

for worker_name in APP_CONFIG.workers.enabled_workers:
	target = WORKER_CATALOG.get(worker_name)
	if not target:
		logger.warning("Unknown worker in config: {}", worker_name)
		continue
	GLOBAL_WORKERS.start_worker(worker_name, target, **_worker_options(worker_name))


def _shutdown() -> None:
	logger.info("Shutting down workers")
	GLOBAL_BRIDGE.stop()
	GLOBAL_WORKERS.stop_all(join_timeout_s=1.0)


app.on_shutdown(_shutdown)


# ------------------------------------------------------------------
# UI
# ------------------------------------------------------------------

HEADER_PX = 56


@ui.page("/")
def index():
	ui.colors(primary="#3b82f6")
	ui.dark_mode(APP_CONFIG.ui.dark_mode)

	# --------- PER SESSION CONTEXT ---------
	ctx = PageContext()
	ctx.state = GLOBAL_APP_STATE
	ctx.worker_bus = GLOBAL_WORKER_BUS
	ctx.workers = GLOBAL_WORKERS
	ctx.bridge = GLOBAL_BRIDGE

	# UI flush loop
	ui.timer(0.5, lambda: ctx.bridge.flush(ctx))

	# --------- LAYOUT ---------
	build_header(ctx)

	with ui.column().classes("w-full min-h-0 min-w-0 overflow-hidden p-4 gap-4").style(
		f"height: calc(100vh - {HEADER_PX}px);"
	) as main_area:
		ctx.main_area = main_area
		commands_page.render(main_area, ctx)


storage_secret = os.environ.get("NICEGUI_STORAGE_SECRET")
if not storage_secret:
	logger.warning("NICEGUI_STORAGE_SECRET not set, using an insecure development secret")
	storage_secret = "command-tree-monitor-dev"

ui.run(
	title=APP_CONFIG.ui.title,
	reload=False,
	storage_secret=storage_secret,
)
