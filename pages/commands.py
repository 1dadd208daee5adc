# pages/commands.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable, Optional

from nicegui import app, ui

from layout.app_style import COMMAND_TREE_CSS, button_classes, button_props
from layout.context import PageContext
from layout.page_scaffold import build_page
from services.app_config import get_app_config
from services.command_tree import CommandsView, EventLoopScheduler
from services.command_tree.source import CommandsSource
from services.logging_setup import get_logger
from services.worker_commands import DemoRobotCommands, LogReplayCommands, WorkerName

STORAGE_KEY = "commands_view"

log = get_logger("CommandsPage")


@dataclass
class CommandNodeView:
	item: ui.element
	children: Optional[ui.element] = None
	closed_icon: Optional[ui.icon] = None
	open_icon: Optional[ui.icon] = None


class NiceGuiRenderSink:
	"""
	Materializes the command tree as nested <li>/<ol> elements.

	Sections and groups carry a closed/open chevron pair; leaves a neutral dot.
	The running highlight is the ``active`` CSS class on the <li>.
	"""

	def __init__(self, tree: ui.element, placeholder: ui.element) -> None:
		self._tree = tree
		self._placeholder = placeholder

	def clear(self) -> None:
		self._tree.clear()

	def create_section(self, title: str, section_id: str) -> CommandNodeView:
		with self._tree:
			item = ui.element("li").classes("command section").props(f"data-section={section_id}")
			with item:
				with ui.element("div").classes("command-row"):
					closed_icon = ui.icon("chevron_right").classes("toggle")
					open_icon = ui.icon("expand_more").classes("toggle")
					ui.label(title).classes("section-title")
				children = ui.element("ol")
		return CommandNodeView(item, children, closed_icon, open_icon)

	def create_command_node(self, parent: CommandNodeView, has_children: bool, name: str) -> CommandNodeView:
		with parent.children:
			item = ui.element("li").classes("command parent" if has_children else "command")
			with item:
				closed_icon = open_icon = None
				with ui.element("div").classes("command-row"):
					if has_children:
						closed_icon = ui.icon("chevron_right").classes("toggle")
						open_icon = ui.icon("expand_more").classes("toggle")
					else:
						ui.icon("remove").classes("neutral")
					ui.element("span").classes("status-dot")
					ui.label(name).classes("command-label")
				children = ui.element("ol") if has_children else None
		return CommandNodeView(item, children, closed_icon, open_icon)

	def set_expanded(self, handle: CommandNodeView, expanded: bool) -> None:
		if handle.children is None:
			return
		handle.children.set_visibility(expanded)
		handle.closed_icon.set_visibility(not expanded)
		handle.open_icon.set_visibility(expanded)

	def set_active_indicator(self, handle: CommandNodeView, active: bool) -> None:
		if active:
			handle.item.classes(add="active")
		else:
			handle.item.classes(remove="active")

	def on_toggle(self, handle: CommandNodeView, callback: Callable[[bool], None]) -> None:
		if handle.closed_icon is None or handle.open_icon is None:
			return
		handle.closed_icon.on("click", lambda _e: callback(True))
		handle.open_icon.on("click", lambda _e: callback(False))

	def set_placeholder_visible(self, visible: bool) -> None:
		self._placeholder.set_visibility(visible)
		self._tree.set_visibility(not visible)


def _send(ctx: PageContext, worker: str, cmd: str) -> None:
	if not ctx.workers.send_to(worker, cmd):
		ui.notify(f"Worker '{worker}' is not running", type="warning")
		return
	log.info(f"[_send] - worker_command_sent - worker={worker} cmd={cmd}")


def _build_source_controls(ctx: PageContext) -> Callable[[], None]:
	"""Start/stop buttons for whichever telemetry workers are running; returns a status refresher."""
	status = ui.label("").classes("text-xs text-gray-500")

	with ui.row().classes("w-full items-center gap-2"):
		if ctx.workers.is_running(WorkerName.DEMO_ROBOT):
			ui.label("Demo robot").classes("text-sm font-semibold")
			for text, cmd in (("Start", DemoRobotCommands.START), ("Stop", DemoRobotCommands.STOP), ("Reset", DemoRobotCommands.RESET)):
				ui.button(text, on_click=lambda _e, c=cmd: _send(ctx, WorkerName.DEMO_ROBOT, c)).props(
					button_props("neutral")
				).classes(button_classes())

		if ctx.workers.is_running(WorkerName.LOG_REPLAY):
			ui.label("Log replay").classes("text-sm font-semibold ml-4")
			for text, cmd in (("Reload", LogReplayCommands.LOAD), ("Play", LogReplayCommands.PLAY), ("Pause", LogReplayCommands.PAUSE)):
				ui.button(text, on_click=lambda _e, c=cmd: _send(ctx, WorkerName.LOG_REPLAY, c)).props(
					button_props("neutral")
				).classes(button_classes())

	def refresh_status() -> None:
		parts = []
		demo = ctx.state.demo_robot_state
		if demo:
			parts.append("demo: %s tick=%s" % ("running" if demo.get("running") else "paused", demo.get("tick", 0)))
		replay = ctx.state.replay_state
		if replay:
			parts.append("replay: %s %s/%s" % (
				"playing" if replay.get("playing") else "paused",
				replay.get("position", 0),
				replay.get("records", 0),
			))
		if ctx.state.commands_key:
			parts.append("key: %s" % ctx.state.commands_key)
		status.set_text("  |  ".join(parts))

	return refresh_status


def render(container: ui.element, ctx: PageContext) -> None:
	cfg = get_app_config().commands
	ui.add_head_html(COMMAND_TREE_CSS)

	def build_content(_parent: ui.element) -> None:
		refresh_status = _build_source_controls(ctx)
		status_timer = ui.timer(0.5, refresh_status)

		placeholder = ui.column().classes("w-full items-center gap-1 pt-8")
		with placeholder:
			ui.icon("sensors_off").classes("text-4xl text-gray-400")
			ui.label("No commands data. Connect to a robot or start a log replay.").classes("text-gray-500")
			ui.label("Looking for keys: %s" % ", ".join(cfg.source_keys)).classes("text-xs text-gray-400")

		error_label = ui.label("").classes("text-xs text-orange-600")
		error_label.set_visibility(False)

		tree = ui.element("ol").classes("command-list w-full")

		sink = NiceGuiRenderSink(tree, placeholder)
		view = CommandsView(sink, EventLoopScheduler(), deactivate_delay_ms=cfg.debounce_ms)
		view.restore_state(app.storage.user.get(STORAGE_KEY))

		source = CommandsSource(ctx.worker_bus, cfg.source_keys, history_size=cfg.history_size)

		def tick() -> None:
			source.poll()
			command = source.get_command()
			result = view.render(command)

			keys = source.keys
			ctx.set_state("commands_key", keys[0] if keys else "")

			message = ctx.state.commands_decode_error
			if result is not None and result.error is not None:
				message = str(result.error)
			elif result is not None and result.changed:
				message = "%d malformed command(s) skipped" % len(result.issues) if result.issues else ""
			if message != ctx.state.commands_decode_error:
				ctx.set_state("commands_decode_error", message)
				error_label.set_text(message)
				error_label.set_visibility(bool(message))

		timer = ui.timer(max(10, cfg.refresh_ms) / 1000.0, tick)

		def cleanup() -> None:
			timer.cancel()
			status_timer.cancel()
			source.close()
			app.storage.user[STORAGE_KEY] = view.save_state()
			view.dispose()
			log.debug("[cleanup] - commands_view_state_saved")

		ui.context.client.on_disconnect(cleanup)

	build_page(
		ctx,
		container,
		title="Commands",
		subtitle="Subsystem command trees and scheduled commands. Running commands are highlighted.",
		content=build_content,
	)
