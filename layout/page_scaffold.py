from __future__ import annotations

from typing import Callable
from nicegui import ui

from layout.context import PageContext


ContentBuilder = Callable[[ui.element], None]


def build_page(
	ctx: PageContext,
	container: ui.element,
	*,
	title: str | None = None,
	subtitle: str | None = None,
	content: ContentBuilder,
) -> None:
	"""
	Standard page layout:

	- Fills available height (h-full + min-h-0)
	- Title row, then a content area that is the only part that scrolls
	"""
	with container:
		with ui.column().classes("w-full h-full min-h-0 min-w-0"):
			if title:
				ui.label(title).classes("text-2xl font-bold")
			if subtitle:
				ui.label(subtitle).classes("text-sm text-gray-500")

			with ui.column().classes("w-full flex-1 min-h-0 min-w-0 overflow-auto") as content_area:
				content(content_area)
