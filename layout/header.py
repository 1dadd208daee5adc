from datetime import datetime

from nicegui import ui

from layout.app_style import button_classes, button_props
from layout.context import PageContext
from services.app_config import get_app_config, save_app_config
from loguru import logger


def build_header(ctx: PageContext) -> ui.header:
    cfg = get_app_config()
    is_dark = bool(cfg.ui.dark_mode)
    header = ui.header().classes("h-14 w-full border-b")

    with header:
        with ui.row().classes("h-full items-center w-full px-4 gap-2"):
            ui.icon("account_tree")
            ui.label(cfg.ui.title).classes("text-lg font-semibold")
            ui.space()

            ctx.source_status_label = ui.label("").classes("text-sm")

            def update_status() -> None:
                state = ctx.state
                if state is None or ctx.source_status_label is None:
                    return
                icon = "🟢" if state.source_status == "Connected" else "🔴"
                ctx.source_status_label.set_text(f"{icon} {state.source_name}: {state.source_status}")

            update_status()
            ui.timer(0.5, update_status)

            mode_label = "Dark" if is_dark else "Light"
            mode_icon = "dark_mode" if is_dark else "light_mode"

            def on_toggle_theme() -> None:
                cfg_local = get_app_config()
                current = bool(cfg_local.ui.dark_mode)
                cfg_local.ui.dark_mode = not current
                logger.info(f"[on_toggle_theme] - theme_mode_changed - old={current} new={cfg_local.ui.dark_mode}")
                save_app_config(cfg_local)
                ui.run_javascript("location.reload()")

            ui.button(mode_label, icon=mode_icon, on_click=on_toggle_theme).props(button_props("neutral")).classes(
                button_classes()
            ).tooltip("Switch between light and dark mode")

            dt_label = ui.label("").classes("ml-2 text-sm")

            def update_time() -> None:
                dt_label.set_text(datetime.now().strftime("%d-%m-%Y %H:%M"))

            update_time()
            ui.timer(60.0, update_time)

    return header
