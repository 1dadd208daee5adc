from __future__ import annotations


BUTTON_VARIANTS: dict[str, str] = {
    "primary": "color=primary text-color=white unelevated no-caps",
    "success": "color=positive text-color=white unelevated no-caps",
    "warning": "color=warning text-color=black unelevated no-caps",
    "neutral": "outline color=secondary no-caps",
}


def button_props(variant: str = "primary") -> str:
    return BUTTON_VARIANTS.get(variant, BUTTON_VARIANTS["primary"])


def button_classes(full: bool = False) -> str:
    base = "h-[36px] px-3 rounded-lg font-semibold"
    return f"{base} w-full" if full else base


COMMAND_TREE_CSS = """
<style>
	html, body { height: 100%; margin: 0; }
	.command-list, .command-list ol { list-style: none; margin: 0; padding-left: 1.25rem; }
	.command-list { padding-left: 0; }
	.command { line-height: 1.9; white-space: nowrap; }
	.command > .command-row { display: flex; align-items: center; gap: 0.35rem; }
	.command.section > .command-row .section-title { font-weight: 600; }
	.command .toggle { cursor: pointer; }
	.command .neutral { opacity: 0.35; }
	.command.active > .command-row .command-label { color: var(--q-positive); font-weight: 600; }
	.command.active > .command-row .status-dot { background: var(--q-positive); }
	.command .status-dot { width: 8px; height: 8px; border-radius: 50%; background: transparent; }
</style>
"""
