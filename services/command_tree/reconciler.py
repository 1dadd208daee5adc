from __future__ import annotations

from typing import Any, Callable, Protocol

from loguru import logger

from services.command_tree.active_store import ActiveStateStore
from services.command_tree.expansion_store import ExpansionStateStore
from services.command_tree.models import (
    SCHEDULED_SECTION_ID,
    SCHEDULED_SECTION_TITLE,
    Command,
    CommandTreeSnapshot,
    GroupCommand,
    LeafCommand,
    node_id,
    subsystem_section_id,
)
from services.command_tree.propagation import group_active


NodeHandle = Any
ToggleCallback = Callable[[bool], None]


class RenderSink(Protocol):
    """Visual realization of the tree; handles are opaque to the reconciler."""

    def clear(self) -> None:
        ...

    def create_section(self, title: str, section_id: str) -> NodeHandle:
        ...

    def create_command_node(self, parent: NodeHandle, has_children: bool, name: str) -> NodeHandle:
        ...

    def set_expanded(self, handle: NodeHandle, expanded: bool) -> None:
        ...

    def set_active_indicator(self, handle: NodeHandle, active: bool) -> None:
        ...

    def on_toggle(self, handle: NodeHandle, callback: ToggleCallback) -> None:
        ...

    def set_placeholder_visible(self, visible: bool) -> None:
        ...


class TreeReconciler:
    """
    Rebuilds the whole visual tree for every snapshot.

    Only the two stores outlive a pass. Activity aggregates upward using the
    instantaneous values; the debounced value is only what a node displays.
    """

    def __init__(
        self,
        sink: RenderSink,
        expansion: ExpansionStateStore,
        active: ActiveStateStore,
    ) -> None:
        self._sink = sink
        self._expansion = expansion
        self._active = active
        self._handles: dict[str, NodeHandle] = {}
        self._rendering = False
        self._log = logger.bind(component="TreeReconciler")

        self._active.set_listener(self._on_deactivated)

    @property
    def node_ids(self) -> list[str]:
        """Ids materialized by the last pass, in walk order."""
        return list(self._handles.keys())

    def handle_for(self, node_key: str) -> NodeHandle | None:
        return self._handles.get(node_key)

    def render(self, snapshot: CommandTreeSnapshot) -> None:
        if self._rendering:
            raise RuntimeError("TreeReconciler.render() is not reentrant")

        self._rendering = True
        try:
            self._sink.clear()
            self._handles = {}

            for index, subsystem in enumerate(snapshot.subsystems):
                section_id = subsystem_section_id(index)
                section = self._create_section(subsystem.name, section_id)
                if subsystem.root is not None:
                    self._walk(subsystem.root, section, [section_id])

            if snapshot.scheduled:
                section = self._create_section(SCHEDULED_SECTION_TITLE, SCHEDULED_SECTION_ID)
                for index, command in enumerate(snapshot.scheduled):
                    self._walk(command, section, [SCHEDULED_SECTION_ID, str(index)])

            self._active.cancel_missing(self._handles.keys())
            self._log.trace(f"[render] - pass_done - nodes={len(self._handles)}")
        finally:
            self._rendering = False

    # ------------------------------------------------------------------ walk

    def _create_section(self, title: str, section_id: str) -> NodeHandle:
        handle = self._sink.create_section(title, section_id)
        self._wire_toggle(handle, section_id)
        return handle

    def _walk(self, node: Command, parent: NodeHandle, container_path: list[str]) -> bool:
        key = node_id(container_path, node.name)

        match node:
            case GroupCommand(name=name, children=children):
                handle = self._sink.create_command_node(parent, True, name)
                self._wire_toggle(handle, key)
                child_results = [
                    self._walk(child, handle, container_path + [name, str(index)])
                    for index, child in enumerate(children)
                ]
                instantaneous = group_active(child_results)
            case LeafCommand(name=name, active=active):
                handle = self._sink.create_command_node(parent, False, name)
                instantaneous = active

        self._handles[key] = handle
        display = self._active.update(key, instantaneous)
        self._sink.set_active_indicator(handle, display)
        return instantaneous

    def _wire_toggle(self, handle: NodeHandle, key: str) -> None:
        self._sink.set_expanded(handle, self._expansion.get(key))

        def _toggle(expanded: bool) -> None:
            self._expansion.set(key, expanded)
            self._sink.set_expanded(handle, expanded)

        self._sink.on_toggle(handle, _toggle)

    # ------------------------------------------------------------------ timers

    def _on_deactivated(self, key: str) -> None:
        handle = self._handles.get(key)
        if handle is not None:
            self._sink.set_active_indicator(handle, False)
