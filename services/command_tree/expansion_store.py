from __future__ import annotations

from typing import Iterable

from services.command_tree.models import is_section_id


class ExpansionStateStore:
    """
    Remembers which sections / groups the user opened.

    Entries are created on first lookup: sections start expanded, nested groups collapsed.
    Nothing is ever evicted, so a group that disappears and comes back keeps its state.
    """

    def __init__(self) -> None:
        self._expanded: dict[str, bool] = {}

    def __contains__(self, node_id: str) -> bool:
        return node_id in self._expanded

    def __len__(self) -> int:
        return len(self._expanded)

    def get(self, node_id: str) -> bool:
        value = self._expanded.get(node_id)
        if value is None:
            value = is_section_id(node_id)
            self._expanded[node_id] = value
        return value

    def set(self, node_id: str, expanded: bool) -> None:
        self._expanded[node_id] = bool(expanded)

    def serialize(self) -> list[tuple[str, bool]]:
        return list(self._expanded.items())

    def restore_from(self, pairs: Iterable[tuple[str, bool]]) -> None:
        for node_id, expanded in pairs:
            self._expanded[str(node_id)] = bool(expanded)
