from __future__ import annotations

from typing import Iterable


def group_active(children: Iterable[bool]) -> bool:
    """A group is running when any of its children is running (instantaneous values only)."""
    return any(children)
