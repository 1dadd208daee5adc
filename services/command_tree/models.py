from __future__ import annotations

from dataclasses import dataclass, field


@dataclass(frozen=True)
class LeafCommand:
    """A command that reports its own activity."""

    name: str
    active: bool = False


@dataclass(frozen=True)
class GroupCommand:
    """A composite command; its activity is derived from its children."""

    name: str
    children: tuple["Command", ...] = field(default_factory=tuple)


Command = LeafCommand | GroupCommand


@dataclass(frozen=True)
class Subsystem:
    name: str
    root: Command | None = None


@dataclass(frozen=True)
class CommandTreeSnapshot:
    subsystems: tuple[Subsystem, ...] = field(default_factory=tuple)
    scheduled: tuple[Command, ...] = field(default_factory=tuple)

    def is_empty(self) -> bool:
        return not self.subsystems and not self.scheduled


@dataclass(frozen=True)
class CommandsRenderCommand:
    """What the view needs for one frame: source availability plus the raw payload."""

    key_available: bool = False
    timestamp: float = 0.0
    json: str | None = None


SCHEDULED_SECTION_ID = "scheduled"
SCHEDULED_SECTION_TITLE = "Scheduled Commands"


def subsystem_section_id(index: int) -> str:
    return f"subsystem-{index}"


def node_id(container_path: list[str], name: str) -> str:
    return "/".join(container_path) + "/" + name


def is_section_id(node_key: str) -> bool:
    # section ids are the only keys without a path separator
    return "/" not in node_key
