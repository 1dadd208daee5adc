from __future__ import annotations


class CommandTreeError(ValueError):
    pass


class DecodeError(CommandTreeError):
    """Payload missing, not JSON, or not shaped like a commands object."""


class MalformedNodeError(CommandTreeError):
    """A node that is neither a leaf ``{name, active}`` nor a group ``{name, commands}``."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__("%s: %s" % (path, reason))
        self.path = path
        self.reason = reason
