from services.command_tree.active_store import ActivePhase, ActiveStateStore
from services.command_tree.decoder import DecodeResult, SnapshotDecoder
from services.command_tree.errors import CommandTreeError, DecodeError, MalformedNodeError
from services.command_tree.expansion_store import ExpansionStateStore
from services.command_tree.models import (
    Command,
    CommandTreeSnapshot,
    CommandsRenderCommand,
    GroupCommand,
    LeafCommand,
    Subsystem,
)
from services.command_tree.propagation import group_active
from services.command_tree.reconciler import RenderSink, TreeReconciler
from services.command_tree.scheduler import EventLoopScheduler, Scheduler
from services.command_tree.view import CommandsView

__all__ = [
    "ActivePhase",
    "ActiveStateStore",
    "Command",
    "CommandTreeError",
    "CommandTreeSnapshot",
    "CommandsRenderCommand",
    "CommandsView",
    "DecodeError",
    "DecodeResult",
    "EventLoopScheduler",
    "ExpansionStateStore",
    "GroupCommand",
    "LeafCommand",
    "MalformedNodeError",
    "RenderSink",
    "Scheduler",
    "SnapshotDecoder",
    "Subsystem",
    "TreeReconciler",
    "group_active",
]
