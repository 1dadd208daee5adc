from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

from loguru import logger

from services.command_tree.errors import DecodeError, MalformedNodeError
from services.command_tree.models import (
    Command,
    CommandTreeSnapshot,
    GroupCommand,
    LeafCommand,
    Subsystem,
)
from services.logging_setup import summarize_for_log


@dataclass(frozen=True)
class DecodeResult:
    snapshot: CommandTreeSnapshot | None
    changed: bool
    error: DecodeError | None = None
    issues: tuple[MalformedNodeError, ...] = field(default_factory=tuple)


class SnapshotDecoder:
    """
    Parses the raw commands payload into a CommandTreeSnapshot.

    Decoding never raises to the caller:
      - missing / unparsable payloads come back as ``error`` with the previous snapshot
      - malformed nodes are dropped and listed in ``issues``; their siblings survive
      - a payload equal to the last good one is not parsed again (``changed=False``)
    """

    def __init__(self) -> None:
        self._last_raw: str | None = None
        self._last_snapshot: CommandTreeSnapshot | None = None
        self._last_failure: tuple[str, str | None] | None = None
        self._log = logger.bind(component="SnapshotDecoder")

    @property
    def last_raw(self) -> str | None:
        return self._last_raw

    def reset(self) -> None:
        self._last_raw = None
        self._last_snapshot = None
        self._last_failure = None

    def decode(self, raw: str | None, previous: CommandTreeSnapshot | None = None) -> DecodeResult:
        if raw is None:
            return self._fail(previous, DecodeError("no commands payload"))

        if self._last_raw is not None and raw == self._last_raw:
            return DecodeResult(snapshot=self._last_snapshot, changed=False)

        try:
            data = json.loads(raw)
        except RecursionError:
            return self._fail(previous, DecodeError("payload is nested too deeply"), raw=raw)
        except (TypeError, ValueError) as ex:
            return self._fail(previous, DecodeError("payload is not valid JSON: %s" % ex), raw=raw)

        if not isinstance(data, dict):
            return self._fail(
                previous,
                DecodeError("payload must be an object, got %s" % type(data).__name__),
                raw=raw,
            )

        issues: list[MalformedNodeError] = []
        try:
            subsystems = self._parse_subsystems(data.get("subsystems"), issues)
            scheduled = self._parse_command_list(data.get("scheduled"), "scheduled", issues)
        except DecodeError as ex:
            return self._fail(previous, ex, raw=raw)
        except RecursionError:
            return self._fail(previous, DecodeError("command tree is nested too deeply"), raw=raw)

        snapshot = CommandTreeSnapshot(subsystems=subsystems, scheduled=scheduled)
        self._last_raw = raw
        self._last_snapshot = snapshot
        self._last_failure = None

        for issue in issues:
            self._log.warning(f"[decode] - malformed_node_skipped - path={issue.path} reason={issue.reason}")

        return DecodeResult(snapshot=snapshot, changed=True, issues=tuple(issues))

    # ------------------------------------------------------------------ helpers

    def _fail(self, previous: CommandTreeSnapshot | None, error: DecodeError, raw: str | None = None) -> DecodeResult:
        # the same bad payload arrives on every poll; warn once per distinct failure
        signature = (str(error), raw)
        if signature != self._last_failure:
            self._last_failure = signature
            self._log.warning(f"[decode] - decode_failed - error={error} raw={summarize_for_log(raw)}")
        return DecodeResult(snapshot=previous, changed=False, error=error)

    def _parse_subsystems(self, raw: Any, issues: list[MalformedNodeError]) -> tuple[Subsystem, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise DecodeError("'subsystems' must be a list, got %s" % type(raw).__name__)

        out: list[Subsystem] = []
        for index, entry in enumerate(raw):
            path = "subsystems[%d]" % index
            if not isinstance(entry, dict) or not isinstance(entry.get("name"), str):
                issues.append(MalformedNodeError(path, "subsystem needs a string 'name'"))
                continue

            root: Command | None = None
            raw_command = entry.get("command")
            if raw_command is not None:
                root = self._parse_command(raw_command, path + ".command", issues)
            out.append(Subsystem(name=entry["name"], root=root))
        return tuple(out)

    def _parse_command_list(self, raw: Any, path: str, issues: list[MalformedNodeError]) -> tuple[Command, ...]:
        if raw is None:
            return ()
        if not isinstance(raw, list):
            raise DecodeError("'%s' must be a list, got %s" % (path, type(raw).__name__))

        out: list[Command] = []
        for index, entry in enumerate(raw):
            command = self._parse_command(entry, "%s[%d]" % (path, index), issues)
            if command is not None:
                out.append(command)
        return tuple(out)

    def _parse_command(self, raw: Any, path: str, issues: list[MalformedNodeError]) -> Command | None:
        if not isinstance(raw, dict):
            issues.append(MalformedNodeError(path, "expected an object, got %s" % type(raw).__name__))
            return None

        name = raw.get("name")
        if not isinstance(name, str):
            issues.append(MalformedNodeError(path, "missing string 'name'"))
            return None

        has_children = "commands" in raw
        has_active = "active" in raw

        if has_children and has_active:
            issues.append(MalformedNodeError(path, "node has both 'active' and 'commands'"))
            return None

        if has_children:
            children = raw["commands"]
            if not isinstance(children, list):
                issues.append(MalformedNodeError(path, "'commands' must be a list"))
                return None
            parsed: list[Command] = []
            for index, child in enumerate(children):
                command = self._parse_command(child, "%s.commands[%d]" % (path, index), issues)
                if command is not None:
                    parsed.append(command)
            return GroupCommand(name=name, children=tuple(parsed))

        if has_active:
            active = raw["active"]
            if not isinstance(active, bool):
                issues.append(MalformedNodeError(path, "'active' must be a boolean"))
                return None
            return LeafCommand(name=name, active=active)

        issues.append(MalformedNodeError(path, "neither 'active' nor 'commands' present"))
        return None
