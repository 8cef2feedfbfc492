"""Dataclasses shared across modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

from .exceptions import ValidationError


class Outcome(str, Enum):
    """How a single repository fared in a batch."""

    SUCCEEDED = "succeeded"
    FAILED = "failed"
    CANCELLED = "cancelled"


class PendingUpdates(str, Enum):
    """Primary classification of a `git status` block."""

    CLEAN = "Clean"
    UNCOMMITTED = "Uncommitted"
    NOT_STAGED = "NotStaged"
    UNTRACKED_PRESENT = "UntrackedPresent"
    UNKNOWN = "Unknown"


class ChangeAction(str, Enum):
    """File change types reported by `--name-status` and `--porcelain`."""

    ADDED = "Added"
    MODIFIED = "Modified"
    DELETED = "Deleted"
    RENAMED = "Renamed"
    UNKNOWN = "Unknown"


class ResetMode(str, Enum):
    SOFT = "soft"
    MIXED = "mixed"
    HARD = "hard"


@dataclass(frozen=True)
class CommandSpec:
    """A git subcommand plus its arguments, kept as an argument vector."""

    args: tuple[str, ...]
    mutating: bool = False
    check: bool = True
    label: str = ""

    @property
    def name(self) -> str:
        return self.label or (self.args[0] if self.args else "?")

    def validate(self) -> None:
        if not self.args:
            raise ValidationError("Command spec has no arguments.")
        if not all(isinstance(arg, str) for arg in self.args):
            raise ValidationError(f"Command arguments must be strings: {self.args!r}")
        if self.args[0].startswith("-") and self.args[0] != "-c":
            raise ValidationError(f"Command spec must start with a git subcommand: {self.args!r}")


@dataclass
class CommandResult:
    """One record per repository processed by the batch applier."""

    path: Path
    commands: list[tuple[str, ...]] = field(default_factory=list)
    outputs: list[str] = field(default_factory=list)
    returncode: int | None = None
    outcome: Outcome = Outcome.SUCCEEDED
    error: str = ""
    fields: dict[str, Any] = field(default_factory=dict)

    @property
    def raw_output(self) -> str:
        return "".join(self.outputs)

    @property
    def succeeded(self) -> bool:
        return self.outcome is Outcome.SUCCEEDED

    @property
    def cancelled(self) -> bool:
        return self.outcome is Outcome.CANCELLED

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": str(self.path),
            "commands": [list(cmd) for cmd in self.commands],
            "raw_output": self.raw_output,
            "returncode": self.returncode,
            "outcome": self.outcome.value,
            "succeeded": self.succeeded,
            "error": self.error,
            "fields": {key: to_jsonable(value) for key, value in self.fields.items()},
        }


@dataclass(frozen=True)
class ConfigEntry:
    """A single `key=value` line from `git config --list`."""

    scope: str | None
    category: str
    name: str
    setting: str
    source_file: str | None = None

    @property
    def key(self) -> str:
        return f"{self.category}.{self.name}"

    def to_dict(self) -> dict[str, Any]:
        return {
            "scope": self.scope,
            "category": self.category,
            "name": self.name,
            "setting": self.setting,
            "source_file": self.source_file,
        }


@dataclass(frozen=True)
class FileChange:
    action: ChangeAction
    path: str
    code: str = ""

    def __str__(self) -> str:
        return f"{self.action.value}: {self.path}"

    def to_dict(self) -> dict[str, Any]:
        return {"action": self.action.value, "path": self.path, "code": self.code}


@dataclass
class CommitRecord:
    """A commit parsed from `git log --name-status` output."""

    path: Path
    hash: str
    date: datetime
    message: str
    author: str
    committer: str
    changes: list[FileChange] = field(default_factory=list)
    expanded: bool = field(default=False, repr=False, compare=False)

    @property
    def short_hash(self) -> str:
        return self.hash[:7]

    def changes_by_action(self) -> dict[ChangeAction, list[str]]:
        """Return one list of affected paths per change type."""

        grouped: dict[ChangeAction, list[str]] = {action: [] for action in ChangeAction}
        for change in self.changes:
            grouped[change.action].append(change.path)
        return grouped

    def to_dict(self, expand_actions: bool | None = None) -> dict[str, Any]:
        if expand_actions is None:
            expand_actions = self.expanded
        data: dict[str, Any] = {
            "path": str(self.path),
            "hash": self.hash,
            "date": self.date.isoformat(),
            "message": self.message,
            "author": self.author,
            "committer": self.committer,
        }
        if expand_actions:
            for action, paths in self.changes_by_action().items():
                data[action.value] = paths
        else:
            data["changes"] = [change.to_dict() for change in self.changes]
        return data


@dataclass
class StatusSummary:
    """Structured view of a human-readable `git status` block."""

    branch: str | None
    detached: bool
    upstream: str | None
    is_current: bool | None
    ahead: int
    behind: int
    pending_updates: PendingUpdates
    message: str
    detached_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "branch": self.branch,
            "detached": self.detached,
            "detached_at": self.detached_at,
            "upstream": self.upstream,
            "is_current": self.is_current,
            "ahead": self.ahead,
            "behind": self.behind,
            "pending_updates": self.pending_updates.value,
            "message": self.message,
        }


@dataclass
class RemoteDescription:
    """Parsed `git remote show <name>` block."""

    name: str | None
    fields: dict[str, str | list[str]] = field(default_factory=dict)

    def _scalar(self, label: str) -> str | None:
        value = self.fields.get(label)
        if isinstance(value, list):
            return value[0] if value else None
        return value

    @property
    def fetch_url(self) -> str | None:
        return self._scalar("Fetch URL")

    @property
    def push_url(self) -> str | None:
        return self._scalar("Push URL")

    @property
    def head_branch(self) -> str | None:
        return self._scalar("HEAD branch")

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "fields": dict(self.fields)}


def to_jsonable(value: Any) -> Any:
    """Convert normalized field values into JSON-friendly structures."""

    if hasattr(value, "to_dict"):
        return value.to_dict()
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Path):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_jsonable(key)): to_jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    return value
