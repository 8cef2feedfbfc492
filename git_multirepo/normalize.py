"""Turn git's free-text output into structured records.

Every parser is best effort: unexpected text never raises, the raw output
captured by the batch applier stays the ground truth.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime
from pathlib import Path

from .models import (
    ChangeAction,
    CommitRecord,
    ConfigEntry,
    FileChange,
    PendingUpdates,
    RemoteDescription,
    StatusSummary,
)

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# config --list
# ---------------------------------------------------------------------------

CONFIG_SCOPES = {"local", "global", "system", "worktree", "command"}
_ORIGIN_PREFIXES = ("file:", "blob:", "command line:", "standard input:")


def parse_config_line(line: str, scope: str | None = None) -> ConfigEntry | None:
    """Parse one `config --list` line, optionally prefixed by scope/origin columns."""

    source_file = None
    remainder = line
    while "\t" in remainder:
        head, rest = remainder.split("\t", 1)
        if head in CONFIG_SCOPES:
            scope = head
        elif head.startswith(_ORIGIN_PREFIXES):
            source_file = head.split(":", 1)[1] if head.startswith("file:") else head
        else:
            break
        remainder = rest

    key, sep, setting = remainder.partition("=")
    category, dot, name = key.partition(".")
    if not sep or not dot or not category or not name:
        return None
    return ConfigEntry(
        scope=scope,
        category=category,
        name=name,
        setting=setting,
        source_file=source_file,
    )


def parse_config_list(text: str, scope: str | None = None) -> list[ConfigEntry]:
    entries: list[ConfigEntry] = []
    for line in text.splitlines():
        if not line.strip():
            continue
        entry = parse_config_line(line, scope)
        if entry is None:
            logger.warning("skipping malformed config line: %r", line)
            continue
        entries.append(entry)
    return entries


# ---------------------------------------------------------------------------
# status
# ---------------------------------------------------------------------------

# First match wins.
STATUS_MARKERS: tuple[tuple[tuple[str, ...], PendingUpdates], ...] = (
    (("nothing to commit", "working tree clean"), PendingUpdates.CLEAN),
    (("changes to be committed",), PendingUpdates.UNCOMMITTED),
    (("changes not staged for commit",), PendingUpdates.NOT_STAGED),
    (("untracked files",), PendingUpdates.UNTRACKED_PRESENT),
)

_ON_BRANCH = re.compile(r"^On branch (?P<branch>\S+)", re.MULTILINE)
_DETACHED = re.compile(r"^HEAD detached (?:at|from) (?P<ref>\S+)", re.MULTILINE)
_UP_TO_DATE = re.compile(r"Your branch is up to date with '(?P<upstream>[^']+)'")
_AHEAD = re.compile(r"Your branch is ahead of '(?P<upstream>[^']+)' by (?P<count>\d+) commit")
_BEHIND = re.compile(r"Your branch is behind '(?P<upstream>[^']+)' by (?P<count>\d+) commit")
_DIVERGED = re.compile(
    r"Your branch and '(?P<upstream>[^']+)' have diverged,\s+and have (?P<ahead>\d+) and (?P<behind>\d+) different commits"
)
_GONE = re.compile(r"Your branch is based on '(?P<upstream>[^']+)', but the upstream is gone")


def classify_status(text: str) -> PendingUpdates:
    lowered = text.lower()
    for phrases, pending in STATUS_MARKERS:
        if any(phrase in lowered for phrase in phrases):
            return pending
    return PendingUpdates.UNKNOWN


def parse_status(text: str) -> StatusSummary:
    branch = None
    detached_at = None
    if match := _ON_BRANCH.search(text):
        branch = match.group("branch")
    elif match := _DETACHED.search(text):
        detached_at = match.group("ref")

    upstream = None
    is_current = None
    ahead = behind = 0
    if match := _UP_TO_DATE.search(text):
        upstream, is_current = match.group("upstream"), True
    elif match := _AHEAD.search(text):
        upstream, is_current, ahead = match.group("upstream"), False, int(match.group("count"))
    elif match := _BEHIND.search(text):
        upstream, is_current, behind = match.group("upstream"), False, int(match.group("count"))
    elif match := _DIVERGED.search(text):
        upstream, is_current = match.group("upstream"), False
        ahead, behind = int(match.group("ahead")), int(match.group("behind"))
    elif match := _GONE.search(text):
        upstream = match.group("upstream")

    pending = classify_status(text)
    if pending is PendingUpdates.UNKNOWN:
        logger.warning("could not classify git status output")
    return StatusSummary(
        branch=branch,
        detached=detached_at is not None,
        detached_at=detached_at,
        upstream=upstream,
        is_current=is_current,
        ahead=ahead,
        behind=behind,
        pending_updates=pending,
        message=text,
    )


# ---------------------------------------------------------------------------
# file change codes (log --name-status, status --porcelain)
# ---------------------------------------------------------------------------

ACTION_CODES: dict[str, ChangeAction] = {
    "A": ChangeAction.ADDED,
    "M": ChangeAction.MODIFIED,
    "D": ChangeAction.DELETED,
    "R": ChangeAction.RENAMED,
    "??": ChangeAction.UNKNOWN,
}


def action_for_code(code: str) -> ChangeAction:
    """Map an action code to a ChangeAction; rename similarity digits are ignored."""

    code = code.strip()
    if code in ACTION_CODES:
        return ACTION_CODES[code]
    return ACTION_CODES.get(code.rstrip("0123456789"), ChangeAction.UNKNOWN)


def parse_name_status_line(line: str) -> FileChange | None:
    parts = line.rstrip("\n").split("\t")
    if len(parts) < 2 or not parts[0].strip():
        return None
    code = parts[0].strip()
    paths = [_unquote(part) for part in parts[1:] if part]
    if not paths:
        return None
    path = f"{paths[0]}=>{paths[1]}" if len(paths) > 1 else paths[0]
    return FileChange(action=action_for_code(code), path=path, code=code)


def parse_porcelain_status(text: str) -> list[FileChange]:
    """Parse `git status --porcelain` (v1) into file changes."""

    changes: list[FileChange] = []
    for line in text.splitlines():
        if len(line) < 4 or line[2] != " ":
            continue
        xy = line[:2]
        if xy == "??":
            code = "??"
        else:
            code = xy[0] if xy[0] not in " ?" else xy[1]
        path = line[3:]
        if " -> " in path:
            old, new = path.split(" -> ", 1)
            path = f"{_unquote(old)}=>{_unquote(new)}"
        else:
            path = _unquote(path)
        changes.append(FileChange(action=action_for_code(code), path=path, code=xy.strip()))
    return changes


_C_ESCAPES = {"a": "\a", "b": "\b", "t": "\t", "n": "\n", "v": "\v", "f": "\f", "r": "\r", '"': '"', "\\": "\\"}
_ESCAPE_TOKEN = re.compile(r"\\([0-7]{1,3}|.)|[^\\]+", re.DOTALL)


def _unquote(path: str) -> str:
    """Undo git's C-style quoting of a path, including octal-escaped UTF-8 bytes."""

    if len(path) < 2 or not (path.startswith('"') and path.endswith('"')):
        return path
    decoded = bytearray()
    for match in _ESCAPE_TOKEN.finditer(path[1:-1]):
        escape = match.group(1)
        if escape is None:
            decoded += match.group(0).encode("utf-8")
        elif escape[0] in "01234567":
            decoded.append(int(escape, 8) & 0xFF)
        else:
            decoded += _C_ESCAPES.get(escape, escape).encode("utf-8")
    return decoded.decode("utf-8", errors="replace")


# ---------------------------------------------------------------------------
# log
# ---------------------------------------------------------------------------

RECORD_SEP = "\x1e"
FIELD_SEP = "\x1f"
LOG_FORMAT = "%x1e" + "%x1f".join(["%aI", "%s", "%H", "%an <%ae>", "%cn <%ce>"])


def parse_log(text: str, path: Path) -> tuple[list[CommitRecord], str]:
    """Parse `git log --format=LOG_FORMAT --name-status` output.

    Returns the parsed commits and any text that did not fit the format.
    """

    records: list[CommitRecord] = []
    leftovers: list[str] = []
    for chunk in text.split(RECORD_SEP):
        if not chunk.strip():
            continue
        lines = chunk.strip("\n").splitlines()
        header = lines[0].split(FIELD_SEP)
        if len(header) != 5:
            leftovers.append(chunk)
            continue
        date_raw, subject, commit_hash, author, committer = header
        try:
            date = datetime.fromisoformat(date_raw.strip())
        except ValueError:
            leftovers.append(chunk)
            continue
        changes = []
        for line in lines[1:]:
            if not line.strip():
                continue
            change = parse_name_status_line(line)
            if change is None:
                logger.warning("skipping unrecognised name-status line: %r", line)
                continue
            changes.append(change)
        records.append(
            CommitRecord(
                path=path,
                hash=commit_hash,
                date=date,
                message=subject,
                author=author,
                committer=committer,
                changes=changes,
            )
        )
    return records, "".join(leftovers)


# ---------------------------------------------------------------------------
# remote show
# ---------------------------------------------------------------------------

_REMOTE_HEADER = re.compile(r"^\*\s+remote\s+(?P<name>\S+)")
_LABEL_LINE = re.compile(r"^(?P<indent>\s*)(?P<label>[A-Za-z][^:]*?):(?:\s+(?P<value>.*))?$")
# stderr lines folded into the output by the batch runner
_DIAGNOSTIC_LINE = re.compile(r"^(?:warning|hint|error|fatal|remote):", re.IGNORECASE)


def parse_remote_show(text: str) -> RemoteDescription:
    description = RemoteDescription(name=None)
    label_indent: int | None = None
    current: str | None = None
    for raw in text.splitlines():
        if not raw.strip():
            continue
        if header := _REMOTE_HEADER.match(raw):
            description.name = header.group("name")
            label_indent = current = None
            continue
        if _DIAGNOSTIC_LINE.match(raw):
            logger.debug("ignoring git diagnostic in remote output: %r", raw)
            continue
        match = _LABEL_LINE.match(raw)
        indent = len(raw) - len(raw.lstrip())
        if match and (label_indent is None or indent <= label_indent):
            label_indent = indent
            current = " ".join(match.group("label").split())
            value = (match.group("value") or "").strip()
            description.fields[current] = value if value else []
            continue
        if current is None:
            logger.warning("ignoring remote line without a label: %r", raw)
            continue
        existing = description.fields[current]
        if isinstance(existing, str):
            existing = [existing]
        existing.append(raw.strip())
        description.fields[current] = existing
    return description


# ---------------------------------------------------------------------------
# failures
# ---------------------------------------------------------------------------

FAILURE_REASONS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("not a git repository",), "not_git_repo"),
    (("couldn't find remote ref", "no such remote", "does not appear to be a git repository"), "remote_ref_missing"),
    (("your local changes", "would be overwritten"), "local_changes_conflict"),
    (("refusing to merge unrelated histories",), "unrelated_histories"),
    (("not possible to fast-forward", "cannot fast-forward"), "not_fast_forward"),
    (("conflict",), "merge_conflict"),
    (("nothing to commit", "no changes added to commit"), "nothing_to_commit"),
    (("could not resolve host", "failed to connect", "timed out", "unable to access"), "network_error"),
    (("authentication failed", "permission denied"), "auth_error"),
    (("rejected",), "push_rejected"),
)


def classify_failure(text: str) -> str:
    """Map common git failure output to a concise reason tag."""

    lowered = (text or "").lower()
    if not lowered.strip():
        return "unknown"
    for phrases, reason in FAILURE_REASONS:
        if any(phrase in lowered for phrase in phrases):
            return reason
    return "unknown"
