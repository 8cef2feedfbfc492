"""High-level repository operations built on the batch applier."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Sequence

from .batch import Confirm, ResultCallback, Runner, apply_to_each
from .exceptions import ValidationError
from .git import GitRunner
from .locator import PathInput, resolve_path
from .models import CommandResult, CommandSpec, ConfigEntry, ResetMode
from .normalize import (
    LOG_FORMAT,
    parse_config_list,
    parse_log,
    parse_porcelain_status,
    parse_remote_show,
    parse_status,
)

CONFIG_SCOPES = ("local", "global", "system")

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+$")
_COMMIT_HEADER = re.compile(r"^\[(?P<branch>\S+) (?:\(root-commit\) )?(?P<hash>[0-9a-f]{4,})\]", re.MULTILINE)
_HEAD_NOW = re.compile(r"^HEAD is now at (?P<head>.+)$", re.MULTILINE)


@dataclass
class RepoService:
    """Runs one git operation over many repositories."""

    runner: Runner = field(default_factory=GitRunner)
    confirm: Confirm | None = None
    confirm_per_repo: bool = False
    on_result: ResultCallback | None = None

    def status(
        self,
        repos: Sequence[Path],
        *,
        show_origin: bool = False,
        extended: bool = False,
    ) -> list[CommandResult]:
        steps = [CommandSpec(("status",), label="status")]
        if extended:
            steps.append(CommandSpec(("status", "--porcelain"), label="status --porcelain"))
        if show_origin:
            steps.append(CommandSpec(("config", "--get", "remote.origin.url"), check=False, label="origin"))

        def normalize(result: CommandResult) -> None:
            outputs = iter(result.outputs)
            summary = parse_status(next(outputs))
            result.fields.update(
                status=summary,
                branch=summary.branch,
                detached_at=summary.detached_at,
                is_current=summary.is_current,
                pending_updates=summary.pending_updates,
                message=summary.message,
            )
            if extended:
                result.fields["changed_files"] = parse_porcelain_status(next(outputs))
            if show_origin:
                result.fields["origin"] = next(outputs).strip() or None

        return self._apply(repos, steps, normalize)

    def log(
        self,
        repos: Sequence[Path],
        *,
        count: int = 10,
        expand_actions: bool = False,
    ) -> list[CommandResult]:
        if count < 1:
            raise ValidationError("Commit count must be at least 1.")
        spec = CommandSpec(
            ("log", f"--max-count={count}", f"--format={LOG_FORMAT}", "--name-status"),
            label="log",
        )

        def normalize(result: CommandResult) -> None:
            commits, leftovers = parse_log(result.outputs[0], result.path)
            for commit in commits:
                commit.expanded = expand_actions
            result.fields["commits"] = commits
            if leftovers.strip():
                result.fields["unparsed"] = leftovers

        return self._apply(repos, spec, normalize)

    def pull(self, repos: Sequence[Path], *, ff_only: bool = False) -> list[CommandResult]:
        args = ("pull", "--ff-only") if ff_only else ("pull",)

        def normalize(result: CommandResult) -> None:
            result.fields["up_to_date"] = "already up to date" in result.raw_output.lower()

        return self._apply(repos, CommandSpec(args, mutating=True, label="pull"), normalize)

    def push(self, repos: Sequence[Path]) -> list[CommandResult]:
        def normalize(result: CommandResult) -> None:
            result.fields["up_to_date"] = "everything up-to-date" in result.raw_output.lower()

        return self._apply(repos, CommandSpec(("push",), mutating=True, label="push"), normalize)

    def commit(
        self,
        repos: Sequence[Path],
        message: str,
        *,
        add_all: bool = False,
        push: bool = False,
    ) -> list[CommandResult]:
        if not message or not message.strip():
            raise ValidationError("Commit message cannot be empty.")
        steps = []
        if add_all:
            steps.append(CommandSpec(("add", "--all"), mutating=True, label="add"))
        steps.append(CommandSpec(("commit", "-m", message), mutating=True, label="commit"))
        if push:
            steps.append(CommandSpec(("push",), mutating=True, label="push"))

        def normalize(result: CommandResult) -> None:
            if match := _COMMIT_HEADER.search(result.raw_output):
                result.fields["branch"] = match.group("branch")
                result.fields["commit"] = match.group("hash")

        return self._apply(repos, steps, normalize)

    def remove_commits(
        self,
        repos: Sequence[Path],
        *,
        count: int = 1,
        mode: ResetMode = ResetMode.MIXED,
    ) -> list[CommandResult]:
        if count < 1:
            raise ValidationError("Number of commits to remove must be at least 1.")
        try:
            mode = ResetMode(mode)
        except ValueError as exc:
            raise ValidationError(f"Reset mode must be soft, mixed or hard; got {mode!r}") from exc
        spec = CommandSpec(("reset", f"--{mode.value}", f"HEAD~{count}"), mutating=True, label="reset")

        def normalize(result: CommandResult) -> None:
            if match := _HEAD_NOW.search(result.raw_output):
                result.fields["head"] = match.group("head").strip()

        return self._apply(repos, spec, normalize)

    def remotes(
        self,
        repos: Sequence[Path],
        *,
        describe: bool = False,
        offline: bool = False,
    ) -> list[CommandResult]:
        if describe:
            args = ("remote", "show", "-n", "origin") if offline else ("remote", "show", "origin")

            def normalize(result: CommandResult) -> None:
                remote = parse_remote_show(result.raw_output)
                result.fields["remote"] = remote
                result.fields["origin"] = remote.fetch_url

            return self._apply(repos, CommandSpec(args, label="remote show"), normalize)

        def normalize_url(result: CommandResult) -> None:
            result.fields["origin"] = result.raw_output.strip() or None

        return self._apply(repos, CommandSpec(("remote", "get-url", "origin"), label="remote"), normalize_url)

    def set_user_email(self, repos: Sequence[Path], email: str) -> list[CommandResult]:
        email = validate_email(email)

        def normalize(result: CommandResult) -> None:
            result.fields["email"] = email

        spec = CommandSpec(("config", "user.email", email), mutating=True, label="config user.email")
        return self._apply(repos, spec, normalize)

    def _apply(self, repos, commands, normalizer) -> list[CommandResult]:
        return apply_to_each(
            repos,
            commands,
            confirm_per_repo=self.confirm_per_repo,
            confirm=self.confirm,
            runner=self.runner,
            normalizer=normalizer,
            on_result=self.on_result,
        )


def list_config(
    path: PathInput | None = None,
    *,
    scope: str | None = None,
    file: PathInput | None = None,
    runner: GitRunner | None = None,
) -> list[ConfigEntry]:
    """Return the configuration visible from ``path`` as ConfigEntry records."""

    runner = runner or GitRunner()
    args = ["config", "--list", "--show-origin"]
    entry_scope = None
    if file is not None:
        config_file = resolve_path(file)
        if not config_file.is_file():
            raise ValidationError(f"Config file does not exist: {config_file}")
        args.extend(["--file", str(config_file)])
        entry_scope = "file"
    elif scope is not None:
        if scope not in CONFIG_SCOPES:
            raise ValidationError(f"Scope must be one of {', '.join(CONFIG_SCOPES)}; got {scope!r}")
        args.append(f"--{scope}")
        entry_scope = scope
    else:
        args.append("--show-scope")
    proc = runner.run_checked(args, cwd=resolve_path(path), unquote_paths=False)
    return parse_config_list(proc.stdout, scope=entry_scope)


def set_global_user_email(email: str, *, runner: GitRunner | None = None) -> str:
    email = validate_email(email)
    runner = runner or GitRunner()
    runner.run_checked(["config", "--global", "user.email", email], cwd=Path.cwd())
    return email


def validate_email(email: str) -> str:
    email = (email or "").strip()
    if not _EMAIL.match(email):
        raise ValidationError(f"Not a valid email address: {email!r}")
    return email
