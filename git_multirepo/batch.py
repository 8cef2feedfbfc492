"""Run git command sequences over a set of repositories, one at a time."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, Iterable, Protocol, Sequence

from .exceptions import PreconditionError, ProcessInvocationError, UserAbort, ValidationError
from .git import GitRunner
from .models import CommandResult, CommandSpec, Outcome
from .normalize import classify_failure

logger = logging.getLogger(__name__)


class Runner(Protocol):
    def __call__(self, args: Sequence[str], *, cwd: Path) -> subprocess.CompletedProcess[str]:
        ...


Confirm = Callable[[Path, Sequence[CommandSpec]], bool]
Normalizer = Callable[[CommandResult], None]
ResultCallback = Callable[[CommandResult], None]


def apply_to_each(
    repos: Iterable[Path],
    commands: CommandSpec | Sequence[CommandSpec],
    *,
    confirm_per_repo: bool = False,
    confirm: Confirm | None = None,
    runner: Runner | None = None,
    normalizer: Normalizer | None = None,
    on_result: ResultCallback | None = None,
) -> list[CommandResult]:
    """Run ``commands`` in every repository and return one result per repository.

    Failures are recorded on the repository's result and the batch moves on.
    Only a malformed command spec (before any repository is touched) and a
    missing git executable raise.
    """

    steps = _prepare(commands)
    if confirm_per_repo and confirm is None and any(step.mutating for step in steps):
        raise ValidationError("Confirmation was requested but no confirm callback was given.")
    run = runner or GitRunner()

    results: list[CommandResult] = []
    for repo in repos:
        result = _run_one(Path(repo), steps, run, confirm if confirm_per_repo else None)
        if result.succeeded and normalizer is not None:
            _normalize(result, normalizer)
        results.append(result)
        if on_result is not None:
            on_result(result)
    return results


def summarize(results: Iterable[CommandResult]) -> dict[str, int]:
    summary = {outcome.value: 0 for outcome in Outcome}
    for result in results:
        summary[result.outcome.value] += 1
    return summary


def _prepare(commands: CommandSpec | Sequence[CommandSpec]) -> tuple[CommandSpec, ...]:
    steps = (commands,) if isinstance(commands, CommandSpec) else tuple(commands)
    if not steps:
        raise ValidationError("At least one command spec is required.")
    for step in steps:
        if not isinstance(step, CommandSpec):
            raise ValidationError(f"Expected a CommandSpec, got {step!r}")
        step.validate()
    return steps


def _run_one(
    repo: Path,
    steps: tuple[CommandSpec, ...],
    run: Runner,
    confirm: Confirm | None,
) -> CommandResult:
    result = CommandResult(path=repo)
    if confirm is not None and any(step.mutating for step in steps):
        try:
            accepted = confirm(repo, steps)
        except UserAbort:
            accepted = False
        if not accepted:
            result.outcome = Outcome.CANCELLED
            result.error = "cancelled by user"
            logger.debug("skipping %s: cancelled", repo)
            return result

    try:
        for step in steps:
            result.commands.append(step.args)
            proc = run(step.args, cwd=repo)
            result.outputs.append(proc.stdout or "")
            result.returncode = proc.returncode
            if proc.returncode != 0 and step.check:
                result.outcome = Outcome.FAILED
                result.error = f"git {step.name} exited with status {proc.returncode}"
                result.fields["reason"] = classify_failure(proc.stdout or "")
                break
    except PreconditionError:
        raise
    except ProcessInvocationError as exc:
        _record_exception(result, exc)
    except Exception as exc:  # one repository must never sink the batch
        logger.exception("unexpected error in %s", repo)
        _record_exception(result, exc)
    return result


def _record_exception(result: CommandResult, exc: Exception) -> None:
    result.outcome = Outcome.FAILED
    result.error = str(exc)
    result.fields["reason"] = "exception"


def _normalize(result: CommandResult, normalizer: Normalizer) -> None:
    try:
        normalizer(result)
    except Exception as exc:
        logger.warning("could not parse output for %s: %s", result.path, exc)
        result.fields["unparsed"] = result.raw_output
