"""Thin wrappers around the git CLI."""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable

from .exceptions import GitCommandError, PreconditionError, ProcessInvocationError
from .settings import Settings

logger = logging.getLogger(__name__)

_PINNED_LOCALE = {"LC_ALL": "C", "LANG": "C"}


def ensure_git_available(executable: str = "git") -> str:
    """Return the resolved path of the git executable or raise PreconditionError."""

    resolved = shutil.which(executable)
    if resolved is None:
        raise PreconditionError(
            f"git executable {executable!r} was not found on PATH. Install git or set GMR_GIT."
        )
    return resolved


def run_git(
    args: Iterable[str],
    *,
    cwd: Path,
    raise_on_error: bool = True,
    merge_output: bool = False,
    timeout: float | None = None,
    executable: str = "git",
    pin_locale: bool = True,
    unquote_paths: bool = True,
) -> subprocess.CompletedProcess[str]:
    """Execute a git command and optionally raise on failure.

    With ``merge_output`` stderr is folded into stdout in arrival order, so
    ``proc.stdout`` holds everything git printed and ``proc.stderr`` is None.
    ``unquote_paths`` adds ``-c core.quotepath=false``; turn it off for
    commands that report command-line overrides, such as ``config --list``.
    """

    cmd = [executable]
    if pin_locale and unquote_paths:
        cmd.extend(["-c", "core.quotepath=false"])
    cmd.extend(args)
    env = None
    if pin_locale:
        env = {**os.environ, **_PINNED_LOCALE}
    logger.debug("running %s in %s", " ".join(cmd), cwd)
    try:
        proc = subprocess.run(
            cmd,
            cwd=str(cwd),
            env=env,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT if merge_output else subprocess.PIPE,
            text=True,
            encoding="utf-8",
            errors="replace",
            timeout=timeout,
            check=False,
        )
    except FileNotFoundError as exc:
        # subprocess reports the executable as the filename when it is missing,
        # and the cwd when the working directory is missing.
        if exc.filename == executable:
            raise PreconditionError(f"git executable {executable!r} was not found.") from exc
        raise ProcessInvocationError(cmd, str(exc)) from exc
    except subprocess.TimeoutExpired as exc:
        raise ProcessInvocationError(cmd, f"timed out after {timeout}s") from exc
    except OSError as exc:
        raise ProcessInvocationError(cmd, str(exc)) from exc
    if raise_on_error and proc.returncode != 0:
        raise GitCommandError(cmd, proc.returncode, proc.stderr if not merge_output else proc.stdout)
    return proc


@dataclass(frozen=True)
class GitRunner:
    """Callable used by the batch applier: merged output, never raises on exit code."""

    executable: str = "git"
    timeout: float | None = None
    pin_locale: bool = True

    @classmethod
    def from_settings(cls, settings: Settings) -> "GitRunner":
        return cls(
            executable=settings.git_executable,
            timeout=settings.timeout,
            pin_locale=settings.pin_locale,
        )

    def __call__(self, args: Iterable[str], *, cwd: Path) -> subprocess.CompletedProcess[str]:
        return run_git(
            args,
            cwd=cwd,
            raise_on_error=False,
            merge_output=True,
            timeout=self.timeout,
            executable=self.executable,
            pin_locale=self.pin_locale,
        )

    def run_checked(
        self,
        args: Iterable[str],
        *,
        cwd: Path,
        unquote_paths: bool = True,
    ) -> subprocess.CompletedProcess[str]:
        """Run a single command with separate streams, raising GitCommandError on failure."""

        return run_git(
            args,
            cwd=cwd,
            raise_on_error=True,
            timeout=self.timeout,
            executable=self.executable,
            pin_locale=self.pin_locale,
            unquote_paths=unquote_paths,
        )
