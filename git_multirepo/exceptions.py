"""Custom exception hierarchy for git-multirepo."""

from __future__ import annotations

from pathlib import Path
from typing import Sequence


class MultiRepoError(Exception):
    """Base error for all custom exceptions."""


class PreconditionError(MultiRepoError):
    """Raised when the git executable cannot be located. Aborts the whole run."""


class ValidationError(MultiRepoError):
    """Raised when user input or a command spec is invalid."""


class InvalidInputError(ValidationError):
    """A supplied path does not exist or is not a directory."""

    def __init__(self, path: Path, message: str | None = None):
        super().__init__(message or f"Path does not exist or is not a directory: {path}")
        self.path = path


class NotARepositoryError(MultiRepoError):
    """A directory contains no discoverable .git marker.

    Reported as a warning: an empty directory tree is an expected outcome.
    """

    def __init__(self, path: Path, message: str | None = None):
        super().__init__(message or f"No git repository found in {path}")
        self.path = path


class ProcessInvocationError(MultiRepoError):
    """Raised when the git process could not be started or was interrupted."""

    def __init__(self, command: Sequence[str], reason: str):
        super().__init__(f"Could not run {' '.join(command)}: {reason}")
        self.command = list(command)
        self.reason = reason


class GitCommandError(MultiRepoError):
    """Raised when a git invocation fails."""

    def __init__(self, command: list[str], returncode: int, stderr: str | None = None):
        message = "Git command failed"
        if command:
            message = f"Git command failed: {' '.join(command)}"
        detail = (stderr or "").strip()
        if detail:
            message = f"{message}\n{detail}"
        super().__init__(message)
        self.command = command
        self.returncode = returncode
        self.stderr = stderr or ""


class UserAbort(MultiRepoError):
    """Raised when the user cancels an interactive flow."""
