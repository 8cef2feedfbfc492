"""Interactive prompt helpers built on InquirerPy."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Sequence

from InquirerPy import inquirer

from .exceptions import UserAbort, ValidationError
from .models import CommandSpec


def ensure_tty() -> None:
    if not sys.stdin.isatty():
        raise ValidationError(
            "Confirmation requires a TTY. Pass --yes to run non-interactively."
        )


def confirm(message: str, default: bool = True) -> bool:
    ensure_tty()
    try:
        return bool(inquirer.confirm(message=message, default=default).execute())
    except KeyboardInterrupt as exc:
        raise UserAbort("Cancelled.") from exc


def describe_commands(commands: Sequence[CommandSpec]) -> str:
    return " && ".join("git " + " ".join(spec.args) for spec in commands)


def confirm_repo(repo: Path, commands: Sequence[CommandSpec]) -> bool:
    """Ask before running mutating commands in ``repo``."""

    return confirm(f"Run `{describe_commands(commands)}` in {repo}?", default=False)
