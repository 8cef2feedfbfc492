"""Test doubles shared by the test modules."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Any

from git_multirepo.exceptions import GitCommandError


class FakeRunner:
    """Stands in for GitRunner; responses are keyed by repo name and subcommand.

    A response is ``(returncode, output)`` or an exception instance to raise.
    Lookup order: ``(repo_name, full_args)``, ``(repo_name, subcommand)``,
    ``repo_name``, then the default.
    """

    def __init__(self, responses: dict[Any, Any] | None = None, default: tuple[int, str] = (0, "")):
        self.responses = responses or {}
        self.default = default
        self.calls: list[tuple[Path, tuple[str, ...]]] = []
        self.checked_options: list[dict[str, Any]] = []

    def __call__(self, args, *, cwd):
        args = tuple(args)
        repo = Path(cwd)
        self.calls.append((repo, args))
        for key in ((repo.name, args), (repo.name, args[0]), repo.name):
            if key in self.responses:
                response = self.responses[key]
                break
        else:
            response = self.default
        if isinstance(response, BaseException):
            raise response
        code, output = response
        return subprocess.CompletedProcess(["git", *args], code, stdout=output, stderr=None)

    def run_checked(self, args, *, cwd, **options):
        self.checked_options.append(options)
        proc = self(args, cwd=cwd)
        if proc.returncode != 0:
            raise GitCommandError(["git", *proc.args[1:]], proc.returncode, proc.stdout)
        return proc


def make_repo(path: Path) -> Path:
    """Create a directory that looks like a working tree (hidden .git directory)."""

    marker = path / ".git"
    marker.mkdir(parents=True)
    if os.name == "nt":  # pragma: no cover - dot-prefixed names are hidden elsewhere
        subprocess.run(["attrib", "+h", str(marker)], check=True)
    return path
