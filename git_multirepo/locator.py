"""Find git working trees under one or more starting paths."""

from __future__ import annotations

import logging
import os
import stat
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Union

from .exceptions import InvalidInputError, NotARepositoryError

logger = logging.getLogger(__name__)

GIT_MARKER = ".git"

PathInput = Union[str, "os.PathLike[str]"]


@dataclass
class LocateResult:
    """Repository roots found plus per-input problems (errors and warnings)."""

    repos: list[Path] = field(default_factory=list)
    issues: list[InvalidInputError | NotARepositoryError] = field(default_factory=list)

    @property
    def invalid_inputs(self) -> list[InvalidInputError]:
        return [issue for issue in self.issues if isinstance(issue, InvalidInputError)]

    @property
    def warnings(self) -> list[NotARepositoryError]:
        return [issue for issue in self.issues if isinstance(issue, NotARepositoryError)]


def resolve_path(path: PathInput | None = None) -> Path:
    """Normalise any path-like input to an absolute Path. None means the cwd."""

    if path is None or path == "":
        return Path.cwd()
    return Path(os.fspath(path)).expanduser().resolve()


def locate(
    roots: Iterable[PathInput] | PathInput,
    recursive: bool = False,
    max_depth: int | None = None,
) -> LocateResult:
    """Return the sorted, deduplicated working-tree roots under ``roots``.

    Without ``recursive`` only ``<root>/.git`` is checked. With it the whole
    subtree is searched; ``max_depth`` bounds how many directory levels below
    the root a marker may sit (0 means directly inside the root).
    """

    if isinstance(roots, (str, os.PathLike)):
        roots = [roots]
    depth_limit = max_depth if recursive else 0

    found: set[Path] = set()
    result = LocateResult()
    for raw in roots:
        root = resolve_path(raw)
        if not root.exists() or not root.is_dir():
            result.issues.append(InvalidInputError(root))
            continue
        repos = _walk(root, depth_limit)
        if not repos:
            result.issues.append(NotARepositoryError(root))
        elif recursive and root not in repos:
            result.issues.extend(_barren_children(root, repos))
        found.update(repos)
        logger.debug("found %d repositories under %s", len(repos), root)

    result.repos = sorted(found)
    return result


def is_git_marker(entry: Path) -> bool:
    """True for a hidden ``.git`` directory; ``.git`` files are not recognised."""

    if os.path.normcase(entry.name) != os.path.normcase(GIT_MARKER):
        return False
    try:
        info = entry.stat()
    except OSError:
        return False
    return stat.S_ISDIR(info.st_mode) and _is_hidden(entry, info)


def _is_hidden(entry: Path, info: os.stat_result) -> bool:
    attributes = getattr(info, "st_file_attributes", None)
    if attributes is not None:
        return bool(attributes & stat.FILE_ATTRIBUTE_HIDDEN)
    return entry.name.startswith(".")


def _walk(root: Path, depth_limit: int | None) -> set[Path]:
    repos: set[Path] = set()
    for dirpath, dirnames, _ in os.walk(root, onerror=_log_walk_error):
        current = Path(dirpath)
        depth = len(current.relative_to(root).parts)
        for name in list(dirnames):
            if os.path.normcase(name) != os.path.normcase(GIT_MARKER):
                continue
            if is_git_marker(current / name):
                repos.add(current)
            dirnames.remove(name)
        if depth_limit is not None and depth >= depth_limit:
            dirnames[:] = []
    return repos


def _barren_children(root: Path, repos: set[Path]) -> list[NotARepositoryError]:
    issues = []
    for child in sorted(root.iterdir()):
        if child.name.startswith(".") or not child.is_dir() or child.is_symlink():
            continue
        if not any(repo == child or child in repo.parents for repo in repos):
            issues.append(NotARepositoryError(child))
    return issues


def _log_walk_error(error: OSError) -> None:
    logger.warning("skipping %s: %s", error.filename, error.strerror or error)
