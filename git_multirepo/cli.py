"""Typer CLI entrypoint for git-multirepo."""

from __future__ import annotations

import json
import logging
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import Iterator, List, Optional, Sequence

import typer

from . import __version__, interactive, render
from .exceptions import MultiRepoError, ValidationError
from .git import GitRunner, ensure_git_available
from .locator import locate
from .models import CommandResult, Outcome, ResetMode
from .operations import RepoService, list_config, set_global_user_email, validate_email
from .settings import Settings, load_settings

app = typer.Typer(
    help="Run git operations across many repositories at once.",
    add_completion=False,
    no_args_is_help=True,
)

logger = logging.getLogger(__name__)

EXIT_FAILURE = 1
EXIT_INVALID = 2


@dataclass(slots=True)
class AppState:
    settings: Settings
    runner: GitRunner
    verbose: bool = False
    invalid_inputs: int = 0


def configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"git-multirepo {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    ctx: typer.Context,
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable verbose logging."),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the git-multirepo version and exit.",
    ),
) -> None:
    _ = version  # handled via callback
    configure_logging(verbose)
    ctx.meta["verbose"] = verbose


def _paths_argument():
    return typer.Argument(None, help="Directories to search (defaults to the current directory).")


def _recurse_option():
    return typer.Option(False, "--recurse", "-r", help="Search subdirectories for repositories.")


def _depth_option():
    return typer.Option(None, "--depth", min=0, help="Maximum directory depth when recursing (implies --recurse).")


def _json_option():
    return typer.Option(False, "--json", help="Output JSON for scripting.")


def _yes_option():
    return typer.Option(False, "--yes", "-y", help="Do not ask for confirmation.")


@app.command(help="List git repositories under the given paths")
def find(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    if json_:
        typer.echo(json.dumps([str(repo) for repo in repos], indent=2))
    else:
        render.show_repos(repos)
    _finish(state, [])


@app.command(help="Show the working tree status of each repository")
def status(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    show_origin: bool = typer.Option(False, "--show-origin", help="Include the origin remote URL."),
    extended: bool = typer.Option(False, "--extended", help="List changed files as well."),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = RepoService(runner=state.runner).status(repos, show_origin=show_origin, extended=extended)
    if json_:
        _echo_results(results)
    elif results:
        render.show_status_table(results, show_origin=show_origin, extended=extended)
    _finish(state, results)


@app.command(help="Show recent commits with the files they changed")
def log(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    count: int = typer.Option(10, "--count", "-n", min=1, help="Number of commits per repository."),
    by_action: bool = typer.Option(False, "--by-action", help="Group changed files by change type."),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = RepoService(runner=state.runner).log(repos, count=count, expand_actions=by_action)
    if json_:
        _echo_results(results)
    else:
        render.show_commits(results, expand_actions=by_action)
    _finish(state, results)


@app.command(help="Pull each repository")
def pull(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    ff_only: bool = typer.Option(False, "--ff-only", help="Refuse to merge; fast-forward only."),
    yes: bool = _yes_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = _mutating_service(state, yes, json_).pull(repos, ff_only=ff_only)
    _report(state, results, json_)


@app.command(help="Push each repository")
def push(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    yes: bool = _yes_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = _mutating_service(state, yes, json_).push(repos)
    _report(state, results, json_)


@app.command(help="Commit pending changes in each repository")
def commit(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    message: str = typer.Option(..., "--message", "-m", help="Commit message."),
    all_: bool = typer.Option(False, "--all", "-a", help="Stage all changes, including untracked files, first."),
    push_after: bool = typer.Option(False, "--push", help="Push after committing."),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    yes: bool = _yes_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = _mutating_service(state, yes, json_).commit(repos, message, add_all=all_, push=push_after)
    _report(state, results, json_)


@app.command(help="Remove the most recent commits from each repository")
def reset(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    count: int = typer.Option(1, "--count", "-n", min=1, help="Number of commits to remove."),
    mode: ResetMode = typer.Option(ResetMode.MIXED, "--mode", case_sensitive=False, help="What to do with the removed changes."),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    yes: bool = _yes_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = _mutating_service(state, yes, json_).remove_commits(repos, count=count, mode=mode)
    _report(state, results, json_)


@app.command(help="Show the origin remote of each repository")
def remote(
    ctx: typer.Context,
    paths: Optional[List[Path]] = _paths_argument(),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    describe: bool = typer.Option(False, "--describe", help="Parse `git remote show origin`."),
    offline: bool = typer.Option(False, "--offline", help="With --describe, do not contact the remote."),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = RepoService(runner=state.runner).remotes(repos, describe=describe, offline=offline)
    if json_:
        _echo_results(results)
    elif results:
        render.show_remotes(results)
    _finish(state, results)


@app.command(help="List git configuration entries")
def config(
    ctx: typer.Context,
    path: Optional[Path] = typer.Option(None, "--path", help="Repository to read local configuration from."),
    scope: Optional[str] = typer.Option(None, "--scope", help="Only one scope: local, global or system."),
    file: Optional[Path] = typer.Option(None, "--file", help="Read a specific config file."),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    with _handle_errors():
        entries = list_config(path, scope=scope, file=file, runner=state.runner)
    if json_:
        typer.echo(json.dumps([entry.to_dict() for entry in entries], indent=2))
    else:
        render.show_config(entries)


@app.command("set-email", help="Set user.email for each repository, or globally")
def set_email(
    ctx: typer.Context,
    email: str = typer.Argument(..., help="Email address to configure."),
    paths: Optional[List[Path]] = _paths_argument(),
    global_: bool = typer.Option(False, "--global", help="Set the global value instead of per repository."),
    recurse: bool = _recurse_option(),
    depth: Optional[int] = _depth_option(),
    yes: bool = _yes_option(),
    json_: bool = _json_option(),
) -> None:
    state = _require_state(ctx)
    if global_:
        with _handle_errors():
            email = validate_email(email)
            if not yes and not interactive.confirm(f"Set global user.email to {email}?", default=False):
                render.warning("Cancelled.")
                return
            set_global_user_email(email, runner=state.runner)
        render.success(f"Global user.email set to {email}")
        return
    repos = _discover(state, paths, recurse, depth, quiet=json_)
    with _handle_errors():
        results = _mutating_service(state, yes, json_).set_user_email(repos, email)
    _report(state, results, json_)


def _require_state(ctx: typer.Context) -> AppState:
    """Load settings and check for git once a command is about to run."""

    if isinstance(ctx.obj, AppState):
        return ctx.obj
    with _handle_errors():
        settings = load_settings()
        ensure_git_available(settings.git_executable)
    ctx.obj = AppState(
        settings=settings,
        runner=GitRunner.from_settings(settings),
        verbose=ctx.meta.get("verbose", False),
    )
    return ctx.obj


def _discover(
    state: AppState,
    paths: Sequence[Path] | None,
    recurse: bool,
    depth: int | None,
    *,
    quiet: bool = False,
) -> list[Path]:
    max_depth = depth if depth is not None else state.settings.max_depth
    result = locate(paths or [Path.cwd()], recursive=recurse or depth is not None, max_depth=max_depth)
    state.invalid_inputs += len(result.invalid_inputs)
    if quiet:
        for issue in result.issues:
            logger.warning("%s", issue)
    else:
        render.show_issues(result.issues)
        if not result.repos:
            render.info("No git repositories found.")
    return result.repos


def _mutating_service(state: AppState, yes: bool, json_: bool) -> RepoService:
    if not yes:
        interactive.ensure_tty()
    return RepoService(
        runner=state.runner,
        confirm=interactive.confirm_repo,
        confirm_per_repo=not yes,
        on_result=None if json_ else render.show_progress,
    )


def _report(state: AppState, results: list[CommandResult], json_: bool) -> None:
    if json_:
        _echo_results(results)
    elif results:
        render.show_summary(results)
    _finish(state, results)


def _echo_results(results: Sequence[CommandResult]) -> None:
    typer.echo(json.dumps([result.to_dict() for result in results], indent=2))


def _finish(state: AppState, results: Sequence[CommandResult]) -> None:
    if state.invalid_inputs:
        raise typer.Exit(EXIT_INVALID)
    if any(result.outcome is Outcome.FAILED for result in results):
        raise typer.Exit(EXIT_FAILURE)


@contextmanager
def _handle_errors() -> Iterator[None]:
    try:
        yield
    except ValidationError as exc:
        _fail(str(exc), EXIT_INVALID)
    except MultiRepoError as exc:
        _fail(str(exc), EXIT_FAILURE)


def _fail(message: str, code: int = EXIT_FAILURE) -> None:
    typer.secho(message, err=True, fg=typer.colors.RED)
    raise typer.Exit(code)


if __name__ == "__main__":
    app()
