"""Rich UI helpers for terminal output."""

from __future__ import annotations

from typing import Iterable, Sequence

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .exceptions import InvalidInputError, MultiRepoError
from .models import CommandResult, CommitRecord, ConfigEntry, Outcome, RemoteDescription, StatusSummary

console = Console()
err_console = Console(stderr=True)

_OUTCOME_STYLE = {
    Outcome.SUCCEEDED: "[green]✓[/green]",
    Outcome.FAILED: "[red]✗[/red]",
    Outcome.CANCELLED: "[yellow]–[/yellow]",
}


def info(message: str) -> None:
    console.print(f"[blue]ℹ[/blue] {message}")


def success(message: str) -> None:
    console.print(f"[green]✓[/green] {message}")


def warning(message: str) -> None:
    err_console.print(f"[yellow]⚠[/yellow] {message}")


def error(message: str) -> None:
    err_console.print(f"[red]✗[/red] {message}", style="red")


def show_issues(issues: Iterable[MultiRepoError]) -> None:
    for issue in issues:
        if isinstance(issue, InvalidInputError):
            error(escape(str(issue)))
        else:
            warning(escape(str(issue)))


def show_progress(result: CommandResult) -> None:
    """One line per repository as the batch runs."""

    marker = _OUTCOME_STYLE[result.outcome]
    line = f"{marker} {escape(str(result.path))}"
    if result.outcome is Outcome.FAILED:
        reason = result.fields.get("reason")
        line += f" [dim]({escape(reason)})[/dim]" if reason else ""
        console.print(line)
        detail = result.raw_output.strip() or result.error
        if detail:
            console.print(f"  [red]{escape(detail)}[/red]")
        return
    if result.outcome is Outcome.CANCELLED:
        line += " [dim](cancelled)[/dim]"
    console.print(line)


def show_summary(results: Sequence[CommandResult]) -> None:
    succeeded = sum(1 for r in results if r.outcome is Outcome.SUCCEEDED)
    failed = sum(1 for r in results if r.outcome is Outcome.FAILED)
    cancelled = sum(1 for r in results if r.outcome is Outcome.CANCELLED)
    parts = [f"{succeeded} succeeded", f"{failed} failed"]
    if cancelled:
        parts.append(f"{cancelled} cancelled")
    console.print(f"[bold]{len(results)} repositories:[/bold] " + ", ".join(parts))


def show_repos(repos: Sequence) -> None:
    for repo in repos:
        console.print(escape(str(repo)))


def show_status_table(results: Sequence[CommandResult], *, show_origin: bool = False, extended: bool = False) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Repository")
    table.add_column("Branch")
    table.add_column("Current", justify="center")
    table.add_column("Pending")
    if show_origin:
        table.add_column("Origin")
    for result in results:
        status: StatusSummary | None = result.fields.get("status")
        if status is None:
            row = [escape(str(result.path)), "", "", f"[red]{escape(result.error or 'error')}[/red]"]
        else:
            branch = escape(status.branch or f"(detached at {status.detached_at or '?'})")
            if status.ahead or status.behind:
                branch += f" [dim]+{status.ahead}/-{status.behind}[/dim]"
            current = {True: "[green]yes[/green]", False: "[yellow]no[/yellow]", None: "[dim]?[/dim]"}[status.is_current]
            row = [escape(str(result.path)), branch, current, status.pending_updates.value]
        if show_origin:
            row.append(escape(result.fields.get("origin") or ""))
        table.add_row(*row)
    console.print(table)
    if extended:
        for result in results:
            changes = result.fields.get("changed_files") or []
            if not changes:
                continue
            console.print(f"\n[bold]{escape(str(result.path))}[/bold]")
            for change in changes:
                console.print(f"  [cyan]{change.action.value:<9}[/cyan] {escape(change.path)}")


def show_commits(results: Sequence[CommandResult], *, expand_actions: bool = False) -> None:
    for result in results:
        commits: list[CommitRecord] = result.fields.get("commits") or []
        console.print(f"\n[bold]{escape(str(result.path))}[/bold]")
        if not result.succeeded:
            console.print(f"  [red]{escape(result.raw_output.strip() or result.error)}[/red]")
            continue
        if not commits:
            console.print("  [dim]No commits parsed[/dim]")
            continue
        for commit in commits:
            console.print(
                f"  [yellow]{commit.short_hash}[/yellow] {commit.date:%Y-%m-%d %H:%M %z} "
                f"[cyan]{escape(commit.author)}[/cyan] {escape(commit.message)}"
            )
            if expand_actions:
                for action, paths in commit.changes_by_action().items():
                    if paths:
                        console.print(f"      {action.value}: {escape(', '.join(paths))}")
            else:
                for change in commit.changes:
                    console.print(f"      [dim]{change.action.value:<9}[/dim] {escape(change.path)}")


def show_remotes(results: Sequence[CommandResult]) -> None:
    table = Table(show_header=True, header_style="bold")
    table.add_column("Repository")
    table.add_column("Origin")
    table.add_column("HEAD branch")
    for result in results:
        remote: RemoteDescription | None = result.fields.get("remote")
        if result.succeeded:
            origin = escape(result.fields.get("origin") or "")
        else:
            origin = f"[red]{escape(result.error)}[/red]"
        head = escape(remote.head_branch or "") if remote else ""
        table.add_row(escape(str(result.path)), origin, head)
    console.print(table)


def show_config(entries: Sequence[ConfigEntry]) -> None:
    if not entries:
        console.print("No configuration entries found.")
        return
    table = Table(show_header=True, header_style="bold")
    table.add_column("Scope")
    table.add_column("Category", style="cyan")
    table.add_column("Name")
    table.add_column("Setting")
    table.add_column("Source", style="dim")
    for entry in entries:
        table.add_row(
            entry.scope or "",
            escape(entry.category),
            escape(entry.name),
            escape(entry.setting),
            escape(entry.source_file or ""),
        )
    console.print(table)
