"""CLI entry point for gitbridge.

Read-only inspection commands; useful for checking what the library sees
in a working tree.
"""

import asyncio
import json
from dataclasses import asdict
from datetime import datetime
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from gitbridge import __version__
from gitbridge.config import get_settings, load_settings
from gitbridge.errors import ConfigurationError, GitBridgeError
from gitbridge.git import GitEnvironment, GitRepository, probe_git
from gitbridge.utils.logging import setup_logging

app = typer.Typer(
    name="gitbridge",
    help="Inspect git repositories through gitbridge's structured view",
    add_completion=False,
    no_args_is_help=True,
)

console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"[bold]gitbridge[/bold] version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    config: Optional[Path] = typer.Option(
        None,
        "--config",
        "-c",
        help="Path to configuration file",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output",
    ),
    version: bool = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit",
    ),
) -> None:
    """gitbridge - structured git status, history, branches and remotes."""
    try:
        settings = load_settings(config_path=config, force_reload=True)
    except ConfigurationError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)
    setup_logging(level=settings.log.level, log_file=settings.log.resolved_file, verbose=verbose)


async def _environment() -> GitEnvironment:
    env = await probe_git(get_settings())
    if env is None:
        console.print("[red]git is not available[/red]")
        raise typer.Exit(1)
    return env


async def _open(path: Path) -> GitRepository:
    return GitRepository(path, await _environment())


def _run(coro) -> None:
    try:
        asyncio.run(coro)
    except GitBridgeError as e:
        console.print(f"[red]Error: {escape(str(e))}[/red]")
        raise typer.Exit(1)


@app.command()
def info() -> None:
    """Show the git version and global identity."""
    _run(_info())


async def _info() -> None:
    env = await _environment()
    console.print(f"git [bold]{env.version}[/bold] ({env.command})")
    if env.user:
        console.print(f"user: {env.user.name} <{env.user.email}>")
    else:
        console.print("[dim]No global user configured[/dim]")


@app.command()
def status(
    path: Path = typer.Argument(Path("."), help="Repository directory"),
    as_json: bool = typer.Option(False, "--json", help="Print the raw structure as JSON"),
) -> None:
    """Show branch tracking and file status."""
    _run(_status(path, as_json))


async def _status(path: Path, as_json: bool) -> None:
    repo = await _open(path)
    result = await repo.get_status()

    if as_json:
        console.print_json(json.dumps(result.to_dict(), default=str))
        return

    branches = result.branches
    commits = result.commits
    line = f"On branch [bold]{branches.local or '-'}[/bold] ({commits.total} commits)"
    if branches.remote:
        line += f", tracking {branches.remote} [ahead {commits.ahead}, behind {commits.behind}]"
    console.print(line)
    if branches.remote_error:
        console.print(f"[yellow]Remote branch problem: {branches.remote_error.value}[/yellow]")

    table = Table(title="Files")
    table.add_column("Status", style="yellow", no_wrap=True)
    table.add_column("Path", style="cyan")
    table.add_column("Renamed from", style="dim")
    for name, entry in sorted(result.files.items()):
        if entry.status is None:
            continue
        table.add_row(entry.status, escape(name), escape(entry.old_name or ""))
    console.print(table)


@app.command()
def log(
    path: Path = typer.Argument(Path("."), help="Repository directory"),
    limit: int = typer.Option(20, "--limit", "-l", help="Number of commits to show"),
) -> None:
    """Show recent commits."""
    _run(_log(path, limit))


async def _log(path: Path, limit: int) -> None:
    repo = await _open(path)
    history = await repo.get_commits(limit=limit)
    if not history.commits:
        console.print("[dim]No commits yet.[/dim]")
        return

    table = Table(title=f"{history.count} of {history.total} commits")
    table.add_column("SHA", style="cyan", no_wrap=True)
    table.add_column("Date", style="yellow", no_wrap=True)
    table.add_column("Author", style="green")
    table.add_column("Subject")
    for commit in history.commits:
        date = datetime.fromtimestamp(int(commit.date)).strftime("%Y-%m-%d %H:%M") if commit.date else "-"
        table.add_row(commit.sha[:8], date, escape(commit.author), escape(commit.subject))
    console.print(table)


@app.command()
def branches(
    path: Path = typer.Argument(Path("."), help="Repository directory"),
    remote: bool = typer.Option(False, "--remote", "-r", help="List remote-tracking branches"),
) -> None:
    """List branches with their tracking status."""
    _run(_branches(path, remote))


async def _branches(path: Path, remote: bool) -> None:
    repo = await _open(path)
    table = Table(title="Remote branches" if remote else "Branches")
    table.add_column("", no_wrap=True)
    table.add_column("Name", style="green")
    table.add_column("SHA", style="cyan", no_wrap=True)
    table.add_column("Tracking", style="blue")
    table.add_column("Ahead/Behind", style="yellow")
    table.add_column("Subject")
    for branch in await repo.get_branches(remote=remote):
        table.add_row(
            "*" if branch.current else "",
            branch.name,
            branch.commit.sha,
            branch.remote or "-",
            f"{branch.status.ahead}/{branch.status.behind}",
            escape(branch.commit.subject),
        )
    console.print(table)


@app.command()
def remotes(
    path: Path = typer.Argument(Path("."), help="Repository directory"),
) -> None:
    """List remotes and their URLs."""
    _run(_remotes(path))


async def _remotes(path: Path) -> None:
    repo = await _open(path)
    result = await repo.get_remotes()
    if result is None:
        console.print("[dim]No remotes configured.[/dim]")
        return
    console.print_json(json.dumps({name: asdict(remote) for name, remote in result.items()}))
