"""CLI for cogit."""

from pathlib import Path
from typing import List, NoReturn, Optional
import logging

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from .context import RepositoryContext
from .core import WorkingTreeStatus
from .errors import CogitError, NoChangesToCommitError, NotARepositoryError
from .hashing import short_hash
from .repository import Repository
from .utils import format_timestamp, humanize_size


app = typer.Typer(help="""\
cogit: a local, single-branch version tracker. Stage files, commit
snapshots, and inspect history, status and diffs.""")

console = Console()


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Global options."""
    if verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )


def fail(error: Exception) -> NoReturn:
    """Print an error and exit with status 1."""
    console.print(f"[red]error:[/red] {escape(str(error))}")
    raise typer.Exit(1)


def require_repository() -> Repository:
    """Find the repository containing the current directory.

    Raises:
        typer.Exit: If not inside a repository
    """
    try:
        return Repository.discover(Path.cwd())
    except NotARepositoryError as e:
        console.print(f"[red]error:[/red] {escape(str(e))}")
        console.print()
        console.print("To initialize a new repository, run:")
        console.print("  [cyan]cogit init[/cyan]")
        raise typer.Exit(1)


@app.command()
def init(
    path: Optional[str] = typer.Argument(None, help="Directory to initialize (default: current directory)"),
    description: Optional[str] = typer.Option(None, "--description", "-d", help="Repository description"),
):
    """Create an empty repository (safe to re-run)."""
    target = Path(path) if path else Path.cwd()
    existed = RepositoryContext.is_initialized(target)
    try:
        repo = Repository.init(target, description=description)
    except CogitError as e:
        fail(e)

    if existed:
        console.print(f"[yellow]⚠[/yellow] Repository already initialized in {repo.ctx.cogit_dir}")
    else:
        console.print(f"[green]✓[/green] Initialized empty cogit repository in {repo.ctx.cogit_dir}")


@app.command()
def add(
    files: List[Path] = typer.Argument(..., help="Files to stage"),
):
    """Stage files for the next commit.

    Examples:
        cogit add notes.txt
        cogit add a.py b.py
    """
    repo = require_repository()

    added = []
    for file in files:
        # Relative arguments are relative to where the user is, not the root
        file_path = file if file.is_absolute() else Path.cwd() / file
        try:
            entry = repo.add(file_path)
        except (CogitError, ValueError) as e:
            console.print(f"[red]✗[/red] {escape(str(e))}")
            continue
        added.append(entry)

    if added:
        console.print(f"[green]✓[/green] Staged {len(added)} file(s):")
        for entry in added:
            console.print(f"  [green]+[/green] {entry.path} [dim]({humanize_size(entry.size)})[/dim]")
    else:
        console.print("[yellow]No files staged[/yellow]")
        raise typer.Exit(1)


@app.command()
def commit(
    message: str = typer.Option(..., "--message", "-m", help="Commit message"),
):
    """Record a snapshot of the working tree."""
    repo = require_repository()
    try:
        commit_hash = repo.commit(message)
    except CogitError as e:
        fail(e)
    console.print(f"[green]✓[/green] Committed {short_hash(commit_hash)}: {escape(message)}")


@app.command()
def log():
    """Show commit history, newest first."""
    repo = require_repository()
    try:
        commits = repo.log()
    except CogitError as e:
        fail(e)

    if not commits:
        console.print("[dim]No commits yet[/dim]")
        return

    for c in commits:
        console.print(f"[yellow]commit {c.hash}[/yellow]")
        console.print(f"Date:   {format_timestamp(c.timestamp)}")
        console.print()
        console.print(f"    {escape(c.message)}")
        console.print()


_STATUS_STYLE = {
    WorkingTreeStatus.STAGED: "[green]staged[/green]",
    WorkingTreeStatus.MODIFIED: "[yellow]modified[/yellow]",
    WorkingTreeStatus.UNTRACKED: "[red]untracked[/red]",
    WorkingTreeStatus.UNCHANGED: "[dim]unchanged[/dim]",
    WorkingTreeStatus.DELETED: "[red]deleted[/red]",
}


@app.command()
def status(
    show_all: bool = typer.Option(False, "--all", "-a", help="Include unchanged files"),
):
    """Show working tree status."""
    repo = require_repository()
    try:
        report = repo.status()
        commit_count = len(repo.log())
    except CogitError as e:
        fail(e)

    head = short_hash(report.head) if report.head else "none"
    console.print(f"[bold]Repository:[/bold] {repo.root} ({commit_count} commit(s), head {head})")

    files = report.files if show_all else [
        f for f in report.files if f.status != WorkingTreeStatus.UNCHANGED
    ]
    if not files:
        console.print("[green]✓[/green] Nothing to commit, working tree clean")
        return

    table = Table()
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("Hash", style="dim")
    for f in files:
        table.add_row(f.path, _STATUS_STYLE[f.status], short_hash(f.working_hash) if f.working_hash else "")
    console.print(table)


def _print_patch(patch: str) -> None:
    for line in patch.splitlines():
        if line.startswith(("---", "+++")):
            console.print(line, style="bold", markup=False, highlight=False)
        elif line.startswith("@@"):
            console.print(line, style="cyan", markup=False, highlight=False)
        elif line.startswith("+"):
            console.print(line, style="green", markup=False, highlight=False)
        elif line.startswith("-"):
            console.print(line, style="red", markup=False, highlight=False)
        else:
            console.print(line, markup=False, highlight=False)


@app.command()
def diff(
    path: Optional[Path] = typer.Argument(None, help="File to diff (default: all changed files)"),
):
    """Show changes between the working tree and the last commit."""
    repo = require_repository()

    try:
        if path is None:
            diffs = repo.diff_all()
        else:
            file_path = path if path.is_absolute() else Path.cwd() / path
            diffs = [repo.diff(file_path)]
    except NoChangesToCommitError:
        console.print("[dim]No changes[/dim]")
        return
    except (CogitError, ValueError) as e:
        fail(e)

    if not diffs:
        console.print("[dim]No changes[/dim]")
        return
    for d in diffs:
        _print_patch(d.patch_content)


def main():
    """Entry point for CLI."""
    app()


if __name__ == "__main__":
    main()
