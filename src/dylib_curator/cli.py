"""
DylibCurator command-line interface.

Extract the dynamic libraries of an app bundle, pick which ones to keep,
and manage the staged results.

© 2026 MBP LLC. All rights reserved.
"""

import asyncio
import fnmatch
from pathlib import Path
from typing import Optional, Tuple

import click
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn
from rich.table import Table

from . import __version__
from .config.settings import CuratorSettings, get_settings
from .core.exceptions import DylibCuratorError, EmptySelectionError
from .core.pipeline import CurationPipeline
from .core.session import CurationSession
from .utils.file_utils import format_size
from .utils.logger import configure_logging

console = Console()


def _session_table(session: CurationSession) -> Table:
    table = Table(title=f"Extract from {session.display_name}",
                  caption=session.selection_summary)
    table.add_column("#", style="cyan", justify="right")
    table.add_column("Keep", style="green")
    table.add_column("Library", style="magenta")
    table.add_column("Size", style="yellow", justify="right")

    for index, library in enumerate(session.extracted_libraries, 1):
        table.add_row(
            str(index),
            "✔" if session.is_kept(library.identity) else "",
            library.name,
            library.formatted_size,
        )
    return table


def _apply_patterns(session: CurationSession, patterns: Tuple[str, ...]) -> None:
    """Keep exactly the libraries whose names match one of the globs."""
    session.deselect_all()
    for library in session.extracted_libraries:
        if any(fnmatch.fnmatch(library.name.lower(), p.lower()) for p in patterns):
            session.toggle(library.identity)


def _interactive_selection(session: CurationSession) -> bool:
    """
    Let the user toggle libraries until they save or cancel.

    Returns:
        True to commit, False to cancel
    """
    while True:
        console.print(_session_table(session))
        choice = click.prompt(
            "Number to toggle, [a] select/deselect all, [s] save, [c] cancel",
            default="s",
        ).strip().lower()

        if choice == "s":
            if session.selected_count == 0:
                console.print("[yellow]Select at least one library or cancel[/yellow]")
                continue
            return True
        if choice == "c":
            return False
        if choice == "a":
            session.toggle_all()
            continue

        try:
            library = session.extracted_libraries[int(choice) - 1]
        except (ValueError, IndexError):
            console.print(f"[red]Unknown choice: {choice}[/red]")
            continue
        session.toggle(library.identity)


@click.group()
@click.version_option(version=__version__, prog_name="dylib-curator")
@click.option("--scratch-root", type=click.Path(file_okay=False, path_type=Path),
              default=None, help="Directory that holds staged extractions")
@click.option("--log-file", type=click.Path(dir_okay=False, path_type=Path),
              default=None, help="Also write the log to this file")
@click.option("--verbose", "-v", is_flag=True, help="Log at DEBUG level")
@click.pass_context
def cli(ctx: click.Context, scratch_root: Optional[Path], log_file: Optional[Path],
        verbose: bool):
    """Extract and curate dynamic libraries from application bundles."""
    settings = get_settings()
    overrides = {}
    if scratch_root is not None:
        overrides["scratch_root"] = scratch_root
    if log_file is not None:
        overrides["log_file"] = log_file
    if verbose:
        overrides["log_level"] = "DEBUG"
    if overrides:
        settings = settings.model_copy(update=overrides)
    configure_logging(settings)
    ctx.obj = settings


@cli.command()
@click.argument("bundle", type=click.Path(path_type=Path))
@click.option("--name", default=None, help="Display name (defaults to the bundle name)")
@click.option("--keep", "keep_patterns", multiple=True,
              help="Glob of library names to keep (repeatable)")
@click.option("--interactive", "-i", is_flag=True, help="Choose libraries interactively")
@click.pass_obj
def extract(settings: CuratorSettings, bundle: Path, name: Optional[str],
            keep_patterns: Tuple[str, ...], interactive: bool):
    """Extract the libraries of BUNDLE and keep a selection of them."""
    display_name = name or bundle.stem
    pipeline = CurationPipeline(
        reveal_in_file_system=lambda path: console.print(f"📂 Libraries saved to {path}",
                                                         style="green"),
        settings=settings,
    )

    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=console,
        transient=True,
    ) as progress:
        progress.add_task(f"Extracting {bundle.name}...", total=None)
        try:
            session = asyncio.run(pipeline.open_session_for_bundle(bundle, display_name))
        except DylibCuratorError as e:
            console.print(f"❌ Failed to extract: {e}", style="red")
            raise SystemExit(1)

    if session is None:
        console.print(f"[yellow]No libraries found in {bundle.name}[/yellow]")
        return

    if keep_patterns:
        _apply_patterns(session, keep_patterns)
        if session.selected_count == 0:
            console.print("[yellow]No library matched --keep; discarding extraction[/yellow]")
            pipeline.cancel(session)
            return
    elif interactive:
        if not _interactive_selection(session):
            pipeline.cancel(session)
            console.print("Extraction discarded", style="yellow")
            return

    console.print(_session_table(session))
    try:
        pipeline.commit(session)
    except EmptySelectionError as e:
        console.print(f"[yellow]{e}[/yellow]")
        pipeline.cancel(session)


@cli.command()
@click.argument("name")
@click.pass_obj
def discard(settings: CuratorSettings, name: str):
    """Delete the staged libraries of application NAME."""
    pipeline = CurationPipeline(settings=settings)
    directory = pipeline.extractor.destination_for(name)
    if not directory.exists():
        console.print(f"[yellow]Nothing staged for {name}[/yellow]")
        return

    if pipeline.reconciler.discard_directory(directory):
        console.print(f"🗑️  Discarded {directory}", style="green")
    else:
        console.print(f"❌ Could not fully remove {directory}", style="red")
        raise SystemExit(1)


@cli.command(name="list")
@click.pass_obj
def list_staged(settings: CuratorSettings):
    """List staged applications and their libraries."""
    root = settings.scratch_root
    directories = sorted(p for p in root.iterdir() if p.is_dir()) if root.is_dir() else []

    if not directories:
        console.print(Panel.fit(f"No staged extractions in {root}", style="yellow"))
        return

    table = Table(title="Staged Extractions")
    table.add_column("Application", style="cyan")
    table.add_column("Libraries", style="green", justify="right")
    table.add_column("Size", style="yellow", justify="right")

    for directory in directories:
        files = [f for f in directory.iterdir() if f.is_file()]
        table.add_row(
            directory.name,
            str(len(files)),
            format_size(sum(f.stat().st_size for f in files)),
        )

    console.print(table)


def main():
    cli()


if __name__ == "__main__":
    main()
