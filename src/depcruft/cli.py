"""CLI interface for depcruft."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from depcruft import __version__
from depcruft.cleaner import execute_cleanup
from depcruft.config import (
    add_protection,
    get_custom_repository,
    protected_paths,
    remove_protection,
    set_custom_repository,
)
from depcruft.display import (
    confirm_action,
    console,
    show_cleanup_progress,
    show_cleanup_result,
    show_cleanup_summary,
    show_scanning_progress,
    show_summary,
)
from depcruft.errors import DepcruftError
from depcruft.locator import default_repository, detect_ecosystem, detect_npm_client
from depcruft.models import CleanupSummary, Ecosystem, FilterOptions
from depcruft.rules import get_rules
from depcruft.scanner import expand_path, preview_cleanup, validate_filter_options

# Create Typer app
app = typer.Typer(
    name="depcruft",
    help="Clean stale, broken and unwanted packages from Maven, Gradle, NPM and PIP caches",
    add_completion=False,
    no_args_is_help=True,
)

log = logging.getLogger(__name__)


def _setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=Console(stderr=True), show_path=False)],
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"depcruft version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    ),
    verbose: int = typer.Option(
        0, "--verbose", "-V", count=True, help="Increase verbosity (-V info, -VV debug)"
    ),
) -> None:
    """depcruft - package manager cache cleanup."""
    _setup_logging(verbose)


def _fail(message: str) -> None:
    console.print(f"[red]Error: {message}[/red]")
    raise typer.Exit(1)


def _native_warning(ecosystem: str, options: FilterOptions) -> Optional[str]:
    rules = get_rules(ecosystem)
    if options.show_platform_specific_binaries and not rules.has_platform_binaries:
        return (
            f"{rules.ecosystem.value} packages have no platform-specific variants, "
            "--native matches nothing"
        )
    return None


def _resolve_root(ecosystem: str, root: Optional[Path], project: Optional[Path]) -> Path:
    get_rules(ecosystem)
    if root is not None:
        return expand_path(root)
    return default_repository(ecosystem, project)


def _run_scan(
    ecosystem: str,
    root: Path,
    options: FilterOptions,
    quiet: bool = False,
) -> CleanupSummary:
    """Scan with a live progress display unless ``quiet``."""
    if quiet:
        return preview_cleanup(root, ecosystem, options)

    console.print(f"[bold blue]Scanning {root}...[/bold blue]\n")
    with show_scanning_progress() as progress:
        task = progress.add_task("Discovering packages...", total=None)

        def update_directories(visited: int) -> None:
            progress.update(task, completed=visited)

        def update_classified(processed: int, total: int) -> None:
            progress.update(task, description=f"Classifying {processed}/{total}...")

        return preview_cleanup(
            root,
            ecosystem,
            options,
            on_directory=update_directories,
            on_classified=update_classified,
        )


def _filter_options(
    snapshot: bool, invalid: bool, native: bool, target: Optional[str]
) -> FilterOptions:
    options = FilterOptions(
        include_snapshot=snapshot,
        show_invalid_packages=invalid,
        show_platform_specific_binaries=native,
        target_package=target or "",
    )
    is_valid, error = validate_filter_options(options)
    if not is_valid:
        console.print(f"[red]Error: {error}[/red]")
        console.print("  Use --snapshot, --invalid, --native or --target NAME")
        raise typer.Exit(1)
    return options


@app.command()
def scan(
    ecosystem: str = typer.Argument(..., help="maven, gradle, npm or pip"),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Repository to scan"),
    project: Optional[Path] = typer.Option(
        None, "--project", "-p", help="Project whose settings locate the repository"
    ),
    snapshot: bool = typer.Option(False, "--snapshot", help="Include SNAPSHOT / prerelease versions"),
    invalid: bool = typer.Option(False, "--invalid", help="Include broken or incomplete downloads"),
    native: bool = typer.Option(False, "--native", help="Include platform-specific binaries (npm, pip)"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Package name or group to match"),
    as_json: bool = typer.Option(False, "--json", help="Print the preview as JSON"),
) -> None:
    """Preview which packages a cleanup would remove."""
    options = _filter_options(snapshot, invalid, native, target)
    try:
        repository = _resolve_root(ecosystem, root, project)
        warning = _native_warning(ecosystem, options)
        if warning and as_json:
            log.warning(warning)
        elif warning:
            console.print(f"[yellow]Warning: {warning}[/yellow]")
        summary = _run_scan(ecosystem, repository, options, quiet=as_json)
    except DepcruftError as e:
        _fail(str(e))

    if as_json:
        typer.echo(summary.model_dump_json(indent=2))
        return

    console.print()
    show_summary(summary)

    if summary.entries:
        console.print()
        console.print(
            f"[dim]Run [bold]depcruft clean {summary.ecosystem.value}[/bold] "
            "with the same options to remove them[/dim]"
        )


@app.command()
def clean(
    ecosystem: str = typer.Argument(..., help="maven, gradle, npm or pip"),
    root: Optional[Path] = typer.Option(None, "--root", "-r", help="Repository to clean"),
    project: Optional[Path] = typer.Option(
        None, "--project", "-p", help="Project whose settings locate the repository"
    ),
    snapshot: bool = typer.Option(False, "--snapshot", help="Include SNAPSHOT / prerelease versions"),
    invalid: bool = typer.Option(False, "--invalid", help="Include broken or incomplete downloads"),
    native: bool = typer.Option(False, "--native", help="Include platform-specific binaries (npm, pip)"),
    target: Optional[str] = typer.Option(None, "--target", "-t", help="Package name or group to match"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Simulate without deleting"),
    yes: bool = typer.Option(False, "-y", "--yes", help="Skip confirmation prompts"),
) -> None:
    """Scan a repository and delete the matching packages."""
    options = _filter_options(snapshot, invalid, native, target)
    try:
        repository = _resolve_root(ecosystem, root, project)
        warning = _native_warning(ecosystem, options)
        if warning:
            console.print(f"[yellow]Warning: {warning}[/yellow]")
        summary = _run_scan(ecosystem, repository, options)
    except DepcruftError as e:
        _fail(str(e))

    console.print()
    show_summary(summary, dry_run=dry_run)

    entries = summary.selected_entries
    if not entries:
        raise typer.Exit(0)

    # Confirm
    if not yes and not dry_run:
        console.print()
        if not confirm_action(f"Delete {len(entries)} packages ({summary.size_human})?"):
            console.print("[yellow]Cancelled[/yellow]")
            raise typer.Exit(0)

    # Execute cleanup
    console.print("\n[bold]Cleaning...[/bold]")
    with show_cleanup_progress() as progress:
        task = progress.add_task("Deleting...", total=len(entries))

        def cleanup_progress(completed: int, total: int) -> None:
            progress.update(task, completed=completed)

        results = execute_cleanup(
            entries,
            summary.ecosystem,
            root=summary.root,
            dry_run=dry_run,
            progress_callback=cleanup_progress,
        )

    # Show results
    for result in results:
        show_cleanup_result(result)

    show_cleanup_summary(results, dry_run=dry_run)


@app.command()
def where(
    ecosystem: Optional[str] = typer.Argument(None, help="Ecosystem to show or change"),
    project: Optional[Path] = typer.Option(
        None, "--project", "-p", help="Project whose settings locate the repository"
    ),
    set_path: Optional[Path] = typer.Option(None, "--set", help="Always use this repository"),
    reset: bool = typer.Option(False, "--reset", help="Forget a saved repository"),
) -> None:
    """Show (or override) where each ecosystem's repository lives."""
    if (set_path is not None or reset) and ecosystem is None:
        _fail("Specify the ecosystem to change")

    try:
        if ecosystem is None:
            selected = list(Ecosystem)
        else:
            selected = [get_rules(ecosystem).ecosystem]

        if set_path is not None:
            set_custom_repository(selected[0], expand_path(set_path))
            console.print(f"[green]✓[/green] {selected[0].value} repository set to {set_path}")
        elif reset:
            set_custom_repository(selected[0], None)
            console.print(f"[green]✓[/green] {selected[0].value} repository reset to default")
    except DepcruftError as e:
        _fail(str(e))

    table = Table(show_header=True, header_style="bold")
    table.add_column("Ecosystem")
    table.add_column("Repository")
    table.add_column("Source")

    for eco in selected:
        path = default_repository(eco, project)
        source = "custom" if get_custom_repository(eco) is not None else "default"
        if not path.is_dir():
            source += " [dim](missing)[/dim]"
        table.add_row(eco.value, str(path), source)

    console.print(table)


@app.command()
def protect(
    path: Optional[Path] = typer.Argument(None, help="Path to keep out of every cleanup"),
) -> None:
    """Protect a path from deletion, or list protected paths."""
    if path is None:
        paths = protected_paths()
        if not paths:
            console.print("[dim]No protected paths[/dim]")
            return
        console.print("[bold]Protected paths:[/bold]")
        for protected in paths:
            console.print(f"  {protected}")
        return

    if not add_protection(expand_path(path)):
        _fail("Could not save configuration")
    console.print(f"[green]✓[/green] Protected {path}")


@app.command()
def unprotect(
    path: Path = typer.Argument(..., help="Previously protected path"),
) -> None:
    """Remove a path from the protected list."""
    expanded = expand_path(path)
    if str(expanded.resolve()) not in protected_paths():
        console.print(f"[yellow]{path} is not protected[/yellow]")
        raise typer.Exit(1)

    if not remove_protection(expanded):
        _fail("Could not save configuration")
    console.print(f"[green]✓[/green] {path} is no longer protected")


@app.command()
def detect(
    directory: Path = typer.Argument(Path("."), help="Project directory"),
) -> None:
    """Detect which ecosystem a project uses."""
    ecosystem = detect_ecosystem(directory)
    if ecosystem is None:
        console.print(f"[yellow]No supported build files found in {directory}[/yellow]")
        raise typer.Exit(1)

    if ecosystem == Ecosystem.NPM:
        console.print(f"{ecosystem.value} ({detect_npm_client(directory).value})")
    else:
        console.print(ecosystem.value)


if __name__ == "__main__":
    app()
