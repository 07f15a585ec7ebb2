"""Rich terminal display for depcruft."""

from rich.console import Console
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn, TimeElapsedColumn
from rich.table import Table

from depcruft.models import CleanupResult, CleanupSummary, MatchType, format_size

console = Console()


def match_label(match_type: MatchType) -> str:
    """Get styled label for a match type."""
    labels = {
        MatchType.MATCHED: "[cyan]Matched[/cyan]",
        MatchType.SNAPSHOT: "[yellow]Snapshot[/yellow]",
        MatchType.INVALID: "[red]Invalid[/red]",
        MatchType.NATIVE: "[magenta]Native[/magenta]",
    }
    return labels.get(match_type, "Unknown")


def show_summary(summary: CleanupSummary, dry_run: bool = False) -> None:
    """Display the cleanup preview of one scan."""
    if dry_run:
        console.print("[yellow]DRY RUN - No files will be deleted[/yellow]\n")

    if not summary.entries:
        console.print(
            f"[green]Nothing to clean[/green] in {summary.root} "
            f"({summary.total_scanned_count} packages scanned)"
        )
        return

    table = Table(
        title=f"{summary.ecosystem.value.capitalize()} Cleanup Preview",
        show_header=True,
        header_style="bold",
    )
    table.add_column("Package")
    table.add_column("Type")
    table.add_column("Size", justify="right")
    table.add_column("Modified")
    table.add_column("Path")

    for entry in summary.entries:
        modified = entry.last_modified.strftime("%Y-%m-%d") if entry.last_modified else "-"
        table.add_row(
            entry.package_name,
            match_label(entry.match_type),
            entry.size_human,
            modified,
            entry.relative_path,
        )

    console.print(table)
    console.print(
        Panel(
            f"[bold]Repository:[/bold] {summary.root}\n"
            f"  Scanned: {summary.total_scanned_count} packages\n"
            f"  Matched: {summary.total_count} packages, {summary.size_human}",
            title="Summary",
            border_style="blue",
        )
    )


def show_cleanup_result(result: CleanupResult) -> None:
    """Display result of a single cleanup operation."""
    verb = "would free" if result.dry_run else "freed"
    if result.success:
        console.print(
            f"  [green]✓[/green] {result.package_name}: {format_size(result.bytes_freed)} {verb}"
        )
    else:
        console.print(f"  [red]✗[/red] {result.package_name}: {result.error_message}")


def show_cleanup_summary(results: list[CleanupResult], dry_run: bool = False) -> None:
    """Display cleanup summary."""
    total_freed = sum(r.bytes_freed for r in results if r.success)
    success_count = sum(1 for r in results if r.success)
    failure_count = sum(1 for r in results if not r.success)

    console.print()
    if dry_run:
        console.print("[bold yellow]Dry Run Complete[/bold yellow]")
    else:
        console.print("[bold green]Cleanup Complete![/bold green]")
    console.print()

    table = Table(show_header=False)
    table.add_column("Metric", style="bold")
    table.add_column("Value", justify="right")

    table.add_row("Space freed" if not dry_run else "Space to free", format_size(total_freed))
    table.add_row("Items cleaned", str(success_count))
    if failure_count > 0:
        table.add_row("[red]Failed[/red]", str(failure_count))

    console.print(table)


def show_scanning_progress() -> Progress:
    """Create progress display for repository discovery (total is unknown)."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        TextColumn("{task.completed} directories"),
        TimeElapsedColumn(),
        console=console,
    )


def show_cleanup_progress() -> Progress:
    """Create and return a progress bar for cleanup."""
    return Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        BarColumn(),
        TextColumn("{task.completed}/{task.total}"),
        TimeElapsedColumn(),
        console=console,
    )


def confirm_action(message: str) -> bool:
    """Ask for confirmation."""
    from rich.prompt import Confirm

    return Confirm.ask(message)
