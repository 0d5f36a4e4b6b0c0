# FinSync Console Output
# Rich-based console output for user-friendly display

from datetime import datetime, timezone
from typing import Optional

from rich.console import Console as RichConsole
from rich.panel import Panel
from rich.table import Table

from finsync.models import PUSH_ORDER, EntityType
from finsync.sync.engine import SyncOutcome, SyncResult


def format_millis(value: Optional[int]) -> str:
    """Render an epoch-millisecond timestamp, or 'never' for 0/None."""
    if not value:
        return "never"
    return datetime.fromtimestamp(value / 1000, tz=timezone.utc).strftime("%Y-%m-%d %H:%M:%S UTC")


class Console:
    """
    Console output manager using Rich.

    Provides formatted output for sync operations.
    """

    def __init__(self, *, verbose: bool = False, colored: bool = True):
        """
        Initialize console.

        Args:
            verbose: Enable verbose output.
            colored: Enable colored output.
        """
        self.verbose = verbose
        self._console = RichConsole(force_terminal=colored, no_color=not colored)

    def print(self, *args, **kwargs) -> None:
        """Print to console."""
        self._console.print(*args, **kwargs)

    def print_error(self, message: str) -> None:
        """Print error message."""
        self._console.print(f"[red]Error:[/red] {message}")

    def print_warning(self, message: str) -> None:
        """Print warning message."""
        self._console.print(f"[yellow]Warning:[/yellow] {message}")

    def print_success(self, message: str) -> None:
        """Print success message."""
        self._console.print(f"[green]{message}[/green]")

    def print_info(self, message: str) -> None:
        """Print info message."""
        self._console.print(f"[blue]{message}[/blue]")

    def print_status(
        self,
        pending: dict[EntityType, int],
        watermarks: dict[EntityType, int],
        active_book: Optional[str] = None,
    ) -> None:
        """
        Print pending local changes and pull watermarks per entity type.

        Args:
            pending: Unsynced record count per entity type.
            watermarks: Last pull watermark per entity type.
            active_book: Name of the active book, if any.
        """
        table = Table(title="Sync Status", show_header=True, header_style="bold")
        table.add_column("Entity", style="cyan")
        table.add_column("Pending", justify="right")
        table.add_column("Last pull")

        for entity_type in PUSH_ORDER:
            count = pending.get(entity_type, 0)
            count_text = f"[yellow]{count}[/yellow]" if count else "[green]0[/green]"
            table.add_row(entity_type.label, count_text, format_millis(watermarks.get(entity_type)))

        self._console.print(table)

        total = sum(pending.values())
        if total:
            self._console.print(f"[yellow]{total} local change(s) waiting to be pushed[/yellow]")
        else:
            self._console.print("[green]✓[/green] Everything is pushed")
        if active_book:
            self._console.print(f"Active book: [cyan]{active_book}[/cyan]")

    def print_sync_result(self, result: SyncResult) -> None:
        """
        Print sync result summary.

        Args:
            result: Result of one orchestrator run.
        """
        self._console.print()

        if self.verbose or result.pushed or result.pulled:
            self._print_counts_table(result)

        if result.zombies_repaired:
            self._console.print(f"[yellow]⚠[/yellow] Repaired {result.zombies_repaired} unacknowledged record(s)")
        if result.books_reconciled:
            self._console.print(f"[blue]ℹ[/blue] Replaced {result.books_reconciled} empty local book(s)")

        lines = [
            f"Pushed: {result.total_pushed}",
            f"Pulled: {result.total_pulled}",
            f"Tombstones cleaned: {result.tombstones_cleaned}",
        ]

        if result.outcome == SyncOutcome.SUCCESS:
            title, style = "[green]Sync completed[/green]", "green"
        elif result.outcome == SyncOutcome.RETRY:
            title, style = "[yellow]Sync incomplete, will retry[/yellow]", "yellow"
        else:
            title, style = "[red]Sync failed[/red]", "red"

        if result.error:
            phase = f" during {result.failed_phase.value}" if result.failed_phase else ""
            lines.append(f"Reason{phase}: {result.error}")

        self._console.print(Panel(title + "\n" + "\n".join(lines), title="Summary", border_style=style))

    def _print_counts_table(self, result: SyncResult) -> None:
        table = Table(show_header=True, header_style="bold")
        table.add_column("Entity", style="cyan")
        table.add_column("Created", justify="right")
        table.add_column("Updated", justify="right")
        table.add_column("Deleted", justify="right")
        table.add_column("Pulled", justify="right")
        table.add_column("Purged", justify="right")
        table.add_column("Stale", justify="right")

        pushed = {item.entity_type: item for item in result.pushed}
        pulled = {item.entity_type: item for item in result.pulled}
        for entity_type in PUSH_ORDER:
            push = pushed.get(entity_type)
            pull = pulled.get(entity_type)
            if push is None and pull is None:
                continue
            table.add_row(
                entity_type.label,
                str(push.created) if push else "-",
                str(push.updated) if push else "-",
                str(push.deleted) if push else "-",
                str(pull.saved) if pull else "-",
                str(pull.purged) if pull else "-",
                str(pull.stale) if pull else "-",
            )

        self._console.print(table)

    def print_config_summary(self, config_path: str, base_url: str, database_path: str) -> None:
        """Print configuration summary."""
        self._console.print(
            Panel(
                f"Config: {config_path}\nAPI: {base_url}\nDatabase: {database_path}",
                title="FinSync Configuration",
                border_style="blue",
            )
        )


def create_console(*, verbose: bool = False, colored: bool = True) -> Console:
    """
    Create a console instance.

    Args:
        verbose: Enable verbose output.
        colored: Enable colored output.

    Returns:
        Console instance.
    """
    return Console(verbose=verbose, colored=colored)
