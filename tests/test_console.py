# Tests for finsync.output.console
# Rich-based console output

from io import StringIO

from rich.console import Console as RichConsole

from finsync.models import EntityType
from finsync.output.console import Console, create_console, format_millis
from finsync.sync.engine import SyncOutcome, SyncPhase, SyncResult
from finsync.sync.pull import PullResult
from finsync.sync.push import PushResult


def _make_console(verbose: bool = False) -> Console:
    """Create a console with captured output."""
    console = Console(verbose=verbose, colored=False)
    console._console = RichConsole(file=StringIO(), no_color=True, width=120)
    return console


def _get_output(console: Console) -> str:
    """Get captured output from console."""
    console._console.file.seek(0)
    return console._console.file.read()


class TestConsoleBasic:
    """Tests for basic console methods."""

    def test_print(self):
        c = _make_console()
        c.print("hello world")
        assert "hello world" in _get_output(c)

    def test_print_error(self):
        c = _make_console()
        c.print_error("something failed")
        output = _get_output(c)
        assert "Error:" in output
        assert "something failed" in output

    def test_print_warning(self):
        c = _make_console()
        c.print_warning("be careful")
        output = _get_output(c)
        assert "Warning:" in output
        assert "be careful" in output

    def test_print_success(self):
        c = _make_console()
        c.print_success("all good")
        assert "all good" in _get_output(c)

    def test_print_info(self):
        c = _make_console()
        c.print_info("fyi")
        assert "fyi" in _get_output(c)


class TestFormatMillis:
    def test_never(self):
        assert format_millis(0) == "never"
        assert format_millis(None) == "never"

    def test_utc(self):
        assert format_millis(1714557600000) == "2024-05-01 10:00:00 UTC"


class TestConsoleStatus:
    """Tests for status display."""

    def test_everything_pushed(self):
        c = _make_console()
        c.print_status({entity_type: 0 for entity_type in EntityType}, {})
        output = _get_output(c)
        assert "Sync Status" in output
        assert "Everything is pushed" in output
        assert "never" in output

    def test_pending_changes(self):
        c = _make_console()
        c.print_status({EntityType.BOOK: 1, EntityType.TRANSACTION: 2}, {EntityType.BOOK: 1714557600000})
        output = _get_output(c)
        assert "3 local change(s) waiting to be pushed" in output
        assert "2024-05-01 10:00:00 UTC" in output
        assert "Transactions" in output
        assert "Active book" not in output

    def test_active_book(self):
        c = _make_console()
        c.print_status({}, {}, active_book="Household")
        assert "Active book: Household" in _get_output(c)


class TestConsoleSyncResult:
    """Tests for sync result display."""

    def test_print_successful_result(self):
        c = _make_console()
        result = SyncResult(
            outcome=SyncOutcome.SUCCESS,
            pushed=[PushResult(EntityType.BOOK, created=2)],
            pulled=[PullResult(EntityType.BOOK, fetched=1, saved=1)],
        )
        c.print_sync_result(result)
        output = _get_output(c)
        assert "Sync completed" in output
        assert "Pushed: 2" in output
        assert "Pulled: 1" in output
        assert "Books" in output

    def test_print_retry_result(self):
        c = _make_console()
        result = SyncResult(
            outcome=SyncOutcome.RETRY,
            failed_phase=SyncPhase.PUSHING,
            error="POST categories failed: 500",
        )
        c.print_sync_result(result)
        output = _get_output(c)
        assert "will retry" in output
        assert "Reason during pushing" in output

    def test_print_failed_result(self):
        c = _make_console()
        c.print_sync_result(SyncResult(outcome=SyncOutcome.FAILURE, error="not authenticated"))
        output = _get_output(c)
        assert "Sync failed" in output
        assert "not authenticated" in output

    def test_repairs_reported(self):
        c = _make_console()
        c.print_sync_result(SyncResult(outcome=SyncOutcome.SUCCESS, zombies_repaired=1, books_reconciled=1))
        output = _get_output(c)
        assert "Repaired 1" in output
        assert "Replaced 1 empty local book" in output


class TestConsoleConfig:
    def test_print_config_summary(self):
        c = _make_console()
        c.print_config_summary("/tmp/config.yaml", "https://finance.test/api", "/tmp/finsync.db")
        output = _get_output(c)
        assert "https://finance.test/api" in output
        assert "/tmp/finsync.db" in output


class TestCreateConsole:
    def test_create_default(self):
        c = create_console()
        assert isinstance(c, Console)
        assert c.verbose is False

    def test_create_verbose(self):
        c = create_console(verbose=True, colored=False)
        assert c.verbose is True
