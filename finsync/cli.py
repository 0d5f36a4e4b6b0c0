"""Click-based CLI for FinSync - offline-first finance data sync."""

from __future__ import annotations

import sys
from pathlib import Path
from typing import Optional

import click
import yaml

from finsync import __version__
from finsync.config import (
    FinSyncConfig,
    ensure_config_exists,
    get_config_path,
    load_config,
    validate_config_file,
)
from finsync.errors import ConfigError
from finsync.factory import build_context, build_scheduler
from finsync.logger import setup_logging
from finsync.models import EntityType
from finsync.output import Console, create_console
from finsync.sync.engine import SyncOutcome
from finsync.sync.state import WatermarkStore

EXIT_CODES = {
    SyncOutcome.SUCCESS: 0,
    SyncOutcome.FAILURE: 1,
    SyncOutcome.RETRY: 2,
}


def _config_path(ctx: click.Context) -> Path:
    return ctx.obj.get("config_path") or get_config_path()


def _load(ctx: click.Context, console: Console) -> FinSyncConfig:
    """Load configuration or exit with a message."""
    try:
        config = load_config(_config_path(ctx))
    except (FileNotFoundError, ConfigError) as e:
        console.print_error(str(e))
        sys.exit(1)
    setup_logging(
        "DEBUG" if ctx.obj.get("debug") else config.output.log_level.value,
        config.output.log_file,
        colored=config.output.colored,
    )
    return config


@click.group()
@click.version_option(version=__version__, prog_name="finsync")
@click.option(
    "--config",
    "config_path",
    type=click.Path(path_type=Path),
    default=None,
    help="Path to config file (default: $FINSYNC_CONFIG or ~/.config/finsync/config.yaml)",
)
@click.option("--debug", is_flag=True, help="Enable debug logging")
@click.pass_context
def cli(ctx: click.Context, config_path: Optional[Path], debug: bool) -> None:
    """FinSync - offline-first sync of books, wallets, categories and transactions.

    Pushes local changes to the finance API and pulls remote changes back.
    """
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    ctx.obj["debug"] = debug


@cli.command()
@click.option("--verbose", "-v", is_flag=True, help="Show per-entity counts")
@click.pass_context
def sync(ctx: click.Context, verbose: bool) -> None:
    """Run one synchronization pass.

    \b
    Exit codes:
        0  sync completed
        1  sync failed (e.g. not authenticated)
        2  sync incomplete, retry later
    """
    console = create_console(verbose=verbose)
    config = _load(ctx, console)
    console = create_console(verbose=verbose or config.output.verbose, colored=config.output.colored)

    with build_context(config) as context:
        result = context.orchestrator.run()
    console.print_sync_result(result)
    sys.exit(EXIT_CODES[result.outcome])


@cli.command()
@click.pass_context
def status(ctx: click.Context) -> None:
    """Show pending local changes and pull watermarks."""
    console = create_console()
    config = _load(ctx, console)
    console = create_console(verbose=config.output.verbose, colored=config.output.colored)

    with build_context(config) as context:
        pending = context.store.pending_counts()
        watermarks = context.watermarks.snapshot()
        active = context.store.books.get_active()
    console.print_status(pending, watermarks, active_book=active.name if active else None)


@cli.command()
@click.option("--once", is_flag=True, help="Run due work once and exit")
@click.pass_context
def watch(ctx: click.Context, once: bool) -> None:
    """Run the background scheduler until interrupted.

    Syncs immediately, then periodically with retry backoff.
    """
    console = create_console()
    config = _load(ctx, console)
    console = create_console(verbose=config.output.verbose, colored=config.output.colored)

    with build_context(config) as context:
        scheduler = build_scheduler(context)
        scheduler.request_sync(delay=0)

        if once:
            outcome = scheduler.run_pending()
            if outcome is None:
                console.print_warning("Nothing ran: network unavailable")
                sys.exit(EXIT_CODES[SyncOutcome.RETRY])
            console.print_info(f"Sync finished: {outcome.value}")
            sys.exit(EXIT_CODES[outcome])

        console.print_info(f"Watching, syncing every {config.scheduler.interval_seconds:.0f}s (Ctrl+C to stop)")
        scheduler.start()
        try:
            while scheduler.is_running:
                scheduler.wait(1.0)
        except KeyboardInterrupt:
            console.print_info("Stopping...")
        finally:
            scheduler.stop()


@cli.command("reset-watermark")
@click.option(
    "--entity",
    "-e",
    type=click.Choice([entity_type.value for entity_type in EntityType]),
    default=None,
    help="Reset only this entity type",
)
@click.pass_context
def reset_watermark(ctx: click.Context, entity: Optional[str]) -> None:
    """Forget the pull watermark so the next sync pulls everything."""
    console = create_console()
    config = _load(ctx, console)

    store = WatermarkStore(Path(config.storage.state_path))
    store.reset(EntityType(entity) if entity else None)
    console.print_success(f"Watermark reset: {entity or 'all entity types'}")


@cli.group()
def config() -> None:
    """Manage the FinSync configuration file."""


@config.command("init")
@click.option("--force", "-f", is_flag=True, help="Overwrite an existing config file")
@click.pass_context
def config_init(ctx: click.Context, force: bool) -> None:
    """Create a default configuration file."""
    console = create_console()
    path = _config_path(ctx)
    if force and path.exists():
        path.unlink()
    path, created = ensure_config_exists(path)
    if created:
        console.print_success(f"Created config file: {path}")
    else:
        console.print_warning(f"Config file already exists: {path} (use --force to overwrite)")


@config.command("show")
@click.pass_context
def config_show(ctx: click.Context) -> None:
    """Print the effective configuration (token hidden)."""
    console = create_console()
    config_obj = _load(ctx, console)
    console = create_console(colored=config_obj.output.colored)
    data = config_obj.model_dump(mode="json")
    if data["api"].get("token"):
        data["api"]["token"] = "***"
    console.print_config_summary(
        str(_config_path(ctx)), config_obj.api.base_url, config_obj.storage.database_path
    )
    console.print(yaml.dump(data, default_flow_style=False, sort_keys=False, allow_unicode=True), markup=False)


@config.command("validate")
@click.pass_context
def config_validate(ctx: click.Context) -> None:
    """Validate the configuration file."""
    console = create_console()
    path = _config_path(ctx)
    valid, errors = validate_config_file(path)
    if valid:
        console.print_success(f"Configuration is valid: {path}")
        return
    console.print_error(f"Configuration is invalid: {path}")
    for error in errors:
        console.print(f"  [red]•[/red] {error}")
    sys.exit(1)


@config.command("path")
@click.pass_context
def config_path(ctx: click.Context) -> None:
    """Print the configuration file path."""
    click.echo(str(_config_path(ctx)))


if __name__ == "__main__":
    cli()
