# FinSync Logging
# Central logging configuration: rich console handler plus optional rotating file

import logging
import logging.handlers
from pathlib import Path
from typing import Optional

from rich.console import Console as RichConsole
from rich.logging import RichHandler

PACKAGE_LOGGER = "finsync"

FILE_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s:%(lineno)d | %(message)s"


def setup_logging(
    level: str = "INFO",
    log_file: Optional[str] = None,
    colored: bool = True,
    max_bytes: int = 5_000_000,
    backup_count: int = 3,
) -> logging.Logger:
    """
    Configure the ``finsync`` logger hierarchy.

    Modules log through ``logging.getLogger(__name__)``; this attaches the
    handlers once. Calling it again replaces the previous handlers.

    Args:
        level: Minimum level to log (DEBUG, INFO, WARNING, ERROR).
        log_file: Path to log file. None means console only.
        colored: Enable colored console output.
        max_bytes: Max size per log file before rotation.
        backup_count: Number of rotated log files to keep.

    Returns:
        The configured package logger.
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    console = RichConsole(stderr=True, force_terminal=colored, no_color=not colored)
    console_handler = RichHandler(console=console, show_path=False, rich_tracebacks=False)
    console_handler.setFormatter(logging.Formatter("%(message)s", datefmt="[%X]"))
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file).expanduser()
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            filename=str(log_path),
            maxBytes=max_bytes,
            backupCount=backup_count,
            encoding="utf-8",
        )
        file_handler.setFormatter(logging.Formatter(FILE_FORMAT, datefmt="%Y-%m-%d %H:%M:%S"))
        logger.addHandler(file_handler)

    # Silence noisy third-party loggers
    for noisy in ("urllib3", "requests"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    return logger
