# FinSync Output Module
# Rich-based console output

from finsync.output.console import Console, create_console, format_millis

__all__ = [
    "Console",
    "create_console",
    "format_millis",
]
