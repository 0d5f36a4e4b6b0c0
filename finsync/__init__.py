"""FinSync - offline-first synchronization for personal finance data.

Keeps a local SQLite store of books, wallets, categories and transactions
consistent with a remote REST API through push/pull reconciliation.
"""

__version__ = "1.0.0"

__all__ = [
    "__version__",
    "Book",
    "Wallet",
    "Category",
    "Transaction",
    "SyncAction",
    "EntityType",
    "LocalStore",
    "ApiClient",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncResult",
    "SyncScheduler",
    "WatermarkStore",
]


def __getattr__(name: str):
    """Lazy import to avoid loading dependencies during setup."""
    if name in ("Book", "Wallet", "Category", "Transaction", "SyncAction", "EntityType"):
        from finsync import models

        return getattr(models, name)
    if name == "LocalStore":
        from finsync.storage import LocalStore

        return LocalStore
    if name == "ApiClient":
        from finsync.remote import ApiClient

        return ApiClient
    if name in ("SyncOrchestrator", "SyncOutcome", "SyncResult"):
        from finsync.sync import engine

        return getattr(engine, name)
    if name == "SyncScheduler":
        from finsync.sync.scheduler import SyncScheduler

        return SyncScheduler
    if name == "WatermarkStore":
        from finsync.sync.state import WatermarkStore

        return WatermarkStore
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")
