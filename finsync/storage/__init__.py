# FinSync Storage Module
# Local SQLite store and per-entity sync repositories

from finsync.storage.database import DatabaseManager
from finsync.storage.repositories import (
    BookRepository,
    CategoryRepository,
    LocalStore,
    TransactionRepository,
    WalletRepository,
)
from finsync.storage.repository import EntitySyncRepository, SqliteSyncRepository

__all__ = [
    # Database
    "DatabaseManager",
    # Contract
    "EntitySyncRepository",
    "SqliteSyncRepository",
    # Repositories
    "BookRepository",
    "WalletRepository",
    "CategoryRepository",
    "TransactionRepository",
    "LocalStore",
]
