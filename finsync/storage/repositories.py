# FinSync Repositories
# Concrete sync repositories for books, wallets, categories and transactions

import logging
import sqlite3
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, Optional

from finsync.models import (
    PUSH_ORDER,
    Book,
    Category,
    EntityType,
    Transaction,
    TransactionType,
    Wallet,
    WalletType,
    now_millis,
)
from finsync.storage.database import DatabaseManager
from finsync.storage.repository import SqliteSyncRepository

logger = logging.getLogger(__name__)


class BookRepository(SqliteSyncRepository[Book]):
    table = "books"
    entity_type = EntityType.BOOK

    def _row_to_model(self, row: sqlite3.Row) -> Book:
        return Book(
            name=row["name"],
            description=row["description"],
            icon=row["icon"],
            color=row["color"],
            is_active=bool(row["is_active"]),
            currency_code=row["currency_code"],
            currency_symbol=row["currency_symbol"],
            **self._sync_kwargs(row),
        )

    def _domain_values(self, record: Book) -> dict[str, Any]:
        return {
            "name": record.name,
            "description": record.description or "",
            "icon": record.icon or "",
            "color": record.color,
            "is_active": int(record.is_active),
            "currency_code": record.currency_code or "IDR",
            "currency_symbol": record.currency_symbol or "Rp",
        }

    def get_active(self) -> Optional[Book]:
        found = self._query("is_active = 1 AND is_deleted = 0")
        return found[0] if found else None

    def _merge_local_only_fields(self, record: Book, existing: Optional[Book]) -> None:
        # The active book is a device preference the server never sees
        if existing is not None:
            record.is_active = existing.is_active

    def set_active(self, local_id: int) -> None:
        """Make one book the active one. Local preference only, never synced."""
        conn = self._db.get_connection()
        conn.execute("UPDATE books SET is_active = CASE WHEN id = ? THEN 1 ELSE 0 END", (local_id,))
        conn.commit()

    def count_transactions(self, local_id: int) -> int:
        row = (
            self._db.get_connection()
            .execute("SELECT COUNT(*) FROM transactions WHERE book_id = ?", (local_id,))
            .fetchone()
        )
        return int(row[0])


class WalletRepository(SqliteSyncRepository[Wallet]):
    table = "wallets"
    entity_type = EntityType.WALLET

    def _row_to_model(self, row: sqlite3.Row) -> Wallet:
        return Wallet(
            book_id=row["book_id"],
            name=row["name"],
            type=WalletType(row["type"]),
            icon=row["icon"],
            color=row["color"],
            initial_balance=row["initial_balance"],
            description=row["description"],
            is_active=bool(row["is_active"]),
            **self._sync_kwargs(row),
        )

    def _domain_values(self, record: Wallet) -> dict[str, Any]:
        return {
            "book_id": record.book_id,
            "name": record.name,
            "type": WalletType(record.type).value,
            "icon": record.icon or "",
            "color": record.color,
            "initial_balance": record.initial_balance,
            "description": record.description,
            "is_active": int(record.is_active),
        }


class CategoryRepository(SqliteSyncRepository[Category]):
    table = "categories"
    entity_type = EntityType.CATEGORY

    def _row_to_model(self, row: sqlite3.Row) -> Category:
        return Category(
            book_id=row["book_id"],
            name=row["name"],
            type=TransactionType(row["type"]),
            icon=row["icon"],
            is_default=bool(row["is_default"]),
            **self._sync_kwargs(row),
        )

    def _domain_values(self, record: Category) -> dict[str, Any]:
        return {
            "book_id": record.book_id,
            "name": record.name,
            "type": TransactionType(record.type).value,
            "icon": record.icon or "",
            "is_default": int(record.is_default),
        }


class TransactionRepository(SqliteSyncRepository[Transaction]):
    table = "transactions"
    entity_type = EntityType.TRANSACTION

    def _row_to_model(self, row: sqlite3.Row) -> Transaction:
        return Transaction(
            book_id=row["book_id"],
            wallet_id=row["wallet_id"],
            category_id=row["category_id"],
            amount=row["amount"],
            type=TransactionType(row["type"]),
            date=row["date"],
            notes=row["notes"],
            image_path=row["image_path"],
            **self._sync_kwargs(row),
        )

    def _domain_values(self, record: Transaction) -> dict[str, Any]:
        return {
            "book_id": record.book_id,
            "wallet_id": record.wallet_id,
            "category_id": record.category_id,
            "type": TransactionType(record.type).value,
            "amount": record.amount,
            "date": record.date or record.created_at,
            "notes": record.notes or "",
            "image_path": record.image_path,
        }

    def _merge_local_only_fields(self, record: Transaction, existing: Optional[Transaction]) -> None:
        # Receipt images live on the device only
        if existing is not None and existing.image_path:
            record.image_path = existing.image_path

    def cleanup_synced_deletes(self) -> int:
        """Purge tombstones already acknowledged both locally and remotely."""
        conn = self._db.get_connection()
        cursor = conn.execute("DELETE FROM transactions WHERE is_deleted = 1 AND is_synced = 1")
        conn.commit()
        return cursor.rowcount


class LocalStore:
    """
    The local data store: one database and its four sync repositories.

    Iterating the store yields repositories in push order.
    """

    def __init__(self, db: DatabaseManager, clock: Callable[[], int] = now_millis):
        self.db = db
        self.books = BookRepository(db, clock)
        self.wallets = WalletRepository(db, clock)
        self.categories = CategoryRepository(db, clock)
        self.transactions = TransactionRepository(db, clock)
        self._by_type: dict[EntityType, SqliteSyncRepository] = {
            EntityType.BOOK: self.books,
            EntityType.WALLET: self.wallets,
            EntityType.CATEGORY: self.categories,
            EntityType.TRANSACTION: self.transactions,
        }

    @classmethod
    def open(cls, db_path: Path | str, clock: Callable[[], int] = now_millis) -> "LocalStore":
        """Open (creating if needed) the store at ``db_path``."""
        db = DatabaseManager(db_path)
        db.initialize()
        return cls(db, clock)

    def repository(self, entity_type: EntityType) -> SqliteSyncRepository:
        return self._by_type[entity_type]

    def __iter__(self) -> Iterator[SqliteSyncRepository]:
        return (self._by_type[entity_type] for entity_type in PUSH_ORDER)

    def pending_counts(self) -> dict[EntityType, int]:
        return {repo.entity_type: repo.count_unsynced() for repo in self}

    def close(self) -> None:
        self.db.close()
