# FinSync Local Database
# SQLite connection management and schema for the local store

import logging
import sqlite3
import threading
from pathlib import Path
from typing import Optional

logger = logging.getLogger(__name__)

SCHEMA_VERSION = 1

_SYNC_COLUMNS = """
    server_id    TEXT UNIQUE,
    is_synced    INTEGER NOT NULL DEFAULT 0,
    is_deleted   INTEGER NOT NULL DEFAULT 0,
    sync_action  TEXT CHECK(sync_action IN ('CREATE','UPDATE','DELETE')),
    last_sync_at INTEGER,
    created_at   INTEGER NOT NULL DEFAULT 0,
    updated_at   INTEGER NOT NULL DEFAULT 0
"""

SCHEMA = f"""
CREATE TABLE IF NOT EXISTS books (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    name            TEXT    NOT NULL,
    description     TEXT    NOT NULL DEFAULT '',
    icon            TEXT    NOT NULL DEFAULT '',
    color           TEXT    NOT NULL DEFAULT '#4CAF50',
    is_active       INTEGER NOT NULL DEFAULT 1,
    currency_code   TEXT    NOT NULL DEFAULT 'IDR',
    currency_symbol TEXT    NOT NULL DEFAULT 'Rp',
    {_SYNC_COLUMNS}
);

CREATE TABLE IF NOT EXISTS wallets (
    id              INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id         INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    name            TEXT    NOT NULL,
    type            TEXT    NOT NULL CHECK(type IN ('CASH','BANK','E_WALLET','INVESTMENT')),
    icon            TEXT    NOT NULL DEFAULT '',
    color           TEXT    NOT NULL DEFAULT '#2196F3',
    initial_balance REAL    NOT NULL DEFAULT 0.0,
    description     TEXT,
    is_active       INTEGER NOT NULL DEFAULT 1,
    {_SYNC_COLUMNS}
);

CREATE TABLE IF NOT EXISTS categories (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id     INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    name        TEXT    NOT NULL,
    type        TEXT    NOT NULL CHECK(type IN ('INCOME','EXPENSE','TRANSFER')),
    icon        TEXT    NOT NULL DEFAULT '',
    is_default  INTEGER NOT NULL DEFAULT 0,
    {_SYNC_COLUMNS}
);

CREATE TABLE IF NOT EXISTS transactions (
    id          INTEGER PRIMARY KEY AUTOINCREMENT,
    book_id     INTEGER NOT NULL REFERENCES books(id) ON DELETE CASCADE,
    wallet_id   INTEGER NOT NULL REFERENCES wallets(id) ON DELETE CASCADE,
    category_id INTEGER NOT NULL REFERENCES categories(id) ON DELETE CASCADE,
    type        TEXT    NOT NULL CHECK(type IN ('INCOME','EXPENSE','TRANSFER')),
    amount      REAL    NOT NULL CHECK(amount > 0),
    date        INTEGER NOT NULL DEFAULT 0,
    notes       TEXT    NOT NULL DEFAULT '',
    image_path  TEXT,
    {_SYNC_COLUMNS}
);

CREATE INDEX IF NOT EXISTS idx_wallets_book_id          ON wallets(book_id);
CREATE INDEX IF NOT EXISTS idx_categories_book_id       ON categories(book_id);
CREATE INDEX IF NOT EXISTS idx_transactions_book_id     ON transactions(book_id);
CREATE INDEX IF NOT EXISTS idx_transactions_wallet_id   ON transactions(wallet_id);
CREATE INDEX IF NOT EXISTS idx_transactions_category_id ON transactions(category_id);
CREATE INDEX IF NOT EXISTS idx_books_is_synced          ON books(is_synced);
CREATE INDEX IF NOT EXISTS idx_wallets_is_synced        ON wallets(is_synced);
CREATE INDEX IF NOT EXISTS idx_categories_is_synced     ON categories(is_synced);
CREATE INDEX IF NOT EXISTS idx_transactions_is_synced   ON transactions(is_synced);

CREATE TABLE IF NOT EXISTS app_settings (
    key   TEXT PRIMARY KEY,
    value TEXT NOT NULL
);
"""


class DatabaseManager:
    """
    Owns the SQLite connection of the local store.

    The connection is created lazily and shared across threads; the sync
    worker and the CLI never write concurrently, so SQLite's own per-statement
    locking is all that is relied upon.
    """

    def __init__(self, db_path: Path | str):
        self.db_path = Path(db_path)
        self._conn: Optional[sqlite3.Connection] = None
        self._conn_lock = threading.Lock()

    def get_connection(self) -> sqlite3.Connection:
        if self._conn is None:
            with self._conn_lock:
                if self._conn is None:
                    if str(self.db_path) != ":memory:":
                        self.db_path.parent.mkdir(parents=True, exist_ok=True)
                    conn = sqlite3.connect(self.db_path, check_same_thread=False)
                    conn.row_factory = sqlite3.Row
                    conn.execute("PRAGMA foreign_keys = ON")
                    conn.execute("PRAGMA journal_mode = WAL")
                    self._conn = conn
        return self._conn

    def initialize(self) -> None:
        """Create schema and apply migrations. Safe to call repeatedly."""
        conn = self.get_connection()
        conn.executescript(SCHEMA)
        self._migrate_schema(conn)
        conn.execute(
            "INSERT OR IGNORE INTO app_settings(key, value) VALUES (?, ?)",
            ("schema_version", str(SCHEMA_VERSION)),
        )
        conn.commit()
        logger.debug("Local store ready at %s", self.db_path)

    def _migrate_schema(self, conn: sqlite3.Connection) -> None:
        """Idempotent ALTER TABLE for sync columns missing from older databases."""
        for table in ("books", "wallets", "categories", "transactions"):
            cols = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
            if "last_sync_at" not in cols:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN last_sync_at INTEGER")
            if "sync_action" not in cols:
                conn.execute(f"ALTER TABLE {table} ADD COLUMN sync_action TEXT")

    def get_setting(self, key: str, default: str = "") -> str:
        row = self.get_connection().execute("SELECT value FROM app_settings WHERE key = ?", (key,)).fetchone()
        return row["value"] if row else default

    def set_setting(self, key: str, value: str) -> None:
        conn = self.get_connection()
        conn.execute("INSERT OR REPLACE INTO app_settings(key, value) VALUES (?, ?)", (key, value))
        conn.commit()

    def close(self) -> None:
        """Close the connection. The next call to get_connection() reopens it."""
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    def __enter__(self) -> "DatabaseManager":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False
