# FinSync Sync Repository
# Generic sync contract and its SQLite implementation, written once for all entity types

import logging
import sqlite3
from collections.abc import Callable
from typing import Any, ClassVar, Generic, Optional, Protocol, TypeVar, runtime_checkable

from finsync.models import EntityType, SyncableRecord, SyncAction, now_millis
from finsync.storage.database import DatabaseManager

logger = logging.getLogger(__name__)

T = TypeVar("T", bound=SyncableRecord)


@runtime_checkable
class EntitySyncRepository(Protocol[T]):
    """Storage operations the push and pull reconcilers rely on."""

    entity_type: EntityType

    def list_unsynced(self) -> list[T]: ...

    def record_sync_success(self, local_id: int, server_id: str, synced_at: int) -> None: ...

    def purge_permanently(self, local_id: int) -> None: ...

    def find_by_server_id(self, server_id: str) -> Optional[T]: ...

    def save_from_remote(self, record: T) -> T: ...


class SqliteSyncRepository(Generic[T]):
    """
    SQLite implementation of the sync contract plus the local write path.

    Subclasses name their table and map rows to models; every sync and
    lifecycle rule lives here so it is written once for all entity types.
    Storage errors are never caught: ``sqlite3.Error`` reaches the caller.
    """

    table: ClassVar[str]
    entity_type: ClassVar[EntityType]

    def __init__(self, db: DatabaseManager, clock: Callable[[], int] = now_millis):
        self._db = db
        self._clock = clock

    # ------------------------------------------------------------------
    # Mapping hooks
    # ------------------------------------------------------------------

    def _row_to_model(self, row: sqlite3.Row) -> T:
        raise NotImplementedError

    def _domain_values(self, record: T) -> dict[str, Any]:
        """Column values for the entity-specific fields."""
        raise NotImplementedError

    @staticmethod
    def _sync_kwargs(row: sqlite3.Row) -> dict[str, Any]:
        """Model keyword arguments for the shared sync columns."""
        return {
            "local_id": row["id"],
            "server_id": row["server_id"],
            "is_synced": bool(row["is_synced"]),
            "is_deleted": bool(row["is_deleted"]),
            "sync_action": SyncAction(row["sync_action"]) if row["sync_action"] else None,
            "last_sync_at": row["last_sync_at"],
            "created_at": row["created_at"],
            "updated_at": row["updated_at"],
        }

    @staticmethod
    def _sync_values(record: SyncableRecord) -> dict[str, Any]:
        return {
            "server_id": record.server_id,
            "is_synced": int(record.is_synced),
            "is_deleted": int(record.is_deleted),
            "sync_action": record.sync_action.value if record.sync_action else None,
            "last_sync_at": record.last_sync_at,
            "created_at": record.created_at,
            "updated_at": record.updated_at,
        }

    def _write(self, record: T) -> int:
        """INSERT when the record has no local id, UPDATE otherwise. Returns the local id."""
        values = {**self._domain_values(record), **self._sync_values(record)}
        conn = self._db.get_connection()
        if record.local_id is None:
            columns = ", ".join(values)
            placeholders = ", ".join("?" for _ in values)
            cursor = conn.execute(
                f"INSERT INTO {self.table}({columns}) VALUES ({placeholders})",
                tuple(values.values()),
            )
            conn.commit()
            return int(cursor.lastrowid)

        assignments = ", ".join(f"{column} = ?" for column in values)
        conn.execute(
            f"UPDATE {self.table} SET {assignments} WHERE id = ?",
            (*values.values(), record.local_id),
        )
        conn.commit()
        return record.local_id

    def _query(self, where: str = "", params: tuple = ()) -> list[T]:
        sql = f"SELECT * FROM {self.table}"
        if where:
            sql += f" WHERE {where}"
        sql += " ORDER BY id"
        rows = self._db.get_connection().execute(sql, params).fetchall()
        return [self._row_to_model(row) for row in rows]

    # ------------------------------------------------------------------
    # Read
    # ------------------------------------------------------------------

    def get(self, local_id: int) -> Optional[T]:
        found = self._query("id = ?", (local_id,))
        return found[0] if found else None

    def list_all(self, *, include_deleted: bool = False) -> list[T]:
        if include_deleted:
            return self._query()
        return self._query("is_deleted = 0")

    def count_unsynced(self) -> int:
        row = self._db.get_connection().execute(f"SELECT COUNT(*) FROM {self.table} WHERE is_synced = 0").fetchone()
        return int(row[0])

    # ------------------------------------------------------------------
    # Local write path
    # ------------------------------------------------------------------

    def insert(self, record: T) -> T:
        """Store a locally created record and queue it for a remote CREATE."""
        record.validate()
        now = self._clock()
        record.local_id = None
        record.is_synced = False
        record.is_deleted = False
        record.sync_action = SyncAction.CREATE
        record.created_at = now
        record.updated_at = now
        record.local_id = self._write(record)
        return record

    def update(self, record: T) -> T:
        """Store a local edit and queue it for a remote UPDATE."""
        record.validate()
        if record.local_id is None:
            raise ValueError(f"Cannot update unsaved {record.entity_type.value}")
        record.is_synced = False
        record.is_deleted = False
        # An edit of a record the server never saw is still a create
        record.sync_action = SyncAction.CREATE if record.server_id is None else SyncAction.UPDATE
        record.updated_at = self._clock()
        self._write(record)
        return record

    def delete(self, record: T) -> None:
        """
        Delete a record locally.

        Records the server never acknowledged are removed immediately; all
        others become tombstones awaiting a remote DELETE.
        """
        if record.local_id is None:
            raise ValueError(f"Cannot delete unsaved {record.entity_type.value}")
        if record.server_id is None:
            self.purge_permanently(record.local_id)
            logger.debug("Hard-deleted never-synced %s", record.describe())
            return
        record.is_synced = False
        record.is_deleted = True
        record.sync_action = SyncAction.DELETE
        record.updated_at = self._clock()
        self._write(record)

    # ------------------------------------------------------------------
    # Sync contract
    # ------------------------------------------------------------------

    def list_unsynced(self) -> list[T]:
        return self._query("is_synced = 0")

    def record_sync_success(self, local_id: int, server_id: str, synced_at: int) -> None:
        conn = self._db.get_connection()
        conn.execute(
            f"""UPDATE {self.table}
                SET server_id = ?, is_synced = 1, sync_action = NULL, last_sync_at = ?
                WHERE id = ?""",
            (server_id, synced_at, local_id),
        )
        conn.commit()

    def purge_permanently(self, local_id: int) -> None:
        conn = self._db.get_connection()
        conn.execute(f"DELETE FROM {self.table} WHERE id = ?", (local_id,))
        conn.commit()

    def find_by_server_id(self, server_id: str) -> Optional[T]:
        found = self._query("server_id = ?", (server_id,))
        return found[0] if found else None

    def save_from_remote(self, record: T) -> T:
        """Upsert a server copy, keyed on server id, as fully reconciled."""
        if record.server_id is None:
            raise ValueError(f"Remote {record.entity_type.value} has no server id")
        existing = self.find_by_server_id(record.server_id)
        record.local_id = existing.local_id if existing else None
        if existing is not None and not record.created_at:
            record.created_at = existing.created_at
        self._merge_local_only_fields(record, existing)
        record.is_synced = True
        record.is_deleted = False
        record.sync_action = None
        record.last_sync_at = self._clock()
        record.local_id = self._write(record)
        return record

    def _merge_local_only_fields(self, record: T, existing: Optional[T]) -> None:
        """Carry over fields the server does not store. No-op by default."""

    def mark_unsynced(self, local_id: int, action: SyncAction) -> None:
        conn = self._db.get_connection()
        conn.execute(
            f"UPDATE {self.table} SET is_synced = 0, sync_action = ?, updated_at = ? WHERE id = ?",
            (action.value, self._clock(), local_id),
        )
        conn.commit()

    def list_zombies(self) -> list[T]:
        """Records flagged as synced that the server never acknowledged."""
        return self._query("is_synced = 1 AND server_id IS NULL")
