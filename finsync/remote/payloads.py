# FinSync Payloads
# Mapping between local records and the REST wire format

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from finsync.errors import MissingParentError, ParentNotSyncedError, RemoteProtocolError
from finsync.models import (
    Book,
    Category,
    EntityType,
    SyncableRecord,
    Transaction,
    TransactionType,
    Wallet,
    WalletType,
)

if TYPE_CHECKING:
    from finsync.storage.repositories import LocalStore


def to_millis(value: Any) -> int:
    """
    Normalize a wire timestamp to epoch milliseconds.

    Accepts integers, floats, numeric strings and ISO-8601 strings; None maps
    to 0 so that any real local timestamp compares as newer.
    """
    if value is None or value == "":
        return 0
    if isinstance(value, bool):
        raise RemoteProtocolError(f"Invalid timestamp: {value!r}")
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        text = value.strip()
        if text.lstrip("-").isdigit():
            return int(text)
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError as e:
            raise RemoteProtocolError(f"Invalid timestamp: {value!r}") from e
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return int(parsed.timestamp() * 1000)
    raise RemoteProtocolError(f"Invalid timestamp: {value!r}")


def _to_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes")
    return bool(value)


@dataclass
class RemoteRecord:
    """A record as reported by ``GET /{resource}?updatedSince=``."""

    server_id: str
    is_deleted: bool = False
    updated_at: int = 0
    fields: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, data: Any) -> "RemoteRecord":
        if not isinstance(data, dict):
            raise RemoteProtocolError(f"Expected an object, got {type(data).__name__}")
        server_id = data.get("id", data.get("server_id"))
        if server_id is None or server_id == "":
            raise RemoteProtocolError("Remote record without id")
        return cls(
            server_id=str(server_id),
            is_deleted=_to_bool(data.get("is_deleted", False)),
            updated_at=to_millis(data.get("updated_at")),
            fields=data,
        )


class ParentResolver:
    """Translates parent keys between local ids and server ids."""

    def __init__(self, store: "LocalStore"):
        self._store = store

    def server_id_for(self, record: SyncableRecord, key: str) -> str:
        """Server id of the parent referenced by ``record.<key>``."""
        parent_type = record.parent_keys[key]
        parent_id = getattr(record, key)
        parent = self._store.repository(parent_type).get(parent_id)
        if parent is None or parent.server_id is None:
            raise ParentNotSyncedError(record.entity_type.value, record.local_id, parent_type.value, parent_id)
        return parent.server_id

    def local_id_for(self, remote: RemoteRecord, entity_type: EntityType, parent_type: EntityType, key: str) -> int:
        """Local id of the parent a pulled record references by server id."""
        parent_server_id = remote.fields.get(key)
        parent = None
        if parent_server_id is not None:
            parent = self._store.repository(parent_type).find_by_server_id(str(parent_server_id))
        if parent is None or parent.local_id is None:
            raise MissingParentError(
                entity_type.value,
                remote.server_id,
                parent_type.value,
                None if parent_server_id is None else str(parent_server_id),
            )
        return parent.local_id


# ---------------------------------------------------------------------------
# Encoding (local -> wire)
# ---------------------------------------------------------------------------


def encode_record(record: SyncableRecord, resolver: ParentResolver) -> dict[str, Any]:
    """Request body for POST/PUT of ``record``; parent keys carry server ids."""
    if isinstance(record, Book):
        return {
            "name": record.name,
            "description": record.description or "",
            "icon": record.icon or "📖",
            "color": record.color or "#000000",
            "currency_code": record.currency_code,
            "currency_symbol": record.currency_symbol,
        }
    if isinstance(record, Wallet):
        return {
            "book_id": resolver.server_id_for(record, "book_id"),
            "name": record.name,
            "type": WalletType(record.type).value,
            "icon": record.icon,
            "color": record.color or "#000000",
            "initial_balance": record.initial_balance,
        }
    if isinstance(record, Category):
        return {
            "book_id": resolver.server_id_for(record, "book_id"),
            "name": record.name,
            "type": TransactionType(record.type).value,
            "icon": record.icon,
        }
    if isinstance(record, Transaction):
        return {
            "book_id": resolver.server_id_for(record, "book_id"),
            "wallet_id": resolver.server_id_for(record, "wallet_id"),
            "category_id": resolver.server_id_for(record, "category_id"),
            "amount": record.amount,
            "type": TransactionType(record.type).value,
            "note": record.notes,
            "created_at": record.date,
        }
    raise TypeError(f"Unsupported record type: {type(record).__name__}")


# ---------------------------------------------------------------------------
# Decoding (wire -> local)
# ---------------------------------------------------------------------------


def _sync_fields(remote: RemoteRecord) -> dict[str, Any]:
    return {
        "server_id": remote.server_id,
        "updated_at": remote.updated_at,
        "created_at": to_millis(remote.fields.get("created_at_ts", remote.fields.get("created_at"))),
    }


def decode_record(entity_type: EntityType, remote: RemoteRecord, resolver: ParentResolver) -> SyncableRecord:
    """
    Build a local record from a pulled server record.

    Raises:
        MissingParentError: A parent referenced by server id is not stored locally.
        RemoteProtocolError: Required fields are missing or malformed.
    """
    data = remote.fields
    try:
        if entity_type == EntityType.BOOK:
            return Book(
                name=data["name"],
                description=data.get("description") or "",
                icon=data.get("icon") or "📖",
                color=data.get("color") or "#4CAF50",
                currency_code=data.get("currency_code") or "IDR",
                currency_symbol=data.get("currency_symbol") or "Rp",
                is_active=False,
                **_sync_fields(remote),
            )
        if entity_type == EntityType.WALLET:
            return Wallet(
                book_id=resolver.local_id_for(remote, entity_type, EntityType.BOOK, "book_id"),
                name=data["name"],
                type=WalletType(data.get("type") or WalletType.CASH.value),
                icon=data.get("icon") or "💰",
                color=data.get("color") or "#2196F3",
                initial_balance=float(data.get("initial_balance") or 0.0),
                description=data.get("description"),
                is_active=_to_bool(data.get("is_active", True)),
                **_sync_fields(remote),
            )
        if entity_type == EntityType.CATEGORY:
            return Category(
                book_id=resolver.local_id_for(remote, entity_type, EntityType.BOOK, "book_id"),
                name=data["name"],
                type=TransactionType(data.get("type") or TransactionType.EXPENSE.value),
                icon=data.get("icon") or "⚙️",
                is_default=_to_bool(data.get("is_default", False)),
                **_sync_fields(remote),
            )
        if entity_type == EntityType.TRANSACTION:
            sync_fields = _sync_fields(remote)
            return Transaction(
                book_id=resolver.local_id_for(remote, entity_type, EntityType.BOOK, "book_id"),
                wallet_id=resolver.local_id_for(remote, entity_type, EntityType.WALLET, "wallet_id"),
                category_id=resolver.local_id_for(remote, entity_type, EntityType.CATEGORY, "category_id"),
                amount=float(data["amount"]),
                type=TransactionType(data.get("type") or TransactionType.EXPENSE.value),
                date=to_millis(data.get("date")) or sync_fields["created_at"],
                notes=data.get("notes", data.get("note")) or "",
                image_path=data.get("image_path"),
                **sync_fields,
            )
    except (KeyError, ValueError, TypeError) as e:
        raise RemoteProtocolError(f"Malformed {entity_type.value} {remote.server_id}: {e}") from e
    raise TypeError(f"Unsupported entity type: {entity_type}")


def server_id_from_create(body: Any) -> Optional[str]:
    """Extract the assigned server id from a POST response body."""
    if not isinstance(body, dict):
        return None
    data = body.get("data")
    if isinstance(data, dict) and data.get("id") is not None:
        return str(data["id"])
    if body.get("id") is not None:
        return str(body["id"])
    return None
