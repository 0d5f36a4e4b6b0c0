# FinSync Models
# Syncable record types shared by storage, remote and sync layers

import time
from dataclasses import dataclass
from enum import Enum
from typing import ClassVar, Optional


class SyncAction(str, Enum):
    """Pending operation to replay against the server."""

    CREATE = "CREATE"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class EntityType(str, Enum):
    """Synchronizable entity types."""

    BOOK = "book"
    WALLET = "wallet"
    CATEGORY = "category"
    TRANSACTION = "transaction"

    @property
    def resource(self) -> str:
        """REST resource name for this entity type."""
        return _RESOURCES[self]

    @property
    def label(self) -> str:
        """Human-readable plural label."""
        return self.resource.capitalize()


_RESOURCES = {
    EntityType.BOOK: "books",
    EntityType.WALLET: "wallets",
    EntityType.CATEGORY: "categories",
    EntityType.TRANSACTION: "transactions",
}

# Parents first: a child can only be created remotely once its parents have server ids.
PUSH_ORDER: tuple[EntityType, ...] = (
    EntityType.BOOK,
    EntityType.WALLET,
    EntityType.CATEGORY,
    EntityType.TRANSACTION,
)


class WalletType(str, Enum):
    """Kind of wallet."""

    CASH = "CASH"
    BANK = "BANK"
    E_WALLET = "E_WALLET"
    INVESTMENT = "INVESTMENT"


class TransactionType(str, Enum):
    """Direction of money for categories and transactions."""

    INCOME = "INCOME"
    EXPENSE = "EXPENSE"
    TRANSFER = "TRANSFER"


def now_millis() -> int:
    """Current wall-clock time as epoch milliseconds."""
    return int(time.time() * 1000)


@dataclass(kw_only=True)
class SyncableRecord:
    """
    Sync metadata carried by every synchronizable entity.

    ``local_id`` is the local primary key and is never sent to the server as
    identity; ``server_id`` is None until the server acknowledged a CREATE.
    """

    local_id: Optional[int] = None
    server_id: Optional[str] = None
    is_synced: bool = False
    is_deleted: bool = False
    sync_action: Optional[SyncAction] = None
    last_sync_at: Optional[int] = None
    created_at: int = 0
    updated_at: int = 0

    entity_type: ClassVar[EntityType]
    # Parent key field name -> parent entity type
    parent_keys: ClassVar[dict[str, EntityType]] = {}

    @property
    def effective_action(self) -> Optional[SyncAction]:
        """
        Action the push reconciler should replay for this record.

        Unsynced rows without an explicit action (legacy data) are treated as
        a CREATE when the server never saw them, and as an UPDATE otherwise.
        """
        if self.sync_action is not None:
            return self.sync_action
        if self.is_synced:
            return None
        return SyncAction.CREATE if self.server_id is None else SyncAction.UPDATE

    def validate(self) -> None:
        """Raise ValueError if the record cannot be stored."""

    def describe(self) -> str:
        return f"{self.entity_type.value} {self.local_id}"


@dataclass(kw_only=True)
class Book(SyncableRecord):
    """A ledger grouping wallets, categories and transactions."""

    name: str
    description: str = ""
    icon: str = "📖"
    color: str = "#4CAF50"
    is_active: bool = True
    currency_code: str = "IDR"
    currency_symbol: str = "Rp"

    entity_type: ClassVar[EntityType] = EntityType.BOOK

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Book name must not be blank")


@dataclass(kw_only=True)
class Wallet(SyncableRecord):
    """A source of funds belonging to one book."""

    book_id: int
    name: str
    type: WalletType = WalletType.CASH
    icon: str = "💰"
    color: str = "#2196F3"
    initial_balance: float = 0.0
    description: Optional[str] = None
    is_active: bool = True

    entity_type: ClassVar[EntityType] = EntityType.WALLET
    parent_keys: ClassVar[dict[str, EntityType]] = {"book_id": EntityType.BOOK}

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Wallet name must not be blank")
        if self.book_id <= 0:
            raise ValueError("Wallet must belong to a book")


@dataclass(kw_only=True)
class Category(SyncableRecord):
    """A transaction category belonging to one book."""

    book_id: int
    name: str
    type: TransactionType = TransactionType.EXPENSE
    icon: str = "⚙️"
    is_default: bool = False

    entity_type: ClassVar[EntityType] = EntityType.CATEGORY
    parent_keys: ClassVar[dict[str, EntityType]] = {"book_id": EntityType.BOOK}

    def validate(self) -> None:
        if not self.name or not self.name.strip():
            raise ValueError("Category name must not be blank")
        if self.book_id <= 0:
            raise ValueError("Category must belong to a book")


@dataclass(kw_only=True)
class Transaction(SyncableRecord):
    """A single income, expense or transfer entry."""

    book_id: int
    wallet_id: int
    category_id: int
    amount: float
    type: TransactionType = TransactionType.EXPENSE
    date: int = 0
    notes: str = ""
    image_path: Optional[str] = None

    entity_type: ClassVar[EntityType] = EntityType.TRANSACTION
    parent_keys: ClassVar[dict[str, EntityType]] = {
        "book_id": EntityType.BOOK,
        "wallet_id": EntityType.WALLET,
        "category_id": EntityType.CATEGORY,
    }

    def validate(self) -> None:
        if self.amount <= 0:
            raise ValueError("Transaction amount must be positive")
        if self.wallet_id <= 0 or self.category_id <= 0:
            raise ValueError("Transaction must reference a wallet and a category")


RECORD_TYPES: dict[EntityType, type[SyncableRecord]] = {
    EntityType.BOOK: Book,
    EntityType.WALLET: Wallet,
    EntityType.CATEGORY: Category,
    EntityType.TRANSACTION: Transaction,
}
