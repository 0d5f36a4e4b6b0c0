# FinSync Test Fixtures
# Pytest fixtures for FinSync tests

import tempfile
from collections.abc import Generator
from functools import partial
from pathlib import Path
from typing import Optional

import pytest
import yaml

from finsync.errors import RemoteRejectedError
from finsync.models import Book, Category, EntityType, Transaction, TransactionType, Wallet
from finsync.remote.payloads import ParentResolver, RemoteRecord, encode_record
from finsync.storage.repositories import LocalStore
from finsync.sync.engine import SyncOrchestrator
from finsync.sync.state import WatermarkStore

START_MILLIS = 1_700_000_000_000

SERVER_ID_PREFIX = {
    EntityType.BOOK: "b",
    EntityType.WALLET: "w",
    EntityType.CATEGORY: "c",
    EntityType.TRANSACTION: "t",
}


class FakeClock:
    """Manually advanced epoch-millisecond clock."""

    def __init__(self, now: int = START_MILLIS):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, millis: int = 1000) -> int:
        self.now += millis
        return self.now


class FakeEndpoint:
    """
    In-memory stand-in for one REST resource.

    Every call is appended to a log shared by all endpoints so tests can
    assert on global ordering. Payloads are encoded with the real encoder,
    so parent resolution behaves as in production.
    """

    def __init__(self, entity_type: EntityType, log: list, encoder):
        self.entity_type = entity_type
        self.log = log
        self._encoder = encoder
        self._next_id = 1
        self.payloads: list[dict] = []
        self.changes: list[RemoteRecord] = []
        self.since_values: list[int] = []
        self.fail_on: Optional[str] = None
        self.return_no_id = False

    def _maybe_fail(self, operation: str) -> None:
        if self.fail_on == operation:
            raise RemoteRejectedError(operation.upper(), self.entity_type.resource, 500, "boom")

    def create(self, record):
        self._maybe_fail("create")
        self.payloads.append(self._encoder(record))
        server_id = f"{SERVER_ID_PREFIX[self.entity_type]}-{self._next_id}"
        self._next_id += 1
        self.log.append(("create", self.entity_type, record.local_id, server_id))
        return None if self.return_no_id else server_id

    def update(self, server_id, record):
        self._maybe_fail("update")
        self.payloads.append(self._encoder(record))
        self.log.append(("update", self.entity_type, record.local_id, server_id))

    def delete(self, server_id):
        self._maybe_fail("delete")
        self.log.append(("delete", self.entity_type, None, server_id))

    def list_changed(self, since):
        self._maybe_fail("list")
        self.since_values.append(since)
        self.log.append(("list", self.entity_type, None, since))
        return list(self.changes)

    def calls(self, operation: str) -> list[tuple]:
        return [entry for entry in self.log if entry[0] == operation and entry[1] == self.entity_type]


class Seeder:
    """Creates locally-inserted records for tests."""

    def __init__(self, store: LocalStore):
        self.store = store

    def book(self, name: str = "Personal", **kwargs) -> Book:
        return self.store.books.insert(Book(name=name, **kwargs))

    def wallet(self, book: Book, name: str = "Cash", **kwargs) -> Wallet:
        return self.store.wallets.insert(Wallet(book_id=book.local_id, name=name, **kwargs))

    def category(self, book: Book, name: str = "Food", **kwargs) -> Category:
        return self.store.categories.insert(Category(book_id=book.local_id, name=name, **kwargs))

    def transaction(self, book: Book, wallet: Wallet, category: Category, amount: float = 25000.0, **kwargs):
        return self.store.transactions.insert(
            Transaction(
                book_id=book.local_id,
                wallet_id=wallet.local_id,
                category_id=category.local_id,
                amount=amount,
                type=kwargs.pop("type", TransactionType.EXPENSE),
                **kwargs,
            )
        )

    def tree(self) -> tuple[Book, Wallet, Category, Transaction]:
        """One book with a wallet, a category and a transaction."""
        book = self.book()
        wallet = self.wallet(book)
        category = self.category(book)
        transaction = self.transaction(book, wallet, category)
        return book, wallet, category, transaction


def remote(server_id: str, updated_at: int, *, is_deleted: bool = False, **fields) -> RemoteRecord:
    """Build a pulled record the way the client would decode it."""
    data = {"id": server_id, "is_deleted": is_deleted, "updated_at": updated_at, **fields}
    return RemoteRecord.from_json(data)


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def temp_home(temp_dir: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create a temporary home directory."""
    home = temp_dir / "home"
    home.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.delenv("FINSYNC_CONFIG", raising=False)
    monkeypatch.delenv("FINSYNC_TOKEN", raising=False)
    return home


@pytest.fixture
def make_remote():
    """Factory for pulled records."""
    return remote


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store(temp_dir: Path, clock: FakeClock) -> Generator[LocalStore, None, None]:
    """A fresh local store backed by a temporary SQLite file."""
    local_store = LocalStore.open(temp_dir / "finsync.db", clock)
    yield local_store
    local_store.close()


@pytest.fixture
def seed(store: LocalStore) -> Seeder:
    return Seeder(store)


@pytest.fixture
def remote_log() -> list:
    return []


@pytest.fixture
def endpoints(store: LocalStore, remote_log: list) -> dict[EntityType, FakeEndpoint]:
    encoder = partial(encode_record, resolver=ParentResolver(store))
    return {entity_type: FakeEndpoint(entity_type, remote_log, encoder) for entity_type in EntityType}


@pytest.fixture
def watermarks(temp_dir: Path) -> WatermarkStore:
    return WatermarkStore(temp_dir / ".sync_state.yaml")


@pytest.fixture
def orchestrator(store, endpoints, watermarks, clock) -> SyncOrchestrator:
    return SyncOrchestrator(store, endpoints, watermarks, clock=clock)


@pytest.fixture
def sample_config(temp_home: Path) -> dict:
    """Create sample configuration dict."""
    return {
        "api": {
            "base_url": "https://finance.test/api",
            "timeout_seconds": 10,
            "token_env": "FINSYNC_TOKEN",
            "verify_tls": True,
        },
        "storage": {
            "database_path": str(temp_home / "data" / "finsync.db"),
            "state_path": str(temp_home / ".config" / "finsync" / ".sync_state.yaml"),
        },
        "scheduler": {
            "interval_seconds": 60,
            "backoff_base_seconds": 10,
            "backoff_max_seconds": 600,
        },
        "output": {"verbose": False, "colored": False, "log_level": "WARNING"},
    }


@pytest.fixture
def config_file(temp_home: Path, sample_config: dict) -> Path:
    """Create a configuration file."""
    config_dir = temp_home / ".config" / "finsync"
    config_dir.mkdir(parents=True, exist_ok=True)
    config_path = config_dir / "config.yaml"

    with open(config_path, "w", encoding="utf-8") as f:
        yaml.dump(sample_config, f, default_flow_style=False)

    return config_path
