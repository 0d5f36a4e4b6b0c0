# FinSync Repository Tests
# Tests for the SQLite sync repositories and the local write path

import sqlite3

import pytest

from finsync.models import Book, EntityType, SyncAction, Transaction
from finsync.storage import EntitySyncRepository, LocalStore
from finsync.storage.database import DatabaseManager


class TestDatabaseManager:
    """Tests for schema management."""

    def test_initialize_is_idempotent(self, temp_dir):
        db = DatabaseManager(temp_dir / "a.db")
        db.initialize()
        db.initialize()
        assert db.get_setting("schema_version") == "1"
        db.close()

    def test_settings_roundtrip(self, store: LocalStore):
        store.db.set_setting("active_book_id", "3")
        assert store.db.get_setting("active_book_id") == "3"
        assert store.db.get_setting("missing", "x") == "x"

    def test_creates_parent_directory(self, temp_dir):
        with DatabaseManager(temp_dir / "nested" / "dir" / "a.db") as db:
            db.initialize()
        assert (temp_dir / "nested" / "dir" / "a.db").exists()


class TestLocalWritePath:
    """Tests for insert, update and delete."""

    def test_insert_stamps_create(self, store, clock):
        book = store.books.insert(Book(name="Home"))
        assert book.local_id is not None
        assert book.sync_action == SyncAction.CREATE
        assert book.is_synced is False
        assert book.created_at == clock.now
        assert book.updated_at == clock.now

    def test_insert_rejects_invalid(self, store):
        with pytest.raises(ValueError):
            store.books.insert(Book(name=""))

    def test_update_of_unpushed_record_stays_create(self, store, seed, clock):
        book = seed.book()
        clock.advance()
        book.name = "Renamed"
        updated = store.books.update(book)
        assert updated.sync_action == SyncAction.CREATE
        assert store.books.get(book.local_id).name == "Renamed"

    def test_update_of_pushed_record_is_update(self, store, seed, clock):
        book = seed.book()
        store.books.record_sync_success(book.local_id, "b-1", clock.now)
        book = store.books.get(book.local_id)
        clock.advance()
        book.name = "Renamed"
        store.books.update(book)
        stored = store.books.get(book.local_id)
        assert stored.sync_action == SyncAction.UPDATE
        assert stored.is_synced is False
        assert stored.updated_at == clock.now

    def test_delete_never_synced_is_hard_delete(self, store, seed):
        book = seed.book()
        store.books.delete(book)
        assert store.books.get(book.local_id) is None
        assert store.books.list_unsynced() == []

    def test_delete_synced_is_tombstone(self, store, seed, clock):
        book = seed.book()
        store.books.record_sync_success(book.local_id, "b-1", clock.now)
        store.books.delete(store.books.get(book.local_id))
        stored = store.books.get(book.local_id)
        assert stored.is_deleted is True
        assert stored.sync_action == SyncAction.DELETE
        assert stored.is_synced is False
        assert store.books.list_all() == []
        assert len(store.books.list_all(include_deleted=True)) == 1

    def test_foreign_keys_enforced(self, store):
        with pytest.raises(sqlite3.IntegrityError):
            store.transactions.insert(Transaction(book_id=99, wallet_id=99, category_id=99, amount=1.0))


class TestSyncContract:
    """Tests for the operations used by the reconcilers."""

    def test_repositories_satisfy_protocol(self, store):
        for repository in store:
            assert isinstance(repository, EntitySyncRepository)

    def test_store_iterates_in_push_order(self, store):
        assert [repo.entity_type for repo in store] == [
            EntityType.BOOK,
            EntityType.WALLET,
            EntityType.CATEGORY,
            EntityType.TRANSACTION,
        ]

    def test_record_sync_success(self, store, seed):
        book = seed.book()
        store.books.record_sync_success(book.local_id, "b-7", 123)
        stored = store.books.get(book.local_id)
        assert stored.server_id == "b-7"
        assert stored.is_synced is True
        assert stored.sync_action is None
        assert stored.last_sync_at == 123
        assert store.books.list_unsynced() == []

    def test_find_by_server_id(self, store, seed):
        book = seed.book()
        store.books.record_sync_success(book.local_id, "b-7", 1)
        assert store.books.find_by_server_id("b-7").local_id == book.local_id
        assert store.books.find_by_server_id("nope") is None

    def test_save_from_remote_inserts(self, store, clock):
        saved = store.books.save_from_remote(Book(name="Remote", server_id="b-5", updated_at=50))
        stored = store.books.get(saved.local_id)
        assert stored.server_id == "b-5"
        assert stored.is_synced is True
        assert stored.is_deleted is False
        assert stored.sync_action is None
        assert stored.last_sync_at == clock.now

    def test_save_from_remote_keeps_local_id(self, store, seed):
        book = seed.book()
        store.books.record_sync_success(book.local_id, "b-1", 1)
        saved = store.books.save_from_remote(Book(name="Server name", server_id="b-1", updated_at=99))
        assert saved.local_id == book.local_id
        assert store.books.get(book.local_id).name == "Server name"
        assert len(store.books.list_all()) == 1

    def test_save_from_remote_keeps_local_image(self, store, seed):
        book, wallet, category, transaction = seed.tree()
        transaction.image_path = "/receipts/1.jpg"
        store.transactions.update(transaction)
        store.transactions.record_sync_success(transaction.local_id, "t-1", 1)

        remote_copy = Transaction(
            book_id=book.local_id,
            wallet_id=wallet.local_id,
            category_id=category.local_id,
            amount=99.0,
            server_id="t-1",
            updated_at=10**13,
        )
        store.transactions.save_from_remote(remote_copy)
        stored = store.transactions.get(transaction.local_id)
        assert stored.amount == 99.0
        assert stored.image_path == "/receipts/1.jpg"

    def test_purge_permanently(self, store, seed):
        book = seed.book()
        store.books.purge_permanently(book.local_id)
        assert store.books.get(book.local_id) is None

    def test_zombies_and_repair(self, store, seed):
        book = seed.book()
        store.db.get_connection().execute("UPDATE books SET is_synced = 1, sync_action = NULL")
        assert [b.local_id for b in store.books.list_zombies()] == [book.local_id]

        store.books.mark_unsynced(book.local_id, SyncAction.CREATE)
        assert store.books.list_zombies() == []
        assert store.books.get(book.local_id).sync_action == SyncAction.CREATE

    def test_cleanup_synced_deletes(self, store, seed):
        book, wallet, category, transaction = seed.tree()
        other = seed.transaction(book, wallet, category, amount=5.0)
        conn = store.db.get_connection()
        conn.execute("UPDATE transactions SET is_deleted = 1, is_synced = 1 WHERE id = ?", (transaction.local_id,))
        conn.execute("UPDATE transactions SET is_deleted = 1, is_synced = 0 WHERE id = ?", (other.local_id,))
        conn.commit()

        assert store.transactions.cleanup_synced_deletes() == 1
        assert store.transactions.get(transaction.local_id) is None
        assert store.transactions.get(other.local_id) is not None

    def test_pending_counts(self, store, seed):
        seed.tree()
        counts = store.pending_counts()
        assert counts == {
            EntityType.BOOK: 1,
            EntityType.WALLET: 1,
            EntityType.CATEGORY: 1,
            EntityType.TRANSACTION: 1,
        }


class TestBookRepository:
    def test_set_active(self, store, seed):
        first = seed.book("First")
        second = seed.book("Second")
        store.books.set_active(second.local_id)
        assert store.books.get_active().local_id == second.local_id
        assert store.books.get(first.local_id).is_active is False

    def test_count_transactions(self, store, seed):
        book, wallet, category, _ = seed.tree()
        seed.transaction(book, wallet, category, amount=1.0)
        assert store.books.count_transactions(book.local_id) == 2
        assert store.books.count_transactions(seed.book("Empty").local_id) == 0
