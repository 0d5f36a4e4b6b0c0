# FinSync Model Tests
# Tests for syncable records and their enums

import pytest

from finsync.models import (
    PUSH_ORDER,
    RECORD_TYPES,
    Book,
    Category,
    EntityType,
    SyncAction,
    Transaction,
    Wallet,
    WalletType,
)


class TestEntityType:
    """Tests for EntityType."""

    def test_resources(self):
        assert EntityType.BOOK.resource == "books"
        assert EntityType.WALLET.resource == "wallets"
        assert EntityType.CATEGORY.resource == "categories"
        assert EntityType.TRANSACTION.resource == "transactions"

    def test_push_order_parents_first(self):
        assert PUSH_ORDER == (EntityType.BOOK, EntityType.WALLET, EntityType.CATEGORY, EntityType.TRANSACTION)

    def test_record_types_cover_all_entities(self):
        for entity_type in EntityType:
            assert RECORD_TYPES[entity_type].entity_type == entity_type


class TestEffectiveAction:
    """Tests for the action the push reconciler replays."""

    def test_explicit_action_wins(self):
        book = Book(name="b", sync_action=SyncAction.DELETE, server_id="b-1")
        assert book.effective_action == SyncAction.DELETE

    def test_synced_record_has_no_action(self):
        book = Book(name="b", is_synced=True, server_id="b-1")
        assert book.effective_action is None

    def test_unsynced_without_server_id_is_create(self):
        book = Book(name="b", is_synced=False)
        assert book.effective_action == SyncAction.CREATE

    def test_unsynced_with_server_id_is_update(self):
        book = Book(name="b", is_synced=False, server_id="b-9")
        assert book.effective_action == SyncAction.UPDATE


class TestValidation:
    """Tests for record validation."""

    def test_blank_book_name_rejected(self):
        with pytest.raises(ValueError):
            Book(name="   ").validate()

    def test_wallet_requires_book(self):
        with pytest.raises(ValueError):
            Wallet(book_id=0, name="Cash").validate()

    def test_category_requires_name(self):
        with pytest.raises(ValueError):
            Category(book_id=1, name="").validate()

    def test_transaction_amount_must_be_positive(self):
        with pytest.raises(ValueError):
            Transaction(book_id=1, wallet_id=1, category_id=1, amount=0).validate()

    def test_valid_records_pass(self):
        Book(name="Home").validate()
        Wallet(book_id=1, name="Bank", type=WalletType.BANK).validate()
        Transaction(book_id=1, wallet_id=1, category_id=1, amount=10.5).validate()

    def test_parent_keys(self):
        assert Wallet.parent_keys == {"book_id": EntityType.BOOK}
        assert set(Transaction.parent_keys) == {"book_id", "wallet_id", "category_id"}
        assert Book.parent_keys == {}
