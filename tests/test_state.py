# FinSync State Tests
# Tests for watermark persistence

import yaml

from finsync.models import EntityType
from finsync.sync.state import SyncState, WatermarkStore


class TestSyncState:
    def test_missing_watermark_is_zero(self):
        assert SyncState().get_watermark(EntityType.BOOK) == 0

    def test_to_dict_uses_entity_names(self):
        state = SyncState(watermarks={EntityType.WALLET: 42})
        assert state.to_dict()["watermarks"] == {"wallet": 42}

    def test_from_dict_skips_unknown_types(self):
        state = SyncState.from_dict({"watermarks": {"book": "10", "budget": 5, "wallet": "soon"}})
        assert state.watermarks == {EntityType.BOOK: 10}


class TestWatermarkStore:
    """Tests for the YAML state file."""

    def test_default_path(self, temp_home):
        store = WatermarkStore()
        assert store.state_path == temp_home / ".config" / "finsync" / ".sync_state.yaml"

    def test_fresh_store_is_zero(self, watermarks):
        assert set(watermarks.snapshot().values()) == {0}
        assert list(watermarks.snapshot()) == [
            EntityType.BOOK,
            EntityType.WALLET,
            EntityType.CATEGORY,
            EntityType.TRANSACTION,
        ]

    def test_advance_persists(self, watermarks):
        watermarks.advance(1234)

        reloaded = WatermarkStore(watermarks.state_path)
        assert reloaded.snapshot() == {entity_type: 1234 for entity_type in EntityType}
        assert reloaded.state.last_sync is not None

    def test_advance_subset(self, watermarks):
        watermarks.advance(50, entity_types=(EntityType.BOOK,))
        assert watermarks.get(EntityType.BOOK) == 50
        assert watermarks.get(EntityType.WALLET) == 0

    def test_reset_one(self, watermarks):
        watermarks.advance(99)
        watermarks.reset(EntityType.CATEGORY)
        assert watermarks.get(EntityType.CATEGORY) == 0
        assert watermarks.get(EntityType.BOOK) == 99

    def test_reset_all(self, watermarks):
        watermarks.advance(99)
        watermarks.reset()
        assert set(WatermarkStore(watermarks.state_path).snapshot().values()) == {0}

    def test_corrupt_file_starts_over(self, temp_dir):
        path = temp_dir / "state.yaml"
        path.write_text("watermarks: [unclosed", encoding="utf-8")
        assert WatermarkStore(path).get(EntityType.BOOK) == 0

    def test_file_format(self, watermarks):
        watermarks.advance(7)
        data = yaml.safe_load(watermarks.state_path.read_text(encoding="utf-8"))
        assert data["version"] == "1.0"
        assert data["watermarks"]["transaction"] == 7
