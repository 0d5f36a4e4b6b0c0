# FinSync Sync State
# Persistence of the pull watermarks between sync runs

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Optional

import yaml

from finsync.models import PUSH_ORDER, EntityType

logger = logging.getLogger(__name__)


@dataclass
class SyncState:
    """
    Watermarks of the last successful pull, per entity type.

    A watermark of 0 means "never pulled": the next pull fetches everything.
    """

    version: str = "1.0"
    last_sync: Optional[str] = None  # ISO format datetime of the last save
    watermarks: dict[EntityType, int] = field(default_factory=dict)

    def get_watermark(self, entity_type: EntityType) -> int:
        return self.watermarks.get(entity_type, 0)

    def set_watermark(self, entity_type: EntityType, value: int) -> None:
        self.watermarks[entity_type] = value

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "version": self.version,
            "last_sync": self.last_sync,
            "watermarks": {entity_type.value: value for entity_type, value in self.watermarks.items()},
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SyncState":
        """Create from dictionary, ignoring unknown entity types."""
        watermarks: dict[EntityType, int] = {}
        for key, value in (data.get("watermarks") or {}).items():
            try:
                watermarks[EntityType(key)] = int(value)
            except (ValueError, TypeError):
                logger.warning("Ignoring invalid watermark %r: %r", key, value)

        return cls(
            version=data.get("version", "1.0"),
            last_sync=data.get("last_sync"),
            watermarks=watermarks,
        )


class WatermarkStore:
    """
    Manages watermark persistence in a YAML state file.

    Handles loading, saving and resetting the watermarks.
    """

    def __init__(self, state_path: Optional[Path] = None):
        """
        Initialize the store.

        Args:
            state_path: Path to state file. Defaults to ~/.config/finsync/.sync_state.yaml
        """
        if state_path is None:
            state_path = Path.home() / ".config" / "finsync" / ".sync_state.yaml"
        self.state_path = Path(state_path).expanduser()
        self._state: Optional[SyncState] = None

    @property
    def state(self) -> SyncState:
        """Get current state, loading if necessary."""
        if self._state is None:
            self._state = self.load()
        return self._state

    def load(self) -> SyncState:
        """Load state from file. A missing or corrupt file yields an empty state."""
        if not self.state_path.exists():
            return SyncState()

        try:
            with open(self.state_path, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except yaml.YAMLError as e:
            logger.warning("Corrupt state file %s, starting from scratch: %s", self.state_path, e)
            return SyncState()

        if not isinstance(data, dict):
            return SyncState()
        return SyncState.from_dict(data)

    def save(self) -> None:
        """Save state to file."""
        self.state_path.parent.mkdir(parents=True, exist_ok=True)

        state = self.state
        state.last_sync = datetime.now().isoformat()
        with open(self.state_path, "w", encoding="utf-8") as f:
            yaml.dump(state.to_dict(), f, default_flow_style=False, sort_keys=False, allow_unicode=True)

    def get(self, entity_type: EntityType) -> int:
        return self.state.get_watermark(entity_type)

    def snapshot(self) -> dict[EntityType, int]:
        """Watermarks of all entity types, in push order."""
        return {entity_type: self.get(entity_type) for entity_type in PUSH_ORDER}

    def advance(self, value: int, entity_types: tuple[EntityType, ...] = PUSH_ORDER) -> None:
        """Set the watermark of ``entity_types`` to ``value`` and save."""
        for entity_type in entity_types:
            self.state.set_watermark(entity_type, value)
        self.save()

    def reset(self, entity_type: Optional[EntityType] = None) -> None:
        """Reset one watermark, or all of them, so the next pull is a full one."""
        if entity_type is None:
            self._state = SyncState()
        else:
            self.state.watermarks.pop(entity_type, None)
        self.save()
