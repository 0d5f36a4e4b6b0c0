# FinSync Push Reconciler
# Replays pending local mutations of one entity type against the server

import logging
from collections.abc import Callable
from dataclasses import dataclass

from finsync.errors import MissingServerIdError, RemoteProtocolError
from finsync.models import EntityType, SyncableRecord, SyncAction, now_millis
from finsync.remote.client import RemoteEndpoint
from finsync.storage.repository import EntitySyncRepository

logger = logging.getLogger(__name__)


@dataclass
class PushResult:
    """Counts for one push pass of one entity type."""

    entity_type: EntityType
    created: int = 0
    updated: int = 0
    deleted: int = 0

    @property
    def total(self) -> int:
        return self.created + self.updated + self.deleted


class PushReconciler:
    """
    Pushes every unsynced record of one repository to its remote endpoint.

    The first failure aborts the pass and propagates; records handled before
    it keep their new state, records after it stay pending for the next run.
    """

    def __init__(
        self,
        repository: EntitySyncRepository,
        endpoint: RemoteEndpoint,
        clock: Callable[[], int] = now_millis,
    ):
        self.repository = repository
        self.endpoint = endpoint
        self._clock = clock

    @property
    def entity_type(self) -> EntityType:
        return self.repository.entity_type

    def push(self) -> PushResult:
        result = PushResult(entity_type=self.entity_type)
        pending = self.repository.list_unsynced()
        if not pending:
            return result

        logger.info("Pushing %d pending %s record(s)", len(pending), self.entity_type.value)
        now = self._clock()

        for record in pending:
            action = record.effective_action
            if action == SyncAction.CREATE:
                self._create(record, now)
                result.created += 1
            elif action == SyncAction.UPDATE:
                self._update(record, now)
                result.updated += 1
            elif action == SyncAction.DELETE:
                self._delete(record)
                result.deleted += 1

        return result

    def _create(self, record: SyncableRecord, now: int) -> None:
        server_id = self.endpoint.create(record) or record.server_id
        if server_id is None:
            raise RemoteProtocolError(f"Server returned no id for {record.describe()}")
        self.repository.record_sync_success(record.local_id, server_id, now)
        logger.debug("Created %s as %s", record.describe(), server_id)

    def _update(self, record: SyncableRecord, now: int) -> None:
        server_id = self._require_server_id(record, SyncAction.UPDATE)
        self.endpoint.update(server_id, record)
        self.repository.record_sync_success(record.local_id, server_id, now)
        logger.debug("Updated %s (%s)", record.describe(), server_id)

    def _delete(self, record: SyncableRecord) -> None:
        server_id = self._require_server_id(record, SyncAction.DELETE)
        self.endpoint.delete(server_id)
        self.repository.purge_permanently(record.local_id)
        logger.debug("Deleted %s (%s)", record.describe(), server_id)

    @staticmethod
    def _require_server_id(record: SyncableRecord, action: SyncAction) -> str:
        if record.server_id is None:
            raise MissingServerIdError(record.entity_type.value, record.local_id, action.value)
        return record.server_id
