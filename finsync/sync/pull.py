# FinSync Pull Reconciler
# Applies server-side changes of one entity type to the local store

import logging
from collections.abc import Callable
from dataclasses import dataclass

from finsync.models import EntityType, SyncableRecord
from finsync.remote.client import RemoteEndpoint
from finsync.remote.payloads import RemoteRecord
from finsync.storage.repository import EntitySyncRepository

logger = logging.getLogger(__name__)

# Builds a local record from a pulled one
Decoder = Callable[[RemoteRecord], SyncableRecord]


@dataclass
class PullResult:
    """Counts for one pull pass of one entity type."""

    entity_type: EntityType
    fetched: int = 0
    saved: int = 0
    purged: int = 0
    stale: int = 0


class PullReconciler:
    """
    Applies remote changes with last-write-wins on ``updated_at``.

    A remote tombstone purges the local copy. A live remote record replaces
    the local copy only when it is strictly newer; ties keep the local copy.
    A newer remote copy also replaces a pending local edit or delete.

    A record whose parent is unknown locally aborts the pass with
    MissingParentError, so the caller keeps its watermark and retries.
    """

    def __init__(self, repository: EntitySyncRepository, endpoint: RemoteEndpoint, decoder: Decoder):
        self.repository = repository
        self.endpoint = endpoint
        self._decode = decoder

    @property
    def entity_type(self) -> EntityType:
        return self.repository.entity_type

    def pull(self, since: int) -> PullResult:
        """Fetch changes since ``since`` (epoch ms) and apply them."""
        remote_records = self.endpoint.list_changed(since)
        result = self.apply(remote_records)
        logger.info(
            "Pulled %d %s record(s): %d saved, %d purged, %d stale",
            result.fetched,
            self.entity_type.value,
            result.saved,
            result.purged,
            result.stale,
        )
        return result

    def apply(self, remote_records: list[RemoteRecord]) -> PullResult:
        result = PullResult(entity_type=self.entity_type, fetched=len(remote_records))

        for remote in remote_records:
            local = self.repository.find_by_server_id(remote.server_id)

            if remote.is_deleted:
                if local is not None:
                    self.repository.purge_permanently(local.local_id)
                    result.purged += 1
                continue

            if local is not None and remote.updated_at <= local.updated_at:
                result.stale += 1
                continue

            # Raises MissingParentError when a parent has not been pulled yet
            record = self._decode(remote)
            self.repository.save_from_remote(record)
            result.saved += 1

        return result
