# FinSync Sync Engine
# Orchestrates one push/pull/cleanup pass over all entity types

import logging
import sqlite3
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from finsync.errors import AuthenticationError, ConnectivityError, FinSyncError
from finsync.models import PUSH_ORDER, EntityType, SyncAction, now_millis
from finsync.remote.client import RemoteEndpoint
from finsync.remote.payloads import ParentResolver, RemoteRecord, decode_record
from finsync.storage.repositories import LocalStore
from finsync.sync.pull import Decoder, PullReconciler, PullResult
from finsync.sync.push import PushReconciler, PushResult
from finsync.sync.state import WatermarkStore

logger = logging.getLogger(__name__)

# Errors that leave the store consistent and are worth retrying later
RECOVERABLE_ERRORS = (FinSyncError, sqlite3.Error, OSError)

# Entity types whose zombies block their children from being pushed
ZOMBIE_REPAIR_TYPES = (EntityType.BOOK, EntityType.WALLET, EntityType.CATEGORY)

ACTIVE_BOOK_SETTING = "active_book_id"


class SyncOutcome(str, Enum):
    """Result reported to the scheduler."""

    SUCCESS = "success"
    RETRY = "retry"
    FAILURE = "failure"


class SyncPhase(str, Enum):
    """Orchestrator state."""

    IDLE = "idle"
    PUSHING = "pushing"
    PULLING = "pulling"
    CLEANING_UP = "cleaning_up"


@dataclass
class SyncResult:
    """Report of one orchestrator run."""

    outcome: SyncOutcome
    started_at: int = 0
    finished_at: int = 0
    pushed: list[PushResult] = field(default_factory=list)
    pulled: list[PullResult] = field(default_factory=list)
    zombies_repaired: int = 0
    books_reconciled: int = 0
    tombstones_cleaned: int = 0
    failed_phase: Optional[SyncPhase] = None
    error: Optional[str] = None

    @property
    def success(self) -> bool:
        return self.outcome == SyncOutcome.SUCCESS

    @property
    def total_pushed(self) -> int:
        return sum(result.total for result in self.pushed)

    @property
    def total_pulled(self) -> int:
        return sum(result.saved + result.purged for result in self.pulled)


class SyncOrchestrator:
    """
    Runs the full sync pass: push all types, pull all types, clean up.

    Push runs strictly Book, Wallet, Category, Transaction and stops at the
    first failure. Pull uses the watermarks loaded when the run starts; they
    advance to the run's start time only after every step succeeded.
    Only one run executes at a time.
    """

    def __init__(
        self,
        store: LocalStore,
        endpoints: Mapping[EntityType, RemoteEndpoint],
        watermarks: WatermarkStore,
        *,
        network_available: Callable[[], bool] = lambda: True,
        token_provider: Optional[Callable[[], Optional[str]]] = None,
        decoders: Optional[Mapping[EntityType, Decoder]] = None,
        clock: Callable[[], int] = now_millis,
    ):
        """
        Initialize the orchestrator.

        Args:
            store: Local store holding the four repositories.
            endpoints: Remote endpoint per entity type.
            watermarks: Persistent pull watermarks.
            network_available: Reachability probe; False short-circuits to RETRY.
            token_provider: Returns the bearer token; a falsy token means FAILURE.
            decoders: Pulled-record decoders per entity type. Defaults to the
                wire decoders resolving parents through ``store``.
            clock: Epoch-millisecond clock.
        """
        self.store = store
        self.endpoints = endpoints
        self.watermarks = watermarks
        self._network_available = network_available
        self._token_provider = token_provider
        self._clock = clock
        if decoders is None:
            resolver = ParentResolver(store)
            decoders = {entity_type: _wire_decoder(entity_type, resolver) for entity_type in PUSH_ORDER}
        self._decoders = decoders
        self._run_lock = threading.Lock()
        self.phase = SyncPhase.IDLE

    @property
    def is_running(self) -> bool:
        return self._run_lock.locked()

    def run(self) -> SyncResult:
        """Execute one sync pass. A call made while another runs returns RETRY at once."""
        if not self._run_lock.acquire(blocking=False):
            logger.info("Sync already in progress, skipping")
            return SyncResult(outcome=SyncOutcome.RETRY, error="sync already in progress")
        try:
            return self._run()
        finally:
            self.phase = SyncPhase.IDLE
            self._run_lock.release()

    def _run(self) -> SyncResult:
        started_at = self._clock()
        result = SyncResult(outcome=SyncOutcome.SUCCESS, started_at=started_at)

        try:
            self._require_token()
        except AuthenticationError as e:
            logger.error("Sync aborted: %s", e)
            return self._finish(result, SyncOutcome.FAILURE, error=str(e))

        try:
            result.zombies_repaired = self._repair_zombies()
        except RECOVERABLE_ERRORS as e:
            logger.warning("Zombie repair failed: %s", e)
            return self._finish(result, SyncOutcome.RETRY, error=str(e))

        try:
            self._require_network()
        except ConnectivityError as e:
            logger.info("Sync postponed: %s", e)
            return self._finish(result, SyncOutcome.RETRY, error=str(e))

        since = self.watermarks.snapshot()

        # Push
        self.phase = SyncPhase.PUSHING
        try:
            for repository in self.store:
                reconciler = PushReconciler(repository, self.endpoints[repository.entity_type], self._clock)
                result.pushed.append(reconciler.push())
        except RECOVERABLE_ERRORS as e:
            logger.warning("Push failed: %s", e)
            return self._finish(result, SyncOutcome.RETRY, error=str(e))

        # Pull
        self.phase = SyncPhase.PULLING
        pull_error: Optional[Exception] = None
        try:
            for repository in self.store:
                entity_type = repository.entity_type
                reconciler = PullReconciler(repository, self.endpoints[entity_type], self._decoders[entity_type])
                result.pulled.append(reconciler.pull(since[entity_type]))
        except RECOVERABLE_ERRORS as e:
            logger.warning("Pull failed: %s", e)
            pull_error = e

        try:
            result.books_reconciled = self.reconcile_default_book()
        except sqlite3.Error as e:
            logger.warning("Default book reconciliation failed: %s", e)
            pull_error = pull_error or e

        if pull_error is not None:
            return self._finish(result, SyncOutcome.RETRY, error=str(pull_error))

        # Cleanup
        self.phase = SyncPhase.CLEANING_UP
        try:
            result.tombstones_cleaned = self.store.transactions.cleanup_synced_deletes()
            self.watermarks.advance(started_at)
        except RECOVERABLE_ERRORS as e:
            logger.warning("Cleanup failed: %s", e)
            return self._finish(result, SyncOutcome.RETRY, error=str(e))

        logger.info(
            "Sync completed: %d pushed, %d pulled, %d tombstone(s) cleaned",
            result.total_pushed,
            result.total_pulled,
            result.tombstones_cleaned,
        )
        return self._finish(result, SyncOutcome.SUCCESS)

    def _require_token(self) -> None:
        if self._token_provider is not None and not self._token_provider():
            raise AuthenticationError("not authenticated")

    def _require_network(self) -> None:
        if not self._network_available():
            raise ConnectivityError("network unavailable")

    def _finish(self, result: SyncResult, outcome: SyncOutcome, error: Optional[str] = None) -> SyncResult:
        result.outcome = outcome
        result.error = error
        if outcome != SyncOutcome.SUCCESS and self.phase != SyncPhase.IDLE:
            result.failed_phase = self.phase
        result.finished_at = self._clock()
        return result

    def _repair_zombies(self) -> int:
        """Reset parents flagged synced without a server id to a pending CREATE."""
        repaired = 0
        for entity_type in ZOMBIE_REPAIR_TYPES:
            repository = self.store.repository(entity_type)
            for record in repository.list_zombies():
                logger.warning("Zombie %s detected, resetting to CREATE", record.describe())
                repository.mark_unsynced(record.local_id, SyncAction.CREATE)
                repaired += 1
        return repaired

    def reconcile_default_book(self) -> int:
        """
        Drop the empty never-pushed book once synced books exist.

        A fresh install creates a local book before the first pull; after the
        pull brings the user's real books, the active book switches to the
        first synced one and the empty local book is purged.
        """
        books = self.store.books
        all_books = books.list_all()
        synced = [book for book in all_books if book.server_id]
        unpushed = [book for book in all_books if not book.server_id and book.sync_action == SyncAction.CREATE]
        if not synced or not unpushed:
            return 0

        target = synced[0]
        removed = 0
        for book in unpushed:
            count = books.count_transactions(book.local_id)
            if count:
                logger.warning("Local book %s has %d transaction(s), keeping it", book.describe(), count)
                continue
            logger.info("Switching active book from %s to %s", book.describe(), target.describe())
            books.set_active(target.local_id)
            self.store.db.set_setting(ACTIVE_BOOK_SETTING, str(target.local_id))
            books.purge_permanently(book.local_id)
            removed += 1
        return removed


def _wire_decoder(entity_type: EntityType, resolver: ParentResolver) -> Decoder:
    def decode(remote: RemoteRecord):
        return decode_record(entity_type, remote, resolver)

    return decode
