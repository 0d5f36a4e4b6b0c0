# FinSync Factory
# Wires configuration into a ready-to-run store, client, orchestrator and scheduler

import logging
from dataclasses import dataclass
from functools import partial
from pathlib import Path
from typing import Optional

import requests

from finsync.config.schema import FinSyncConfig
from finsync.models import PUSH_ORDER
from finsync.remote.client import ApiClient
from finsync.remote.payloads import ParentResolver, encode_record
from finsync.storage.repositories import LocalStore
from finsync.sync.connectivity import ConnectivityChecker
from finsync.sync.engine import SyncOrchestrator
from finsync.sync.scheduler import SyncScheduler, TaskConstraints
from finsync.sync.state import WatermarkStore

logger = logging.getLogger(__name__)


@dataclass
class SyncContext:
    """Everything one sync process needs, built from configuration."""

    config: FinSyncConfig
    store: LocalStore
    client: ApiClient
    watermarks: WatermarkStore
    connectivity: ConnectivityChecker
    orchestrator: SyncOrchestrator

    def close(self) -> None:
        self.client.close()
        self.store.close()

    def __enter__(self) -> "SyncContext":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.close()
        return False


def build_context(config: FinSyncConfig, *, session: Optional[requests.Session] = None) -> SyncContext:
    """
    Build the sync components described by ``config``.

    Args:
        config: Loaded configuration.
        session: Optional requests session (tests inject a mock).
    """
    store = LocalStore.open(config.storage.database_path)
    client = ApiClient(
        config.api.base_url,
        token=config.api.resolve_token(),
        timeout=config.api.timeout_seconds,
        verify=config.api.verify_tls,
        session=session,
    )
    resolver = ParentResolver(store)
    encoder = partial(encode_record, resolver=resolver)
    endpoints = {entity_type: client.endpoint(entity_type, encoder) for entity_type in PUSH_ORDER}

    watermarks = WatermarkStore(Path(config.storage.state_path))
    connectivity = ConnectivityChecker(config.api.base_url, ping=client.ping)
    orchestrator = SyncOrchestrator(
        store,
        endpoints,
        watermarks,
        network_available=connectivity.is_online,
        token_provider=config.api.resolve_token,
    )
    logger.debug("Sync context ready for %s", config.api.base_url)
    return SyncContext(
        config=config,
        store=store,
        client=client,
        watermarks=watermarks,
        connectivity=connectivity,
        orchestrator=orchestrator,
    )


def build_scheduler(context: SyncContext) -> SyncScheduler:
    """Scheduler running the context's orchestrator with the configured policy."""
    settings = context.config.scheduler

    def run_sync():
        return context.orchestrator.run().outcome

    scheduler = SyncScheduler(
        run_sync,
        network_available=context.connectivity.is_online,
        backoff_base=settings.backoff_base_seconds,
        backoff_max=settings.backoff_max_seconds,
        request_delay=settings.on_demand_delay_seconds,
    )
    scheduler.schedule_periodic(
        settings.interval_seconds,
        TaskConstraints(requires_network=settings.requires_network, requires_idle=settings.requires_idle),
    )
    return scheduler
