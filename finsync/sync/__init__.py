# FinSync Sync
# Push/pull reconciliation, orchestration and scheduling

from finsync.sync.connectivity import ConnectivityChecker
from finsync.sync.engine import SyncOrchestrator, SyncOutcome, SyncPhase, SyncResult
from finsync.sync.pull import PullReconciler, PullResult
from finsync.sync.push import PushReconciler, PushResult
from finsync.sync.scheduler import ScheduledTask, SyncScheduler, TaskConstraints, UniquePolicy
from finsync.sync.state import SyncState, WatermarkStore

__all__ = [
    "ConnectivityChecker",
    "PullReconciler",
    "PullResult",
    "PushReconciler",
    "PushResult",
    "ScheduledTask",
    "SyncOrchestrator",
    "SyncOutcome",
    "SyncPhase",
    "SyncResult",
    "SyncScheduler",
    "SyncState",
    "TaskConstraints",
    "UniquePolicy",
    "WatermarkStore",
]
