# FinSync Scheduler
# In-process runner for periodic and on-demand sync work

import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from finsync.sync.engine import SyncOutcome

logger = logging.getLogger(__name__)

PERIODIC_TASK = "periodic_sync"
ON_DEMAND_TASK = "on_demand_sync"


class UniquePolicy(str, Enum):
    """What to do when a task with the same name is already scheduled."""

    KEEP = "keep"
    REPLACE = "replace"


@dataclass
class TaskConstraints:
    """Conditions that must hold before a task may run."""

    requires_network: bool = True
    requires_idle: bool = False


@dataclass
class ScheduledTask:
    """A pending unit of work. Periodic tasks have an ``interval``."""

    name: str
    due_at: float
    constraints: TaskConstraints = field(default_factory=TaskConstraints)
    interval: Optional[float] = None
    attempts: int = 0
    suspended: bool = False

    @property
    def is_periodic(self) -> bool:
        return self.interval is not None


class SyncScheduler:
    """
    Runs the sync job when scheduled tasks come due and their constraints hold.

    All due tasks are served by a single job run. On RETRY a task is retried
    after ``backoff_base * 2**attempts`` seconds, capped at ``backoff_max``.
    SUCCESS resets the backoff. FAILURE drops one-shot tasks and suspends
    periodic ones until the next explicit ``request_sync``.
    """

    def __init__(
        self,
        job: Callable[[], SyncOutcome],
        *,
        network_available: Callable[[], bool] = lambda: True,
        is_idle: Callable[[], bool] = lambda: True,
        backoff_base: float = 30.0,
        backoff_max: float = 1800.0,
        poll_interval: float = 5.0,
        request_delay: float = 5.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self._job = job
        self._network_available = network_available
        self._is_idle = is_idle
        self.backoff_base = backoff_base
        self.backoff_max = backoff_max
        self.poll_interval = poll_interval
        self.request_delay = request_delay
        self._clock = clock
        self._tasks: dict[str, ScheduledTask] = {}
        self._lock = threading.Lock()
        self._wakeup = threading.Event()
        self._stopped = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_outcome: Optional[SyncOutcome] = None

    # ------------------------------------------------------------------
    # Scheduling
    # ------------------------------------------------------------------

    def schedule_periodic(
        self,
        interval: float,
        constraints: Optional[TaskConstraints] = None,
        *,
        name: str = PERIODIC_TASK,
        policy: UniquePolicy = UniquePolicy.KEEP,
        run_now: bool = False,
    ) -> bool:
        """
        Schedule a recurring task.

        Returns:
            True if the task was scheduled, False if an existing one was kept.
        """
        due_at = self._clock() if run_now else self._clock() + interval
        task = ScheduledTask(
            name=name,
            due_at=due_at,
            constraints=constraints or TaskConstraints(requires_network=True, requires_idle=True),
            interval=interval,
        )
        return self._enqueue(task, policy)

    def request_sync(
        self,
        delay: Optional[float] = None,
        constraints: Optional[TaskConstraints] = None,
        *,
        name: str = ON_DEMAND_TASK,
        policy: UniquePolicy = UniquePolicy.REPLACE,
    ) -> bool:
        """
        Request a one-shot sync after ``delay`` seconds (``request_delay`` if None).

        A queued request that has not started yet is replaced, so rapid edits
        collapse into a single run. Suspended periodic tasks resume.
        """
        if delay is None:
            delay = self.request_delay
        task = ScheduledTask(
            name=name,
            due_at=self._clock() + delay,
            constraints=constraints or TaskConstraints(requires_network=True),
        )
        with self._lock:
            for existing in self._tasks.values():
                if existing.suspended:
                    existing.suspended = False
                    existing.attempts = 0
                    existing.due_at = self._clock() + (existing.interval or 0.0)
        return self._enqueue(task, policy)

    def pending(self) -> list[ScheduledTask]:
        """Scheduled tasks ordered by due time."""
        with self._lock:
            return sorted(self._tasks.values(), key=lambda task: task.due_at)

    def _enqueue(self, task: ScheduledTask, policy: UniquePolicy) -> bool:
        with self._lock:
            if task.name in self._tasks and policy == UniquePolicy.KEEP:
                logger.debug("Task %s already scheduled, keeping it", task.name)
                return False
            self._tasks[task.name] = task
        logger.debug("Scheduled %s in %.1fs", task.name, max(task.due_at - self._clock(), 0.0))
        self._wakeup.set()
        return True

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------

    def _constraints_met(self, constraints: TaskConstraints) -> bool:
        if constraints.requires_network and not self._network_available():
            return False
        if constraints.requires_idle and not self._is_idle():
            return False
        return True

    def backoff_delay(self, attempts: int) -> float:
        return min(self.backoff_base * (2**attempts), self.backoff_max)

    def run_pending(self) -> Optional[SyncOutcome]:
        """
        Run the job once if any task is due and runnable.

        Returns:
            The job outcome, or None if nothing ran.
        """
        now = self._clock()
        with self._lock:
            due = [task for task in self._tasks.values() if not task.suspended and task.due_at <= now]
        runnable = [task for task in due if self._constraints_met(task.constraints)]
        if not runnable:
            return None

        logger.info("Running sync for %s", ", ".join(task.name for task in runnable))
        try:
            outcome = self._job()
        except Exception:
            # Keep the worker alive; back off as for a recoverable error
            logger.exception("Sync job crashed")
            outcome = SyncOutcome.RETRY
        self.last_outcome = outcome
        finished = self._clock()

        with self._lock:
            for task in runnable:
                if self._tasks.get(task.name) is not task:
                    # Replaced while the job was running
                    continue
                self._apply_outcome(task, outcome, finished)
        return outcome

    def _apply_outcome(self, task: ScheduledTask, outcome: SyncOutcome, now: float) -> None:
        if outcome == SyncOutcome.SUCCESS:
            task.attempts = 0
            if task.is_periodic:
                task.due_at = now + task.interval
            else:
                del self._tasks[task.name]
        elif outcome == SyncOutcome.RETRY:
            delay = self.backoff_delay(task.attempts)
            task.attempts += 1
            task.due_at = now + delay
            logger.info("Sync will be retried in %.0fs (attempt %d)", delay, task.attempts)
        else:
            if task.is_periodic:
                task.suspended = True
                logger.error("Sync failed, periodic task %s suspended", task.name)
            else:
                del self._tasks[task.name]
                logger.error("Sync failed, task %s dropped", task.name)

    def _seconds_until_next(self) -> float:
        now = self._clock()
        with self._lock:
            upcoming = [task.due_at - now for task in self._tasks.values() if not task.suspended and task.due_at > now]
        if not upcoming:
            return self.poll_interval
        return min(min(upcoming), self.poll_interval)

    # ------------------------------------------------------------------
    # Worker thread
    # ------------------------------------------------------------------

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stopped.clear()
        self._thread = threading.Thread(target=self._loop, name="finsync-scheduler", daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the worker. A run in progress finishes; nothing else starts."""
        self._stopped.set()
        self._wakeup.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until stopped or ``timeout`` elapses. True if stopped."""
        return self._stopped.wait(timeout)

    def _loop(self) -> None:
        while not self._stopped.is_set():
            self.run_pending()
            if self._stopped.is_set():
                break
            self._wakeup.wait(self._seconds_until_next())
            self._wakeup.clear()
