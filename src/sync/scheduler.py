"""Recurring sync trigger.

The timer is separate from the orchestrator so syncs stay callable on their
own (manual triggers, tests) without anything running in the background.
"""

import asyncio
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from common.env import env
from common.logger import get_logger
from load.store import DataStore

from .orchestrator import InsightSyncResult, LifeLogSyncResult, SyncOrchestrator

logger = get_logger(__name__)


class RecurringTask:
    """Run an async job every `interval` seconds on the running event loop.

    The job never overlaps itself: the next run is scheduled only after the
    previous one finished. Exceptions from the job are logged and the timer
    keeps going.
    """

    def __init__(
        self,
        interval: float,
        job: Callable[[], Awaitable[object]],
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = interval
        self.job = job
        self._sleep = sleep
        self._task: asyncio.Task | None = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> None:
        try:
            await self.job()
        except Exception as e:
            logger.error(f"Scheduled job failed: {e}")
        finally:
            self.runs += 1

    async def _loop(self, immediately: bool) -> None:
        if not immediately:
            await self._sleep(self.interval)
        while True:
            await self.run_once()
            await self._sleep(self.interval)

    def start(self, immediately: bool = True) -> asyncio.Task:
        """Start the timer. Must be called with an event loop running."""
        if self.running:
            raise RuntimeError("RecurringTask is already running")
        self._task = asyncio.get_running_loop().create_task(self._loop(immediately))
        return self._task

    async def stop(self) -> None:
        """Cancel the timer and wait for it to finish."""
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None


@dataclass
class ScheduledRunReport:
    """What one scheduled pass did, per user id."""

    insights: dict[int, InsightSyncResult] = field(default_factory=dict)
    lifelogs: dict[int, LifeLogSyncResult] = field(default_factory=dict)
    failed: list[int] = field(default_factory=list)


class ScheduledSync:
    """Insights sync then life-log sync for every user holding a credential.

    Users are processed serially, which is what keeps two syncs for the same
    user from overlapping. A failure for one user is logged and the pass
    continues with the next.
    """

    def __init__(
        self,
        store: DataStore,
        orchestrator: SyncOrchestrator,
        lifelog_days_back: int | None = None,
    ):
        self.store = store
        self.orchestrator = orchestrator
        self.lifelog_days_back = lifelog_days_back or env.scheduled_lifelog_days_back()

    async def run(self) -> ScheduledRunReport:
        report = ScheduledRunReport()
        user_ids = self.store.get_users_with_credentials()
        logger.info(f"Scheduled sync for [bold]{len(user_ids)}[/bold] user(s)")

        for user_id in user_ids:
            try:
                report.insights[user_id] = await self.orchestrator.sync_insights(user_id)
                report.lifelogs[user_id] = await self.orchestrator.sync_lifelogs(
                    user_id, days_back=self.lifelog_days_back
                )
            except Exception as e:
                report.failed.append(user_id)
                logger.error(f"Scheduled sync failed for user {user_id}: {e}")
        return report

    def as_recurring_task(self, interval_minutes: int | None = None) -> RecurringTask:
        minutes = interval_minutes or env.sync_interval_minutes()
        return RecurringTask(minutes * 60, self.run)
