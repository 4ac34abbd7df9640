"""
Notification Scheduler

Runs the periodic notification jobs inside the API process:

    Job                  Trigger              Timeout
    -------------------  -------------------  ---------------------------------
    reminder_check       every minute         SCHEDULER_TICK_TIMEOUT_SECONDS
    scheduled_dispatch   every minute         SCHEDULER_TICK_TIMEOUT_SECONDS
    weekly_report        weekly (day, hour)   SCHEDULER_WEEKLY_TIMEOUT_SECONDS

Tick lifecycle:
--------------
1. APScheduler fires the job coroutine on the event loop
2. If the previous tick of the same job is still running, the tick is skipped
3. Otherwise the job's busy flag is set and the work runs under a timeout
4. Errors and timeouts are logged, never raised
5. The busy flag is cleared no matter how the tick ended

The three jobs are independent: only a job overlapping with itself is
prevented. All mutable scheduler state lives in one SchedulerState owned
by the NotificationScheduler instance.

Usage:
------
    scheduler = NotificationScheduler(AsyncSessionLocal, get_connection_manager())
    scheduler.start()
    ...
    await scheduler.shutdown()
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Awaitable, Callable, Dict, Optional, TYPE_CHECKING

from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from trafficrules.core.config import settings
from trafficrules.tasks import notification_tasks

if TYPE_CHECKING:
    from trafficrules.services.websocket_manager import ConnectionManager

logger = logging.getLogger(__name__)

REMINDER_CHECK = "reminder_check"
SCHEDULED_DISPATCH = "scheduled_dispatch"
WEEKLY_REPORT = "weekly_report"

JOB_NAMES = (REMINDER_CHECK, SCHEDULED_DISPATCH, WEEKLY_REPORT)


@dataclass
class SchedulerState:
    """Mutable state of one scheduler instance."""
    running: bool = False
    busy: Dict[str, bool] = field(
        default_factory=lambda: {name: False for name in JOB_NAMES}
    )
    # return value of the last tick of each job that completed
    last_result: Dict[str, object] = field(default_factory=dict)

    def any_busy(self) -> bool:
        return any(self.busy.values())

    def reset(self) -> None:
        self.running = False
        for name in self.busy:
            self.busy[name] = False


class NotificationScheduler:
    """
    Owns the three periodic notification jobs and their guards.

    Args:
        session_factory: async_sessionmaker used by every job
        connection_manager: optional live-push channel for new notifications
        tick_timeout: budget (seconds) for the per-minute jobs
        weekly_timeout: budget (seconds) for the weekly report
    """

    def __init__(
        self,
        session_factory,
        connection_manager: Optional["ConnectionManager"] = None,
        tick_timeout: Optional[float] = None,
        weekly_timeout: Optional[float] = None,
    ):
        self.session_factory = session_factory
        self.connection_manager = connection_manager
        self.tick_timeout = settings.SCHEDULER_TICK_TIMEOUT_SECONDS if tick_timeout is None else tick_timeout
        self.weekly_timeout = settings.SCHEDULER_WEEKLY_TIMEOUT_SECONDS if weekly_timeout is None else weekly_timeout
        self.state = SchedulerState()
        self._scheduler: Optional[AsyncIOScheduler] = None

    @property
    def is_running(self) -> bool:
        return self.state.running

    # ============================================================
    # Lifecycle
    # ============================================================

    def start(self) -> None:
        """
        Schedule the three jobs. Calling start() on a running scheduler
        is a no-op. Must be called from within a running event loop.
        """
        if self.state.running:
            logger.info("Notification scheduler already running")
            return

        scheduler = AsyncIOScheduler()

        # max_instances > 1 so overlapping ticks reach our own guard,
        # which logs and skips them, instead of APScheduler dropping them
        job_defaults = {"coalesce": True, "max_instances": 2, "misfire_grace_time": 30}

        scheduler.add_job(
            self.run_reminder_check,
            CronTrigger(minute="*"),
            id=REMINDER_CHECK,
            name="Study reminder check",
            replace_existing=True,
            **job_defaults,
        )
        scheduler.add_job(
            self.run_scheduled_dispatch,
            CronTrigger(minute="*"),
            id=SCHEDULED_DISPATCH,
            name="Scheduled notification dispatch",
            replace_existing=True,
            **job_defaults,
        )
        scheduler.add_job(
            self.run_weekly_report,
            CronTrigger(
                day_of_week=settings.WEEKLY_REPORT_DAY,
                hour=settings.WEEKLY_REPORT_HOUR,
                minute=0,
            ),
            id=WEEKLY_REPORT,
            name="Weekly study report",
            replace_existing=True,
            **job_defaults,
        )

        scheduler.start()
        self._scheduler = scheduler
        self.state.running = True
        logger.info("Notification scheduler started (%s)", ", ".join(JOB_NAMES))

    def stop(self) -> None:
        """
        Cancel all future ticks. Ticks already running are not interrupted.
        Calling stop() on a stopped scheduler is a no-op.
        """
        if not self.state.running:
            return

        if self._scheduler is not None:
            self._scheduler.shutdown(wait=False)
            self._scheduler = None

        self.state.running = False
        logger.info("Notification scheduler stopped")

    async def shutdown(self, grace_period: Optional[float] = None) -> None:
        """
        stop(), then wait for in-flight ticks to finish (bounded by
        grace_period, default the weekly timeout) to limit lost writes.
        """
        self.stop()

        grace_period = self.weekly_timeout if grace_period is None else grace_period
        loop = asyncio.get_running_loop()
        deadline = loop.time() + grace_period
        while self.state.any_busy() and loop.time() < deadline:
            await asyncio.sleep(0.1)

        if self.state.any_busy():
            busy = [name for name, flag in self.state.busy.items() if flag]
            logger.warning("Scheduler shutdown with ticks still running: %s", ", ".join(busy))
        self.state.reset()

    # ============================================================
    # Guarded Ticks
    # ============================================================

    async def _run_guarded(
        self,
        name: str,
        work: Callable[[], Awaitable[object]],
        timeout: float,
    ) -> bool:
        """
        Run one tick of `name` with overlap and timeout protection.

        Returns:
            True if the work completed, False if skipped, timed out or failed
        """
        if self.state.busy.get(name):
            logger.warning("Previous %s tick still running, skipping this tick", name)
            return False

        self.state.busy[name] = True
        started = datetime.now()
        try:
            self.state.last_result[name] = await asyncio.wait_for(work(), timeout=timeout)
            return True
        except asyncio.TimeoutError:
            logger.error("%s tick timed out after %.1fs and was abandoned", name, timeout)
            return False
        except Exception:
            logger.exception("%s tick failed", name)
            return False
        finally:
            self.state.busy[name] = False
            logger.debug("%s tick finished in %.2fs", name, (datetime.now() - started).total_seconds())

    async def run_reminder_check(self) -> bool:
        return await self._run_guarded(REMINDER_CHECK, self.check_study_reminders, self.tick_timeout)

    async def run_scheduled_dispatch(self) -> bool:
        return await self._run_guarded(SCHEDULED_DISPATCH, self.process_scheduled_notifications, self.tick_timeout)

    async def run_weekly_report(self) -> bool:
        return await self._run_guarded(WEEKLY_REPORT, self.send_weekly_reports, self.weekly_timeout)

    # ============================================================
    # Job Bodies
    # ============================================================

    async def check_study_reminders(self, now: Optional[datetime] = None) -> int:
        """
        Dispatch reminders due this minute. Also usable directly for
        manual "fire now" runs; returns the number processed.
        """
        return await notification_tasks.check_study_reminders(
            self.session_factory,
            now=now,
            connection_manager=self.connection_manager,
        )

    async def process_scheduled_notifications(self, now: Optional[datetime] = None) -> int:
        return await notification_tasks.process_scheduled_notifications(
            self.session_factory,
            now=now,
        )

    async def send_weekly_reports(self, now: Optional[datetime] = None) -> int:
        return await notification_tasks.send_weekly_reports(
            self.session_factory,
            now=now,
            connection_manager=self.connection_manager,
        )


# ============================================================
# Application Instance
# ============================================================

_scheduler: Optional[NotificationScheduler] = None


def get_scheduler() -> NotificationScheduler:
    """The scheduler wired to the application's database and WebSockets."""
    global _scheduler
    if _scheduler is None:
        from trafficrules.db.database import AsyncSessionLocal
        from trafficrules.services.websocket_manager import get_connection_manager

        _scheduler = NotificationScheduler(AsyncSessionLocal, get_connection_manager())
    return _scheduler
