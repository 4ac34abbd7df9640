import asyncio

from trafficrules.scheduler import (
    JOB_NAMES,
    REMINDER_CHECK,
    SCHEDULED_DISPATCH,
    NotificationScheduler,
)
from trafficrules.tasks import notification_tasks


async def _wait_for(predicate, timeout=2.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        assert loop.time() < deadline, "condition not reached"
        await asyncio.sleep(0.01)


async def test_overlapping_tick_performs_no_queries(session_factory, monkeypatch):
    scheduler = NotificationScheduler(session_factory, tick_timeout=5)
    release = asyncio.Event()
    calls = []

    async def slow_find_due(session_factory, now, limit):
        calls.append(now)
        await release.wait()
        return []

    monkeypatch.setattr(notification_tasks, "find_due_reminders", slow_find_due)

    first = asyncio.create_task(scheduler.run_reminder_check())
    await _wait_for(lambda: len(calls) == 1)
    assert scheduler.state.busy[REMINDER_CHECK] is True

    assert await scheduler.run_reminder_check() is False
    assert len(calls) == 1

    release.set()
    assert await first is True
    assert scheduler.state.busy[REMINDER_CHECK] is False


async def test_timed_out_tick_releases_guard(session_factory, monkeypatch):
    scheduler = NotificationScheduler(session_factory, tick_timeout=0.05)
    cancelled = []

    async def hung_find_due(session_factory, now, limit):
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            cancelled.append(True)
            raise

    monkeypatch.setattr(notification_tasks, "find_due_reminders", hung_find_due)

    assert await scheduler.run_reminder_check() is False
    assert scheduler.state.busy[REMINDER_CHECK] is False
    assert cancelled == [True]

    async def no_reminders(session_factory, now, limit):
        return []

    monkeypatch.setattr(notification_tasks, "find_due_reminders", no_reminders)
    assert await scheduler.run_reminder_check() is True


async def test_tick_errors_are_contained(session_factory, monkeypatch):
    scheduler = NotificationScheduler(session_factory)

    async def broken(session_factory, now, limit):
        raise RuntimeError("database unavailable")

    monkeypatch.setattr(notification_tasks, "find_due_reminders", broken)

    assert await scheduler.run_reminder_check() is False
    assert scheduler.state.busy[REMINDER_CHECK] is False


async def test_jobs_guard_independently(session_factory):
    scheduler = NotificationScheduler(session_factory, tick_timeout=5)
    release = asyncio.Event()

    async def slow_check(now=None):
        await release.wait()
        return 0

    scheduler.check_study_reminders = slow_check

    first = asyncio.create_task(scheduler.run_reminder_check())
    await _wait_for(lambda: scheduler.state.busy[REMINDER_CHECK])

    assert await scheduler.run_scheduled_dispatch() is True
    assert scheduler.state.busy[SCHEDULED_DISPATCH] is False

    release.set()
    assert await first is True


async def test_start_and_stop_are_idempotent(session_factory):
    scheduler = NotificationScheduler(session_factory)

    scheduler.start()
    apscheduler = scheduler._scheduler
    scheduler.start()
    assert scheduler.is_running
    assert scheduler._scheduler is apscheduler
    assert {job.id for job in apscheduler.get_jobs()} == set(JOB_NAMES)

    scheduler.stop()
    scheduler.stop()
    assert not scheduler.is_running
    assert scheduler._scheduler is None

    scheduler.start()
    assert scheduler.is_running
    await scheduler.shutdown(grace_period=0)
    assert not scheduler.is_running


async def test_shutdown_waits_for_running_tick(session_factory):
    scheduler = NotificationScheduler(session_factory, tick_timeout=5)
    release = asyncio.Event()

    async def slow_check(now=None):
        await release.wait()
        return 0

    scheduler.check_study_reminders = slow_check
    scheduler.start()

    tick = asyncio.create_task(scheduler.run_reminder_check())
    await _wait_for(lambda: scheduler.state.busy[REMINDER_CHECK])

    asyncio.get_running_loop().call_later(0.05, release.set)
    await scheduler.shutdown(grace_period=2)

    assert release.is_set()
    assert await tick is True
    assert not scheduler.state.any_busy()
    assert not scheduler.is_running


async def test_zero_timeout_is_kept(session_factory):
    scheduler = NotificationScheduler(session_factory, tick_timeout=0, weekly_timeout=0)
    assert scheduler.tick_timeout == 0
    assert scheduler.weekly_timeout == 0

    async def slow_check(now=None):
        await asyncio.sleep(1)
        return 0

    scheduler.check_study_reminders = slow_check
    assert await scheduler.run_reminder_check() is False
    assert scheduler.state.busy[REMINDER_CHECK] is False
    assert REMINDER_CHECK not in scheduler.state.last_result


async def test_completed_tick_records_its_result(session_factory):
    scheduler = NotificationScheduler(session_factory, tick_timeout=5)

    async def check(now=None):
        return 3

    scheduler.check_study_reminders = check
    assert await scheduler.run_reminder_check() is True
    assert scheduler.state.last_result[REMINDER_CHECK] == 3
