"""
Scheduler Admin Endpoints

Endpoints:
----------
- GET   /admin/scheduler                   - Scheduler status
- POST  /admin/scheduler/check-reminders   - Run the reminder check now
"""

import logging

from fastapi import APIRouter, Depends

from trafficrules.api.deps import get_current_admin_user
from trafficrules.models.user import User
from trafficrules.scheduler import REMINDER_CHECK, NotificationScheduler, get_scheduler

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin/scheduler", tags=["Admin"])


@router.get(
    "",
    summary="Notification scheduler status",
)
async def scheduler_status(
    current_user: User = Depends(get_current_admin_user),
    scheduler: NotificationScheduler = Depends(get_scheduler),
):
    return {
        "running": scheduler.is_running,
        "busy": dict(scheduler.state.busy),
    }


@router.post(
    "/check-reminders",
    summary="Run the study reminder check immediately",
    description="""
    Runs the same guarded tick the scheduler runs every minute.
    Reminders already sent this minute are not sent again.
    `processed` is the number of due reminders the tick handled.
    """,
)
async def check_reminders_now(
    current_user: User = Depends(get_current_admin_user),
    scheduler: NotificationScheduler = Depends(get_scheduler),
):
    logger.info("Manual reminder check requested by %s", current_user.id)
    completed = await scheduler.run_reminder_check()
    processed = scheduler.state.last_result.get(REMINDER_CHECK, 0) if completed else 0
    return {"completed": completed, "processed": processed}
