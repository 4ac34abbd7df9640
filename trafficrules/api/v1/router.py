from fastapi import APIRouter
from trafficrules.api.v1.endpoints import notifications, study_reminders, scheduler, ws

# ============================================================
# Main API v1 Router
# ============================================================

api_router = APIRouter()

api_router.include_router(
    notifications.router,
    prefix=""  # Routes define own prefix (/notifications)
)

api_router.include_router(
    study_reminders.router,
    prefix=""  # Routes define own prefix (/study-reminders)
)

api_router.include_router(
    scheduler.router,
    prefix=""  # Routes define own prefix (/admin/scheduler)
)

api_router.include_router(
    ws.router,
    prefix=""  # /ws/notifications
)
