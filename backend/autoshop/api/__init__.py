"""Routers mounted by ``autoshop.main``."""

from autoshop.api.admin import router as admin_router
from autoshop.api.appointments import router as appointments_router
from autoshop.api.auth import router as auth_router
from autoshop.api.notifications import router as notifications_router
from autoshop.api.projects import router as projects_router
from autoshop.api.tasks import router as tasks_router
from autoshop.api.time_logs import router as time_logs_router
from autoshop.api.vehicles import router as vehicles_router

__all__ = [
    "auth_router",
    "appointments_router",
    "projects_router",
    "tasks_router",
    "time_logs_router",
    "admin_router",
    "notifications_router",
    "vehicles_router",
]
