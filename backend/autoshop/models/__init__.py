"""SQLAlchemy models. Importing the package registers every table on ``Base.metadata``."""

from autoshop.models.appointment import Appointment
from autoshop.models.audit_log import AuditAction, AuditLog
from autoshop.models.notification import Notification, NotificationType
from autoshop.models.project import Project
from autoshop.models.project_update import ProjectUpdate
from autoshop.models.task import Task
from autoshop.models.time_log import TimeLog
from autoshop.models.user import User, UserRole
from autoshop.models.vehicle import Vehicle

__all__ = [
    "Appointment",
    "AuditAction",
    "AuditLog",
    "Notification",
    "NotificationType",
    "Project",
    "ProjectUpdate",
    "Task",
    "TimeLog",
    "User",
    "UserRole",
    "Vehicle",
]
