"""Wire-level enumerations shared by the workflow, the store and the API.

The values are the exact case-sensitive tokens exchanged with the
service-of-record and must not change.
"""

from enum import Enum


class AppointmentStatus(str, Enum):
    """Appointment lifecycle status."""
    PENDING = "PENDING"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELED = "CANCELED"


class ProjectStatus(str, Enum):
    """Project lifecycle status."""
    CREATED = "CREATED"
    RECOMMENDED = "RECOMMENDED"
    CONFIRMED = "CONFIRMED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


class ConsultationType(str, Enum):
    """Why the customer booked the appointment."""
    GENERAL_CHECKUP = "GENERAL_CHECKUP"
    SPECIFIC_ISSUE = "SPECIFIC_ISSUE"
    MAINTENANCE_ADVICE = "MAINTENANCE_ADVICE"
    PERFORMANCE_ISSUE = "PERFORMANCE_ISSUE"
    SAFETY_CONCERN = "SAFETY_CONCERN"
    OTHER = "OTHER"

    @property
    def label(self) -> str:
        return CONSULTATION_TYPE_LABELS[self]


CONSULTATION_TYPE_LABELS = {
    ConsultationType.GENERAL_CHECKUP: "General Vehicle Checkup",
    ConsultationType.SPECIFIC_ISSUE: "Specific Issue Consultation",
    ConsultationType.MAINTENANCE_ADVICE: "Maintenance Advice",
    ConsultationType.PERFORMANCE_ISSUE: "Performance Issue",
    ConsultationType.SAFETY_CONCERN: "Safety Concern",
    ConsultationType.OTHER: "Other Consultation",
}


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class TaskStatus(str, Enum):
    """Service line item status."""
    REQUESTED = "REQUESTED"
    RECOMMENDED = "RECOMMENDED"
    ACCEPTED = "ACCEPTED"
    REJECTED = "REJECTED"
    IN_PROGRESS = "IN_PROGRESS"
    COMPLETED = "COMPLETED"
    CANCELLED = "CANCELLED"


# A task in one of these statuses is a service the customer has accepted.
ACCEPTED_TASK_STATUSES = frozenset(
    {TaskStatus.ACCEPTED, TaskStatus.IN_PROGRESS, TaskStatus.COMPLETED}
)


class ProjectUpdateType(str, Enum):
    PROGRESS = "PROGRESS"
    COST_CHANGE = "COST_CHANGE"
    DELAY = "DELAY"
    COMPLETION = "COMPLETION"
    GENERAL = "GENERAL"
