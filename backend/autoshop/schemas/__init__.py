"""Schemas package initialization."""

from autoshop.schemas.appointment import (
    AppointmentAssign,
    AppointmentComplete,
    AppointmentCreate,
    AppointmentListResponse,
    AppointmentRead,
    AppointmentReject,
)
from autoshop.schemas.common import ApiEnvelope, CamelModel
from autoshop.schemas.project import (
    ProjectCreate,
    ProjectEmployeesAssign,
    ProjectListResponse,
    ProjectProgress,
    ProjectRead,
)
from autoshop.schemas.project_update import (
    ProjectCompleteRequest,
    ProjectUpdateCreate,
    ProjectUpdateRead,
    TaskProgressEntry,
)
from autoshop.schemas.report import ExtraCharge, ReportResponse, ReportSubmit, ReportView
from autoshop.schemas.task import TaskCreate, TaskListResponse, TaskRead, TaskStatusUpdate
from autoshop.schemas.time_log import (
    ProjectTimeLogSummary,
    TimeLogCreate,
    TimeLogListResponse,
    TimeLogRead,
)
from autoshop.schemas.vehicle import VehicleCreate, VehicleListResponse, VehicleRead, VehicleUpdate

__all__ = [
    "CamelModel",
    "ApiEnvelope",
    # Appointment
    "AppointmentRead",
    "AppointmentCreate",
    "AppointmentAssign",
    "AppointmentReject",
    "AppointmentComplete",
    "AppointmentListResponse",
    # Project
    "ProjectRead",
    "ProjectCreate",
    "ProjectEmployeesAssign",
    "ProjectListResponse",
    "ProjectProgress",
    "ProjectUpdateCreate",
    "ProjectUpdateRead",
    "ProjectCompleteRequest",
    "TaskProgressEntry",
    # Report
    "ExtraCharge",
    "ReportSubmit",
    "ReportResponse",
    "ReportView",
    # Task
    "TaskRead",
    "TaskCreate",
    "TaskListResponse",
    "TaskStatusUpdate",
    # Time log
    "TimeLogCreate",
    "TimeLogRead",
    "TimeLogListResponse",
    "ProjectTimeLogSummary",
    # Vehicle
    "VehicleRead",
    "VehicleCreate",
    "VehicleUpdate",
    "VehicleListResponse",
]
