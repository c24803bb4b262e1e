"""Time logging: hours worked per entry and the per-project time budget."""

from datetime import datetime
from typing import Iterable

from autoshop.schemas.project import ProjectRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import ProjectTimeLogSummary, TimeLogRead
from autoshop.workflow.errors import ValidationError


def hours_worked(start_time: datetime, end_time: datetime) -> float:
    """Elapsed hours between ``start_time`` and ``end_time``, rounded to 2 decimals."""
    if end_time <= start_time:
        raise ValidationError("end time must be after start time")
    return round((end_time - start_time).total_seconds() / 3600, 2)


def project_time_summary(
    project: ProjectRead,
    tasks: Iterable[TaskRead],
    time_logs: Iterable[TimeLogRead],
) -> ProjectTimeLogSummary:
    """Compare logged hours against the estimates of the project's tasks."""
    task_ids = set(project.task_ids)
    estimated = float(sum(task.estimated_hours for task in tasks if task.task_id in task_ids))
    logged = sum(log.hours_worked for log in time_logs if log.project_id == project.id)

    percentage = (logged / estimated * 100) if estimated > 0 else 0.0
    return ProjectTimeLogSummary(
        project_id=project.id,
        project_name=project.name,
        total_estimated_hours=round(estimated, 2),
        total_logged_hours=round(logged, 2),
        remaining_hours=round(max(estimated - logged, 0.0), 2),
        percentage_used=round(percentage, 1),
        is_over_budget=logged > estimated,
    )
