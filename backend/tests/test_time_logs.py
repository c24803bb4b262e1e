from datetime import datetime
from decimal import Decimal

import pytest

from autoshop.schemas.project import ProjectRead
from autoshop.schemas.task import TaskRead
from autoshop.schemas.time_log import TimeLogRead
from autoshop.workflow.display import customer_label, employee_label, vehicle_label
from autoshop.workflow.errors import ValidationError
from autoshop.workflow.time_logs import hours_worked, project_time_summary


def _log(log_id, hours, project_id=20):
    return TimeLogRead(
        log_id=log_id,
        employee_id=3,
        description="work",
        start_time=datetime(2026, 3, 2, 9, 0),
        end_time=datetime(2026, 3, 2, 10, 0),
        hours_worked=hours,
        project_id=project_id,
    )


def test_hours_worked_rounds_to_two_places():
    assert hours_worked(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 10, 20)) == 1.33
    assert hours_worked(datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 9, 45)) == 0.75


@pytest.mark.parametrize("end", [datetime(2026, 3, 2, 9, 0), datetime(2026, 3, 2, 8, 0)])
def test_hours_worked_needs_end_after_start(end):
    with pytest.raises(ValidationError):
        hours_worked(datetime(2026, 3, 2, 9, 0), end)


def test_project_summary_compares_logged_against_estimates():
    project = ProjectRead(id=20, name="Service", status="IN_PROGRESS", customer_id=1, vehicle_id=1, task_ids=[1, 2])
    tasks = [
        TaskRead(task_id=1, name="a", estimated_hours=Decimal("2")),
        TaskRead(task_id=2, name="b", estimated_hours=Decimal("1.5")),
        TaskRead(task_id=9, name="other", estimated_hours=Decimal("10")),
    ]

    summary = project_time_summary(project, tasks, [_log(1, 1.5), _log(2, 1.0), _log(3, 8.0, project_id=21)])

    assert summary.total_estimated_hours == 3.5
    assert summary.total_logged_hours == 2.5
    assert summary.remaining_hours == 1.0
    assert summary.percentage_used == 71.4
    assert summary.is_over_budget is False

    over = project_time_summary(project, tasks, [_log(1, 4.0)])
    assert over.is_over_budget is True
    assert over.remaining_hours == 0.0


def test_project_summary_without_estimates():
    project = ProjectRead(id=20, name="Service", status="CREATED", customer_id=1, vehicle_id=1)

    summary = project_time_summary(project, [], [])

    assert summary.percentage_used == 0.0
    assert summary.is_over_budget is False


def test_display_labels_for_missing_records():
    names = {3: "Nimal Perera"}

    assert employee_label(None, names) == "Unassigned"
    assert employee_label(3, None) == "Loading..."
    assert employee_label(3, names) == "Nimal Perera"
    assert employee_label(4, names) == "Unknown employee"
    assert customer_label(5, {}) == "Customer #5"
    assert vehicle_label(None) == "Unknown Vehicle"
    assert vehicle_label(11) == "Vehicle #11"
