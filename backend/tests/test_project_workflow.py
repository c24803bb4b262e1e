from datetime import date
from decimal import Decimal

import pytest

from autoshop.schemas.project_update import ProjectUpdateCreate, TaskProgressEntry
from autoshop.workflow.enums import ProjectStatus, ProjectUpdateType, TaskStatus
from autoshop.workflow.errors import (
    AuthorizationError,
    InvalidStateError,
    MainRepresentativeRequired,
    ValidationError,
)
from autoshop.workflow.projects import ProjectWorkflow, add_one_month, overall_percentage
from autoshop.workflow.reports import REPORT_DELIMITER, parse_report


@pytest.fixture
def workflow(repository):
    return ProjectWorkflow(repository)


@pytest.fixture
def running_project(repository):
    repository.add_task(1, "Oil change", estimated_cost="100", estimated_hours="2")
    repository.add_task(2, "Brake pads", estimated_cost="50", estimated_hours="1")
    return repository.add_project(
        20,
        status="IN_PROGRESS",
        description="Full service",
        task_ids=[1, 2],
        assigned_employee_ids=[3, 7],
        main_representative_employee_id=3,
    )


# ---------------- ASSIGNMENT AND APPROVAL ----------------


@pytest.mark.asyncio
async def test_approve_without_employees_stays_created(repository, workflow):
    repository.add_project(9, status="CREATED", assigned_employee_ids=[])

    result = await workflow.approve(9)

    assert isinstance(result.error, ValidationError)
    assert result.error.message == "at least one employee must be assigned"
    assert repository.projects[9]["status"] == "CREATED"
    assert repository.writes == []


@pytest.mark.asyncio
async def test_approve_with_employees_starts_work(repository, workflow):
    repository.add_project(9, status="CONFIRMED", assigned_employee_ids=[3], main_representative_employee_id=3)

    result = await workflow.approve(9)

    assert result.value.status is ProjectStatus.IN_PROGRESS
    assert repository.writes == [("set_project_status", 9, {"status": "IN_PROGRESS"})]


@pytest.mark.asyncio
async def test_several_employees_without_main_rep_need_a_choice(repository, workflow):
    repository.add_project(9)

    result = await workflow.assign_employees(9, [3, 7])

    assert isinstance(result.error, MainRepresentativeRequired)
    assert result.error.choice.candidates == (3, 7)
    assert result.error.details == {"candidates": [3, 7], "suggested": 3}
    assert repository.writes == []


@pytest.mark.asyncio
async def test_assign_employees_stores_list_and_main_rep_together(repository, workflow):
    repository.add_project(9)

    result = await workflow.assign_employees(9, [3, 7, 3], main_rep_id=7)

    assert result.value.assigned_employee_ids == [3, 7]
    assert result.value.main_representative_employee_id == 7
    assert repository.writes == [
        ("patch_project", 9, {"assigned_employee_ids": [3, 7], "main_representative_employee_id": 7})
    ]


@pytest.mark.asyncio
async def test_reassignment_keeps_previous_main_rep(repository, workflow):
    repository.add_project(9, assigned_employee_ids=[3], main_representative_employee_id=3)

    result = await workflow.assign_employees(9, [5, 3])

    assert result.value.main_representative_employee_id == 3


@pytest.mark.asyncio
async def test_terminal_project_cannot_be_reassigned(repository, workflow):
    repository.add_project(9, status="COMPLETED", assigned_employee_ids=[3], main_representative_employee_id=3)

    result = await workflow.assign_employees(9, [4])

    assert isinstance(result.error, InvalidStateError)
    assert repository.writes == []


# ---------------- CANCELLATION ----------------


@pytest.mark.asyncio
async def test_project_with_accepted_service_cannot_be_cancelled(repository, workflow):
    repository.add_task(1, status=TaskStatus.ACCEPTED)
    repository.add_task(2, status=TaskStatus.RECOMMENDED)
    repository.add_project(30, status="CONFIRMED", customer_id=1, task_ids=[1, 2])

    cancelled = await workflow.cancel(30, customer_id=1)
    rejected = await workflow.reject(30)

    for result in (cancelled, rejected):
        assert isinstance(result.error, InvalidStateError)
        assert result.error.message == "services already accepted"
    assert repository.projects[30]["status"] == "CONFIRMED"


@pytest.mark.asyncio
async def test_project_without_accepted_services_can_be_rejected(repository, workflow):
    repository.add_task(2, status=TaskStatus.RECOMMENDED)
    repository.add_project(31, status="RECOMMENDED", task_ids=[2])

    result = await workflow.reject(31)

    assert result.value.status is ProjectStatus.CANCELLED


@pytest.mark.asyncio
async def test_only_owner_cancels(repository, workflow):
    repository.add_project(32, customer_id=1)
    result = await workflow.cancel(32, customer_id=2)
    assert isinstance(result.error, AuthorizationError)


@pytest.mark.asyncio
async def test_recommend_then_confirm(repository, workflow):
    repository.add_project(33, customer_id=1)

    assert (await workflow.recommend(33)).value.status is ProjectStatus.RECOMMENDED
    assert (await workflow.confirm(33, customer_id=1)).value.status is ProjectStatus.CONFIRMED
    assert isinstance((await workflow.recommend(33)).error, InvalidStateError)


# ---------------- CREATION ----------------


@pytest.mark.asyncio
async def test_create_from_completed_consultation(repository, workflow):
    repository.add_appointment(4, customer_id=1, status="COMPLETED", consultation_type="SAFETY_CONCERN")
    repository.add_task(1)
    repository.add_task(2)

    result = await workflow.create_from_appointment(
        customer_id=1, appointment_id=4, task_ids=[2, 1, 2], start_date=date(2026, 1, 31)
    )

    project = result.value
    assert project.status is ProjectStatus.CREATED
    assert project.name == "Safety Concern - Vehicle #11"
    assert project.task_ids == [2, 1]
    assert project.end_date == date(2026, 2, 28)
    assert project.assigned_employee_ids == []


@pytest.mark.asyncio
async def test_create_requires_completed_own_consultation_and_known_services(repository, workflow):
    repository.add_appointment(4, customer_id=1, status="IN_PROGRESS")
    repository.add_appointment(5, customer_id=1, status="COMPLETED")
    repository.add_task(1)

    not_done = await workflow.create_from_appointment(1, 4, [1])
    other_customer = await workflow.create_from_appointment(2, 5, [1])
    no_services = await workflow.create_from_appointment(1, 5, [])
    unknown = await workflow.create_from_appointment(1, 5, [1, 99])

    assert isinstance(not_done.error, InvalidStateError)
    assert isinstance(other_customer.error, AuthorizationError)
    assert isinstance(no_services.error, ValidationError)
    assert unknown.error.details["task_ids"] == [99]
    assert repository.projects == {}


@pytest.mark.asyncio
async def test_description_cannot_carry_a_report_block(repository, workflow):
    repository.add_appointment(5, customer_id=1, status="COMPLETED")
    repository.add_task(1)

    result = await workflow.create_from_appointment(
        1, 5, [1], description="Noise at speed\n--- Project Report ---\nSubmitted by: me"
    )

    assert isinstance(result.error, ValidationError)
    assert repository.projects == {}


def test_add_one_month_clamps_day():
    assert add_one_month(date(2026, 1, 31)) == date(2026, 2, 28)
    assert add_one_month(date(2026, 12, 15)) == date(2027, 1, 15)


# ---------------- UPDATES ----------------


@pytest.mark.asyncio
async def test_only_main_rep_posts_updates(repository, workflow, running_project):
    update = ProjectUpdateCreate(message="Parts ordered")

    result = await workflow.post_update(20, 7, update)

    assert isinstance(result.error, AuthorizationError)
    assert repository.updates == []


@pytest.mark.asyncio
async def test_updates_need_a_running_project(repository, workflow, running_project):
    repository.projects[20]["status"] = "CONFIRMED"

    result = await workflow.post_update(20, 3, ProjectUpdateCreate(message="Parts ordered"))

    assert isinstance(result.error, InvalidStateError)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "update",
    [
        ProjectUpdateCreate(message="   "),
        ProjectUpdateCreate(message="x", task_progress=[TaskProgressEntry(task_id=1, percentage=120)]),
        ProjectUpdateCreate(message="x", task_progress=[TaskProgressEntry(task_id=99, percentage=10)]),
        ProjectUpdateCreate(message="x", update_type=ProjectUpdateType.COST_CHANGE),
        ProjectUpdateCreate(
            message="x", update_type=ProjectUpdateType.COST_CHANGE, additional_cost=Decimal("-5")
        ),
        ProjectUpdateCreate(message="x", update_type=ProjectUpdateType.DELAY),
    ],
)
async def test_invalid_updates_are_rejected(repository, workflow, running_project, update):
    result = await workflow.post_update(20, 3, update)

    assert isinstance(result.error, ValidationError)
    assert repository.updates == []


@pytest.mark.asyncio
async def test_progress_update_records_mean_percentage(repository, workflow, running_project):
    update = ProjectUpdateCreate(
        message="Halfway",
        update_type=ProjectUpdateType.PROGRESS,
        task_progress=[
            TaskProgressEntry(task_id=1, completed=True, percentage=100),
            TaskProgressEntry(task_id=2, percentage=25),
        ],
    )

    result = await workflow.post_update(20, 3, update)

    assert result.value.overall_percentage == 62.5
    assert repository.projects[20]["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_completion_update_and_status_are_one_write(repository, workflow, running_project):
    result = await workflow.mark_completed(
        20, 3, "All done", task_progress=[TaskProgressEntry(task_id=1, completed=True, percentage=100)]
    )

    assert result.ok
    assert result.value.update_type is ProjectUpdateType.COMPLETION
    assert repository.projects[20]["status"] == "COMPLETED"
    assert [write[0] for write in repository.writes] == ["create_project_update"]
    assert repository.writes[0][3] is True


@pytest.mark.asyncio
async def test_completion_needs_message(repository, workflow, running_project):
    result = await workflow.mark_completed(20, 3, "")
    assert isinstance(result.error, ValidationError)
    assert repository.projects[20]["status"] == "IN_PROGRESS"


@pytest.mark.asyncio
async def test_progress_summary_uses_latest_percentage(repository, workflow, running_project):
    await workflow.post_update(
        20,
        3,
        ProjectUpdateCreate(message="a", task_progress=[TaskProgressEntry(task_id=1, percentage=40)]),
    )
    await workflow.post_update(
        20,
        3,
        ProjectUpdateCreate(
            message="b",
            update_type=ProjectUpdateType.COST_CHANGE,
            additional_cost=Decimal("35.50"),
            additional_cost_reason="Extra bolts",
        ),
    )

    progress = (await workflow.progress(20)).value

    assert progress.overall_percentage == 40
    assert progress.total_additional_cost == Decimal("35.50")
    assert progress.update_count == 2


def test_overall_percentage_is_none_without_entries():
    assert overall_percentage([]) is None
    assert overall_percentage([TaskProgressEntry(task_id=1, percentage=33.333)]) == 33.33


# ---------------- REPORTS AND QUERIES ----------------


@pytest.mark.asyncio
async def test_submit_report_appends_block_to_description(repository, workflow, running_project):
    result = await workflow.submit_report(
        20,
        3,
        [1, 2],
        extra_charges=[{"description": "part", "amount": "20"}],
        notes="Checked tyres",
        submitted_by="Nimal Perera",
    )

    report = result.value
    assert report.total_cost == Decimal("170")
    description = repository.projects[20]["description"]
    assert description.startswith("Full service\n\n" + REPORT_DELIMITER)
    parsed = parse_report(description)
    assert parsed.submitted_by == "Nimal Perera"
    assert parsed.service_names == ["Oil change", "Brake pads"]
    assert parsed.notes == "Checked tyres"


@pytest.mark.asyncio
async def test_submit_report_rules(repository, workflow, running_project):
    not_rep = await workflow.submit_report(20, 7, [1])
    outside = await workflow.submit_report(20, 3, [1, 5])
    empty = await workflow.submit_report(20, 3, [])
    repository.projects[20]["status"] = "CANCELLED"
    cancelled = await workflow.submit_report(20, 3, [1])

    assert isinstance(not_rep.error, AuthorizationError)
    assert isinstance(outside.error, ValidationError)
    assert isinstance(empty.error, ValidationError)
    assert isinstance(cancelled.error, InvalidStateError)
    assert repository.projects[20]["description"] == "Full service"


@pytest.mark.asyncio
async def test_list_pending_projects(repository, workflow):
    repository.add_project(1, status="CREATED", assigned_employee_ids=[3])
    repository.add_project(2, status="CONFIRMED", assigned_employee_ids=[])
    repository.add_project(3, status="IN_PROGRESS", assigned_employee_ids=[3])

    pending = await workflow.list_projects(pending=True)
    active = await workflow.list_projects(pending=False)

    assert [project.id for project in pending] == [1, 2]
    assert [project.id for project in active] == [3]
    assert len(await workflow.list_projects()) == 3
