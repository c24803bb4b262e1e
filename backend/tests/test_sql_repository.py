from datetime import date, datetime, time
from decimal import Decimal

import pytest
from sqlalchemy import select

from autoshop.models.project import Project
from autoshop.models.project_update import ProjectUpdate
from autoshop.models.task import Task
from autoshop.models.user import User, UserRole
from autoshop.models.vehicle import Vehicle
from autoshop.repositories.sql import SqlShopRepository
from autoshop.schemas.project_update import TaskProgressEntry
from autoshop.workflow.appointments import AppointmentWorkflow
from autoshop.workflow.enums import AppointmentStatus, ProjectStatus, TaskStatus
from autoshop.workflow.errors import NotFoundError, ValidationError
from autoshop.workflow.projects import ProjectWorkflow
from autoshop.workflow.repository import ShopRepository


async def _seed(db):
    customer = User(email="c@example.com", hashed_password="x", full_name="Customer", role=UserRole.CUSTOMER.value)
    employee = User(email="e@example.com", hashed_password="x", full_name="Employee", role=UserRole.EMPLOYEE.value)
    db.add_all(
        [
            customer,
            employee,
            Task(name="Oil change", estimated_cost=Decimal("100"), estimated_hours=Decimal("2")),
            Task(name="Brake pads", estimated_cost=Decimal("50"), estimated_hours=Decimal("1")),
        ]
    )
    await db.flush()
    db.add(
        Vehicle(
            id=11,
            customer_id=customer.id,
            vin="1HGCM82633A004352",
            license_plate="CAB-4352",
            make="Honda",
            model="Accord",
            year=2018,
        )
    )
    await db.flush()
    return customer, employee


def test_sql_repository_satisfies_protocol():
    assert isinstance(SqlShopRepository(db=None), ShopRepository)


@pytest.mark.asyncio
async def test_consultation_to_completed_project(session_maker):
    async with session_maker() as db:
        customer, employee = await _seed(db)
        repository = SqlShopRepository(db)
        appointments = AppointmentWorkflow(repository)
        projects = ProjectWorkflow(repository)

        booked = (
            await appointments.book(
                customer_id=customer.id,
                vehicle_id=11,
                consultation_type="GENERAL_CHECKUP",
                appointment_date=date(2026, 3, 2),
                start_time=time(9, 0),
                end_time=time(10, 0),
            )
        ).unwrap()
        assert booked.status is AppointmentStatus.PENDING

        (await appointments.assign_employee(booked.id, employee.id)).unwrap()
        (await appointments.start(booked.id, actor_id=employee.id)).unwrap()
        completed = (await appointments.complete(booked.id, "Needs service", task_ids=[1, 2])).unwrap()
        assert completed.task_ids == [1, 2]

        project = (
            await projects.create_from_appointment(customer.id, booked.id, [1, 2], start_date=date(2026, 3, 3))
        ).unwrap()
        (await projects.assign_employees(project.id, [employee.id])).unwrap()
        started = (await projects.approve(project.id)).unwrap()
        assert started.status is ProjectStatus.IN_PROGRESS
        assert started.main_representative_employee_id == employee.id

        (
            await projects.mark_completed(
                project.id,
                employee.id,
                "All services done",
                task_progress=[TaskProgressEntry(task_id=1, completed=True, percentage=100)],
            )
        ).unwrap()
        await db.commit()

    async with session_maker() as db:
        stored = await db.get(Project, project.id)
        updates = (await db.execute(select(ProjectUpdate))).scalars().all()

        assert stored.status == ProjectStatus.COMPLETED.value
        assert len(updates) == 1
        assert updates[0].overall_percentage == 100
        assert updates[0].task_progress == [{"task_id": 1, "completed": True, "percentage": 100.0}]


@pytest.mark.asyncio
async def test_rollback_discards_partial_work(session_maker):
    async with session_maker() as db:
        customer, _ = await _seed(db)
        repository = SqlShopRepository(db)
        project = await repository.create_project(
            {"name": "p", "status": "IN_PROGRESS", "customer_id": customer.id, "vehicle_id": 11, "task_ids": [1]}
        )
        await db.commit()

    async with session_maker() as db:
        repository = SqlShopRepository(db)
        await repository.create_project_update(
            project.id,
            {"employee_id": 2, "message": "done", "update_type": "COMPLETION", "task_progress": []},
            complete_project=True,
        )
        await db.rollback()

    async with session_maker() as db:
        assert (await db.get(Project, project.id)).status == "IN_PROGRESS"
        assert (await db.execute(select(ProjectUpdate))).scalars().all() == []


@pytest.mark.asyncio
async def test_filters_and_lookups(session_maker):
    async with session_maker() as db:
        customer, employee = await _seed(db)
        repository = SqlShopRepository(db)
        for start in (time(11, 0), time(9, 0)):
            await repository.create_appointment(
                {
                    "customer_id": customer.id,
                    "vehicle_id": 11,
                    "appointment_date": date(2026, 3, 2),
                    "start_time": start,
                    "end_time": time(start.hour + 1, 0),
                    "status": "PENDING",
                }
            )

        listed = await repository.list_appointments(customer_id=customer.id, status=AppointmentStatus.PENDING)
        assert [a.start_time for a in listed] == [time(9, 0), time(11, 0)]
        assert await repository.list_appointments(employee_id=employee.id) == []

        tasks = await repository.list_tasks([2])
        assert [t.name for t in tasks] == ["Brake pads"]
        assert tasks[0].status is TaskStatus.REQUESTED

        log = await repository.create_time_log(
            {
                "employee_id": employee.id,
                "description": "Diagnosis",
                "start_time": datetime(2026, 3, 2, 9, 0),
                "end_time": datetime(2026, 3, 2, 10, 30),
                "hours_worked": 1.5,
                "appointment_id": listed[0].id,
            }
        )
        assert log.log_id is not None
        assert len(await repository.list_time_logs(employee_id=employee.id)) == 1

        with pytest.raises(ValidationError):
            await repository.list_appointments(colour="red")
        with pytest.raises(NotFoundError):
            await repository.get_project(404)

        vehicle = await repository.get_vehicle(11)
        assert (vehicle.customer_id, vehicle.license_plate) == (customer.id, "CAB-4352")
        with pytest.raises(NotFoundError):
            await repository.get_vehicle(404)
