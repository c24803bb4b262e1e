"""Project workflow: employee assignment, approval, progress updates and reports."""

import calendar
from datetime import date
from decimal import Decimal
from typing import Any, Iterable, List, Optional

from autoshop.schemas.project import ProjectProgress, ProjectRead
from autoshop.schemas.project_update import (
    ProjectUpdateCreate,
    ProjectUpdateRead,
    TaskProgressEntry,
)
from autoshop.utils.logging import WorkflowLogger, get_logger
from autoshop.workflow.assignment import RequiresChoice, dedupe_ids, resolve_main_representative
from autoshop.workflow.display import vehicle_label
from autoshop.workflow.enums import (
    ACCEPTED_TASK_STATUSES,
    AppointmentStatus,
    ProjectStatus,
    ProjectUpdateType,
)
from autoshop.workflow.errors import (
    AuthorizationError,
    InvalidStateError,
    MainRepresentativeRequired,
    ValidationError,
    workflow_operation,
)
from autoshop.workflow.policy import (
    Action,
    EntityType,
    TransitionContext,
    TransitionDecision,
    Violation,
    can_transition,
    is_pending_project,
    is_terminal,
)
from autoshop.workflow.reports import REPORT_DELIMITER, Report, attach_report, build_report
from autoshop.workflow.repository import ShopRepository


def add_one_month(value: date) -> date:
    year, month = (value.year + 1, 1) if value.month == 12 else (value.year, value.month + 1)
    day = min(value.day, calendar.monthrange(year, month)[1])
    return date(year, month, day)


def overall_percentage(task_progress: Iterable[TaskProgressEntry]) -> Optional[float]:
    """Mean of the per-task percentages; None when no task was reported."""
    percentages = [entry.percentage for entry in task_progress]
    if not percentages:
        return None
    return round(sum(percentages) / len(percentages), 2)


class ProjectWorkflow:
    """Orchestrates project status changes, assignment and reporting."""

    def __init__(self, repository: ShopRepository):
        self.repository = repository
        self.logger = get_logger("workflow.projects")

    async def _accepted_service_count(self, project: ProjectRead) -> int:
        if not project.task_ids:
            return 0
        tasks = await self.repository.list_tasks(project.task_ids)
        return sum(1 for task in tasks if task.status in ACCEPTED_TASK_STATUSES)

    async def _decide(self, project: ProjectRead, target: ProjectStatus, action: Action) -> TransitionDecision:
        accepted = 0
        if target is ProjectStatus.CANCELLED:
            accepted = await self._accepted_service_count(project)
        context = TransitionContext(
            action=action,
            assigned_employee_count=len(project.assigned_employee_ids),
            accepted_service_count=accepted,
        )
        return can_transition(EntityType.PROJECT, project.status, target, context)

    async def _authorize(self, project: ProjectRead, target: ProjectStatus, action: Action) -> ProjectRead:
        decision = await self._decide(project, target, action)
        if not decision.allowed and decision.violation is Violation.STATE:
            # Re-read once in case our copy is stale
            project = await self.repository.get_project(project.id)
            decision = await self._decide(project, target, action)

        if decision.allowed:
            return project
        error_cls = ValidationError if decision.violation is Violation.PRECONDITION else InvalidStateError
        raise error_cls(
            decision.reason,
            project_id=project.id,
            current_status=project.status.value,
            target_status=target.value,
        )

    async def _transition(self, project_id: int, target: ProjectStatus, action: Action) -> ProjectRead:
        project = await self.repository.get_project(project_id)
        project = await self._authorize(project, target, action)
        updated = await self.repository.set_project_status(project_id, target.value)
        WorkflowLogger("project", project_id).transition(project.status.value, target.value, action.value)
        return updated

    @staticmethod
    def _check_main_representative(project: ProjectRead, employee_id: int) -> None:
        if project.main_representative_employee_id != employee_id:
            raise AuthorizationError(
                "only the main representative can do this",
                project_id=project.id,
                employee_id=employee_id,
            )

    @staticmethod
    def _check_owner(project: ProjectRead, customer_id: int) -> None:
        if project.customer_id != customer_id:
            raise AuthorizationError("project belongs to another customer", project_id=project.id)

    # ---------------- CREATION ----------------

    @workflow_operation("project_created")
    async def create_from_appointment(
        self,
        customer_id: int,
        appointment_id: int,
        task_ids: List[int],
        name: Optional[str] = None,
        description: str = "",
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
    ) -> ProjectRead:
        appointment = await self.repository.get_appointment(appointment_id)
        if appointment.customer_id != customer_id:
            raise AuthorizationError(
                "appointment belongs to another customer", appointment_id=appointment_id
            )
        if appointment.status is not AppointmentStatus.COMPLETED:
            raise InvalidStateError(
                "a project can only be created from a completed consultation",
                appointment_id=appointment_id,
                current_status=appointment.status.value,
            )

        selected = list(dedupe_ids(task_ids or []))
        if not selected:
            raise ValidationError("select at least one service")
        known = {task.task_id for task in await self.repository.list_tasks(selected)}
        missing = [task_id for task_id in selected if task_id not in known]
        if missing:
            raise ValidationError("unknown services selected", task_ids=missing)

        start_date = start_date or date.today()
        end_date = end_date or add_one_month(start_date)
        if end_date < start_date:
            raise ValidationError("end date must not be before start date")
        if REPORT_DELIMITER in (description or ""):
            # Text after the delimiter is read as the completion report
            raise ValidationError(f"description must not contain '{REPORT_DELIMITER}'")

        name = (name or "").strip() or (
            f"{appointment.consultation_type.label} - {vehicle_label(appointment.vehicle_id)}"
        )
        return await self.repository.create_project(
            {
                "name": name,
                "description": description or "",
                "status": ProjectStatus.CREATED.value,
                "start_date": start_date,
                "end_date": end_date,
                "customer_id": customer_id,
                "vehicle_id": appointment.vehicle_id,
                "appointment_id": appointment_id,
                "task_ids": selected,
                "assigned_employee_ids": [],
                "main_representative_employee_id": None,
            }
        )

    # ---------------- ASSIGNMENT ----------------

    @workflow_operation("project_employees_assigned")
    async def assign_employees(
        self,
        project_id: int,
        employee_ids: List[int],
        main_rep_id: Optional[int] = None,
    ) -> ProjectRead:
        project = await self.repository.get_project(project_id)
        if is_terminal(EntityType.PROJECT, project.status):
            project = await self.repository.get_project(project_id)
            if is_terminal(EntityType.PROJECT, project.status):
                raise InvalidStateError(
                    f"project is already {project.status.value}",
                    project_id=project_id,
                    current_status=project.status.value,
                )

        resolved = resolve_main_representative(
            employee_ids,
            explicit_choice=main_rep_id,
            previous_main_rep=project.main_representative_employee_id,
        )
        if isinstance(resolved, RequiresChoice):
            raise MainRepresentativeRequired(resolved)

        return await self.repository.patch_project(
            project_id,
            {
                "assigned_employee_ids": list(dedupe_ids(employee_ids)),
                "main_representative_employee_id": resolved,
            },
        )

    # ---------------- STATUS ----------------

    @workflow_operation("project_approved")
    async def approve(self, project_id: int) -> ProjectRead:
        project = await self.repository.get_project(project_id)
        if not project.assigned_employee_ids:
            raise ValidationError("at least one employee must be assigned", project_id=project_id)
        return await self._transition(project_id, ProjectStatus.IN_PROGRESS, Action.APPROVE)

    @workflow_operation("project_rejected")
    async def reject(self, project_id: int) -> ProjectRead:
        return await self._transition(project_id, ProjectStatus.CANCELLED, Action.REJECT)

    @workflow_operation("project_cancelled")
    async def cancel(self, project_id: int, customer_id: int) -> ProjectRead:
        project = await self.repository.get_project(project_id)
        self._check_owner(project, customer_id)
        return await self._transition(project_id, ProjectStatus.CANCELLED, Action.CANCEL)

    @workflow_operation("project_recommended")
    async def recommend(self, project_id: int) -> ProjectRead:
        return await self._transition(project_id, ProjectStatus.RECOMMENDED, Action.RECOMMEND)

    @workflow_operation("project_confirmed")
    async def confirm(self, project_id: int, customer_id: int) -> ProjectRead:
        project = await self.repository.get_project(project_id)
        self._check_owner(project, customer_id)
        return await self._transition(project_id, ProjectStatus.CONFIRMED, Action.CONFIRM)

    # ---------------- UPDATES ----------------

    async def _post_update(
        self,
        project_id: int,
        employee_id: int,
        update: ProjectUpdateCreate,
    ) -> ProjectUpdateRead:
        project = await self.repository.get_project(project_id)
        self._check_main_representative(project, employee_id)

        completing = update.update_type is ProjectUpdateType.COMPLETION
        if completing:
            project = await self._authorize(project, ProjectStatus.COMPLETED, Action.COMPLETE)
        elif project.status is not ProjectStatus.IN_PROGRESS:
            project = await self.repository.get_project(project_id)
            if project.status is not ProjectStatus.IN_PROGRESS:
                raise InvalidStateError(
                    "updates can only be posted while the project is in progress",
                    project_id=project_id,
                    current_status=project.status.value,
                )

        message = (update.message or "").strip()
        if not message:
            raise ValidationError("update message is required", project_id=project_id)

        for entry in update.task_progress:
            if not 0 <= entry.percentage <= 100:
                raise ValidationError(
                    "progress percentage must be between 0 and 100", task_id=entry.task_id
                )
            if entry.task_id not in project.task_ids:
                raise ValidationError("task is not part of this project", task_id=entry.task_id)

        if update.update_type is ProjectUpdateType.COST_CHANGE and not (
            update.additional_cost is not None and update.additional_cost > 0
        ):
            raise ValidationError("a cost change needs a positive additional cost", project_id=project_id)
        if update.update_type is ProjectUpdateType.DELAY and update.estimated_completion_date is None:
            raise ValidationError("a delay needs a new estimated completion date", project_id=project_id)

        created = await self.repository.create_project_update(
            project_id,
            {
                "employee_id": employee_id,
                "message": message,
                "update_type": update.update_type.value,
                "additional_cost": update.additional_cost,
                "additional_cost_reason": update.additional_cost_reason,
                "estimated_completion_date": update.estimated_completion_date,
                "task_progress": [entry.model_dump() for entry in update.task_progress],
                "overall_percentage": overall_percentage(update.task_progress),
            },
            complete_project=completing,
        )
        if completing:
            WorkflowLogger("project", project_id).transition(
                project.status.value, ProjectStatus.COMPLETED.value, Action.COMPLETE.value
            )
        return created

    @workflow_operation("project_update_posted")
    async def post_update(
        self,
        project_id: int,
        employee_id: int,
        update: ProjectUpdateCreate,
    ) -> ProjectUpdateRead:
        return await self._post_update(project_id, employee_id, update)

    @workflow_operation("project_completed")
    async def mark_completed(
        self,
        project_id: int,
        employee_id: int,
        completion_message: Optional[str],
        task_progress: Optional[List[TaskProgressEntry]] = None,
    ) -> ProjectUpdateRead:
        if not completion_message or not completion_message.strip():
            raise ValidationError("a completion message is required", project_id=project_id)
        update = ProjectUpdateCreate(
            message=completion_message,
            update_type=ProjectUpdateType.COMPLETION,
            task_progress=task_progress or [],
        )
        return await self._post_update(project_id, employee_id, update)

    @workflow_operation("project_progress_read")
    async def progress(self, project_id: int) -> ProjectProgress:
        await self.repository.get_project(project_id)
        updates = await self.repository.list_project_updates(project_id)

        latest = None
        for update in reversed(updates):
            if update.overall_percentage is not None:
                latest = update.overall_percentage
                break
        return ProjectProgress(
            project_id=project_id,
            overall_percentage=latest,
            total_additional_cost=sum(
                (update.additional_cost or Decimal("0") for update in updates), Decimal("0")
            ),
            update_count=len(updates),
        )

    # ---------------- REPORTS ----------------

    @workflow_operation("project_report_submitted")
    async def submit_report(
        self,
        project_id: int,
        employee_id: int,
        task_ids: List[int],
        extra_charges: Optional[Iterable[Any]] = None,
        notes: Optional[str] = None,
        submitted_by: Optional[str] = None,
    ) -> Report:
        project = await self.repository.get_project(project_id)
        self._check_main_representative(project, employee_id)
        if project.status is ProjectStatus.CANCELLED:
            raise InvalidStateError("project was cancelled", project_id=project_id)

        outside = [task_id for task_id in task_ids or [] if task_id not in project.task_ids]
        if outside:
            raise ValidationError("services are not part of this project", task_ids=outside)

        tasks = await self.repository.list_tasks(project.task_ids)
        report = build_report(
            task_ids or [],
            tasks,
            extra_charges,
            notes=notes,
            submitted_by=submitted_by or f"Employee #{employee_id}",
        )
        await self.repository.patch_project(
            project_id, {"description": attach_report(project.description, report.to_text())}
        )
        return report

    # ---------------- QUERIES ----------------

    async def list_projects(self, pending: Optional[bool] = None, **filters: Any) -> List[ProjectRead]:
        projects = await self.repository.list_projects(**filters)
        if pending is None:
            return projects
        return [project for project in projects if is_pending_project(project) == pending]
