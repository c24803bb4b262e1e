"""Allow-list of appointment and project status transitions.

Every status change made by the workflows is decided here. The tables
below are the complete set of permitted moves; anything not listed is
denied. Decisions are pure: no I/O and no clock.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, FrozenSet, Optional, Tuple

from autoshop.workflow.enums import AppointmentStatus, ProjectStatus, TaskStatus


class EntityType(str, Enum):
    APPOINTMENT = "appointment"
    PROJECT = "project"
    TASK = "task"


class Action(str, Enum):
    ASSIGN = "ASSIGN"
    APPROVE = "APPROVE"
    REJECT = "REJECT"
    CANCEL = "CANCEL"
    START = "START"
    COMPLETE = "COMPLETE"
    RECOMMEND = "RECOMMEND"
    CONFIRM = "CONFIRM"
    ACCEPT = "ACCEPT"


class Violation(str, Enum):
    PRECONDITION = "precondition"
    STATE = "state"


@dataclass(frozen=True)
class TransitionContext:
    """Facts about the entity the guards need to decide."""
    action: Action
    assigned_employee_count: int = 0
    accepted_service_count: int = 0
    has_employee: bool = False
    rejection_reason: Optional[str] = None


@dataclass(frozen=True)
class TransitionDecision:
    allowed: bool
    reason: Optional[str] = None
    violation: Optional[Violation] = None

    @classmethod
    def allow(cls) -> "TransitionDecision":
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: str, violation: Violation) -> "TransitionDecision":
        return cls(allowed=False, reason=reason, violation=violation)


@dataclass(frozen=True)
class Guard:
    """Condition a transition must satisfy; ``check`` returns a denial reason or None."""
    name: str
    description: str
    check: Callable[[TransitionContext], Optional[str]]
    violation: Violation = Violation.PRECONDITION


@dataclass(frozen=True)
class Transition:
    from_states: FrozenSet[str]
    to_state: str
    actions: FrozenSet[Action]
    guards: Tuple[Guard, ...] = ()
    # Guards that only apply to some of the actions
    action_guards: Tuple[Tuple[Action, Guard], ...] = ()

    def guards_for(self, action: Action) -> Tuple[Guard, ...]:
        extra = tuple(guard for guard_action, guard in self.action_guards if guard_action == action)
        return self.guards + extra


@dataclass(frozen=True)
class Workflow:
    entity_type: EntityType
    initial_state: str
    states: Tuple[str, ...]
    transitions: Tuple[Transition, ...]
    terminal_states: Tuple[str, ...] = ()


# ---------------- GUARDS ----------------

EMPLOYEE_PRESENT = Guard(
    name="employee_present",
    description="appointment has an assigned employee",
    check=lambda ctx: None if ctx.has_employee else "an employee must be assigned before approval",
)

REJECTION_REASON = Guard(
    name="rejection_reason",
    description="rejection carries a non-empty reason",
    check=lambda ctx: (
        None
        if ctx.rejection_reason and ctx.rejection_reason.strip()
        else "a rejection reason is required"
    ),
)

EMPLOYEES_ASSIGNED = Guard(
    name="employees_assigned",
    description="project has at least one assigned employee",
    check=lambda ctx: (
        None if ctx.assigned_employee_count > 0 else "at least one employee must be assigned"
    ),
)

NO_ACCEPTED_SERVICES = Guard(
    name="no_accepted_services",
    description="none of the project's services has been accepted",
    check=lambda ctx: (
        None if ctx.accepted_service_count == 0 else "services already accepted"
    ),
    violation=Violation.STATE,
)


# ---------------- TABLES ----------------

_A = AppointmentStatus
_P = ProjectStatus

APPOINTMENT_WORKFLOW = Workflow(
    entity_type=EntityType.APPOINTMENT,
    initial_state=_A.PENDING.value,
    states=tuple(s.value for s in AppointmentStatus),
    terminal_states=(_A.COMPLETED.value, _A.CANCELED.value),
    transitions=(
        Transition(
            from_states=frozenset({_A.PENDING.value}),
            to_state=_A.CONFIRMED.value,
            actions=frozenset({Action.ASSIGN, Action.APPROVE}),
            action_guards=((Action.APPROVE, EMPLOYEE_PRESENT),),
        ),
        # Re-assigning a confirmed appointment keeps its status
        Transition(
            from_states=frozenset({_A.CONFIRMED.value}),
            to_state=_A.CONFIRMED.value,
            actions=frozenset({Action.ASSIGN}),
        ),
        Transition(
            from_states=frozenset({_A.CONFIRMED.value}),
            to_state=_A.IN_PROGRESS.value,
            actions=frozenset({Action.START}),
        ),
        Transition(
            from_states=frozenset({_A.IN_PROGRESS.value}),
            to_state=_A.COMPLETED.value,
            actions=frozenset({Action.COMPLETE}),
        ),
        Transition(
            from_states=frozenset({_A.PENDING.value, _A.CONFIRMED.value, _A.IN_PROGRESS.value}),
            to_state=_A.CANCELED.value,
            actions=frozenset({Action.REJECT, Action.CANCEL}),
            action_guards=((Action.REJECT, REJECTION_REASON),),
        ),
    ),
)

PROJECT_WORKFLOW = Workflow(
    entity_type=EntityType.PROJECT,
    initial_state=_P.CREATED.value,
    states=tuple(s.value for s in ProjectStatus),
    terminal_states=(_P.COMPLETED.value, _P.CANCELLED.value),
    transitions=(
        Transition(
            from_states=frozenset({_P.CREATED.value}),
            to_state=_P.RECOMMENDED.value,
            actions=frozenset({Action.RECOMMEND}),
        ),
        Transition(
            from_states=frozenset({_P.CREATED.value, _P.RECOMMENDED.value}),
            to_state=_P.CONFIRMED.value,
            actions=frozenset({Action.CONFIRM}),
        ),
        Transition(
            from_states=frozenset({_P.CREATED.value, _P.RECOMMENDED.value, _P.CONFIRMED.value}),
            to_state=_P.IN_PROGRESS.value,
            actions=frozenset({Action.APPROVE}),
            guards=(EMPLOYEES_ASSIGNED,),
        ),
        Transition(
            from_states=frozenset({_P.IN_PROGRESS.value}),
            to_state=_P.COMPLETED.value,
            actions=frozenset({Action.COMPLETE}),
        ),
        Transition(
            from_states=frozenset(
                {_P.CREATED.value, _P.RECOMMENDED.value, _P.CONFIRMED.value, _P.IN_PROGRESS.value}
            ),
            to_state=_P.CANCELLED.value,
            actions=frozenset({Action.REJECT, Action.CANCEL}),
            guards=(NO_ACCEPTED_SERVICES,),
        ),
    ),
)

_T = TaskStatus
_UNDECIDED = frozenset({_T.REQUESTED.value, _T.RECOMMENDED.value})

# Accepted, started and completed services never move back to an undecided
# status; project cancellation relies on that.
TASK_WORKFLOW = Workflow(
    entity_type=EntityType.TASK,
    initial_state=_T.REQUESTED.value,
    states=tuple(s.value for s in TaskStatus),
    terminal_states=(_T.COMPLETED.value, _T.REJECTED.value, _T.CANCELLED.value),
    transitions=(
        Transition(
            from_states=frozenset({_T.REQUESTED.value}),
            to_state=_T.RECOMMENDED.value,
            actions=frozenset({Action.RECOMMEND}),
        ),
        Transition(from_states=_UNDECIDED, to_state=_T.ACCEPTED.value, actions=frozenset({Action.ACCEPT})),
        Transition(from_states=_UNDECIDED, to_state=_T.REJECTED.value, actions=frozenset({Action.REJECT})),
        Transition(from_states=_UNDECIDED, to_state=_T.CANCELLED.value, actions=frozenset({Action.CANCEL})),
        Transition(
            from_states=frozenset({_T.ACCEPTED.value}),
            to_state=_T.IN_PROGRESS.value,
            actions=frozenset({Action.START}),
        ),
        Transition(
            from_states=frozenset({_T.ACCEPTED.value, _T.IN_PROGRESS.value}),
            to_state=_T.COMPLETED.value,
            actions=frozenset({Action.COMPLETE}),
        ),
    ),
)

# Target task status -> the action that reaches it
TASK_ACTIONS: Dict[str, Action] = {
    _T.RECOMMENDED.value: Action.RECOMMEND,
    _T.ACCEPTED.value: Action.ACCEPT,
    _T.REJECTED.value: Action.REJECT,
    _T.CANCELLED.value: Action.CANCEL,
    _T.IN_PROGRESS.value: Action.START,
    _T.COMPLETED.value: Action.COMPLETE,
}

# Who may take each task action. Customers decide on services; staff do the work.
TASK_ACTION_ROLES: Dict[Action, FrozenSet[str]] = {
    Action.ACCEPT: frozenset({"customer"}),
    Action.REJECT: frozenset({"customer"}),
    Action.RECOMMEND: frozenset({"admin", "employee"}),
    Action.START: frozenset({"admin", "employee"}),
    Action.COMPLETE: frozenset({"admin", "employee"}),
    Action.CANCEL: frozenset({"admin"}),
}

WORKFLOWS: Dict[EntityType, Workflow] = {
    EntityType.APPOINTMENT: APPOINTMENT_WORKFLOW,
    EntityType.PROJECT: PROJECT_WORKFLOW,
    EntityType.TASK: TASK_WORKFLOW,
}


def _value(status) -> str:
    return status.value if isinstance(status, Enum) else str(status)


def can_transition(
    entity_type: EntityType,
    current_status,
    target_status,
    context: TransitionContext,
) -> TransitionDecision:
    """Decide whether ``current_status -> target_status`` is allowed for ``context.action``."""
    workflow = WORKFLOWS[EntityType(entity_type)]
    current = _value(current_status)
    target = _value(target_status)

    if current in workflow.terminal_states:
        return TransitionDecision.deny(
            f"{workflow.entity_type.value} is already {current}", Violation.STATE
        )

    for transition in workflow.transitions:
        if (
            current in transition.from_states
            and transition.to_state == target
            and context.action in transition.actions
        ):
            for guard in transition.guards_for(context.action):
                reason = guard.check(context)
                if reason is not None:
                    return TransitionDecision.deny(reason, guard.violation)
            return TransitionDecision.allow()

    return TransitionDecision.deny(
        f"cannot {context.action.value.lower()} {workflow.entity_type.value} "
        f"from {current} to {target}",
        Violation.STATE,
    )


def is_terminal(entity_type: EntityType, status) -> bool:
    return _value(status) in WORKFLOWS[EntityType(entity_type)].terminal_states


def allowed_targets(entity_type: EntityType, status) -> Dict[str, FrozenSet[Action]]:
    """Target statuses reachable from ``status`` and the actions that reach them."""
    current = _value(status)
    targets: Dict[str, FrozenSet[Action]] = {}
    for transition in WORKFLOWS[EntityType(entity_type)].transitions:
        if current in transition.from_states:
            targets[transition.to_state] = targets.get(transition.to_state, frozenset()) | transition.actions
    return targets


def is_pending_project(project) -> bool:
    """A project still waiting on the shop: just created or nobody assigned."""
    return (
        _value(project.status) == ProjectStatus.CREATED.value
        or len(project.assigned_employee_ids or []) == 0
    )
