"""Workflow error taxonomy and the Result returned by workflow operations."""

from dataclasses import dataclass, field
from enum import Enum
from functools import wraps
from typing import Any, Awaitable, Callable, Dict, Generic, Optional, TypeVar

from autoshop.utils.logging import get_logger

T = TypeVar("T")

logger = get_logger("workflow.errors")


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    INVALID_STATE = "invalid_state"
    AUTHORIZATION = "authorization"
    NOT_FOUND = "not_found"
    TRANSPORT = "transport"


class WorkflowError(Exception):
    """Base class for every failure a workflow operation can report."""

    kind: ErrorKind = ErrorKind.VALIDATION

    def __init__(self, message: str, **details: Any):
        super().__init__(message)
        self.message = message
        self.details: Dict[str, Any] = details

    def __str__(self) -> str:
        return self.message

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "message": self.message, **self.details}


class ValidationError(WorkflowError):
    """Missing or malformed input, or a business precondition not met."""
    kind = ErrorKind.VALIDATION


class MainRepresentativeRequired(ValidationError):
    """Several employees were selected and none was chosen as main representative."""

    def __init__(self, choice, message: str = "main representative must be chosen"):
        super().__init__(
            message,
            candidates=list(choice.candidates),
            suggested=choice.suggested,
        )
        self.choice = choice


class InvalidStateError(WorkflowError):
    """The entity's current status does not allow the requested transition."""
    kind = ErrorKind.INVALID_STATE


class AuthorizationError(WorkflowError):
    """The caller is not allowed to perform the operation."""
    kind = ErrorKind.AUTHORIZATION


class NotFoundError(WorkflowError):
    kind = ErrorKind.NOT_FOUND


class TransportError(WorkflowError):
    """The service-of-record could not be reached or failed."""
    kind = ErrorKind.TRANSPORT

    def __init__(self, message: str, status_code: Optional[int] = None, **details: Any):
        super().__init__(message, status_code=status_code, **details)
        self.status_code = status_code


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a workflow operation: either a value or a WorkflowError."""

    value: Optional[T] = None
    error: Optional[WorkflowError] = field(default=None)

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: T = None) -> "Result[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: WorkflowError) -> "Result[T]":
        return cls(error=error)

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


def workflow_operation(event: str) -> Callable:
    """Run an async workflow method and fold WorkflowError into a Result.

    Success is logged as ``event``; failures as ``{event}_failed``.
    """

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[Result[T]]]:
        @wraps(func)
        async def wrapper(self, *args: Any, **kwargs: Any) -> Result[T]:
            try:
                value = await func(self, *args, **kwargs)
            except WorkflowError as exc:
                self.logger.warning(
                    f"{event}_failed",
                    entity_id=args[0] if args else None,
                    kind=exc.kind.value,
                    error=exc.message,
                    **exc.details,
                )
                return Result.failure(exc)
            self.logger.info(event, entity_id=args[0] if args else None)
            return Result.success(value)

        return wrapper

    return decorator
