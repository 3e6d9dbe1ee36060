"""
Structured exceptions and error responses for Ripple.

Provides consistent error handling across the engine and the API with:
- Custom exception classes
- Schedule warnings that are collected, never raised
- FastAPI exception handlers
"""

from datetime import date
from typing import Any, Dict, Optional, List

from fastapi import Request, status
from fastapi.responses import JSONResponse
from pydantic import BaseModel


# =============================================================================
# Error Response Schema
# =============================================================================

class ErrorDetail(BaseModel):
    """Detail of a single error."""
    loc: Optional[List[str]] = None  # Location of error (e.g., ["body", "due_date"])
    msg: str
    type: str


class ErrorResponse(BaseModel):
    """Structured error response format."""
    error: str  # Error code (e.g., "not_found", "cycle_detected")
    message: str  # Human-readable message
    details: Optional[List[ErrorDetail]] = None


# =============================================================================
# Custom Exceptions
# =============================================================================

class RippleException(Exception):
    """Base exception for all Ripple errors."""

    def __init__(
        self,
        message: str,
        error_code: str = "internal_error",
        status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR,
        details: Optional[List[Dict[str, Any]]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.status_code = status_code
        self.details = details
        super().__init__(message)


class NotFoundError(RippleException):
    """Resource not found."""

    def __init__(self, resource: str, resource_id: str):
        super().__init__(
            message=f"{resource} with ID {resource_id} not found",
            error_code="not_found",
            status_code=status.HTTP_404_NOT_FOUND,
        )
        self.resource = resource
        self.resource_id = resource_id


class CycleError(RippleException):
    """Adding a dependency would create a cycle."""

    def __init__(self, task_id: str, dependency_id: str, message: Optional[str] = None):
        super().__init__(
            message=message or "Adding this dependency would create a cycle in the task graph",
            error_code="cycle_detected",
            status_code=status.HTTP_400_BAD_REQUEST,
            details=[{
                "loc": ["body"],
                "msg": f"Task {task_id} depending on {dependency_id} would create a cycle",
                "type": "cycle_error",
            }],
        )
        self.task_id = task_id
        self.dependency_id = dependency_id


class SelfDependencyError(CycleError):
    """Task cannot depend on itself."""

    def __init__(self, task_id: str):
        super().__init__(task_id, task_id, message="A task cannot depend on itself")
        self.error_code = "self_dependency"


class DuplicateDependencyError(RippleException):
    """Dependency already exists."""

    def __init__(self, task_id: str, dependency_id: str):
        super().__init__(
            message="This dependency already exists",
            error_code="duplicate_dependency",
            status_code=status.HTTP_409_CONFLICT,
        )
        self.task_id = task_id
        self.dependency_id = dependency_id


class CrossProjectDependencyError(RippleException):
    """Cannot create dependency between tasks in different projects."""

    def __init__(self, predecessor_project: str, successor_project: str):
        super().__init__(
            message="Cannot create dependency between tasks in different projects",
            error_code="cross_project_dependency",
            status_code=status.HTTP_400_BAD_REQUEST,
        )


class ValidationError(RippleException):
    """Request validation error."""

    def __init__(self, message: str, details: Optional[List[Dict[str, Any]]] = None):
        super().__init__(
            message=message,
            error_code="validation_error",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            details=details,
        )


class InvalidDateRangeError(ValidationError):
    """A due date was set before the task's start date."""

    def __init__(self, task_id: str, start_date: date, due_date: date):
        super().__init__(
            message=f"Due date {due_date} is before start date {start_date}",
            details=[{
                "loc": ["body", "due_date"],
                "msg": f"Task {task_id} cannot be due before it starts",
                "type": "date_range_error",
            }],
        )
        self.task_id = task_id


class InvalidDurationError(ValidationError):
    """Durations are counted in whole days, at least one."""

    def __init__(self, task_id: str, duration_days: int):
        super().__init__(
            message=f"Duration must be at least 1 day, got {duration_days}",
            details=[{
                "loc": ["body", "duration_days"],
                "msg": f"Invalid duration for task {task_id}",
                "type": "duration_error",
            }],
        )
        self.task_id = task_id


class StaleSnapshotError(RippleException):
    """A task changed after the snapshot a batch was computed from."""

    def __init__(self, task_id: str):
        super().__init__(
            message="Task changed concurrently; recompute the schedule from a fresh snapshot",
            error_code="stale_snapshot",
            status_code=status.HTTP_409_CONFLICT,
        )
        self.task_id = task_id


# =============================================================================
# Schedule Warnings
# =============================================================================

class ScheduleWarning(UserWarning):
    """Non-fatal schedule condition reported alongside results."""

    code = "schedule_warning"

    def __init__(self, task_id: str, message: str):
        self.task_id = task_id
        self.message = message
        super().__init__(message)


class DanglingReferenceWarning(ScheduleWarning):
    """A task depends on a task id that no longer exists."""

    code = "dangling_reference"

    def __init__(self, task_id: str, missing_id: str):
        super().__init__(task_id, f"Dependency {missing_id} no longer exists and is ignored")
        self.missing_id = missing_id


class AmbiguousDateWarning(ScheduleWarning):
    """A task has dependencies but none of them carries a usable date."""

    code = "ambiguous_date"

    def __init__(self, task_id: str):
        super().__init__(task_id, "No dependency provides a date; effective start is unknown")


# =============================================================================
# Exception Handlers
# =============================================================================

async def ripple_exception_handler(request: Request, exc: RippleException) -> JSONResponse:
    """Handle RippleException and return structured response."""
    body = ErrorResponse(error=exc.error_code, message=exc.message, details=exc.details)
    return JSONResponse(status_code=exc.status_code, content=body.model_dump())


def register_exception_handlers(app):
    """Register all exception handlers with the FastAPI app."""
    app.add_exception_handler(RippleException, ripple_exception_handler)
