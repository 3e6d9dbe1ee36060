import uuid
from datetime import date, datetime
from typing import Any

from pydantic import BaseModel, Field, field_validator

from ripple.services.scheduling import DragMode
from ripple.services.snapshot import StartDateOrigin

DATE_EDIT_FIELDS = {"start_date", "due_date", "duration_days", "is_due_date_fixed"}


class TaskCreate(BaseModel):
    """
    Schema for creating a new task.

    Dates are normalized on creation: start + duration derives the due
    date, start + due derives the duration (and fixes the due date).
    """
    title: str
    description: str | None = None
    project_id: uuid.UUID
    start_date: date | None = None
    due_date: date | None = None
    duration_days: int | None = Field(default=None, ge=1)
    is_due_date_fixed: bool = False


class TaskUpdate(BaseModel):
    """Schema for updating a task. Date fields go through reconciliation."""
    title: str | None = None
    description: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    duration_days: int | None = Field(default=None, ge=1)
    is_due_date_fixed: bool | None = None

    @field_validator("title", "is_due_date_fixed")
    @classmethod
    def reject_null(cls, v):
        """These columns can be left out of an update but never cleared."""
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class TaskDrag(BaseModel):
    """A bar dragged on the timeline."""
    mode: DragMode
    start_date: date | None = None
    due_date: date | None = None


class TaskCompletion(BaseModel):
    """Mark a task completed or reopen it."""
    is_completed: bool
    completed_at: date | None = None  # Defaults to today when completing


class TaskRead(BaseModel):
    """Schema for reading a task."""
    id: uuid.UUID
    title: str
    description: str | None
    project_id: uuid.UUID
    depends_on_task_ids: list[uuid.UUID] = []
    start_date: date | None
    due_date: date | None
    duration_days: int | None
    is_due_date_fixed: bool
    start_date_origin: StartDateOrigin | None
    is_completed: bool
    completed_at: date | None
    calc_version_id: uuid.UUID
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TaskUpdateRead(BaseModel):
    """One entry of a schedule batch."""
    task_id: uuid.UUID
    updates: dict[str, Any]
    deadline_overrun: bool = False

    model_config = {"from_attributes": True}


class ScheduleBatchRead(BaseModel):
    """Updates produced by a scheduling operation, in apply order."""
    updates: list[TaskUpdateRead]


class TaskScheduleRead(ScheduleBatchRead):
    """A task after an edit, plus every update the edit applied."""
    task: TaskRead
