import uuid
from datetime import date

from pydantic import BaseModel, Field


class EffectiveDatesRead(BaseModel):
    start_date: date | None
    due_date: date | None
    predicted_start: date | None
    predicted_end: date | None
    is_predicted: bool
    is_deadline_overdue: bool

    model_config = {"from_attributes": True}


class TaskInsightRead(BaseModel):
    """Timeline annotations for one task."""
    task_id: uuid.UUID
    effective_start: date | None
    dates: EffectiveDatesRead
    is_blocked: bool
    bottleneck_id: uuid.UUID | None
    dangling_dependency_ids: list[str] = []

    model_config = {"from_attributes": True}


class ScheduleWarningRead(BaseModel):
    code: str
    task_id: uuid.UUID
    message: str


class ProjectScheduleRead(BaseModel):
    project_id: uuid.UUID
    tasks: list[TaskInsightRead]
    warnings: list[ScheduleWarningRead]


class TaskAnalysisRead(BaseModel):
    task_id: uuid.UUID
    title: str
    duration_days: int
    earliest_start: date
    earliest_finish: date
    latest_start: date
    latest_finish: date
    total_slack: int
    is_critical: bool

    model_config = {"from_attributes": True}


class CriticalPathRead(BaseModel):
    project_id: uuid.UUID
    project_start_date: date
    project_end_date: date
    task_analyses: list[TaskAnalysisRead]
    critical_path_task_ids: list[uuid.UUID]

    model_config = {"from_attributes": True}


class ImportTask(BaseModel):
    """A task in a bulk import, referenced by a client-chosen key."""
    key: str
    title: str
    description: str | None = None
    start_date: date | None = None
    due_date: date | None = None
    duration_days: int | None = Field(default=None, ge=1)
    depends_on: list[str] = []  # Keys of other tasks in the same import


class ProjectImport(BaseModel):
    tasks: list[ImportTask]


class ImportResult(BaseModel):
    project_id: uuid.UUID
    task_ids: dict[str, uuid.UUID]  # key -> created task id
    dependencies_created: int
    job_enqueued: bool
