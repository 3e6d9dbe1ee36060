import uuid
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class Task(SQLModel, table=True):
    """
    Task row with scheduling fields and version tracking.

    Key fields:
    - start_date / due_date: optional calendar dates, no time of day
    - duration_days: inclusive day count, derived or anchor depending on is_due_date_fixed
    - start_date_origin: "user" or "derived", NULL when unknown
    - calc_version_id: Concurrency guard - changes on every write
    """

    __tablename__ = "tasks"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    title: str = Field(index=True)
    description: str | None = Field(default=None)

    start_date: date | None = Field(default=None)
    due_date: date | None = Field(default=None)
    duration_days: int | None = Field(default=None, ge=1)
    is_due_date_fixed: bool = Field(default=False)
    start_date_origin: str | None = Field(default=None)

    is_completed: bool = Field(default=False)
    completed_at: date | None = Field(default=None)

    calc_version_id: uuid.UUID = Field(default_factory=uuid.uuid4)

    # Foreign keys
    project_id: uuid.UUID = Field(foreign_key="projects.id", index=True)

    # Timestamps
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
