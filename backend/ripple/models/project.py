import uuid
from datetime import date, datetime
from sqlmodel import SQLModel, Field


class Project(SQLModel, table=True):
    """
    A scheduling scope. Dependencies never cross project boundaries.

    `start_date` anchors critical path analysis for tasks that carry no
    dates of their own; when unset, the earliest task date is used.
    """

    __tablename__ = "projects"

    id: uuid.UUID = Field(default_factory=uuid.uuid4, primary_key=True)
    name: str = Field(index=True)
    description: str | None = Field(default=None)
    start_date: date | None = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
