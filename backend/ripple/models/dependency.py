import uuid
from datetime import datetime
from sqlmodel import SQLModel, Field


class Dependency(SQLModel, table=True):
    """
    Dependency model representing a directed edge in the task DAG.

    predecessor_id -> successor_id means:
    "The successor cannot start before the predecessor's gating date"

    Example: If Task B depends on Task A:
    - predecessor_id = A.id (listed in B's depends_on_task_ids)
    - successor_id = B.id
    """

    __tablename__ = "dependencies"

    # Composite primary key
    predecessor_id: uuid.UUID = Field(
        foreign_key="tasks.id",
        primary_key=True,
    )
    successor_id: uuid.UUID = Field(
        foreign_key="tasks.id",
        primary_key=True,
    )

    created_at: datetime = Field(default_factory=datetime.utcnow)
