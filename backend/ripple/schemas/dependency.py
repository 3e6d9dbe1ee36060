import uuid
from datetime import datetime
from pydantic import BaseModel

from ripple.schemas.task import TaskUpdateRead


class DependencyCreate(BaseModel):
    """Schema for creating a new dependency."""
    predecessor_id: uuid.UUID  # The task depended on
    successor_id: uuid.UUID    # The task that waits for it


class DependencyRead(BaseModel):
    """Schema for reading a dependency."""
    predecessor_id: uuid.UUID
    successor_id: uuid.UUID
    created_at: datetime

    model_config = {"from_attributes": True}


class DependencyScheduleRead(DependencyRead):
    """A new dependency plus the date updates it caused."""
    updates: list[TaskUpdateRead] = []
