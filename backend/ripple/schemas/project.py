import uuid
from datetime import date, datetime
from pydantic import BaseModel, Field, field_validator


class ProjectCreate(BaseModel):
    name: str = Field(min_length=1)
    description: str | None = None
    start_date: date | None = None


class ProjectUpdate(BaseModel):
    """Only the fields sent are changed; send `start_date: null` to clear the anchor."""
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    start_date: date | None = None

    @field_validator("name")
    @classmethod
    def reject_null_name(cls, v):
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ProjectRead(BaseModel):
    id: uuid.UUID
    name: str
    description: str | None
    start_date: date | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
