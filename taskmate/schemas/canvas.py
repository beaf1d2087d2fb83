from pydantic import BaseModel, Field, field_validator
from typing import Optional

ASSIGNMENT_PRIORITIES = ("low", "medium", "high")
ASSIGNMENT_STATUSES = ("not_started", "in_progress", "done")

class AssignmentMetadataUpdate(BaseModel):
    """
    Omitted fields keep their stored value.
    """
    priority: Optional[str] = None
    estimated_hours: Optional[float] = Field(None, alias="estimatedHours")
    status: Optional[str] = None

    class Config:
        populate_by_name = True

    @field_validator('priority')
    @classmethod
    def validate_priority(cls, v):
        if v is not None and v not in ASSIGNMENT_PRIORITIES:
            raise ValueError('Invalid priority')
        return v

    @field_validator('estimated_hours')
    @classmethod
    def validate_estimated_hours(cls, v):
        if v is not None and v < 0:
            raise ValueError('estimatedHours must be a non-negative number')
        return v

    @field_validator('status')
    @classmethod
    def validate_status(cls, v):
        if v is not None and v not in ASSIGNMENT_STATUSES:
            raise ValueError('Invalid status')
        return v
