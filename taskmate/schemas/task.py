from pydantic import BaseModel, Field, field_validator
from typing import Optional
from datetime import datetime
import re

PRIORITIES = ("low", "medium", "high")
TIME_PATTERN = re.compile(r"^\d{2}:\d{2}(:\d{2})?$")


class TaskBase(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    due_date: Optional[str] = Field(None, alias="dueDate")
    due_time: Optional[str] = Field(None, alias="dueTime")
    category: Optional[str] = Field(None, max_length=50)
    priority: Optional[str] = None
    has_no_due_date: Optional[bool] = Field(None, alias="hasNoDueDate")
    category_id: Optional[int] = Field(None, alias="categoryId")

    class Config:
        populate_by_name = True

    @field_validator('title')
    @classmethod
    def strip_title(cls, v):
        return v.strip() if v is not None else v

    @field_validator('priority')
    @classmethod
    def validate_priority(cls, v):
        if v is not None and v not in PRIORITIES:
            raise ValueError('priority must be low, medium or high')
        return v

    @field_validator('due_time')
    @classmethod
    def validate_due_time(cls, v):
        if not v:
            return None
        if not TIME_PATTERN.match(v):
            raise ValueError('dueTime must be HH:MM')
        return v


class TaskCreate(TaskBase):
    pass


class TaskUpdate(TaskBase):
    status: Optional[str] = Field(None, max_length=20)


class TaskResponse(BaseModel):
    task_id: int
    user_id: int
    title: str
    description: Optional[str] = None
    category: Optional[str] = None
    category_id: Optional[int] = None
    due_date: Optional[datetime] = None
    due_time: Optional[str] = None
    status: Optional[str] = None
    priority: Optional[str] = None
    has_no_due_date: Optional[bool] = None
    source: Optional[str] = None
    synced_to_google: Optional[bool] = None
    google_event_id: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
