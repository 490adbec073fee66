from datetime import date
from enum import Enum
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from .common import optional_text, required_text


class TaskStatus(str, Enum):
    pending = "pending"
    in_progress = "in_progress"
    completed = "completed"
    cancelled = "cancelled"


class TaskPriority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class Recurrence(str, Enum):
    daily = "daily"
    weekly = "weekly"
    monthly = "monthly"


class TeamRange(str, Enum):
    day = "day"
    week = "week"
    month = "month"


class TaskCreate(BaseModel):
    title: str
    assigned_to: str
    description: Optional[str] = None
    priority: TaskPriority = TaskPriority.medium
    due_date: Optional[date] = None
    recurring: Optional[Recurrence] = None

    @field_validator('title', 'assigned_to', mode='before')
    @classmethod
    def required(cls, v):
        return required_text(v)

    @field_validator('description', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)

    @field_validator('due_date', 'recurring', mode='before')
    @classmethod
    def blank_is_none(cls, v):
        return None if v == "" else v


class TaskUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    due_date: Optional[date] = None
    assigned_to: Optional[str] = None
    recurring: Optional[Recurrence] = None

    @field_validator('title', mode='before')
    @classmethod
    def not_blank(cls, v):
        return None if v is None else required_text(v)

    @field_validator('description', 'assigned_to', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class TaskStatusUpdate(BaseModel):
    status: TaskStatus


def split_tasks_completed(v) -> List[str]:
    if v is None:
        return []
    items = v.split(",") if isinstance(v, str) else list(v)
    return [str(i).strip() for i in items if str(i).strip()]


class ReportCreate(BaseModel):
    summary: str
    hours_worked: float = Field(default=8, ge=0, le=24)
    tasks_completed: Union[List[str], str, None] = None
    challenges: Optional[str] = None
    plans_for_tomorrow: Optional[str] = None

    @field_validator('summary', mode='before')
    @classmethod
    def required(cls, v):
        return required_text(v)

    @field_validator('tasks_completed', mode='after')
    @classmethod
    def as_list(cls, v):
        return split_tasks_completed(v)

    @field_validator('challenges', 'plans_for_tomorrow', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class ReportUpdate(BaseModel):
    summary: Optional[str] = None
    hours_worked: Optional[float] = Field(default=None, ge=0, le=24)
    tasks_completed: Union[List[str], str, None] = None
    challenges: Optional[str] = None
    plans_for_tomorrow: Optional[str] = None

    @field_validator('summary', mode='before')
    @classmethod
    def not_blank(cls, v):
        return None if v is None else required_text(v)

    @field_validator('tasks_completed', mode='after')
    @classmethod
    def as_list(cls, v):
        return None if v is None else split_tasks_completed(v)

    @field_validator('challenges', 'plans_for_tomorrow', mode='before')
    @classmethod
    def empty_to_none(cls, v):
        return optional_text(v)


class MessageCreate(BaseModel):
    # Blank content is rejected by the route with a 400 rather than a 422
    content: str = ""
