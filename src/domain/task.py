"""Task domain models and enums."""

import json
import uuid
from datetime import datetime
from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.core.clock import format_timestamp, parse_timestamp, utc_now
from src.core.config import Constants


PROGRESS_MIN = 0
PROGRESS_MAX = 100


class Priority(StrEnum):
    """How urgent a task is."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"

    @property
    def rank(self) -> int:
        """Sort rank; urgent is highest."""
        return Constants.PRIORITY_RANKS[self.value]


class Category(StrEnum):
    """Fixed task categories."""

    PERSONAL = "personal"
    WORK = "work"
    SHOPPING = "shopping"
    HEALTH = "health"
    EDUCATION = "education"
    OTHER = "other"

    @property
    def color(self) -> str:
        """Display color for the category."""
        return Constants.CATEGORY_COLORS.get(self.value, Constants.DEFAULT_CATEGORY_COLOR)


class Recurrence(StrEnum):
    """Stored recurrence hint. Only the daily-reset flags drive behavior."""

    NONE = "none"
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


def new_subtask_id() -> str:
    """Generate an opaque subtask id."""
    return uuid.uuid4().hex


def _decode_json_list(value: Any) -> Any:
    """Accept lists stored as JSON text by SQLite."""
    if isinstance(value, str):
        return json.loads(value) if value else []
    if value is None:
        return []
    return value


def _clamp_progress(value: Any) -> Any:
    if isinstance(value, int | float) and not isinstance(value, bool):
        return max(PROGRESS_MIN, min(PROGRESS_MAX, round(value)))
    return value


class ApiModel(BaseModel):
    """Base model exposing camelCase JSON while keeping snake_case attributes."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Subtask(ApiModel):
    """A checklist item inside a task."""

    id: str = Field(default_factory=new_subtask_id, description="Opaque subtask id")
    text: str = Field(..., description="Subtask text")
    completed: bool = Field(default=False, description="Whether the subtask is done")


class Attachment(ApiModel):
    """A link attached to a task."""

    name: str = Field(default="", description="Display name")
    url: str = Field(default="", description="Location of the attachment")
    type: str = Field(default="", description="Free-form attachment type")


class Task(ApiModel):
    """Task record with derived completion and progress fields."""

    id: str = Field(default="", description="Unique task ID from database")
    text: str = Field(..., description="Task text")
    description: str = Field(default="", description="Detailed task description")
    notes: str = Field(default="", description="Free-form notes")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    category: Category = Field(default=Category.PERSONAL, description="Task category")
    tags: list[str] = Field(default_factory=list, description="Ordered, de-duplicated tags")
    due_date: datetime | None = Field(default=None, description="When the task is due")
    estimated_time: int | None = Field(default=None, ge=0, description="Estimated minutes")
    actual_time: int | None = Field(default=None, ge=0, description="Logged minutes")
    recurring: Recurrence = Field(default=Recurrence.NONE, description="Stored recurrence hint")
    completed: bool = Field(default=False, description="Completion flag")
    completed_at: datetime | None = Field(default=None, description="Set iff completed")
    progress: int = Field(default=0, ge=PROGRESS_MIN, le=PROGRESS_MAX, description="Percent complete")
    is_daily: bool = Field(default=False, description="Task recurs once per calendar day")
    daily_reset: bool = Field(default=False, description="Reset completion at each new day")
    completed_dates: list[datetime] = Field(default_factory=list, description="Append-only completion history")
    subtasks: list[Subtask] = Field(default_factory=list, description="Checklist items")
    attachments: list[Attachment] = Field(default_factory=list, description="Attached links")
    created_at: datetime = Field(default_factory=utc_now, description="Creation time")
    updated_at: datetime = Field(default_factory=utc_now, description="Last write time")

    @field_validator("tags", "completed_dates", "subtasks", "attachments", mode="before")
    @classmethod
    def decode_json_lists(cls, v: Any) -> Any:
        """Decode list columns stored as JSON text."""
        return _decode_json_list(v)

    @field_validator("progress", mode="before")
    @classmethod
    def clamp_progress(cls, v: Any) -> Any:
        """Clamp numeric progress into [0, 100]."""
        return _clamp_progress(v)

    @field_validator("due_date", "completed_at", mode="after")
    @classmethod
    def normalize_optional_instant(cls, v: datetime | None) -> datetime | None:
        """Store instants as aware UTC datetimes."""
        return parse_timestamp(v) if v is not None else None

    @field_validator("created_at", "updated_at", mode="after")
    @classmethod
    def normalize_instant(cls, v: datetime) -> datetime:
        """Store instants as aware UTC datetimes."""
        return parse_timestamp(v)

    @field_validator("completed_dates", mode="after")
    @classmethod
    def normalize_instants(cls, v: list[datetime]) -> list[datetime]:
        """Store history entries as aware UTC datetimes."""
        return [parse_timestamp(moment) for moment in v]

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "Task":
        """Build a Task from a store record (snake_case columns)."""
        data = {key: value for key, value in record.items() if key in cls.model_fields}
        data["created_at"] = record.get("created") or record.get("created_at") or utc_now()
        data["updated_at"] = record.get("updated") or record.get("updated_at") or data["created_at"]
        return cls.model_validate(data)

    def to_record(self) -> dict[str, Any]:
        """Encode the task as store columns (everything except the id)."""
        return {
            "created": format_timestamp(self.created_at),
            "updated": format_timestamp(self.updated_at),
            "text": self.text,
            "description": self.description,
            "notes": self.notes,
            "priority": self.priority.value,
            "priority_rank": self.priority.rank,
            "category": self.category.value,
            "tags": list(self.tags),
            "due_date": format_timestamp(self.due_date) if self.due_date else None,
            "estimated_time": self.estimated_time,
            "actual_time": self.actual_time,
            "recurring": self.recurring.value,
            "completed": self.completed,
            "completed_at": format_timestamp(self.completed_at) if self.completed_at else None,
            "progress": self.progress,
            "is_daily": self.is_daily,
            "daily_reset": self.daily_reset,
            "completed_dates": [format_timestamp(moment) for moment in self.completed_dates],
            "subtasks": [subtask.model_dump() for subtask in self.subtasks],
            "attachments": [attachment.model_dump() for attachment in self.attachments],
        }
