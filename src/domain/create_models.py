"""Pydantic models for requests that create records or sub-records."""

from datetime import datetime

from pydantic import Field

from src.domain.task import ApiModel, Attachment, Category, Priority, Recurrence, Subtask


class TaskCreate(ApiModel):
    """Request body for creating a task; everything but text is defaulted."""

    text: str = Field(..., description="Task text (required, non-empty after trimming)")
    description: str = Field(default="", description="Detailed task description")
    notes: str = Field(default="", description="Free-form notes")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    category: Category = Field(default=Category.PERSONAL, description="Task category")
    tags: list[str] = Field(default_factory=list, description="Tags")
    due_date: datetime | None = Field(default=None, description="When the task is due")
    estimated_time: int | None = Field(default=None, ge=0, description="Estimated minutes")
    is_daily: bool = Field(default=False, description="Task recurs once per calendar day")
    daily_reset: bool = Field(default=False, description="Reset completion at each new day")
    recurring: Recurrence = Field(default=Recurrence.NONE, description="Stored recurrence hint")
    subtasks: list[Subtask] = Field(default_factory=list, description="Initial checklist items")
    attachments: list[Attachment] = Field(default_factory=list, description="Attached links")


class SubtaskCreate(ApiModel):
    """Request body for adding a subtask."""

    text: str = Field(..., description="Subtask text")


class TagCreate(ApiModel):
    """Request body for adding a tag."""

    tag: str = Field(..., description="Tag to add")


class TimeLogCreate(ApiModel):
    """Request body for logging time against a task."""

    minutes: int = Field(..., description="Minutes spent; must be positive")
