"""Update models for database operations."""

from datetime import datetime

from pydantic import Field

from src.domain.task import ApiModel, Attachment, Category, Priority, Recurrence, Subtask


class TaskReplace(ApiModel):
    """Full replacement of a task's mutable fields.

    Omitted fields fall back to their defaults. Identity, creation time and
    completion history are kept from the stored task.
    """

    text: str = Field(..., description="Task text")
    description: str = Field(default="", description="Detailed task description")
    notes: str = Field(default="", description="Free-form notes")
    completed: bool = Field(default=False, description="Completion flag")
    priority: Priority = Field(default=Priority.MEDIUM, description="Task priority")
    category: Category = Field(default=Category.PERSONAL, description="Task category")
    tags: list[str] = Field(default_factory=list, description="Tags")
    due_date: datetime | None = Field(default=None, description="When the task is due")
    estimated_time: int | None = Field(default=None, ge=0, description="Estimated minutes")
    actual_time: int | None = Field(default=None, ge=0, description="Logged minutes")
    is_daily: bool = Field(default=False, description="Task recurs once per calendar day")
    daily_reset: bool = Field(default=False, description="Reset completion at each new day")
    recurring: Recurrence = Field(default=Recurrence.NONE, description="Stored recurrence hint")
    subtasks: list[Subtask] = Field(default_factory=list, description="Checklist items")
    attachments: list[Attachment] = Field(default_factory=list, description="Attached links")
    progress: int | None = Field(default=None, description="Caller progress; ignored when subtasks exist")


class SubtaskUpdate(ApiModel):
    """Partial update for a single subtask."""

    completed: bool | None = Field(default=None, description="New completion flag")
    text: str | None = Field(default=None, description="New text; blank values are ignored")


class BulkDelete(ApiModel):
    """Request body for deleting several tasks at once."""

    ids: list[str] = Field(default_factory=list, description="Task ids to delete")
