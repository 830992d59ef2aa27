"""Pydantic models for service layer return types.

These models provide type safety at service boundaries and serialize with
camelCase keys for API callers.
"""

from src.domain.task import ApiModel, Category, Priority


class CategorySummary(ApiModel):
    """Per-category task counts."""

    name: Category
    total: int
    completed: int
    pending: int
    color: str


class PriorityCount(ApiModel):
    """Number of tasks with one priority."""

    priority: Priority
    count: int


class CategoryStats(ApiModel):
    """Detailed statistics for one category."""

    category: Category
    total: int
    completed: int
    pending: int
    overdue: int
    priority_stats: list[PriorityCount]
    color: str


class TaskOverview(ApiModel):
    """Global task statistics."""

    total: int
    completed: int
    pending: int
    due_today: int
    overdue: int
    completion_rate: int
    daily_progress: int
    daily_completed: int
    total_daily: int


class DeleteResult(ApiModel):
    """Outcome of a single or bulk delete."""

    message: str
    deleted_count: int
