"""Category listing and statistics endpoints."""

from fastapi import APIRouter, Query

from src.domain.task import Category, Task
from src.models.service_models import CategoryStats, CategorySummary, TaskOverview
from src.modules.tasks import analytics, service as task_service


router = APIRouter(prefix="/api/categories", tags=["categories"])


@router.get("", response_model=list[CategorySummary])
async def get_categories() -> list[CategorySummary]:
    """Task counts for every category."""
    return await analytics.get_category_summary()


@router.get("/daily/active", response_model=list[Task])
async def get_active_daily_tasks() -> list[Task]:
    """Daily tasks still to do today."""
    return await analytics.list_active_daily_tasks()


@router.get("/stats/overview", response_model=TaskOverview)
async def get_overview() -> TaskOverview:
    """Global task statistics."""
    return await analytics.get_overview()


@router.get("/{category}/todos", response_model=list[Task])
async def get_category_todos(
    category: Category,
    completed: bool | None = Query(default=None),
    search: str | None = Query(default=None),
) -> list[Task]:
    """Tasks in one category, highest priority first."""
    return await task_service.list_category_tasks(category=category, completed=completed, search=search)


@router.get("/{category}/stats", response_model=CategoryStats)
async def get_category_stats(category: Category) -> CategoryStats:
    """Detailed statistics for one category."""
    return await analytics.get_category_stats(category=category)
