"""Analytics service for category and global task statistics.

This module provides functions for:
- Summarizing task counts per category
- Detailed statistics for a single category (overdue, priority histogram)
- Listing the daily tasks that are still active today
- A global overview with completion and daily-progress rates

Key Concepts:
- Day boundaries: "today" starts at midnight in the configured
  day_boundary_timezone; all bounds are converted to UTC before querying.
- Daily reset: listing active daily tasks runs the daily-reset check on each
  candidate and persists tasks whose state changed. No other function here
  writes to the store.
- Rates: integer percentages rounded half away from zero; 0 when the
  denominator is 0.
"""

import logging

from src.core import clock, db_client
from src.core.logging import span
from src.domain.task import Category, Priority, Task
from src.models.service_models import CategoryStats, CategorySummary, PriorityCount, TaskOverview
from src.modules.tasks import lifecycle, service as task_service


logger = logging.getLogger(__name__)

COLLECTION = task_service.COLLECTION

# Highest priority first
PRIORITY_ORDER = sorted(Priority, key=lambda priority: priority.rank, reverse=True)


async def get_category_summary() -> list[CategorySummary]:
    """Get total/completed/pending counts for every category, in fixed category order."""
    with span("analytics.get_category_summary"):
        totals = await db_client.count_grouped(collection=COLLECTION, field="category")
        completed = await db_client.count_grouped(
            collection=COLLECTION,
            field="category",
            filter_query='completed = "true"',
        )

        summaries = []
        for category in Category:
            total = totals.get(category.value, 0)
            done = completed.get(category.value, 0)
            summaries.append(
                CategorySummary(
                    name=category,
                    total=total,
                    completed=done,
                    pending=total - done,
                    color=category.color,
                )
            )

        logger.debug("Computed category summary for %d categories", len(summaries))
        return summaries


async def get_category_stats(*, category: str | Category) -> CategoryStats:
    """Get detailed statistics for one category.

    Overdue counts incomplete tasks whose due date is before the current instant.
    """
    with span("analytics.get_category_stats"):
        category = task_service.parse_category(category)
        category_filter = f'category = "{db_client.sanitize_param(category)}"'
        now = clock.utc_now()

        total = await db_client.count_records(collection=COLLECTION, filter_query=category_filter)
        completed = await db_client.count_records(
            collection=COLLECTION,
            filter_query=f'{category_filter} && completed = "true"',
        )
        overdue = await db_client.count_records(
            collection=COLLECTION,
            filter_query=f'{category_filter} && completed = "false" && due_date < "{clock.format_timestamp(now)}"',
        )
        by_priority = await db_client.count_grouped(
            collection=COLLECTION,
            field="priority",
            filter_query=category_filter,
        )

        return CategoryStats(
            category=category,
            total=total,
            completed=completed,
            pending=total - completed,
            overdue=overdue,
            priority_stats=[
                PriorityCount(priority=priority, count=by_priority.get(priority.value, 0))
                for priority in PRIORITY_ORDER
            ],
            color=category.color,
        )


def _is_active_daily(task: Task, *, done_today: bool) -> bool:
    if not task.daily_reset:
        return True
    return not task.completed or not done_today


async def list_active_daily_tasks() -> list[Task]:
    """List daily tasks still relevant today, resetting any completed on an earlier day.

    A daily task is listed when it does not auto-reset, or when it auto-resets
    and has not been completed today. Results are ordered by priority, highest
    first, keeping creation order among equal priorities.
    """
    with span("analytics.list_active_daily_tasks"):
        now = clock.utc_now()
        candidates = await task_service.fetch_all(filter_query='is_daily = "true"', sort="id")

        active: list[Task] = []
        reset_count = 0
        for task in candidates:
            if not _is_active_daily(task, done_today=lifecycle.completed_today(task, now)):
                continue

            reset, changed = lifecycle.apply_daily_reset(task, now)
            if changed:
                reset = await task_service.save(task=reset, previous=task)
                reset_count += 1
            active.append(reset)

        # sorted() is stable, so equal priorities keep creation order
        active = sorted(active, key=lambda task: task.priority.rank, reverse=True)

        logger.info("Listed %d active daily tasks (%d reset)", len(active), reset_count)
        return active


async def get_overview() -> TaskOverview:
    """Get global counts, due-today/overdue counts and completion rates."""
    with span("analytics.get_overview"):
        start_of_day, start_of_tomorrow = clock.day_bounds(clock.utc_now())
        today = clock.format_timestamp(start_of_day)
        tomorrow = clock.format_timestamp(start_of_tomorrow)

        total = await db_client.count_records(collection=COLLECTION)
        completed = await db_client.count_records(collection=COLLECTION, filter_query='completed = "true"')
        due_today = await db_client.count_records(
            collection=COLLECTION,
            filter_query=f'completed = "false" && due_date >= "{today}" && due_date < "{tomorrow}"',
        )
        overdue = await db_client.count_records(
            collection=COLLECTION,
            filter_query=f'completed = "false" && due_date < "{today}"',
        )
        daily_completed = await db_client.count_records(
            collection=COLLECTION,
            filter_query=f'is_daily = "true" && completed = "true" && completed_at >= "{today}"',
        )
        total_daily = await db_client.count_records(collection=COLLECTION, filter_query='is_daily = "true"')

        return TaskOverview(
            total=total,
            completed=completed,
            pending=total - completed,
            due_today=due_today,
            overdue=overdue,
            completion_rate=lifecycle.round_percentage(completed, total),
            daily_progress=lifecycle.round_percentage(daily_completed, total_daily),
            daily_completed=daily_completed,
            total_daily=total_daily,
        )
