"""Task service for CRUD operations and sub-record mutations.

Each mutating call is one read-modify-write unit: read the stored record, run
the lifecycle rules, write the full record back. Validation happens before the
write, so a rejected request leaves the store untouched.
"""

import logging
from typing import Any

from src.core import clock, db_client
from src.core.config import Constants
from src.core.errors import NotFoundError, ValidationError
from src.core.logging import log_with_context, span
from src.domain.create_models import TaskCreate
from src.domain.task import Category, Task
from src.domain.update_models import TaskReplace
from src.modules.tasks import lifecycle


logger = logging.getLogger(__name__)

COLLECTION = "tasks"


def parse_category(value: str | Category) -> Category:
    """Coerce a category name, rejecting names outside the fixed set."""
    try:
        return Category(value)
    except ValueError as e:
        msg = f"Invalid category: {value}"
        raise ValidationError(msg) from e


def build_list_filter(
    *,
    category: Category | None = None,
    completed: bool | None = None,
    search: str | None = None,
    search_description: bool = False,
) -> str:
    """Build a store filter for task listings."""
    filters = []

    if category:
        filters.append(f'category = "{db_client.sanitize_param(category)}"')

    if completed is not None:
        filters.append(f'completed = "{"true" if completed else "false"}"')

    if search:
        term = db_client.sanitize_param(search)
        if search_description:
            filters.append(f'(text ~ "{term}" || description ~ "{term}")')
        else:
            filters.append(f'text ~ "{term}"')

    return " && ".join(filters)


async def fetch_all(*, filter_query: str = "", sort: str = "") -> list[Task]:
    """Drain a filtered listing from the store page by page."""
    tasks: list[Task] = []
    page = 1
    while True:
        records = await db_client.list_records(
            collection=COLLECTION,
            page=page,
            per_page=Constants.LIST_CHUNK_SIZE,
            filter_query=filter_query,
            sort=sort,
        )
        tasks.extend(Task.from_record(record) for record in records)
        if len(records) < Constants.LIST_CHUNK_SIZE:
            return tasks
        page += 1


async def _load(task_id: str) -> Task:
    try:
        record = await db_client.get_record(collection=COLLECTION, record_id=task_id)
    except db_client.RecordNotFoundError as e:
        msg = f"Task not found: {task_id}"
        raise NotFoundError(msg) from e
    return Task.from_record(record)


async def save(*, task: Task, previous: Task) -> Task:
    """Normalize a mutated task and write it back as a whole record."""
    normalized = lifecycle.normalize_for_write(task, previous=previous, now=clock.utc_now())
    try:
        record = await db_client.update_record(
            collection=COLLECTION,
            record_id=previous.id,
            data=normalized.to_record(),
        )
    except db_client.RecordNotFoundError as e:
        msg = f"Task not found: {previous.id}"
        raise NotFoundError(msg) from e
    return Task.from_record(record)


async def create_task(*, data: TaskCreate) -> Task:
    """Create a new task.

    Args:
        data: Validated creation request

    Returns:
        Created task

    Raises:
        ValidationError: If the text is empty after trimming
        db_client.DatabaseError: If database operation fails
    """
    with span("task_service.create_task"):
        now = clock.utc_now()
        draft = lifecycle.validate_task_data({**data.model_dump(), "created_at": now, "updated_at": now})
        task = lifecycle.normalize_for_write(draft, previous=None, now=now)

        record = await db_client.create_record(collection=COLLECTION, data=task.to_record())
        created = Task.from_record(record)

        logger.info("Created task %s in %s", created.id, created.category)
        return created


async def get_task(*, task_id: str) -> Task:
    """Get task by ID.

    Raises:
        NotFoundError: If task not found
    """
    with span("task_service.get_task"):
        return await _load(task_id)


async def list_tasks(*, completed: bool | None = None, search: str | None = None) -> list[Task]:
    """List tasks, newest first, optionally filtered by completion and text search."""
    with span("task_service.list_tasks"):
        filter_query = build_list_filter(completed=completed, search=search)
        tasks = await fetch_all(filter_query=filter_query, sort="-created,-id")
        logger.debug("Retrieved %d tasks with filters: %s", len(tasks), filter_query)
        return tasks


async def list_category_tasks(
    *,
    category: str | Category,
    completed: bool | None = None,
    search: str | None = None,
) -> list[Task]:
    """List one category's tasks by priority (highest first), then due date, then creation order.

    Search matches text or description, case-insensitively.
    """
    with span("task_service.list_category_tasks"):
        category = parse_category(category)
        filter_query = build_list_filter(
            category=category,
            completed=completed,
            search=search,
            search_description=True,
        )
        return await fetch_all(filter_query=filter_query, sort="-priority_rank,due_date,id")


async def replace_task(*, task_id: str, data: TaskReplace) -> Task:
    """Replace every mutable field of a task."""
    with span("task_service.replace_task"):
        current = await _load(task_id)
        replaced = lifecycle.apply_replacement(current, data.model_dump())
        saved = await save(task=replaced, previous=current)
        logger.info("Replaced task %s", task_id)
        return saved


async def patch_task(*, task_id: str, updates: dict[str, Any]) -> Task:
    """Apply an allow-listed partial update to a task.

    Raises:
        ValidationError: If any field is not patchable or a value is invalid
        NotFoundError: If task not found
    """
    with span("task_service.patch_task"):
        current = await _load(task_id)
        patched = lifecycle.apply_patch(current, updates)
        saved = await save(task=patched, previous=current)
        log_with_context(logger, "info", "Patched task", task_id=task_id, fields=sorted(updates))
        return saved


async def delete_task(*, task_id: str) -> int:
    """Delete a single task.

    Returns:
        Number of deleted tasks (always 1)

    Raises:
        NotFoundError: If task not found
    """
    with span("task_service.delete_task"):
        try:
            await db_client.delete_record(collection=COLLECTION, record_id=task_id)
        except db_client.RecordNotFoundError as e:
            msg = f"Task not found: {task_id}"
            raise NotFoundError(msg) from e
        logger.info("Deleted task %s", task_id)
        return 1


async def delete_tasks(*, task_ids: list[str]) -> int:
    """Delete several tasks; unknown ids are skipped.

    Returns:
        Number of tasks actually removed
    """
    with span("task_service.delete_tasks"):
        deleted = await db_client.delete_records(collection=COLLECTION, record_ids=task_ids)
        logger.info("Deleted %d of %d requested tasks", deleted, len(task_ids))
        return deleted


async def add_subtask(*, task_id: str, text: str) -> Task:
    """Append a subtask and recompute progress."""
    with span("task_service.add_subtask"):
        current = await _load(task_id)
        return await save(task=lifecycle.add_subtask(current, text), previous=current)


async def update_subtask(
    *,
    task_id: str,
    subtask_id: str,
    completed: bool | None = None,
    text: str | None = None,
) -> Task:
    """Update a subtask and recompute progress."""
    with span("task_service.update_subtask"):
        current = await _load(task_id)
        updated = lifecycle.update_subtask(current, subtask_id, completed=completed, text=text)
        return await save(task=updated, previous=current)


async def delete_subtask(*, task_id: str, subtask_id: str) -> Task:
    """Remove a subtask and recompute progress."""
    with span("task_service.delete_subtask"):
        current = await _load(task_id)
        return await save(task=lifecycle.remove_subtask(current, subtask_id), previous=current)


async def add_tag(*, task_id: str, tag: str) -> Task:
    """Add a tag; adding an existing tag leaves the task untouched."""
    with span("task_service.add_tag"):
        current = await _load(task_id)
        tagged, changed = lifecycle.add_tag(current, tag)
        if not changed:
            return current
        return await save(task=tagged, previous=current)


async def delete_tag(*, task_id: str, tag: str) -> Task:
    """Remove every occurrence of a tag."""
    with span("task_service.delete_tag"):
        current = await _load(task_id)
        return await save(task=lifecycle.remove_tag(current, tag), previous=current)


async def log_time(*, task_id: str, minutes: int) -> Task:
    """Add minutes to a task's actual time."""
    with span("task_service.log_time"):
        current = await _load(task_id)
        saved = await save(task=lifecycle.log_time(current, minutes), previous=current)
        logger.info("Logged %d minutes on task %s", minutes, task_id)
        return saved
