"""Pure lifecycle rules for a single task.

Every function takes a Task and returns a new Task; nothing here touches the
store. The service layer reads a record, runs it through these functions and
writes the result back once.

Derived fields:
- completed_at is set when a task becomes completed and cleared otherwise.
- progress follows the subtasks whenever any exist; a task that just lost its
  last subtask drops to 0.
- completed_dates grows by one entry each time a daily task is completed.
"""

from datetime import datetime
from typing import Any

from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from src.core.clock import day_bounds, local_date
from src.core.errors import NotFoundError, ValidationError
from src.domain.task import Subtask, Task


# Fields a PATCH may touch, by attribute name
PATCHABLE_FIELDS: frozenset[str] = frozenset(
    {
        "text",
        "description",
        "completed",
        "priority",
        "category",
        "due_date",
        "estimated_time",
        "actual_time",
        "is_daily",
        "daily_reset",
        "recurring",
        "tags",
        "subtasks",
        "progress",
        "notes",
        "attachments",
    }
)

# Accepted patch keys: each attribute name and its camelCase API alias
_PATCH_KEYS: dict[str, str] = {name: name for name in PATCHABLE_FIELDS} | {
    to_camel(name): name for name in PATCHABLE_FIELDS
}


def round_percentage(part: int, whole: int) -> int:
    """Return round(100 * part / whole) with halves rounded away from zero; 0 when whole is 0."""
    if whole <= 0:
        return 0
    return (200 * part + whole) // (2 * whole)


def subtask_progress(subtasks: list[Subtask]) -> int:
    """Percentage of completed subtasks (0 when there are none)."""
    done = sum(1 for subtask in subtasks if subtask.completed)
    return round_percentage(done, len(subtasks))


def normalize_tags(tags: list[str]) -> list[str]:
    """Trim tags, drop empty ones and suppress duplicates, keeping first-seen order."""
    seen: list[str] = []
    for raw in tags:
        tag = raw.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _validation_message(error: PydanticValidationError) -> str:
    details = "; ".join(
        f"{'.'.join(str(part) for part in item['loc']) or 'task'}: {item['msg']}" for item in error.errors()
    )
    return f"Invalid task data: {details}"


def validate_task_data(data: dict[str, Any]) -> Task:
    """Build a Task from attribute data, reporting problems as ValidationError."""
    try:
        return Task.model_validate(data)
    except PydanticValidationError as e:
        raise ValidationError(_validation_message(e)) from e


def normalize_for_write(task: Task, *, previous: Task | None, now: datetime) -> Task:
    """Derive timestamps, completion state and progress before a task is persisted.

    Args:
        task: Task as the caller wants it stored
        previous: Stored version of the task, or None on create
        now: Current instant

    Returns:
        Task ready to be written

    Raises:
        ValidationError: If the trimmed text is empty
    """
    text = task.text.strip()
    if not text:
        raise ValidationError("Task text is required")

    completed_at = task.completed_at
    completed_dates = list(task.completed_dates)
    if task.completed:
        if completed_at is None:
            completed_at = now
        was_completed = previous.completed if previous else False
        if task.is_daily and not was_completed:
            completed_dates.append(now)
    else:
        completed_at = None

    previous_subtasks = previous.subtasks if previous else []
    progress = task.progress
    if task.subtasks or task.subtasks != previous_subtasks:
        progress = subtask_progress(task.subtasks)

    return task.model_copy(
        update={
            "text": text,
            "tags": normalize_tags(task.tags),
            "completed_at": completed_at,
            "completed_dates": completed_dates,
            "progress": progress,
            "updated_at": now,
        }
    )


def apply_patch(task: Task, updates: dict[str, Any]) -> Task:
    """Apply a partial update restricted to PATCHABLE_FIELDS.

    Keys must be an attribute name or its exact camelCase alias. Any other key
    rejects the whole patch before anything is applied.

    Raises:
        ValidationError: On a disallowed field or an invalid value
    """
    normalized: dict[str, Any] = {}
    disallowed = []
    for key, value in updates.items():
        field = _PATCH_KEYS.get(key)
        if field is None:
            disallowed.append(key)
            continue
        normalized[field] = value

    if disallowed:
        msg = f"Invalid updates: {', '.join(sorted(disallowed))}"
        raise ValidationError(msg)

    data = task.model_dump()
    data.update(normalized)
    return validate_task_data(data)


def apply_replacement(task: Task, replacement: dict[str, Any]) -> Task:
    """Replace every mutable field, keeping identity, creation time and history."""
    data = dict(replacement)
    progress = data.pop("progress", None)
    data.update(
        {
            "id": task.id,
            "created_at": task.created_at,
            "completed_at": task.completed_at,
            "completed_dates": task.completed_dates,
            "progress": task.progress if progress is None else progress,
        }
    )
    return validate_task_data(data)


def add_tag(task: Task, tag: str) -> tuple[Task, bool]:
    """Append a tag unless it is already present.

    Returns:
        Tuple of (task, changed)
    """
    trimmed = tag.strip()
    if not trimmed:
        raise ValidationError("Tag is required")
    if trimmed in task.tags:
        return task, False
    return task.model_copy(update={"tags": [*task.tags, trimmed]}), True


def remove_tag(task: Task, tag: str) -> Task:
    """Remove every exact match of a tag."""
    if tag not in task.tags:
        msg = f"Tag not found on task {task.id}: {tag}"
        raise NotFoundError(msg)
    return task.model_copy(update={"tags": [existing for existing in task.tags if existing != tag]})


def log_time(task: Task, minutes: int) -> Task:
    """Add logged minutes to actual_time."""
    if isinstance(minutes, bool) or minutes <= 0:
        raise ValidationError("Valid minutes are required")
    return task.model_copy(update={"actual_time": (task.actual_time or 0) + minutes})


def _find_subtask(task: Task, subtask_id: str) -> int:
    for index, subtask in enumerate(task.subtasks):
        if subtask.id == subtask_id:
            return index
    msg = f"Subtask not found on task {task.id}: {subtask_id}"
    raise NotFoundError(msg)


def add_subtask(task: Task, text: str) -> Task:
    """Append a new, incomplete subtask."""
    trimmed = text.strip()
    if not trimmed:
        raise ValidationError("Subtask text is required")
    subtasks = [*task.subtasks, Subtask(text=trimmed)]
    return task.model_copy(update={"subtasks": subtasks, "progress": subtask_progress(subtasks)})


def update_subtask(task: Task, subtask_id: str, *, completed: bool | None = None, text: str | None = None) -> Task:
    """Change a subtask's completion flag and/or text; blank text is ignored."""
    index = _find_subtask(task, subtask_id)
    changes: dict[str, Any] = {}
    if completed is not None:
        changes["completed"] = completed
    if text is not None and text.strip():
        changes["text"] = text.strip()

    subtasks = list(task.subtasks)
    subtasks[index] = subtasks[index].model_copy(update=changes)
    return task.model_copy(update={"subtasks": subtasks, "progress": subtask_progress(subtasks)})


def remove_subtask(task: Task, subtask_id: str) -> Task:
    """Remove a subtask; progress drops to 0 when none remain."""
    index = _find_subtask(task, subtask_id)
    subtasks = [subtask for position, subtask in enumerate(task.subtasks) if position != index]
    return task.model_copy(update={"subtasks": subtasks, "progress": subtask_progress(subtasks)})


def completed_today(task: Task, now: datetime) -> bool:
    """Return True if any completion in the history falls on or after today's midnight."""
    start_of_day, _ = day_bounds(now)
    return any(moment >= start_of_day for moment in task.completed_dates)


def needs_daily_reset(task: Task, now: datetime) -> bool:
    """Return True if a completed auto-resetting daily task was last completed before today."""
    if not (task.is_daily and task.daily_reset and task.completed):
        return False
    if not task.completed_dates:
        return False
    return local_date(task.completed_dates[-1]) < local_date(now)


def apply_daily_reset(task: Task, now: datetime) -> tuple[Task, bool]:
    """Flip a daily task back to pending once a new day has started.

    Subtasks are un-ticked along with the task so progress stays consistent
    with them. completed_dates is never touched.

    Returns:
        Tuple of (task, changed); unchanged tasks are returned as-is
    """
    if not needs_daily_reset(task, now):
        return task, False

    subtasks = [subtask.model_copy(update={"completed": False}) for subtask in task.subtasks]
    reset = task.model_copy(
        update={
            "completed": False,
            "completed_at": None,
            "progress": 0,
            "subtasks": subtasks,
        }
    )
    return reset, True
