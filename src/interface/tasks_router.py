"""Task CRUD endpoints."""

from typing import Any

from fastapi import APIRouter, Body, Query, status

from src.core.errors import ValidationError
from src.domain.create_models import SubtaskCreate, TagCreate, TaskCreate, TimeLogCreate
from src.domain.task import Task
from src.domain.update_models import BulkDelete, SubtaskUpdate, TaskReplace
from src.models.service_models import DeleteResult
from src.modules.tasks import service as task_service


router = APIRouter(prefix="/api/todos", tags=["todos"])


@router.get("", response_model=list[Task])
async def list_todos(
    completed: bool | None = Query(default=None),
    search: str | None = Query(default=None),
) -> list[Task]:
    """List tasks, newest first."""
    return await task_service.list_tasks(completed=completed, search=search)


@router.get("/{task_id}", response_model=Task)
async def get_todo(task_id: str) -> Task:
    """Get a single task."""
    return await task_service.get_task(task_id=task_id)


@router.post("", response_model=Task, status_code=status.HTTP_201_CREATED)
async def create_todo(payload: TaskCreate) -> Task:
    """Create a task."""
    return await task_service.create_task(data=payload)


@router.put("/{task_id}", response_model=Task)
async def replace_todo(task_id: str, payload: TaskReplace) -> Task:
    """Replace all mutable fields of a task."""
    return await task_service.replace_task(task_id=task_id, data=payload)


@router.patch("/{task_id}", response_model=Task)
async def patch_todo(task_id: str, updates: dict[str, Any] = Body(...)) -> Task:
    """Partially update a task; unknown fields reject the whole request."""
    return await task_service.patch_task(task_id=task_id, updates=updates)


@router.delete("/{task_id}", response_model=DeleteResult)
async def delete_todo(task_id: str) -> DeleteResult:
    """Delete a single task."""
    deleted = await task_service.delete_task(task_id=task_id)
    return DeleteResult(message="Todo deleted successfully", deleted_count=deleted)


@router.delete("", response_model=DeleteResult)
async def delete_todos(payload: BulkDelete) -> DeleteResult:
    """Delete several tasks; ids that do not exist are ignored."""
    if not payload.ids:
        raise ValidationError("Please provide an array of todo IDs")
    deleted = await task_service.delete_tasks(task_ids=payload.ids)
    return DeleteResult(message=f"{deleted} todos deleted successfully", deleted_count=deleted)


@router.post("/{task_id}/subtasks", response_model=Task)
async def add_subtask(task_id: str, payload: SubtaskCreate) -> Task:
    """Add a subtask."""
    return await task_service.add_subtask(task_id=task_id, text=payload.text)


@router.patch("/{task_id}/subtasks/{subtask_id}", response_model=Task)
async def update_subtask(task_id: str, subtask_id: str, payload: SubtaskUpdate) -> Task:
    """Update a subtask's completion flag or text."""
    return await task_service.update_subtask(
        task_id=task_id,
        subtask_id=subtask_id,
        completed=payload.completed,
        text=payload.text,
    )


@router.delete("/{task_id}/subtasks/{subtask_id}", response_model=Task)
async def delete_subtask(task_id: str, subtask_id: str) -> Task:
    """Delete a subtask."""
    return await task_service.delete_subtask(task_id=task_id, subtask_id=subtask_id)


@router.post("/{task_id}/tags", response_model=Task)
async def add_tag(task_id: str, payload: TagCreate) -> Task:
    """Add a tag."""
    return await task_service.add_tag(task_id=task_id, tag=payload.tag)


@router.delete("/{task_id}/tags/{tag}", response_model=Task)
async def delete_tag(task_id: str, tag: str) -> Task:
    """Remove a tag."""
    return await task_service.delete_tag(task_id=task_id, tag=tag)


@router.post("/{task_id}/time", response_model=Task)
async def log_time(task_id: str, payload: TimeLogCreate) -> Task:
    """Log minutes spent on a task."""
    return await task_service.log_time(task_id=task_id, minutes=payload.minutes)
