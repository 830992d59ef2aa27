"""Domain models and DTOs."""

from src.domain.create_models import SubtaskCreate, TagCreate, TaskCreate, TimeLogCreate
from src.domain.task import Attachment, Category, Priority, Recurrence, Subtask, Task
from src.domain.update_models import BulkDelete, SubtaskUpdate, TaskReplace


__all__ = [
    "Attachment",
    "BulkDelete",
    "Category",
    "Priority",
    "Recurrence",
    "Subtask",
    "SubtaskCreate",
    "SubtaskUpdate",
    "TagCreate",
    "Task",
    "TaskCreate",
    "TaskReplace",
    "TimeLogCreate",
]
