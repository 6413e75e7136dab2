"""Taskboard models — Task and User."""

from taskboard.models.task import (  # noqa: F401
    CardLevel,
    Level,
    NewTask,
    PriorityLevel,
    Task,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from taskboard.models.user import AuthResult, Role, User  # noqa: F401
