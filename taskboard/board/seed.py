"""Built-in board shown when the remote task list cannot be loaded."""

from typing import List

from taskboard.models.task import Task, TaskPriority, TaskStatus, TaskType

_SEED_ROWS = (
    {
        "id": 1,
        "title": "Design the dashboard UI/UX",
        "description": "Create the mockup and prototype",
        "status": TaskStatus.TODO,
        "priority": TaskPriority.HIGH,
        "assignee": "Somchai",
        "type": TaskType.DESIGN,
        "points": 5,
        "owner_id": 1,
    },
    {
        "id": 2,
        "title": "Build the authentication API",
        "description": "Issue JWT tokens and add middleware",
        "status": TaskStatus.TODO,
        "priority": TaskPriority.HIGH,
        "assignee": "Somying",
        "type": TaskType.TASK,
        "points": 8,
        "owner_id": 1,
    },
    {
        "id": 3,
        "title": "Fix mobile layout bug",
        "description": "Adjust the responsive design",
        "status": TaskStatus.IN_PROGRESS,
        "priority": TaskPriority.MEDIUM,
        "assignee": "Wichai",
        "type": TaskType.BUG,
        "points": 3,
        "owner_id": 2,
    },
)


def seed_tasks() -> List[Task]:
    """A fresh copy of the seed list; callers may mutate it freely."""
    return [Task(**row) for row in _SEED_ROWS]
