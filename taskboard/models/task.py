"""Task model — the single persistent entity, its creation input and its sparse patch."""

from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class TaskStatus(str, Enum):
    """The three fixed lanes."""
    TODO = "todo"
    IN_PROGRESS = "inprogress"
    DONE = "done"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class TaskType(str, Enum):
    TASK = "task"
    BUG = "bug"
    STORY = "story"
    DESIGN = "design"


class Level(str, Enum):
    """Impact / urgency scale."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class PriorityLevel(str, Enum):
    P0 = "P0"
    P1 = "P1"
    P2 = "P2"
    P3 = "P3"


class CardLevel(str, Enum):
    EPIC = "epic"
    TASK = "task"
    BUG = "bug"
    STORY = "story"
    RISK = "risk"
    SUBTASK = "subtask"


LANE_ORDER = (TaskStatus.TODO, TaskStatus.IN_PROGRESS, TaskStatus.DONE)

# Fields that may appear in an insert or update payload besides owner_id.
CORE_FIELDS = ("title", "description", "status", "priority", "assignee", "type", "points")
OPTIONAL_FIELDS = (
    "reporter",
    "impact",
    "urgency",
    "priority_level",
    "planned_start_date",
    "planned_end_date",
    "actual_start_date",
    "actual_end_date",
    "planned_estimated_hours",
    "actual_estimated_hours",
    "labels",
    "card_level",
    "sprint_id",
    "dependencies",
)
EDITABLE_FIELDS = CORE_FIELDS + OPTIONAL_FIELDS


class TaskFields(BaseModel):
    """Every user-editable task field with its default."""

    title: str = Field(min_length=1, description="Task title")
    description: str = Field(min_length=1)
    status: TaskStatus = TaskStatus.TODO
    priority: TaskPriority = TaskPriority.MEDIUM
    type: TaskType = TaskType.TASK
    points: int = Field(default=1, ge=1, description="Story-point estimate")
    assignee: str = Field(min_length=1)
    reporter: Optional[str] = None
    impact: Optional[Level] = None
    urgency: Optional[Level] = None
    priority_level: Optional[PriorityLevel] = None
    card_level: Optional[CardLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    planned_estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_estimated_hours: Optional[float] = Field(default=None, ge=0)
    labels: Optional[List[str]] = None
    sprint_id: Optional[int] = None
    dependencies: Optional[List[int]] = None


class NewTask(TaskFields):
    """Creation input. The store assigns id and timestamps."""

    owner_id: Optional[int] = None


class Task(TaskFields):
    """A persisted task as read back from the store."""

    id: int
    owner_id: Optional[int] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    def editable_patch(self) -> "TaskPatch":
        """Patch carrying the core fields plus every optional field this task has set."""
        present = {
            name: getattr(self, name)
            for name in EDITABLE_FIELDS
            if name in CORE_FIELDS or name in self.model_fields_set
        }
        return TaskPatch.model_construct(**present)


class TaskPatch(BaseModel):
    """
    Sparse update. A field is written iff it was passed to the constructor.

    ``TaskPatch(reporter=None)`` clears the reporter; ``TaskPatch()`` leaves it
    alone. Presence is read from ``model_fields_set``. owner_id is not patchable.
    """

    title: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = Field(default=None, min_length=1)
    status: Optional[TaskStatus] = None
    priority: Optional[TaskPriority] = None
    type: Optional[TaskType] = None
    points: Optional[int] = Field(default=None, ge=1)
    assignee: Optional[str] = Field(default=None, min_length=1)
    reporter: Optional[str] = None
    impact: Optional[Level] = None
    urgency: Optional[Level] = None
    priority_level: Optional[PriorityLevel] = None
    card_level: Optional[CardLevel] = None
    planned_start_date: Optional[datetime] = None
    planned_end_date: Optional[datetime] = None
    actual_start_date: Optional[datetime] = None
    actual_end_date: Optional[datetime] = None
    planned_estimated_hours: Optional[float] = Field(default=None, ge=0)
    actual_estimated_hours: Optional[float] = Field(default=None, ge=0)
    labels: Optional[List[str]] = None
    sprint_id: Optional[int] = None
    dependencies: Optional[List[int]] = None

    @property
    def touched(self) -> List[str]:
        """Names of the explicitly passed fields, in declaration order."""
        return [name for name in EDITABLE_FIELDS if name in self.model_fields_set]
