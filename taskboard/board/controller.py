"""
Board controller — the viewer's in-memory task list and its optimistic mutations.

Each mutation kind runs its own saga:

    status change:  gate → snapshot → apply locally → update → confirm | restore snapshot
    edit:           gate → update → apply locally (kept even when the update fails)
    delete:         local removal only, after the caller's remote delete succeeded
    create:         full reload, so server-assigned id and timestamps are picked up

The asymmetry between status change and edit is intentional: a failed move is
undone, a failed edit is never thrown away. Failures become an inline
``notice`` instead of an exception.

No locking and no version checks: when two mutations of the same task race,
whichever response arrives last determines the local state.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from taskboard.board.seed import seed_tasks
from taskboard.engine.errors import TaskboardError
from taskboard.engine.logging import AsyncLogQueue, LogEntry, log, log_board_event, log_security_event
from taskboard.models.task import LANE_ORDER, Task, TaskPatch, TaskPriority, TaskStatus
from taskboard.security.authorization import (
    DENIAL_MESSAGES,
    Access,
    Action,
    Viewer,
    access_for,
    is_allowed,
)
from taskboard.store.tasks import TaskStore

logger = logging.getLogger("taskboard.board.controller")

ALL = "all"


class BoardController:
    """Owns the task list for one viewer session."""

    def __init__(
        self,
        store: TaskStore,
        viewer: Viewer,
        seed_on_failure: bool = True,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        self._store = store
        self._viewer = viewer
        self._seed_on_failure = seed_on_failure
        self._log_queue = log_queue
        self._tasks: List[Task] = []
        self.notice: Optional[str] = None
        self.degraded: bool = False
        self.editing: Optional[Task] = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def viewer(self) -> Viewer:
        return self._viewer

    @property
    def tasks(self) -> List[Task]:
        return list(self._tasks)

    def get(self, task_id: int) -> Optional[Task]:
        for task in self._tasks:
            if task.id == task_id:
                return task
        return None

    def access_for(self, task: Task) -> Access:
        return access_for(self._viewer, task)

    def clear_notice(self) -> None:
        self.notice = None

    def filtered(self, priority_filter: Union[TaskPriority, str] = ALL) -> List[Task]:
        """All tasks, or only those of one priority."""
        if priority_filter == ALL:
            return self.tasks
        priority = TaskPriority(priority_filter)
        return [t for t in self._tasks if t.priority == priority]

    def lanes(self, priority_filter: Union[TaskPriority, str] = ALL) -> Dict[TaskStatus, List[Task]]:
        """Tasks grouped into the three lanes, in board order."""
        grouped: Dict[TaskStatus, List[Task]] = {status: [] for status in LANE_ORDER}
        for task in self.filtered(priority_filter):
            if task.status in grouped:
                grouped[task.status].append(task)
        return grouped

    def record_event(self, entry: LogEntry) -> None:
        if self._log_queue is not None:
            self._log_queue.push(entry)
        else:
            log(entry)

    def deny(self, action: Action, task: Task) -> List[Task]:
        access = self.access_for(task)
        self.notice = DENIAL_MESSAGES[action]
        logger.warning(
            "Denied %s on task %s for user %s (%s)",
            action.value, task.id, self._viewer.user_id, access.value,
        )
        self.record_event(log_security_event(
            action.value, self._viewer.user_id, self._viewer.role.value,
            task_id=task.id, owner_id=task.owner_id, access=access.value,
        ))
        return self.tasks

    def _replace(self, updated: Task) -> None:
        self._tasks = [updated if t.id == updated.id else t for t in self._tasks]

    # ------------------------------------------------------------------
    # Load
    # ------------------------------------------------------------------

    async def load(self) -> List[Task]:
        """
        Replace local state with the remote list.

        On failure the board falls back to the built-in seed list and is marked
        degraded, so it is never blank.
        """
        try:
            tasks = await self._store.list_all()
        except TaskboardError as e:
            if not self._seed_on_failure:
                raise
            logger.warning("Task list unavailable, showing built-in board: %s", e.message)
            self._tasks = seed_tasks()
            self.degraded = True
            self.record_event(log_board_event(
                "board_loaded", self._viewer.user_id, outcome="degraded",
                details={"error": e.message},
            ))
            return self.tasks

        self._tasks = tasks
        self.degraded = False
        return self.tasks

    async def apply_create(self) -> List[Task]:
        """A task was created remotely; reload rather than insert locally."""
        return await self.load()

    # ------------------------------------------------------------------
    # Status change: rolls back on failure
    # ------------------------------------------------------------------

    async def apply_status_change(self, task_id: int, new_status: Union[TaskStatus, str]) -> List[Task]:
        new_status = TaskStatus(new_status)
        task = self.get(task_id)
        if task is None:
            return self.tasks
        if not is_allowed(self._viewer, Action.MOVE, task):
            return self.deny(Action.MOVE, task)

        snapshot = list(self._tasks)
        self._replace(task.model_copy(update={"status": new_status}))

        try:
            await self._store.update(task_id, TaskPatch(status=new_status))
        except TaskboardError as e:
            self._tasks = snapshot
            self.notice = f"Failed to move task: {e.message}"
            logger.warning("Status change of task %s reverted: %s", task_id, e.message)
            self.record_event(log_board_event(
                "status_changed", self._viewer.user_id, task_id=task_id, outcome="rolled_back",
                details={"status": new_status.value, "error": e.message},
            ))
            return self.tasks

        self.record_event(log_board_event(
            "status_changed", self._viewer.user_id, task_id=task_id,
            details={"from": getattr(task.status, "value", task.status), "to": new_status.value},
        ))
        return self.tasks

    # ------------------------------------------------------------------
    # Edit: never discards the user's input
    # ------------------------------------------------------------------

    def open_edit(self, task_id: int) -> Optional[Task]:
        self.editing = self.get(task_id)
        return self.editing

    def close_edit(self) -> None:
        self.editing = None

    async def apply_edit(self, updated: Task) -> List[Task]:
        current = self.get(updated.id)
        if current is None:
            self.close_edit()
            return self.tasks
        if not is_allowed(self._viewer, Action.EDIT, current):
            return self.deny(Action.EDIT, current)

        if current.owner_id != updated.owner_id:
            updated = updated.model_copy(update={"owner_id": current.owner_id})

        try:
            await self._store.update(updated.id, updated.editable_patch())
        except TaskboardError as e:
            self.notice = f"Saved locally, not confirmed by the server: {e.message}"
            logger.warning("Edit of task %s kept locally: %s", updated.id, e.message)
            self.record_event(log_board_event(
                "task_edited", self._viewer.user_id, task_id=updated.id, outcome="kept_locally",
                details={"error": e.message},
            ))
        else:
            self.record_event(log_board_event("task_edited", self._viewer.user_id, task_id=updated.id))

        self._replace(updated)
        self.close_edit()
        return self.tasks

    # ------------------------------------------------------------------
    # Delete: local half only
    # ------------------------------------------------------------------

    def remove_task(self, task_id: int) -> List[Task]:
        """Drop a task from local state. The remote delete is the caller's job."""
        self._tasks = [t for t in self._tasks if t.id != task_id]
        if self.editing is not None and self.editing.id == task_id:
            self.close_edit()
        return self.tasks
