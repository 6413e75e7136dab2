"""Create and delete intents — the remote half of the flows the controller does not own."""

from __future__ import annotations

import logging
from typing import Any, Dict, Mapping, Optional, Union

from taskboard.board.controller import BoardController
from taskboard.engine.errors import TaskboardError
from taskboard.engine.logging import log_board_event
from taskboard.models.task import NewTask, Task
from taskboard.security.authorization import Action, is_allowed, require_access
from taskboard.store.tasks import TaskStore

logger = logging.getLogger("taskboard.board.actions")


class TaskActions:
    """Executes create/delete intents for the viewer of *controller*."""

    def __init__(self, store: TaskStore, controller: BoardController):
        self._store = store
        self._controller = controller

    async def create_task(self, fields: Union[NewTask, Mapping[str, Any]]) -> Task:
        """
        Create a task owned by the viewer, then reload the board.

        The reporter defaults to the viewer's name when not given; an explicit
        None is kept.

        Raises:
            AccessDeniedError if the viewer is not a member.
            StoreError if the insert fails.
        """
        viewer = self._controller.viewer
        require_access(viewer, Action.CREATE)

        data: Dict[str, Any] = (
            fields.model_dump(exclude_unset=True) if isinstance(fields, NewTask) else dict(fields)
        )
        data["owner_id"] = viewer.user_id
        if "reporter" not in data and viewer.name:
            data["reporter"] = viewer.name

        created = await self._store.create(NewTask(**data))
        self._controller.record_event(log_board_event("task_created", viewer.user_id, task_id=created.id))
        await self._controller.apply_create()
        return created

    async def delete_task(self, task_id: int) -> bool:
        """
        Delete remotely, then drop the task locally. Returns False and sets the
        controller notice when the gate refuses or the store call fails.
        """
        controller = self._controller
        task: Optional[Task] = controller.get(task_id)
        if task is None:
            return False
        if not is_allowed(controller.viewer, Action.DELETE, task):
            controller.deny(Action.DELETE, task)
            return False

        try:
            await self._store.delete(task_id)
        except TaskboardError as e:
            controller.notice = "Failed to delete task"
            logger.warning("Delete of task %s failed: %s", task_id, e.message)
            controller.record_event(log_board_event(
                "task_deleted", controller.viewer.user_id, task_id=task_id, outcome="failed",
                details={"error": e.message},
            ))
            return False

        controller.remove_task(task_id)
        controller.record_event(log_board_event("task_deleted", controller.viewer.user_id, task_id=task_id))
        return True
