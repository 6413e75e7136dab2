"""Task store — one remote round trip per task operation, no retries."""

from __future__ import annotations

import logging
from typing import List, Union

from taskboard.engine.errors import NotFoundError, StoreError
from taskboard.models.task import NewTask, Task, TaskPatch, TaskStatus
from taskboard.store.row_mapper import row_to_task, task_to_insert_payload, task_to_update_payload
from taskboard.store.table import TableClient

logger = logging.getLogger("taskboard.store.tasks")


class TaskStore:
    """CRUD over the ``tasks`` table, returning Task models."""

    def __init__(self, table: TableClient):
        self._table = table

    @property
    def table(self) -> TableClient:
        return self._table

    async def list_all(self) -> List[Task]:
        """Every task, ascending id. An empty table yields []."""
        rows = await self._table.select(order="id")
        return [row_to_task(row) for row in rows]

    async def get_by_id(self, task_id: int) -> Task:
        rows = await self._table.select(filters={"id": task_id})
        if not rows:
            raise NotFoundError(f"Task not found: {task_id}", task_id=task_id)
        return row_to_task(rows[0])

    async def create(self, new_task: NewTask) -> Task:
        """Insert the supplied fields and return the canonical stored task."""
        row = await self._table.insert(task_to_insert_payload(new_task))
        if row is None:
            raise StoreError(
                "Failed to create task",
                table=self._table.table,
                operation="insert",
            )
        task = row_to_task(row)
        logger.info("Created task %s (owner=%s)", task.id, task.owner_id)
        return task

    async def update(self, task_id: int, patch: TaskPatch) -> Task:
        """Apply a sparse patch. NotFoundError when no row has that id."""
        row = await self._table.update(task_to_update_payload(patch), filters={"id": task_id})
        if row is None:
            raise NotFoundError(f"Failed to update task: {task_id} not found", task_id=task_id)
        return row_to_task(row)

    async def delete(self, task_id: int) -> None:
        """Delete by id. Deleting a missing id matches zero rows and succeeds."""
        await self._table.delete(filters={"id": task_id})
        logger.info("Deleted task %s", task_id)

    async def list_by_status(self, status: Union[TaskStatus, str]) -> List[Task]:
        status = TaskStatus(status)
        rows = await self._table.select(filters={"status": status}, order="id")
        return [row_to_task(row) for row in rows]
