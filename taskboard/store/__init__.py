"""Taskboard store — row mapper, PostgREST table client and task store."""

from taskboard.store.table import TableClient  # noqa: F401
from taskboard.store.tasks import TaskStore  # noqa: F401

__all__ = ["TableClient", "TaskStore"]
