"""Taskboard board — controller, create/delete actions and the built-in seed list."""

from taskboard.board.actions import TaskActions  # noqa: F401
from taskboard.board.controller import BoardController  # noqa: F401
from taskboard.board.seed import seed_tasks  # noqa: F401
