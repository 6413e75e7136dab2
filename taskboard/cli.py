"""
Taskboard CLI — sign in and work the board from a terminal.

Commands:
- taskboard register  — Create an account (member on the organization domain, guest otherwise)
- taskboard login     — Sign in and store the session token
- taskboard logout    — Sign out and forget the token
- taskboard whoami    — Show the signed-in user and role
- taskboard board     — Print the three lanes
- taskboard create    — Create a task (members only)
- taskboard move      — Move a task to another lane
- taskboard edit      — Change fields of a task
- taskboard delete    — Delete a task
"""

from __future__ import annotations

import argparse
import asyncio
import getpass
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

import httpx

from taskboard.auth.identity import IdentityClient
from taskboard.auth.session import FileTokenStore, Session
from taskboard.board.actions import TaskActions
from taskboard.board.controller import BoardController
from taskboard.engine.config import TaskboardConfig, load_config
from taskboard.engine.errors import ConfigError, TaskboardError
from taskboard.engine.logging import init_logging, log, log_system_event, shutdown_logging
from taskboard.models.task import (
    CardLevel,
    Level,
    PriorityLevel,
    Task,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    TaskType,
)
from taskboard.security.authorization import access_label
from taskboard.store.table import TableClient
from taskboard.store.tasks import TaskStore

logger = logging.getLogger("taskboard.cli")

LANE_TITLES = {
    TaskStatus.TODO: "TO DO",
    TaskStatus.IN_PROGRESS: "IN PROGRESS",
    TaskStatus.DONE: "DONE",
}

_STATUSES = [s.value for s in TaskStatus]
_PRIORITIES = [p.value for p in TaskPriority]


def _optional_date(value: str) -> Optional[datetime]:
    return datetime.fromisoformat(value) if value.strip() else None


def _optional_float(value: str) -> Optional[float]:
    return float(value) if value.strip() else None


def _label_list(value: str) -> List[str]:
    return [v.strip() for v in value.split(",") if v.strip()]


# option dest -> task field
_CLEARABLE_OPTIONS = {
    "planned_start": "planned_start_date",
    "planned_end": "planned_end_date",
    "planned_hours": "planned_estimated_hours",
    "actual_hours": "actual_estimated_hours",
    "labels": "labels",
}


def _add_task_field_options(parser: argparse.ArgumentParser, required: bool) -> None:
    parser.add_argument("--title", required=required)
    parser.add_argument("--description", required=required)
    parser.add_argument("--assignee", required=required)
    parser.add_argument("--status", choices=_STATUSES)
    parser.add_argument("--priority", choices=_PRIORITIES)
    parser.add_argument("--type", choices=[t.value for t in TaskType])
    parser.add_argument("--points", type=int)
    parser.add_argument("--reporter")
    parser.add_argument("--impact", choices=[v.value for v in Level])
    parser.add_argument("--urgency", choices=[v.value for v in Level])
    parser.add_argument("--priority-level", choices=[v.value for v in PriorityLevel])
    parser.add_argument("--card-level", choices=[v.value for v in CardLevel])
    # Absent when not passed; an empty value clears the field.
    parser.add_argument("--planned-start", type=_optional_date, default=argparse.SUPPRESS,
                        help="ISO date, e.g. 2026-03-01 (empty clears it)")
    parser.add_argument("--planned-end", type=_optional_date, default=argparse.SUPPRESS,
                        help="ISO date (empty clears it)")
    parser.add_argument("--planned-hours", type=_optional_float, default=argparse.SUPPRESS)
    parser.add_argument("--actual-hours", type=_optional_float, default=argparse.SUPPRESS)
    parser.add_argument("--labels", type=_label_list, default=argparse.SUPPRESS,
                        help="Comma-separated labels (empty clears them)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="taskboard",
        description="Taskboard — kanban task tracker",
    )
    parser.add_argument("--config", help="Path to taskboard.yaml (default: auto-discover)")
    parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    register_parser = subparsers.add_parser("register", help="Create an account")
    register_parser.add_argument("email")
    register_parser.add_argument("name")
    register_parser.add_argument("--password", help="Prompted if not provided")

    login_parser = subparsers.add_parser("login", help="Sign in")
    login_parser.add_argument("email")
    login_parser.add_argument("--password", help="Prompted if not provided")

    subparsers.add_parser("logout", help="Sign out")
    subparsers.add_parser("whoami", help="Show the signed-in user")

    board_parser = subparsers.add_parser("board", help="Print the board")
    board_parser.add_argument("--filter", choices=["all", *_PRIORITIES], default="all")

    create_parser = subparsers.add_parser("create", help="Create a task (members only)")
    _add_task_field_options(create_parser, required=True)

    move_parser = subparsers.add_parser("move", help="Move a task to another lane")
    move_parser.add_argument("task_id", type=int)
    move_parser.add_argument("status", choices=_STATUSES)

    edit_parser = subparsers.add_parser("edit", help="Edit task fields")
    edit_parser.add_argument("task_id", type=int)
    _add_task_field_options(edit_parser, required=False)

    delete_parser = subparsers.add_parser("delete", help="Delete a task")
    delete_parser.add_argument("task_id", type=int)

    return parser


# ---------------------------------------------------------------------------
# Runtime wiring
# ---------------------------------------------------------------------------

class Runtime:
    """Identity + table clients and the session for one CLI invocation."""

    def __init__(self, config: TaskboardConfig, transport: Optional[httpx.AsyncBaseTransport] = None):
        backend = config.backend
        self.config = config
        self.identity = IdentityClient(
            backend.auth_url,
            api_key=backend.api_key,
            organization_domain=config.auth.organization_domain,
            timeout=backend.timeout,
            transport=transport,
        )
        self.session = Session(
            self.identity,
            token_store=FileTokenStore(config.auth.token_path),
            password_min_length=config.auth.password_min_length,
        )
        self.table = TableClient(
            backend.rest_url,
            backend.table,
            api_key=backend.api_key,
            timeout=backend.timeout,
            transport=transport,
        )
        self.store = TaskStore(self.table)

    async def open_board(self) -> BoardController:
        """Resolve the stored session and load the board for its viewer."""
        user = await self.session.initialize()
        if user is None:
            raise TaskboardError("Not signed in. Run 'taskboard login' first.")
        self.table.set_access_token(self.session.token)
        controller = BoardController(
            self.store,
            self.session.viewer,
            seed_on_failure=self.config.board.seed_on_failure,
        )
        logger.debug("Loading board for user %s", self.session.user.id)
        await controller.load()
        return controller

    async def aclose(self) -> None:
        await self.identity.aclose()
        await self.table.aclose()

    async def __aenter__(self) -> "Runtime":
        return self

    async def __aexit__(self, *exc: Any) -> None:
        await self.aclose()


def _task_fields(args: argparse.Namespace) -> Dict[str, Any]:
    """Collect only the options the user actually passed."""
    fields: Dict[str, Any] = {}
    for name in ("title", "description", "assignee", "status", "priority", "type",
                 "points", "reporter", "impact", "urgency", "priority_level", "card_level"):
        value = getattr(args, name, None)
        if value is not None:
            fields[name] = value
    for option, name in _CLEARABLE_OPTIONS.items():
        if hasattr(args, option):
            fields[name] = getattr(args, option)
    return fields


def render_board(controller: BoardController, priority_filter: str = "all") -> List[str]:
    lines: List[str] = []
    if controller.degraded:
        lines.append("[WARN] Could not load tasks from the server; showing the built-in board.")
    for status, tasks in controller.lanes(priority_filter).items():
        lines.append(f"{LANE_TITLES[status]} ({len(tasks)})")
        if not tasks:
            lines.append("  No tasks")
        for task in tasks:
            lines.append(_render_task(controller, task))
    return lines


def _render_task(controller: BoardController, task: Task) -> str:
    priority = getattr(task.priority, "value", task.priority)
    badge = access_label(controller.access_for(task), controller.viewer.role)
    return f"  #{task.id} [{priority}] {task.title} ({task.assignee}) {task.points}pt  {badge}"


def _print_notice(controller: BoardController) -> int:
    if controller.notice:
        print(f"[ERROR] {controller.notice}")
        return 1
    return 0


# ---------------------------------------------------------------------------
# Commands
# ---------------------------------------------------------------------------

async def cmd_register(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    password = args.password
    confirm = password
    if not password:
        password = getpass.getpass("  Password: ")
        confirm = getpass.getpass("  Confirm password: ")
    async with Runtime(config, transport) as rt:
        user = await rt.session.register(args.email, args.name, password, confirm)
    print(f"[OK] Registered {user.email} as {user.role.value}")
    return 0


async def cmd_login(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    password = args.password or getpass.getpass("  Password: ")
    async with Runtime(config, transport) as rt:
        user = await rt.session.login(args.email, password)
    print(f"[OK] Signed in as {user.name} ({user.role.value})")
    return 0


async def cmd_logout(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        await rt.session.initialize()
        await rt.session.logout()
    print("[OK] Signed out")
    return 0


async def cmd_whoami(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        user = await rt.session.initialize()
    if user is None:
        print("Not signed in")
        return 1
    print(f"{user.name} <{user.email}> — {user.role.value}")
    return 0


async def cmd_board(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        controller = await rt.open_board()
    for line in render_board(controller, args.filter):
        print(line)
    return 0


async def cmd_create(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        controller = await rt.open_board()
        task = await TaskActions(rt.store, controller).create_task(_task_fields(args))
    print(f"[OK] Created task #{task.id}: {task.title}")
    return 0


async def cmd_move(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        controller = await rt.open_board()
        if controller.get(args.task_id) is None:
            print(f"[ERROR] Task not found: {args.task_id}")
            return 1
        await controller.apply_status_change(args.task_id, args.status)
    if _print_notice(controller):
        return 1
    print(f"[OK] Task #{args.task_id} moved to {LANE_TITLES[TaskStatus(args.status)]}")
    return 0


async def cmd_edit(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        controller = await rt.open_board()
        current = controller.open_edit(args.task_id)
        if current is None:
            print(f"[ERROR] Task not found: {args.task_id}")
            return 1
        patch = TaskPatch(**_task_fields(args))
        changes = {name: getattr(patch, name) for name in patch.touched}
        await controller.apply_edit(current.model_copy(update=changes))
    if _print_notice(controller):
        return 1
    print(f"[OK] Task #{args.task_id} updated")
    return 0


async def cmd_delete(args: argparse.Namespace, config: TaskboardConfig, transport=None) -> int:
    async with Runtime(config, transport) as rt:
        controller = await rt.open_board()
        if controller.get(args.task_id) is None:
            print(f"[ERROR] Task not found: {args.task_id}")
            return 1
        deleted = await TaskActions(rt.store, controller).delete_task(args.task_id)
    if not deleted:
        return _print_notice(controller) or 1
    print(f"[OK] Task #{args.task_id} deleted")
    return 0


COMMANDS = {
    "register": cmd_register,
    "login": cmd_login,
    "logout": cmd_logout,
    "whoami": cmd_whoami,
    "board": cmd_board,
    "create": cmd_create,
    "move": cmd_move,
    "edit": cmd_edit,
    "delete": cmd_delete,
}


def main(argv: Optional[list] = None) -> int:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    handler = COMMANDS.get(args.command)
    if handler is None:
        parser.print_help()
        return 0

    try:
        config = load_config(args.config)
    except ConfigError as e:
        print(f"[ERROR] {e.message}")
        return 1

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else config.logging.level,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    if config.logging.structured:
        queue_cfg = config.logging.async_queue
        init_logging(
            log_dir=config.logging.directory,
            flush_interval_ms=queue_cfg.flush_interval_ms,
            flush_batch_size=queue_cfg.flush_batch_size,
            max_queue_size=queue_cfg.max_queue_size,
        )
        log(log_system_event("cli_command", details={"command": args.command, "environment": config.environment}))

    try:
        return asyncio.run(handler(args, config))
    except TaskboardError as e:
        print(f"[ERROR] {e.message}")
        return 1
    except ValueError as e:
        print(f"[ERROR] {e}")
        return 1
    finally:
        shutdown_logging()


if __name__ == "__main__":
    raise SystemExit(main())
