"""
Taskboard Authorization Gate — owner + role check for task mutations.

Pure functions of (viewer id, viewer role, task owner id):

    member + owner  → EDITOR           (edit any field, move, delete)
    guest  + owner  → READ_ONLY_OWNER  (view only; guests never get write rights)
    anyone else     → VIEWER           (view only)

Creating a task checks the role alone: only members may create.

This gate decides whether a mutation request is sent at all. The backend's
row-level security policies remain the authority; a role held client-side is
never trusted for enforcement.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Union

from taskboard.engine.errors import AccessDeniedError
from taskboard.models.task import Task
from taskboard.models.user import Role

logger = logging.getLogger("taskboard.security.authorization")


class Access(str, Enum):
    EDITOR = "editor"
    READ_ONLY_OWNER = "read_only_owner"
    VIEWER = "viewer"


class Action(str, Enum):
    EDIT = "edit"
    DELETE = "delete"
    MOVE = "move"
    CREATE = "create"


DENIAL_MESSAGES = {
    Action.EDIT: "You can only edit your own tasks",
    Action.MOVE: "You can only edit your own tasks",
    Action.DELETE: "You can only delete your own tasks",
    Action.CREATE: "Only members can create tasks",
}


@dataclass(frozen=True)
class Viewer:
    """The signed-in user as seen by the gate, resolved once per session."""

    user_id: int
    role: Role
    name: str = ""

    @property
    def is_member(self) -> bool:
        return self.role == Role.MEMBER


def resolve_access(viewer_id: int, viewer_role: Union[Role, str], owner_id: Optional[int]) -> Access:
    if owner_id is None or viewer_id != owner_id:
        return Access.VIEWER
    if Role(viewer_role) == Role.MEMBER:
        return Access.EDITOR
    return Access.READ_ONLY_OWNER


def access_for(viewer: Viewer, task: Task) -> Access:
    return resolve_access(viewer.user_id, viewer.role, task.owner_id)


def can_edit(access: Access) -> bool:
    return access == Access.EDITOR


def can_delete(access: Access) -> bool:
    return access == Access.EDITOR


def can_change_status(access: Access) -> bool:
    return access == Access.EDITOR


def can_create(role: Union[Role, str]) -> bool:
    return Role(role) == Role.MEMBER


def is_allowed(viewer: Viewer, action: Action, task: Optional[Task] = None) -> bool:
    """Single entry point for every intent."""
    if action == Action.CREATE:
        return can_create(viewer.role)
    if task is None:
        return False
    return access_for(viewer, task) == Access.EDITOR


def require_access(viewer: Viewer, action: Action, task: Optional[Task] = None) -> None:
    """
    Raise AccessDeniedError unless *viewer* may perform *action*.

    Raises:
        AccessDeniedError with the user-facing message for the action.
    """
    if is_allowed(viewer, action, task):
        return
    raise AccessDeniedError(
        DENIAL_MESSAGES[action],
        user_id=viewer.user_id,
        role=viewer.role.value,
        action=action.value,
        task_id=task.id if task is not None else None,
    )


def access_label(access: Access, role: Union[Role, str]) -> str:
    """Badge text shown next to a task: ownership first, then why it is locked."""
    owner_badge = "Your Task" if access != Access.VIEWER else "Viewing Only"
    if access == Access.EDITOR:
        return owner_badge
    locked = "Guest users cannot edit" if Role(role) == Role.GUEST else "Read-only"
    return f"{owner_badge} ({locked})"
