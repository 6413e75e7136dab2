"""Unit tests for taskboard.security.authorization — owner + role gate."""

import itertools
import pytest

from taskboard.engine.errors import AccessDeniedError
from taskboard.models.task import Task
from taskboard.models.user import Role
from taskboard.security.authorization import (
    DENIAL_MESSAGES,
    Access,
    Action,
    Viewer,
    access_for,
    access_label,
    can_change_status,
    can_create,
    can_delete,
    can_edit,
    is_allowed,
    require_access,
    resolve_access,
)


def _task(owner_id):
    return Task(id=1, title="T", description="D", assignee="A", owner_id=owner_id)


class TestResolveAccess:
    def test_member_owner_is_editor(self):
        assert resolve_access(1, Role.MEMBER, 1) is Access.EDITOR

    def test_guest_owner_is_read_only(self):
        assert resolve_access(3, Role.GUEST, 3) is Access.READ_ONLY_OWNER

    @pytest.mark.parametrize("role", [Role.MEMBER, Role.GUEST])
    def test_non_owner_is_viewer(self, role):
        assert resolve_access(1, role, 2) is Access.VIEWER

    def test_unowned_task_is_viewer(self):
        assert resolve_access(0, Role.MEMBER, None) is Access.VIEWER

    def test_role_as_string(self):
        assert resolve_access(1, "member", 1) is Access.EDITOR

    @pytest.mark.parametrize("viewer_id,role,owner_id", list(itertools.product(
        [0, 1, 2], [Role.MEMBER, Role.GUEST], [None, 0, 1, 2],
    )))
    def test_write_rights_require_member_owner(self, viewer_id, role, owner_id):
        access = resolve_access(viewer_id, role, owner_id)
        allowed = role is Role.MEMBER and owner_id is not None and viewer_id == owner_id
        assert can_edit(access) is allowed
        assert can_delete(access) is allowed
        assert can_change_status(access) is allowed


class TestCreate:
    def test_only_members_create(self):
        assert can_create(Role.MEMBER) is True
        assert can_create(Role.GUEST) is False
        assert can_create("guest") is False


class TestGate:
    def setup_method(self):
        self.member = Viewer(user_id=1, role=Role.MEMBER, name="Alice")
        self.guest = Viewer(user_id=3, role=Role.GUEST, name="Gina")

    def test_viewer_is_member(self):
        assert self.member.is_member
        assert not self.guest.is_member

    def test_access_for(self):
        assert access_for(self.member, _task(1)) is Access.EDITOR
        assert access_for(self.guest, _task(3)) is Access.READ_ONLY_OWNER

    @pytest.mark.parametrize("action", [Action.EDIT, Action.MOVE, Action.DELETE])
    def test_is_allowed_task_actions(self, action):
        assert is_allowed(self.member, action, _task(1))
        assert not is_allowed(self.member, action, _task(2))
        assert not is_allowed(self.guest, action, _task(3))
        assert not is_allowed(self.member, action, None)

    def test_is_allowed_create(self):
        assert is_allowed(self.member, Action.CREATE)
        assert not is_allowed(self.guest, Action.CREATE)

    def test_require_access_passes(self):
        require_access(self.member, Action.EDIT, _task(1))

    def test_require_access_raises_with_message(self):
        with pytest.raises(AccessDeniedError) as exc_info:
            require_access(self.member, Action.DELETE, _task(2))
        err = exc_info.value
        assert err.message == "You can only delete your own tasks"
        assert err.user_id == 1
        assert err.role == "member"
        assert err.action == "delete"
        assert err.context["task_id"] == 1

    def test_require_access_create(self):
        with pytest.raises(AccessDeniedError, match="Only members can create tasks"):
            require_access(self.guest, Action.CREATE)

    def test_denial_messages_cover_every_action(self):
        assert set(DENIAL_MESSAGES) == set(Action)
        assert DENIAL_MESSAGES[Action.MOVE] == DENIAL_MESSAGES[Action.EDIT]


class TestAccessLabel:
    def test_editor(self):
        assert access_label(Access.EDITOR, Role.MEMBER) == "Your Task"

    def test_guest_owner(self):
        assert access_label(Access.READ_ONLY_OWNER, Role.GUEST) == "Your Task (Guest users cannot edit)"

    def test_viewer(self):
        assert access_label(Access.VIEWER, Role.MEMBER) == "Viewing Only (Read-only)"
        assert access_label(Access.VIEWER, Role.GUEST) == "Viewing Only (Guest users cannot edit)"
