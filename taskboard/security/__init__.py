"""Taskboard security — authorization gate."""

from taskboard.security.authorization import (  # noqa: F401
    Access,
    Action,
    Viewer,
    access_for,
    can_create,
    require_access,
    resolve_access,
)
