"""Taskboard auth — identity client, session object and route guard."""

from taskboard.auth.identity import IdentityClient, derive_role, map_identity_user  # noqa: F401
from taskboard.auth.session import (  # noqa: F401
    FileTokenStore,
    MemoryTokenStore,
    Session,
    guard_route,
)
