"""
Taskboard Session — explicit auth state with init and teardown.

Lifecycle:
    initialize()  → resolve a stored token to a User, or clear it
    login()/register() → store the new token, hold the User
    logout()      → sign out remotely, clear token and User

The session is constructed once and passed to whatever needs the viewer;
nothing reads auth state from module globals.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Dict, Optional
from urllib.parse import urlencode

from taskboard.auth.identity import IdentityClient
from taskboard.engine.errors import AuthError, ValidationError
from taskboard.models.user import User
from taskboard.security.authorization import Viewer

logger = logging.getLogger("taskboard.auth.session")

PUBLIC_PREFIXES = ("/login", "/register", "/_next")
PUBLIC_PATHS = ("/favicon.ico",)
LOGIN_PATH = "/login"


# ---------------------------------------------------------------------------
# Token stores
# ---------------------------------------------------------------------------

class MemoryTokenStore:
    """Keeps the token for the lifetime of the process."""

    def __init__(self, token: Optional[str] = None):
        self._token = token

    def load(self) -> Optional[str]:
        return self._token

    def save(self, token: str) -> None:
        self._token = token

    def clear(self) -> None:
        self._token = None


class FileTokenStore:
    """Persists the token in a small JSON file (0600) between CLI runs."""

    def __init__(self, path: str = "~/.taskboard/session.json"):
        self._path = Path(path).expanduser()

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[str]:
        if not self._path.exists():
            return None
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            logger.warning("Ignoring unreadable session file %s: %s", self._path, e)
            return None
        token = data.get("token") if isinstance(data, dict) else None
        return token or None

    def save(self, token: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(self._path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        # An existing file keeps its old mode on open; tighten it before writing.
        os.fchmod(fd, 0o600)
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(json.dumps({"token": token}))

    def clear(self) -> None:
        if self._path.exists():
            self._path.unlink()


# ---------------------------------------------------------------------------
# Session
# ---------------------------------------------------------------------------

class Session:
    """The signed-in user for one client, backed by a token store."""

    def __init__(
        self,
        identity: IdentityClient,
        token_store=None,
        password_min_length: int = 6,
    ):
        self._identity = identity
        self._tokens = token_store or MemoryTokenStore()
        self._password_min_length = password_min_length
        self._user: Optional[User] = None
        self._token: Optional[str] = None

    @property
    def user(self) -> Optional[User]:
        return self._user

    @property
    def token(self) -> Optional[str]:
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._user is not None

    @property
    def viewer(self) -> Viewer:
        if self._user is None:
            raise AuthError("User not authenticated")
        return Viewer(user_id=self._user.id, role=self._user.role, name=self._user.name)

    async def initialize(self) -> Optional[User]:
        """Resolve a previously stored token. Any failure means not authenticated."""
        token = self._tokens.load()
        if not token:
            return None
        try:
            user = await self._identity.get_current_user(token)
        except AuthError as e:
            logger.info("Stored session rejected: %s", e.message)
            self._tokens.clear()
            self._user, self._token = None, None
            return None
        self._user, self._token = user, token
        return user

    async def login(self, email: str, password: str) -> User:
        result = await self._identity.sign_in(email, password)
        self._start(result.token, result.user)
        return result.user

    async def register(self, email: str, name: str, password: str, confirm_password: str) -> User:
        """Validate the form locally, then sign up and start the session."""
        if password != confirm_password:
            raise ValidationError("Passwords do not match", field="confirm_password")
        if len(password) < self._password_min_length:
            raise ValidationError(
                f"Password must be at least {self._password_min_length} characters",
                field="password",
            )
        result = await self._identity.sign_up(email, password, name)
        self._start(result.token, result.user)
        return result.user

    async def logout(self) -> None:
        """Teardown. Local state is cleared even when the remote sign-out fails."""
        token = self._token
        try:
            if token:
                await self._identity.sign_out(token)
        finally:
            self._tokens.clear()
            self._user, self._token = None, None

    def _start(self, token: str, user: User) -> None:
        self._tokens.save(token)
        self._user, self._token = user, token
        logger.info("Session started for %s (%s)", user.email, user.role.value)


# ---------------------------------------------------------------------------
# Session boundary
# ---------------------------------------------------------------------------

def is_public_path(path: str) -> bool:
    return path.startswith(PUBLIC_PREFIXES) or path in PUBLIC_PATHS


def guard_route(path: str, token: Optional[str]) -> Optional[str]:
    """
    Return None when *path* may be served, else the login redirect carrying the
    requested path as ``from``. Only token presence is checked.
    """
    if is_public_path(path) or token:
        return None
    return f"{LOGIN_PATH}?{urlencode({'from': path})}"


def login_redirect_target(query: Dict[str, str], default: str = "/") -> str:
    """Where to go after login: the ``from`` hint when it is a local path."""
    target = query.get("from") or default
    if not target.startswith("/") or target.startswith("//"):
        return default
    return target
