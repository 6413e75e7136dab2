"""
Identity client — sign-up, sign-in, sign-out and current-user against the
hosted GoTrue-style identity API (``{backend}/auth/v1``).

Role derivation lives here: a new identity is a ``member`` when its email is
on the organization domain and a ``guest`` otherwise. The role is written to
the profile metadata at sign-up and read back from there afterwards.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

import httpx

from taskboard.engine.errors import AuthError
from taskboard.engine.logging import AsyncLogQueue, LogEntry, log, log_auth_event
from taskboard.models.user import AuthResult, Role, User

logger = logging.getLogger("taskboard.auth.identity")


def derive_role(email: str, organization_domain: str) -> Role:
    """member iff the address ends with @<organization_domain>."""
    if email.endswith(f"@{organization_domain}"):
        return Role.MEMBER
    return Role.GUEST


def map_identity_user(raw: Mapping[str, Any], organization_domain: str) -> User:
    """
    Build a User from the identity provider's user object.

    A valid stored role wins; otherwise the domain rule is applied. The numeric
    id comes from ``user_id`` in app or profile metadata (0 when absent).
    """
    metadata = raw.get("user_metadata") or {}
    app_metadata = raw.get("app_metadata") or {}
    email = raw.get("email") or ""

    stored_role = metadata.get("role")
    if stored_role in (Role.MEMBER.value, Role.GUEST.value):
        role = Role(stored_role)
    else:
        role = derive_role(email, organization_domain)

    numeric_id = app_metadata.get("user_id", metadata.get("user_id", 0))
    try:
        numeric_id = int(numeric_id)
    except (TypeError, ValueError):
        numeric_id = 0

    created_at: Optional[datetime] = None
    if raw.get("created_at"):
        try:
            created_at = datetime.fromisoformat(str(raw["created_at"]))
        except ValueError:
            created_at = None

    return User(
        id=numeric_id,
        email=email,
        name=metadata.get("name") or email,
        role=role,
        auth_id=raw.get("id"),
        created_at=created_at,
    )


def _provider_message(response: httpx.Response, default: str) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or default
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return default


class IdentityClient:
    """
    Async client for the identity service.

    Any non-success is raised as AuthError carrying the provider's message.
    """

    def __init__(
        self,
        auth_url: str,
        api_key: str = "",
        organization_domain: str = "botnoigroup.com",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        log_queue: Optional[AsyncLogQueue] = None,
    ):
        self._api_key = api_key
        self._organization_domain = organization_domain
        self._log_queue = log_queue
        self._client = httpx.AsyncClient(
            base_url=auth_url.rstrip("/"),
            timeout=timeout,
            transport=transport,
        )

    @property
    def organization_domain(self) -> str:
        return self._organization_domain

    def _emit(self, entry: LogEntry) -> None:
        if self._log_queue is not None:
            self._log_queue.push(entry)
        else:
            log(entry)

    def _headers(self, token: Optional[str] = None) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self._api_key:
            headers["apikey"] = self._api_key
        bearer = token or self._api_key
        if bearer:
            headers["Authorization"] = f"Bearer {bearer}"
        return headers

    async def _call(
        self,
        method: str,
        path: str,
        default_error: str,
        json_body: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, str]] = None,
        token: Optional[str] = None,
    ) -> Dict[str, Any]:
        try:
            response = await self._client.request(
                method, path, json=json_body, params=params, headers=self._headers(token),
            )
        except httpx.HTTPError as e:
            raise AuthError(f"{default_error}: {e}") from e

        if response.status_code >= 400:
            raise AuthError(
                _provider_message(response, default_error),
                status_code=response.status_code,
            )
        if not response.content:
            return {}
        try:
            body = response.json()
        except ValueError as e:
            raise AuthError(default_error, status_code=response.status_code) from e
        return body if isinstance(body, dict) else {}

    def _session_result(self, body: Mapping[str, Any], default_error: str) -> AuthResult:
        raw_user = body.get("user")
        token = body.get("access_token")
        if not raw_user or not token:
            raise AuthError(default_error)
        return AuthResult(user=map_identity_user(raw_user, self._organization_domain), token=token)

    async def sign_up(self, email: str, password: str, name: str) -> AuthResult:
        """Register a new identity; the derived role is stored in its profile metadata."""
        role = derive_role(email, self._organization_domain)
        try:
            body = await self._call(
                "POST", "/signup", "Registration failed",
                json_body={"email": email, "password": password, "data": {"name": name, "role": role.value}},
            )
            result = self._session_result(body, "Registration failed")
        except AuthError as e:
            self._emit(log_auth_event("sign_up", email=email, success=False, error=e.message))
            raise
        self._emit(log_auth_event("sign_up", email=email, user_id=result.user.id, role=role.value))
        logger.info("Registered %s as %s", email, role.value)
        return result

    async def sign_in(self, email: str, password: str) -> AuthResult:
        try:
            body = await self._call(
                "POST", "/token", "Login failed",
                json_body={"email": email, "password": password},
                params={"grant_type": "password"},
            )
            result = self._session_result(body, "Login failed")
        except AuthError as e:
            self._emit(log_auth_event("sign_in", email=email, success=False, error=e.message))
            raise
        self._emit(log_auth_event("sign_in", email=email, user_id=result.user.id, role=result.user.role.value))
        return result

    async def sign_out(self, token: str) -> None:
        await self._call("POST", "/logout", "Logout failed", token=token)
        self._emit(log_auth_event("sign_out"))

    async def get_current_user(self, token: str) -> User:
        body = await self._call("GET", "/user", "User not authenticated", token=token)
        if not body.get("id") and not body.get("email"):
            raise AuthError("User not authenticated")
        return map_identity_user(body, self._organization_domain)

    async def aclose(self) -> None:
        await self._client.aclose()
