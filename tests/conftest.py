"""
Taskboard Test Suite — Shared fixtures and configuration.

The REST and identity backends are replaced by FakeBackend, an in-memory
implementation served through httpx.MockTransport, so no test touches the network.

Run:  pytest tests/ -v
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

import httpx
import pytest

from taskboard.auth.identity import IdentityClient
from taskboard.board.controller import BoardController
from taskboard.models.user import Role
from taskboard.security.authorization import Viewer
from taskboard.store.table import TableClient
from taskboard.store.tasks import TaskStore

BASE_URL = "http://backend.test"
REST_URL = f"{BASE_URL}/rest/v1"
AUTH_URL = f"{BASE_URL}/auth/v1"
API_KEY = "anon-key"


# ---------------------------------------------------------------------------
# Environment setup: reset global singletons between tests
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _isolate_globals(monkeypatch):
    """Reset the config and event-log singletons and drop TASKBOARD_* overrides."""
    import taskboard.engine.config as cfg_mod
    import taskboard.engine.logging as log_mod

    for var in ("TASKBOARD_BACKEND_URL", "TASKBOARD_API_KEY", "TASKBOARD_ENV"):
        monkeypatch.delenv(var, raising=False)
    cfg_mod._config = None
    yield
    log_mod.shutdown_logging()
    cfg_mod._config = None


def pytest_configure(config):
    config.addinivalue_line("markers", "integration: cross-module workflows against the fake backend")


# ---------------------------------------------------------------------------
# Fake backend
# ---------------------------------------------------------------------------

def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


def task_row(task_id: int, owner_id: Optional[int], **overrides: Any) -> Dict[str, Any]:
    """A complete persisted row, as the table returns it."""
    row = {
        "id": task_id,
        "title": f"Task {task_id}",
        "description": f"Description {task_id}",
        "status": "todo",
        "priority": "medium",
        "assignee": "Somchai",
        "type": "task",
        "points": 3,
        "owner_id": owner_id,
        "reporter": None,
        "impact": None,
        "urgency": None,
        "priority_level": None,
        "planned_start_date": None,
        "planned_end_date": None,
        "actual_start_date": None,
        "actual_end_date": None,
        "planned_estimated_hours": None,
        "actual_estimated_hours": None,
        "labels": None,
        "card_level": None,
        "sprint_id": None,
        "dependencies": None,
        "created_at": "2026-01-05T09:00:00+00:00",
        "updated_at": "2026-01-05T09:00:00+00:00",
    }
    row.update(overrides)
    return row


class FakeBackend:
    """
    In-memory tasks table plus identity service.

    Failure toggles:
        fail_status:     table calls answer with this HTTP status
        fail_methods:    restrict fail_status to these HTTP methods (all when empty)
        transport_error: table calls raise httpx.ConnectError
        auth_down:       identity calls raise httpx.ConnectError
    """

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None):
        self.rows: List[Dict[str, Any]] = [dict(r) for r in rows or []]
        self.next_id = max((r["id"] for r in self.rows), default=0) + 1
        self.requests: List[httpx.Request] = []
        self.fail_status: Optional[int] = None
        self.fail_methods: set = set()
        self.transport_error = False
        self.auth_down = False
        self.accounts: Dict[str, Dict[str, Any]] = {}
        self.tokens: Dict[str, str] = {}
        self.revoked: List[str] = []

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handle)

    def add_account(self, email: str, password: str, name: str, user_id: int, role: Optional[str] = None) -> str:
        metadata = {"name": name}
        if role:
            metadata["role"] = role
        self.accounts[email] = {
            "password": password,
            "user": {
                "id": f"auth-{user_id}",
                "email": email,
                "user_metadata": metadata,
                "app_metadata": {"user_id": user_id},
                "created_at": "2026-01-01T00:00:00+00:00",
            },
        }
        token = f"token-{user_id}"
        self.tokens[token] = email
        return token

    def table_requests(self, method: Optional[str] = None) -> List[httpx.Request]:
        return [
            r for r in self.requests
            if r.url.path.startswith("/rest/v1") and (method is None or r.method == method)
        ]

    def handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path.startswith("/auth/v1"):
            return self._handle_auth(request)
        return self._handle_table(request)

    # -- table --------------------------------------------------------------

    def _matches(self, row: Dict[str, Any], params: httpx.QueryParams) -> bool:
        for column, value in params.multi_items():
            if column in ("select", "order"):
                continue
            if not value.startswith("eq.") or str(row.get(column)) != value[3:]:
                return False
        return True

    def _handle_table(self, request: httpx.Request) -> httpx.Response:
        if self.transport_error:
            raise httpx.ConnectError("connection refused", request=request)
        if self.fail_status and (not self.fail_methods or request.method in self.fail_methods):
            return httpx.Response(self.fail_status, json={"message": "backend unavailable"})

        params = request.url.params
        if request.method == "GET":
            rows = [r for r in self.rows if self._matches(r, params)]
            order = params.get("order")
            if order:
                column, direction = order.split(".")
                rows.sort(key=lambda r: r.get(column), reverse=direction == "desc")
            return httpx.Response(200, json=rows)

        if request.method == "POST":
            body = json.loads(request.content)
            if not body.get("title"):
                return httpx.Response(400, json={"message": 'null value in column "title"'})
            row = task_row(self.next_id, None)
            row.update(body)
            row["id"] = self.next_id
            row["created_at"] = row["updated_at"] = _now()
            self.next_id += 1
            self.rows.append(row)
            return httpx.Response(201, json=[row])

        if request.method == "PATCH":
            body = json.loads(request.content)
            updated = []
            for row in self.rows:
                if self._matches(row, params):
                    row.update(body)
                    row["updated_at"] = _now()
                    updated.append(dict(row))
            return httpx.Response(200, json=updated)

        if request.method == "DELETE":
            self.rows = [r for r in self.rows if not self._matches(r, params)]
            return httpx.Response(204)

        return httpx.Response(405)

    # -- identity -----------------------------------------------------------

    def _bearer(self, request: httpx.Request) -> str:
        return request.headers.get("Authorization", "").removeprefix("Bearer ")

    def _handle_auth(self, request: httpx.Request) -> httpx.Response:
        if self.auth_down:
            raise httpx.ConnectError("identity service unreachable", request=request)
        path = request.url.path.removeprefix("/auth/v1")

        if path == "/signup" and request.method == "POST":
            body = json.loads(request.content)
            if body["email"] in self.accounts:
                return httpx.Response(422, json={"msg": "User already registered"})
            data = body.get("data") or {}
            user_id = len(self.accounts) + 100
            token = self.add_account(body["email"], body["password"], data.get("name", ""), user_id, data.get("role"))
            return httpx.Response(200, json={"access_token": token, "user": self.accounts[body["email"]]["user"]})

        if path == "/token" and request.method == "POST":
            if request.url.params.get("grant_type") != "password":
                return httpx.Response(400, json={"error": "unsupported_grant_type"})
            body = json.loads(request.content)
            account = self.accounts.get(body["email"])
            if account is None or account["password"] != body["password"]:
                return httpx.Response(400, json={"error_description": "Invalid login credentials"})
            token = next(t for t, e in self.tokens.items() if e == body["email"])
            return httpx.Response(200, json={"access_token": token, "user": account["user"]})

        if path == "/logout" and request.method == "POST":
            self.revoked.append(self._bearer(request))
            return httpx.Response(204)

        if path == "/user" and request.method == "GET":
            token = self._bearer(request)
            email = self.tokens.get(token)
            if email is None or token in self.revoked:
                return httpx.Response(401, json={"msg": "invalid JWT"})
            return httpx.Response(200, json=self.accounts[email]["user"])

        return httpx.Response(404, json={"msg": "not found"})


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def make_row():
    return task_row


@pytest.fixture
def sample_rows():
    """Task 1 owned by member 1, task 2 by member 2, task 3 by guest 3."""
    return [
        task_row(1, 1, title="Write login page", status="todo", priority="high"),
        task_row(2, 2, title="Fix cache bug", status="inprogress", priority="medium", type="bug"),
        task_row(3, 3, title="Draft roadmap", status="done", priority="low", type="story",
                 reporter="Gina", labels=["planning"]),
    ]


@pytest.fixture
def backend(sample_rows):
    fake = FakeBackend(sample_rows)
    fake.add_account("alice@botnoigroup.com", "secret123", "Alice", 1)
    fake.add_account("bob@botnoigroup.com", "secret123", "Bob", 2)
    fake.add_account("gina@gmail.com", "secret123", "Gina", 3)
    return fake


@pytest.fixture
def table_client(backend):
    return TableClient(REST_URL, "tasks", api_key=API_KEY, transport=backend.transport)


@pytest.fixture
def store(table_client):
    return TaskStore(table_client)


@pytest.fixture
def identity(backend):
    return IdentityClient(AUTH_URL, api_key=API_KEY, transport=backend.transport)


@pytest.fixture
def member_viewer():
    return Viewer(user_id=1, role=Role.MEMBER, name="Alice")


@pytest.fixture
def guest_viewer():
    return Viewer(user_id=3, role=Role.GUEST, name="Gina")


@pytest.fixture
def controller(store, member_viewer):
    return BoardController(store, member_viewer)


@pytest.fixture
def guest_controller(store, guest_viewer):
    return BoardController(store, guest_viewer)


@pytest.fixture
def config_file(tmp_path, backend):
    """A taskboard.yaml pointing at the fake backend, with the token kept under tmp_path."""
    path = tmp_path / "taskboard.yaml"
    path.write_text(
        "app:\n"
        "  environment: dev\n"
        "backend:\n"
        f"  url: {BASE_URL}/\n"
        f"  api_key: {API_KEY}\n"
        "auth:\n"
        f"  token_path: {tmp_path / 'session.json'}\n"
        "logging:\n"
        f"  directory: {tmp_path / 'logs'}\n",
        encoding="utf-8",
    )
    return path
