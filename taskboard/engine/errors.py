"""
Taskboard Error Hierarchy — Structured exceptions for store, identity and gate failures.

Every error carries its context as keyword arguments so it can be written to
the structured event log as-is.

Hierarchy:
    TaskboardError
    ├── NotFoundError       — Task id has no matching row
    ├── StoreError          — Constraint violation, malformed payload, transport failure
    ├── AuthError           — Identity provider / session failure
    ├── AccessDeniedError   — Authorization gate refused an intent
    ├── ValidationError     — Local input validation failed
    └── ConfigError         — Invalid taskboard.yaml
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional


class TaskboardError(Exception):
    """
    Base error for all taskboard failures.
    All context is serializable to JSON.
    """

    def __init__(self, message: str, **context: Any):
        self.message = message
        self.error_type: str = self.__class__.__name__
        self.context: Dict[str, Any] = context
        self.timestamp: str = datetime.now(timezone.utc).isoformat()
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Serialize error to a JSON-compatible dict for the event log."""
        return {
            "error_type": self.error_type,
            "message": self.message,
            "timestamp": self.timestamp,
            "context": {k: str(v) for k, v in self.context.items()},
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), default=str)

    def __repr__(self) -> str:
        return f"{self.error_type}: {self.message}"


class NotFoundError(TaskboardError):
    """No row matches the requested task id."""

    def __init__(self, message: str, **context: Any):
        self.task_id: Optional[int] = context.get("task_id")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["task_id"] = self.task_id
        return d


class StoreError(TaskboardError):
    """
    Remote table call failed.

    Constraint violations, malformed payloads and transport failures are not
    distinguished further; status_code is None for transport failures.
    """

    def __init__(self, message: str, **context: Any):
        self.table: Optional[str] = context.get("table")
        self.operation: Optional[str] = context.get("operation")
        self.status_code: Optional[int] = context.get("status_code")
        self.response_body: Optional[str] = context.get("response_body")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["table"] = self.table
        d["operation"] = self.operation
        d["status_code"] = self.status_code
        return d


class AuthError(TaskboardError):
    """Sign-in, sign-up or session failure reported by the identity service."""

    def __init__(self, message: str, **context: Any):
        self.status_code: Optional[int] = context.get("status_code")
        super().__init__(message, **context)


class AccessDeniedError(TaskboardError):
    """
    The authorization gate refused a mutation intent.
    Includes the viewer and the action that was denied.
    """

    def __init__(self, message: str, **context: Any):
        self.user_id: Optional[int] = context.get("user_id")
        self.role: Optional[str] = context.get("role")
        self.action: Optional[str] = context.get("action")
        super().__init__(message, **context)

    def to_dict(self) -> Dict[str, Any]:
        d = super().to_dict()
        d["user_id"] = self.user_id
        d["role"] = self.role
        d["action"] = self.action
        return d


class ValidationError(TaskboardError):
    """Local input validation failed before any remote call was made."""

    def __init__(self, message: str, **context: Any):
        self.field: Optional[str] = context.get("field")
        super().__init__(message, **context)


class ConfigError(TaskboardError):
    """Configuration error — unreadable or invalid taskboard.yaml."""
    pass
