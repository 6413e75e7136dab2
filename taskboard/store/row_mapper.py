"""
Row mapper — translates between persisted ``tasks`` rows and Task models.

Pure and stateless. Reads never raise: an unknown enum value is kept as the
raw string and an unparseable timestamp reads as None. Writes do no
validation; a malformed payload only surfaces as a store error.
"""

from __future__ import annotations

import logging
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Type

from taskboard.models.task import (
    CORE_FIELDS,
    OPTIONAL_FIELDS,
    CardLevel,
    Level,
    NewTask,
    PriorityLevel,
    Task,
    TaskPatch,
    TaskPriority,
    TaskStatus,
    TaskType,
)

logger = logging.getLogger("taskboard.store.row_mapper")

_ENUM_COLUMNS: Dict[str, Type[Enum]] = {
    "status": TaskStatus,
    "priority": TaskPriority,
    "type": TaskType,
    "impact": Level,
    "urgency": Level,
    "priority_level": PriorityLevel,
    "card_level": CardLevel,
}

# Null in the row → None on the task.
_NULLABLE_DATE_COLUMNS = ("planned_start_date", "planned_end_date", "actual_start_date", "actual_end_date")
_NULLABLE_COLUMNS = ("planned_estimated_hours", "actual_estimated_hours", "sprint_id")

# Null in the row → field left unset on the task.
_SPARSE_COLUMNS = ("reporter", "impact", "urgency", "priority_level", "labels", "card_level", "dependencies")
_SPARSE_DATE_COLUMNS = ("created_at", "updated_at")


def _parse_datetime(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        logger.debug("Unparseable timestamp in row: %r", value)
        return None


def _coerce(enum_cls: Type[Enum], value: Any) -> Any:
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        return value


def _to_wire(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, (list, tuple)):
        return list(value)
    return value


def row_to_task(row: Mapping[str, Any]) -> Task:
    """Build a Task from a flat persisted row."""
    fields: Dict[str, Any] = {"id": row.get("id")}

    for name in CORE_FIELDS:
        if name in row:
            value = row[name]
            fields[name] = _coerce(_ENUM_COLUMNS[name], value) if name in _ENUM_COLUMNS else value

    for name in _SPARSE_COLUMNS:
        value = row.get(name)
        if value is not None:
            fields[name] = _coerce(_ENUM_COLUMNS[name], value) if name in _ENUM_COLUMNS else value

    for name in _NULLABLE_DATE_COLUMNS:
        fields[name] = _parse_datetime(row.get(name))

    for name in _NULLABLE_COLUMNS:
        fields[name] = row.get(name)

    for name in _SPARSE_DATE_COLUMNS:
        parsed = _parse_datetime(row.get(name))
        if parsed is not None:
            fields[name] = parsed

    owner_id = row.get("owner_id")
    if owner_id is None:
        owner_id = row.get("ownerId")
    fields["owner_id"] = owner_id

    return Task.model_construct(**fields)


def task_to_insert_payload(task: NewTask) -> Dict[str, Any]:
    """
    Build an insert row. Core fields always go out (with their defaults);
    optional fields and owner_id only when the caller supplied them.
    """
    payload: Dict[str, Any] = {name: _to_wire(getattr(task, name)) for name in CORE_FIELDS}
    for name in OPTIONAL_FIELDS:
        if name in task.model_fields_set:
            payload[name] = _to_wire(getattr(task, name))
    if "owner_id" in task.model_fields_set:
        payload["owner_id"] = task.owner_id
    return payload


def task_to_update_payload(patch: TaskPatch) -> Dict[str, Any]:
    """Build a sparse update row holding exactly the fields passed to the patch."""
    return {name: _to_wire(getattr(patch, name)) for name in patch.touched}
