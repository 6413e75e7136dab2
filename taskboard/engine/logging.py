"""
Taskboard Logging — Structured JSON event log with an async flush queue.

Implements:
- FileLogger: Per-object-type, per-category JSONL files (daily files)
- AsyncLogQueue: In-memory queue flushed by a background thread
- Entry builders for store calls, auth events, gate denials and board mutations

Module code logs human-readable lines through the standard ``logging`` module;
this event log is the machine-readable trail of every remote call and mutation.
"""

from __future__ import annotations

import json
import logging
import threading
import time
from collections import defaultdict
from datetime import date, datetime, timezone
from pathlib import Path
from queue import Empty, Full, Queue
from typing import Any, Dict, List, Optional

logger = logging.getLogger("taskboard.engine.logging")

OBJECT_TYPE_CATEGORIES = {
    "tasks": ["execution", "performance"],
    "auth": ["execution", "security"],
    "board": ["execution", "security"],
    "system": ["execution"],
}


class LogEntry:
    """A structured log entry destined for a specific file."""

    __slots__ = ("object_type", "category", "data")

    def __init__(self, object_type: str, category: str, data: Dict[str, Any]):
        self.object_type = object_type
        self.category = category
        self.data = data

    def to_json(self) -> str:
        return json.dumps(self.data, default=str, separators=(",", ":"))


class FileLogger:
    """
    Writes entries to logs/{object_type}/{category}/{YYYY-MM-DD}.jsonl.

    Thread-safe — one lock per file path.
    """

    def __init__(self, log_dir: str = ".taskboard/logs"):
        self._log_dir = Path(log_dir)
        self._file_locks: Dict[str, threading.Lock] = defaultdict(threading.Lock)
        for obj_type, categories in OBJECT_TYPE_CATEGORIES.items():
            for cat in categories:
                (self._log_dir / obj_type / cat).mkdir(parents=True, exist_ok=True)

    @property
    def log_dir(self) -> Path:
        return self._log_dir

    def _resolve_path(self, object_type: str, category: str) -> Path:
        return self._log_dir / object_type / category / f"{date.today().isoformat()}.jsonl"

    def write(self, entry: LogEntry) -> None:
        self.write_batch([entry])

    def write_batch(self, entries: List[LogEntry]) -> None:
        """Write entries grouped by target file."""
        grouped: Dict[str, List[LogEntry]] = defaultdict(list)
        for entry in entries:
            grouped[str(self._resolve_path(entry.object_type, entry.category))].append(entry)

        for file_path, batch in grouped.items():
            with self._file_locks[file_path]:
                with open(file_path, "a", encoding="utf-8") as f:
                    for entry in batch:
                        f.write(entry.to_json())
                        f.write("\n")

    def read_today(
        self,
        object_type: str,
        category: str,
        filters: Optional[Dict[str, Any]] = None,
    ) -> List[Dict[str, Any]]:
        """Read today's entries for one object_type/category, oldest first."""
        path = self._resolve_path(object_type, category)
        if not path.exists():
            return []
        entries: List[Dict[str, Any]] = []
        try:
            with open(path, "r", encoding="utf-8") as f:
                for line in f:
                    line = line.strip()
                    if not line:
                        continue
                    try:
                        data = json.loads(line)
                    except json.JSONDecodeError:
                        continue
                    if filters and not all(data.get(k) == v for k, v in filters.items()):
                        continue
                    entries.append(data)
        except OSError as exc:
            logger.warning("Could not read log file %s: %s", path, exc)
        return entries


class AsyncLogQueue:
    """
    In-memory queue with a background flush thread.

    push() never blocks; the thread writes a batch every flush_interval_ms or
    as soon as flush_batch_size entries are waiting.
    """

    def __init__(
        self,
        file_logger: FileLogger,
        flush_interval_ms: int = 100,
        flush_batch_size: int = 50,
        max_queue_size: int = 10000,
    ):
        self._logger = file_logger
        self._flush_interval = flush_interval_ms / 1000.0
        self._flush_batch_size = flush_batch_size
        self._queue: Queue[LogEntry] = Queue(maxsize=max_queue_size)
        self._running = False
        self._flush_thread: Optional[threading.Thread] = None
        self._dropped_count = 0

    def start(self) -> None:
        if self._running:
            return
        self._running = True
        self._flush_thread = threading.Thread(
            target=self._flush_loop,
            name="taskboard-log-flush",
            daemon=True,
        )
        self._flush_thread.start()

    def stop(self, timeout: float = 5.0) -> None:
        """Stop the flush thread and write whatever is still queued."""
        self._running = False
        if self._flush_thread and self._flush_thread.is_alive():
            self._flush_thread.join(timeout=timeout)
        self._drain()
        if self._dropped_count:
            logger.warning("Event log stopped, %d entries dropped", self._dropped_count)

    def push(self, entry: LogEntry) -> bool:
        """Queue an entry. Returns False if the queue is full and it was dropped."""
        try:
            self._queue.put_nowait(entry)
            return True
        except Full:
            self._dropped_count += 1
            return False

    def _flush_loop(self) -> None:
        while self._running:
            batch = self._collect_batch()
            if batch:
                try:
                    self._logger.write_batch(batch)
                except OSError as e:
                    logger.error("Event log flush error: %s", e)
            else:
                time.sleep(self._flush_interval)

    def _collect_batch(self) -> List[LogEntry]:
        batch: List[LogEntry] = []
        deadline = time.monotonic() + self._flush_interval
        while len(batch) < self._flush_batch_size:
            remaining = deadline - time.monotonic()
            if remaining <= 0:
                break
            try:
                batch.append(self._queue.get(timeout=min(remaining, 0.01)))
            except Empty:
                if batch:
                    break
        return batch

    def _drain(self) -> None:
        batch: List[LogEntry] = []
        while True:
            try:
                batch.append(self._queue.get_nowait())
            except Empty:
                break
        if batch:
            try:
                self._logger.write_batch(batch)
            except OSError as e:
                logger.error("Event log drain error: %s", e)

    @property
    def pending_count(self) -> int:
        return self._queue.qsize()

    @property
    def dropped_count(self) -> int:
        return self._dropped_count


# ---------------------------------------------------------------------------
# Log Entry Builders
# ---------------------------------------------------------------------------

def _base_entry(event: str, level: str, user_id: Optional[Any] = None, **extra: Any) -> Dict[str, Any]:
    entry: Dict[str, Any] = {
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "level": level,
        "event": event,
    }
    if user_id is not None:
        entry["user_id"] = user_id
    entry.update(extra)
    return entry


def log_store_call(
    operation: str,
    table: str,
    method: str,
    url: str,
    status_code: int,
    duration_ms: float,
    success: bool,
    record_id: Optional[Any] = None,
    fields_changed: Optional[List[str]] = None,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a table round-trip entry. status_code is 0 for transport failures."""
    data = _base_entry(
        event=f"store_{operation}",
        level="INFO" if success else "ERROR",
        table=table,
        method=method,
        url=url,
        status_code=status_code,
        duration_ms=duration_ms,
        success=success,
    )
    if record_id is not None:
        data["record_id"] = record_id
    if fields_changed:
        data["fields_changed"] = fields_changed
    if error:
        data["error"] = error
    return LogEntry("tasks", "execution", data)


def log_auth_event(
    event: str,
    email: Optional[str] = None,
    user_id: Optional[Any] = None,
    role: Optional[str] = None,
    success: bool = True,
    error: Optional[str] = None,
) -> LogEntry:
    """Build a sign-up / sign-in / sign-out entry. Failures go to the security file."""
    data = _base_entry(
        event=event,
        level="INFO" if success else "WARNING",
        user_id=user_id,
        success=success,
    )
    if email:
        data["email"] = email
    if role:
        data["role"] = role
    if error:
        data["error"] = error
    return LogEntry("auth", "execution" if success else "security", data)


def log_security_event(
    action: str,
    user_id: Any,
    role: str,
    task_id: Optional[int] = None,
    owner_id: Optional[int] = None,
    access: Optional[str] = None,
) -> LogEntry:
    """Build an authorization-gate denial entry."""
    data = _base_entry(
        event="access_denied",
        level="WARNING",
        user_id=user_id,
        action=action,
        role=role,
    )
    if task_id is not None:
        data["task_id"] = task_id
    if owner_id is not None:
        data["owner_id"] = owner_id
    if access:
        data["access"] = access
    return LogEntry("board", "security", data)


def log_board_event(
    event: str,
    user_id: Any,
    task_id: Optional[int] = None,
    outcome: str = "confirmed",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    """Build a board mutation entry (confirmed / rolled_back / kept_locally / degraded)."""
    data = _base_entry(
        event=event,
        level="INFO" if outcome == "confirmed" else "WARNING",
        user_id=user_id,
        outcome=outcome,
    )
    if task_id is not None:
        data["task_id"] = task_id
    if details:
        data["details"] = details
    return LogEntry("board", "execution", data)


def log_system_event(
    event: str,
    level: str = "INFO",
    details: Optional[Dict[str, Any]] = None,
) -> LogEntry:
    data = _base_entry(event=event, level=level)
    if details:
        data["details"] = details
    return LogEntry("system", "execution", data)


# ---------------------------------------------------------------------------
# Convenience: Global Log Queue Singleton
# ---------------------------------------------------------------------------

_global_queue: Optional[AsyncLogQueue] = None


def init_logging(
    log_dir: str = ".taskboard/logs",
    flush_interval_ms: int = 100,
    flush_batch_size: int = 50,
    max_queue_size: int = 10000,
) -> AsyncLogQueue:
    """Initialize and start the global event log queue."""
    global _global_queue
    _global_queue = AsyncLogQueue(
        file_logger=FileLogger(log_dir=log_dir),
        flush_interval_ms=flush_interval_ms,
        flush_batch_size=flush_batch_size,
        max_queue_size=max_queue_size,
    )
    _global_queue.start()
    return _global_queue


def get_log_queue() -> Optional[AsyncLogQueue]:
    return _global_queue


def log(entry: LogEntry) -> bool:
    """Push to the global queue. Entries are dropped silently when it is not initialized."""
    if _global_queue is None:
        return False
    return _global_queue.push(entry)


def shutdown_logging() -> None:
    global _global_queue
    if _global_queue:
        _global_queue.stop()
        _global_queue = None
