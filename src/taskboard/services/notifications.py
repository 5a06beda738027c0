"""Notification sinks fed after a transaction commits.

Delivery is fire-and-forget: the services log a failing sink and carry on.
"""

from __future__ import annotations

import json
import os
import threading
import uuid
from collections import deque
from pathlib import Path
from typing import Any, Sequence

from filelock import FileLock
from loguru import logger

from ..domain.models import now_iso
from ..storage.interfaces import NotificationSink


class NullNotifier(NotificationSink):
    def notify(self, user_ids: Sequence[str], event: dict[str, Any]) -> None:
        logger.debug("Dropping {} notification for {} user(s)", event.get("type"), len(user_ids))


class EventLogNotifier(NotificationSink):
    """Append one JSON line per notified event to ``events.jsonl``.

    A push or socket gateway can tail this file; the core never waits on it.
    """

    def __init__(self, path: Path, lock_path: Path) -> None:
        self._path = path
        self._lock = FileLock(str(lock_path))
        self._thread_lock = threading.RLock()

    def notify(self, user_ids: Sequence[str], event: dict[str, Any]) -> None:
        recipients = sorted({str(user_id) for user_id in user_ids if user_id})
        if not recipients:
            return
        record = {
            "id": f"evt-{uuid.uuid4().hex[:10]}",
            "ts": now_iso(),
            "recipients": recipients,
            **event,
        }
        with self._thread_lock:
            with self._lock:
                self._path.parent.mkdir(parents=True, exist_ok=True)
                with self._path.open("a", encoding="utf-8") as handle:
                    handle.write(json.dumps(record) + "\n")
                    handle.flush()
                    os.fsync(handle.fileno())

    def list_recent(self, limit: int = 100) -> list[dict[str, Any]]:
        if limit <= 0 or not self._path.exists():
            return []
        with self._thread_lock:
            with self._lock:
                with self._path.open("r", encoding="utf-8") as handle:
                    selected = list(deque(handle, maxlen=limit))
        events: list[dict[str, Any]] = []
        for line in selected:
            try:
                parsed = json.loads(line)
            except json.JSONDecodeError:
                continue
            if isinstance(parsed, dict):
                events.append(parsed)
        return events
