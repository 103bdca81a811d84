# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Group audit trail.
Append-only and bounded by MAX_HISTORY_SIZE; the oldest events fall off first.
"""

import uuid
from collections import Counter, deque
from datetime import datetime, timezone
from typing import Any, Optional

from rosca.core.config import settings


class HistoryRepository:
    """In-memory audit trail of group events, oldest first."""

    def __init__(self, max_size: Optional[int] = None) -> None:
        self._events: deque[dict[str, Any]] = deque(
            maxlen=max_size or settings.MAX_HISTORY_SIZE
        )

    # ── Read ──

    def get_all(
        self,
        group_id: Optional[str] = None,
        event_type: Optional[str] = None,
        limit: Optional[int] = None,
    ) -> list[dict[str, Any]]:
        """Most recent matching events (at most `limit`), oldest first."""
        matching = [
            event for event in self._events
            if (not group_id or event["group_id"] == group_id)
            and (not event_type or event["event_type"] == event_type)
        ]
        return matching[-(limit or settings.DEFAULT_HISTORY_LIMIT):]

    def count(self) -> int:
        return len(self._events)

    def count_by_type(self) -> dict[str, int]:
        return dict(Counter(event["event_type"] for event in self._events))

    # ── Write ──

    def record_event(
        self, event_type: str, group_id: str, details: dict[str, Any]
    ) -> dict[str, Any]:
        event = {
            "event_id": str(uuid.uuid4()),
            "event_type": event_type,
            "group_id": group_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "details": details,
        }
        self._events.append(event)
        return event

    def clear(self) -> None:
        self._events.clear()
