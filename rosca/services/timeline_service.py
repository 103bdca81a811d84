# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Timeline generation and collection tracking.
Coordinates the pure timeline computation with storage, history and metrics.
"""

from datetime import date, datetime, timezone
from typing import Optional

from rosca.core.currency import format_amount
from rosca.core.errors import CycleInProgress
from rosca.core.logging import get_logger
from rosca.metrics.prometheus import COLLECTIONS_COMPLETED, TIMELINES_GENERATED
from rosca.models.domain import Group, GroupStatus, TimelineEntry
from rosca.repositories.group_repository import GroupRepository
from rosca.repositories.history_repository import HistoryRepository
from rosca.services.notification_client import NotificationClient
from rosca.services.timeline import (
    advance_status,
    compute_timeline,
    current_entry,
    is_cycle_complete,
)

logger = get_logger(__name__)


def today_utc() -> date:
    return datetime.now(timezone.utc).date()


class TimelineService:
    """Business logic for a group's collection timeline."""

    def __init__(
        self,
        group_repo: GroupRepository,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
    ) -> None:
        self._groups = group_repo
        self._history = history_repo
        self._notifications = notification_client

    def _load(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"No group found with id '{group_id}'")
        return group

    # ── Commands ──

    def generate_timeline(self, group_id: str, reset_cycle: bool = False) -> list[TimelineEntry]:
        """
        Discard every existing entry and recompute from the stored assignment.
        Once a collection is completed, wiping it needs reset_cycle=True.
        Raises KeyError, CycleInProgress, or a RotationError if the
        assignment is incomplete.
        """
        group = self._load(group_id)
        if group.has_completed_collections and not reset_cycle:
            raise CycleInProgress(
                "Collections were already completed this cycle; "
                "pass reset_cycle to regenerate and discard them"
            )
        entries = compute_timeline(
            assignment=group.positions,
            member_names={m.id: m.name for m in group.members},
            monthly_amount=group.monthly_amount,
            member_count=group.member_count,
            start_date=group.start_date,
        )
        discarded = len(group.timeline)
        group.timeline = entries
        group.status = GroupStatus.ACTIVE
        group.updated_at = datetime.now(timezone.utc)
        self._groups.save(group)

        TIMELINES_GENERATED.inc()
        self._history.record_event(
            "timeline_generated",
            group_id,
            {"entries": len(entries), "discarded_entries": discarded, "reset_cycle": reset_cycle},
        )
        logger.info(
            "Timeline generated: group=%s, entries=%d, discarded=%d",
            group_id, len(entries), discarded,
        )
        self._notify_current(group)
        return entries

    def advance_timeline_status(
        self,
        group_id: str,
        position: int,
        collection_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> list[TimelineEntry]:
        """
        Confirm the collection at `position` (must be the current entry) and
        move the cycle forward. Raises KeyError / RotationError.
        """
        group = self._load(group_id)
        today = today or today_utc()
        collection_date = collection_date or today

        group.timeline = advance_status(group.timeline, position, collection_date, today)
        finished = is_cycle_complete(group.timeline)
        if finished:
            group.status = GroupStatus.COMPLETED
        group.updated_at = datetime.now(timezone.utc)
        self._groups.save(group)

        COLLECTIONS_COMPLETED.inc()
        self._history.record_event(
            "collection_completed",
            group_id,
            {"position": position, "collection_date": collection_date.isoformat()},
        )
        logger.info(
            "Collection completed: group=%s, position=%d, date=%s",
            group_id, position, collection_date.isoformat(),
        )
        if finished:
            self._history.record_event("cycle_completed", group_id, {"entries": len(group.timeline)})
            logger.info("Cycle completed: group=%s", group_id)
        else:
            self._notify_current(group)
        return group.timeline

    # ── Queries ──

    def get_timeline(self, group_id: str) -> list[TimelineEntry]:
        return self._load(group_id).timeline

    # ── Internal ──

    def _notify_current(self, group: Group) -> None:
        entry = current_entry(group.timeline)
        if entry is None:
            return
        member = group.get_member(entry.member_id)
        if member is None or not member.email:
            return
        self._notifications.send(
            channel="email",
            recipient=member.email,
            message=(
                f"It's your turn to collect {format_amount(entry.amount)} "
                f"from '{group.name}' on {entry.due_date.isoformat()}"
            ),
            group_id=group.id,
        )
