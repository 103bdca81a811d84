# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Collection timeline — pure computation, no side effects.

Month arithmetic clamps to the end of shorter months and is always measured
from the cycle start date, never chained from the previous due date:
    2024-01-31 -> 2024-02-29 -> 2024-03-31 -> 2024-04-30
"""

from datetime import date
from typing import Optional

from dateutil.relativedelta import relativedelta

from rosca.core.errors import (
    InvalidCollectionDate,
    InvalidMemberCount,
    InvalidStatusTransition,
)
from rosca.models.domain import TimelineEntry, TimelineStatus
from rosca.services.rotation import ensure_valid


def add_months(start: date, months: int) -> date:
    """Jan 31 + 1 month = Feb 28/29."""
    return start + relativedelta(months=months)


def cycle_end_date(start_date: date, member_count: int) -> date:
    return add_months(start_date, member_count)


def compute_timeline(
    assignment: dict[str, int],
    member_names: dict[str, str],
    monthly_amount: int,
    member_count: int,
    start_date: date,
) -> list[TimelineEntry]:
    """
    One entry per assigned position, ordered by position.
    Every entry collects the whole pool: monthly_amount * member_count.
    Deterministic for identical inputs.
    """
    if member_count < 1:
        raise InvalidMemberCount(f"member_count must be >= 1, got {member_count}")
    ensure_valid(assignment, member_count)

    pool = monthly_amount * member_count
    ordered = sorted(assignment.items(), key=lambda item: item[1])
    return [
        TimelineEntry(
            position=position,
            member_id=member_id,
            member_name=member_names.get(member_id, member_id),
            due_date=add_months(start_date, position - 1),
            amount=pool,
            status=TimelineStatus.CURRENT if position == 1 else TimelineStatus.UPCOMING,
        )
        for member_id, position in ordered
    ]


def advance_status(
    entries: list[TimelineEntry],
    position: int,
    collection_date: date,
    today: date,
) -> list[TimelineEntry]:
    """
    Mark the current entry completed and promote the next upcoming one.
    Returns new entries; the input list is left untouched.
    """
    if collection_date > today:
        raise InvalidCollectionDate(
            f"Collection date {collection_date.isoformat()} is in the future"
        )

    updated = [e.model_copy() for e in entries]
    target = next((e for e in updated if e.position == position), None)
    if target is None:
        raise InvalidStatusTransition(f"No timeline entry at position {position}")
    if target.status != TimelineStatus.CURRENT:
        raise InvalidStatusTransition(
            f"Position {position} is '{target.status.value}', only the current "
            "entry can be completed"
        )

    target.status = TimelineStatus.COMPLETED
    target.collection_date = collection_date

    upcoming = [e for e in updated if e.status == TimelineStatus.UPCOMING]
    if upcoming:
        min(upcoming, key=lambda e: e.position).status = TimelineStatus.CURRENT
    return updated


def current_entry(entries: list[TimelineEntry]) -> Optional[TimelineEntry]:
    return next((e for e in entries if e.status == TimelineStatus.CURRENT), None)


def cycle_progress(entries: list[TimelineEntry]) -> float:
    """Percentage of completed collections (0-100)."""
    if not entries:
        return 0.0
    completed = sum(1 for e in entries if e.status == TimelineStatus.COMPLETED)
    return round(completed * 100 / len(entries), 2)


def is_cycle_complete(entries: list[TimelineEntry]) -> bool:
    return bool(entries) and all(e.status == TimelineStatus.COMPLETED for e in entries)


def days_until(due: date, today: date) -> int:
    return (due - today).days
