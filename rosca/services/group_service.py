# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Group management — business logic for groups and membership.
Coordinates repository writes with metrics, history, and validation.
"""

import uuid
from datetime import date, datetime, timezone
from typing import Any, Optional

from rosca.core.config import settings
from rosca.core.currency import format_amount
from rosca.core.errors import CycleInProgress, GroupFull, InvalidGroup, InvalidMemberCount
from rosca.core.logging import get_logger
from rosca.metrics.prometheus import (
    ACTIVE_GROUPS,
    GROUPS_CREATED,
    MEMBERS_JOINED,
    PENDING_DRAFTS,
    PENDING_INVITE_REQUESTS,
)
from rosca.models.domain import Group, GroupStatus, Member, MemberRole, TimelineStatus
from rosca.repositories.draft_repository import DraftRepository
from rosca.repositories.group_repository import GroupRepository
from rosca.repositories.history_repository import HistoryRepository
from rosca.repositories.invite_repository import InviteRequestRepository
from rosca.services.timeline import (
    compute_timeline,
    current_entry,
    cycle_end_date,
    cycle_progress,
    days_until,
)
from rosca.services.timeline_service import today_utc

logger = get_logger(__name__)


def validate_group_name(name: str) -> str:
    trimmed = name.strip()
    if not trimmed:
        raise InvalidGroup("Group name is required")
    if len(trimmed) < settings.MIN_GROUP_NAME_LENGTH:
        raise InvalidGroup(
            f"Group name must be at least {settings.MIN_GROUP_NAME_LENGTH} characters"
        )
    if len(trimmed) > settings.MAX_GROUP_NAME_LENGTH:
        raise InvalidGroup(
            f"Group name must be less than {settings.MAX_GROUP_NAME_LENGTH} characters"
        )
    return trimmed


def validate_monthly_amount(amount: int) -> None:
    if amount <= 0:
        raise InvalidGroup(f"Amount must be greater than {format_amount(0)}")
    if amount < settings.MIN_MONTHLY_AMOUNT:
        raise InvalidGroup(f"Minimum contribution is {format_amount(settings.MIN_MONTHLY_AMOUNT)}")
    if amount > settings.MAX_MONTHLY_AMOUNT:
        raise InvalidGroup(f"Maximum contribution is {format_amount(settings.MAX_MONTHLY_AMOUNT)}")


def validate_member_count(count: int) -> None:
    if count < settings.MIN_MEMBER_COUNT:
        raise InvalidMemberCount(
            f"Group must have at least {settings.MIN_MEMBER_COUNT} members"
        )
    if count > settings.MAX_MEMBER_COUNT:
        raise InvalidMemberCount(
            f"Group cannot have more than {settings.MAX_MEMBER_COUNT} members"
        )


class GroupService:
    """Business logic for savings groups and their members."""

    def __init__(
        self,
        group_repo: GroupRepository,
        draft_repo: DraftRepository,
        history_repo: HistoryRepository,
        invite_repo: Optional[InviteRequestRepository] = None,
    ) -> None:
        self._groups = group_repo
        self._drafts = draft_repo
        self._history = history_repo
        self._invites = invite_repo

    # ── Commands ──

    def create_group(
        self,
        name: str,
        monthly_amount: int,
        member_count: int,
        owner: dict[str, Any],
        description: str = "",
        start_date: Optional[date] = None,
    ) -> Group:
        """Create a group with its owner as first member. Raises RotationError."""
        clean_name = validate_group_name(name)
        validate_monthly_amount(monthly_amount)
        validate_member_count(member_count)

        group = Group(
            id=str(uuid.uuid4()),
            name=clean_name,
            description=description.strip(),
            member_count=member_count,
            monthly_amount=monthly_amount,
            start_date=start_date or today_utc(),
            invite_code=self._new_invite_code(),
            members=[Member(**{**owner, "role": MemberRole.OWNER, "rotation_position": 0})],
        )
        self._groups.save(group)

        GROUPS_CREATED.inc()
        ACTIVE_GROUPS.set(self._groups.count())
        self._history.record_event(
            "group_created",
            group.id,
            {
                "name": group.name,
                "member_count": member_count,
                "monthly_amount": monthly_amount,
            },
        )
        logger.info(
            "Group created: id=%s, name=%s, member_count=%d",
            group.id, group.name, member_count,
        )
        return group

    def add_member(self, group_id: str, member: dict[str, Any]) -> Group:
        """Join a group. Raises KeyError / GroupFull. Re-joining is a no-op."""
        group = self.get_group(group_id)
        if group.get_member(member["id"]) is not None:
            return group
        if group.is_full:
            raise GroupFull(f"Group '{group.name}' already has {group.member_count} members")

        role = MemberRole(member.get("role") or MemberRole.MEMBER)
        if role == MemberRole.OWNER:
            role = MemberRole.MEMBER
        group.members.append(Member(**{**member, "role": role, "rotation_position": 0}))
        group.updated_at = datetime.now(timezone.utc)
        self._groups.save(group)
        self._discard_draft(group_id)

        MEMBERS_JOINED.inc()
        self._history.record_event(
            "member_joined",
            group_id,
            {"member_id": member["id"], "name": member["name"]},
        )
        logger.info("Member joined: group=%s, member=%s", group_id, member["id"])
        return group

    def join_by_invite_code(self, invite_code: str, member: dict[str, Any]) -> Group:
        group = self._groups.find_by_invite_code(invite_code)
        if group is None:
            raise KeyError(f"No group found for invite code '{invite_code}'")
        return self.add_member(group.id, member)

    def remove_member(self, group_id: str, member_id: str) -> Group:
        """
        Leave a group. The owner cannot leave, and nobody holding a turn in a
        running cycle can leave. Raises KeyError / RotationError.
        """
        group = self.get_group(group_id)
        member = group.get_member(member_id)
        if member is None:
            raise KeyError(f"Member '{member_id}' is not part of group '{group_id}'")
        if member.role == MemberRole.OWNER:
            raise InvalidGroup("The group owner cannot leave the group")
        if group.status == GroupStatus.ACTIVE and any(
            e.member_id == member_id for e in group.timeline
        ):
            raise CycleInProgress(
                f"Member '{member_id}' holds a turn in the running cycle"
            )

        group.members = [m for m in group.members if m.id != member_id]
        group.updated_at = datetime.now(timezone.utc)
        self._groups.save(group)
        self._discard_draft(group_id)

        self._history.record_event("member_left", group_id, {"member_id": member_id})
        logger.info("Member left: group=%s, member=%s", group_id, member_id)
        return group

    def delete_group(self, group_id: str) -> dict[str, str]:
        if not self._groups.exists(group_id):
            raise KeyError(f"No group found with id '{group_id}'")

        self._groups.delete(group_id)
        self._discard_draft(group_id)
        if self._invites is not None:
            self._invites.delete_by_group(group_id)
            PENDING_INVITE_REQUESTS.set(self._invites.count_pending())
        ACTIVE_GROUPS.set(self._groups.count())
        self._history.record_event("group_deleted", group_id, {})
        logger.info("Group deleted: id=%s", group_id)
        return {"status": "deleted", "group_id": group_id}

    # ── Queries ──

    def list_groups(self) -> list[Group]:
        return self._groups.get_all()

    def get_group(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"No group found with id '{group_id}'")
        return group

    def get_summary(self, group_id: str, today: Optional[date] = None) -> dict[str, Any]:
        """Dashboard view: progress, current recipient, next due date."""
        group = self.get_group(group_id)
        today = today or today_utc()
        entry = current_entry(group.timeline)
        total_pool = group.monthly_amount * group.member_count
        completed = [e for e in group.timeline if e.status == TimelineStatus.COMPLETED]

        return {
            "group_id": group.id,
            "name": group.name,
            "status": group.status.value,
            "member_count": group.member_count,
            "members_joined": len(group.members),
            "positions_assigned": sum(1 for m in group.members if m.rotation_position > 0),
            "monthly_amount": group.monthly_amount,
            "total_pool": total_pool,
            "total_pool_display": format_amount(total_pool),
            "total_collected": sum(e.amount for e in completed),
            "cycle_progress": cycle_progress(group.timeline),
            "cycle_end_date": cycle_end_date(group.start_date, group.member_count).isoformat(),
            "current_recipient": entry.member_name if entry else None,
            "next_payment_due": entry.due_date.isoformat() if entry else None,
            "days_left": days_until(entry.due_date, today) if entry else None,
        }

    def get_stats(self) -> dict[str, Any]:
        """Aggregated operational statistics."""
        groups = self._groups.get_all()
        statuses: dict[str, int] = {}
        for g in groups:
            statuses[g.status.value] = statuses.get(g.status.value, 0) + 1

        return {
            "total_groups": len(groups),
            "total_members": sum(len(g.members) for g in groups),
            "pending_drafts": self._drafts.count(),
            "total_history_events": self._history.count(),
            "group_statuses": statuses,
            "event_types": self._history.count_by_type(),
        }

    # ── Seed ──

    def seed_defaults(self) -> None:
        """Create a demo group with a running cycle so the service is usable."""
        members = [
            Member(id="amaka", name="Amaka Obi", email="amaka@example.com", role=MemberRole.OWNER),
            Member(id="bayo", name="Bayo Adeyemi", email="bayo@example.com", role=MemberRole.ADMIN),
            Member(id="chidi", name="Chidi Eze", email="chidi@example.com"),
            Member(id="dupe", name="Dupe Lawal", email="dupe@example.com"),
            Member(id="emeka", name="Emeka Nwosu", email="emeka@example.com"),
        ]
        for position, member in enumerate(members, start=1):
            member.rotation_position = position

        group = Group(
            id=str(uuid.uuid4()),
            name="Market Women Adashi",
            description="Monthly contribution circle",
            member_count=len(members),
            monthly_amount=50000,
            start_date=today_utc().replace(day=1),
            invite_code=self._new_invite_code(),
            members=members,
            status=GroupStatus.ACTIVE,
        )
        group.timeline = compute_timeline(
            assignment=group.positions,
            member_names={m.id: m.name for m in members},
            monthly_amount=group.monthly_amount,
            member_count=group.member_count,
            start_date=group.start_date,
        )
        self._groups.save(group)
        self._history.record_event(
            "group_created",
            group.id,
            {"name": group.name, "member_count": group.member_count, "source": "seed"},
        )
        logger.info("Seeded default group: id=%s", group.id)
        ACTIVE_GROUPS.set(self._groups.count())

    # ── Internal ──

    def _new_invite_code(self) -> str:
        while True:
            code = uuid.uuid4().hex[:6].upper()
            if self._groups.find_by_invite_code(code) is None:
                return code

    def _discard_draft(self, group_id: str) -> None:
        if self._drafts.delete(group_id) is not None:
            PENDING_DRAFTS.set(self._drafts.count())
