# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation position assignment — manual edits and raffle.

Both strategies work on a pending draft. Nothing touches the stored group
until an explicit commit (save_assignment / confirm_raffle), which writes
the positions first and then regenerates the timeline.
"""

import random
import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from rosca.core.errors import (
    CycleInProgress,
    EmptyMemberList,
    RotationError,
    StaleDraft,
)
from rosca.core.logging import get_logger
from rosca.metrics.prometheus import (
    ASSIGNMENT_REJECTIONS,
    ASSIGNMENTS_SAVED,
    PENDING_DRAFTS,
    RAFFLES_RUN,
)
from rosca.models.domain import (
    AssignmentDraft,
    AssignmentStrategy,
    AssignmentValidation,
    Group,
)
from rosca.repositories.draft_repository import DraftRepository
from rosca.repositories.group_repository import GroupRepository
from rosca.repositories.history_repository import HistoryRepository
from rosca.services.rotation import PositionBoard, ensure_valid, raffle, validate_positions
from rosca.services.timeline_service import TimelineService

logger = get_logger(__name__)


class AssignmentService:
    """Business logic for assigning rotation positions."""

    def __init__(
        self,
        group_repo: GroupRepository,
        draft_repo: DraftRepository,
        history_repo: HistoryRepository,
        timeline_service: TimelineService,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._groups = group_repo
        self._drafts = draft_repo
        self._history = history_repo
        self._timelines = timeline_service
        self._rng = rng

    # ── Manual assignment ──

    def assign_position(self, group_id: str, member_id: str, position: int) -> AssignmentDraft:
        """Assign (or swap into) a position on the manual draft."""
        group = self._load(group_id)
        draft, board = self._manual_board(group)
        swapped_with = board.assign(member_id, position)
        draft = self._store_board(draft, board)

        details: dict[str, Any] = {"member_id": member_id, "position": position}
        if swapped_with:
            details["swapped_with"] = swapped_with
        self._history.record_event("position_assigned", group_id, details)
        logger.info(
            "Position assigned: group=%s, member=%s, position=%d, swapped_with=%s",
            group_id, member_id, position, swapped_with,
        )
        return draft

    def unassign_position(self, group_id: str, member_id: str) -> AssignmentDraft:
        group = self._load(group_id)
        draft, board = self._manual_board(group)
        board.unassign(member_id)
        draft = self._store_board(draft, board)
        self._history.record_event("position_unassigned", group_id, {"member_id": member_id})
        logger.info("Position unassigned: group=%s, member=%s", group_id, member_id)
        return draft

    def auto_assign_remaining(self, group_id: str) -> AssignmentDraft:
        group = self._load(group_id)
        draft, board = self._manual_board(group)
        assigned = board.auto_assign_remaining()
        draft = self._store_board(draft, board)
        self._history.record_event(
            "positions_auto_assigned", group_id, {"members": assigned}
        )
        logger.info("Auto-assigned %d positions: group=%s", len(assigned), group_id)
        return draft

    def validate_assignment(self, group_id: str) -> AssignmentValidation:
        """Validate the pending draft, or the stored assignment if none."""
        group = self._load(group_id)
        draft = self._drafts.get_by_group(group_id)
        positions = draft.positions if draft is not None else group.positions
        return validate_positions(positions, group.member_count)

    def save_assignment(self, group_id: str, reset_cycle: bool = False) -> Group:
        """
        Commit the manual draft. Validation failures block the save and leave
        stored state untouched.
        """
        group = self._load(group_id)
        draft = self._drafts.get_by_group(group_id)
        if draft is not None and draft.strategy != AssignmentStrategy.MANUAL:
            raise StaleDraft("A raffle is pending; confirm or discard it first")
        positions = draft.positions if draft is not None else group.positions
        return self._commit(group, positions, AssignmentStrategy.MANUAL, reset_cycle)

    # ── Raffle ──

    def run_raffle(self, group_id: str) -> AssignmentDraft:
        """
        Shuffle the current members into a preview draft. Running it again
        ("redo") replaces the previous preview.
        """
        group = self._load(group_id)
        if not group.members:
            raise EmptyMemberList("A raffle needs at least one member")

        draft = AssignmentDraft(
            draft_id=str(uuid.uuid4()),
            group_id=group_id,
            strategy=AssignmentStrategy.RAFFLE,
            positions=raffle(group.member_ids, rng=self._rng),
        )
        self._drafts.save(draft)
        PENDING_DRAFTS.set(self._drafts.count())
        RAFFLES_RUN.inc()
        self._history.record_event(
            "raffle_run", group_id, {"draft_id": draft.draft_id, "members": len(draft.positions)}
        )
        logger.info("Raffle run: group=%s, draft=%s", group_id, draft.draft_id)
        return draft

    def confirm_raffle(self, group_id: str, draft_id: str, reset_cycle: bool = False) -> Group:
        """Commit a raffle preview. Raises KeyError / StaleDraft / CycleInProgress."""
        group = self._load(group_id)
        draft = self._drafts.get_by_group(group_id)
        if draft is None or draft.strategy != AssignmentStrategy.RAFFLE:
            raise KeyError(f"No pending raffle for group '{group_id}'")
        if draft.draft_id != draft_id:
            raise StaleDraft(f"Raffle '{draft_id}' was replaced by a newer draw")
        if set(draft.positions) != set(group.member_ids):
            raise StaleDraft("Group membership changed since the raffle was drawn")
        return self._commit(group, draft.positions, AssignmentStrategy.RAFFLE, reset_cycle)

    def discard_draft(self, group_id: str) -> bool:
        """Drop any pending draft. No stored state changes."""
        self._load(group_id)
        draft = self._drafts.delete(group_id)
        PENDING_DRAFTS.set(self._drafts.count())
        if draft is None:
            return False
        event = "raffle_discarded" if draft.strategy == AssignmentStrategy.RAFFLE else "draft_discarded"
        self._history.record_event(event, group_id, {"draft_id": draft.draft_id})
        logger.info("Draft discarded: group=%s, strategy=%s", group_id, draft.strategy.value)
        return True

    # ── Queries ──

    def get_assignment(self, group_id: str) -> dict[str, Any]:
        """Read-only view of stored positions plus any pending draft."""
        group = self._load(group_id)
        return {
            "group_id": group_id,
            "member_count": group.member_count,
            "positions": group.positions,
            "draft": self._drafts.get_by_group(group_id),
        }

    # ── Internal ──

    def _load(self, group_id: str) -> Group:
        group = self._groups.get(group_id)
        if group is None:
            raise KeyError(f"No group found with id '{group_id}'")
        return group

    def _manual_board(self, group: Group) -> tuple[AssignmentDraft, PositionBoard]:
        draft = self._drafts.get_by_group(group.id)
        if draft is None or draft.strategy != AssignmentStrategy.MANUAL:
            # A manual edit replaces any raffle preview
            draft = AssignmentDraft(
                draft_id=str(uuid.uuid4()),
                group_id=group.id,
                strategy=AssignmentStrategy.MANUAL,
                positions=group.positions,
            )
        board = PositionBoard(group.member_ids, group.member_count, draft.positions)
        return draft, board

    def _store_board(self, draft: AssignmentDraft, board: PositionBoard) -> AssignmentDraft:
        draft.positions = board.snapshot()
        self._drafts.save(draft)
        PENDING_DRAFTS.set(self._drafts.count())
        return draft

    def _commit(
        self,
        group: Group,
        positions: dict[str, int],
        strategy: AssignmentStrategy,
        reset_cycle: bool,
    ) -> Group:
        try:
            ensure_valid(positions, group.member_count)
            if group.has_completed_collections and not reset_cycle:
                raise CycleInProgress(
                    "Collections were already completed this cycle; "
                    "pass reset_cycle to reassign and discard them"
                )
        except RotationError as exc:
            ASSIGNMENT_REJECTIONS.labels(reason=exc.code).inc()
            raise

        for member in group.members:
            member.rotation_position = positions[member.id]
        group.updated_at = datetime.now(timezone.utc)
        self._groups.save(group)
        self._drafts.delete(group.id)
        PENDING_DRAFTS.set(self._drafts.count())

        ASSIGNMENTS_SAVED.labels(strategy=strategy.value).inc()
        self._history.record_event(
            "assignment_saved",
            group.id,
            {"strategy": strategy.value, "positions": positions, "reset_cycle": reset_cycle},
        )
        logger.info(
            "Assignment saved: group=%s, strategy=%s, members=%d",
            group.id, strategy.value, len(positions),
        )

        self._timelines.generate_timeline(group.id, reset_cycle=reset_cycle)
        return self._load(group.id)
