# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Rotation position assignment — pure computation, no side effects.

Two strategies produce the same shape (member_id -> position):
    manual  — PositionBoard.assign / unassign / auto_assign_remaining
    raffle  — uniform shuffle of the member list, position i+1 for index i
"""

import random
from typing import Optional

from rosca.core.errors import (
    DuplicatePosition,
    EmptyMemberList,
    IncompleteAssignment,
    InvalidMemberCount,
    InvalidPositions,
    PositionOutOfRange,
    UnknownMember,
)
from rosca.models.domain import AssignmentStrategy, AssignmentValidation

UNASSIGNED = 0


class PositionBoard:
    """
    Mutable member -> position mapping for one group, in member order.
    Positions run 1..capacity, capacity being the joined members (never more
    than member_count). Pure function of its inputs — no I/O, no metrics, no logging.
    """

    def __init__(
        self,
        member_ids: list[str],
        member_count: int,
        positions: Optional[dict[str, int]] = None,
    ) -> None:
        if member_count < 1:
            raise InvalidMemberCount(f"member_count must be >= 1, got {member_count}")
        positions = positions or {}
        self._member_count = member_count
        self._positions: dict[str, int] = {
            member_id: positions.get(member_id, UNASSIGNED) for member_id in member_ids
        }
        self._capacity = min(len(self._positions), member_count)

    @property
    def member_count(self) -> int:
        return self._member_count

    @property
    def capacity(self) -> int:
        return self._capacity

    def snapshot(self) -> dict[str, int]:
        return dict(self._positions)

    def holder_of(self, position: int) -> Optional[str]:
        for member_id, pos in self._positions.items():
            if pos == position:
                return member_id
        return None

    def assign(self, member_id: str, position: int) -> Optional[str]:
        """
        Give `position` to `member_id`. If another member holds it, the two
        swap: the other member receives member_id's previous position
        (possibly 0). Returns the id of the swapped member, if any.
        """
        if member_id not in self._positions:
            raise UnknownMember(f"Member '{member_id}' is not part of this group")
        if not 1 <= position <= self._capacity:
            raise PositionOutOfRange(
                f"Position {position} outside 1..{self._capacity}"
            )

        previous = self._positions[member_id]
        holder = self.holder_of(position)
        if holder is not None and holder != member_id:
            self._positions[holder] = previous
            self._positions[member_id] = position
            return holder
        self._positions[member_id] = position
        return None

    def unassign(self, member_id: str) -> None:
        if member_id not in self._positions:
            raise UnknownMember(f"Member '{member_id}' is not part of this group")
        self._positions[member_id] = UNASSIGNED

    def auto_assign_remaining(self) -> list[str]:
        """Lowest free position to each unassigned member, in member order."""
        if not self._positions:
            raise EmptyMemberList("Cannot auto-assign positions without members")

        used = {pos for pos in self._positions.values() if pos != UNASSIGNED}
        available = (p for p in range(1, self._capacity + 1) if p not in used)
        assigned: list[str] = []
        for member_id, pos in self._positions.items():
            if pos != UNASSIGNED:
                continue
            slot = next(available, None)
            if slot is None:
                break
            self._positions[member_id] = slot
            assigned.append(member_id)
        return assigned

    def validate(self) -> AssignmentValidation:
        return validate_positions(self._positions, self._member_count)


def validate_positions(positions: dict[str, int], member_count: int) -> AssignmentValidation:
    """
    Check an assignment. Returns a result value, never raises.

    Complete means every joined member holds a distinct position and the
    positions are exactly {1..n}, n being the number of joined members
    (n == member_count once the group is full).
    """
    total = len(positions)
    assigned_values = [p for p in positions.values() if p != UNASSIGNED]
    result = {"assigned": len(assigned_values), "total": total}

    if not positions:
        return AssignmentValidation(
            ok=False, error=EmptyMemberList.code,
            message="The group has no members to assign", **result,
        )
    if len(assigned_values) < total:
        return AssignmentValidation(
            ok=False, error=IncompleteAssignment.code,
            message="Please assign positions to all members before saving.",
            **result,
        )
    if len(set(assigned_values)) != len(assigned_values):
        return AssignmentValidation(
            ok=False, error=DuplicatePosition.code,
            message="Each member must have a unique position.", **result,
        )
    if total > member_count or set(assigned_values) != set(range(1, total + 1)):
        return AssignmentValidation(
            ok=False, error=InvalidPositions.code,
            message=f"Positions must be exactly 1..{total} with no gaps.",
            **result,
        )
    return AssignmentValidation(ok=True, **result)


def ensure_valid(positions: dict[str, int], member_count: int) -> None:
    """Raise the matching RotationError if the assignment is not complete."""
    validation = validate_positions(positions, member_count)
    if validation.ok:
        return
    error_cls = {
        EmptyMemberList.code: EmptyMemberList,
        IncompleteAssignment.code: IncompleteAssignment,
        DuplicatePosition.code: DuplicatePosition,
    }.get(validation.error, InvalidPositions)
    raise error_cls(validation.message)


def make_rng(seed: Optional[str | int] = None) -> random.Random:
    if seed is None or seed == "":
        return random.Random()
    return random.Random(seed)


def raffle(
    member_ids: list[str],
    rng: Optional[random.Random] = None,
    seed: Optional[str | int] = None,
) -> dict[str, int]:
    """Uniform random permutation; member at shuffled index i gets i+1."""
    if not member_ids:
        raise EmptyMemberList("A raffle needs at least one member")
    rng = rng or make_rng(seed)
    shuffled = list(member_ids)
    rng.shuffle(shuffled)
    return {member_id: index + 1 for index, member_id in enumerate(shuffled)}


def compute_assignment(
    member_ids: list[str],
    strategy: AssignmentStrategy,
    member_count: int,
    positions: Optional[dict[str, int]] = None,
    seed: Optional[str | int] = None,
    rng: Optional[random.Random] = None,
) -> dict[str, int]:
    """
    Single entry point for both strategies.
    Manual keeps the given positions and fills the gaps deterministically.
    """
    if member_count < 1:
        raise InvalidMemberCount(f"member_count must be >= 1, got {member_count}")
    if strategy == AssignmentStrategy.RAFFLE:
        return raffle(member_ids, rng=rng, seed=seed)

    board = PositionBoard(member_ids, member_count, positions)
    board.auto_assign_remaining()
    return board.snapshot()
