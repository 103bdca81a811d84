# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Position assignment endpoints (manual and raffle).
Thin HTTP layer — delegates ALL logic to AssignmentService.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from rosca.controllers.errors import not_found, rotation_error
from rosca.core.dependencies import get_assignment_service
from rosca.core.errors import RotationError
from rosca.models.domain import AssignmentDraft, AssignmentValidation, Group
from rosca.schemas.rotation import AssignmentResponse, CommitRequest, PositionAssignRequest
from rosca.services.assignment_service import AssignmentService

router = APIRouter(prefix="/api/v1/groups/{group_id}", tags=["Assignment"])


@router.get("/assignment", response_model=AssignmentResponse)
def get_assignment(
    group_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Stored positions plus any pending draft."""
    try:
        return service.get_assignment(group_id)
    except KeyError as e:
        raise not_found(e)


@router.put("/assignment/{member_id}", response_model=AssignmentDraft)
def assign_position(
    group_id: str,
    member_id: str,
    payload: PositionAssignRequest,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Assign a position on the draft; swaps with the current holder."""
    try:
        return service.assign_position(group_id, member_id, payload.position)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.delete("/assignment/{member_id}", response_model=AssignmentDraft)
def unassign_position(
    group_id: str,
    member_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    try:
        return service.unassign_position(group_id, member_id)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.post("/assignment/auto", response_model=AssignmentDraft)
def auto_assign_remaining(
    group_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Fill every unassigned member with the lowest free position."""
    try:
        return service.auto_assign_remaining(group_id)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.get("/assignment/validate", response_model=AssignmentValidation)
def validate_assignment(
    group_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    try:
        return service.validate_assignment(group_id)
    except KeyError as e:
        raise not_found(e)


@router.post("/assignment/save", response_model=Group)
def save_assignment(
    group_id: str,
    payload: Optional[CommitRequest] = None,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Commit the manual draft and regenerate the timeline."""
    reset_cycle = payload.reset_cycle if payload else False
    try:
        return service.save_assignment(group_id, reset_cycle=reset_cycle)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.delete("/draft")
def discard_draft(
    group_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    try:
        return {"group_id": group_id, "discarded": service.discard_draft(group_id)}
    except KeyError as e:
        raise not_found(e)


# ── Raffle ──

@router.post("/raffle", status_code=201, response_model=AssignmentDraft)
def run_raffle(
    group_id: str,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Draw a raffle preview. Call again to redo."""
    try:
        return service.run_raffle(group_id)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.post("/raffle/{draft_id}/confirm", response_model=Group)
def confirm_raffle(
    group_id: str,
    draft_id: str,
    payload: Optional[CommitRequest] = None,
    service: AssignmentService = Depends(get_assignment_service),
):
    """Commit the raffle preview and regenerate the timeline."""
    reset_cycle = payload.reset_cycle if payload else False
    try:
        return service.confirm_raffle(group_id, draft_id, reset_cycle=reset_cycle)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)
