# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Group and membership endpoints, history and stats.
Thin HTTP layer — delegates ALL logic to GroupService.
"""

from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from rosca.controllers.errors import not_found, rotation_error
from rosca.core.dependencies import get_group_service, get_history_repo
from rosca.core.errors import RotationError
from rosca.models.domain import Group
from rosca.repositories.history_repository import HistoryRepository
from rosca.schemas.rotation import (
    GroupCreateRequest,
    GroupSummaryResponse,
    JoinGroupRequest,
    MemberIn,
)
from rosca.services.group_service import GroupService

router = APIRouter(prefix="/api/v1", tags=["Groups"])


@router.post("/groups", status_code=201, response_model=Group)
def create_group(
    payload: GroupCreateRequest,
    service: GroupService = Depends(get_group_service),
):
    """Create a savings group with the caller as owner."""
    try:
        return service.create_group(
            name=payload.name,
            monthly_amount=payload.monthly_amount,
            member_count=payload.member_count,
            owner=payload.owner.model_dump(),
            description=payload.description,
            start_date=payload.start_date,
        )
    except RotationError as e:
        raise rotation_error(e)


@router.get("/groups", response_model=list[Group])
def list_groups(
    service: GroupService = Depends(get_group_service),
):
    """List all savings groups."""
    return service.list_groups()


@router.post("/groups/join", response_model=Group)
def join_group(
    payload: JoinGroupRequest,
    service: GroupService = Depends(get_group_service),
):
    """Join a group using its invite code."""
    try:
        return service.join_by_invite_code(payload.invite_code, payload.member.model_dump())
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.get("/groups/{group_id}", response_model=Group)
def get_group(
    group_id: str,
    service: GroupService = Depends(get_group_service),
):
    try:
        return service.get_group(group_id)
    except KeyError as e:
        raise not_found(e)


@router.delete("/groups/{group_id}")
def delete_group(
    group_id: str,
    service: GroupService = Depends(get_group_service),
):
    try:
        return service.delete_group(group_id)
    except KeyError as e:
        raise not_found(e)


@router.get("/groups/{group_id}/summary", response_model=GroupSummaryResponse)
def get_group_summary(
    group_id: str,
    service: GroupService = Depends(get_group_service),
):
    """Progress, current recipient and next due date."""
    try:
        return service.get_summary(group_id)
    except KeyError as e:
        raise not_found(e)


# ── Membership ──

@router.post("/groups/{group_id}/members", status_code=201, response_model=Group)
def add_member(
    group_id: str,
    payload: MemberIn,
    service: GroupService = Depends(get_group_service),
):
    try:
        return service.add_member(group_id, payload.model_dump())
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.delete("/groups/{group_id}/members/{member_id}", response_model=Group)
def remove_member(
    group_id: str,
    member_id: str,
    service: GroupService = Depends(get_group_service),
):
    try:
        return service.remove_member(group_id, member_id)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


# ── History ──

@router.get("/history")
def get_history(
    group_id: Optional[str] = None,
    event_type: Optional[str] = None,
    limit: int = Query(default=None, ge=1, description="Max results"),
    history_repo: HistoryRepository = Depends(get_history_repo),
):
    """Audit log for all group events."""
    return history_repo.get_all(group_id=group_id, event_type=event_type, limit=limit)


# ── Stats ──

@router.get("/stats")
def get_stats(
    service: GroupService = Depends(get_group_service),
):
    """Aggregated operational statistics."""
    return service.get_stats()
