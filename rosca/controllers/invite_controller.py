# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Invite request endpoints (ask to join, approve, deny).
Thin HTTP layer — delegates ALL logic to InviteService.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from rosca.controllers.errors import not_found, rotation_error
from rosca.core.dependencies import get_invite_service
from rosca.core.errors import RotationError
from rosca.models.domain import Group, InviteRequest, InviteRequestStatus
from rosca.schemas.rotation import InviteDecisionRequest, InviteRequestIn
from rosca.services.invite_service import InviteService

router = APIRouter(prefix="/api/v1/groups/{group_id}/requests", tags=["Invite Requests"])


@router.post("", status_code=201, response_model=InviteRequest)
def request_to_join(
    group_id: str,
    payload: InviteRequestIn,
    service: InviteService = Depends(get_invite_service),
):
    """Ask to join a group; an owner or admin answers later."""
    try:
        return service.request_to_join(group_id, payload.requester.model_dump(), payload.message)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.get("", response_model=list[InviteRequest])
def list_requests(
    group_id: str,
    status: Optional[InviteRequestStatus] = None,
    service: InviteService = Depends(get_invite_service),
):
    try:
        return service.list_requests(group_id, status)
    except KeyError as e:
        raise not_found(e)


@router.post("/{request_id}/approve", response_model=Group)
def approve_request(
    group_id: str,
    request_id: str,
    payload: InviteDecisionRequest,
    service: InviteService = Depends(get_invite_service),
):
    """Admit the requester as a member."""
    try:
        return service.approve_request(group_id, request_id, payload.admin_id)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.post("/{request_id}/deny", response_model=InviteRequest)
def deny_request(
    group_id: str,
    request_id: str,
    payload: InviteDecisionRequest,
    service: InviteService = Depends(get_invite_service),
):
    try:
        return service.deny_request(group_id, request_id, payload.admin_id, payload.reason)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)
