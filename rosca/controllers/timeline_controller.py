# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Rotation timeline endpoints.
Thin HTTP layer — delegates ALL logic to TimelineService.
"""

from typing import Optional

from fastapi import APIRouter, Depends

from rosca.controllers.errors import not_found, rotation_error
from rosca.core.dependencies import get_timeline_service
from rosca.core.errors import RotationError
from rosca.models.domain import TimelineEntry
from rosca.schemas.rotation import CommitRequest, CompleteCollectionRequest
from rosca.services.timeline_service import TimelineService

router = APIRouter(prefix="/api/v1/groups/{group_id}", tags=["Timeline"])


@router.get("/timeline", response_model=list[TimelineEntry])
def get_timeline(
    group_id: str,
    service: TimelineService = Depends(get_timeline_service),
):
    try:
        return service.get_timeline(group_id)
    except KeyError as e:
        raise not_found(e)


@router.post("/timeline", response_model=list[TimelineEntry])
def generate_timeline(
    group_id: str,
    payload: Optional[CommitRequest] = None,
    service: TimelineService = Depends(get_timeline_service),
):
    """Discard and recompute the timeline. Needs reset_cycle once collections exist."""
    reset_cycle = payload.reset_cycle if payload else False
    try:
        return service.generate_timeline(group_id, reset_cycle=reset_cycle)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)


@router.post("/timeline/{position}/complete", response_model=list[TimelineEntry])
def complete_collection(
    group_id: str,
    position: int,
    payload: Optional[CompleteCollectionRequest] = None,
    service: TimelineService = Depends(get_timeline_service),
):
    """Confirm the current recipient has collected the pool."""
    collection_date = payload.collection_date if payload else None
    try:
        return service.advance_timeline_status(group_id, position, collection_date)
    except KeyError as e:
        raise not_found(e)
    except RotationError as e:
        raise rotation_error(e)
