# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Controller: Liveness, readiness and the Prometheus scrape endpoint.
"""

from datetime import datetime, timezone

from fastapi import APIRouter
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest
from starlette.responses import Response

from rosca.core.config import settings
from rosca.core.dependencies import get_draft_repo, get_group_repo

router = APIRouter(tags=["System"])


def _storage_kind() -> str:
    return "sql" if settings.DATABASE_URL else "memory"


@router.get("/health")
def health_check():
    """Liveness: the process answers and the group store is reachable."""
    return {
        "status": "ok",
        "service": settings.SERVICE_NAME,
        "version": settings.SERVICE_VERSION,
        "timestamp": datetime.now(timezone.utc).isoformat(),
        "groups_count": get_group_repo().count(),
        "pending_drafts": get_draft_repo().count(),
    }


@router.get("/health/ready")
def readiness_check():
    groups = get_group_repo().count()
    return {
        "status": "ready",
        "service": settings.SERVICE_NAME,
        "storage": _storage_kind(),
        "groups_loaded": groups > 0,
    }


@router.get("/metrics")
def prometheus_metrics():
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
