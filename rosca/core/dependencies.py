# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
FastAPI dependency injection — wire repositories and services.
"""

from rosca.core.config import settings
from rosca.repositories.draft_repository import DraftRepository
from rosca.repositories.group_repository import (
    GroupRepository,
    InMemoryGroupRepository,
    SqlGroupRepository,
)
from rosca.repositories.history_repository import HistoryRepository
from rosca.repositories.invite_repository import InviteRequestRepository
from rosca.services.assignment_service import AssignmentService
from rosca.services.group_service import GroupService
from rosca.services.invite_service import InviteService
from rosca.services.notification_client import NotificationClient
from rosca.services.rotation import make_rng
from rosca.services.timeline_service import TimelineService


def build_group_repo() -> GroupRepository:
    if settings.DATABASE_URL:
        from rosca.core.database import build_engine
        return SqlGroupRepository(build_engine())
    return InMemoryGroupRepository()


# ── Singleton repository instances ──
_group_repo = build_group_repo()
_draft_repo = DraftRepository()
_history_repo = HistoryRepository()
_invite_repo = InviteRequestRepository()
_notification_client = NotificationClient()

# ── Service instances (with injected dependencies) ──
_group_service = GroupService(
    group_repo=_group_repo,
    draft_repo=_draft_repo,
    history_repo=_history_repo,
    invite_repo=_invite_repo,
)
_timeline_service = TimelineService(
    group_repo=_group_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)
_assignment_service = AssignmentService(
    group_repo=_group_repo,
    draft_repo=_draft_repo,
    history_repo=_history_repo,
    timeline_service=_timeline_service,
    rng=make_rng(settings.RAFFLE_SEED) if settings.RAFFLE_SEED else None,
)
_invite_service = InviteService(
    group_service=_group_service,
    invite_repo=_invite_repo,
    history_repo=_history_repo,
    notification_client=_notification_client,
)


# ── FastAPI dependency functions ──
def get_group_service() -> GroupService:
    return _group_service


def get_assignment_service() -> AssignmentService:
    return _assignment_service


def get_timeline_service() -> TimelineService:
    return _timeline_service


def get_invite_service() -> InviteService:
    return _invite_service


def get_group_repo() -> GroupRepository:
    return _group_repo


def get_draft_repo() -> DraftRepository:
    return _draft_repo


def get_history_repo() -> HistoryRepository:
    return _history_repo


def get_invite_repo() -> InviteRequestRepository:
    return _invite_repo
