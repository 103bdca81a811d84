# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Service: Invite requests — ask to join a group, owner/admin answers.

Approving a request goes through GroupService.add_member, so the usual
membership rules (capacity, draft discard) apply. A request that cannot be
admitted stays pending.
"""

import uuid
from datetime import datetime, timezone
from typing import Any, Optional

from rosca.core.errors import GroupFull, InvalidGroup, NotGroupAdmin, RequestAlreadyAnswered
from rosca.core.logging import get_logger
from rosca.metrics.prometheus import INVITE_REQUESTS, PENDING_INVITE_REQUESTS
from rosca.models.domain import Group, InviteRequest, InviteRequestStatus, MemberRole
from rosca.repositories.history_repository import HistoryRepository
from rosca.repositories.invite_repository import InviteRequestRepository
from rosca.services.group_service import GroupService
from rosca.services.notification_client import NotificationClient

logger = get_logger(__name__)

ADMIN_ROLES = (MemberRole.OWNER, MemberRole.ADMIN)


class InviteService:
    """Business logic for requests to join a group."""

    def __init__(
        self,
        group_service: GroupService,
        invite_repo: InviteRequestRepository,
        history_repo: HistoryRepository,
        notification_client: NotificationClient,
    ) -> None:
        self._groups = group_service
        self._requests = invite_repo
        self._history = history_repo
        self._notifications = notification_client

    # ── Commands ──

    def request_to_join(
        self, group_id: str, requester: dict[str, Any], message: Optional[str] = None
    ) -> InviteRequest:
        """
        File a pending request. Asking again while one is pending returns the
        existing request. Raises KeyError / InvalidGroup / GroupFull.
        """
        group = self._groups.get_group(group_id)
        if group.get_member(requester["id"]) is not None:
            raise InvalidGroup(f"'{requester['id']}' is already a member of '{group.name}'")
        if group.is_full:
            raise GroupFull(f"Group '{group.name}' already has {group.member_count} members")

        existing = self._requests.find_pending(group_id, requester["id"])
        if existing is not None:
            return existing

        request = InviteRequest(
            id=str(uuid.uuid4()),
            group_id=group_id,
            group_name=group.name,
            requester_id=requester["id"],
            requester_name=requester["name"],
            requester_email=requester.get("email"),
            message=message,
        )
        self._requests.save(request)

        INVITE_REQUESTS.labels(outcome="requested").inc()
        PENDING_INVITE_REQUESTS.set(self._requests.count_pending())
        self._history.record_event(
            "invite_requested",
            group_id,
            {"request_id": request.id, "requester_id": request.requester_id},
        )
        logger.info(
            "Invite requested: group=%s, requester=%s", group_id, request.requester_id
        )
        return request

    def approve_request(self, group_id: str, request_id: str, admin_id: str) -> Group:
        """Admit the requester as a member. Returns the updated group."""
        group, request = self._pending(group_id, request_id, admin_id)
        updated = self._groups.add_member(
            group.id,
            {
                "id": request.requester_id,
                "name": request.requester_name,
                "email": request.requester_email,
            },
        )
        self._answer(request, InviteRequestStatus.APPROVED, admin_id)
        self._tell_requester(request, f"Your request to join '{group.name}' was approved")
        return updated

    def deny_request(
        self, group_id: str, request_id: str, admin_id: str, reason: Optional[str] = None
    ) -> InviteRequest:
        group, request = self._pending(group_id, request_id, admin_id)
        request.message = reason
        request = self._answer(request, InviteRequestStatus.DENIED, admin_id)
        text = f"Your request to join '{group.name}' was declined"
        self._tell_requester(request, f"{text}: {reason}" if reason else text)
        return request

    # ── Queries ──

    def list_requests(
        self, group_id: str, status: Optional[InviteRequestStatus] = None
    ) -> list[InviteRequest]:
        self._groups.get_group(group_id)
        return self._requests.get_by_group(group_id, status)

    # ── Internal ──

    def _pending(
        self, group_id: str, request_id: str, admin_id: str
    ) -> tuple[Group, InviteRequest]:
        group = self._groups.get_group(group_id)
        request = self._requests.get(request_id)
        if request is None or request.group_id != group_id:
            raise KeyError(f"No invite request '{request_id}' for group '{group_id}'")

        admin = group.get_member(admin_id)
        if admin is None or admin.role not in ADMIN_ROLES:
            raise NotGroupAdmin(f"'{admin_id}' cannot answer requests for '{group.name}'")
        if request.status != InviteRequestStatus.PENDING:
            raise RequestAlreadyAnswered(
                f"Request '{request_id}' was already {request.status.value}"
            )
        return group, request

    def _answer(
        self, request: InviteRequest, status: InviteRequestStatus, admin_id: str
    ) -> InviteRequest:
        request.status = status
        request.responded_at = datetime.now(timezone.utc)
        request.responded_by = admin_id
        self._requests.save(request)

        INVITE_REQUESTS.labels(outcome=status.value).inc()
        PENDING_INVITE_REQUESTS.set(self._requests.count_pending())
        self._history.record_event(
            f"invite_{status.value}",
            request.group_id,
            {"request_id": request.id, "requester_id": request.requester_id, "by": admin_id},
        )
        logger.info(
            "Invite request %s: group=%s, requester=%s, by=%s",
            status.value, request.group_id, request.requester_id, admin_id,
        )
        return request

    def _tell_requester(self, request: InviteRequest, message: str) -> None:
        if request.requester_email:
            self._notifications.send(
                channel="email",
                recipient=request.requester_email,
                message=message,
                group_id=request.group_id,
            )
