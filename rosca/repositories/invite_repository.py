# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Invite requests (ask to join a group, admin answers).
"""

from typing import Optional

from rosca.models.domain import InviteRequest, InviteRequestStatus


class InviteRequestRepository:
    """In-memory invite requests keyed by request id, in arrival order."""

    def __init__(self) -> None:
        self._store: dict[str, InviteRequest] = {}

    # ── Read ──

    def get(self, request_id: str) -> Optional[InviteRequest]:
        request = self._store.get(request_id)
        return request.model_copy(deep=True) if request is not None else None

    def get_by_group(
        self, group_id: str, status: Optional[InviteRequestStatus] = None
    ) -> list[InviteRequest]:
        return [
            r.model_copy(deep=True) for r in self._store.values()
            if r.group_id == group_id and (status is None or r.status == status)
        ]

    def find_pending(self, group_id: str, requester_id: str) -> Optional[InviteRequest]:
        for r in self._store.values():
            if (
                r.group_id == group_id
                and r.requester_id == requester_id
                and r.status == InviteRequestStatus.PENDING
            ):
                return r.model_copy(deep=True)
        return None

    def count_pending(self) -> int:
        return sum(1 for r in self._store.values() if r.status == InviteRequestStatus.PENDING)

    # ── Write ──

    def save(self, request: InviteRequest) -> None:
        self._store[request.id] = request.model_copy(deep=True)

    def delete_by_group(self, group_id: str) -> int:
        doomed = [rid for rid, r in self._store.items() if r.group_id == group_id]
        for rid in doomed:
            del self._store[rid]
        return len(doomed)

    def clear(self) -> None:
        self._store.clear()
