# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Repository: Pending assignment drafts.
Holds at most one uncommitted draft (manual edits or raffle preview) per
group. Drafts are transient by nature and always live in memory.
"""

from typing import Optional

from rosca.models.domain import AssignmentDraft


class DraftRepository:
    """In-memory draft storage keyed by group id."""

    def __init__(self) -> None:
        self._store: dict[str, AssignmentDraft] = {}

    # ── Read ──

    def get_by_group(self, group_id: str) -> Optional[AssignmentDraft]:
        draft = self._store.get(group_id)
        return draft.model_copy(deep=True) if draft is not None else None

    def count(self) -> int:
        return len(self._store)

    # ── Write ──

    def save(self, draft: AssignmentDraft) -> None:
        self._store[draft.group_id] = draft.model_copy(deep=True)

    def delete(self, group_id: str) -> Optional[AssignmentDraft]:
        return self._store.pop(group_id, None)

    # ── Bulk / internal ──

    def clear(self) -> None:
        self._store.clear()
