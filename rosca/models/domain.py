# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Domain models — pure data structures, NO FastAPI dependency.
"""

from datetime import date, datetime, timezone
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class MemberRole(str, Enum):
    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"


class GroupStatus(str, Enum):
    FORMING = "forming"
    ACTIVE = "active"
    COMPLETED = "completed"


class TimelineStatus(str, Enum):
    COMPLETED = "completed"
    CURRENT = "current"
    UPCOMING = "upcoming"


class AssignmentStrategy(str, Enum):
    MANUAL = "manual"
    RAFFLE = "raffle"


class Member(BaseModel):
    """A member of one savings group. Position 0 means unassigned."""
    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)
    role: MemberRole = MemberRole.MEMBER
    rotation_position: int = Field(default=0, ge=0)
    is_active: bool = True
    joined_at: datetime = Field(default_factory=utcnow)


class TimelineEntry(BaseModel):
    """One collection turn: who collects the pool, and when."""
    position: int = Field(..., ge=1)
    member_id: str
    member_name: str
    due_date: date
    amount: int = Field(..., gt=0)
    status: TimelineStatus = TimelineStatus.UPCOMING
    collection_date: Optional[date] = None


class Group(BaseModel):
    """Aggregate root: owns its members and its timeline."""
    id: str
    name: str
    description: str = ""
    member_count: int = Field(..., ge=1)
    monthly_amount: int = Field(..., gt=0)
    start_date: date
    status: GroupStatus = GroupStatus.FORMING
    invite_code: str
    members: list[Member] = Field(default_factory=list)
    timeline: list[TimelineEntry] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: Optional[datetime] = None

    def get_member(self, member_id: str) -> Optional[Member]:
        for member in self.members:
            if member.id == member_id:
                return member
        return None

    @property
    def member_ids(self) -> list[str]:
        return [m.id for m in self.members]

    @property
    def positions(self) -> dict[str, int]:
        return {m.id: m.rotation_position for m in self.members}

    @property
    def is_full(self) -> bool:
        return len(self.members) >= self.member_count

    @property
    def has_completed_collections(self) -> bool:
        return any(e.status == TimelineStatus.COMPLETED for e in self.timeline)


class AssignmentDraft(BaseModel):
    """A pending assignment — never persisted on the group until committed."""
    draft_id: str
    group_id: str
    strategy: AssignmentStrategy
    positions: dict[str, int]
    created_at: datetime = Field(default_factory=utcnow)


class AssignmentValidation(BaseModel):
    """Result value of validating an assignment."""
    ok: bool
    error: Optional[str] = None
    message: Optional[str] = None
    assigned: int = 0
    total: int = 0


class InviteRequestStatus(str, Enum):
    PENDING = "pending"
    APPROVED = "approved"
    DENIED = "denied"


class InviteRequest(BaseModel):
    """A request to join a group, answered by its owner or an admin."""
    id: str
    group_id: str
    group_name: str
    requester_id: str
    requester_name: str
    requester_email: Optional[str] = None
    status: InviteRequestStatus = InviteRequestStatus.PENDING
    message: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    responded_at: Optional[datetime] = None
    responded_by: Optional[str] = None
