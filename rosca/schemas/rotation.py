# type: ignore
# pyright: reportMissingImports=false, reportGeneralTypeErrors=false
"""
Request / Response schemas — API contract definitions.
These are Pydantic models used ONLY at the controller (HTTP) boundary.
"""

from datetime import date
from typing import Optional

from pydantic import BaseModel, Field

from rosca.models.domain import AssignmentDraft


# ── Member Schemas ──

class MemberIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=255, description="Member id")
    name: str = Field(..., min_length=1, max_length=255, description="Display name")
    email: Optional[str] = Field(default=None, max_length=255)
    role: str = Field(
        default="member", pattern="^(admin|member)$", description="Role: admin or member"
    )


class OwnerIn(BaseModel):
    id: str = Field(..., min_length=1, max_length=255)
    name: str = Field(..., min_length=1, max_length=255)
    email: Optional[str] = Field(default=None, max_length=255)


# ── Group Schemas ──

class GroupCreateRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255, description="Group name")
    description: str = Field(default="", max_length=2000)
    member_count: int = Field(..., description="Target number of members")
    monthly_amount: int = Field(..., description="Contribution per member per month")
    start_date: Optional[date] = Field(
        default=None, description="First collection date (defaults to today)"
    )
    owner: OwnerIn


class JoinGroupRequest(BaseModel):
    invite_code: str = Field(..., min_length=6, max_length=6)
    member: MemberIn


# ── Assignment Schemas ──

class PositionAssignRequest(BaseModel):
    position: int = Field(..., ge=1, description="1-based rotation position")


class CommitRequest(BaseModel):
    reset_cycle: bool = Field(
        default=False,
        description="Required to reassign after collections were completed",
    )


class AssignmentResponse(BaseModel):
    group_id: str
    member_count: int
    positions: dict[str, int]
    draft: Optional[AssignmentDraft] = None


# ── Timeline Schemas ──

class CompleteCollectionRequest(BaseModel):
    collection_date: Optional[date] = Field(
        default=None, description="Date the pool was collected (defaults to today)"
    )


class GroupSummaryResponse(BaseModel):
    group_id: str
    name: str
    status: str
    member_count: int
    members_joined: int
    positions_assigned: int
    monthly_amount: int
    total_pool: int
    total_pool_display: str
    total_collected: int
    cycle_progress: float
    cycle_end_date: str
    current_recipient: Optional[str] = None
    next_payment_due: Optional[str] = None
    days_left: Optional[int] = None


# ── Invite Request Schemas ──

class InviteRequestIn(BaseModel):
    requester: OwnerIn
    message: Optional[str] = Field(default=None, max_length=500)


class InviteDecisionRequest(BaseModel):
    admin_id: str = Field(..., min_length=1, max_length=255, description="Owner or admin answering")
    reason: Optional[str] = Field(default=None, max_length=500)
