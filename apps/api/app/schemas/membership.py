"""Membership and invitation Pydantic schemas."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.db.enums import (
    BusinessRole,
    EmploymentStatus,
    InvitationOutcome,
    InvitationState,
)
from app.schemas.business import BusinessRead
from app.schemas.user import UserSummary


class MemberRead(BaseModel):
    """A membership row as seen from the business."""

    id: UUID
    business_id: UUID
    user_id: UUID | None
    user: UserSummary | None
    business_role: BusinessRole
    employment_status: EmploymentStatus
    joined_date: date
    left_date: date | None
    notes: str | None
    invited_email: str | None
    invitation_state: InvitationState
    invitation_sent_at: datetime | None
    invitation_accepted_at: datetime | None

    model_config = {"from_attributes": True}


class MemberUpdate(BaseModel):
    business_role: BusinessRole | None = None
    employment_status: EmploymentStatus | None = None
    notes: str | None = Field(default=None, max_length=500)


class InviteCreate(BaseModel):
    """
    Request schema for inviting an email address to a business.

    Email is normalized to lowercase.
    """
    email: EmailStr
    business_role: BusinessRole = BusinessRole.EMPLOYEE
    notes: str | None = Field(default=None, max_length=500)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.strip().lower()


class InviteResponse(BaseModel):
    """The token is returned to the caller; delivery is out of band."""
    membership: MemberRead
    invitation_token: str


class InvitationTokenRequest(BaseModel):
    token: str = Field(min_length=1)


class InvitationOutcomeResponse(BaseModel):
    outcome: InvitationOutcome


class PendingInvitationRead(BaseModel):
    id: UUID
    business: BusinessRead
    business_role: BusinessRole
    invitation_sent_at: datetime | None
    invitation_token: str | None

    model_config = {"from_attributes": True}
