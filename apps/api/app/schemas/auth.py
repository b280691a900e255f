"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.db.enums import InvitationLinkResult
from app.schemas.user import UserRead


class TokenPayload(BaseModel):
    """Decoded JWT payload structure."""
    sub: UUID  # user_id
    token_version: int
    impersonator_id: UUID | None = None  # Set on impersonation sessions


class RegisterRequest(BaseModel):
    """
    Request schema for self-registration.

    `invitation_token` is optional; a bad token never blocks registration.
    """
    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=255)
    password_confirmation: str
    job_title: str | None = Field(default=None, max_length=100)
    phone: str | None = Field(default=None, max_length=50)
    invitation_token: str | None = None

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        """Normalize email to lowercase."""
        return v.lower()

    @field_validator("password_confirmation")
    @classmethod
    def passwords_match(cls, v: str, info) -> str:
        if info.data.get("password") is not None and v != info.data["password"]:
            raise ValueError("The password confirmation does not match.")
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


class SessionResponse(BaseModel):
    """Returned by login/register; the token is also set as a cookie."""
    access_token: str
    token_type: str = "bearer"
    user: UserRead


class RegisterResponse(SessionResponse):
    invitation_link_result: InvitationLinkResult


class MeResponse(UserRead):
    """Response schema for GET /auth/me endpoint."""
    permissions: list[str] = []
    impersonator_id: UUID | None = None
