"""User-related Pydantic schemas."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field, field_validator

from app.db.enums import GlobalRole, ProfileStatus


class ProfileRead(BaseModel):
    role: GlobalRole | None
    status: ProfileStatus
    phone: str | None
    address: str | None
    job_title: str | None
    department: str | None
    employee_id: str | None
    last_login_at: datetime | None

    model_config = {"from_attributes": True}


class UserRead(BaseModel):
    """Response schema for reading a user."""

    id: UUID
    email: str
    name: str
    profile: ProfileRead | None
    created_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}


class UserSummary(BaseModel):
    id: UUID
    email: str
    name: str

    model_config = {"from_attributes": True}


class UserCreate(BaseModel):
    """Request schema for admin-side user creation."""

    name: str = Field(min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(min_length=8, max_length=255)
    role: GlobalRole | None = None
    status: ProfileStatus = ProfileStatus.ACTIVE
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    job_title: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=50)

    @field_validator("email")
    @classmethod
    def lowercase_email(cls, v: str) -> str:
        return v.lower()


class UserUpdate(BaseModel):
    """Request schema for updating a user (only provided fields change)."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    address: str | None = None
    job_title: str | None = Field(default=None, max_length=100)
    department: str | None = Field(default=None, max_length=100)
    employee_id: str | None = Field(default=None, max_length=50)
    status: ProfileStatus | None = None


class RoleChange(BaseModel):
    """Request schema for PUT /users/{id}/role (null clears the role)."""

    role: GlobalRole | None


class PermissionGrant(BaseModel):
    permission: str


class PermissionRead(BaseModel):
    key: str
    label: str
    description: str
    category: str


class ImpersonationResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user_id: UUID
