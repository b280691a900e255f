"""Business-related Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, EmailStr, Field


class BusinessCreate(BaseModel):
    """Request schema for creating a business. The slug is generated."""

    name: str = Field(min_length=1, max_length=255)
    description: str | None = None
    industry: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    settings: dict[str, Any] | None = None


class BusinessUpdate(BaseModel):
    """Request schema for updating a business (slug is immutable)."""

    name: str | None = Field(default=None, min_length=1, max_length=255)
    description: str | None = None
    industry: str | None = Field(default=None, max_length=100)
    email: EmailStr | None = None
    phone: str | None = Field(default=None, max_length=50)
    is_active: bool | None = None
    settings: dict[str, Any] | None = None


class BusinessRead(BaseModel):
    """Response schema for reading a business."""

    id: UUID
    slug: str
    name: str
    description: str | None
    industry: str | None
    email: str | None
    phone: str | None
    is_active: bool
    settings: dict[str, Any] | None
    created_by_user_id: UUID | None
    created_at: datetime
    deleted_at: datetime | None = None

    model_config = {"from_attributes": True}
