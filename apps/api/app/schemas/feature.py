"""Feature entitlement Pydantic schemas."""

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel


class FeatureRead(BaseModel):
    id: UUID
    slug: str
    name: str
    description: str | None
    category: str
    is_active: bool

    model_config = {"from_attributes": True}


class FeatureAssignmentRead(BaseModel):
    feature: FeatureRead
    is_enabled: bool
    settings: dict[str, Any] | None
    enabled_at: datetime | None

    model_config = {"from_attributes": True}


class FeatureAssign(BaseModel):
    feature_slug: str
    settings: dict[str, Any] | None = None


class BusinessFeaturesResponse(BaseModel):
    """Assigned features plus the catalog entries not yet assigned."""
    assigned: list[FeatureAssignmentRead]
    available: list[FeatureRead]
