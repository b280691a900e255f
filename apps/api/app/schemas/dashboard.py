"""Business dashboard Pydantic schemas."""

from pydantic import BaseModel

from app.schemas.business import BusinessRead
from app.schemas.feature import FeatureRead
from app.schemas.membership import MemberRead


class MemberStats(BaseModel):
    total_users: int
    active_users: int
    owners: int
    employees: int


class BusinessDashboard(BaseModel):
    """Business overview: head counts, newest members, enabled features."""
    business: BusinessRead
    stats: MemberStats
    recent_users: list[MemberRead]
    enabled_features: list[FeatureRead]
    user_role: str
    can_manage: bool
