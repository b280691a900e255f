"""Pydantic schemas for API request/response models."""

from app.schemas.auth import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
    TokenPayload,
)
from app.schemas.business import BusinessCreate, BusinessRead, BusinessUpdate
from app.schemas.dashboard import BusinessDashboard, MemberStats
from app.schemas.feature import (
    BusinessFeaturesResponse,
    FeatureAssign,
    FeatureAssignmentRead,
    FeatureRead,
)
from app.schemas.membership import (
    InvitationOutcomeResponse,
    InvitationTokenRequest,
    InviteCreate,
    InviteResponse,
    MemberRead,
    MemberUpdate,
    PendingInvitationRead,
)
from app.schemas.user import (
    ImpersonationResponse,
    PermissionGrant,
    PermissionRead,
    ProfileRead,
    RoleChange,
    UserCreate,
    UserRead,
    UserSummary,
    UserUpdate,
)

__all__ = [
    # Auth
    "TokenPayload",
    "RegisterRequest",
    "RegisterResponse",
    "LoginRequest",
    "SessionResponse",
    "MeResponse",
    # Business
    "BusinessCreate",
    "BusinessUpdate",
    "BusinessRead",
    "BusinessDashboard",
    "MemberStats",
    # Membership / invitations
    "MemberRead",
    "MemberUpdate",
    "InviteCreate",
    "InviteResponse",
    "InvitationTokenRequest",
    "InvitationOutcomeResponse",
    "PendingInvitationRead",
    # Users
    "ProfileRead",
    "UserRead",
    "UserSummary",
    "UserCreate",
    "UserUpdate",
    "RoleChange",
    "PermissionGrant",
    "PermissionRead",
    "ImpersonationResponse",
    # Features
    "FeatureRead",
    "FeatureAssignmentRead",
    "FeatureAssign",
    "BusinessFeaturesResponse",
]
