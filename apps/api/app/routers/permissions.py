"""Permissions router - named permission registry and role catalog for UI and validation."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel

from app.core.deps import get_current_user
from app.core.permissions import get_all_permissions, get_permissions_by_category
from app.db.enums import BusinessRole, GlobalRole
from app.db.models import User


router = APIRouter(prefix="/permissions", tags=["Permissions"])


class PermissionInfo(BaseModel):
    """Permission metadata for UI."""
    key: str
    label: str
    description: str
    category: str


def _info(perm) -> PermissionInfo:
    return PermissionInfo(
        key=perm.key,
        label=perm.label,
        description=perm.description,
        category=perm.category,
    )


@router.get("", response_model=list[PermissionInfo])
def list_permissions(_user: User = Depends(get_current_user)):
    """All registered named permissions, sorted by category."""
    return [_info(p) for p in get_all_permissions()]


@router.get("/by-category", response_model=dict[str, list[PermissionInfo]])
def list_permissions_by_category(_user: User = Depends(get_current_user)):
    return {
        category: [_info(p) for p in perms]
        for category, perms in get_permissions_by_category().items()
    }


# =============================================================================
# Roles
# =============================================================================

class RoleSummary(BaseModel):
    """Role with its display label and description."""
    role: str
    label: str
    description: str


GLOBAL_ROLE_DESCRIPTIONS = {
    GlobalRole.SUPERADMIN: ("Superadmin", "Full access to every business and user"),
    GlobalRole.BUSINESS_ADMIN: (
        "Business Admin",
        "Creates businesses and assigns non-superadmin roles",
    ),
    GlobalRole.MANAGER: ("Manager", "No deployment-wide capabilities"),
    GlobalRole.EMPLOYEE: ("Employee", "No deployment-wide capabilities"),
}

BUSINESS_ROLE_DESCRIPTIONS = {
    BusinessRole.OWNER: ("Owner", "Full access to the business, including deletion"),
    BusinessRole.ADMIN: ("Admin", "Updates the business and manages non-owner members"),
    BusinessRole.MANAGER: ("Manager", "Views members and business analytics"),
    BusinessRole.EMPLOYEE: ("Employee", "Views the business and its members"),
    BusinessRole.CONTRACTOR: ("Contractor", "Views the business and its members"),
    BusinessRole.VIEWER: ("Viewer", "Read-only access to the business"),
}


def _role_summaries(descriptions: dict) -> list[RoleSummary]:
    return [
        RoleSummary(role=role.value, label=label, description=description)
        for role, (label, description) in descriptions.items()
    ]


@router.get("/roles", response_model=list[RoleSummary])
def list_global_roles(_user: User = Depends(get_current_user)):
    """Deployment-wide roles, highest first."""
    return _role_summaries(GLOBAL_ROLE_DESCRIPTIONS)


@router.get("/business-roles", response_model=list[RoleSummary])
def list_business_roles(_user: User = Depends(get_current_user)):
    """Roles a member can hold inside a business, highest first."""
    return _role_summaries(BUSINESS_ROLE_DESCRIPTIONS)
