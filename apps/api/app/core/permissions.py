"""Named permission registry with metadata for UI and validation.

Named permissions are granted directly to users (UserPermission rows) and
act as a fallback in the authorization policies for selected actions.
"""

from dataclasses import dataclass
from enum import Enum


class PermissionKey(str, Enum):
    """Registry keys for named permissions."""

    USERS_VIEW = "users.view"
    USERS_CREATE = "users.create"
    USERS_EDIT = "users.edit"
    USERS_DELETE = "users.delete"
    USERS_INVITE = "users.invite"
    BUSINESSES_VIEW = "businesses.view"
    BUSINESSES_CREATE = "businesses.create"
    ATTENDANCES_CREATE = "attendances.create"


class PermissionCategory(str, Enum):
    """Permission categories for UI grouping."""
    USERS = "Users"
    BUSINESSES = "Businesses"
    ATTENDANCE = "Attendance"


@dataclass(frozen=True)
class PermissionDef:
    """Permission definition with metadata."""
    key: str
    label: str
    description: str
    category: str


# =============================================================================
# Permission Registry
# =============================================================================

PERMISSION_REGISTRY: dict[str, PermissionDef] = {
    PermissionKey.USERS_VIEW.value: PermissionDef(
        PermissionKey.USERS_VIEW.value, "View Users",
        "List users and view user details", PermissionCategory.USERS.value
    ),
    PermissionKey.USERS_CREATE.value: PermissionDef(
        PermissionKey.USERS_CREATE.value, "Create Users",
        "Create users and add them to businesses", PermissionCategory.USERS.value
    ),
    PermissionKey.USERS_EDIT.value: PermissionDef(
        PermissionKey.USERS_EDIT.value, "Edit Users",
        "Modify other users' details", PermissionCategory.USERS.value
    ),
    PermissionKey.USERS_DELETE.value: PermissionDef(
        PermissionKey.USERS_DELETE.value, "Delete Users",
        "Soft-delete other users", PermissionCategory.USERS.value
    ),
    PermissionKey.USERS_INVITE.value: PermissionDef(
        PermissionKey.USERS_INVITE.value, "Invite Users",
        "Send business invitations", PermissionCategory.USERS.value
    ),
    PermissionKey.BUSINESSES_VIEW.value: PermissionDef(
        PermissionKey.BUSINESSES_VIEW.value, "View Businesses",
        "Browse businesses", PermissionCategory.BUSINESSES.value
    ),
    PermissionKey.BUSINESSES_CREATE.value: PermissionDef(
        PermissionKey.BUSINESSES_CREATE.value, "Create Businesses",
        "Register new businesses", PermissionCategory.BUSINESSES.value
    ),
    PermissionKey.ATTENDANCES_CREATE.value: PermissionDef(
        PermissionKey.ATTENDANCES_CREATE.value, "Create Attendance Records",
        "Manually record attendance", PermissionCategory.ATTENDANCE.value
    ),
}


# =============================================================================
# Helper Functions
# =============================================================================

def get_all_permissions() -> list[PermissionDef]:
    """Get all permissions sorted by category."""
    return sorted(PERMISSION_REGISTRY.values(), key=lambda p: (p.category, p.key))


def get_permission(key: str) -> PermissionDef | None:
    """Get permission by key."""
    return PERMISSION_REGISTRY.get(key)


def is_valid_permission(key: str) -> bool:
    """Check if permission key exists."""
    return key in PERMISSION_REGISTRY


def get_permissions_by_category() -> dict[str, list[PermissionDef]]:
    """Group permissions by category for UI."""
    result: dict[str, list[PermissionDef]] = {}
    for perm in PERMISSION_REGISTRY.values():
        result.setdefault(perm.category, []).append(perm)
    return result
