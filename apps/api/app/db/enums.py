"""Enum definitions for application constants."""

from enum import Enum


class GlobalRole(str, Enum):
    """
    Deployment-wide role stored on a user's profile.

    - SUPERADMIN: bypasses nearly every authorization rule
    - BUSINESS_ADMIN: may create businesses and manage lower global roles
    - MANAGER / EMPLOYEE: informational, no global capabilities
    """

    SUPERADMIN = "superadmin"
    BUSINESS_ADMIN = "business_admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class BusinessRole(str, Enum):
    """Role a user holds inside one business (Membership row)."""

    OWNER = "owner"
    ADMIN = "admin"
    MANAGER = "manager"
    EMPLOYEE = "employee"
    CONTRACTOR = "contractor"
    VIEWER = "viewer"

    @classmethod
    def has_value(cls, value: str) -> bool:
        """Check if value is a valid role."""
        return value in cls._value2member_map_


class ProfileStatus(str, Enum):
    """Account status on the user profile."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class EmploymentStatus(str, Enum):
    """Employment status of a member within a business."""

    ACTIVE = "active"
    INACTIVE = "inactive"
    TERMINATED = "terminated"


class InvitationState(str, Enum):
    """
    Derived invitation state for a (user, business) pair.

    NONE (no row) -> INVITED (token set) -> ACCEPTED (token cleared).
    Declining deletes the row, so there is no persisted DECLINED state.
    """

    NONE = "none"
    INVITED = "invited"
    ACCEPTED = "accepted"


class InvitationOutcome(str, Enum):
    """Result of an accept/decline call."""

    ACCEPTED = "accepted"
    NOOP = "noop"
    DECLINED = "declined"
    NOT_FOUND = "not_found"


class InvitationLinkResult(str, Enum):
    """Outcome of best-effort invitation handling during registration."""

    APPLIED = "applied"
    SKIPPED = "skipped"
    FAILED = "failed"


# =============================================================================
# Defaults
# =============================================================================

DEFAULT_BUSINESS_ROLE = BusinessRole.EMPLOYEE
DEFAULT_EMPLOYMENT_STATUS = EmploymentStatus.ACTIVE
DEFAULT_PROFILE_STATUS = ProfileStatus.ACTIVE
