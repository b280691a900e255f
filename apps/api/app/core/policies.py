"""Centralized authorization policies for businesses and users.

`check()` is a pure decision function: it reads identity, membership and
named-permission state and returns a Decision. It never mutates and never
raises for unknown actions or missing targets (deny by default).

Resolution order (first decision wins):
    1. self hard denials (delete self, change own role, impersonate self)
    2. superadmin bypass
    3. self-action rules (view/update own user)
    4. business role capabilities (membership ledger)
    5. named-permission fallback
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

from sqlalchemy.orm import Session

from app.core.exceptions import ForbiddenError, UnauthenticatedError
from app.core.permissions import PermissionKey as P
from app.db.enums import BusinessRole as R
from app.db.enums import GlobalRole
from app.db.models import Business, User
from app.services import membership_service, permission_service


class Action(str, Enum):
    """Policy actions. Business actions take a Business target."""

    # Business target
    BUSINESS_VIEW_ANY = "business.view_any"
    BUSINESS_VIEW = "business.view"
    BUSINESS_CREATE = "business.create"
    BUSINESS_UPDATE = "business.update"
    BUSINESS_DELETE = "business.delete"
    BUSINESS_RESTORE = "business.restore"
    BUSINESS_FORCE_DELETE = "business.force_delete"
    BUSINESS_VIEW_USERS = "business.view_users"
    BUSINESS_INVITE_USERS = "business.invite_users"
    BUSINESS_MANAGE_USERS = "business.manage_users"
    BUSINESS_MANAGE_USER = "business.manage_user"  # target2 = User
    BUSINESS_ASSIGN_ROLE = "business.assign_role"  # target2 = new BusinessRole
    BUSINESS_VIEW_ANALYTICS = "business.view_analytics"
    BUSINESS_MANAGE_SETTINGS = "business.manage_settings"
    BUSINESS_MANAGE_FEATURES = "business.manage_features"

    # User target
    USER_VIEW_ANY = "user.view_any"
    USER_CREATE = "user.create"
    USER_VIEW = "user.view"
    USER_UPDATE = "user.update"
    USER_DELETE = "user.delete"
    USER_RESTORE = "user.restore"
    USER_FORCE_DELETE = "user.force_delete"
    USER_CHANGE_ROLE = "user.change_role"  # target2 = new GlobalRole
    USER_IMPERSONATE = "user.impersonate"
    USER_MANAGE_PERMISSIONS = "user.manage_permissions"


@dataclass(frozen=True)
class Decision:
    allowed: bool
    reason: str | None = None

    def __bool__(self) -> bool:
        return self.allowed


ALLOW = Decision(True)


def deny(reason: str) -> Decision:
    return Decision(False, reason)


# =============================================================================
# Capability tables
# =============================================================================

ALL_BUSINESS_ROLES = frozenset(R)

# Business roles that satisfy a business-scoped action on their own business
BUSINESS_ROLE_CAPABILITIES: dict[Action, frozenset[R]] = {
    Action.BUSINESS_VIEW: ALL_BUSINESS_ROLES,
    Action.BUSINESS_VIEW_USERS: ALL_BUSINESS_ROLES,
    Action.BUSINESS_UPDATE: frozenset({R.OWNER, R.ADMIN}),
    Action.BUSINESS_DELETE: frozenset({R.OWNER}),
    Action.BUSINESS_INVITE_USERS: frozenset({R.OWNER}),
    Action.BUSINESS_MANAGE_USERS: frozenset({R.OWNER, R.ADMIN}),
    Action.BUSINESS_VIEW_ANALYTICS: frozenset({R.OWNER, R.ADMIN, R.MANAGER}),
    Action.BUSINESS_MANAGE_SETTINGS: frozenset({R.OWNER, R.ADMIN}),
    Action.BUSINESS_MANAGE_FEATURES: frozenset({R.OWNER}),
}

# Which target business roles an actor's business role may manage
MANAGEABLE_TARGET_ROLES: dict[R, frozenset[R | None]] = {
    R.OWNER: frozenset(ALL_BUSINESS_ROLES | {None}),
    R.ADMIN: frozenset((ALL_BUSINESS_ROLES - {R.OWNER}) | {None}),
}

# Business role ranking; a member may only assign roles at or below their own
BUSINESS_ROLE_RANK: dict[R, int] = {
    R.OWNER: 50,
    R.ADMIN: 40,
    R.MANAGER: 30,
    R.EMPLOYEE: 20,
    R.CONTRACTOR: 10,
    R.VIEWER: 0,
}

# Named permissions that grant an action when role checks fail (any of)
PERMISSION_FALLBACKS: dict[Action, frozenset[P]] = {
    Action.BUSINESS_INVITE_USERS: frozenset({P.USERS_CREATE, P.USERS_INVITE}),
    Action.BUSINESS_VIEW_USERS: frozenset({P.USERS_VIEW, P.USERS_CREATE, P.USERS_INVITE}),
    Action.USER_VIEW_ANY: frozenset({P.USERS_VIEW}),
    Action.USER_CREATE: frozenset({P.USERS_CREATE}),
    Action.USER_VIEW: frozenset({P.USERS_VIEW}),
    Action.USER_UPDATE: frozenset({P.USERS_EDIT}),
    Action.USER_DELETE: frozenset({P.USERS_DELETE}),
}

# Global roles a business_admin may assign to other users
BUSINESS_ADMIN_ASSIGNABLE_ROLES = frozenset(
    {GlobalRole.BUSINESS_ADMIN, GlobalRole.MANAGER, GlobalRole.EMPLOYEE}
)

SELF_HARD_DENIED = frozenset(
    {Action.USER_DELETE, Action.USER_CHANGE_ROLE, Action.USER_IMPERSONATE}
)
SELF_ALLOWED = frozenset({Action.USER_VIEW, Action.USER_UPDATE})

BUSINESS_ACTIONS = frozenset(a for a in Action if a.value.startswith("business."))
BUSINESS_ACTIONS_WITHOUT_TARGET = frozenset({Action.BUSINESS_VIEW_ANY, Action.BUSINESS_CREATE})
USER_ACTIONS_WITHOUT_TARGET = frozenset({Action.USER_VIEW_ANY, Action.USER_CREATE})

# Actions where the superadmin bypass does not apply to a superadmin target
NO_BYPASS_ON_SUPERADMIN_TARGET = frozenset({Action.USER_DELETE, Action.USER_IMPERSONATE})

# Actions nobody but a superadmin may perform
SUPERADMIN_ONLY = frozenset({
    Action.BUSINESS_RESTORE,
    Action.BUSINESS_FORCE_DELETE,
    Action.USER_RESTORE,
    Action.USER_FORCE_DELETE,
    Action.USER_IMPERSONATE,
    Action.USER_MANAGE_PERMISSIONS,
})


# =============================================================================
# Identity helpers
# =============================================================================

def global_role_of(user: User) -> GlobalRole | None:
    """Parse the profile role; unknown strings count as no role."""
    role = user.global_role
    if role and GlobalRole.has_value(role):
        return GlobalRole(role)
    return None


def is_superadmin(user: User | None) -> bool:
    return user is not None and global_role_of(user) == GlobalRole.SUPERADMIN


def _same_user(a: User, b: User) -> bool:
    return a.id is not None and a.id == b.id


# =============================================================================
# Evaluation
# =============================================================================

class _Evaluator:
    """Evaluates one check; caches ledger/permission reads for its lifetime."""

    def __init__(self, db: Session, actor: User):
        self.db = db
        self.actor = actor
        self._roles: dict[Any, R | None] = {}
        self._permissions: set[str] | None = None

    def role_in(self, user: User, business: Business) -> R | None:
        key = (user.id, business.id)
        if key not in self._roles:
            self._roles[key] = membership_service.role_of(self.db, user, business)
        return self._roles[key]

    def has_any_permission(self, keys: frozenset[P]) -> bool:
        if self._permissions is None:
            self._permissions = permission_service.get_user_permissions(self.db, self.actor)
        return any(k.value in self._permissions for k in keys)

    def permission_fallback(self, action: Action) -> Decision:
        keys = PERMISSION_FALLBACKS.get(action)
        if keys and self.has_any_permission(keys):
            return ALLOW
        return deny(f"Not permitted to perform {action.value}")

    # -- business ------------------------------------------------------------

    def business(self, action: Action, business: Business, target2: Any) -> Decision:
        if action == Action.BUSINESS_MANAGE_USER:
            return self.manage_user(business, target2)

        role = self.role_in(self.actor, business)
        allowed_roles = BUSINESS_ROLE_CAPABILITIES.get(action, frozenset())
        if role is not None and role in allowed_roles:
            return ALLOW
        fallback = self.permission_fallback(action)
        if fallback:
            return fallback
        if role is None:
            return deny("No membership in this business")
        return deny(f"Business role '{role.value}' cannot perform {action.value}")

    def manage_user(self, business: Business, target: Any) -> Decision:
        if not isinstance(target, User):
            return deny("Target user required")
        if _same_user(self.actor, target):
            return deny("Cannot manage yourself")
        role = self.role_in(self.actor, business)
        manageable = MANAGEABLE_TARGET_ROLES.get(role) if role else None
        if not manageable:
            return deny("Insufficient business role to manage users")
        if self.role_in(target, business) not in manageable:
            return deny("Cannot manage a user with a higher business role")
        return ALLOW

    def assign_role(self, business: Business, new_role: Any) -> Decision:
        try:
            new_role = R(new_role)
        except ValueError:
            return deny("Unknown business role")
        role = self.role_in(self.actor, business)
        if new_role == R.OWNER and role != R.OWNER:
            return deny("Only an owner can grant the owner role")
        if role is not None and BUSINESS_ROLE_RANK[new_role] > BUSINESS_ROLE_RANK[role]:
            return deny("Cannot assign a business role above your own")
        return ALLOW

    # -- user ----------------------------------------------------------------

    def change_role(self, target: User, new_role: Any) -> Decision:
        if global_role_of(self.actor) != GlobalRole.BUSINESS_ADMIN:
            return deny("Not permitted to change roles")
        try:
            new_role = GlobalRole(new_role) if new_role is not None else None
        except ValueError:
            return deny("Unknown role")
        if global_role_of(target) == GlobalRole.SUPERADMIN:
            return deny("Cannot modify a superadmin")
        if new_role == GlobalRole.SUPERADMIN:
            return deny("Cannot grant superadmin")
        if new_role in BUSINESS_ADMIN_ASSIGNABLE_ROLES:
            return ALLOW
        return deny("Role cannot be assigned by a business admin")


def check(
    db: Session,
    actor: User | None,
    action: Action | str,
    target: Any = None,
    target2: Any = None,
) -> Decision:
    """
    Decide whether `actor` may perform `action` on the target(s).

    - business actions: target = Business (target2 = User for manage_user)
    - user actions: target = User (target2 = new GlobalRole for change_role)
    """
    if actor is None:
        return deny("Not authenticated")
    try:
        action = Action(action)
    except ValueError:
        return deny(f"Unknown action '{action}'")

    # Target shape
    if action in BUSINESS_ACTIONS:
        if action not in BUSINESS_ACTIONS_WITHOUT_TARGET and not isinstance(target, Business):
            return deny("Business target required")
    elif action not in USER_ACTIONS_WITHOUT_TARGET and not isinstance(target, User):
        return deny("User target required")

    is_self = isinstance(target, User) and _same_user(actor, target)

    # 1. Self hard denials (apply to superadmins too)
    if is_self and action in SELF_HARD_DENIED:
        return deny("Cannot perform this action on yourself")

    # 2. Superadmin bypass
    if is_superadmin(actor):
        if action in NO_BYPASS_ON_SUPERADMIN_TARGET and is_superadmin(target):
            if action == Action.USER_IMPERSONATE:
                return deny("Cannot impersonate another superadmin")
        else:
            return ALLOW
    elif action in SUPERADMIN_ONLY:
        return deny("Superadmin only")

    # 3. Self-action rules
    if is_self and action in SELF_ALLOWED:
        return ALLOW

    evaluator = _Evaluator(db, actor)
    rule = _RULES.get(action)
    if rule is None:
        return deny(f"No rule for {action.value}")
    return rule(evaluator, target, target2)


_Rule = Callable[[_Evaluator, Any, Any], Decision]

_RULES: dict[Action, _Rule] = {
    Action.BUSINESS_VIEW_ANY: lambda ev, t, t2: ALLOW,
    Action.BUSINESS_CREATE: lambda ev, t, t2: (
        ALLOW if global_role_of(ev.actor) == GlobalRole.BUSINESS_ADMIN
        else deny("Only business admins can create businesses")
    ),
    Action.USER_CHANGE_ROLE: lambda ev, t, t2: ev.change_role(t, t2),
    **{a: (lambda ev, t, t2, a=a: ev.business(a, t, t2)) for a in BUSINESS_ROLE_CAPABILITIES},
    Action.BUSINESS_MANAGE_USER: lambda ev, t, t2: ev.manage_user(t, t2),
    Action.BUSINESS_ASSIGN_ROLE: lambda ev, t, t2: ev.assign_role(t, t2),
    **{a: (lambda ev, t, t2, a=a: ev.permission_fallback(a)) for a in (
        Action.USER_VIEW_ANY,
        Action.USER_CREATE,
        Action.USER_VIEW,
        Action.USER_UPDATE,
        Action.USER_DELETE,
    )},
}


def authorize(
    db: Session,
    actor: User | None,
    action: Action | str,
    target: Any = None,
    target2: Any = None,
) -> None:
    """
    Raise unless `check()` allows the action.

    A missing actor raises UnauthenticatedError; any other denial raises
    ForbiddenError with the decision's reason.
    """
    if actor is None:
        raise UnauthenticatedError()
    decision = check(db, actor, action, target, target2)
    if not decision.allowed:
        raise ForbiddenError(decision.reason)


def can(
    db: Session,
    actor: User | None,
    action: Action | str,
    target: Any = None,
    target2: Any = None,
) -> bool:
    return check(db, actor, action, target, target2).allowed
