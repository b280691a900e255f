"""Permission service - named permissions granted directly to users."""

import logging

from sqlalchemy.orm import Session

from app.core.permissions import PermissionKey, is_valid_permission
from app.db.models import User, UserPermission


logger = logging.getLogger(__name__)


def _key(permission: PermissionKey | str) -> str:
    key = permission.value if isinstance(permission, PermissionKey) else permission
    if not is_valid_permission(key):
        raise ValueError(f"Unknown permission: {key}")
    return key


def get_user_permissions(db: Session, user: User) -> set[str]:
    """Get all named permission keys held by the user."""
    if user is None or user.id is None:
        return set()
    rows = (
        db.query(UserPermission.permission)
        .filter(UserPermission.user_id == user.id)
        .all()
    )
    return {row[0] for row in rows}


def has_permission(db: Session, user: User, permission: PermissionKey | str) -> bool:
    """Check a single named permission. Unknown keys are never held."""
    key = permission.value if isinstance(permission, PermissionKey) else permission
    if not is_valid_permission(key):
        return False
    return key in get_user_permissions(db, user)


def grant_permission(
    db: Session,
    user: User,
    permission: PermissionKey | str,
    granted_by: User | None = None,
) -> UserPermission:
    """Grant a named permission (idempotent). Raises ValueError for unknown keys."""
    key = _key(permission)
    existing = (
        db.query(UserPermission)
        .filter(UserPermission.user_id == user.id, UserPermission.permission == key)
        .first()
    )
    if existing:
        return existing

    grant = UserPermission(
        user_id=user.id,
        permission=key,
        granted_by_user_id=granted_by.id if granted_by else None,
    )
    db.add(grant)
    db.flush()
    logger.info("Granted permission %s to user %s", key, user.id)
    return grant


def revoke_permission(db: Session, user: User, permission: PermissionKey | str) -> bool:
    """Revoke a named permission. Returns False if it was not held."""
    key = _key(permission)
    deleted = (
        db.query(UserPermission)
        .filter(UserPermission.user_id == user.id, UserPermission.permission == key)
        .delete(synchronize_session=False)
    )
    if deleted:
        db.expire(user, ["permissions"])
        logger.info("Revoked permission %s from user %s", key, user.id)
    return deleted > 0
