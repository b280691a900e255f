"""User service - user lookups, profile updates, roles and lifecycle."""

import logging
from uuid import UUID

from sqlalchemy import func, or_
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ConflictError, ForbiddenError
from app.core.policies import (
    BUSINESS_ADMIN_ASSIGNABLE_ROLES,
    Action,
    authorize,
    global_role_of,
    is_superadmin,
)
from app.core.security import create_session_token, hash_password
from app.core.structured_logging import build_log_context
from app.db.enums import DEFAULT_PROFILE_STATUS, GlobalRole, ProfileStatus
from app.db.models import User, UserProfile, utcnow
from app.utils.normalization import normalize_email, normalize_name


logger = logging.getLogger(__name__)

PROFILE_FIELDS = ("phone", "address", "job_title", "department", "employee_id")


def get_user_by_id(db: Session, user_id: UUID, include_deleted: bool = False) -> User | None:
    """Get user by ID; soft-deleted users only when asked."""
    query = db.query(User).filter(User.id == user_id)
    if not include_deleted:
        query = query.filter(User.deleted_at.is_(None))
    return query.first()


def get_user_by_email(db: Session, email: str) -> User | None:
    """Get user by email (case-insensitive), soft-deleted included."""
    return db.query(User).filter(User.email == normalize_email(email)).first()


def list_users(
    db: Session,
    search: str | None = None,
    role: str | None = None,
    include_deleted: bool = False,
) -> list[User]:
    query = db.query(User).outerjoin(UserProfile).options(joinedload(User.profile))
    if not include_deleted:
        query = query.filter(User.deleted_at.is_(None))
    if role:
        query = query.filter(UserProfile.role == role)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(func.lower(User.name).like(pattern), func.lower(User.email).like(pattern))
        )
    return query.order_by(User.name).all()


def create_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    role: GlobalRole | str | None = None,
    status: ProfileStatus | str = DEFAULT_PROFILE_STATUS,
    **profile_fields,
) -> User:
    """
    Create a user together with its profile.

    Raises:
        ConflictError: email already registered (soft-deleted users included)
    """
    email = normalize_email(email)
    if get_user_by_email(db, email):
        raise ConflictError("The email has already been taken.")

    user = User(
        name=normalize_name(name) or name,
        email=email,
        password_hash=hash_password(password),
    )
    user.profile = UserProfile(
        role=GlobalRole(role).value if role else None,
        status=ProfileStatus(status).value,
        **{k: v for k, v in profile_fields.items() if k in PROFILE_FIELDS},
    )
    db.add(user)
    db.flush()
    logger.info("User %s created", user.id, extra=build_log_context(user_id=user.id))
    return user


def create_user_as(
    db: Session,
    actor: User,
    role: GlobalRole | str | None = None,
    **fields,
) -> User:
    """
    Admin-side user creation (gated by the create-user policy).

    Non-superadmins may only hand out the roles a business admin can assign.
    """
    authorize(db, actor, Action.USER_CREATE)
    if role is not None and not is_superadmin(actor):
        if (
            global_role_of(actor) != GlobalRole.BUSINESS_ADMIN
            or GlobalRole(role) not in BUSINESS_ADMIN_ASSIGNABLE_ROLES
        ):
            raise ForbiddenError("Cannot assign this role")
    return create_user(db, role=role, **fields)


def update_profile(db: Session, actor: User, user: User, **changes) -> User:
    """
    Update user and profile fields. Only provided (non-None) values apply.

    Profile status can only be changed on other users.

    Raises:
        ForbiddenError: actor may not update this user
        ConflictError: new email already taken
    """
    authorize(db, actor, Action.USER_UPDATE, user)

    if changes.get("email") is not None:
        email = normalize_email(changes["email"])
        other = get_user_by_email(db, email)
        if other and other.id != user.id:
            raise ConflictError("The email has already been taken.")
        user.email = email
    if changes.get("name") is not None:
        user.name = normalize_name(changes["name"]) or user.name

    for field in PROFILE_FIELDS:
        if changes.get(field) is not None:
            setattr(user.profile, field, changes[field])

    if changes.get("status") is not None:
        if actor.id == user.id:
            raise ForbiddenError("Cannot change your own account status")
        status = ProfileStatus(changes["status"])
        user.profile.status = status.value
        if status != ProfileStatus.ACTIVE:
            user.token_version += 1

    db.flush()
    logger.info("User %s updated", user.id, extra=build_log_context(user_id=actor.id))
    return user


def change_role(
    db: Session,
    actor: User,
    user: User,
    new_role: GlobalRole | str | None,
) -> User:
    """
    Set the user's global role (None clears it).

    Raises:
        ForbiddenError: actor may not assign this role to this user
    """
    authorize(db, actor, Action.USER_CHANGE_ROLE, user, new_role)

    role = GlobalRole(new_role) if new_role is not None else None
    user.profile.role = role.value if role else None
    db.flush()
    logger.info(
        "User %s role changed to %s",
        user.id,
        role.value if role else None,
        extra=build_log_context(user_id=actor.id),
    )
    return user


def revoke_all_sessions(db: Session, user: User) -> None:
    """Bump token_version; tokens carrying the old version stop validating."""
    user.token_version += 1
    db.flush()


def soft_delete_user(db: Session, actor: User, user: User) -> User:
    """Stamp deleted_at and revoke the user's sessions."""
    authorize(db, actor, Action.USER_DELETE, user)
    if user.is_deleted:
        raise ConflictError("User is already deleted.")

    user.deleted_at = utcnow()
    user.deleted_by_user_id = actor.id
    revoke_all_sessions(db, user)
    logger.info("User %s soft-deleted", user.id, extra=build_log_context(user_id=actor.id))
    return user


def restore_user(db: Session, actor: User, user: User) -> User:
    authorize(db, actor, Action.USER_RESTORE, user)
    if not user.is_deleted:
        raise ConflictError("User is not deleted.")

    user.deleted_at = None
    user.deleted_by_user_id = None
    db.flush()
    logger.info("User %s restored", user.id, extra=build_log_context(user_id=actor.id))
    return user


def force_delete_user(db: Session, actor: User, user: User) -> None:
    """Permanently delete a user with its profile, permissions and memberships."""
    authorize(db, actor, Action.USER_FORCE_DELETE, user)

    user_id = user.id
    db.delete(user)
    db.flush()
    logger.info("User %s permanently deleted", user_id, extra=build_log_context(user_id=actor.id))


def impersonate(db: Session, actor: User, user: User) -> str:
    """
    Start an impersonation session.

    Returns a session token for `user` that records the impersonator.
    """
    authorize(db, actor, Action.USER_IMPERSONATE, user)
    if user.is_deleted:
        raise ConflictError("Cannot impersonate a deleted user.")

    logger.info(
        "Impersonation of user %s started",
        user.id,
        extra=build_log_context(user_id=actor.id),
    )
    return create_session_token(user.id, user.token_version, impersonator_id=actor.id)
