"""Auth service - registration, login and superadmin bootstrap."""

import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from app.core.security import hash_password, verify_password
from app.core.structured_logging import build_log_context
from app.db.enums import GlobalRole, InvitationLinkResult, ProfileStatus
from app.db.models import User, UserProfile, utcnow
from app.services import invitation_service, user_service


logger = logging.getLogger(__name__)


@dataclass
class RegistrationResult:
    user: User
    invitation_link_result: InvitationLinkResult


def register_user(
    db: Session,
    name: str,
    email: str,
    password: str,
    job_title: str | None = None,
    phone: str | None = None,
    invitation_token: str | None = None,
) -> RegistrationResult:
    """
    Register a new user (no global role, active profile).

    When an invitation token is supplied it is accepted best-effort; a
    failure there never blocks the registration and is reported in the
    result instead.

    Raises:
        ConflictError: email already registered
    """
    user = user_service.create_user(
        db,
        name=name,
        email=email,
        password=password,
        job_title=job_title,
        phone=phone,
    )
    link_result = invitation_service.link_invitation_on_registration(
        db, user, invitation_token
    )
    logger.info(
        "User registered (invitation=%s)",
        link_result.value,
        extra=build_log_context(user_id=user.id),
    )
    return RegistrationResult(user=user, invitation_link_result=link_result)


def authenticate(db: Session, email: str, password: str) -> User | None:
    """
    Verify credentials.

    Returns None for unknown emails, wrong passwords, soft-deleted users and
    profiles that are not active. Stamps last_login_at on success.
    """
    user = user_service.get_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        return None
    if user.is_deleted:
        return None
    if not user.profile or user.profile.status != ProfileStatus.ACTIVE.value:
        return None

    user.profile.last_login_at = utcnow()
    db.flush()
    return user


def ensure_superadmin(db: Session, name: str, email: str, password: str) -> User:
    """
    Idempotent superadmin bootstrap.

    Creates the account when missing; otherwise promotes it, reactivates
    its profile and restores it if soft-deleted. Existing passwords are
    kept.
    """
    user = user_service.get_user_by_email(db, email)
    if user is None:
        user = user_service.create_user(
            db,
            name=name,
            email=email,
            password=password,
            role=GlobalRole.SUPERADMIN,
        )
        logger.info("Superadmin %s created", user.id)
        return user

    if user.profile is None:
        user.profile = UserProfile()
    user.profile.role = GlobalRole.SUPERADMIN.value
    user.profile.status = ProfileStatus.ACTIVE.value
    user.deleted_at = None
    user.deleted_by_user_id = None
    if not user.password_hash:
        user.password_hash = hash_password(password)
    db.flush()
    logger.info("Superadmin %s ensured", user.id)
    return user
