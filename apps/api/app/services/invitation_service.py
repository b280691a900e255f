"""Invitation service - business invitations layered on membership rows.

State per (user, business):
    NONE (no row) -> INVITED (token set) -> ACCEPTED (token cleared)
Declining deletes the row.

Accept and decline are single conditional statements so that concurrent
calls with the same token transition the row at most once.
"""

import logging
from dataclasses import dataclass
from datetime import date
from uuid import UUID

from sqlalchemy import delete, or_, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import AlreadyMemberError, ConflictError
from app.core.policies import Action, authorize
from app.core.security import fingerprint_token, generate_invitation_token
from app.core.structured_logging import build_log_context
from app.db.enums import (
    DEFAULT_BUSINESS_ROLE,
    DEFAULT_EMPLOYMENT_STATUS,
    BusinessRole,
    InvitationLinkResult,
    InvitationOutcome,
    InvitationState,
)
from app.db.models import Business, Membership, User, utcnow
from app.utils.normalization import normalize_email


logger = logging.getLogger(__name__)


@dataclass
class InviteResult:
    membership: Membership
    token: str


# =============================================================================
# Invite
# =============================================================================

def invite(
    db: Session,
    actor: User,
    business: Business,
    email: str,
    role: BusinessRole | str = DEFAULT_BUSINESS_ROLE,
    notes: str | None = None,
) -> InviteResult:
    """
    Invite an email address to join a business.

    Creates an INVITED row (linked to the existing user with that email, if
    any) or refreshes token, role and sent-at on an existing INVITED row.

    Raises:
        ForbiddenError: actor may not invite users to this business, or may
            not hand out the requested role
        AlreadyMemberError: an accepted membership already exists
    """
    authorize(db, actor, Action.BUSINESS_INVITE_USERS, business)

    role = BusinessRole(role)
    authorize(db, actor, Action.BUSINESS_ASSIGN_ROLE, business, role)
    email = normalize_email(email)
    invitee = (
        db.query(User)
        .filter(User.email == email, User.deleted_at.is_(None))
        .first()
    )

    conditions = [Membership.invited_email == email]
    if invitee:
        conditions.append(Membership.user_id == invitee.id)
    existing = (
        db.query(Membership)
        .filter(Membership.business_id == business.id, or_(*conditions))
        .order_by(Membership.invitation_accepted_at.is_(None))
        .first()
    )

    if existing and existing.invitation_state == InvitationState.ACCEPTED:
        raise AlreadyMemberError()

    token = generate_invitation_token()
    now = utcnow()
    try:
        with db.begin_nested():
            if existing:
                existing.invitation_token = token
                existing.invitation_sent_at = now
                existing.business_role = role.value
                existing.invited_email = email
                existing.invited_by_user_id = actor.id
                if invitee:
                    existing.user_id = invitee.id
                if notes is not None:
                    existing.notes = notes
                membership = existing
            else:
                membership = Membership(
                    business_id=business.id,
                    user_id=invitee.id if invitee else None,
                    business_role=role.value,
                    employment_status=DEFAULT_EMPLOYMENT_STATUS.value,
                    joined_date=date.today(),
                    notes=notes,
                    invited_email=email,
                    invitation_token=token,
                    invitation_sent_at=now,
                    invited_by_user_id=actor.id,
                )
                db.add(membership)
            db.flush()
    except IntegrityError as exc:
        raise ConflictError("An invitation for this email already exists.") from exc

    logger.info(
        "Invitation %s for business %s (role=%s)",
        "refreshed" if existing else "created",
        business.id,
        role.value,
        extra=build_log_context(
            user_id=actor.id,
            business_id=business.id,
            token_fingerprint=fingerprint_token(token),
        ),
    )
    return InviteResult(membership=membership, token=token)


# =============================================================================
# Accept / Decline
# =============================================================================

def _find_pending(db: Session, token: str, user: User) -> Membership | None:
    """Pending row for `token` addressed to this user's email."""
    return (
        db.query(Membership)
        .filter(
            Membership.invitation_token == token,
            Membership.invitation_accepted_at.is_(None),
            Membership.invited_email == normalize_email(user.email),
            or_(Membership.user_id.is_(None), Membership.user_id == user.id),
        )
        .first()
    )


def accept_by_token(db: Session, token: str, user: User) -> InvitationOutcome:
    """
    Accept the pending invitation identified by `token` as `user`.

    Returns ACCEPTED for the call that performed the transition and NOOP
    for anything else (unknown token, email mismatch, already accepted).

    Raises:
        ConflictError: the user already holds another row in that business
    """
    if not token:
        return InvitationOutcome.NOOP

    candidate = _find_pending(db, token, user)
    if candidate is None:
        return InvitationOutcome.NOOP

    stmt = (
        update(Membership)
        .where(
            Membership.id == candidate.id,
            Membership.invitation_token == token,
            Membership.invitation_accepted_at.is_(None),
        )
        .values(
            invitation_accepted_at=utcnow(),
            invitation_token=None,
            user_id=user.id,
        )
        .execution_options(synchronize_session=False)
    )
    try:
        with db.begin_nested():
            result = db.execute(stmt)
    except IntegrityError as exc:
        raise ConflictError("User is already a member of this business.") from exc

    business_id = candidate.business_id
    db.expire(candidate)
    if result.rowcount != 1:
        return InvitationOutcome.NOOP

    logger.info(
        "Invitation accepted for business %s",
        business_id,
        extra=build_log_context(
            user_id=user.id,
            business_id=business_id,
            token_fingerprint=fingerprint_token(token),
        ),
    )
    return InvitationOutcome.ACCEPTED


def decline_by_token(
    db: Session,
    token: str,
    email: str | None = None,
) -> InvitationOutcome:
    """
    Decline (delete) the pending invitation identified by `token`.

    With `email`, the invitation must have been issued to that address.
    """
    if not token:
        return InvitationOutcome.NOT_FOUND

    stmt = delete(Membership).where(
        Membership.invitation_token == token,
        Membership.invitation_accepted_at.is_(None),
    )
    if email is not None:
        stmt = stmt.where(Membership.invited_email == normalize_email(email))

    result = db.execute(stmt)
    if result.rowcount != 1:
        return InvitationOutcome.NOT_FOUND

    logger.info(
        "Invitation declined",
        extra=build_log_context(token_fingerprint=fingerprint_token(token)),
    )
    return InvitationOutcome.DECLINED


def revoke_invitation(
    db: Session,
    actor: User,
    business: Business,
    membership_id: UUID,
) -> bool:
    """
    Withdraw a pending invitation of `business` by its row id.

    Works for invitations to emails that have not registered yet.
    Returns False when no pending row with that id exists in the business.
    """
    authorize(db, actor, Action.BUSINESS_INVITE_USERS, business)

    result = db.execute(
        delete(Membership).where(
            Membership.id == membership_id,
            Membership.business_id == business.id,
            Membership.invitation_accepted_at.is_(None),
        )
    )
    if result.rowcount != 1:
        return False

    logger.info(
        "Invitation revoked in business %s",
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return True


def list_business_invitations(db: Session, business: Business) -> list[Membership]:
    """Pending invitations of a business, newest first."""
    return (
        db.query(Membership)
        .filter(
            Membership.business_id == business.id,
            Membership.invitation_accepted_at.is_(None),
        )
        .order_by(Membership.invitation_sent_at.desc())
        .all()
    )


def list_pending_invitations(db: Session, user: User) -> list[Membership]:
    """Pending invitations addressed to the user's email (or linked to the user)."""
    return (
        db.query(Membership)
        .join(Business, Membership.business_id == Business.id)
        .options(joinedload(Membership.business))
        .filter(
            Membership.invitation_accepted_at.is_(None),
            Membership.invitation_token.isnot(None),
            Business.deleted_at.is_(None),
            or_(
                Membership.invited_email == normalize_email(user.email),
                Membership.user_id == user.id,
            ),
        )
        .order_by(Membership.invitation_sent_at.desc())
        .all()
    )


# =============================================================================
# Registration hook
# =============================================================================

def link_invitation_on_registration(
    db: Session,
    user: User,
    token: str | None,
) -> InvitationLinkResult:
    """
    Best-effort invitation acceptance for a freshly registered user.

    Runs inside a SAVEPOINT so a failure never rolls back the registration.
    Failures are logged and reported as FAILED, never raised.
    """
    if not token:
        return InvitationLinkResult.SKIPPED

    try:
        with db.begin_nested():
            outcome = accept_by_token(db, token, user)
    except Exception:
        logger.exception(
            "Failed to link invitation during registration",
            extra=build_log_context(
                user_id=user.id,
                token_fingerprint=fingerprint_token(token),
            ),
        )
        return InvitationLinkResult.FAILED

    if outcome == InvitationOutcome.ACCEPTED:
        return InvitationLinkResult.APPLIED
    return InvitationLinkResult.SKIPPED
