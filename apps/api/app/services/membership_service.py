"""Membership service - business membership ledger (business_users rows)."""

import logging
from datetime import date

from sqlalchemy import func, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.structured_logging import build_log_context
from app.db.enums import (
    DEFAULT_BUSINESS_ROLE,
    DEFAULT_EMPLOYMENT_STATUS,
    BusinessRole,
    EmploymentStatus,
    GlobalRole,
)
from app.db.models import Business, Membership, User, UserProfile, utcnow


logger = logging.getLogger(__name__)


# =============================================================================
# Lookups
# =============================================================================

def _accepted(query):
    return query.filter(Membership.invitation_accepted_at.isnot(None))


def get_membership(
    db: Session,
    business: Business,
    user: User,
    include_pending: bool = False,
) -> Membership | None:
    """Get the (business, user) row; pending invitations only when asked."""
    query = db.query(Membership).filter(
        Membership.business_id == business.id,
        Membership.user_id == user.id,
    )
    if not include_pending:
        query = _accepted(query)
    return query.first()


def role_of(db: Session, user: User, business: Business) -> BusinessRole | None:
    """
    Business role of `user` in `business`.

    Only accepted rows count; pending invitees hold no role. Unknown role
    strings are treated as no role.
    """
    if user is None or business is None or user.id is None:
        return None
    membership = get_membership(db, business, user)
    if not membership or not BusinessRole.has_value(membership.business_role):
        return None
    return BusinessRole(membership.business_role)


def status_of(db: Session, user: User, business: Business) -> EmploymentStatus | None:
    """Employment status of `user` in `business` (accepted rows only)."""
    if user is None or business is None or user.id is None:
        return None
    membership = get_membership(db, business, user)
    if not membership:
        return None
    try:
        return EmploymentStatus(membership.employment_status)
    except ValueError:
        return None


def list_members(
    db: Session,
    business: Business,
    role: str | None = None,
    status: str | None = None,
    search: str | None = None,
    limit: int | None = None,
) -> list[Membership]:
    """
    List accepted members of a business, newest joiners first.

    `search` matches name, email, job title or department (case-insensitive).
    """
    query = (
        _accepted(db.query(Membership))
        .join(User, Membership.user_id == User.id)
        .outerjoin(UserProfile, UserProfile.user_id == User.id)
        .options(joinedload(Membership.user).joinedload(User.profile))
        .filter(Membership.business_id == business.id)
    )
    if role:
        query = query.filter(Membership.business_role == role)
    if status:
        query = query.filter(Membership.employment_status == status)
    if search:
        pattern = f"%{search.strip().lower()}%"
        query = query.filter(
            or_(
                func.lower(User.name).like(pattern),
                func.lower(User.email).like(pattern),
                func.lower(UserProfile.job_title).like(pattern),
                func.lower(UserProfile.department).like(pattern),
            )
        )
    query = query.order_by(Membership.joined_date.desc(), Membership.created_at.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def list_businesses_for_user(db: Session, user: User) -> list[Business]:
    """
    Businesses accessible to the user.

    Superadmins see every non-deleted business; everyone else sees the
    non-deleted businesses they hold an accepted membership in.
    """
    query = db.query(Business).filter(Business.deleted_at.is_(None))
    if user.global_role != GlobalRole.SUPERADMIN.value:
        query = query.join(Membership, Membership.business_id == Business.id).filter(
            Membership.user_id == user.id,
            Membership.invitation_accepted_at.isnot(None),
        )
    return query.order_by(Business.name).all()


def count_owners(db: Session, business: Business) -> int:
    return (
        _accepted(db.query(Membership))
        .filter(
            Membership.business_id == business.id,
            Membership.business_role == BusinessRole.OWNER.value,
        )
        .count()
    )


def member_stats(db: Session, business: Business) -> dict[str, int]:
    """Head counts of accepted members: total, active, owners and employees."""
    members = _accepted(db.query(Membership)).filter(Membership.business_id == business.id)
    return {
        "total_users": members.count(),
        "active_users": members.filter(
            Membership.employment_status == EmploymentStatus.ACTIVE.value
        ).count(),
        "owners": members.filter(Membership.business_role == BusinessRole.OWNER.value).count(),
        "employees": members.filter(
            Membership.business_role == BusinessRole.EMPLOYEE.value
        ).count(),
    }


# =============================================================================
# Mutations
# =============================================================================

def upsert_membership(
    db: Session,
    user: User,
    business: Business,
    role: BusinessRole | str = DEFAULT_BUSINESS_ROLE,
    status: EmploymentStatus | str = DEFAULT_EMPLOYMENT_STATUS,
    invited_by: User | None = None,
    notes: str | None = None,
) -> Membership:
    """
    Create or update the (user, business) row.

    New rows are born accepted. A pending invitation row for the same user
    is promoted to accepted (its token is cleared). A concurrent insert that
    trips the unique constraint surfaces as ConflictError.
    """
    role = BusinessRole(role)
    status = EmploymentStatus(status)

    membership = get_membership(db, business, user, include_pending=True)
    if membership is None:
        membership = (
            db.query(Membership)
            .filter(
                Membership.business_id == business.id,
                Membership.user_id.is_(None),
                Membership.invited_email == user.email,
            )
            .first()
        )

    now = utcnow()
    try:
        with db.begin_nested():
            if membership is None:
                membership = Membership(
                    business_id=business.id,
                    user_id=user.id,
                    business_role=role.value,
                    employment_status=status.value,
                    joined_date=date.today(),
                    notes=notes,
                    invited_by_user_id=invited_by.id if invited_by else None,
                    invitation_accepted_at=now,
                )
                db.add(membership)
                created = True
            else:
                membership.user_id = user.id
                membership.business_role = role.value
                membership.employment_status = status.value
                if notes is not None:
                    membership.notes = notes
                if membership.invitation_accepted_at is None:
                    membership.invitation_token = None
                    membership.invitation_accepted_at = now
                created = False
            db.flush()
    except IntegrityError as exc:
        raise ConflictError("Membership already exists for this user and business.") from exc

    logger.info(
        "Membership %s in business %s (role=%s)",
        "created" if created else "updated",
        business.id,
        role.value,
        extra=build_log_context(user_id=user.id, business_id=business.id),
    )
    return membership


def update_membership(
    db: Session,
    actor: User,
    business: Business,
    user: User,
    role: BusinessRole | str | None = None,
    status: EmploymentStatus | str | None = None,
    notes: str | None = None,
) -> Membership:
    """
    Update role, employment status or notes of an accepted member.

    Owners cannot demote themselves. Terminating stamps `left_date`.
    """
    membership = get_membership(db, business, user)
    if not membership:
        raise NotFoundError("User not found in this business.")

    if role is not None:
        role = BusinessRole(role)
        if (
            actor.id == user.id
            and membership.business_role == BusinessRole.OWNER.value
            and role != BusinessRole.OWNER
        ):
            raise ConflictError("You cannot demote yourself from owner role.")
        membership.business_role = role.value

    if status is not None:
        status = EmploymentStatus(status)
        membership.employment_status = status.value
        if status == EmploymentStatus.TERMINATED:
            membership.left_date = date.today()

    if notes is not None:
        membership.notes = notes

    db.flush()
    logger.info(
        "Membership updated in business %s",
        business.id,
        extra=build_log_context(user_id=user.id, business_id=business.id),
    )
    return membership


def remove_membership(db: Session, user: User, business: Business) -> bool:
    """
    Hard-delete the (user, business) row.

    Removing the last owner of a business is refused with ConflictError.
    Returns False when there was no row.
    """
    membership = get_membership(db, business, user, include_pending=True)
    if not membership:
        return False

    if (
        membership.business_role == BusinessRole.OWNER.value
        and membership.invitation_accepted_at is not None
        and count_owners(db, business) <= 1
    ):
        raise ConflictError("Cannot remove the last owner from the business.")

    db.delete(membership)
    db.flush()
    logger.info(
        "Membership removed from business %s",
        business.id,
        extra=build_log_context(user_id=user.id, business_id=business.id),
    )
    return True
