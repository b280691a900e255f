"""Business member endpoints: members plus the business side of invitations."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import (
    get_business,
    get_current_user,
    get_db,
    get_target_user,
    require_csrf_header,
)
from app.core.policies import Action, authorize
from app.db.enums import BusinessRole, EmploymentStatus
from app.db.models import Business, User
from app.schemas.membership import InviteCreate, InviteResponse, MemberRead, MemberUpdate
from app.services import invitation_service, membership_service

router = APIRouter()


def _authorize_manage(db: Session, actor: User, business: Business, target: User) -> None:
    """Business-wide manage check, plus the role hierarchy for other users."""
    authorize(db, actor, Action.BUSINESS_MANAGE_USERS, business)
    if actor.id != target.id:
        authorize(db, actor, Action.BUSINESS_MANAGE_USER, business, target)


@router.get("/{slug}/users", response_model=list[MemberRead])
def list_members(
    role: BusinessRole | None = None,
    status: EmploymentStatus | None = None,
    search: str | None = None,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Accepted members, filterable by role, employment status and a search term."""
    authorize(db, user, Action.BUSINESS_VIEW_USERS, business)
    return membership_service.list_members(
        db,
        business,
        role=role.value if role else None,
        status=status.value if status else None,
        search=search,
    )


@router.post(
    "/{slug}/users/invite",
    response_model=InviteResponse,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def invite_member(
    body: InviteCreate,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Invite an email address to the business.

    The single-use token is returned to the caller for delivery.
    """
    result = invitation_service.invite(
        db, user, business, body.email, role=body.business_role, notes=body.notes
    )
    db.commit()
    db.refresh(result.membership)
    return InviteResponse(
        membership=MemberRead.model_validate(result.membership),
        invitation_token=result.token,
    )


@router.get("/{slug}/invitations", response_model=list[MemberRead])
def list_invitations(
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Pending invitations of the business, including unregistered emails."""
    authorize(db, user, Action.BUSINESS_INVITE_USERS, business)
    return invitation_service.list_business_invitations(db, business)


@router.delete(
    "/{slug}/invitations/{membership_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def revoke_invitation(
    membership_id: UUID,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not invitation_service.revoke_invitation(db, user, business, membership_id):
        raise HTTPException(status_code=404, detail="Invitation not found.")
    db.commit()


@router.get("/{slug}/users/{user_id}", response_model=MemberRead)
def get_member(
    business: Business = Depends(get_business),
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.BUSINESS_VIEW_USERS, business)
    membership = membership_service.get_membership(db, business, target)
    if not membership:
        raise HTTPException(status_code=404, detail="User not found in this business.")
    return membership


@router.patch(
    "/{slug}/users/{user_id}",
    response_model=MemberRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_member(
    body: MemberUpdate,
    business: Business = Depends(get_business),
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Change role, employment status or notes.

    Roles above the caller's own (and owner, unless the caller is an owner)
    cannot be handed out, which also stops self-promotion. Owners cannot
    demote themselves.
    """
    _authorize_manage(db, user, business, target)
    if body.business_role is not None:
        authorize(db, user, Action.BUSINESS_ASSIGN_ROLE, business, body.business_role)
    membership = membership_service.update_membership(
        db,
        user,
        business,
        target,
        role=body.business_role,
        status=body.employment_status,
        notes=body.notes,
    )
    db.commit()
    db.refresh(membership)
    return membership


@router.delete(
    "/{slug}/users/{user_id}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_member(
    business: Business = Depends(get_business),
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Remove a registered user's row, accepted or pending. The last owner cannot be removed.

    Invitations to unregistered emails are revoked via /invitations/{membership_id}.
    """
    _authorize_manage(db, user, business, target)
    if not membership_service.remove_membership(db, target, business):
        raise HTTPException(status_code=404, detail="User not found in this business.")
    db.commit()
