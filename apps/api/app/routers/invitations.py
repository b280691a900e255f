"""Invitation endpoints for the invitee: list pending, accept, decline."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_current_user, get_db, require_csrf_header
from app.db.enums import InvitationOutcome
from app.db.models import User
from app.schemas.membership import (
    InvitationOutcomeResponse,
    InvitationTokenRequest,
    PendingInvitationRead,
)
from app.services import invitation_service

router = APIRouter()


@router.get("/pending", response_model=list[PendingInvitationRead])
def list_pending(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Pending invitations addressed to the current user's email."""
    return invitation_service.list_pending_invitations(db, user)


@router.post(
    "/accept",
    response_model=InvitationOutcomeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def accept(
    body: InvitationTokenRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """
    Accept an invitation.

    Unknown, already-used or foreign tokens are a 404; the invitation row
    is never touched in that case.
    """
    outcome = invitation_service.accept_by_token(db, body.token, user)
    if outcome != InvitationOutcome.ACCEPTED:
        raise HTTPException(status_code=404, detail="Invalid or expired invitation.")
    db.commit()
    return InvitationOutcomeResponse(outcome=outcome)


@router.post(
    "/decline",
    response_model=InvitationOutcomeResponse,
    dependencies=[Depends(require_csrf_header)],
)
def decline(
    body: InvitationTokenRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Decline (delete) an invitation issued to the current user's email."""
    outcome = invitation_service.decline_by_token(db, body.token, email=user.email)
    if outcome != InvitationOutcome.DECLINED:
        raise HTTPException(status_code=404, detail="Invalid or expired invitation.")
    db.commit()
    return InvitationOutcomeResponse(outcome=outcome)
