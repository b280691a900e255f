"""Tests for the invitation workflow (invite, accept, decline)."""

import pytest

from app.db.enums import BusinessRole, InvitationOutcome, InvitationState


# =============================================================================
# Invite
# =============================================================================

def test_invite_existing_user_creates_pending_row(db, make_user, test_user, test_business):
    from app.services import invitation_service

    invitee = make_user()

    result = invitation_service.invite(
        db, test_user, test_business, invitee.email, BusinessRole.MANAGER, notes="Ops lead"
    )

    membership = result.membership
    assert result.token
    assert membership.invitation_token == result.token
    assert membership.invitation_state == InvitationState.INVITED
    assert membership.user_id == invitee.id
    assert membership.business_role == "manager"
    assert membership.invited_by_user_id == test_user.id
    assert membership.notes == "Ops lead"


def test_invite_unregistered_email_is_normalized(db, test_user, test_business):
    from app.services import invitation_service

    result = invitation_service.invite(db, test_user, test_business, "  New.Hire@Example.COM ")

    assert result.membership.user_id is None
    assert result.membership.invited_email == "new.hire@example.com"


def test_reinvite_refreshes_token_and_role(db, test_user, test_business):
    from app.db.models import Membership
    from app.services import invitation_service

    first = invitation_service.invite(db, test_user, test_business, "again@example.com")
    second = invitation_service.invite(
        db, test_user, test_business, "again@example.com", BusinessRole.ADMIN
    )

    assert second.membership.id == first.membership.id
    assert second.token != first.token
    assert second.membership.business_role == "admin"
    assert (
        db.query(Membership)
        .filter(Membership.invited_email == "again@example.com")
        .count()
        == 1
    )


def test_invite_existing_member_raises(db, make_user, add_member, test_user, test_business):
    from app.core.exceptions import AlreadyMemberError
    from app.services import invitation_service

    member = make_user()
    add_member(member, test_business)

    with pytest.raises(AlreadyMemberError):
        invitation_service.invite(db, test_user, test_business, member.email)


def test_invite_requires_permission(db, make_user, add_member, test_business):
    from app.core.exceptions import ForbiddenError
    from app.services import invitation_service

    employee = make_user()
    add_member(employee, test_business, BusinessRole.EMPLOYEE)

    with pytest.raises(ForbiddenError):
        invitation_service.invite(db, employee, test_business, "friend@example.com")


def test_invite_allowed_by_named_permission(db, make_user, add_member, test_business):
    from app.services import invitation_service, permission_service

    manager = make_user()
    add_member(manager, test_business, BusinessRole.MANAGER)
    permission_service.grant_permission(db, manager, "users.invite")

    result = invitation_service.invite(db, manager, test_business, "friend@example.com")

    assert result.membership.invitation_state == InvitationState.INVITED


def test_invite_cannot_hand_out_owner_without_being_owner(db, make_user, add_member, test_business):
    """users.invite lets an admin invite, but not as owner."""
    from app.core.exceptions import ForbiddenError
    from app.services import invitation_service, permission_service

    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)
    permission_service.grant_permission(db, admin, "users.invite")

    with pytest.raises(ForbiddenError):
        invitation_service.invite(
            db, admin, test_business, "boss@example.com", BusinessRole.OWNER
        )

    result = invitation_service.invite(
        db, admin, test_business, "helper@example.com", BusinessRole.ADMIN
    )
    assert result.membership.business_role == BusinessRole.ADMIN.value


def test_invite_role_capped_at_inviters_role(db, make_user, add_member, test_business):
    from app.core.exceptions import ForbiddenError
    from app.services import invitation_service, permission_service

    manager = make_user()
    add_member(manager, test_business, BusinessRole.MANAGER)
    permission_service.grant_permission(db, manager, "users.create")

    with pytest.raises(ForbiddenError):
        invitation_service.invite(
            db, manager, test_business, "climber@example.com", BusinessRole.ADMIN
        )


# =============================================================================
# Accept
# =============================================================================

def test_accept_transitions_once(db, make_user, test_user, test_business):
    """invite -> accept -> accept again: one ACCEPTED then a silent no-op."""
    from app.services import invitation_service, membership_service

    invitee = make_user()
    result = invitation_service.invite(
        db, test_user, test_business, invitee.email, BusinessRole.ADMIN
    )

    first = invitation_service.accept_by_token(db, result.token, invitee)
    second = invitation_service.accept_by_token(db, result.token, invitee)

    assert first == InvitationOutcome.ACCEPTED
    assert second == InvitationOutcome.NOOP
    assert membership_service.role_of(db, invitee, test_business) == BusinessRole.ADMIN

    db.refresh(result.membership)
    assert result.membership.invitation_token is None
    assert result.membership.invitation_accepted_at is not None


def test_accept_links_unregistered_invitation(db, make_user, test_user, test_business):
    from app.services import invitation_service, membership_service

    result = invitation_service.invite(db, test_user, test_business, "future@example.com")
    newcomer = make_user(email="future@example.com")

    outcome = invitation_service.accept_by_token(db, result.token, newcomer)

    assert outcome == InvitationOutcome.ACCEPTED
    assert membership_service.role_of(db, newcomer, test_business) == BusinessRole.EMPLOYEE


def test_accept_with_other_email_is_noop(db, make_user, test_user, test_business):
    """A token is bound to the invited email; another account cannot use it."""
    from app.services import invitation_service, membership_service

    invitee = make_user()
    thief = make_user()
    result = invitation_service.invite(db, test_user, test_business, invitee.email)

    outcome = invitation_service.accept_by_token(db, result.token, thief)

    assert outcome == InvitationOutcome.NOOP
    assert membership_service.role_of(db, thief, test_business) is None
    db.refresh(result.membership)
    assert result.membership.invitation_state == InvitationState.INVITED
    assert result.membership.invitation_token == result.token


@pytest.mark.parametrize("token", ["", "not-a-real-token"])
def test_accept_unknown_token_is_noop(db, test_user, token):
    from app.services import invitation_service

    assert invitation_service.accept_by_token(db, token, test_user) == InvitationOutcome.NOOP


def test_accept_with_stale_candidate_is_noop(
    db, make_user, test_user, test_business, monkeypatch
):
    """The losing side of a concurrent accept sees zero updated rows."""
    from app.db.models import Membership
    from app.services import invitation_service

    invitee = make_user()
    result = invitation_service.invite(db, test_user, test_business, invitee.email)
    membership_id = result.membership.id

    assert invitation_service.accept_by_token(db, result.token, invitee) == InvitationOutcome.ACCEPTED

    # Simulate a second request that read the row before the first committed
    monkeypatch.setattr(
        invitation_service,
        "_find_pending",
        lambda db, token, user: db.get(Membership, membership_id),
    )

    outcome = invitation_service.accept_by_token(db, result.token, invitee)

    assert outcome == InvitationOutcome.NOOP
    accepted = (
        db.query(Membership)
        .filter(
            Membership.business_id == test_business.id,
            Membership.user_id == invitee.id,
            Membership.invitation_accepted_at.isnot(None),
        )
        .count()
    )
    assert accepted == 1


# =============================================================================
# Decline
# =============================================================================

def test_decline_deletes_row(db, make_user, test_user, test_business):
    from app.db.models import Membership
    from app.services import invitation_service, membership_service

    invitee = make_user()
    result = invitation_service.invite(db, test_user, test_business, invitee.email)
    membership_id = result.membership.id

    outcome = invitation_service.decline_by_token(db, result.token)

    assert outcome == InvitationOutcome.DECLINED
    db.expire_all()
    assert db.get(Membership, membership_id) is None
    assert membership_service.role_of(db, invitee, test_business) is None


def test_decline_twice_is_not_found(db, test_user, test_business):
    from app.services import invitation_service

    result = invitation_service.invite(db, test_user, test_business, "nope@example.com")

    assert invitation_service.decline_by_token(db, result.token) == InvitationOutcome.DECLINED
    assert invitation_service.decline_by_token(db, result.token) == InvitationOutcome.NOT_FOUND


def test_decline_with_mismatched_email_is_not_found(db, test_user, test_business):
    from app.services import invitation_service

    result = invitation_service.invite(db, test_user, test_business, "mine@example.com")

    outcome = invitation_service.decline_by_token(db, result.token, email="other@example.com")

    assert outcome == InvitationOutcome.NOT_FOUND
    db.refresh(result.membership)
    assert result.membership.invitation_token == result.token


def test_decline_accepted_membership_is_not_found(db, make_user, test_user, test_business):
    from app.services import invitation_service, membership_service

    invitee = make_user()
    result = invitation_service.invite(db, test_user, test_business, invitee.email)
    invitation_service.accept_by_token(db, result.token, invitee)

    assert invitation_service.decline_by_token(db, result.token) == InvitationOutcome.NOT_FOUND
    assert membership_service.role_of(db, invitee, test_business) == BusinessRole.EMPLOYEE


# =============================================================================
# Pending list
# =============================================================================

def test_list_pending_invitations(db, make_user, make_business, test_user, test_business):
    from app.db.models import utcnow
    from app.services import invitation_service

    invitee = make_user()
    other = make_business(owner=test_user, name="Other Co")
    invitation_service.invite(db, test_user, test_business, invitee.email)
    invitation_service.invite(db, test_user, other, invitee.email)

    assert len(invitation_service.list_pending_invitations(db, invitee)) == 2

    other.deleted_at = utcnow()
    db.flush()

    pending = invitation_service.list_pending_invitations(db, invitee)
    assert [m.business_id for m in pending] == [test_business.id]


def test_accepted_invitation_not_pending(db, make_user, test_user, test_business):
    from app.services import invitation_service

    invitee = make_user()
    result = invitation_service.invite(db, test_user, test_business, invitee.email)
    invitation_service.accept_by_token(db, result.token, invitee)

    assert invitation_service.list_pending_invitations(db, invitee) == []


# =============================================================================
# Business-side revoke
# =============================================================================

def test_revoke_unregistered_invitation(db, test_user, test_business):
    from app.services import invitation_service

    result = invitation_service.invite(db, test_user, test_business, "stranger@example.com")
    membership_id = result.membership.id

    pending = invitation_service.list_business_invitations(db, test_business)
    assert [m.id for m in pending] == [membership_id]

    assert invitation_service.revoke_invitation(db, test_user, test_business, membership_id)
    assert invitation_service.list_business_invitations(db, test_business) == []
    assert invitation_service.revoke_invitation(db, test_user, test_business, membership_id) is False


def test_revoke_does_not_touch_accepted_members(db, make_user, add_member, test_user, test_business):
    from app.services import invitation_service, membership_service

    member = make_user()
    membership = add_member(member, test_business)

    assert invitation_service.revoke_invitation(db, test_user, test_business, membership.id) is False
    assert membership_service.role_of(db, member, test_business) == BusinessRole.EMPLOYEE


def test_revoke_requires_invite_rights(db, make_user, add_member, test_user, test_business):
    from app.core.exceptions import ForbiddenError
    from app.services import invitation_service

    employee = make_user()
    add_member(employee, test_business, BusinessRole.EMPLOYEE)
    result = invitation_service.invite(db, test_user, test_business, "later@example.com")

    with pytest.raises(ForbiddenError):
        invitation_service.revoke_invitation(db, employee, test_business, result.membership.id)
