"""HTTP tests for business members and the invitation workflow."""

import pytest
from httpx import AsyncClient

from app.db.enums import BusinessRole


@pytest.mark.asyncio
async def test_list_members(
    authed_client: AsyncClient, make_user, add_member, test_user, test_business
):
    add_member(make_user(name="Eve Employee"), test_business, BusinessRole.EMPLOYEE)

    response = await authed_client.get(f"/businesses/{test_business.slug}/users")

    assert response.status_code == 200, response.text
    assert len(response.json()) == 2

    response = await authed_client.get(
        f"/businesses/{test_business.slug}/users", params={"role": "owner"}
    )
    assert [m["user_id"] for m in response.json()] == [str(test_user.id)]


@pytest.mark.asyncio
async def test_invite_accept_flow(
    authed_client: AsyncClient, client: AsyncClient, make_user, auth_headers, test_business
):
    """Owner invites, invitee sees it pending, accepts once; second accept is a 404."""
    invitee = make_user(email="invitee@example.com")

    response = await authed_client.post(
        f"/businesses/{test_business.slug}/users/invite",
        json={"email": "Invitee@Example.com", "business_role": "manager"},
    )
    assert response.status_code == 201, response.text
    data = response.json()
    token = data["invitation_token"]
    assert data["membership"]["invitation_state"] == "invited"
    assert data["membership"]["user_id"] == str(invitee.id)

    headers = auth_headers(invitee)
    pending = await client.get("/invitations/pending", headers=headers)
    assert pending.status_code == 200
    assert [p["business"]["slug"] for p in pending.json()] == [test_business.slug]

    accepted = await client.post("/invitations/accept", json={"token": token}, headers=headers)
    assert accepted.status_code == 200, accepted.text
    assert accepted.json() == {"outcome": "accepted"}

    again = await client.post("/invitations/accept", json={"token": token}, headers=headers)
    assert again.status_code == 404

    member = await authed_client.get(f"/businesses/{test_business.slug}/users/{invitee.id}")
    assert member.status_code == 200
    assert member.json()["business_role"] == "manager"
    assert member.json()["invitation_state"] == "accepted"


@pytest.mark.asyncio
async def test_accept_foreign_token_is_not_found(
    authed_client: AsyncClient, client: AsyncClient, make_user, auth_headers, test_business
):
    make_user(email="rightful@example.com")
    other = make_user(email="other@example.com")

    response = await authed_client.post(
        f"/businesses/{test_business.slug}/users/invite",
        json={"email": "rightful@example.com"},
    )
    token = response.json()["invitation_token"]

    response = await client.post(
        "/invitations/accept", json={"token": token}, headers=auth_headers(other)
    )

    assert response.status_code == 404


@pytest.mark.asyncio
async def test_decline_invitation(
    authed_client: AsyncClient, client: AsyncClient, make_user, auth_headers, test_business
):
    invitee = make_user(email="decliner@example.com")
    response = await authed_client.post(
        f"/businesses/{test_business.slug}/users/invite",
        json={"email": "decliner@example.com"},
    )
    token = response.json()["invitation_token"]
    headers = auth_headers(invitee)

    declined = await client.post("/invitations/decline", json={"token": token}, headers=headers)
    assert declined.status_code == 200
    assert declined.json() == {"outcome": "declined"}

    again = await client.post("/invitations/decline", json={"token": token}, headers=headers)
    assert again.status_code == 404

    pending = await client.get("/invitations/pending", headers=headers)
    assert pending.json() == []


@pytest.mark.asyncio
async def test_invite_existing_member_conflicts(
    authed_client: AsyncClient, make_user, add_member, test_business
):
    member = make_user()
    add_member(member, test_business)

    response = await authed_client.post(
        f"/businesses/{test_business.slug}/users/invite", json={"email": member.email}
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "User is already a member of this business."


@pytest.mark.asyncio
async def test_invite_forbidden_for_employee(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    employee = make_user()
    add_member(employee, test_business, BusinessRole.EMPLOYEE)

    response = await client.post(
        f"/businesses/{test_business.slug}/users/invite",
        json={"email": "friend@example.com"},
        headers=auth_headers(employee),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_invite_rejects_invalid_email(authed_client: AsyncClient, test_business):
    response = await authed_client.post(
        f"/businesses/{test_business.slug}/users/invite", json={"email": "not-an-email"}
    )

    assert response.status_code == 422


@pytest.mark.asyncio
async def test_revoke_invitation_for_unregistered_email(
    authed_client: AsyncClient, test_business
):
    base = f"/businesses/{test_business.slug}"
    response = await authed_client.post(
        f"{base}/users/invite", json={"email": "not-yet@example.com"}
    )
    membership_id = response.json()["membership"]["id"]

    pending = await authed_client.get(f"{base}/invitations")
    assert pending.status_code == 200
    assert [m["invited_email"] for m in pending.json()] == ["not-yet@example.com"]

    revoked = await authed_client.delete(f"{base}/invitations/{membership_id}")
    assert revoked.status_code == 204

    again = await authed_client.delete(f"{base}/invitations/{membership_id}")
    assert again.status_code == 404

    pending = await authed_client.get(f"{base}/invitations")
    assert pending.json() == []


@pytest.mark.asyncio
async def test_admin_cannot_update_owner(
    client: AsyncClient, make_user, add_member, auth_headers, test_user, test_business
):
    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    response = await client.patch(
        f"/businesses/{test_business.slug}/users/{test_user.id}",
        json={"business_role": "viewer"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_updates_employee(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    admin = make_user()
    employee = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)
    add_member(employee, test_business, BusinessRole.EMPLOYEE)

    response = await client.patch(
        f"/businesses/{test_business.slug}/users/{employee.id}",
        json={"business_role": "manager", "employment_status": "terminated"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200, response.text
    data = response.json()
    assert data["business_role"] == "manager"
    assert data["employment_status"] == "terminated"
    assert data["left_date"] is not None


@pytest.mark.asyncio
async def test_owner_self_demotion_conflicts(authed_client: AsyncClient, test_user, test_business):
    response = await authed_client.patch(
        f"/businesses/{test_business.slug}/users/{test_user.id}",
        json={"business_role": "admin"},
    )

    assert response.status_code == 409


@pytest.mark.asyncio
async def test_admin_cannot_promote_self_to_owner(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    """Self-promotion to owner is refused, so owner-only actions stay out of reach."""
    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)
    headers = auth_headers(admin)

    response = await client.patch(
        f"/businesses/{test_business.slug}/users/{admin.id}",
        json={"business_role": "owner"},
        headers=headers,
    )
    assert response.status_code == 403

    response = await client.delete(f"/businesses/{test_business.slug}", headers=headers)
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_cannot_grant_owner_to_others(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    admin = make_user()
    employee = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)
    add_member(employee, test_business, BusinessRole.EMPLOYEE)

    response = await client.patch(
        f"/businesses/{test_business.slug}/users/{employee.id}",
        json={"business_role": "owner"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 403
    assert response.json()["detail"] == "Only an owner can grant the owner role"


@pytest.mark.asyncio
async def test_admin_can_lower_own_role(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    response = await client.patch(
        f"/businesses/{test_business.slug}/users/{admin.id}",
        json={"business_role": "manager"},
        headers=auth_headers(admin),
    )

    assert response.status_code == 200, response.text
    assert response.json()["business_role"] == "manager"


@pytest.mark.asyncio
async def test_owner_grants_owner(authed_client: AsyncClient, make_user, add_member, test_business):
    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    response = await authed_client.patch(
        f"/businesses/{test_business.slug}/users/{admin.id}",
        json={"business_role": "owner"},
    )

    assert response.status_code == 200, response.text
    assert response.json()["business_role"] == "owner"


@pytest.mark.asyncio
async def test_remove_member(authed_client: AsyncClient, make_user, add_member, test_business):
    member = make_user()
    add_member(member, test_business)
    url = f"/businesses/{test_business.slug}/users/{member.id}"

    response = await authed_client.delete(url)
    assert response.status_code == 204

    response = await authed_client.delete(url)
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_remove_last_owner_conflicts(authed_client: AsyncClient, test_user, test_business):
    response = await authed_client.delete(
        f"/businesses/{test_business.slug}/users/{test_user.id}"
    )

    assert response.status_code == 409
    assert response.json()["detail"] == "Cannot remove the last owner from the business."


@pytest.mark.asyncio
async def test_get_non_member_is_not_found(authed_client: AsyncClient, make_user, test_business):
    response = await authed_client.get(
        f"/businesses/{test_business.slug}/users/{make_user().id}"
    )

    assert response.status_code == 404


# =============================================================================
# Features
# =============================================================================

@pytest.mark.asyncio
async def test_feature_assignment_endpoints(authed_client: AsyncClient, db, test_business):
    from app.services import feature_service

    feature_service.create_feature(db, name="Attendance", category="hr")
    feature_service.create_feature(db, name="Payroll", category="finance")
    base = f"/businesses/{test_business.slug}/features"

    response = await authed_client.post(base, json={"feature_slug": "attendance"})
    assert response.status_code == 201, response.text
    assert response.json()["feature"]["slug"] == "attendance"

    response = await authed_client.get(base)
    assert response.status_code == 200
    data = response.json()
    assert [a["feature"]["slug"] for a in data["assigned"]] == ["attendance"]
    assert [f["slug"] for f in data["available"]] == ["payroll"]

    response = await authed_client.post(base, json={"feature_slug": "attendance"})
    assert response.status_code == 409

    response = await authed_client.delete(f"{base}/attendance")
    assert response.status_code == 204

    response = await authed_client.delete(f"{base}/attendance")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_feature_endpoints_forbidden_for_admin(
    client: AsyncClient, make_user, add_member, auth_headers, test_business
):
    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    response = await client.get(
        f"/businesses/{test_business.slug}/features", headers=auth_headers(admin)
    )

    assert response.status_code == 403
