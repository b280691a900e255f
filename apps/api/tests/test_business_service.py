"""Tests for business lifecycle: create, update, soft delete, restore, force delete."""

import pytest

from app.db.enums import BusinessRole, GlobalRole


def test_create_business_makes_creator_owner(db, make_user):
    from app.services import business_service, membership_service

    creator = make_user(role=GlobalRole.BUSINESS_ADMIN)

    business = business_service.create_business(
        db, creator, name="Acme Corp", industry="Manufacturing"
    )

    assert business.slug == "acme-corp"
    assert business.created_by_user_id == creator.id
    assert membership_service.role_of(db, creator, business) == BusinessRole.OWNER


def test_create_business_slug_gets_counter_suffix(db, make_user):
    from app.services import business_service

    creator = make_user(role=GlobalRole.BUSINESS_ADMIN)

    slugs = [
        business_service.create_business(db, creator, name="Acme Corp").slug
        for _ in range(3)
    ]

    assert slugs == ["acme-corp", "acme-corp-1", "acme-corp-2"]


def test_slug_fallback_for_unsluggable_name(db):
    from app.services import business_service

    assert business_service.generate_unique_slug(db, "!!!") == "business"


def test_soft_deleted_business_keeps_slug_reserved(db, superadmin, make_business):
    from app.services import business_service

    business = make_business(name="Reserved")
    business.slug = "reserved"
    db.flush()
    business_service.soft_delete_business(db, superadmin, business)

    assert business_service.generate_unique_slug(db, "Reserved") == "reserved-1"


def test_create_business_requires_business_admin(db, make_user):
    from app.core.exceptions import ForbiddenError
    from app.services import business_service

    with pytest.raises(ForbiddenError):
        business_service.create_business(db, make_user(), name="Nope")


def test_update_business_ignores_slug_and_none(db, test_user, test_business):
    from app.services import business_service

    original_slug = test_business.slug

    business_service.update_business(
        db, test_user, test_business, name="Renamed", slug="hijack", description=None
    )

    assert test_business.name == "Renamed"
    assert test_business.slug == original_slug


def test_admin_updates_but_cannot_delete(db, make_user, add_member, test_business):
    from app.core.exceptions import ForbiddenError
    from app.services import business_service

    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    business_service.update_business(db, admin, test_business, phone="555-0100")
    assert test_business.phone == "555-0100"

    with pytest.raises(ForbiddenError):
        business_service.soft_delete_business(db, admin, test_business)


def test_superadmin_soft_delete_keeps_memberships(
    db, superadmin, make_user, add_member, test_user, test_business
):
    """Soft delete sets the marker; membership rows stay queryable."""
    from app.db.models import Membership
    from app.services import business_service

    add_member(make_user(), test_business, BusinessRole.EMPLOYEE)

    business_service.soft_delete_business(db, superadmin, test_business)

    assert test_business.deleted_at is not None
    assert test_business.deleted_by_user_id == superadmin.id
    assert business_service.get_business_by_slug(db, test_business.slug) is None
    assert business_service.get_business_by_slug(
        db, test_business.slug, include_deleted=True
    ).id == test_business.id
    assert db.query(Membership).filter(Membership.business_id == test_business.id).count() == 2


def test_owner_soft_delete_then_double_delete_conflicts(db, test_user, test_business):
    from app.core.exceptions import ConflictError
    from app.services import business_service

    business_service.soft_delete_business(db, test_user, test_business)

    with pytest.raises(ConflictError):
        business_service.soft_delete_business(db, test_user, test_business)


def test_restore_is_superadmin_only(db, superadmin, test_user, test_business):
    from app.core.exceptions import ConflictError, ForbiddenError
    from app.services import business_service

    with pytest.raises(ConflictError):
        business_service.restore_business(db, superadmin, test_business)

    business_service.soft_delete_business(db, test_user, test_business)

    with pytest.raises(ForbiddenError):
        business_service.restore_business(db, test_user, test_business)

    business_service.restore_business(db, superadmin, test_business)
    assert test_business.deleted_at is None


def test_force_delete_removes_memberships(db, superadmin, test_user, test_business):
    from app.db.models import Business, Membership
    from app.services import business_service

    business_id = test_business.id
    business_service.soft_delete_business(db, superadmin, test_business)

    business_service.force_delete_business(db, superadmin, test_business)

    assert db.get(Business, business_id) is None
    assert db.query(Membership).filter(Membership.business_id == business_id).count() == 0


def test_owner_cannot_force_delete(db, test_user, test_business):
    from app.core.exceptions import ForbiddenError
    from app.services import business_service

    with pytest.raises(ForbiddenError):
        business_service.force_delete_business(db, test_user, test_business)


def test_get_business_by_slug_is_case_insensitive(db, make_business):
    from app.services import business_service

    business = make_business()

    assert business_service.get_business_by_slug(db, business.slug.upper()).id == business.id
