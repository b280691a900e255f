"""Tests for the feature catalog and per-business entitlements."""

import pytest

from app.db.enums import BusinessRole


@pytest.fixture
def attendance(db):
    from app.services import feature_service

    return feature_service.create_feature(
        db, name="Attendance", category="hr", settings={"geofence": False}
    )


def test_create_feature_derives_unique_slug(db):
    from app.services import feature_service

    first = feature_service.create_feature(db, name="Time Off")
    second = feature_service.create_feature(db, name="Time Off")

    assert first.slug == "time-off"
    assert second.slug == "time-off-1"


def test_create_feature_explicit_duplicate_conflicts(db, attendance):
    from app.core.exceptions import ConflictError
    from app.services import feature_service

    with pytest.raises(ConflictError):
        feature_service.create_feature(db, name="Attendance Again", slug="Attendance")


def test_list_features_hides_inactive(db, attendance):
    from app.services import feature_service

    retired = feature_service.create_feature(db, name="Fax Machine")
    retired.is_active = False
    db.flush()

    assert [f.slug for f in feature_service.list_features(db)] == ["attendance"]
    assert len(feature_service.list_features(db, active_only=False)) == 2


def test_owner_assigns_feature_with_default_settings(db, test_user, test_business, attendance):
    from app.services import feature_service

    assignment = feature_service.assign_feature(db, test_user, test_business, "attendance")

    assert assignment.is_enabled
    assert assignment.settings == {"geofence": False}
    assert assignment.enabled_by_user_id == test_user.id
    assert feature_service.has_feature(db, test_business, "attendance")


def test_assign_twice_conflicts(db, test_user, test_business, attendance):
    from app.core.exceptions import ConflictError
    from app.services import feature_service

    feature_service.assign_feature(db, test_user, test_business, "attendance")

    with pytest.raises(ConflictError):
        feature_service.assign_feature(db, test_user, test_business, "attendance")


def test_disabled_assignment_is_reenabled(db, test_user, test_business, attendance):
    from app.services import feature_service

    assignment = feature_service.assign_feature(db, test_user, test_business, "attendance")
    assignment.is_enabled = False
    db.flush()
    assert not feature_service.has_feature(db, test_business, "attendance")

    again = feature_service.assign_feature(
        db, test_user, test_business, "attendance", settings={"geofence": True}
    )

    assert again.id == assignment.id
    assert again.settings == {"geofence": True}
    assert feature_service.has_feature(db, test_business, "attendance")


def test_assign_unknown_feature_not_found(db, test_user, test_business):
    from app.core.exceptions import NotFoundError
    from app.services import feature_service

    with pytest.raises(NotFoundError):
        feature_service.assign_feature(db, test_user, test_business, "teleportation")


def test_admin_cannot_manage_features(db, make_user, add_member, test_business, attendance):
    from app.core.exceptions import ForbiddenError
    from app.services import feature_service

    admin = make_user()
    add_member(admin, test_business, BusinessRole.ADMIN)

    with pytest.raises(ForbiddenError):
        feature_service.assign_feature(db, admin, test_business, "attendance")


def test_remove_feature(db, test_user, test_business, attendance):
    from app.services import feature_service

    feature_service.assign_feature(db, test_user, test_business, "attendance")

    assert feature_service.remove_feature(db, test_user, test_business, "attendance") is True
    assert feature_service.remove_feature(db, test_user, test_business, "attendance") is False
    assert not feature_service.has_feature(db, test_business, "attendance")


def test_inactive_catalog_feature_is_not_had(db, test_user, test_business, attendance):
    from app.services import feature_service

    feature_service.assign_feature(db, test_user, test_business, "attendance")
    attendance.is_active = False
    db.flush()

    assert not feature_service.has_feature(db, test_business, "attendance")
