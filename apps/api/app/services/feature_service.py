"""Feature service - feature catalog and per-business entitlements."""

import logging

from sqlalchemy.orm import Session, joinedload

from app.core.exceptions import ConflictError, NotFoundError
from app.core.policies import Action, authorize
from app.core.structured_logging import build_log_context
from app.db.models import Business, BusinessFeature, BusinessFeatureAssignment, User, utcnow
from app.utils.normalization import slugify


logger = logging.getLogger(__name__)


# =============================================================================
# Catalog
# =============================================================================

def list_features(db: Session, active_only: bool = True) -> list[BusinessFeature]:
    query = db.query(BusinessFeature)
    if active_only:
        query = query.filter(BusinessFeature.is_active.is_(True))
    return query.order_by(BusinessFeature.category, BusinessFeature.name).all()


def get_feature_by_slug(db: Session, slug: str) -> BusinessFeature | None:
    return db.query(BusinessFeature).filter(BusinessFeature.slug == slug).first()


def create_feature(
    db: Session,
    name: str,
    slug: str | None = None,
    description: str | None = None,
    category: str = "general",
    settings: dict | None = None,
) -> BusinessFeature:
    """
    Add a feature to the catalog.

    Without an explicit slug one is derived from the name (suffixed -1, -2,
    ... while taken).
    """
    if slug:
        slug = slugify(slug)
        if get_feature_by_slug(db, slug):
            raise ConflictError(f"Feature '{slug}' already exists.")
    else:
        base = slugify(name) or "feature"
        slug, counter = base, 1
        while get_feature_by_slug(db, slug):
            slug = f"{base}-{counter}"
            counter += 1

    feature = BusinessFeature(
        slug=slug,
        name=name,
        description=description,
        category=category,
        settings=settings,
    )
    db.add(feature)
    db.flush()
    logger.info("Feature %s added to catalog", slug)
    return feature


# =============================================================================
# Entitlements
# =============================================================================

def list_business_features(db: Session, business: Business) -> list[BusinessFeatureAssignment]:
    """Feature assignments of a business (enabled or not)."""
    return (
        db.query(BusinessFeatureAssignment)
        .options(joinedload(BusinessFeatureAssignment.feature))
        .filter(BusinessFeatureAssignment.business_id == business.id)
        .all()
    )


def list_enabled_features(db: Session, business: Business) -> list[BusinessFeature]:
    """Active catalog features the business has enabled, by name."""
    return (
        db.query(BusinessFeature)
        .join(
            BusinessFeatureAssignment,
            BusinessFeatureAssignment.feature_id == BusinessFeature.id,
        )
        .filter(
            BusinessFeatureAssignment.business_id == business.id,
            BusinessFeatureAssignment.is_enabled.is_(True),
            BusinessFeature.is_active.is_(True),
        )
        .order_by(BusinessFeature.name)
        .all()
    )


def _get_assignment(
    db: Session, business: Business, feature: BusinessFeature
) -> BusinessFeatureAssignment | None:
    return (
        db.query(BusinessFeatureAssignment)
        .filter(
            BusinessFeatureAssignment.business_id == business.id,
            BusinessFeatureAssignment.feature_id == feature.id,
        )
        .first()
    )


def has_feature(db: Session, business: Business, slug: str) -> bool:
    """Whether the business has the (active) feature assigned and enabled."""
    return (
        db.query(BusinessFeatureAssignment.id)
        .join(BusinessFeature, BusinessFeatureAssignment.feature_id == BusinessFeature.id)
        .filter(
            BusinessFeatureAssignment.business_id == business.id,
            BusinessFeatureAssignment.is_enabled.is_(True),
            BusinessFeature.slug == slug,
            BusinessFeature.is_active.is_(True),
        )
        .first()
        is not None
    )


def assign_feature(
    db: Session,
    actor: User,
    business: Business,
    slug: str,
    settings: dict | None = None,
) -> BusinessFeatureAssignment:
    """
    Enable a catalog feature for a business.

    Raises:
        ForbiddenError: actor may not manage this business's features
        NotFoundError: unknown feature slug
        ConflictError: feature already assigned and enabled
    """
    authorize(db, actor, Action.BUSINESS_MANAGE_FEATURES, business)

    feature = get_feature_by_slug(db, slug)
    if not feature:
        raise NotFoundError(f"Feature '{slug}' not found")

    assignment = _get_assignment(db, business, feature)
    if assignment and assignment.is_enabled:
        raise ConflictError("Feature is already assigned to this business.")

    if assignment is None:
        assignment = BusinessFeatureAssignment(business_id=business.id, feature_id=feature.id)
        db.add(assignment)
    assignment.is_enabled = True
    assignment.settings = settings if settings is not None else feature.settings
    assignment.enabled_at = utcnow()
    assignment.enabled_by_user_id = actor.id
    db.flush()

    logger.info(
        "Feature %s assigned to business %s",
        feature.slug,
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return assignment


def remove_feature(db: Session, actor: User, business: Business, slug: str) -> bool:
    """
    Remove a feature assignment. Returns False when it was not assigned.

    Raises:
        ForbiddenError: actor may not manage this business's features
        NotFoundError: unknown feature slug
    """
    authorize(db, actor, Action.BUSINESS_MANAGE_FEATURES, business)

    feature = get_feature_by_slug(db, slug)
    if not feature:
        raise NotFoundError(f"Feature '{slug}' not found")

    assignment = _get_assignment(db, business, feature)
    if not assignment:
        return False

    db.delete(assignment)
    db.flush()
    logger.info(
        "Feature %s removed from business %s",
        feature.slug,
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return True
