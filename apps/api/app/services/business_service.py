"""Business service - tenant lifecycle (create, update, soft/force delete)."""

import logging

from sqlalchemy.orm import Session

from app.core.exceptions import ConflictError
from app.core.policies import Action, authorize
from app.core.structured_logging import build_log_context
from app.db.enums import BusinessRole
from app.db.models import Business, User, utcnow
from app.services import membership_service
from app.utils.normalization import slugify


logger = logging.getLogger(__name__)

# Fields a business update may change (slug is immutable)
UPDATABLE_FIELDS = ("name", "description", "industry", "email", "phone", "is_active", "settings")


def generate_unique_slug(db: Session, name: str) -> str:
    """
    Slug from the business name, suffixed -1, -2, ... while taken.

    Soft-deleted businesses keep their slug reserved.
    """
    base = slugify(name) or "business"
    slug = base
    counter = 1
    while db.query(Business.id).filter(Business.slug == slug).first():
        slug = f"{base}-{counter}"
        counter += 1
    return slug


def get_business_by_slug(
    db: Session,
    slug: str,
    include_deleted: bool = False,
) -> Business | None:
    """Get business by slug; soft-deleted businesses only when asked."""
    query = db.query(Business).filter(Business.slug == slug.lower())
    if not include_deleted:
        query = query.filter(Business.deleted_at.is_(None))
    return query.first()


def create_business(
    db: Session,
    actor: User,
    name: str,
    description: str | None = None,
    industry: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    settings: dict | None = None,
) -> Business:
    """
    Create a business; the creator becomes its accepted owner.

    Raises:
        ForbiddenError: actor may not create businesses
    """
    authorize(db, actor, Action.BUSINESS_CREATE)

    business = Business(
        slug=generate_unique_slug(db, name),
        name=name,
        description=description,
        industry=industry,
        email=email,
        phone=phone,
        settings=settings,
        created_by_user_id=actor.id,
    )
    db.add(business)
    db.flush()

    membership_service.upsert_membership(db, actor, business, role=BusinessRole.OWNER)

    logger.info(
        "Business %s created",
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return business


def update_business(db: Session, actor: User, business: Business, **changes) -> Business:
    """
    Apply changes to a business. Unknown fields (including slug) are ignored.

    Raises:
        ForbiddenError: actor may not update this business
    """
    authorize(db, actor, Action.BUSINESS_UPDATE, business)

    for field in UPDATABLE_FIELDS:
        if field in changes and changes[field] is not None:
            setattr(business, field, changes[field])

    db.flush()
    logger.info(
        "Business %s updated",
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return business


def soft_delete_business(db: Session, actor: User, business: Business) -> Business:
    """Stamp deleted_at; membership rows stay in place for a later restore."""
    authorize(db, actor, Action.BUSINESS_DELETE, business)
    if business.is_deleted:
        raise ConflictError("Business is already deleted.")

    business.deleted_at = utcnow()
    business.deleted_by_user_id = actor.id
    db.flush()
    logger.info(
        "Business %s soft-deleted",
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return business


def restore_business(db: Session, actor: User, business: Business) -> Business:
    authorize(db, actor, Action.BUSINESS_RESTORE, business)
    if not business.is_deleted:
        raise ConflictError("Business is not deleted.")

    business.deleted_at = None
    business.deleted_by_user_id = None
    db.flush()
    logger.info(
        "Business %s restored",
        business.id,
        extra=build_log_context(user_id=actor.id, business_id=business.id),
    )
    return business


def force_delete_business(db: Session, actor: User, business: Business) -> None:
    """Permanently delete a business with its memberships and feature rows."""
    authorize(db, actor, Action.BUSINESS_FORCE_DELETE, business)

    business_id = business.id
    db.delete(business)
    db.flush()
    logger.info(
        "Business %s permanently deleted",
        business_id,
        extra=build_log_context(user_id=actor.id, business_id=business_id),
    )
