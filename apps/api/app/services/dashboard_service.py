"""Dashboard service - data for the business dashboard."""

from sqlalchemy.orm import Session

from app.core.policies import Action, authorize, can, is_superadmin
from app.db.enums import BusinessRole, EmploymentStatus
from app.db.models import Business, User
from app.services import feature_service, membership_service

RECENT_MEMBERS_LIMIT = 5


def get_business_dashboard(db: Session, actor: User, business: Business) -> dict:
    """
    Member head counts, the newest active members, enabled features and
    what the caller may do with the business.

    `user_role` is the caller's business role; callers without one see
    "superadmin" or "viewer".
    """
    authorize(db, actor, Action.BUSINESS_VIEW_ANALYTICS, business)

    role = membership_service.role_of(db, actor, business)
    if role is not None:
        user_role = role.value
    elif is_superadmin(actor):
        user_role = "superadmin"
    else:
        user_role = BusinessRole.VIEWER.value

    return {
        "business": business,
        "stats": membership_service.member_stats(db, business),
        "recent_users": membership_service.list_members(
            db,
            business,
            status=EmploymentStatus.ACTIVE.value,
            limit=RECENT_MEMBERS_LIMIT,
        ),
        "enabled_features": feature_service.list_enabled_features(db, business),
        "user_role": user_role,
        "can_manage": can(db, actor, Action.BUSINESS_MANAGE_SETTINGS, business),
    }
