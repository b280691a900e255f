"""Business (tenant) endpoints: list, create, update, soft/force delete, restore, dashboard."""

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.deps import (
    get_business,
    get_business_including_deleted,
    get_current_user,
    get_db,
    require_csrf_header,
)
from app.core.policies import Action, authorize
from app.db.models import Business, User
from app.schemas.business import BusinessCreate, BusinessRead, BusinessUpdate
from app.schemas.dashboard import BusinessDashboard
from app.services import business_service, dashboard_service, membership_service

router = APIRouter()


@router.get("", response_model=list[BusinessRead])
def list_businesses(
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Businesses the current user can access (all live ones for superadmins)."""
    authorize(db, user, Action.BUSINESS_VIEW_ANY)
    return membership_service.list_businesses_for_user(db, user)


@router.post(
    "",
    response_model=BusinessRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_business(
    body: BusinessCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    business = business_service.create_business(db, user, **body.model_dump())
    db.commit()
    db.refresh(business)
    return business


@router.get("/{slug}", response_model=BusinessRead)
def get_business_detail(
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.BUSINESS_VIEW, business)
    return business


@router.patch(
    "/{slug}",
    response_model=BusinessRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_business(
    body: BusinessUpdate,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    business_service.update_business(db, user, business, **body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(business)
    return business


@router.delete("/{slug}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_business(
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Soft delete. Memberships are kept for a later restore."""
    business_service.soft_delete_business(db, user, business)
    db.commit()


@router.post(
    "/{slug}/restore",
    response_model=BusinessRead,
    dependencies=[Depends(require_csrf_header)],
)
def restore_business(
    business: Business = Depends(get_business_including_deleted),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    business_service.restore_business(db, user, business)
    db.commit()
    db.refresh(business)
    return business


@router.delete("/{slug}/force", status_code=204, dependencies=[Depends(require_csrf_header)])
def force_delete_business(
    business: Business = Depends(get_business_including_deleted),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Permanently delete the business with its memberships and features."""
    business_service.force_delete_business(db, user, business)
    db.commit()


@router.get("/{slug}/dashboard", response_model=BusinessDashboard)
def get_business_dashboard(
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Head counts, newest active members and enabled features."""
    return dashboard_service.get_business_dashboard(db, user, business)
