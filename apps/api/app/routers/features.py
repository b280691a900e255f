"""Business feature entitlement endpoints."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import get_business, get_current_user, get_db, require_csrf_header
from app.core.policies import Action, authorize
from app.db.models import Business, User
from app.schemas.feature import (
    BusinessFeaturesResponse,
    FeatureAssign,
    FeatureAssignmentRead,
    FeatureRead,
)
from app.services import feature_service

router = APIRouter()


@router.get("/{slug}/features", response_model=BusinessFeaturesResponse)
def list_business_features(
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Assigned features plus unassigned catalog entries (feature managers only)."""
    authorize(db, user, Action.BUSINESS_MANAGE_FEATURES, business)
    assigned = feature_service.list_business_features(db, business)
    assigned_ids = {a.feature_id for a in assigned}
    available = [f for f in feature_service.list_features(db) if f.id not in assigned_ids]
    return BusinessFeaturesResponse(
        assigned=[FeatureAssignmentRead.model_validate(a) for a in assigned],
        available=[FeatureRead.model_validate(f) for f in available],
    )


@router.post(
    "/{slug}/features",
    response_model=FeatureAssignmentRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def assign_feature(
    body: FeatureAssign,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    assignment = feature_service.assign_feature(
        db, user, business, body.feature_slug, settings=body.settings
    )
    db.commit()
    db.refresh(assignment)
    return assignment


@router.delete(
    "/{slug}/features/{feature_slug}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def remove_feature(
    feature_slug: str,
    business: Business = Depends(get_business),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    if not feature_service.remove_feature(db, user, business, feature_slug):
        raise HTTPException(status_code=404, detail="Feature is not assigned to this business.")
    db.commit()
