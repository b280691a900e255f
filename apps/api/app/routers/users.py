"""User administration endpoints: CRUD, roles, impersonation and named permissions."""

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.core.deps import (
    get_current_user,
    get_db,
    get_target_user,
    get_target_user_including_deleted,
    require_csrf_header,
)
from app.core.exceptions import ForbiddenError
from app.core.permissions import get_permission, is_valid_permission
from app.core.policies import Action, authorize, is_superadmin
from app.db.enums import GlobalRole
from app.db.models import User
from app.schemas.user import (
    ImpersonationResponse,
    PermissionGrant,
    PermissionRead,
    RoleChange,
    UserCreate,
    UserRead,
    UserUpdate,
)
from app.services import permission_service, user_service

router = APIRouter()


# =============================================================================
# Users
# =============================================================================

@router.get("", response_model=list[UserRead])
def list_users(
    search: str | None = None,
    role: GlobalRole | None = None,
    trashed: bool = False,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """List users. `trashed=true` (superadmin only) includes soft-deleted users."""
    authorize(db, user, Action.USER_VIEW_ANY)
    if trashed and not is_superadmin(user):
        raise ForbiddenError("Only superadmins can list deleted users")
    return user_service.list_users(
        db, search=search, role=role.value if role else None, include_deleted=trashed
    )


@router.post(
    "",
    response_model=UserRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_user(
    body: UserCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    created = user_service.create_user_as(db, user, **body.model_dump())
    db.commit()
    db.refresh(created)
    return created


@router.get("/{user_id}", response_model=UserRead)
def get_user(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.USER_VIEW, target)
    return target


@router.patch("/{user_id}", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def update_user(
    body: UserUpdate,
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_service.update_profile(db, user, target, **body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(target)
    return target


@router.delete("/{user_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_user(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Soft delete; the user's sessions are revoked."""
    user_service.soft_delete_user(db, user, target)
    db.commit()


@router.post(
    "/{user_id}/restore",
    response_model=UserRead,
    dependencies=[Depends(require_csrf_header)],
)
def restore_user(
    target: User = Depends(get_target_user_including_deleted),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_service.restore_user(db, user, target)
    db.commit()
    db.refresh(target)
    return target


@router.delete("/{user_id}/force", status_code=204, dependencies=[Depends(require_csrf_header)])
def force_delete_user(
    target: User = Depends(get_target_user_including_deleted),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_service.force_delete_user(db, user, target)
    db.commit()


@router.put("/{user_id}/role", response_model=UserRead, dependencies=[Depends(require_csrf_header)])
def change_role(
    body: RoleChange,
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    user_service.change_role(db, user, target, body.role)
    db.commit()
    db.refresh(target)
    return target


@router.post(
    "/{user_id}/impersonate",
    response_model=ImpersonationResponse,
    dependencies=[Depends(require_csrf_header)],
)
def impersonate(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    """Issue a session token for the target that records the impersonator."""
    token = user_service.impersonate(db, user, target)
    return ImpersonationResponse(access_token=token, user_id=target.id)


# =============================================================================
# Named permissions
# =============================================================================

def _permission_reads(keys: set[str]) -> list[PermissionRead]:
    reads = []
    for key in sorted(keys):
        definition = get_permission(key)
        if definition:
            reads.append(PermissionRead(
                key=definition.key,
                label=definition.label,
                description=definition.description,
                category=definition.category,
            ))
    return reads


@router.get("/{user_id}/permissions", response_model=list[PermissionRead])
def list_user_permissions(
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.USER_VIEW, target)
    return _permission_reads(permission_service.get_user_permissions(db, target))


@router.post(
    "/{user_id}/permissions",
    response_model=list[PermissionRead],
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def grant_user_permission(
    body: PermissionGrant,
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.USER_MANAGE_PERMISSIONS, target)
    if not is_valid_permission(body.permission):
        raise HTTPException(status_code=422, detail=f"Unknown permission: {body.permission}")
    permission_service.grant_permission(db, target, body.permission, granted_by=user)
    db.commit()
    return _permission_reads(permission_service.get_user_permissions(db, target))


@router.delete(
    "/{user_id}/permissions/{permission}",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def revoke_user_permission(
    permission: str,
    target: User = Depends(get_target_user),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
):
    authorize(db, user, Action.USER_MANAGE_PERMISSIONS, target)
    if not is_valid_permission(permission):
        raise HTTPException(status_code=422, detail=f"Unknown permission: {permission}")
    if not permission_service.revoke_permission(db, target, permission):
        raise HTTPException(status_code=404, detail="Permission not granted")
    db.commit()
