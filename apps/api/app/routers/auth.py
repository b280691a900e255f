"""Authentication router: registration, password login and session management."""

from fastapi import APIRouter, Depends, HTTPException, Request, Response
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.deps import COOKIE_NAME, get_current_user, get_db, require_csrf_header
from app.core.rate_limit import AUTH_LIMIT, limiter
from app.core.security import create_session_token
from app.db.models import User
from app.schemas.auth import (
    LoginRequest,
    MeResponse,
    RegisterRequest,
    RegisterResponse,
    SessionResponse,
)
from app.schemas.user import UserRead, UserUpdate
from app.services import auth_service, permission_service, user_service

router = APIRouter()


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        key=COOKIE_NAME,
        value=token,
        max_age=settings.JWT_EXPIRES_HOURS * 3600,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
        path="/",
    )


# =============================================================================
# Registration / Login
# =============================================================================

@router.post("/register", status_code=201, dependencies=[Depends(require_csrf_header)])
@limiter.limit(AUTH_LIMIT)
def register(
    request: Request,
    response: Response,
    body: RegisterRequest,
    db: Session = Depends(get_db),
) -> RegisterResponse:
    """
    Register a new account and start a session.

    A supplied invitation token is accepted best-effort; the outcome is
    reported in `invitation_link_result` (applied / skipped / failed).
    """
    result = auth_service.register_user(
        db,
        name=body.name,
        email=body.email,
        password=body.password,
        job_title=body.job_title,
        phone=body.phone,
        invitation_token=body.invitation_token,
    )
    db.commit()
    db.refresh(result.user)

    token = create_session_token(result.user.id, result.user.token_version)
    _set_session_cookie(response, token)
    return RegisterResponse(
        access_token=token,
        user=UserRead.model_validate(result.user),
        invitation_link_result=result.invitation_link_result,
    )


@router.post("/login", dependencies=[Depends(require_csrf_header)])
@limiter.limit(AUTH_LIMIT)
def login(
    request: Request,
    response: Response,
    body: LoginRequest,
    db: Session = Depends(get_db),
) -> SessionResponse:
    user = auth_service.authenticate(db, body.email, body.password)
    if not user:
        raise HTTPException(status_code=401, detail="These credentials do not match our records.")
    db.commit()
    db.refresh(user)

    token = create_session_token(user.id, user.token_version)
    _set_session_cookie(response, token)
    return SessionResponse(access_token=token, user=UserRead.model_validate(user))


@router.post("/logout", dependencies=[Depends(require_csrf_header)])
def logout(response: Response, user: User = Depends(get_current_user)):
    """Clear the session cookie. Requires X-Requested-With header for CSRF protection."""
    response.delete_cookie(COOKIE_NAME, path="/")
    return {"status": "logged_out"}


# =============================================================================
# Session Endpoints
# =============================================================================

def _me(request: Request, db: Session, user: User) -> MeResponse:
    payload = getattr(request.state, "session_payload", {}) or {}
    return MeResponse(
        **UserRead.model_validate(user).model_dump(),
        permissions=sorted(permission_service.get_user_permissions(db, user)),
        impersonator_id=payload.get("impersonator_id"),
    )


@router.get("/me")
def get_me(
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MeResponse:
    """
    Get current authenticated user info.

    Returns user profile, named permissions and, during impersonation,
    the id of the impersonating superadmin.
    """
    return _me(request, db, user)


@router.patch("/me", dependencies=[Depends(require_csrf_header)])
def update_me(
    request: Request,
    body: UserUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db),
) -> MeResponse:
    """Update own name, email and profile fields. Status cannot be self-changed."""
    user_service.update_profile(db, user, user, **body.model_dump(exclude_unset=True))
    db.commit()
    db.refresh(user)
    return _me(request, db, user)
