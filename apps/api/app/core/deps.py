"""FastAPI dependencies for authentication, target resolution, and database access."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from app.core.security import decode_session_token
from app.db.enums import ProfileStatus
from app.db.models import Business, User
from app.db.session import SessionLocal


# Cookie and header names
COOKIE_NAME = "bizadmin_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    """
    Database session dependency.

    Yields a database session and ensures it's closed after the request.
    Anything not committed by the router is rolled back on close.
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _extract_token(request: Request) -> str | None:
    token = request.cookies.get(COOKIE_NAME)
    if token:
        return token
    auth_header = request.headers.get("Authorization", "")
    scheme, _, credentials = auth_header.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return None


def get_current_user(
    request: Request,
    db: Session = Depends(get_db),
) -> User:
    """
    Get authenticated user from the session cookie or bearer token.

    Validates:
    - Token exists
    - JWT is valid and not expired
    - User exists and is not soft-deleted
    - Profile is active
    - Token version matches (for revocation support)

    The decoded payload is kept on `request.state.session_payload`.

    Raises:
        HTTPException 401: Authentication failed
    """
    token = _extract_token(request)
    if not token:
        raise HTTPException(status_code=401, detail="Not authenticated")

    try:
        payload = decode_session_token(token)
        user_id = UUID(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError):
        raise HTTPException(status_code=401, detail="Invalid session")

    user = db.query(User).filter(User.id == user_id).first()
    if not user or user.is_deleted:
        raise HTTPException(status_code=401, detail="User not found")

    if not user.profile or user.profile.status != ProfileStatus.ACTIVE.value:
        raise HTTPException(status_code=401, detail="Account disabled")

    # Token version check (revocation support)
    if user.token_version != payload.get("token_version"):
        raise HTTPException(status_code=401, detail="Session revoked")

    request.state.session_payload = payload
    return user


def require_csrf_header(request: Request) -> None:
    """
    Verify CSRF header on mutations.

    Apply to state-changing endpoints (POST, PUT, PATCH, DELETE).

    Raises:
        HTTPException 403: Missing or invalid CSRF header
    """
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(
            status_code=403,
            detail=f"Missing CSRF header. Include '{CSRF_HEADER}: {CSRF_HEADER_VALUE}'",
        )


# =============================================================================
# Path target resolution
# =============================================================================

def get_business(
    slug: str,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Business:
    """Resolve a live (not soft-deleted) business from the path slug."""
    from app.services import business_service

    business = business_service.get_business_by_slug(db, slug)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def get_business_including_deleted(
    slug: str,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> Business:
    """Resolve a business by slug, soft-deleted ones included (restore/force)."""
    from app.services import business_service

    business = business_service.get_business_by_slug(db, slug, include_deleted=True)
    if not business:
        raise HTTPException(status_code=404, detail="Business not found")
    return business


def get_target_user(
    user_id: UUID,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> User:
    """Resolve a live user from the path id."""
    from app.services import user_service

    user = user_service.get_user_by_id(db, user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user


def get_target_user_including_deleted(
    user_id: UUID,
    db: Session = Depends(get_db),
    _user: User = Depends(get_current_user),
) -> User:
    from app.services import user_service

    user = user_service.get_user_by_id(db, user_id, include_deleted=True)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user
