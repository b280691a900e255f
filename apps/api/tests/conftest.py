"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database, schema created per test
- User / business / membership factories
- JWT token minting for authenticated tests
- HTTPX AsyncClient with proper headers
"""
import os
import uuid
from dataclasses import dataclass
from typing import AsyncGenerator, Callable, Generator

# Must be set before app modules read settings
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ.setdefault("JWT_SECRET", "test-secret-not-for-production")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from app.core.deps import COOKIE_NAME, get_db
from app.core.security import create_session_token, hash_password
from app.db.base import Base
from app.db.enums import BusinessRole, GlobalRole
from app.db.models import Business, User, UserProfile
from app.db.session import SessionLocal, engine
from app.main import app
from app.services import membership_service

TEST_PASSWORD = "correct-horse-battery"
# Hashing is deliberately slow; reuse one hash for every fixture user
TEST_PASSWORD_HASH = hash_password(TEST_PASSWORD)


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(autouse=True)
def setup_database() -> Generator[None, None, None]:
    """Fresh schema for every test."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    session = SessionLocal()
    yield session
    session.rollback()
    session.close()


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture(scope="function")
def make_user(db: Session) -> Callable[..., User]:
    """Create a user with profile. `role` is the global role (None for none)."""

    def _make_user(
        role: GlobalRole | None = None,
        email: str | None = None,
        name: str = "Test User",
        status: str = "active",
    ) -> User:
        user = User(
            id=uuid.uuid4(),
            email=email or f"user-{uuid.uuid4().hex[:8]}@example.com",
            name=name,
            password_hash=TEST_PASSWORD_HASH,
        )
        user.profile = UserProfile(role=role.value if role else None, status=status)
        db.add(user)
        db.flush()
        return user

    return _make_user


@pytest.fixture(scope="function")
def make_business(db: Session) -> Callable[..., Business]:
    """Create a business, optionally with an accepted owner."""

    def _make_business(owner: User | None = None, name: str | None = None) -> Business:
        business = Business(
            id=uuid.uuid4(),
            name=name or "Test Business",
            slug=f"test-business-{uuid.uuid4().hex[:8]}",
            created_by_user_id=owner.id if owner else None,
        )
        db.add(business)
        db.flush()
        if owner:
            membership_service.upsert_membership(db, owner, business, role=BusinessRole.OWNER)
        return business

    return _make_business


@pytest.fixture(scope="function")
def add_member(db: Session):
    """Attach an accepted member with the given business role."""

    def _add_member(user: User, business: Business, role: BusinessRole = BusinessRole.EMPLOYEE):
        return membership_service.upsert_membership(db, user, business, role=role)

    return _add_member


@pytest.fixture(scope="function")
def test_password() -> str:
    """Plain-text password of every factory-made user."""
    return TEST_PASSWORD


@pytest.fixture(scope="function")
def superadmin(make_user) -> User:
    return make_user(role=GlobalRole.SUPERADMIN, name="Super Admin")


@pytest.fixture(scope="function")
def test_user(make_user) -> User:
    """Plain user without a global role."""
    return make_user()


@pytest.fixture(scope="function")
def test_business(make_business, test_user: User) -> Business:
    """Business owned by test_user."""
    return make_business(owner=test_user)


# =============================================================================
# Auth Fixtures
# =============================================================================

@dataclass
class TestAuth:
    """Test authentication context."""
    user: User
    token: str
    cookie_name: str = COOKIE_NAME


@pytest.fixture(scope="function")
def auth_headers() -> Callable[[User], dict[str, str]]:
    """Bearer + CSRF headers for acting as a given user."""

    def _auth_headers(user: User) -> dict[str, str]:
        token = create_session_token(user_id=user.id, token_version=user.token_version)
        return {
            "Authorization": f"Bearer {token}",
            "X-Requested-With": "XMLHttpRequest",
        }

    return _auth_headers


@pytest.fixture(scope="function")
def test_auth(test_user: User) -> TestAuth:
    """Create JWT token for test user."""
    token = create_session_token(
        user_id=test_user.id,
        token_version=test_user.token_version,
    )
    return TestAuth(user=test_user, token=token)


# =============================================================================
# Client Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncGenerator[AsyncClient, None]:
    """
    Create unauthenticated AsyncClient (CSRF header set).
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        headers={"X-Requested-With": "XMLHttpRequest"},
    ) as c:
        yield c

    app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def authed_client(
    db: Session,
    test_auth: TestAuth,
) -> AsyncGenerator[AsyncClient, None]:
    """
    Create authenticated AsyncClient with JWT cookie and CSRF header.
    """
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
        cookies={test_auth.cookie_name: test_auth.token},
        headers={"X-Requested-With": "XMLHttpRequest"},  # CSRF header
    ) as c:
        yield c

    app.dependency_overrides.clear()
