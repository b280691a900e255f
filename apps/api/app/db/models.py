"""SQLAlchemy ORM models for identity, tenants, memberships and features."""

import uuid
from datetime import date, datetime, timezone

from sqlalchemy import (
    JSON, Boolean, CheckConstraint, Date, ForeignKey, Index, Integer, String,
    Text, UniqueConstraint, Uuid, false, func, text, true,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from app.db.base import Base
from app.db.enums import (
    DEFAULT_BUSINESS_ROLE, DEFAULT_EMPLOYMENT_STATUS, DEFAULT_PROFILE_STATUS,
    InvitationState,
)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Identity
# =============================================================================

class User(Base):
    """
    Application user.

    Every user owns exactly one UserProfile (created alongside the user)
    which carries the global role and account status.
    """
    __tablename__ = "users"
    __table_args__ = (
        Index("ix_users_deleted_at", "deleted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    profile: Mapped["UserProfile"] = relationship(
        back_populates="user", cascade="all, delete-orphan", uselist=False
    )
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="Membership.user_id",
    )
    permissions: Mapped[list["UserPermission"]] = relationship(
        back_populates="user",
        cascade="all, delete-orphan",
        foreign_keys="UserPermission.user_id",
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def global_role(self) -> str | None:
        return self.profile.role if self.profile else None


class UserProfile(Base):
    """
    Profile record (one per user).

    `role` is the global role (see GlobalRole); NULL means no global role.
    """
    __tablename__ = "user_profiles"
    __table_args__ = (
        Index("ix_user_profiles_role", "role"),
        Index("ix_user_profiles_status", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), unique=True, nullable=False
    )
    role: Mapped[str | None] = mapped_column(String(50), nullable=True)
    status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_PROFILE_STATUS.value, nullable=False
    )

    # Contact / professional information
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    address: Mapped[str | None] = mapped_column(Text, nullable=True)
    job_title: Mapped[str | None] = mapped_column(String(100), nullable=True)
    department: Mapped[str | None] = mapped_column(String(100), nullable=True)
    employee_id: Mapped[str | None] = mapped_column(String(50), nullable=True)

    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="profile")


class UserPermission(Base):
    """
    Named permission granted directly to a user (e.g. users.view).

    Keys must exist in PERMISSION_REGISTRY.
    """
    __tablename__ = "user_permissions"
    __table_args__ = (
        UniqueConstraint("user_id", "permission", name="uq_user_permissions_user_perm"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    permission: Mapped[str] = mapped_column(String(100), nullable=False)
    granted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    user: Mapped["User"] = relationship(back_populates="permissions", foreign_keys=[user_id])


# =============================================================================
# Tenants
# =============================================================================

class Business(Base):
    """
    A tenant in the multi-tenant system.

    `slug` is the immutable external key used in URLs.
    Soft-deleted businesses keep their membership rows until force-deleted.
    """
    __tablename__ = "businesses"
    __table_args__ = (
        Index("ix_businesses_deleted_at", "deleted_at"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(120), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    industry: Mapped[str | None] = mapped_column(String(100), nullable=True)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    phone: Mapped[str | None] = mapped_column(String(50), nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    created_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    deleted_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    # Relationships
    memberships: Mapped[list["Membership"]] = relationship(
        back_populates="business", cascade="all, delete-orphan"
    )
    feature_assignments: Mapped[list["BusinessFeatureAssignment"]] = relationship(
        back_populates="business", cascade="all, delete-orphan"
    )

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None


class Membership(Base):
    """
    Links a user to a business with a per-business role (pivot row).

    Invitation state lives on the row:
    - token set, accepted_at NULL  -> INVITED
    - token NULL, accepted_at set  -> ACCEPTED
    `user_id` is NULL only while an invitation to an unregistered email is pending.
    """
    __tablename__ = "business_users"
    __table_args__ = (
        UniqueConstraint("business_id", "user_id", name="uq_business_users_business_user"),
        UniqueConstraint(
            "business_id", "invited_email", name="uq_business_users_business_email"
        ),
        UniqueConstraint("invitation_token", name="uq_business_users_invitation_token"),
        CheckConstraint(
            "invitation_token IS NULL OR invitation_accepted_at IS NULL",
            name="token_only_while_pending",
        ),
        CheckConstraint(
            "user_id IS NOT NULL OR invited_email IS NOT NULL",
            name="user_or_invited_email",
        ),
        Index("ix_business_users_user_id", "user_id"),
        Index("ix_business_users_business_role", "business_role"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=True
    )
    business_role: Mapped[str] = mapped_column(
        String(50), default=DEFAULT_BUSINESS_ROLE.value, nullable=False
    )
    employment_status: Mapped[str] = mapped_column(
        String(20), default=DEFAULT_EMPLOYMENT_STATUS.value, nullable=False
    )
    joined_date: Mapped[date] = mapped_column(Date, default=date.today, nullable=False)
    left_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)

    # Invitation tracking
    invited_email: Mapped[str | None] = mapped_column(String(255), nullable=True)
    invitation_token: Mapped[str | None] = mapped_column(String(128), nullable=True)
    invitation_sent_at: Mapped[datetime | None] = mapped_column(nullable=True)
    invitation_accepted_at: Mapped[datetime | None] = mapped_column(nullable=True)
    invited_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    # Relationships
    business: Mapped["Business"] = relationship(back_populates="memberships")
    user: Mapped["User | None"] = relationship(
        back_populates="memberships", foreign_keys=[user_id]
    )

    @property
    def invitation_state(self) -> InvitationState:
        if self.invitation_accepted_at is not None:
            return InvitationState.ACCEPTED
        return InvitationState.INVITED


# =============================================================================
# Feature Entitlements
# =============================================================================

class BusinessFeature(Base):
    """Catalog of features that can be enabled per business."""
    __tablename__ = "business_features"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    slug: Mapped[str] = mapped_column(String(100), unique=True, nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str] = mapped_column(
        String(50), default="general", server_default=text("'general'"), nullable=False
    )
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class BusinessFeatureAssignment(Base):
    """Business x Feature pivot carrying enablement and per-business settings."""
    __tablename__ = "business_feature_assignments"
    __table_args__ = (
        UniqueConstraint(
            "business_id", "feature_id", name="uq_business_feature_assignments_pair"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    business_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("businesses.id", ondelete="CASCADE"), nullable=False
    )
    feature_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("business_features.id", ondelete="CASCADE"), nullable=False
    )
    is_enabled: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    settings: Mapped[dict | None] = mapped_column(JSON, nullable=True)
    enabled_at: Mapped[datetime | None] = mapped_column(nullable=True)
    enabled_by_user_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True
    )

    business: Mapped["Business"] = relationship(back_populates="feature_assignments")
    feature: Mapped["BusinessFeature"] = relationship()
