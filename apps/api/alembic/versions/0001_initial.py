"""Baseline migration - identity, tenants, memberships and features

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19

Creates:
- users, user_profiles, user_permissions
- businesses
- business_users (membership ledger with invitation state)
- business_features, business_feature_assignments
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '0001_initial'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def upgrade() -> None:
    # ==========================================================================
    # Identity
    # ==========================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('token_version', sa.Integer(), server_default=sa.text('1'), nullable=False),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by_user_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(
            ['deleted_by_user_id'], ['users.id'],
            name='fk_users_deleted_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_users'),
        sa.UniqueConstraint('email', name='uq_users_email'),
    )
    op.create_index('ix_users_deleted_at', 'users', ['deleted_at'])

    op.create_table(
        'user_profiles',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(50), nullable=True),
        sa.Column('status', sa.String(20), nullable=False),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('address', sa.Text(), nullable=True),
        sa.Column('job_title', sa.String(100), nullable=True),
        sa.Column('department', sa.String(100), nullable=True),
        sa.Column('employee_id', sa.String(50), nullable=True),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_user_profiles_user_id_users', ondelete='CASCADE',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_user_profiles'),
        sa.UniqueConstraint('user_id', name='uq_user_profiles_user_id'),
    )
    op.create_index('ix_user_profiles_role', 'user_profiles', ['role'])
    op.create_index('ix_user_profiles_status', 'user_profiles', ['status'])

    op.create_table(
        'user_permissions',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('permission', sa.String(100), nullable=False),
        sa.Column('granted_by_user_id', sa.Uuid(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_user_permissions_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['granted_by_user_id'], ['users.id'],
            name='fk_user_permissions_granted_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_user_permissions'),
        sa.UniqueConstraint('user_id', 'permission', name='uq_user_permissions_user_perm'),
    )

    # ==========================================================================
    # Tenants
    # ==========================================================================
    op.create_table(
        'businesses',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(120), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('industry', sa.String(100), nullable=True),
        sa.Column('email', sa.String(255), nullable=True),
        sa.Column('phone', sa.String(50), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('created_by_user_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('deleted_by_user_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(
            ['created_by_user_id'], ['users.id'],
            name='fk_businesses_created_by_user_id_users', ondelete='SET NULL',
        ),
        sa.ForeignKeyConstraint(
            ['deleted_by_user_id'], ['users.id'],
            name='fk_businesses_deleted_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_businesses'),
        sa.UniqueConstraint('slug', name='uq_businesses_slug'),
    )
    op.create_index('ix_businesses_deleted_at', 'businesses', ['deleted_at'])

    # ==========================================================================
    # Membership ledger (business_users)
    # ==========================================================================
    op.create_table(
        'business_users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=True),
        sa.Column('business_role', sa.String(50), nullable=False),
        sa.Column('employment_status', sa.String(20), nullable=False),
        sa.Column('joined_date', sa.Date(), nullable=False),
        sa.Column('left_date', sa.Date(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('invited_email', sa.String(255), nullable=True),
        sa.Column('invitation_token', sa.String(128), nullable=True),
        sa.Column('invitation_sent_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invitation_accepted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('invited_by_user_id', sa.Uuid(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(
            ['business_id'], ['businesses.id'],
            name='fk_business_users_business_id_businesses', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['user_id'], ['users.id'],
            name='fk_business_users_user_id_users', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['invited_by_user_id'], ['users.id'],
            name='fk_business_users_invited_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_business_users'),
        sa.UniqueConstraint('business_id', 'user_id', name='uq_business_users_business_user'),
        sa.UniqueConstraint('business_id', 'invited_email', name='uq_business_users_business_email'),
        sa.UniqueConstraint('invitation_token', name='uq_business_users_invitation_token'),
        sa.CheckConstraint(
            'invitation_token IS NULL OR invitation_accepted_at IS NULL',
            name='ck_business_users_token_only_while_pending',
        ),
        sa.CheckConstraint(
            'user_id IS NOT NULL OR invited_email IS NOT NULL',
            name='ck_business_users_user_or_invited_email',
        ),
    )
    op.create_index('ix_business_users_user_id', 'business_users', ['user_id'])
    op.create_index('ix_business_users_business_role', 'business_users', ['business_role'])

    # ==========================================================================
    # Feature entitlements
    # ==========================================================================
    op.create_table(
        'business_features',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('slug', sa.String(100), nullable=False),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(50), server_default=sa.text("'general'"), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('is_active', sa.Boolean(), server_default=sa.true(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.PrimaryKeyConstraint('id', name='pk_business_features'),
        sa.UniqueConstraint('slug', name='uq_business_features_slug'),
    )

    op.create_table(
        'business_feature_assignments',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('business_id', sa.Uuid(), nullable=False),
        sa.Column('feature_id', sa.Uuid(), nullable=False),
        sa.Column('is_enabled', sa.Boolean(), server_default=sa.false(), nullable=False),
        sa.Column('settings', sa.JSON(), nullable=True),
        sa.Column('enabled_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('enabled_by_user_id', sa.Uuid(), nullable=True),
        sa.ForeignKeyConstraint(
            ['business_id'], ['businesses.id'],
            name='fk_business_feature_assignments_business_id_businesses', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['feature_id'], ['business_features.id'],
            name='fk_business_feature_assignments_feature_id_business_features', ondelete='CASCADE',
        ),
        sa.ForeignKeyConstraint(
            ['enabled_by_user_id'], ['users.id'],
            name='fk_business_feature_assignments_enabled_by_user_id_users', ondelete='SET NULL',
        ),
        sa.PrimaryKeyConstraint('id', name='pk_business_feature_assignments'),
        sa.UniqueConstraint('business_id', 'feature_id', name='uq_business_feature_assignments_pair'),
    )


def downgrade() -> None:
    op.drop_table('business_feature_assignments')
    op.drop_table('business_features')
    op.drop_index('ix_business_users_business_role', table_name='business_users')
    op.drop_index('ix_business_users_user_id', table_name='business_users')
    op.drop_table('business_users')
    op.drop_index('ix_businesses_deleted_at', table_name='businesses')
    op.drop_table('businesses')
    op.drop_table('user_permissions')
    op.drop_index('ix_user_profiles_status', table_name='user_profiles')
    op.drop_index('ix_user_profiles_role', table_name='user_profiles')
    op.drop_table('user_profiles')
    op.drop_index('ix_users_deleted_at', table_name='users')
    op.drop_table('users')
