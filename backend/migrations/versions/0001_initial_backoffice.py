"""initial back-office identity tables

Revision ID: 0001_initial_backoffice
Revises: 
Create Date: 2026-10-19
"""
from __future__ import annotations
from alembic import op
import sqlalchemy as sa

revision = '0001_initial_backoffice'
down_revision = None
branch_labels = None
depends_on = None

ACTIVE_ONLY = sa.text('deleted_at IS NULL')


def _timestamps():
    return [
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP')),
        sa.Column('deleted_at', sa.DateTime(timezone=True), nullable=True),
    ]


def upgrade():
    op.create_table('stores',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('address', sa.String(length=255)),
        *_timestamps()
    )
    op.create_index('uq_stores_name_active', 'stores', ['name'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    op.create_table('permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255)),
        *_timestamps()
    )
    op.create_index('ix_permissions_name', 'permissions', ['name'])
    op.create_index('uq_permissions_name_active', 'permissions', ['name'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    op.create_table('roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('name', sa.String(length=64), nullable=False),
        sa.Column('description', sa.String(length=255)),
        *_timestamps()
    )
    op.create_index('uq_roles_name_active', 'roles', ['name'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    op.create_table('users',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('code', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=128), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('store_id', sa.Integer(), sa.ForeignKey('stores.id'), nullable=True),
        sa.Column('language', sa.String(length=8), nullable=False, server_default='vi'),
        *_timestamps()
    )
    op.create_index('ix_users_code', 'users', ['code'])
    op.create_index('uq_users_code_active', 'users', ['code'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    op.create_table('role_permissions',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        sa.Column('permission_id', sa.Integer(), sa.ForeignKey('permissions.id'), nullable=False),
        *_timestamps()
    )
    op.create_index('ix_role_permissions_role_id', 'role_permissions', ['role_id'])
    op.create_index('uq_role_permissions_active', 'role_permissions', ['role_id', 'permission_id'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    op.create_table('user_roles',
        sa.Column('id', sa.Integer(), primary_key=True),
        sa.Column('user_id', sa.Integer(), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('role_id', sa.Integer(), sa.ForeignKey('roles.id'), nullable=False),
        *_timestamps()
    )
    op.create_index('ix_user_roles_user_id', 'user_roles', ['user_id'])
    op.create_index('uq_user_roles_active', 'user_roles', ['user_id', 'role_id'], unique=True,
                    sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY)

    for table in ['stores', 'permissions', 'roles', 'users', 'role_permissions', 'user_roles']:
        op.create_index(f'ix_{table}_deleted_at', table, ['deleted_at'])


def downgrade():
    for tbl in ['user_roles', 'role_permissions', 'users', 'roles', 'permissions', 'stores']:
        op.drop_table(tbl)
