from __future__ import annotations
from datetime import datetime, timezone
from sqlalchemy.orm import declarative_base, relationship, Mapped, mapped_column
from sqlalchemy import String, Integer, ForeignKey, Index, DateTime, text
from typing import Optional

Base = declarative_base()

ACTIVE_ONLY = text('deleted_at IS NULL')


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SoftDeleteMixin:
    """Timestamps plus a nullable ``deleted_at``; a set value marks the row inactive."""
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'))
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), server_default=text('CURRENT_TIMESTAMP'), onupdate=utcnow)
    deleted_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True), nullable=True, index=True)

    def soft_delete(self, when: Optional[datetime] = None):
        self.deleted_at = when or utcnow()


# --- Core Models ---
class Store(SoftDeleteMixin, Base):
    __tablename__ = 'stores'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    address: Mapped[Optional[str]] = mapped_column(String(255))

    __table_args__ = (
        Index('uq_stores_name_active', 'name', unique=True, sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )


class Permission(SoftDeleteMixin, Base):
    __tablename__ = 'permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    description: Mapped[Optional[str]] = mapped_column(String(255))

    __table_args__ = (
        Index('uq_permissions_name_active', 'name', unique=True, sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )


class Role(SoftDeleteMixin, Base):
    __tablename__ = 'roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(64), nullable=False)
    description: Mapped[Optional[str]] = mapped_column(String(255))
    role_permissions = relationship('RolePermission', back_populates='role')
    user_roles = relationship('UserRole', back_populates='role')

    __table_args__ = (
        Index('uq_roles_name_active', 'name', unique=True, sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )


class RolePermission(SoftDeleteMixin, Base):
    __tablename__ = 'role_permissions'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id'), nullable=False, index=True)
    permission_id: Mapped[int] = mapped_column(ForeignKey('permissions.id'), nullable=False)

    role = relationship('Role', back_populates='role_permissions')
    permission = relationship('Permission')

    # At most one active grant per pair; history rows are kept
    __table_args__ = (
        Index('uq_role_permissions_active', 'role_id', 'permission_id', unique=True,
              sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )


class User(SoftDeleteMixin, Base):
    __tablename__ = 'users'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    code: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    store_id: Mapped[Optional[int]] = mapped_column(ForeignKey('stores.id'), nullable=True)
    language: Mapped[str] = mapped_column(String(8), nullable=False, default='vi')
    store = relationship('Store')
    user_roles = relationship('UserRole', back_populates='user')

    __table_args__ = (
        Index('uq_users_code_active', 'code', unique=True, sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )

    def set_password(self, raw: str, hasher=None):
        from backoffice.services.passwords import get_password_hasher
        self.password_hash = (hasher or get_password_hasher()).hash(raw)

    def verify_password(self, raw: str, hasher=None) -> bool:
        from backoffice.services.passwords import get_password_hasher
        return (hasher or get_password_hasher()).verify(self.password_hash, raw)


class UserRole(SoftDeleteMixin, Base):
    __tablename__ = 'user_roles'
    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    user_id: Mapped[int] = mapped_column(ForeignKey('users.id'), nullable=False, index=True)
    role_id: Mapped[int] = mapped_column(ForeignKey('roles.id'), nullable=False)
    user = relationship('User', back_populates='user_roles')
    role = relationship('Role', back_populates='user_roles')

    __table_args__ = (
        Index('uq_user_roles_active', 'user_id', 'role_id', unique=True,
              sqlite_where=ACTIVE_ONLY, postgresql_where=ACTIVE_ONLY),
    )
