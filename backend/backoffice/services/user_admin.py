"""Credential store write operations.

Join rows are never mutated in place: a reassignment soft-deletes the active
rows and inserts fresh ones, inside a single transaction so concurrent readers
never observe a user with no active roles mid-way. Each function commits on
success and rolls back on any failure.
"""
from __future__ import annotations
from typing import Any, Dict, Iterable, List, Optional
import logging

from sqlalchemy import select, update

from backoffice.constants.permissions import PERMISSIONS, ROLES, expand_role_preset
from backoffice.errors import ResourceConflict, ResourceNotFound, ValidationFailed
from backoffice.config.settings import LANGUAGES
from backoffice.models.authz import Permission, Role, RolePermission, Store, User, UserRole, utcnow
from backoffice.services.passwords import PasswordHasher

logger = logging.getLogger(__name__)

USER_FIELDS = ('name', 'code', 'password', 'store_id', 'language', 'role_ids')


def _require_text(value, field_name: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise ValidationFailed(description=f'{field_name} required')
    return value.strip()


def _validate_language(language) -> str:
    if language not in LANGUAGES:
        raise ValidationFailed(description=f"language must be one of {', '.join(LANGUAGES)}")
    return language


def _validate_store(session, store_id):
    if store_id is None:
        return None
    if not isinstance(store_id, int) or isinstance(store_id, bool):
        raise ValidationFailed(description='store_id must be int')
    exists = session.execute(select(Store.id).where(Store.id == store_id, Store.deleted_at.is_(None))).scalar_one_or_none()
    if exists is None:
        raise ValidationFailed(description=f'Unknown store id: {store_id}')
    return store_id


def _validate_role_ids(session, role_ids) -> List[int]:
    if not isinstance(role_ids, (list, tuple, set)) or any(not isinstance(r, int) or isinstance(r, bool) for r in role_ids):
        raise ValidationFailed(description='role_ids must be list[int]')
    wanted = sorted(set(role_ids))
    if not wanted:
        return []
    found = set(session.execute(select(Role.id).where(Role.id.in_(wanted), Role.deleted_at.is_(None))).scalars())
    missing = set(wanted) - found
    if missing:
        raise ValidationFailed(description=f'Unknown role ids: {sorted(missing)}')
    return wanted


def _active_user(session, user_id: int) -> User:
    user = session.execute(select(User).where(User.id == user_id, User.deleted_at.is_(None))).scalar_one_or_none()
    if user is None:
        raise ResourceNotFound(description='User not found')
    return user


def _code_taken(session, code: str, exclude_id: Optional[int] = None) -> bool:
    q = select(User.id).where(User.code == code, User.deleted_at.is_(None))
    if exclude_id is not None:
        q = q.where(User.id != exclude_id)
    return session.execute(q).first() is not None


def _swap_user_roles(session, user_id: int, role_ids: Iterable[int]):
    now = utcnow()
    session.execute(
        update(UserRole)
        .where(UserRole.user_id == user_id, UserRole.deleted_at.is_(None))
        .values(deleted_at=now)
    )
    for rid in role_ids:
        session.add(UserRole(user_id=user_id, role_id=rid))


def create_user(session, hasher: PasswordHasher, name, code, password, store_id=None, language=None, role_ids=None, default_language: str = 'vi') -> User:
    try:
        name = _require_text(name, 'name')
        code = _require_text(code, 'code')
        _require_text(password, 'password')
        language = _validate_language(language if language is not None else default_language)
        store_id = _validate_store(session, store_id)
        roles = _validate_role_ids(session, role_ids) if role_ids is not None else []
        if _code_taken(session, code):
            raise ResourceConflict(description='User with this code already exists')
        user = User(name=name, code=code, password_hash=hasher.hash(password), store_id=store_id, language=language)
        session.add(user)
        session.flush()
        for rid in roles:
            session.add(UserRole(user_id=user.id, role_id=rid))
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info('created user id=%s code=%s roles=%s', user.id, user.code, roles)
    return user


def update_user(session, hasher: PasswordHasher, user_id: int, changes: Dict[str, Any]) -> User:
    unknown = set(changes) - set(USER_FIELDS)
    if unknown:
        raise ValidationFailed(description=f'Unknown fields: {sorted(unknown)}')
    try:
        user = _active_user(session, user_id)
        if 'name' in changes:
            user.name = _require_text(changes['name'], 'name')
        if 'code' in changes:
            new_code = _require_text(changes['code'], 'code')
            if new_code != user.code and _code_taken(session, new_code, exclude_id=user.id):
                raise ResourceConflict(description='User with this code already exists')
            user.code = new_code
        if 'password' in changes:
            user.password_hash = hasher.hash(_require_text(changes['password'], 'password'))
        if 'store_id' in changes:
            user.store_id = _validate_store(session, changes['store_id'])
        if 'language' in changes:
            user.language = _validate_language(changes['language'])
        if 'role_ids' in changes:
            _swap_user_roles(session, user.id, _validate_role_ids(session, changes['role_ids']))
        session.commit()
    except Exception:
        session.rollback()
        raise
    return user


def soft_delete_user(session, user_id: int) -> None:
    try:
        user = _active_user(session, user_id)
        now = utcnow()
        user.soft_delete(now)
        session.execute(
            update(UserRole)
            .where(UserRole.user_id == user.id, UserRole.deleted_at.is_(None))
            .values(deleted_at=now)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info('soft-deleted user id=%s', user_id)


def replace_user_roles(session, user_id: int, role_ids) -> List[int]:
    try:
        user = _active_user(session, user_id)
        wanted = _validate_role_ids(session, role_ids)
        _swap_user_roles(session, user.id, wanted)
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info('user id=%s roles set to %s', user_id, wanted)
    return wanted


def replace_role_permissions(session, role_id: int, names) -> List[str]:
    if not isinstance(names, (list, tuple, set)) or any(not isinstance(n, str) for n in names):
        raise ValidationFailed(description='permissions must be list[str]')
    wanted = sorted(set(names))
    try:
        role = session.execute(select(Role).where(Role.id == role_id, Role.deleted_at.is_(None))).scalar_one_or_none()
        if role is None:
            raise ResourceNotFound(description='Role not found')
        perms = session.execute(
            select(Permission).where(Permission.name.in_(wanted), Permission.deleted_at.is_(None))
        ).scalars().all() if wanted else []
        missing = set(wanted) - {p.name for p in perms}
        if missing:
            raise ValidationFailed(description=f'Unknown permission names: {sorted(missing)}')
        session.execute(
            update(RolePermission)
            .where(RolePermission.role_id == role.id, RolePermission.deleted_at.is_(None))
            .values(deleted_at=utcnow())
        )
        for p in perms:
            session.add(RolePermission(role_id=role.id, permission_id=p.id))
        session.commit()
    except Exception:
        session.rollback()
        raise
    logger.info('role id=%s permissions set to %s', role_id, wanted)
    return wanted


def ensure_reference_data(session) -> Dict[str, int]:
    """Idempotently create the permission and role vocabularies with their preset grants."""
    created = {'permissions': 0, 'roles': 0, 'grants': 0}
    try:
        perms = {p.name: p for p in session.execute(select(Permission).where(Permission.deleted_at.is_(None))).scalars()}
        for name, description in PERMISSIONS.items():
            if name not in perms:
                perms[name] = Permission(name=name, description=description)
                session.add(perms[name])
                created['permissions'] += 1
        roles = {r.name: r for r in session.execute(select(Role).where(Role.deleted_at.is_(None))).scalars()}
        for name, description in ROLES.items():
            if name not in roles:
                roles[name] = Role(name=name, description=description)
                session.add(roles[name])
                created['roles'] += 1
        session.flush()
        for role_name in ROLES:
            role = roles[role_name]
            current = set(session.execute(
                select(Permission.name)
                .join(RolePermission, RolePermission.permission_id == Permission.id)
                .where(
                    RolePermission.role_id == role.id,
                    RolePermission.deleted_at.is_(None),
                    Permission.deleted_at.is_(None),
                )
            ).scalars())
            for name in sorted(expand_role_preset(role_name) - current):
                session.add(RolePermission(role_id=role.id, permission_id=perms[name].id))
                created['grants'] += 1
        session.commit()
    except Exception:
        session.rollback()
        raise
    return created
