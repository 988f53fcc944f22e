"""Identity resolution and permission flattening.

``IdentityResolver.load_by_code`` reads a user and its role/permission graph
from the credential store and returns it as an immutable snapshot. The
snapshot is built fresh for every call and never shared between requests, so
a grant revoked in the store is honoured on the very next request.

Soft-delete filtering is applied at every hop (user, user-role, role,
role-permission, permission) both in the queries and again by
``flatten_permissions``.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Tuple

from sqlalchemy import select

from backoffice.models.authz import Permission, Role, RolePermission, Store, User, UserRole


@dataclass(frozen=True)
class StoreRef:
    id: int
    name: str
    address: Optional[str] = None

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'address': self.address}


@dataclass(frozen=True)
class PermissionNode:
    id: int
    name: str
    description: Optional[str] = None
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class PermissionGrant:
    """A RolePermission join row."""
    permission: PermissionNode
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoleNode:
    id: int
    name: str
    description: Optional[str] = None
    grants: Tuple[PermissionGrant, ...] = ()
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoleAssignment:
    """A UserRole join row."""
    role: RoleNode
    deleted_at: Optional[datetime] = None


@dataclass(frozen=True)
class RoleSummary:
    id: int
    name: str
    description: Optional[str] = None

    def to_dict(self):
        return {'id': self.id, 'name': self.name, 'description': self.description}


@dataclass(frozen=True)
class Identity:
    """Authenticated identity handed back by a successful login."""
    id: int
    code: str
    name: str
    language: str
    store: Optional[StoreRef] = None
    roles: Tuple[RoleSummary, ...] = ()

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'code': self.code,
            'store': self.store.to_dict() if self.store else None,
            'language': self.language,
            'roles': [r.to_dict() for r in self.roles],
        }


@dataclass(frozen=True)
class UserGraph:
    id: int
    code: str
    name: str
    language: str
    password_hash: str = field(repr=False, compare=False)
    store: Optional[StoreRef] = None
    assignments: Tuple[RoleAssignment, ...] = ()

    def active_roles(self) -> List[RoleNode]:
        return [a.role for a in self.assignments if a.deleted_at is None and a.role.deleted_at is None]

    def to_identity(self) -> Identity:
        roles = tuple(RoleSummary(r.id, r.name, r.description) for r in self.active_roles())
        return Identity(
            id=self.id, code=self.code, name=self.name, language=self.language,
            store=self.store, roles=roles,
        )


def flatten_permissions(graph: UserGraph) -> FrozenSet[str]:
    """Union of permission names reachable through active assignments and grants."""
    names = set()
    for role in graph.active_roles():
        for grant in role.grants:
            if grant.deleted_at is not None or grant.permission.deleted_at is not None:
                continue
            names.add(grant.permission.name)
    return frozenset(names)


class IdentityResolver:
    """Loads user graphs from the credential store through one SQLAlchemy session."""

    def __init__(self, session):
        self.session = session

    def _fetch(self, stmt):
        # Always overwrite identity-map state so reads reflect the store as of now
        return self.session.execute(stmt.execution_options(populate_existing=True)).scalars().all()

    def load_by_code(self, code: str) -> Optional[UserGraph]:
        if not code:
            return None
        users = self._fetch(select(User).where(User.code == code, User.deleted_at.is_(None)))
        if not users:
            return None
        return self._build(users[0])

    def load_by_id(self, user_id: int) -> Optional[UserGraph]:
        users = self._fetch(select(User).where(User.id == user_id, User.deleted_at.is_(None)))
        if not users:
            return None
        return self._build(users[0])

    def _build(self, user: User) -> UserGraph:
        user_roles = self._fetch(
            select(UserRole)
            .where(UserRole.user_id == user.id, UserRole.deleted_at.is_(None))
            .order_by(UserRole.id.asc())
        )
        role_ids = [ur.role_id for ur in user_roles]
        roles: Dict[int, Role] = {}
        grants_by_role: Dict[int, List[PermissionGrant]] = {}
        if role_ids:
            for role in self._fetch(select(Role).where(Role.id.in_(role_ids), Role.deleted_at.is_(None))):
                roles[role.id] = role
        if roles:
            role_perms = self._fetch(
                select(RolePermission)
                .where(RolePermission.role_id.in_(list(roles)), RolePermission.deleted_at.is_(None))
                .order_by(RolePermission.id.asc())
            )
            perm_ids = {rp.permission_id for rp in role_perms}
            perms: Dict[int, Permission] = {}
            if perm_ids:
                for p in self._fetch(select(Permission).where(Permission.id.in_(perm_ids), Permission.deleted_at.is_(None))):
                    perms[p.id] = p
            for rp in role_perms:
                p = perms.get(rp.permission_id)
                if p is None:
                    continue
                node = PermissionNode(p.id, p.name, p.description, p.deleted_at)
                grants_by_role.setdefault(rp.role_id, []).append(PermissionGrant(node, rp.deleted_at))
        assignments = []
        for ur in user_roles:
            role = roles.get(ur.role_id)
            if role is None:
                continue
            node = RoleNode(
                id=role.id, name=role.name, description=role.description,
                grants=tuple(grants_by_role.get(role.id, ())), deleted_at=role.deleted_at,
            )
            assignments.append(RoleAssignment(node, ur.deleted_at))
        store = None
        if user.store_id is not None:
            rows = self._fetch(select(Store).where(Store.id == user.store_id, Store.deleted_at.is_(None)))
            if rows:
                store = StoreRef(rows[0].id, rows[0].name, rows[0].address)
        return UserGraph(
            id=user.id, code=user.code, name=user.name, language=user.language,
            password_hash=user.password_hash, store=store, assignments=tuple(assignments),
        )
