import pytest
from backoffice import get_db
from backoffice.models.authz import Permission, Role, RolePermission, User, UserRole, utcnow
from backoffice.services.identity import (
    IdentityResolver, PermissionGrant, PermissionNode, RoleAssignment, RoleNode, UserGraph, flatten_permissions,
)
from seed_utils import ensure_role, ensure_user, soft_delete
from sqlalchemy import select, text


def _graph(*assignments):
    return UserGraph(id=1, code='u1', name='U1', language='vi', password_hash='hash-value-xyz', assignments=tuple(assignments))


def _role(rid, *grants, deleted=False):
    return RoleNode(id=rid, name=f'r{rid}', grants=tuple(grants), deleted_at=utcnow() if deleted else None)


def _grant(pid, name, deleted=False, perm_deleted=False):
    node = PermissionNode(pid, name, deleted_at=utcnow() if perm_deleted else None)
    return PermissionGrant(node, deleted_at=utcnow() if deleted else None)


def test_flatten_unions_and_deduplicates():
    graph = _graph(
        RoleAssignment(_role(1, _grant(1, 'a'), _grant(2, 'b'))),
        RoleAssignment(_role(2, _grant(2, 'b'), _grant(3, 'c'))),
    )
    assert flatten_permissions(graph) == {'a', 'b', 'c'}


def test_flatten_empty_graph():
    assert flatten_permissions(_graph()) == frozenset()


@pytest.mark.parametrize('assignment, expected', [
    (RoleAssignment(_role(2, _grant(3, 'c')), deleted_at=utcnow()), {'a'}),
    (RoleAssignment(_role(2, _grant(3, 'c'), deleted=True)), {'a'}),
    (RoleAssignment(_role(2, _grant(3, 'c', deleted=True))), {'a'}),
    (RoleAssignment(_role(2, _grant(3, 'c', perm_deleted=True))), {'a'}),
    (RoleAssignment(_role(2, _grant(3, 'c'))), {'a', 'c'}),
])
def test_flatten_skips_each_inactive_hop(assignment, expected):
    graph = _graph(RoleAssignment(_role(1, _grant(1, 'a'))), assignment)
    assert flatten_permissions(graph) == expected


def test_to_identity_lists_only_active_roles():
    graph = _graph(
        RoleAssignment(_role(1, _grant(1, 'a'))),
        RoleAssignment(_role(2), deleted_at=utcnow()),
    )
    identity = graph.to_identity()
    assert [r.id for r in identity.roles] == [1]
    assert 'password_hash' not in identity.to_dict()
    assert 'hash-value-xyz' not in repr(graph)


@pytest.fixture()
def graph_ids(app_instance):
    r_id = ensure_role('stocker', ['inventory-management', 'warehouse-management'])
    s_id = ensure_role('teller', ['pos-sales'])
    uid = ensure_user('emp01', role_ids=[r_id, s_id])
    session = get_db()
    ids = {
        'user': uid,
        'user_role_s': session.execute(select(UserRole.id).where(UserRole.user_id == uid, UserRole.role_id == s_id)).scalar_one(),
        'role_s': s_id,
        'grant_r_wh': session.execute(
            select(RolePermission.id).join(Permission, Permission.id == RolePermission.permission_id)
            .where(RolePermission.role_id == r_id, Permission.name == 'warehouse-management')
        ).scalar_one(),
        'perm_inv': session.execute(select(Permission.id).where(Permission.name == 'inventory-management')).scalar_one(),
    }
    return ids


def _resolved(code='emp01'):
    graph = IdentityResolver(get_db()).load_by_code(code)
    return None if graph is None else flatten_permissions(graph)


def test_resolver_loads_full_graph(graph_ids):
    graph = IdentityResolver(get_db()).load_by_code('emp01')
    assert graph.id == graph_ids['user']
    assert {r.name for r in graph.active_roles()} == {'stocker', 'teller'}
    assert flatten_permissions(graph) == {'inventory-management', 'warehouse-management', 'pos-sales'}


@pytest.mark.parametrize('model, key, expected', [
    (UserRole, 'user_role_s', {'inventory-management', 'warehouse-management'}),
    (Role, 'role_s', {'inventory-management', 'warehouse-management'}),
    (RolePermission, 'grant_r_wh', {'inventory-management', 'pos-sales'}),
    (Permission, 'perm_inv', {'warehouse-management', 'pos-sales'}),
])
def test_resolver_filters_each_soft_deleted_hop(graph_ids, model, key, expected):
    soft_delete(model, graph_ids[key])
    assert _resolved() == expected


def test_resolver_returns_none_for_deleted_or_unknown_user(graph_ids):
    assert IdentityResolver(get_db()).load_by_code('nobody') is None
    soft_delete(User, graph_ids['user'])
    assert IdentityResolver(get_db()).load_by_code('emp01') is None
    assert IdentityResolver(get_db()).load_by_id(graph_ids['user']) is None


def test_resolver_sees_revocation_through_same_session(graph_ids):
    session = get_db()
    resolver = IdentityResolver(session)
    assert 'pos-sales' in flatten_permissions(resolver.load_by_code('emp01'))
    # raw SQL bypasses the identity map, so only a fresh read can notice it
    session.execute(text('UPDATE user_roles SET deleted_at = CURRENT_TIMESTAMP WHERE id = :id'), {'id': graph_ids['user_role_s']})
    session.commit()
    assert 'pos-sales' not in flatten_permissions(resolver.load_by_code('emp01'))


def test_resolver_picks_up_renamed_permission(graph_ids):
    session = get_db()
    resolver = IdentityResolver(session)
    resolver.load_by_code('emp01')
    session.execute(text("UPDATE permissions SET name = 'stock-control' WHERE id = :id"), {'id': graph_ids['perm_inv']})
    session.commit()
    assert 'stock-control' in flatten_permissions(resolver.load_by_code('emp01'))
