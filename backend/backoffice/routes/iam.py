from flask import Blueprint, request, abort
from sqlalchemy import select
from backoffice import get_db
from backoffice.models.authz import Permission, Role, RolePermission
from backoffice.services import user_admin

iam_bp = Blueprint('iam', __name__)


@iam_bp.get('/permissions')
def list_permissions():
    session = get_db()
    rows = session.execute(
        select(Permission).where(Permission.deleted_at.is_(None)).order_by(Permission.id.asc())
    ).scalars().all()
    return {'data': [{'id': p.id, 'name': p.name, 'description': p.description} for p in rows]}


@iam_bp.get('/roles')
def list_roles():
    session = get_db()
    roles = session.execute(select(Role).where(Role.deleted_at.is_(None)).order_by(Role.id.asc())).scalars().all()
    data = []
    for r in roles:
        names = session.execute(
            select(Permission.name)
            .join(RolePermission, RolePermission.permission_id == Permission.id)
            .where(
                RolePermission.role_id == r.id,
                RolePermission.deleted_at.is_(None),
                Permission.deleted_at.is_(None),
            )
            .order_by(Permission.name.asc())
        ).scalars().all()
        data.append({'id': r.id, 'name': r.name, 'description': r.description, 'permissions': list(names)})
    return {'data': data}


@iam_bp.put('/roles/<int:role_id>/permissions')
def replace_role_permissions(role_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    names = user_admin.replace_role_permissions(get_db(), role_id, data.get('permissions') or [])
    return {'id': role_id, 'permissions': names}
