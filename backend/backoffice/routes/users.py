from __future__ import annotations
from flask import Blueprint, request, abort, current_app
from sqlalchemy import select, func
from backoffice import get_db
from backoffice.config.pagination import page_from_args
from backoffice.models.authz import User
from backoffice.services.identity import IdentityResolver
from backoffice.services.passwords import get_password_hasher
from backoffice.services import user_admin

users_bp = Blueprint('users', __name__)


def _user_json(user_id: int):
    graph = IdentityResolver(get_db()).load_by_id(user_id)
    if graph is None:
        abort(404, description='User not found')
    return graph.to_identity().to_dict()


@users_bp.get('')
def list_users():
    session = get_db()
    page = page_from_args(request.args)
    active = User.deleted_at.is_(None)
    total = session.execute(select(func.count(User.id)).where(active)).scalar_one()
    ids = session.execute(
        select(User.id).where(active).order_by(User.id.asc()).offset(page.offset).limit(page.limit)
    ).scalars().all()
    rows = [_user_json(uid) for uid in ids]
    return {'data': rows, 'pagination': page.meta(total, len(rows))}


@users_bp.get('/<int:user_id>')
def get_user(user_id: int):
    return _user_json(user_id)


@users_bp.post('')
def create_user():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    user = user_admin.create_user(
        get_db(),
        get_password_hasher(),
        name=data.get('name'),
        code=data.get('code'),
        password=data.get('password'),
        store_id=data.get('store_id'),
        language=data.get('language'),
        role_ids=data.get('role_ids'),
        default_language=current_app.config['DEFAULT_LANGUAGE'],
    )
    return _user_json(user.id), 201


@users_bp.patch('/<int:user_id>')
def update_user(user_id: int):
    data = request.get_json(silent=True)
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    user_admin.update_user(get_db(), get_password_hasher(), user_id, data)
    return _user_json(user_id)


@users_bp.delete('/<int:user_id>')
def delete_user(user_id: int):
    user_admin.soft_delete_user(get_db(), user_id)
    return {'status': 'deleted'}


@users_bp.put('/<int:user_id>/roles')
def set_user_roles(user_id: int):
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    role_ids = user_admin.replace_user_roles(get_db(), user_id, data.get('role_ids') or [])
    return {'user_id': user_id, 'role_ids': role_ids}
