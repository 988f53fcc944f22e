from flask import Blueprint, request, abort, current_app
from backoffice import get_db
from backoffice.services.credentials import CredentialVerifier
from backoffice.services.identity import IdentityResolver
from backoffice.services.passwords import get_password_hasher
from backoffice.services.request_auth import current_identity
from backoffice.services.tokens import TokenClaim, issue_token

auth_bp = Blueprint('auth', __name__)


@auth_bp.post('/login')
def login():
    data = request.get_json(silent=True) or {}
    if not isinstance(data, dict):
        abort(400, description='JSON object required')
    code = data.get('code'); password = data.get('password')
    if not isinstance(code, str) or not isinstance(password, str) or not code or not password:
        abort(400, description='code & password required')
    verifier = CredentialVerifier(IdentityResolver(get_db()), get_password_hasher())
    identity = verifier.verify(code, password)
    token = issue_token(TokenClaim(subject_id=identity.id, code=identity.code))
    return {
        'access_token': token,
        'token_type': 'Bearer',
        'expires_in': int(current_app.config['JWT_ACCESS_TOKEN_EXPIRES'].total_seconds()),
        'user': identity.to_dict(),
    }


@auth_bp.get('/me')
def me():
    auth = current_identity()
    if auth is None:
        abort(401, description='access denied')
    body = auth.graph.to_identity().to_dict()
    body['permissions'] = sorted(auth.permissions or ())
    return body
