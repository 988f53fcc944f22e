from datetime import datetime, timedelta, timezone
import base64, json
import jwt as pyjwt
import pytest
from sqlalchemy import select, func
from backoffice import get_db
from backoffice.errors import TokenExpired, TokenMalformed, TokenSignatureInvalid, TokenInvalid
from backoffice.models.authz import User
from backoffice.services.tokens import TokenClaim, issue_token, verify_token
from seed_utils import TEST_SECRET


def test_round_trip_returns_same_claim(app_ctx):
    claim = TokenClaim(subject_id=7, code='admin')
    token = issue_token(claim)
    assert verify_token(token) == claim


def test_claim_payload_shape(app_ctx):
    token = issue_token(TokenClaim(subject_id=3, code='nva001'))
    payload = pyjwt.decode(token, TEST_SECRET, algorithms=['HS256'])
    assert payload['sub'] == '3'
    assert payload['code'] == 'nva001'
    assert 'iat' in payload and 'exp' in payload


def test_default_validity_is_24_hours(app_ctx):
    claim = verify_token(issue_token(TokenClaim(1, 'a')))
    assert claim.expires_at - claim.issued_at == timedelta(hours=24)


def test_verify_twice_is_idempotent_and_store_untouched(app_ctx):
    token = issue_token(TokenClaim(5, 'cashier01'))
    count_before = get_db().execute(select(func.count(User.id))).scalar_one()
    first = verify_token(token)
    second = verify_token(token)
    assert first == second == TokenClaim(5, 'cashier01')
    assert get_db().execute(select(func.count(User.id))).scalar_one() == count_before


def test_expiry_boundary_is_inclusive(app_ctx):
    token = issue_token(TokenClaim(1, 'admin'))
    expires_at = verify_token(token).expires_at
    with pytest.raises(TokenExpired):
        verify_token(token, now=expires_at)
    assert verify_token(token, now=expires_at - timedelta(seconds=1)) == TokenClaim(1, 'admin')


def test_already_expired_token(app_ctx):
    token = issue_token(TokenClaim(1, 'admin'), expires_delta=timedelta(seconds=-5))
    with pytest.raises(TokenExpired):
        verify_token(token)


def test_wrong_key_is_signature_invalid(app_ctx):
    now = datetime.now(timezone.utc)
    forged = pyjwt.encode(
        {'sub': '1', 'code': 'admin', 'iat': now, 'exp': now + timedelta(hours=1)},
        'another-secret-key-with-at-least-32-bytes', algorithm='HS256',
    )
    with pytest.raises(TokenSignatureInvalid):
        verify_token(forged)


def test_tampered_payload_is_signature_invalid(app_ctx):
    header, payload, signature = issue_token(TokenClaim(2, 'staff')).split('.')
    padded = payload + '=' * (-len(payload) % 4)
    body = json.loads(base64.urlsafe_b64decode(padded))
    body['sub'] = '1'
    body['code'] = 'admin'
    forged_payload = base64.urlsafe_b64encode(json.dumps(body).encode()).rstrip(b'=').decode()
    with pytest.raises(TokenSignatureInvalid):
        verify_token('.'.join([header, forged_payload, signature]))


@pytest.mark.parametrize('token', ['', 'not-a-token', 'a.b.c', 'Bearer'])
def test_garbage_is_malformed(app_ctx, token):
    with pytest.raises(TokenMalformed):
        verify_token(token)


def test_missing_code_claim_is_malformed(app_ctx):
    now = datetime.now(timezone.utc)
    token = pyjwt.encode({'sub': '1', 'iat': now, 'exp': now + timedelta(hours=1)}, TEST_SECRET, algorithm='HS256')
    with pytest.raises(TokenMalformed):
        verify_token(token)


def test_all_failures_share_public_description(app_ctx):
    for exc in (TokenMalformed(), TokenSignatureInvalid(), TokenExpired()):
        assert isinstance(exc, TokenInvalid)
        assert exc.code == 401
        assert exc.description == 'access denied'
