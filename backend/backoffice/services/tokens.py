"""Bearer token issue and verification.

Tokens are HS256 JWTs minted by flask-jwt-extended with ``sub`` set to the
user id (as a string) and an extra ``code`` claim. Verification is a pure
structural/cryptographic check: it never touches the database. Expiry is
evaluated here rather than inside PyJWT so the boundary is explicit: a token
is expired at exactly its ``exp`` instant.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from flask_jwt_extended import create_access_token, decode_token
from flask_jwt_extended.exceptions import JWTDecodeError
from jwt.exceptions import InvalidSignatureError, InvalidTokenError

from backoffice.errors import TokenExpired, TokenMalformed, TokenSignatureInvalid


@dataclass(frozen=True)
class TokenClaim:
    subject_id: int
    code: str
    issued_at: Optional[datetime] = field(default=None, compare=False)
    expires_at: Optional[datetime] = field(default=None, compare=False)


def issue_token(claim: TokenClaim, expires_delta: Optional[timedelta] = None) -> str:
    # JWT identity must be a string (flask-jwt-extended v4 requirement)
    return create_access_token(
        identity=str(claim.subject_id),
        additional_claims={'code': claim.code},
        expires_delta=expires_delta,
    )


def _timestamp(value) -> Optional[datetime]:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return datetime.fromtimestamp(value, tz=timezone.utc)
    return None


def verify_token(token: str, now: Optional[datetime] = None) -> TokenClaim:
    if not token or not isinstance(token, str):
        raise TokenMalformed()
    try:
        decoded = decode_token(token, allow_expired=True)
    except InvalidSignatureError:
        raise TokenSignatureInvalid()
    except (InvalidTokenError, JWTDecodeError, ValueError):
        raise TokenMalformed()

    sub = decoded.get('sub')
    code = decoded.get('code')
    expires_at = _timestamp(decoded.get('exp'))
    if not isinstance(code, str) or not code or expires_at is None:
        raise TokenMalformed()
    try:
        subject_id = int(sub)
    except (TypeError, ValueError):
        raise TokenMalformed()

    now = now or datetime.now(timezone.utc)
    if now >= expires_at:
        raise TokenExpired()
    return TokenClaim(subject_id, code, issued_at=_timestamp(decoded.get('iat')), expires_at=expires_at)
