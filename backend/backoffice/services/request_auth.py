"""Per-request authentication pipeline.

Unauthenticated -> token verified -> identity re-resolved -> Authorized or
Forbidden. A bad or missing token short-circuits before the gate runs. The
permission requirement of each endpoint comes from the static route table in
``backoffice.constants.permissions`` and is checked for completeness when the
application is created.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import FrozenSet, Optional
import logging

from flask import g, request

from backoffice import get_db
from backoffice.constants.permissions import PERMISSION_NAMES, PUBLIC_ENDPOINTS, ROUTE_PERMISSIONS
from backoffice.errors import ConfigurationError, TokenInvalid, TokenMalformed, Unauthenticated
from backoffice.services.identity import IdentityResolver, UserGraph, flatten_permissions
from backoffice.services.policy import authorize, enforce
from backoffice.services.tokens import TokenClaim, verify_token

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AuthenticatedUser:
    claim: TokenClaim
    graph: Optional[UserGraph]
    permissions: Optional[FrozenSet[str]]


def bearer_token() -> str:
    header = request.headers.get('Authorization')
    if header is None:
        raise Unauthenticated()
    scheme, _, token = header.strip().partition(' ')
    if scheme.lower() != 'bearer' or not token.strip():
        raise TokenMalformed()
    return token.strip()


def resolve_identity(claim: TokenClaim) -> Optional[UserGraph]:
    graph = IdentityResolver(get_db()).load_by_code(claim.code)
    # A code freed by a deleted user may belong to a newer row now
    if graph is not None and graph.id != claim.subject_id:
        return None
    return graph


def authenticate_and_authorize():
    endpoint = request.endpoint
    if endpoint is None or endpoint in PUBLIC_ENDPOINTS:
        return None
    required = ROUTE_PERMISSIONS[endpoint]
    try:
        claim = verify_token(bearer_token())
    except TokenInvalid as exc:
        logger.info('token rejected on %s: %s', endpoint, exc.reason)
        raise
    graph = resolve_identity(claim)
    if graph is None:
        logger.info('token subject %s no longer resolves', claim.subject_id)
    permissions = flatten_permissions(graph) if graph is not None else None
    decision = authorize(permissions, required)
    if not decision.allowed:
        logger.info('%s denied on %s; requires any of %s', decision.outcome, endpoint, ', '.join(decision.required))
    enforce(decision)
    g.auth_user = AuthenticatedUser(claim, graph, permissions)
    return None


def current_identity() -> Optional[AuthenticatedUser]:
    user = g.get('auth_user')
    if user is None or user.graph is None:
        return None
    return user


def check_route_table(app):
    """Fail startup when an endpoint has no declared requirement or names an unknown permission."""
    problems = []
    for rule in app.url_map.iter_rules():
        if rule.endpoint in PUBLIC_ENDPOINTS:
            continue
        if rule.endpoint not in ROUTE_PERMISSIONS:
            problems.append(f'endpoint {rule.endpoint} has no permission declaration')
    for endpoint, names in ROUTE_PERMISSIONS.items():
        unknown = set(names) - PERMISSION_NAMES
        if unknown:
            problems.append(f'endpoint {endpoint} references unknown permissions {sorted(unknown)}')
    if problems:
        raise ConfigurationError('; '.join(problems))


def install_request_gate(app):
    app.before_request(authenticate_and_authorize)
