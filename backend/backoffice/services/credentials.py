from __future__ import annotations
import logging

from backoffice.errors import InvalidCredentials
from backoffice.services.identity import Identity, IdentityResolver
from backoffice.services.passwords import PasswordHasher

logger = logging.getLogger(__name__)


class CredentialVerifier:
    """Checks a code + password pair against the stored hash.

    Unknown codes and wrong passwords raise the same ``InvalidCredentials``.
    The hash comparison is skipped when no user matches, which leaves a small
    timing difference between the two cases.
    """

    def __init__(self, resolver: IdentityResolver, hasher: PasswordHasher):
        self.resolver = resolver
        self.hasher = hasher

    def verify(self, code: str, password: str) -> Identity:
        graph = self.resolver.load_by_code(code)
        if graph is None or not self.hasher.verify(graph.password_hash, password):
            logger.info('login rejected for code=%s', code)
            raise InvalidCredentials()
        logger.info('login accepted for user_id=%s code=%s', graph.id, graph.code)
        return graph.to_identity()
