"""Error taxonomy for authentication and authorization.

Every class derives from a werkzeug HTTP exception so the application-wide
error handler renders it with the standard ``{"error": {...}}`` shape. Token
failures share one public description; ``reason`` is for server logs only.
"""
from __future__ import annotations
from typing import Iterable, Tuple
from werkzeug.exceptions import BadRequest, Conflict, Forbidden, NotFound, Unauthorized


class ConfigurationError(RuntimeError):
    """Raised at startup when the process configuration is unusable."""


class InvalidCredentials(Unauthorized):
    description = 'invalid credentials'


class Unauthenticated(Unauthorized):
    description = 'access denied'


class TokenInvalid(Unauthorized):
    description = 'access denied'
    reason = 'invalid'


class TokenMalformed(TokenInvalid):
    reason = 'malformed'


class TokenSignatureInvalid(TokenInvalid):
    reason = 'signature_invalid'


class TokenExpired(TokenInvalid):
    reason = 'expired'


class PermissionDenied(Forbidden):

    def __init__(self, required: Iterable[str]):
        self.required: Tuple[str, ...] = tuple(sorted(required))
        super().__init__(description=f"Access denied. Required permissions: {', '.join(self.required)}")


class ResourceNotFound(NotFound):
    pass


class ResourceConflict(Conflict):
    pass


class ValidationFailed(BadRequest):
    pass
