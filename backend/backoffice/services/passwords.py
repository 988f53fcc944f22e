from __future__ import annotations
from flask import current_app
from werkzeug.security import generate_password_hash, check_password_hash

from backoffice.config.settings import DEFAULT_HASH_METHOD


class PasswordHasher:
    """Salted one-way hashing; ``method`` carries the cost factor, e.g. ``pbkdf2:sha256:600000``."""

    def __init__(self, method: str = DEFAULT_HASH_METHOD):
        self.method = method

    def hash(self, raw: str) -> str:
        return generate_password_hash(raw, method=self.method)

    def verify(self, password_hash: str, raw: str) -> bool:
        # check_password_hash compares digests in constant time
        if not password_hash:
            return False
        return check_password_hash(password_hash, raw)


def get_password_hasher() -> PasswordHasher:
    return PasswordHasher(current_app.config['PASSWORD_HASH_METHOD'])
