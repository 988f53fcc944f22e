"""Process configuration for the back-office service.

Values come from the environment (a ``.env`` file is honoured through
python-dotenv) and may be overridden by an explicit mapping, which is how the
test-suite injects an in-memory database and a throwaway signing secret.
"""
from __future__ import annotations
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional
import os

from backoffice.errors import ConfigurationError

DEFAULT_TOKEN_HOURS = 24
DEFAULT_HASH_METHOD = 'pbkdf2:sha256:600000'
HASH_METHODS = ('pbkdf2', 'scrypt')
LANGUAGES = ('vi', 'en')


def _token_lifetime() -> timedelta:
    raw = os.getenv('JWT_ACCESS_TOKEN_EXPIRES_HOURS')
    if raw is None or raw == '':
        return timedelta(hours=DEFAULT_TOKEN_HOURS)
    try:
        return timedelta(hours=float(raw))
    except ValueError:
        raise ConfigurationError('JWT_ACCESS_TOKEN_EXPIRES_HOURS must be a number')


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    settings: Dict[str, Any] = {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY'),
        'JWT_ALGORITHM': 'HS256',
        'JWT_ACCESS_TOKEN_EXPIRES': _token_lifetime(),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'PASSWORD_HASH_METHOD': os.getenv('PASSWORD_HASH_METHOD', DEFAULT_HASH_METHOD),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO'),
        'DEFAULT_LANGUAGE': os.getenv('DEFAULT_LANGUAGE', 'vi'),
    }
    if overrides:
        # allow tests or callers to override default config values
        settings.update(overrides)
    return settings


def validate_settings(settings: Mapping[str, Any]) -> None:
    secret = settings.get('JWT_SECRET_KEY')
    if not secret or not str(secret).strip():
        raise ConfigurationError('JWT_SECRET_KEY must be set; refusing to start without a signing secret')
    lifetime = settings.get('JWT_ACCESS_TOKEN_EXPIRES')
    if not isinstance(lifetime, timedelta) or lifetime <= timedelta(0):
        raise ConfigurationError('JWT_ACCESS_TOKEN_EXPIRES must be a positive timedelta')
    method = str(settings.get('PASSWORD_HASH_METHOD') or '')
    if method.split(':', 1)[0] not in HASH_METHODS:
        raise ConfigurationError(f'Unsupported PASSWORD_HASH_METHOD: {method!r}')
    if settings.get('DEFAULT_LANGUAGE') not in LANGUAGES:
        raise ConfigurationError(f"DEFAULT_LANGUAGE must be one of {', '.join(LANGUAGES)}")
