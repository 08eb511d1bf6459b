"""Application-level settings read from the environment.

Values come from the process environment (optionally populated from a `.env`
file by python-dotenv in the app factory); explicit overrides passed to
`create_app` take precedence.
"""
from __future__ import annotations
import os
from typing import Any, Dict, Mapping, Optional

from ims.utils.validation import PasswordPolicy

APP_INFO = {
    'name': 'Serrano Tex IMS',
    'version': '1.0.0',
    'description': 'Inventory management backend for a wholesale fabric company',
    'company': 'Serrano Tex',
    'support_email': 'support@serranotex.com',
}

ENVIRONMENTS = ('development', 'staging', 'production')

_TRUE = {'1', 'true', 'yes', 'on'}


def env_flag(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in _TRUE


def env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == '':
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f'{name} must be an integer, got {raw!r}')


def load_settings(overrides: Optional[Mapping[str, Any]] = None) -> Dict[str, Any]:
    settings: Dict[str, Any] = {
        'JWT_SECRET_KEY': os.getenv('JWT_SECRET_KEY', 'dev-secret'),
        'DATABASE_URL': os.getenv('DATABASE_URL', 'sqlite:///dev.db'),
        'IMS_ENV': os.getenv('IMS_ENV', 'development'),
        'LOG_LEVEL': os.getenv('LOG_LEVEL', 'INFO'),
        'PASSWORD_REQUIRE_SYMBOLS': env_flag('PASSWORD_REQUIRE_SYMBOLS', False),
        'LOW_STOCK_DEFAULT_REORDER_POINT': env_int('LOW_STOCK_DEFAULT_REORDER_POINT', 0),
        'RECENT_ACTIVITY_LIMIT': env_int('RECENT_ACTIVITY_LIMIT', 10),
    }
    if overrides:
        settings.update(overrides)
    if settings['IMS_ENV'] not in ENVIRONMENTS:
        raise ValueError(f"IMS_ENV must be one of {', '.join(ENVIRONMENTS)}")
    return settings


def password_policy_from_config(config: Mapping[str, Any]) -> PasswordPolicy:
    return PasswordPolicy(require_symbols=bool(config.get('PASSWORD_REQUIRE_SYMBOLS', False)))
