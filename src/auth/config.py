"""
Runtime configuration for the authentication core.

Keys come from `get_secret` (env var, *_FILE, or Docker secret). A missing
signing or encryption key is fatal in production. In development an
ephemeral random key is generated and a warning is logged, so tokens and
stored secrets do not survive a restart.
"""
import os
import secrets
import logging
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigurationError
from ..utils.secrets import get_secret, mask_secret

logger = logging.getLogger(__name__)


@dataclass
class AuthSettings:
    jwt_secret: str
    encryption_key: str
    jwt_algorithm: str = "HS256"
    token_expire_hours: int = 24
    bcrypt_rounds: int = 10
    totp_window: int = 5
    totp_issuer: str = "VIGIL"
    backup_code_count: int = 8
    environment: str = "production"
    database_url: Optional[str] = None

    @property
    def is_development(self) -> bool:
        return self.environment.lower() == "development"


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        raise ConfigurationError(f"{name} must be an integer, got {raw!r}")


def _key_or_fallback(name: str, environment: str) -> str:
    value = get_secret(name)
    if value:
        return value

    if environment.lower() != "development":
        raise ConfigurationError(
            f"Required secret '{name}' not found. "
            f"Set {name} or {name}_FILE environment variable."
        )

    generated = secrets.token_hex(32)
    logger.warning(
        f"{name} not set, using ephemeral development key {mask_secret(generated)}"
    )
    return generated


def load_settings() -> AuthSettings:
    """
    Build settings from the environment.

    Raises:
        ConfigurationError: If a required key is missing outside development,
            or a numeric setting is malformed.
    """
    environment = os.getenv("APP_ENV", "production")

    settings = AuthSettings(
        jwt_secret=_key_or_fallback("JWT_SECRET", environment),
        encryption_key=_key_or_fallback("ENCRYPTION_KEY", environment),
        jwt_algorithm=os.getenv("JWT_ALGORITHM", "HS256"),
        token_expire_hours=_int_env("JWT_ACCESS_TOKEN_EXPIRE_HOURS", 24),
        bcrypt_rounds=_int_env("BCRYPT_ROUNDS", 10),
        totp_window=_int_env("TOTP_WINDOW", 5),
        totp_issuer=os.getenv("TOTP_ISSUER", "VIGIL"),
        backup_code_count=_int_env("BACKUP_CODE_COUNT", 8),
        environment=environment,
        database_url=get_secret("DATABASE_URL"),
    )

    if not 4 <= settings.bcrypt_rounds <= 31:
        raise ConfigurationError("BCRYPT_ROUNDS must be between 4 and 31")
    if settings.totp_window < 0:
        raise ConfigurationError("TOTP_WINDOW must not be negative")

    logger.info(
        f"Auth settings loaded (env={environment}, totp_window={settings.totp_window}, "
        f"token_hours={settings.token_expire_hours})"
    )
    return settings
