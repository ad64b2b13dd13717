"""
Authentication and second-factor management for VIGIL.

This package provides:
- Password registration and verification (passwords.py)
- Session tokens (tokens.py)
- TOTP enrollment, verification and backup codes (mfa.py, manager.py)
- Encryption of TOTP secrets at rest (cipher.py)
- Login orchestration (service.py)
"""
from .errors import (
    AuthError,
    ConfigurationError,
    DecryptionFailure,
    DuplicateAccountError,
    ExpiredTokenError,
    InvalidCodeError,
    InvalidCredentialsError,
    InvalidSecretError,
    InvalidTokenError,
    MFAAlreadyEnabledError,
    NotSetUpError,
    ValidationError,
)
from .mfa import (
    generate_totp_secret,
    get_totp_provisioning_uri,
    get_current_totp,
    verify_totp,
    generate_backup_codes,
    hash_backup_code,
    generate_qr_code_base64,
)

__all__ = [
    "AuthError",
    "ConfigurationError",
    "DecryptionFailure",
    "DuplicateAccountError",
    "ExpiredTokenError",
    "InvalidCodeError",
    "InvalidCredentialsError",
    "InvalidSecretError",
    "InvalidTokenError",
    "MFAAlreadyEnabledError",
    "NotSetUpError",
    "ValidationError",
    "generate_totp_secret",
    "get_totp_provisioning_uri",
    "get_current_totp",
    "verify_totp",
    "generate_backup_codes",
    "hash_backup_code",
    "generate_qr_code_base64",
]
