"""
Error taxonomy for VIGIL authentication.

Every error except ConfigurationError is recoverable and the caller decides
how to report it. A rejected code is still counted in failed_attempts.
`message` is the public, non-distinguishing text safe to return to clients.
"""
from typing import Optional


class AuthError(Exception):
    """Base class for recoverable authentication errors."""

    message = "Authentication failed"
    code = "AUTH_ERROR"

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.message)
        if message:
            self.message = message


class ValidationError(AuthError):
    message = "Invalid input"
    code = "VALIDATION_ERROR"


class DuplicateAccountError(AuthError):
    message = "User already exists"
    code = "DUPLICATE_ACCOUNT"


class InvalidCredentialsError(AuthError):
    # Same text for unknown email and wrong password
    message = "Invalid email or password"
    code = "INVALID_CREDENTIALS"


class NotSetUpError(AuthError):
    message = "TOTP not set up"
    code = "MFA_NOT_SET_UP"


class MFAAlreadyEnabledError(AuthError):
    message = "MFA is already enabled. Disable it first to set up a new authenticator."
    code = "MFA_ALREADY_ENABLED"


class InvalidCodeError(AuthError):
    message = "Invalid code"
    code = "INVALID_CODE"


class InvalidSecretError(AuthError):
    """Stored TOTP secret could not be decoded. Not the same as a rejected code."""

    message = "Second factor unavailable"
    code = "INVALID_SECRET"


class DecryptionFailure(AuthError):
    message = "Second factor unavailable"
    code = "DECRYPTION_FAILURE"


class TokenError(AuthError):
    message = "Invalid or expired token"
    code = "INVALID_TOKEN"


class InvalidTokenError(TokenError):
    message = "Invalid token"
    code = "INVALID_TOKEN"


class ExpiredTokenError(TokenError):
    message = "Token has expired"
    code = "EXPIRED_TOKEN"


class ConfigurationError(Exception):
    """Fatal startup-time misconfiguration (missing keys, bad settings)."""
