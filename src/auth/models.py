"""
Records and result types shared by the authentication core.

Account and MFASettings are owned by the credential store; everything else
is a value returned to callers of a single operation.
"""
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Dict, List, Optional


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class Account:
    """Registered account. `email` is the normalized lookup key."""
    account_id: str
    email: str
    password_hash: str
    created_at: datetime = field(default_factory=utc_now)


@dataclass
class MFASettings:
    """
    Per-account TOTP settings.

    `secret_envelope` is the serialized cipher envelope; the plaintext secret
    is never stored. `backup_code_hashes` holds one-way hashes only.
    `failed_attempts` and `locked_until` are recorded but not enforced.
    """
    secret_envelope: str
    enabled: bool = False
    verified: bool = False
    backup_code_hashes: List[str] = field(default_factory=list)
    failed_attempts: int = 0
    locked_until: Optional[datetime] = None
    created_at: datetime = field(default_factory=utc_now)


class MFAState(str, Enum):
    NOT_CONFIGURED = "not_configured"
    PENDING_VERIFICATION = "pending_verification"
    ACTIVE = "active"


@dataclass
class MFAStatus:
    enabled: bool
    verified: bool
    setup_required: bool
    backup_codes_remaining: int = 0


@dataclass
class MFASetupResult:
    """Enrollment material. Returned exactly once, at setup time."""
    provisioning_uri: str
    manual_entry_key: str
    qr_code: str
    backup_codes: List[str]
    instructions: Dict[str, str] = field(default_factory=dict)


@dataclass
class TokenClaims:
    account_id: str
    email: str
    issued_at: datetime
    expires_at: datetime


@dataclass
class IssuedToken:
    access_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass
class LoginResult:
    """
    Outcome of a login attempt that passed the password check.

    `token` is None exactly when `mfa_required` is True and no code was given.
    """
    account_id: str
    email: str
    token: Optional[IssuedToken] = None
    mfa_required: bool = False
    totp_enabled: bool = False


@dataclass
class UserProfile:
    account_id: str
    email: str
    totp_enabled: bool
    totp_verified: bool
    created_at: datetime
