"""
TOTP engine for VIGIL.

Implements TOTP (Time-based One-Time Password) using RFC 6238.
Compatible with Google Authenticator, Authy, and other TOTP apps.

Also provides backup code generation and hashing for account recovery.
"""
import base64
import binascii
import hashlib
import hmac
import io
import secrets
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional, Union

import pyotp
import qrcode

from .errors import InvalidSecretError

TIME_STEP = 30
DIGITS = 6
DEFAULT_WINDOW = 5
DEFAULT_ISSUER = "VIGIL"

ForTime = Optional[Union[int, float, datetime]]


@dataclass
class TOTPSecret:
    """Freshly generated secret plus its enrollment URI."""
    secret: str
    provisioning_uri: str


def _totp(secret: str) -> pyotp.TOTP:
    """
    Build a TOTP generator, rejecting secrets that are not valid base32.

    Raises:
        InvalidSecretError: If the secret is empty or cannot be decoded.
    """
    if not secret:
        raise InvalidSecretError()

    totp = pyotp.TOTP(secret, digits=DIGITS, interval=TIME_STEP)
    try:
        key = totp.byte_secret()
    except (binascii.Error, ValueError):
        raise InvalidSecretError()
    if not key:
        raise InvalidSecretError()
    return totp


def generate_totp_secret() -> str:
    """
    Generate a new TOTP secret for MFA enrollment.

    Returns:
        Base32-encoded secret (32 characters, 160 bits).
    """
    return pyotp.random_base32()


def get_totp_provisioning_uri(
    secret: str,
    label: str,
    issuer: str = DEFAULT_ISSUER
) -> str:
    """
    Generate a provisioning URI for TOTP apps.

    This URI can be encoded as a QR code for easy scanning.

    Args:
        secret: Base32-encoded TOTP secret.
        label: Account label shown in the authenticator app (usually the email).
        issuer: Application name shown in the authenticator app.

    Returns:
        otpauth:// URI string.
    """
    return _totp(secret).provisioning_uri(name=label, issuer_name=issuer)


def generate_secret(label: str, issuer: str = DEFAULT_ISSUER) -> TOTPSecret:
    """Generate a secret and its enrollment URI in one step."""
    secret = generate_totp_secret()
    return TOTPSecret(
        secret=secret,
        provisioning_uri=get_totp_provisioning_uri(secret, label, issuer),
    )


def generate_qr_code(uri: str) -> bytes:
    """
    Generate a QR code image for the provisioning URI.

    Returns:
        PNG image bytes.
    """
    qr = qrcode.QRCode(
        version=1,
        error_correction=qrcode.constants.ERROR_CORRECT_L,
        box_size=10,
        border=4,
    )
    qr.add_data(uri)
    qr.make(fit=True)

    img = qr.make_image(fill_color="black", back_color="white")

    buffer = io.BytesIO()
    img.save(buffer, format='PNG')
    return buffer.getvalue()


def generate_qr_code_base64(uri: str) -> str:
    """
    Generate a base64-encoded QR code for embedding in HTML.

    Returns:
        Base64-encoded PNG image string (data URI ready).
    """
    b64 = base64.b64encode(generate_qr_code(uri)).decode('utf-8')
    return f"data:image/png;base64,{b64}"


def get_current_totp(secret: str, for_time: ForTime = None) -> str:
    """
    Get the TOTP code for a secret at a given time (default: now).

    Raises:
        InvalidSecretError: If the secret is malformed.
    """
    totp = _totp(secret)
    if for_time is None:
        return totp.now()
    return totp.at(for_time)


def verify_totp(
    secret: str,
    code: str,
    window: int = DEFAULT_WINDOW,
    for_time: ForTime = None,
) -> bool:
    """
    Verify a TOTP code against the secret.

    Args:
        secret: Base32-encoded TOTP secret.
        code: 6-digit code entered by user (spaces are ignored).
        window: Number of 30-second steps accepted before/after the current one.
            The default of 5 (+-150s) is lenient; use 1 for tighter checks.
        for_time: Verification time, defaults to now.

    Returns:
        True if code is valid, False otherwise.

    Raises:
        InvalidSecretError: If the secret is malformed. A bad secret is never
            reported as a rejected code.
    """
    totp = _totp(secret)

    if not code:
        return False

    code = code.strip().replace(" ", "")
    if len(code) != DIGITS or not code.isdigit():
        return False

    return totp.verify(code, for_time=for_time, valid_window=window)


def generate_backup_codes(count: int = 8) -> List[str]:
    """
    Generate backup codes for account recovery.

    Each code is 4 random bytes rendered as 8 uppercase hex characters.
    The plaintext codes are shown to the user once; only hashes are stored.

    Returns:
        List of distinct backup codes.
    """
    codes = []
    seen = set()
    while len(codes) < count:
        code = secrets.token_hex(4).upper()
        if code in seen:
            continue
        seen.add(code)
        codes.append(code)
    return codes


def normalize_backup_code(code: str) -> str:
    return code.replace("-", "").replace(" ", "").strip().upper()


def hash_backup_code(code: str) -> str:
    """
    Hash a backup code for storage.

    Unsalted: re-hashing a code always reproduces its stored hash.

    Returns:
        Hex SHA-256 digest of the normalized code.
    """
    return hashlib.sha256(normalize_backup_code(code).encode('utf-8')).hexdigest()


def hash_backup_codes(codes: List[str]) -> List[str]:
    return [hash_backup_code(code) for code in codes]


def find_matching_backup_code(code: str, hashed_codes: List[str]) -> Optional[int]:
    """
    Find the index of a matching backup code.

    Args:
        code: Plain text backup code entered by user.
        hashed_codes: List of stored hashes.

    Returns:
        Index of the matching code, or None if not found.
    """
    if not code:
        return None

    candidate = hash_backup_code(code)
    match = None
    for i, hashed in enumerate(hashed_codes):
        if hmac.compare_digest(candidate, hashed) and match is None:
            match = i
    return match
