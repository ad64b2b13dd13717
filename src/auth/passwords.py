"""
Account registration and password verification.

Passwords are hashed with bcrypt (salted, adaptive cost). The store never
sees a plaintext password.
"""
import uuid
import logging

import bcrypt

from .errors import DuplicateAccountError, InvalidCredentialsError, ValidationError
from .models import Account, utc_now
from ..database.store import CredentialStore, normalize_email

logger = logging.getLogger(__name__)

DEFAULT_ROUNDS = 10
# bcrypt only looks at the first 72 bytes
MAX_PASSWORD_BYTES = 72


def hash_password(password: str, rounds: int = DEFAULT_ROUNDS) -> str:
    """
    Hash a password using bcrypt.

    Args:
        password: Plain text password.
        rounds: bcrypt cost factor.

    Returns:
        Bcrypt hash string (includes salt).
    """
    salt = bcrypt.gensalt(rounds=rounds)
    return bcrypt.hashpw(password.encode('utf-8'), salt).decode('utf-8')


def verify_password(password: str, password_hash: str) -> bool:
    """
    Verify a password against its hash.

    Returns:
        True if password matches, False otherwise (including malformed hashes).
    """
    try:
        return bcrypt.checkpw(
            password.encode('utf-8'),
            password_hash.encode('utf-8')
        )
    except ValueError:
        return False


class PasswordAuthenticator:
    """
    Registers accounts and checks credentials against the credential store.

    Example usage:
        authenticator = PasswordAuthenticator(store)
        account_id = authenticator.register("alice@example.com", "pw123456")
        account = authenticator.authenticate("alice@example.com", "pw123456")
    """

    def __init__(self, store: CredentialStore, rounds: int = DEFAULT_ROUNDS):
        self.store = store
        self.rounds = rounds
        # Compared against when the email is unknown so both failure paths cost one bcrypt check
        self._dummy_hash = hash_password(uuid.uuid4().hex, rounds)

    def register(self, email: str, password: str) -> str:
        """
        Create a new account.

        Returns:
            Generated account id.

        Raises:
            ValidationError: Missing email/password, malformed email, or
                password longer than 72 bytes.
            DuplicateAccountError: Email already registered.
        """
        if not email or not email.strip() or not password:
            raise ValidationError("Email and password required")

        email = normalize_email(email)
        if "@" not in email:
            raise ValidationError("Invalid email address")
        if len(password.encode('utf-8')) > MAX_PASSWORD_BYTES:
            raise ValidationError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes")

        if self.store.get_account_by_email(email) is not None:
            raise DuplicateAccountError()

        account = Account(
            account_id=str(uuid.uuid4()),
            email=email,
            password_hash=hash_password(password, self.rounds),
            created_at=utc_now(),
        )
        self.store.put_account(account)

        logger.info(f"User registered: {email} (id={account.account_id})")
        return account.account_id

    def authenticate(self, email: str, password: str) -> Account:
        """
        Check credentials.

        Raises:
            ValidationError: Missing email or password.
            InvalidCredentialsError: Unknown email or wrong password (same error).
        """
        if not email or not password:
            raise ValidationError("Email and password required")

        account = self.store.get_account_by_email(email)
        if account is None:
            verify_password(password, self._dummy_hash)
            logger.warning("Login failed: unknown email")
            raise InvalidCredentialsError()

        if not verify_password(password, account.password_hash):
            logger.warning(f"Login failed: wrong password for account {account.account_id}")
            raise InvalidCredentialsError()

        return account
