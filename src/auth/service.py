"""
Login orchestration.

Password check, then the second-factor gate, then token issuance. A token is
only minted after every required factor has passed.
"""
import logging
from typing import Optional

from .cipher import SecretCipher
from .config import AuthSettings
from .errors import InvalidTokenError
from .manager import MFAStateManager
from .models import LoginResult, TokenClaims, UserProfile
from .passwords import PasswordAuthenticator
from .tokens import TokenIssuer
from ..database.store import CredentialStore

logger = logging.getLogger(__name__)


class AuthService:
    """Entry point used by the API layer."""

    def __init__(
        self,
        authenticator: PasswordAuthenticator,
        mfa_manager: MFAStateManager,
        token_issuer: TokenIssuer,
    ):
        self.authenticator = authenticator
        self.mfa = mfa_manager
        self.tokens = token_issuer

    @property
    def store(self) -> CredentialStore:
        return self.authenticator.store

    def register(self, email: str, password: str) -> str:
        return self.authenticator.register(email, password)

    def login(
        self,
        email: str,
        password: str,
        totp_code: Optional[str] = None,
        backup_code: Optional[str] = None,
    ) -> LoginResult:
        """
        Authenticate and, when allowed, issue a session token.

        If MFA is active and neither code is given, the result has
        `mfa_required=True` and no token. A TOTP code takes precedence over a
        backup code when both are supplied.

        Raises:
            InvalidCredentialsError: Wrong email or password.
            InvalidCodeError: Second factor supplied but rejected.
        """
        account = self.authenticator.authenticate(email, password)
        required = self.mfa.is_second_factor_required(account.account_id)

        if required:
            if not totp_code and not backup_code:
                logger.info(f"Second factor required for account {account.account_id}")
                return LoginResult(
                    account_id=account.account_id,
                    email=account.email,
                    mfa_required=True,
                    totp_enabled=True,
                )

            if totp_code:
                self.mfa.verify(account.account_id, totp_code)
            else:
                self.mfa.redeem_backup_code(account.account_id, backup_code)

        token = self.tokens.issue(account)
        logger.info(f"User logged in: {account.email} (TOTP: {required})")

        return LoginResult(
            account_id=account.account_id,
            email=account.email,
            token=token,
            mfa_required=False,
            totp_enabled=required,
        )

    def authenticate_token(self, token: str) -> TokenClaims:
        return self.tokens.verify(token)

    def profile(self, claims: TokenClaims) -> UserProfile:
        """
        Raises:
            InvalidTokenError: The token names an account that no longer exists.
        """
        account = self.store.get_account_by_id(claims.account_id)
        if account is None:
            raise InvalidTokenError()

        status = self.mfa.status(account.account_id)
        return UserProfile(
            account_id=account.account_id,
            email=account.email,
            totp_enabled=status.enabled,
            totp_verified=status.verified,
            created_at=account.created_at,
        )


def build_auth_service(settings: AuthSettings, store: CredentialStore) -> AuthService:
    """
    Wire the core components from settings.

    Raises:
        ConfigurationError: If the signing or encryption key is missing.
    """
    cipher = SecretCipher(settings.encryption_key)
    issuer = TokenIssuer(
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
        expire_hours=settings.token_expire_hours,
    )
    return AuthService(
        authenticator=PasswordAuthenticator(store, rounds=settings.bcrypt_rounds),
        mfa_manager=MFAStateManager(
            store,
            cipher,
            issuer=settings.totp_issuer,
            window=settings.totp_window,
            backup_code_count=settings.backup_code_count,
        ),
        token_issuer=issuer,
    )
