"""
Bearer session tokens.

Tokens are HS256-signed JWTs carrying the account id and email. They are
stateless: nothing is stored server-side, so a token stays valid until it
expires even if the account's MFA settings change afterwards.
"""
import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from .errors import ConfigurationError, ExpiredTokenError, InvalidTokenError
from .models import Account, IssuedToken, TokenClaims

logger = logging.getLogger(__name__)


class TokenIssuer:
    """Signs and verifies session tokens with a symmetric key."""

    def __init__(self, signing_key: str, algorithm: str = "HS256", expire_hours: int = 24):
        if not signing_key:
            raise ConfigurationError("JWT_SECRET not set")
        self._signing_key = signing_key
        self.algorithm = algorithm
        self.expire_hours = expire_hours

    def issue(self, account: Account, expires_delta: Optional[timedelta] = None) -> IssuedToken:
        """
        Create a signed token for an account.

        Args:
            account: Authenticated account.
            expires_delta: Optional custom lifetime, defaults to configured hours.
        """
        if expires_delta is None:
            expires_delta = timedelta(hours=self.expire_hours)

        now = datetime.now(timezone.utc)
        payload = {
            "sub": account.account_id,
            "id": account.account_id,
            "email": account.email,
            "iat": now,
            "exp": now + expires_delta,
        }
        encoded = jwt.encode(payload, self._signing_key, algorithm=self.algorithm)

        logger.debug(f"Issued token for account {account.account_id}")
        return IssuedToken(
            access_token=encoded,
            expires_in=int(expires_delta.total_seconds()),
        )

    def verify(self, token: str) -> TokenClaims:
        """
        Verify and decode a token.

        Raises:
            ExpiredTokenError: Signature valid but expiry has passed.
            InvalidTokenError: Bad signature, malformed token or missing claims.
        """
        try:
            payload = jwt.decode(
                token,
                self._signing_key,
                algorithms=[self.algorithm],
                options={"require": ["exp", "iat", "sub"]},
            )
        except jwt.ExpiredSignatureError:
            logger.warning("Token validation failed: token expired")
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            logger.warning(f"Token validation failed: {e}")
            raise InvalidTokenError()

        email = payload.get("email")
        if not email:
            raise InvalidTokenError()

        return TokenClaims(
            account_id=payload["sub"],
            email=email,
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
