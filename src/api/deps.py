"""
FastAPI Dependencies for VIGIL API.

Provides:
- Auth service wiring (settings, credential store)
- Bearer token authentication
"""
import logging
from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from ..auth.config import load_settings
from ..auth.errors import TokenError
from ..auth.models import TokenClaims
from ..auth.service import AuthService, build_auth_service
from ..database.store import CredentialStore, InMemoryCredentialStore
from ..database.auth_db import get_auth_db

logger = logging.getLogger(__name__)

# Security scheme
security = HTTPBearer(auto_error=False)


# ============================================
# Service Wiring
# ============================================

_auth_service: Optional[AuthService] = None


def _create_store(database_url: Optional[str]) -> CredentialStore:
    if not database_url:
        logger.warning("DATABASE_URL not set, using in-memory credential store")
        return InMemoryCredentialStore()

    db = get_auth_db(database_url)
    db.init_schema()
    return db


def get_auth_service() -> AuthService:
    """
    Get singleton AuthService built from environment settings.

    Raises:
        ConfigurationError: If required keys are missing.
    """
    global _auth_service
    if _auth_service is None:
        settings = load_settings()
        _auth_service = build_auth_service(settings, _create_store(settings.database_url))
    return _auth_service


# ============================================
# Authentication Dependencies
# ============================================

async def get_current_claims(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    service: AuthService = Depends(get_auth_service),
) -> TokenClaims:
    """
    Validate bearer token and return its claims.

    Raises:
        HTTPException: If token is missing, invalid, or expired.
    """
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Access token required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return service.authenticate_token(credentials.credentials)
    except TokenError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )
