"""
Authentication Endpoints.

Provides user registration and login with optional TOTP second factor.
"""
import logging

from fastapi import APIRouter, Depends, status

from ..models import (
    UserRegister,
    RegisterResponse,
    UserLogin,
    LoginResponse,
    UserSummary,
    ErrorResponse,
)
from ..deps import get_auth_service
from ...auth.service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/auth", tags=["Authentication"])


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid input"},
        409: {"model": ErrorResponse, "description": "Email already exists"},
    },
)
async def register(
    user_data: UserRegister,
    service: AuthService = Depends(get_auth_service),
):
    """
    Register a new user account.

    Log in afterwards to obtain an access token.
    """
    user_id = service.register(user_data.email, user_data.password)
    return RegisterResponse(user_id=user_id)


@router.post(
    "/login",
    response_model=LoginResponse,
    responses={
        401: {"model": ErrorResponse, "description": "Invalid credentials or MFA code"},
    },
)
async def login(
    credentials: UserLogin,
    service: AuthService = Depends(get_auth_service),
):
    """
    Authenticate user and return access token.

    If MFA is enabled, provide either:
    - totp_code: 6-digit code from authenticator app
    - backup_code: One-time recovery code

    Without a code the response has `requires_totp: true` and no token.
    Backup codes are consumed on use and cannot be reused.
    """
    result = service.login(
        credentials.email,
        credentials.password,
        totp_code=credentials.totp_code,
        backup_code=credentials.backup_code,
    )

    if result.mfa_required:
        return LoginResponse(
            success=False,
            requires_totp=True,
            message="Please enter your authenticator code",
            totp_enabled=True,
        )

    return LoginResponse(
        success=True,
        access_token=result.token.access_token,
        token_type=result.token.token_type,
        expires_in=result.token.expires_in,
        user=UserSummary(id=result.account_id, email=result.email),
        totp_enabled=result.totp_enabled,
    )
