"""
User Profile Endpoints.
"""
from fastapi import APIRouter, Depends

from ..models import UserResponse
from ..deps import get_auth_service, get_current_claims
from ...auth.models import TokenClaims
from ...auth.service import AuthService

router = APIRouter(prefix="/user", tags=["User"])


@router.get("/me", response_model=UserResponse)
async def get_current_user_profile(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
):
    """
    Get current authenticated user's profile.
    """
    profile = service.profile(claims)

    return UserResponse(
        id=profile.account_id,
        email=profile.email,
        totp_enabled=profile.totp_enabled,
        totp_verified=profile.totp_verified,
        created_at=profile.created_at,
    )
