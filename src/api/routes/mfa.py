"""
MFA Endpoints.

Handles TOTP setup, verification, status and removal for the
authenticated user.
"""
import logging

from fastapi import APIRouter, Depends

from ..models import (
    MFASetupResponse,
    MFAVerifyRequest,
    MFAVerifyResponse,
    MFAStatusResponse,
    MFADisableResponse,
    ErrorResponse,
)
from ..deps import get_auth_service, get_current_claims
from ...auth.models import TokenClaims
from ...auth.service import AuthService

logger = logging.getLogger(__name__)
router = APIRouter(prefix="/mfa/totp", tags=["MFA"])


@router.post(
    "/setup",
    response_model=MFASetupResponse,
    responses={400: {"model": ErrorResponse, "description": "MFA already enabled"}},
)
async def setup_totp(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
):
    """
    Initialize TOTP setup.

    Returns a QR code, the manual entry key and backup codes.
    MFA is not active until verified with /mfa/totp/verify.
    """
    enrollment = service.mfa.setup(claims.account_id, claims.email)

    return MFASetupResponse(
        qr_code=enrollment.qr_code,
        provisioning_uri=enrollment.provisioning_uri,
        manual_entry_key=enrollment.manual_entry_key,
        backup_codes=enrollment.backup_codes,
        instructions=enrollment.instructions,
    )


@router.post(
    "/verify",
    response_model=MFAVerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "TOTP not set up"},
        401: {"model": ErrorResponse, "description": "Invalid code"},
    },
)
async def verify_totp(
    verification: MFAVerifyRequest,
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
):
    """
    Verify a code from the authenticator app and enable MFA.
    """
    service.mfa.verify(claims.account_id, verification.code)

    return MFAVerifyResponse()


@router.get("/status", response_model=MFAStatusResponse)
async def totp_status(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
):
    """
    Get current TOTP status for the authenticated user.
    """
    current = service.mfa.status(claims.account_id)
    return MFAStatusResponse(
        enabled=current.enabled,
        verified=current.verified,
        setup_required=current.setup_required,
        backup_codes_remaining=current.backup_codes_remaining,
    )


@router.post("/disable", response_model=MFADisableResponse)
async def disable_totp(
    claims: TokenClaims = Depends(get_current_claims),
    service: AuthService = Depends(get_auth_service),
):
    """
    Disable TOTP for the authenticated user.

    Removes the secret and backup codes; setup must be repeated to re-enable.
    """
    service.mfa.disable(claims.account_id)
    return MFADisableResponse()
