"""
Pydantic Models for VIGIL API.

Request and response models for all API endpoints.
"""
from datetime import datetime
from typing import Optional, List, Dict
from pydantic import BaseModel, EmailStr, Field, ConfigDict


# ============================================
# Authentication Models
# ============================================

class UserRegister(BaseModel):
    """
    User registration request.

    Creates a new user account with email and password.
    Password must be at least 8 characters.
    """
    email: EmailStr = Field(..., description="Valid email address")
    password: str = Field(..., min_length=8, description="Password (minimum 8 characters)")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "alice@example.com",
                "password": "pw123456"
            }
        }
    )


class RegisterResponse(BaseModel):
    success: bool = True
    message: str = "User registered successfully"
    user_id: str


class UserLogin(BaseModel):
    """
    User login request.

    Authenticate with email and password. If MFA is enabled,
    provide either totp_code or backup_code.
    """
    email: EmailStr = Field(..., description="Registered email address")
    password: str = Field(..., min_length=1, description="Account password")
    totp_code: Optional[str] = Field(None, description="6-digit TOTP code from authenticator app")
    backup_code: Optional[str] = Field(None, description="One-time backup code")

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "email": "alice@example.com",
                "password": "pw123456",
                "totp_code": "123456"
            }
        }
    )


class UserSummary(BaseModel):
    id: str
    email: str


class LoginResponse(BaseModel):
    """
    Login outcome.

    When `requires_totp` is true no token is returned; repeat the request
    with `totp_code` or `backup_code`.
    """
    success: bool
    requires_totp: bool = False
    message: Optional[str] = None
    access_token: Optional[str] = None
    token_type: Optional[str] = None
    expires_in: Optional[int] = Field(None, description="Token expiration in seconds")
    user: Optional[UserSummary] = None
    totp_enabled: bool = False


# ============================================
# MFA Models
# ============================================

class MFASetupResponse(BaseModel):
    """
    MFA setup response.

    Backup codes are shown only here, store them securely.
    """
    success: bool = True
    qr_code: str = Field(..., description="QR code as data:image/png;base64 URL")
    provisioning_uri: str
    manual_entry_key: str
    backup_codes: List[str]
    instructions: Dict[str, str]


class MFAVerifyRequest(BaseModel):
    """MFA verification request."""
    code: str = Field(..., min_length=6, max_length=7)


class MFAVerifyResponse(BaseModel):
    success: bool = True
    message: str = "TOTP verified"


class MFAStatusResponse(BaseModel):
    enabled: bool
    verified: bool
    setup_required: bool
    backup_codes_remaining: int = 0


class MFADisableResponse(BaseModel):
    success: bool = True
    message: str = "TOTP disabled successfully"


class UserResponse(BaseModel):
    """User profile response."""
    id: str
    email: str
    totp_enabled: bool
    totp_verified: bool
    created_at: datetime


# ============================================
# Health & Error Models
# ============================================

class HealthStatus(BaseModel):
    status: str
    version: str
    services: Dict[str, str]
    timestamp: datetime


class ErrorResponse(BaseModel):
    """Standard error response."""
    error: str
    detail: Optional[str] = None
    code: Optional[str] = None
