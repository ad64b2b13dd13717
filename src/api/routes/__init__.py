"""
API Routes for VIGIL.
"""
from .auth import router as auth_router
from .mfa import router as mfa_router
from .users import router as users_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "mfa_router",
    "users_router",
    "health_router",
]
