"""
VIGIL REST API.

FastAPI-based REST API exposing registration, login and TOTP management.
"""
from .main import app, create_app

__all__ = ["app", "create_app"]
