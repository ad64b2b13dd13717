"""
VIGIL - Credential Authentication and TOTP Multi-Factor Service

This package provides account registration, password login, signed session
tokens, and per-account TOTP second factors with encrypted secrets and
one-time backup codes.
"""

__version__ = "0.1.0"
__author__ = "VIGIL Team"
