"""
Credential storage for VIGIL.

This package provides:
- store: CredentialStore interface and in-memory adapter
- auth_db: SQL-backed adapter (PostgreSQL, SQLite)
"""
