"""
Tests for the SQL credential store, run against in-memory SQLite.
"""
from datetime import datetime, timezone

import pytest

from src.auth.errors import DuplicateAccountError
from src.auth.models import Account, MFASettings
from src.auth.passwords import PasswordAuthenticator
from src.database.auth_db import AuthDB


@pytest.fixture
def auth_db():
    db = AuthDB("sqlite://")
    db.init_schema()
    return db


@pytest.fixture
def account(auth_db):
    account = Account(
        account_id="550e8400-e29b-41d4-a716-446655440000",
        email="alice@example.com",
        password_hash="$2b$04$hash",
        created_at=datetime(2024, 1, 1, tzinfo=timezone.utc),
    )
    auth_db.put_account(account)
    return account


class TestAccounts:

    def test_lookup_by_email_and_id(self, auth_db, account):
        by_email = auth_db.get_account_by_email("Alice@Example.com")
        by_id = auth_db.get_account_by_id(account.account_id)

        assert by_email == by_id
        assert by_email.password_hash == account.password_hash
        assert by_email.created_at == account.created_at

    def test_missing(self, auth_db):
        assert auth_db.get_account_by_email("nobody@example.com") is None
        assert auth_db.get_account_by_id("nope") is None

    def test_duplicate_email(self, auth_db, account):
        with pytest.raises(DuplicateAccountError):
            auth_db.put_account(Account(
                account_id="another-id",
                email="ALICE@example.com",
                password_hash="x",
            ))

    def test_init_schema_is_idempotent(self, auth_db, account):
        auth_db.init_schema()
        assert auth_db.get_account_by_id(account.account_id) is not None


class TestMFASettings:

    def test_round_trip(self, auth_db, account):
        settings = MFASettings(
            secret_envelope="00" * 16 + ":" + "11" * 32,
            enabled=True,
            verified=True,
            backup_code_hashes=["a" * 64, "b" * 64],
            failed_attempts=2,
        )
        auth_db.put_mfa_settings(account.account_id, settings)

        loaded = auth_db.get_mfa_settings(account.account_id)
        assert loaded.secret_envelope == settings.secret_envelope
        assert loaded.enabled is True
        assert loaded.verified is True
        assert loaded.backup_code_hashes == settings.backup_code_hashes
        assert loaded.failed_attempts == 2
        assert loaded.locked_until is None
        assert loaded.created_at == settings.created_at

    def test_put_replaces(self, auth_db, account):
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="first"))
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="second"))

        assert auth_db.get_mfa_settings(account.account_id).secret_envelope == "second"

    def test_delete(self, auth_db, account):
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="x"))
        auth_db.delete_mfa_settings(account.account_id)
        auth_db.delete_mfa_settings(account.account_id)

        assert auth_db.get_mfa_settings(account.account_id) is None


class TestUpdateMFASettings:

    def test_creates_missing_record(self, auth_db, account):
        stored = auth_db.update_mfa_settings(
            account.account_id,
            lambda current: MFASettings(secret_envelope="created") if current is None else current,
        )

        assert stored.secret_envelope == "created"
        assert auth_db.get_mfa_settings(account.account_id).secret_envelope == "created"

    def test_modifies_existing_record(self, auth_db, account):
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="x"))

        def bump(current):
            current.failed_attempts += 1
            return current

        auth_db.update_mfa_settings(account.account_id, bump)
        auth_db.update_mfa_settings(account.account_id, bump)

        assert auth_db.get_mfa_settings(account.account_id).failed_attempts == 2

    def test_none_leaves_record_unchanged(self, auth_db, account):
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="kept"))

        stored = auth_db.update_mfa_settings(account.account_id, lambda current: None)

        assert stored.secret_envelope == "kept"

    def test_exception_rolls_back(self, auth_db, account):
        auth_db.put_mfa_settings(account.account_id, MFASettings(secret_envelope="kept"))

        def fail(current):
            raise RuntimeError("abort")

        with pytest.raises(RuntimeError):
            auth_db.update_mfa_settings(account.account_id, fail)
        assert auth_db.get_mfa_settings(account.account_id).secret_envelope == "kept"

    def test_file_database_shared_between_handles(self, tmp_path):
        url = f"sqlite:///{tmp_path / 'shared.db'}"
        first, second = AuthDB(url), AuthDB(url)
        first.init_schema()

        first.put_mfa_settings("some-account", MFASettings(secret_envelope="from-first"))
        assert second.get_mfa_settings("some-account").secret_envelope == "from-first"

        first.engine.dispose()
        second.engine.dispose()


class TestWithAuthenticator:

    def test_register_and_authenticate(self, auth_db):
        authenticator = PasswordAuthenticator(auth_db, rounds=4)
        account_id = authenticator.register("bob@example.com", "pw123456")

        account = authenticator.authenticate("bob@example.com", "pw123456")
        assert account.account_id == account_id
