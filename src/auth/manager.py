"""
Per-account second-factor lifecycle.

States: NOT_CONFIGURED -> PENDING_VERIFICATION -> ACTIVE, and back to
NOT_CONFIGURED when the settings record is deleted. Every mutation is a
single `update_mfa_settings` call on the store, so a verify never writes
back over a secret that a concurrent setup has just replaced, even when the
two run in different processes. `AccountLocks` additionally queues callers
within one process before they reach the store.
"""
import logging
import threading
from contextlib import contextmanager
from typing import Dict, List, Optional

from . import mfa
from .cipher import SecretCipher
from .errors import (
    InvalidCodeError,
    MFAAlreadyEnabledError,
    NotSetUpError,
)
from .models import MFASettings, MFASetupResult, MFAState, MFAStatus, utc_now
from ..database.store import CredentialStore

logger = logging.getLogger(__name__)

SETUP_INSTRUCTIONS = {
    "step1": "Install an authenticator app (Google Authenticator, Authy, Aegis) on your phone",
    "step2": "Scan the QR code or enter the manual key",
    "step3": "Enter the 6-digit code from the app to verify setup",
}


class AccountLocks:
    """
    Mutex per account id, kept only while someone holds or waits for it.
    """

    def __init__(self):
        self._guard = threading.Lock()
        # account_id -> [lock, number of holders and waiters]
        self._locks: Dict[str, List] = {}

    def __len__(self) -> int:
        with self._guard:
            return len(self._locks)

    @contextmanager
    def hold(self, account_id: str):
        with self._guard:
            entry = self._locks.get(account_id)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._locks[account_id] = entry
            entry[1] += 1

        try:
            with entry[0]:
                yield
        finally:
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._locks[account_id]


class MFAStateManager:
    """
    Drives TOTP setup, verification and removal for accounts.

    Example usage:
        manager = MFAStateManager(store, SecretCipher(key))
        enrollment = manager.setup(account_id, "alice@example.com")
        manager.verify(account_id, "123456")
        manager.is_second_factor_required(account_id)  # True
    """

    def __init__(
        self,
        store: CredentialStore,
        cipher: SecretCipher,
        issuer: str = mfa.DEFAULT_ISSUER,
        window: int = mfa.DEFAULT_WINDOW,
        backup_code_count: int = 8,
        locks: Optional[AccountLocks] = None,
    ):
        self.store = store
        self.cipher = cipher
        self.issuer = issuer
        self.window = window
        self.backup_code_count = backup_code_count
        self.locks = locks if locks is not None else AccountLocks()

    @staticmethod
    def _state_of(settings: Optional[MFASettings]) -> MFAState:
        if settings is None:
            return MFAState.NOT_CONFIGURED
        if settings.enabled and settings.verified:
            return MFAState.ACTIVE
        return MFAState.PENDING_VERIFICATION

    def state(self, account_id: str) -> MFAState:
        return self._state_of(self.store.get_mfa_settings(account_id))

    def setup(self, account_id: str, label: str) -> MFASetupResult:
        """
        Start (or restart) TOTP enrollment.

        Re-running setup while pending replaces the unconfirmed secret.
        Nothing is written unless every step succeeds.

        Raises:
            MFAAlreadyEnabledError: If MFA is already active for the account.
        """
        generated = mfa.generate_secret(label, issuer=self.issuer)
        envelope = self.cipher.encrypt(generated.secret)
        backup_codes = mfa.generate_backup_codes(self.backup_code_count)
        hashed_codes = mfa.hash_backup_codes(backup_codes)
        qr_code = mfa.generate_qr_code_base64(generated.provisioning_uri)

        def replace(current: Optional[MFASettings]) -> MFASettings:
            if self._state_of(current) == MFAState.ACTIVE:
                raise MFAAlreadyEnabledError()
            return MFASettings(
                secret_envelope=envelope,
                enabled=False,
                verified=False,
                backup_code_hashes=hashed_codes,
                failed_attempts=0,
                locked_until=None,
                created_at=utc_now(),
            )

        with self.locks.hold(account_id):
            self.store.update_mfa_settings(account_id, replace)

        logger.info(f"MFA setup initiated for account {account_id}")

        return MFASetupResult(
            provisioning_uri=generated.provisioning_uri,
            manual_entry_key=generated.secret,
            qr_code=qr_code,
            backup_codes=backup_codes,
            instructions=dict(SETUP_INSTRUCTIONS),
        )

    def verify(self, account_id: str, code: str) -> None:
        """
        Check a TOTP code and activate MFA on success.

        The secret is read and the outcome written back in one store update.

        Raises:
            NotSetUpError: No settings record exists.
            InvalidCodeError: Code rejected.
            DecryptionFailure / InvalidSecretError: Stored secret unusable.
        """
        outcome = {}

        def check(settings: Optional[MFASettings]) -> MFASettings:
            if settings is None:
                raise NotSetUpError()

            secret = self.cipher.decrypt(settings.secret_envelope)
            outcome["valid"] = mfa.verify_totp(secret, code, window=self.window)
            outcome["activated"] = not (settings.enabled and settings.verified)

            if not outcome["valid"]:
                # Recorded only; no lockout is applied
                settings.failed_attempts += 1
            else:
                settings.verified = True
                settings.enabled = True
                settings.failed_attempts = 0
            return settings

        with self.locks.hold(account_id):
            stored = self.store.update_mfa_settings(account_id, check)

        if not outcome["valid"]:
            logger.warning(
                f"TOTP verification failed for account {account_id} "
                f"({stored.failed_attempts} consecutive)"
            )
            raise InvalidCodeError()

        if outcome["activated"]:
            logger.info(f"MFA enabled for account {account_id}")
        else:
            logger.debug(f"TOTP verified for account {account_id}")

    def redeem_backup_code(self, account_id: str, code: str) -> int:
        """
        Consume a backup code in place of a TOTP code.

        Returns:
            Number of backup codes left.

        Raises:
            NotSetUpError: MFA is not active.
            InvalidCodeError: No unused code matches.
        """
        outcome = {}

        def consume(settings: Optional[MFASettings]) -> MFASettings:
            if self._state_of(settings) != MFAState.ACTIVE:
                raise NotSetUpError()

            index = mfa.find_matching_backup_code(code, settings.backup_code_hashes)
            outcome["matched"] = index is not None
            if index is None:
                settings.failed_attempts += 1
            else:
                settings.backup_code_hashes.pop(index)
                settings.failed_attempts = 0
            return settings

        with self.locks.hold(account_id):
            stored = self.store.update_mfa_settings(account_id, consume)

        if not outcome["matched"]:
            logger.warning(f"Backup code rejected for account {account_id}")
            raise InvalidCodeError()

        remaining = len(stored.backup_code_hashes)
        logger.info(f"Backup code used for account {account_id}, {remaining} remaining")
        return remaining

    def status(self, account_id: str) -> MFAStatus:
        settings = self.store.get_mfa_settings(account_id)
        if settings is None:
            return MFAStatus(enabled=False, verified=False, setup_required=True)
        return MFAStatus(
            enabled=settings.enabled,
            verified=settings.verified,
            setup_required=False,
            backup_codes_remaining=len(settings.backup_code_hashes),
        )

    def disable(self, account_id: str) -> None:
        """Delete the settings record whatever the current state."""
        with self.locks.hold(account_id):
            self.store.delete_mfa_settings(account_id)
        logger.info(f"MFA disabled for account {account_id}")

    def is_second_factor_required(self, account_id: str) -> bool:
        return self.state(account_id) == MFAState.ACTIVE
