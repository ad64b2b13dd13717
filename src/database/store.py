"""
Credential store interface.

The authentication core reads and writes accounts and MFA settings only
through this interface. Implementations must provide read-your-writes
consistency per key; no operation spans more than one account.
"""
import copy
import logging
import threading
from abc import ABC, abstractmethod
from typing import Callable, Dict, Optional

from ..auth.errors import DuplicateAccountError
from ..auth.models import Account, MFASettings

logger = logging.getLogger(__name__)

# Receives the current record (or None) and returns the record to store, or
# None to leave it unchanged. Raising aborts the update.
SettingsUpdate = Callable[[Optional[MFASettings]], Optional[MFASettings]]


def normalize_email(email: str) -> str:
    return email.strip().lower()


class CredentialStore(ABC):
    """Accounts keyed by email and id, MFA settings keyed by account id."""

    @abstractmethod
    def get_account_by_email(self, email: str) -> Optional[Account]:
        ...

    @abstractmethod
    def get_account_by_id(self, account_id: str) -> Optional[Account]:
        ...

    @abstractmethod
    def put_account(self, account: Account) -> None:
        """
        Persist a new account.

        Raises:
            DuplicateAccountError: If the email is already registered.
        """

    @abstractmethod
    def get_mfa_settings(self, account_id: str) -> Optional[MFASettings]:
        ...

    @abstractmethod
    def put_mfa_settings(self, account_id: str, settings: MFASettings) -> None:
        """Create or replace the settings record for an account."""

    @abstractmethod
    def update_mfa_settings(self, account_id: str, fn: SettingsUpdate) -> Optional[MFASettings]:
        """
        Atomic read-modify-write of one account's settings record.

        `fn` runs while no other update, put or delete for the same account
        can interleave, including from other processes sharing the store.

        Returns:
            The record as stored after the update.
        """

    @abstractmethod
    def delete_mfa_settings(self, account_id: str) -> None:
        """Remove the settings record. A missing record is not an error."""


class InMemoryCredentialStore(CredentialStore):
    """
    Process-local store for development and tests.

    Returns copies so callers cannot mutate stored records in place.
    """

    def __init__(self):
        self._lock = threading.RLock()
        self._accounts_by_email: Dict[str, Account] = {}
        self._email_by_id: Dict[str, str] = {}
        self._mfa_settings: Dict[str, MFASettings] = {}

    def get_account_by_email(self, email: str) -> Optional[Account]:
        with self._lock:
            account = self._accounts_by_email.get(normalize_email(email))
            return copy.deepcopy(account)

    def get_account_by_id(self, account_id: str) -> Optional[Account]:
        with self._lock:
            email = self._email_by_id.get(account_id)
            if email is None:
                return None
            return copy.deepcopy(self._accounts_by_email[email])

    def put_account(self, account: Account) -> None:
        email = normalize_email(account.email)
        with self._lock:
            if email in self._accounts_by_email:
                raise DuplicateAccountError()
            if account.account_id in self._email_by_id:
                raise ValueError(f"Account id {account.account_id} already assigned")
            stored = copy.deepcopy(account)
            stored.email = email
            self._accounts_by_email[email] = stored
            self._email_by_id[account.account_id] = email

    def get_mfa_settings(self, account_id: str) -> Optional[MFASettings]:
        with self._lock:
            return copy.deepcopy(self._mfa_settings.get(account_id))

    def put_mfa_settings(self, account_id: str, settings: MFASettings) -> None:
        with self._lock:
            self._mfa_settings[account_id] = copy.deepcopy(settings)

    def update_mfa_settings(self, account_id: str, fn: SettingsUpdate) -> Optional[MFASettings]:
        with self._lock:
            current = copy.deepcopy(self._mfa_settings.get(account_id))
            updated = fn(current)
            if updated is None:
                return copy.deepcopy(self._mfa_settings.get(account_id))
            self._mfa_settings[account_id] = copy.deepcopy(updated)
            return copy.deepcopy(updated)

    def delete_mfa_settings(self, account_id: str) -> None:
        with self._lock:
            self._mfa_settings.pop(account_id, None)
