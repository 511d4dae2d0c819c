"""
Password management for configuration tooling.

Keeps target passwords in the credential store under ``password-<name>``
and hands back updated targets; callers persist those targets themselves.
"""

import logging

from sshm.domain import AuthKind, ConfigurationError, CredentialError, CredentialStoreError, Target
from sshm.infrastructure.credentials import CredentialStore, password_credential_id

logger = logging.getLogger(__name__)


class PasswordManager:
    """Stores, reads and removes target passwords."""

    def __init__(self, store: CredentialStore):
        self.store = store

    @staticmethod
    def _require_password_target(target: Target) -> None:
        if target.auth_kind != AuthKind.PASSWORD:
            raise ConfigurationError(f"target {target.name} is not configured for password authentication")

    def store_password(self, target: Target, password: str) -> Target:
        """
        Store ``password`` for ``target``.

        Returns:
            The target pointing at the stored credential, plaintext cleared

        Raises:
            ConfigurationError: If the target does not use password auth
            CredentialStoreError: If the store write fails
        """
        self._require_password_target(target)
        credential_id = password_credential_id(target.name)
        self.store.store(credential_id, password)
        logger.info("Stored password for %s in %s credential store", target.name, self.store.service_name)
        return target.with_credential_ref(credential_id)

    def retrieve_password(self, target: Target) -> str:
        """
        Password for ``target``: the store first, a legacy plaintext second.

        Raises:
            CredentialError: If neither holds a password
        """
        self._require_password_target(target)
        if target.is_store_backed:
            try:
                return self.store.retrieve(target.credential_ref)
            except CredentialStoreError as e:
                raise CredentialError(f"failed to retrieve password for {target.name}: {e.message}", cause=e) from e

        password = target.get_password()
        if password:
            return password
        raise CredentialError(f"no password found for {target.name}")

    def has_password(self, target: Target) -> bool:
        if target.auth_kind != AuthKind.PASSWORD:
            return False
        if target.is_store_backed:
            try:
                self.store.retrieve(target.credential_ref)
            except CredentialStoreError:
                return False
            return True
        return bool(target.get_password())

    def update_password(self, target: Target, password: str) -> Target:
        return self.store_password(target, password)

    def delete_password(self, target: Target) -> Target:
        """Remove the stored password and the target's reference to it."""
        self._require_password_target(target)
        if target.is_store_backed:
            self.store.delete(target.credential_ref)
            logger.info("Deleted stored password for %s", target.name)
        return target.without_credential_ref()

    def migrate_to_store(self, target: Target) -> Target:
        """
        Move a legacy plaintext password into the store.

        Already store-backed targets are returned unchanged.

        Raises:
            CredentialError: If the target has no plaintext password to move
        """
        self._require_password_target(target)
        if target.is_store_backed:
            return target
        password = target.get_password()
        if not password:
            raise CredentialError(f"no password to migrate for {target.name}")
        return self.store_password(target, password)

    def is_available(self) -> bool:
        return self.store.available()

    @property
    def service_name(self) -> str:
        return self.store.service_name
