"""
Tests for the password manager.
"""

import pytest

from sshm.application.password_manager import PasswordManager
from sshm.domain import AuthKind, ConfigurationError, CredentialError
from sshm.infrastructure.credentials import MemoryStore

from conftest import make_target


class TestPasswordManager:
    """Test cases for PasswordManager."""

    def setup_method(self):
        self.store = MemoryStore()
        self.manager = PasswordManager(self.store)
        self.target = make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None)

    def test_store_password(self):
        updated = self.manager.store_password(self.target, "pw")

        assert updated.credential_ref == "password-web"
        assert self.store.retrieve("password-web") == "pw"
        assert self.manager.retrieve_password(updated) == "pw"
        assert self.manager.has_password(updated)

    def test_store_clears_plaintext(self):
        target = make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None, password="old")

        updated = self.manager.store_password(target, "new")

        assert updated.password is None

    def test_rejects_non_password_targets(self):
        with pytest.raises(ConfigurationError):
            self.manager.store_password(make_target(), "pw")
        assert not self.manager.has_password(make_target())

    def test_legacy_plaintext_fallback(self):
        target = make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None, password="legacy")

        assert self.manager.retrieve_password(target) == "legacy"
        assert self.manager.has_password(target)

    def test_no_password_anywhere(self):
        with pytest.raises(CredentialError):
            self.manager.retrieve_password(self.target)
        assert not self.manager.has_password(self.target)

    def test_missing_store_entry(self):
        target = self.target.with_credential_ref("password-web")

        with pytest.raises(CredentialError):
            self.manager.retrieve_password(target)

    def test_update_password(self):
        updated = self.manager.store_password(self.target, "one")

        updated = self.manager.update_password(updated, "two")

        assert self.manager.retrieve_password(updated) == "two"

    def test_delete_password(self):
        updated = self.manager.store_password(self.target, "pw")

        reverted = self.manager.delete_password(updated)

        assert reverted.credential_ref is None
        assert self.store.list() == []

    def test_migrate_to_store(self):
        target = make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None, password="legacy")

        updated = self.manager.migrate_to_store(target)

        assert updated.credential_ref == "password-web"
        assert self.store.retrieve("password-web") == "legacy"

    def test_migrate_without_password(self):
        with pytest.raises(CredentialError):
            self.manager.migrate_to_store(self.target)

    def test_service_info(self):
        assert self.manager.is_available()
        assert self.manager.service_name == "memory"
