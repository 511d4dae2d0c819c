"""
Tests for plaintext credential migration.
"""

import pytest

from sshm.domain import AuthKind, CredentialStoreError, UserCancelled
from sshm.infrastructure.credentials import (
    MemoryStore,
    credential_to_migrate,
    migrate_from_plaintext,
    migration_status,
    rollback_migration,
    validate_migration,
)

from conftest import ScriptedPrompt, make_target


class ReadOnlyStore(MemoryStore):
    def store(self, credential_id, secret):
        raise CredentialStoreError("store is read-only")


class TestCredentialToMigrate:
    """Which targets need migration."""

    def test_kinds(self):
        assert credential_to_migrate(make_target(auth_kind=AuthKind.PASSWORD, key_path=None)) == "password"
        assert credential_to_migrate(make_target(passphrase_protected=True)) == "passphrase"
        assert credential_to_migrate(make_target()) is None
        assert credential_to_migrate(make_target(auth_kind=AuthKind.AGENT, key_path=None)) is None

    def test_store_backed_is_done(self):
        target = make_target(auth_kind=AuthKind.PASSWORD, key_path=None, credential_ref="password-db1")

        assert credential_to_migrate(target) is None


class TestMigrateFromPlaintext:
    """Test cases for migrate_from_plaintext."""

    def setup_method(self):
        self.store = MemoryStore()
        self.targets = [
            make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None, password="plain"),
            make_target(name="db", passphrase_protected=True),
            make_target(name="plain-key"),
        ]

    def test_migrates_and_updates_targets(self):
        prompt = ScriptedPrompt("web-pw", "db-pp")

        targets, results = migrate_from_plaintext(self.targets, self.store, prompt)

        assert [r.credential_id for r in results] == ["web_password", "db_passphrase"]
        assert all(r.success for r in results)
        assert self.store.retrieve("web_password") == "web-pw"
        assert self.store.retrieve("db_passphrase") == "db-pp"
        assert targets[0].credential_ref == "web_password"
        assert targets[0].password is None
        assert targets[1].credential_ref == "db_passphrase"
        assert targets[2] == self.targets[2]
        assert prompt.asked == ["Enter password for web:", "Enter passphrase for db SSH key:"]

    def test_existing_credential_is_adopted(self):
        self.store.store("web_password", "already")
        prompt = ScriptedPrompt("db-pp")

        targets, results = migrate_from_plaintext(self.targets, self.store, prompt)

        assert targets[0].credential_ref == "web_password"
        assert self.store.retrieve("web_password") == "already"
        assert prompt.asked == ["Enter passphrase for db SSH key:"]

    def test_prompt_failure_aborts(self):
        with pytest.raises(UserCancelled):
            migrate_from_plaintext(self.targets, self.store, ScriptedPrompt(EOFError()))

    def test_store_failure_is_recorded(self):
        targets, results = migrate_from_plaintext(self.targets, ReadOnlyStore(), ScriptedPrompt())

        assert not any(r.success for r in results)
        assert all("read-only" in r.error for r in results)
        assert targets == self.targets


class TestValidateAndRollback:
    """Post-migration checks."""

    def setup_method(self):
        self.store = MemoryStore()
        self.original = [make_target(name="web", auth_kind=AuthKind.PASSWORD, key_path=None)]
        self.migrated, self.results = migrate_from_plaintext(self.original, self.store, ScriptedPrompt("pw"))

    def test_validate_passes(self):
        validate_migration(self.store, self.results)

    def test_validate_detects_missing(self):
        self.store.delete("web_password")

        with pytest.raises(CredentialStoreError) as exc_info:
            validate_migration(self.store, self.results)
        assert "web" in str(exc_info.value)

    def test_rollback(self):
        reverted = rollback_migration(self.migrated, self.store, self.results)

        assert reverted[0].credential_ref is None
        assert self.store.list() == []

    def test_status(self):
        before = migration_status(self.original)
        after = migration_status(self.migrated)

        assert before[0].needs_migration
        assert before[0].credential_kind == "password"
        assert not after[0].needs_migration
        assert after[0].store_backed
        assert after[0].credential_ref == "web_password"
