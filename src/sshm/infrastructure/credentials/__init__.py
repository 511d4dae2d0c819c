"""
Credential storage backends and plaintext migration.
"""

from .migration import (
    MigrationResult,
    MigrationStatus,
    credential_to_migrate,
    migrate_from_plaintext,
    migration_status,
    rollback_migration,
    validate_migration,
)
from .store import (
    CredentialStore,
    EncryptedFileStore,
    MemoryStore,
    migration_credential_id,
    open_credential_store,
    password_credential_id,
)

__all__ = [
    "MigrationResult",
    "MigrationStatus",
    "credential_to_migrate",
    "migrate_from_plaintext",
    "migration_status",
    "rollback_migration",
    "validate_migration",
    "CredentialStore",
    "EncryptedFileStore",
    "MemoryStore",
    "migration_credential_id",
    "open_credential_store",
    "password_credential_id",
]
