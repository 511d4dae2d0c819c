"""
Migration of plaintext credentials into the credential store.

Targets are immutable, so migration returns updated copies alongside a
per-target result list instead of editing configuration in place.
"""

import logging
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence, Tuple

from sshm.domain import AuthKind, CredentialStoreError, Target, UserCancelled

from .store import CredentialStore, migration_credential_id

logger = logging.getLogger(__name__)

PromptFunc = Callable[[str], str]


@dataclass
class MigrationResult:
    """Outcome of migrating one target's credential."""

    target_name: str
    credential_kind: str
    credential_id: str
    success: bool = False
    error: Optional[str] = None


@dataclass(frozen=True)
class MigrationStatus:
    """Whether a target still holds a credential outside the store."""

    target_name: str
    needs_migration: bool
    credential_kind: str
    store_backed: bool
    credential_ref: Optional[str]


def credential_to_migrate(target: Target) -> Optional[str]:
    """
    Credential kind a target would migrate, or None.

    Password targets migrate their password, passphrase-protected key
    targets their passphrase. Store-backed targets are already done.
    """
    if target.is_store_backed:
        return None
    if target.auth_kind == AuthKind.PASSWORD:
        return "password"
    if target.auth_kind == AuthKind.KEY and target.passphrase_protected:
        return "passphrase"
    return None


def _prompt_text(target_name: str, credential_kind: str) -> str:
    if credential_kind == "password":
        return f"Enter password for {target_name}:"
    if credential_kind == "passphrase":
        return f"Enter passphrase for {target_name} SSH key:"
    return f"Enter credential for {target_name}:"


def migrate_from_plaintext(
    targets: Sequence[Target],
    store: CredentialStore,
    prompt: PromptFunc,
) -> Tuple[List[Target], List[MigrationResult]]:
    """
    Move plaintext credentials into the store.

    A credential already present under the migration id is adopted without
    prompting. A failed store write is recorded and migration continues; a
    failed prompt aborts the whole migration.

    Args:
        targets: Targets to migrate
        store: Destination credential store
        prompt: Asks the user for each missing secret

    Returns:
        The (possibly updated) targets in input order, and one result per
        target that needed migration

    Raises:
        UserCancelled: If the prompt fails for any target
    """
    migrated: List[Target] = []
    results: List[MigrationResult] = []

    for target in targets:
        credential_kind = credential_to_migrate(target)
        if credential_kind is None:
            migrated.append(target)
            continue

        credential_id = migration_credential_id(target.name, credential_kind)
        result = MigrationResult(target.name, credential_kind, credential_id)
        results.append(result)

        try:
            store.retrieve(credential_id)
        except CredentialStoreError:
            pass
        else:
            logger.info("Credential for %s already in store, adopting %s", target.name, credential_id)
            result.success = True
            migrated.append(target.with_credential_ref(credential_id))
            continue

        try:
            secret = prompt(_prompt_text(target.name, credential_kind))
        except Exception as e:
            result.error = f"failed to get credential from user: {e}"
            raise UserCancelled(f"migration aborted at {target.name}: {e}") from e

        try:
            store.store(credential_id, secret)
        except CredentialStoreError as e:
            logger.warning("Failed to store credential for %s: %s", target.name, e)
            result.error = f"failed to store credential: {e}"
            migrated.append(target)
            continue

        result.success = True
        migrated.append(target.with_credential_ref(credential_id))
        logger.info("Migrated %s for %s into the credential store", credential_kind, target.name)

    return migrated, results


def validate_migration(store: CredentialStore, results: Sequence[MigrationResult]) -> None:
    """
    Check every successful migration is readable from the store.

    Raises:
        CredentialStoreError: Naming the first target whose credential is missing
    """
    for result in results:
        if not result.success:
            continue
        try:
            store.retrieve(result.credential_id)
        except CredentialStoreError as e:
            raise CredentialStoreError(
                f"validation failed for {result.target_name}: credential not found in store"
            ) from e


def rollback_migration(
    targets: Sequence[Target],
    store: CredentialStore,
    results: Sequence[MigrationResult],
) -> List[Target]:
    """
    Undo a migration: delete migrated secrets and drop the store references.

    Every result is rolled back even if some deletes fail; the failures are
    then reported together.

    Raises:
        CredentialStoreError: If any delete failed
    """
    rolled_back = {result.target_name for result in results if result.success}
    errors: List[str] = []

    for result in results:
        if not result.success:
            continue
        try:
            store.delete(result.credential_id)
        except CredentialStoreError as e:
            errors.append(f"{result.credential_id}: {e}")

    reverted = [
        target.without_credential_ref() if target.name in rolled_back else target
        for target in targets
    ]

    if errors:
        raise CredentialStoreError(f"rollback encountered {len(errors)} errors: {'; '.join(errors)}")
    return reverted


def migration_status(targets: Sequence[Target]) -> List[MigrationStatus]:
    """Report, per target, whether a credential still needs migrating."""
    status = []
    for target in targets:
        credential_kind = credential_to_migrate(target)
        status.append(
            MigrationStatus(
                target_name=target.name,
                needs_migration=credential_kind is not None,
                credential_kind=credential_kind or "",
                store_backed=target.is_store_backed,
                credential_ref=target.credential_ref,
            )
        )
    return status
