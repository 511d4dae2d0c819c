"""
Credential stores for SSH passwords and key passphrases.

A store is picked once, when the manager is built, and handed to every
component that needs secrets. Two backends exist:

- ``EncryptedFileStore``: a single Fernet-encrypted vault file whose key is
  derived with PBKDF2 from a master password and a per-directory salt.
- ``MemoryStore``: process-local, for tooling and tests.
"""

import base64
import json
import logging
import secrets
import threading
from pathlib import Path
from typing import Dict, List, Optional, Protocol, runtime_checkable

from cryptography.fernet import Fernet, InvalidToken
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from sshm.domain import CredentialNotFound, CredentialStoreError
from sshm.domain.settings import CredentialStoreSettings

logger = logging.getLogger(__name__)

DEFAULT_NAMESPACE = "sshm"
_AVAILABILITY_PROBE_ID = "availability-test"


def password_credential_id(target_name: str) -> str:
    """Store id for a target's password (``password-<name>``)."""
    return "password-" + target_name


def migration_credential_id(target_name: str, credential_kind: str) -> str:
    """Store id used when migrating a plaintext credential (``<name>_<kind>``)."""
    return target_name + "_" + credential_kind


@runtime_checkable
class CredentialStore(Protocol):
    """Contract every credential backend implements."""

    def store(self, credential_id: str, secret: str) -> None: ...

    def retrieve(self, credential_id: str) -> str: ...

    def delete(self, credential_id: str) -> None: ...

    def list(self) -> List[str]: ...

    def available(self) -> bool: ...

    @property
    def service_name(self) -> str: ...


class _NamespacedStore:
    """Shared key prefixing for backends that keep a flat key space."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace

    def _prefix(self, credential_id: str = "") -> str:
        return f"{self.namespace}:{credential_id}"

    def _strip(self, key: str) -> Optional[str]:
        prefix = self._prefix()
        if not key.startswith(prefix):
            return None
        return key[len(prefix):] or None


class MemoryStore(_NamespacedStore):
    """Credential store held in process memory."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        super().__init__(namespace)
        self._items: Dict[str, str] = {}
        self._lock = threading.Lock()

    @property
    def service_name(self) -> str:
        return "memory"

    def store(self, credential_id: str, secret: str) -> None:
        with self._lock:
            self._items[self._prefix(credential_id)] = secret

    def retrieve(self, credential_id: str) -> str:
        with self._lock:
            try:
                return self._items[self._prefix(credential_id)]
            except KeyError:
                raise CredentialNotFound(f"no credential stored for {credential_id}") from None

    def delete(self, credential_id: str) -> None:
        with self._lock:
            self._items.pop(self._prefix(credential_id), None)

    def list(self) -> List[str]:
        with self._lock:
            keys = [self._strip(key) for key in self._items]
        return sorted(key for key in keys if key)

    def available(self) -> bool:
        return True


class EncryptedFileStore(_NamespacedStore):
    """
    Credential store backed by one encrypted vault file.

    The vault is a JSON object ``{prefixed_id: secret}`` encrypted with
    Fernet. The Fernet key is derived from the master password with
    PBKDF2-HMAC-SHA256 and the salt kept next to the vault.
    """

    SALT_LENGTH = 32
    ITERATIONS = 100000
    KEY_LENGTH = 32
    VAULT_NAME = "vault.enc"
    SALT_NAME = ".salt"

    def __init__(self, directory: Path, master_password: str, namespace: str = DEFAULT_NAMESPACE):
        """
        Initialize the encrypted store.

        Args:
            directory: Directory holding the vault and salt files
            master_password: Password the encryption key is derived from
            namespace: Prefix applied to every stored id
        """
        super().__init__(namespace)
        if not master_password:
            raise CredentialStoreError("master password required for the encrypted credential store")
        self.directory = Path(directory).expanduser()
        self._master_password = master_password
        self._fernet: Optional[Fernet] = None
        self._lock = threading.Lock()

    @property
    def service_name(self) -> str:
        return "file"

    @property
    def vault_path(self) -> Path:
        return self.directory / self.VAULT_NAME

    def _derive_key(self, salt: bytes) -> bytes:
        kdf = PBKDF2HMAC(
            algorithm=hashes.SHA256(),
            length=self.KEY_LENGTH,
            salt=salt,
            iterations=self.ITERATIONS,
        )
        return base64.urlsafe_b64encode(kdf.derive(self._master_password.encode()))

    def _get_or_create_salt(self) -> bytes:
        salt_file = self.directory / self.SALT_NAME
        if salt_file.exists():
            return salt_file.read_bytes()

        salt = secrets.token_bytes(self.SALT_LENGTH)
        self.directory.mkdir(parents=True, exist_ok=True)
        salt_file.write_bytes(salt)
        salt_file.chmod(0o600)
        logger.info("Created new credential store salt in %s", self.directory)
        return salt

    def _get_fernet(self) -> Fernet:
        if self._fernet is None:
            try:
                self._fernet = Fernet(self._derive_key(self._get_or_create_salt()))
            except OSError as e:
                raise CredentialStoreError(f"cannot prepare credential store in {self.directory}: {e}") from e
        return self._fernet

    def _load(self) -> Dict[str, str]:
        if not self.vault_path.exists():
            return {}
        try:
            decrypted = self._get_fernet().decrypt(self.vault_path.read_bytes())
        except InvalidToken as e:
            raise CredentialStoreError("credential vault cannot be decrypted (wrong master password?)") from e
        except OSError as e:
            raise CredentialStoreError(f"failed to read credential vault: {e}") from e
        try:
            return json.loads(decrypted.decode())
        except (UnicodeDecodeError, json.JSONDecodeError) as e:
            raise CredentialStoreError("credential vault is corrupted") from e

    def _save(self, items: Dict[str, str]) -> None:
        payload = self._get_fernet().encrypt(json.dumps(items).encode())
        tmp_path = self.vault_path.with_suffix(".tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(payload)
            tmp_path.chmod(0o600)
            tmp_path.replace(self.vault_path)
        except OSError as e:
            raise CredentialStoreError(f"failed to write credential vault: {e}") from e

    def store(self, credential_id: str, secret: str) -> None:
        with self._lock:
            items = self._load()
            items[self._prefix(credential_id)] = secret
            self._save(items)
        logger.debug("Stored credential %s", credential_id)

    def retrieve(self, credential_id: str) -> str:
        with self._lock:
            items = self._load()
        try:
            return items[self._prefix(credential_id)]
        except KeyError:
            raise CredentialNotFound(f"no credential stored for {credential_id}") from None

    def delete(self, credential_id: str) -> None:
        with self._lock:
            items = self._load()
            if items.pop(self._prefix(credential_id), None) is not None:
                self._save(items)
                logger.debug("Deleted credential %s", credential_id)

    def list(self) -> List[str]:
        with self._lock:
            items = self._load()
        keys = [self._strip(key) for key in items]
        return sorted(key for key in keys if key)

    def available(self) -> bool:
        """Round-trip a throwaway secret through the vault."""
        try:
            self.store(_AVAILABILITY_PROBE_ID, "test")
            self.delete(_AVAILABILITY_PROBE_ID)
        except CredentialStoreError as e:
            logger.debug("Credential store unavailable: %s", e)
            return False
        return True


def open_credential_store(settings: CredentialStoreSettings) -> CredentialStore:
    """
    Build the configured credential backend.

    Raises:
        CredentialStoreError: If the backend cannot be constructed
    """
    if settings.backend == "memory":
        return MemoryStore(settings.namespace)
    if settings.backend == "file":
        return EncryptedFileStore(
            settings.directory,
            settings.master_password.get_secret_value(),  # pylint: disable=no-member
            settings.namespace,
        )
    raise CredentialStoreError(f"unsupported credential backend: {settings.backend}")
