"""
Credential resolution.

Turns a Target into the ordered list of auth methods to probe with,
consulting the credential store first and the interactive prompt second.
"""

import logging
from typing import List, Optional

from sshm.domain import (
    AgentUnavailable,
    AuthKind,
    ConfigurationError,
    CredentialError,
    CredentialStoreError,
    SshmError,
    Target,
    UserCancelled,
)
from sshm.infrastructure.credentials import CredentialStore
from sshm.infrastructure.ssh import AuthMethod, SSHClientFactory

from .prompt import PromptFunc

logger = logging.getLogger(__name__)


class CredentialResolver:
    """
    Resolves the auth methods for a target.

    Args:
        store: Credential backend, or None when none is configured
        ssh: Factory used to build auth methods
        prompt: Interactive secret prompt, or None for non-interactive use
    """

    def __init__(
        self,
        store: Optional[CredentialStore],
        ssh: SSHClientFactory,
        prompt: Optional[PromptFunc] = None,
    ):
        self.store = store
        self.ssh = ssh
        self.prompt = prompt

    def resolve(self, target: Target) -> List[AuthMethod]:
        """
        Ordered auth methods for ``target``: the primary method, then the
        ssh agent as a fallback for key targets when one is reachable.

        Raises:
            ConfigurationError: Unsupported auth kind or missing key path
            CredentialError: No secret from the store and no prompt to ask
            UserCancelled: The prompt was aborted
        """
        methods = [self.primary_method(target)]

        if target.auth_kind == AuthKind.KEY:
            try:
                methods.append(self.ssh.agent_auth_method())
            except AgentUnavailable as e:
                logger.debug("No agent fallback for %s: %s", target.name, e)

        return methods

    def primary_method(self, target: Target) -> AuthMethod:
        if target.auth_kind == AuthKind.PASSWORD:
            return self._password_method(target)
        if target.auth_kind == AuthKind.KEY:
            return self._key_method(target)
        if target.auth_kind == AuthKind.AGENT:
            try:
                return self.ssh.agent_auth_method()
            except AgentUnavailable as e:
                raise CredentialError(f"ssh agent unavailable for {target.name}: {e.message}", cause=e) from e
        raise ConfigurationError(f"unsupported auth type: {target.auth_kind}")

    def _password_method(self, target: Target) -> AuthMethod:
        password = self._secret_from_store_or_prompt(
            target,
            prompt_text=f"Enter password for {target.name}:",
            fallback_text=f"Enter password for {target.name} (credential store unavailable):",
        )
        return self.ssh.build_auth_method(AuthKind.PASSWORD, secret=password)

    def _key_method(self, target: Target) -> AuthMethod:
        if not (target.key_path or "").strip():
            raise ConfigurationError(f"target {target.name}: key path is required for key authentication")

        passphrase = None
        if target.passphrase_protected:
            if not self._store_backed(target) and self.prompt is None:
                # The handshake reports a missing passphrase itself
                return self.ssh.build_auth_method(AuthKind.KEY, key_path=target.key_path)
            passphrase = self._secret_from_store_or_prompt(
                target,
                prompt_text=f"Enter passphrase for {target.name} SSH key:",
                fallback_text=f"Enter passphrase for {target.name} SSH key (credential store unavailable):",
            )
        return self.ssh.build_auth_method(AuthKind.KEY, secret=passphrase, key_path=target.key_path)

    def _store_backed(self, target: Target) -> bool:
        return target.is_store_backed and self.store is not None

    def _secret_from_store_or_prompt(self, target: Target, prompt_text: str, fallback_text: str) -> str:
        if self._store_backed(target):
            try:
                return self.store.retrieve(target.credential_ref)
            except CredentialStoreError as e:
                logger.warning("Credential store lookup for %s failed: %s", target.name, e)
                if self.prompt is None:
                    raise CredentialError(
                        f"credential store lookup for {target.name} failed and no prompt is available",
                        cause=e,
                    ) from e
                return self._ask(fallback_text)

        if self.prompt is None:
            raise CredentialError(f"no stored credential for {target.name} and no prompt is available")
        return self._ask(prompt_text)

    def _ask(self, text: str) -> str:
        try:
            return self.prompt(text)
        except SshmError:
            raise
        except Exception as e:
            raise UserCancelled(f"failed to get secret from user: {e}", cause=e) from e
