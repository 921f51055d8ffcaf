"""Credential resolution for the API client.

A credential is resolved once per operation from, in order:
1. An explicit principal/secret pair supplied by the caller
2. Environment variables (TECHACCESS_EMAIL, TECHACCESS_API_KEY) or /run/secrets
3. The local encrypted credential store
"""
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

from techaccess.config.settings import ClientConfig
from .api.exceptions import AuthResolutionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Credential:
    """API principal, API key and host for one operation."""
    principal: str
    secret: str = field(repr=False)
    host: str

    def __post_init__(self) -> None:
        if not self.principal or not self.secret:
            raise AuthResolutionError("Credential requires both a principal and an API key")
        if not self.host:
            raise AuthResolutionError("Credential requires a host")


def _load_secret_from_file(secret_name: str, env_var: str | None = None) -> str | None:
    """
    Load secret from /run/secrets (Docker secrets pattern).

    Priority:
    1. /run/secrets/{secret_name}
    2. Environment variable (fallback)

    Returns:
        Secret value or None if not found
    """
    secret_file = Path("/run/secrets") / secret_name

    if secret_file.exists() and secret_file.is_file():
        try:
            value = secret_file.read_text().strip()
            if value:
                return value
        except OSError as e:
            logger.warning(f"[credentials] Failed to read /run/secrets/{secret_name}: {e}")

    if env_var:
        return os.getenv(env_var)

    return None


class CredentialStore:
    """Principal -> API key mapping persisted encrypted at rest (Fernet).

    The encryption key comes from TECHACCESS_CREDENTIAL_KEY or
    /run/secrets/techaccess_credential_key unless passed explicitly.
    """

    def __init__(self, path: Path, key: Optional[bytes] = None):
        self.path = path
        self._key = key

    @staticmethod
    def generate_key() -> bytes:
        return Fernet.generate_key()

    def _fernet(self) -> Fernet:
        key = self._key
        if key is None:
            raw = _load_secret_from_file("techaccess_credential_key", "TECHACCESS_CREDENTIAL_KEY")
            if not raw:
                raise AuthResolutionError(
                    "No credential store key: set TECHACCESS_CREDENTIAL_KEY or mount techaccess_credential_key"
                )
            key = raw.encode("utf-8")
        try:
            return Fernet(key)
        except ValueError as e:
            raise AuthResolutionError(f"Invalid credential store key: {e}") from e

    def _read(self) -> dict[str, str]:
        if not self.path.exists() or self.path.stat().st_size == 0:
            return {}
        try:
            plaintext = self._fernet().decrypt(self.path.read_bytes())
        except InvalidToken as e:
            raise AuthResolutionError(f"Credential store {self.path} cannot be decrypted with the configured key") from e
        return json.loads(plaintext.decode("utf-8"))

    def _write(self, entries: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(entries, sort_keys=True).encode("utf-8")
        self.path.write_bytes(self._fernet().encrypt(payload))
        self.path.chmod(0o600)

    def principals(self) -> list[str]:
        return sorted(self._read())

    def save(self, principal: str, secret: str) -> None:
        """Store or replace the API key for a principal."""
        if not principal or not secret:
            raise ValueError("Both principal and API key are required")
        entries = self._read()
        entries[principal] = secret
        self._write(entries)
        logger.info(f"[credentials] Stored API key for '{principal}'")

    def remove(self, principal: str) -> bool:
        """Forget a principal. Returns True if it was stored."""
        entries = self._read()
        if principal not in entries:
            return False
        del entries[principal]
        self._write(entries)
        logger.info(f"[credentials] Removed API key for '{principal}'")
        return True

    def load(self, principal: Optional[str] = None) -> Optional[tuple[str, str]]:
        """Return (principal, secret) or None.

        Without a principal, the store must hold exactly one entry.
        """
        entries = self._read()
        if principal is not None:
            secret = entries.get(principal)
            return (principal, secret) if secret else None
        if len(entries) == 1:
            return next(iter(entries.items()))
        if len(entries) > 1:
            raise AuthResolutionError(
                f"Credential store holds {len(entries)} principals; specify which one to use"
            )
        return None


def resolve_credential(
    config: ClientConfig,
    principal: Optional[str] = None,
    secret: Optional[str] = None,
    store: Optional[CredentialStore] = None,
) -> Credential:
    """Resolve the credential for one operation.

    Args:
        config: Client configuration (provides the host)
        principal: Explicit principal (email)
        secret: Explicit API key
        store: Credential store to fall back to (defaults to config.credential_path)

    Returns:
        Credential

    Raises:
        AuthResolutionError: If no host or no credential is available
    """
    if not config.host:
        raise AuthResolutionError("No host configured; set TECHACCESS_HOST or save one with save_host()")

    if principal and secret:
        return Credential(principal, secret, config.base_url)

    env_principal = principal or os.environ.get("TECHACCESS_EMAIL")
    env_secret = secret or _load_secret_from_file("techaccess_api_key", "TECHACCESS_API_KEY")
    if env_principal and env_secret:
        logger.debug(f"[credentials] Using environment credential for '{env_principal}'")
        return Credential(env_principal, env_secret, config.base_url)

    if store is None and config.credential_path.exists():
        store = CredentialStore(config.credential_path)
    if store is not None:
        found = store.load(env_principal)
        if found:
            logger.debug(f"[credentials] Using stored credential for '{found[0]}'")
            return Credential(found[0], found[1], config.base_url)

    raise AuthResolutionError("No API credential available; supply one or store it with CredentialStore.save()")
