"""
HashiCorp Vault access for infrastructure secrets.

The CRM needs three secrets at startup: the PostgreSQL URL, the Valkey URL
used by the reminder scanner lock, and the Telegram bot token. All of them
live in KV v2 under the 'realty-crm/' prefix; callers only ever name the
path below it.

Authentication is AppRole, configured from VAULT_* environment variables.
Missing configuration is fatal.
"""

import os
import logging
from typing import Dict

import hvac
from hvac.exceptions import InvalidPath, Unauthorized, Forbidden

logger = logging.getLogger(__name__)

_SECRET_PREFIX = "realty-crm"

# Process-wide client and secrets, keyed by path below the prefix
_vault_client_instance: "VaultClient | None" = None
_secret_cache: Dict[str, Dict[str, str]] = {}


def reset_vault_cache() -> None:
    """Forget the client and every cached secret (tests, credential rotation)."""
    global _vault_client_instance
    _vault_client_instance = None
    _secret_cache.clear()


class VaultClient:
    """AppRole-authenticated reader for secrets under the project prefix."""

    def __init__(
        self,
        vault_addr: str | None = None,
        vault_namespace: str | None = None,
    ):
        self.vault_addr = vault_addr or os.getenv("VAULT_ADDR")
        namespace = vault_namespace or os.getenv("VAULT_NAMESPACE")
        role_id = os.getenv("VAULT_ROLE_ID")
        secret_id = os.getenv("VAULT_SECRET_ID")

        if not self.vault_addr:
            raise ValueError("VAULT_ADDR environment variable is required")
        if not role_id or not secret_id:
            raise ValueError(
                "VAULT_ROLE_ID and VAULT_SECRET_ID environment variables are required"
            )

        client_kwargs = {"url": self.vault_addr}
        if namespace:
            client_kwargs["namespace"] = namespace
        self.client = hvac.Client(**client_kwargs)

        self._login(role_id, secret_id)
        logger.info(f"Vault client ready: {self.vault_addr}")

    def _login(self, role_id: str, secret_id: str) -> None:
        try:
            response = self.client.auth.approle.login(role_id=role_id, secret_id=secret_id)
            self.client.token = response["auth"]["client_token"]
        except Exception as e:
            logger.error(f"AppRole authentication failed: {e}")
            raise PermissionError(f"AppRole authentication failed: {e}") from e

        if not self.client.is_authenticated():
            raise PermissionError("Vault authentication failed")

    def read_secret(self, path: str) -> Dict[str, str]:
        """
        All fields of the KV v2 secret at realty-crm/<path>.

        Raises:
            PermissionError: Path missing or not readable with this role
        """
        full_path = f"{_SECRET_PREFIX}/{path}"
        try:
            response = self.client.secrets.kv.v2.read_secret_version(
                path=full_path, raise_on_deleted_version=True
            )
        except InvalidPath:
            logger.error(f"Secret path not found: {full_path}")
            raise PermissionError(f"Secret path '{full_path}' not found in Vault")
        except (Unauthorized, Forbidden) as e:
            logger.error(f"Access denied to secret {full_path}: {e}")
            raise PermissionError(f"Access denied to secret '{full_path}': {e}")
        return response["data"]["data"]

    def get_secret(self, path: str, field: str) -> str:
        """
        One field of a secret, e.g. get_secret('database', 'url').

        Raises:
            PermissionError: Path missing or not readable
            KeyError: Secret exists but lacks the field
        """
        return _pick(self.read_secret(path), path, field)


def _pick(secret: Dict[str, str], path: str, field: str) -> str:
    if field not in secret:
        raise KeyError(
            f"Field '{field}' not found in secret '{_SECRET_PREFIX}/{path}'. "
            f"Available: {', '.join(secret)}"
        )
    return secret[field]


def _cached_field(path: str, field: str) -> str:
    global _vault_client_instance
    if path not in _secret_cache:
        if _vault_client_instance is None:
            _vault_client_instance = VaultClient()
        _secret_cache[path] = _vault_client_instance.read_secret(path)
    return _pick(_secret_cache[path], path, field)


def get_database_url() -> str:
    """PostgreSQL connection URL."""
    return _cached_field("database", "url")


def get_valkey_url() -> str:
    """Valkey (Redis protocol) URL for the scanner lock."""
    return _cached_field("valkey", "url")


def get_telegram_bot_token() -> str:
    return _cached_field("telegram", "bot_token")
