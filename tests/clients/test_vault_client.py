"""Tests for VaultClient - AppRole auth and scoped secrets over a mocked hvac client."""

from unittest.mock import MagicMock, patch

import pytest
from hvac.exceptions import Forbidden, InvalidPath

import clients.vault_client as vault_module
from clients.vault_client import VaultClient, get_database_url, get_telegram_bot_token


@pytest.fixture
def vault_env(monkeypatch):
    monkeypatch.setenv("VAULT_ADDR", "https://vault.test")
    monkeypatch.setenv("VAULT_ROLE_ID", "role")
    monkeypatch.setenv("VAULT_SECRET_ID", "secret")
    monkeypatch.delenv("VAULT_NAMESPACE", raising=False)


@pytest.fixture
def hvac_client(vault_env):
    client = MagicMock()
    client.auth.approle.login.return_value = {"auth": {"client_token": "s.token"}}
    client.is_authenticated.return_value = True
    with patch.object(vault_module.hvac, "Client", return_value=client) as factory:
        client.factory = factory
        yield client


def _secret(client, data):
    client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": data}}


class TestVaultClientInit:
    """Initialization and authentication."""

    def test_missing_vault_addr_raises(self, monkeypatch):
        monkeypatch.delenv("VAULT_ADDR", raising=False)
        with pytest.raises(ValueError, match="VAULT_ADDR"):
            VaultClient()

    def test_missing_approle_credentials_raises(self, vault_env, monkeypatch):
        monkeypatch.delenv("VAULT_SECRET_ID")
        with pytest.raises(ValueError, match="VAULT_ROLE_ID"):
            VaultClient()

    def test_approle_login(self, hvac_client):
        VaultClient()

        hvac_client.auth.approle.login.assert_called_once_with(role_id="role", secret_id="secret")
        assert hvac_client.token == "s.token"
        hvac_client.factory.assert_called_once_with(url="https://vault.test")

    def test_namespace_passed(self, hvac_client, monkeypatch):
        monkeypatch.setenv("VAULT_NAMESPACE", "agency")
        VaultClient()
        hvac_client.factory.assert_called_once_with(url="https://vault.test", namespace="agency")

    def test_failed_login_is_permission_error(self, hvac_client):
        hvac_client.auth.approle.login.side_effect = RuntimeError("invalid role")
        with pytest.raises(PermissionError, match="authentication"):
            VaultClient()


class TestGetSecret:
    """Secret retrieval - paths automatically scoped to realty-crm/."""

    def test_returns_field_value(self, hvac_client):
        _secret(hvac_client, {"url": "postgresql://crm"})

        assert VaultClient().get_secret("database", "url") == "postgresql://crm"
        hvac_client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="realty-crm/database", raise_on_deleted_version=True
        )

    def test_missing_field_lists_available(self, hvac_client):
        _secret(hvac_client, {"url": "x"})
        with pytest.raises(KeyError, match="Available: url"):
            VaultClient().get_secret("database", "password")

    @pytest.mark.parametrize("error", [InvalidPath(), Forbidden()])
    def test_inaccessible_path(self, hvac_client, error):
        hvac_client.secrets.kv.v2.read_secret_version.side_effect = error
        with pytest.raises(PermissionError, match="realty-crm/database"):
            VaultClient().get_secret("database", "url")


class TestConvenienceFunctions:
    """Cached module-level getters."""

    def test_values_are_cached(self, hvac_client):
        _secret(hvac_client, {"url": "postgresql://crm", "bot_token": "123:abc"})

        assert get_database_url() == "postgresql://crm"
        assert get_database_url() == "postgresql://crm"
        assert get_telegram_bot_token() == "123:abc"

        assert hvac_client.factory.call_count == 1
        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 2

    def test_one_read_per_path(self, hvac_client):
        _secret(hvac_client, {"url": "postgresql://crm"})

        get_database_url()
        with pytest.raises(KeyError):
            vault_module._cached_field("database", "password")

        assert hvac_client.secrets.kv.v2.read_secret_version.call_count == 1
