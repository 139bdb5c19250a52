"""Test suite for the Vault client wrapper.

This test suite validates:
- KV v1/v2 path resolution and response unwrapping
- Token renewal outcomes and errors
- Mapping of transport and format failures
"""
from unittest import mock

import pytest
import requests
from hvac.exceptions import Forbidden, VaultError

from vault_template.secrets.domains.errors import AuthError, ConfigError, FormatError, TransportError
from vault_template.secrets.domains.models import KVVersion
from vault_template.secrets.domains.vault_client import VaultClient


@pytest.fixture
def hvac_client():
    """Fixture for a mocked hvac client."""
    return mock.MagicMock()


def make_client(hvac_client, kv_version=KVVersion.V2):
    return VaultClient(
        address="https://vault.example.com:8200",
        token="s.test-token",
        kv_version=kv_version,
        client=hvac_client,
    )


class TestPathResolution:
    """Test suite for KV engine path rewriting."""

    def test_v2_inserts_data_after_mount(self):
        assert KVVersion.V2.resolve_path("secret/foo") == "secret/data/foo"

    def test_v2_only_rewrites_first_boundary(self):
        """Deeper 'secret/' segments must not be rewritten."""
        assert KVVersion.V2.resolve_path("secret/app/secret/db") == "secret/data/app/secret/db"

    def test_v2_works_for_any_mount(self):
        assert KVVersion.V2.resolve_path("kv/team/service") == "kv/data/team/service"

    def test_v2_strips_surrounding_slashes(self):
        assert KVVersion.V2.resolve_path("/secret/foo/") == "secret/data/foo"

    def test_v2_rejects_path_without_sub_path(self):
        with pytest.raises(ConfigError):
            KVVersion.V2.resolve_path("secret")

    @pytest.mark.parametrize("version", [KVVersion.V1, KVVersion.V2])
    @pytest.mark.parametrize("path", ["secret//db", "secret/app//db", "", "/"])
    def test_empty_segments_rejected(self, version, path):
        with pytest.raises(ConfigError):
            version.resolve_path(path)

    def test_v1_leaves_path_unchanged(self):
        assert KVVersion.V1.resolve_path("secret/foo/bar") == "secret/foo/bar"

    @pytest.mark.parametrize("raw,expected", [
        ("1", KVVersion.V1),
        (2, KVVersion.V2),
        ("v2", KVVersion.V2),
    ])
    def test_parse_supported_versions(self, raw, expected):
        assert KVVersion.parse(raw) is expected

    def test_parse_rejects_unknown_version(self):
        with pytest.raises(ConfigError) as exc_info:
            KVVersion.parse("3")
        assert "Unsupported KV engine version" in str(exc_info.value)


class TestFetchSecret:
    """Test suite for fetch_secret."""

    def test_v2_reads_rewritten_path_and_unwraps_twice(self, hvac_client):
        hvac_client.read.return_value = {
            "data": {"data": {"username": "admin"}, "metadata": {"version": 3}}
        }
        client = make_client(hvac_client)

        record = client.fetch_secret("secret/app/db")

        hvac_client.read.assert_called_once_with("secret/data/app/db")
        assert record == {"username": "admin"}

    def test_v1_reads_path_and_unwraps_once(self, hvac_client):
        hvac_client.read.return_value = {"data": {"username": "admin"}, "lease_duration": 0}
        client = make_client(hvac_client, KVVersion.V1)

        record = client.fetch_secret("secret/app/db")

        hvac_client.read.assert_called_once_with("secret/app/db")
        assert record == {"username": "admin"}

    def test_non_string_values_are_rendered_as_json(self, hvac_client):
        hvac_client.read.return_value = {
            "data": {"data": {"port": 5432, "enabled": True, "tags": ["a", "b"]}}
        }
        record = make_client(hvac_client).fetch_secret("secret/app")

        assert record == {"port": "5432", "enabled": "true", "tags": '["a","b"]'}

    def test_multiline_value_kept_verbatim(self, hvac_client):
        pem = "-----BEGIN CERTIFICATE-----\nMIIB\n-----END CERTIFICATE-----"
        hvac_client.read.return_value = {"data": {"data": {"cert": pem}}}

        record = make_client(hvac_client).fetch_secret("secret/tls")

        assert record["cert"] == pem

    def test_connection_error_raises_transport_error(self, hvac_client):
        hvac_client.read.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportError) as exc_info:
            make_client(hvac_client).fetch_secret("secret/app")

        assert exc_info.value.path == "secret/app"

    def test_timeout_raises_transport_error(self, hvac_client):
        hvac_client.read.side_effect = requests.exceptions.Timeout("timed out")

        with pytest.raises(TransportError):
            make_client(hvac_client).fetch_secret("secret/app")

    def test_store_error_raises_transport_error_with_errors(self, hvac_client):
        hvac_client.read.side_effect = Forbidden("permission denied", errors=["permission denied"])

        with pytest.raises(TransportError) as exc_info:
            make_client(hvac_client).fetch_secret("secret/app")

        assert "permission denied" in str(exc_info.value)

    def test_non_json_response_raises_format_error(self, hvac_client):
        hvac_client.read.return_value = mock.Mock(spec=requests.Response)

        with pytest.raises(FormatError):
            make_client(hvac_client).fetch_secret("secret/app")

    def test_undecodable_body_raises_format_error(self, hvac_client):
        hvac_client.read.side_effect = ValueError("Expecting value: line 1 column 1 (char 0)")

        with pytest.raises(FormatError):
            make_client(hvac_client).fetch_secret("secret/app")

    def test_missing_secret_raises_format_error(self, hvac_client):
        hvac_client.read.return_value = None

        with pytest.raises(FormatError) as exc_info:
            make_client(hvac_client).fetch_secret("secret/app")

        assert "secret/app" in str(exc_info.value)

    def test_v2_response_without_inner_data_raises_format_error(self, hvac_client):
        hvac_client.read.return_value = {"data": {"username": "admin"}}

        with pytest.raises(FormatError):
            make_client(hvac_client).fetch_secret("secret/app")


class TestRenewToken:
    """Test suite for renew_token."""

    def test_renewable_token(self, hvac_client):
        hvac_client.auth.token.renew_self.return_value = {
            "auth": {"renewable": True, "lease_duration": 2764800}
        }

        outcome = make_client(hvac_client).renew_token()

        assert outcome.renewed is True
        assert outcome.renewable is True
        assert outcome.lease_seconds == 2764800
        assert outcome.error is None

    def test_non_renewable_token(self, hvac_client):
        hvac_client.auth.token.renew_self.return_value = {
            "auth": {"renewable": False, "lease_duration": 60}
        }

        outcome = make_client(hvac_client).renew_token()

        assert outcome.renewed is True
        assert outcome.renewable is False
        assert outcome.lease_seconds == 60

    def test_errors_payload_raises_auth_error(self, hvac_client):
        hvac_client.auth.token.renew_self.return_value = {"errors": ["token not renewable"]}

        with pytest.raises(AuthError) as exc_info:
            make_client(hvac_client).renew_token()

        assert exc_info.value.errors == ["token not renewable"]

    def test_store_rejection_raises_auth_error(self, hvac_client):
        hvac_client.auth.token.renew_self.side_effect = VaultError("permission denied", errors=["permission denied"])

        with pytest.raises(AuthError) as exc_info:
            make_client(hvac_client).renew_token()

        assert "permission denied" in str(exc_info.value)

    def test_connection_error_raises_transport_error(self, hvac_client):
        hvac_client.auth.token.renew_self.side_effect = requests.exceptions.ConnectionError("refused")

        with pytest.raises(TransportError):
            make_client(hvac_client).renew_token()


class TestLazyClient:
    """Test suite for lazy hvac client construction."""

    def test_client_built_with_timeout_and_token(self):
        with mock.patch("vault_template.secrets.domains.vault_client.hvac.Client") as client_cls:
            client = VaultClient("https://vault:8200", "s.token", timeout=12.5, verify=False)
            _ = client.client
            _ = client.client

        client_cls.assert_called_once_with(
            url="https://vault:8200", token="s.token", timeout=12.5, verify=False
        )
