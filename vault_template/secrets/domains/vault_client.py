"""Vault KV client wrapper."""
import logging
from typing import Any, List, Optional

import hvac
import requests
from hvac.exceptions import VaultError

from .errors import AuthError, FormatError, TransportError
from .models import KVVersion, RenewalOutcome, SecretRecord, normalize_value

logger = logging.getLogger(__name__)


def _vault_errors(exc: VaultError) -> List[str]:
    errors = getattr(exc, "errors", None)
    if isinstance(errors, (list, tuple)):
        return [str(e) for e in errors]
    if errors:
        return [str(errors)]
    return [str(exc)] if str(exc) else []


class VaultClient:
    """Wrapper around an hvac client bound to one address and KV version."""

    def __init__(
        self,
        address: str,
        token: str,
        kv_version: KVVersion = KVVersion.V2,
        timeout: float = 30.0,
        verify: bool = True,
        client: Optional[hvac.Client] = None,
    ):
        self.address = address
        self.kv_version = kv_version
        self._token = token
        self._timeout = timeout
        self._verify = verify
        self._client = client

    @classmethod
    def from_settings(cls, settings) -> "VaultClient":
        return cls(
            address=settings.address,
            token=settings.token,
            kv_version=settings.kv_version,
            timeout=settings.timeout,
            verify=settings.verify,
        )

    @property
    def client(self) -> hvac.Client:
        """Lazy-initialize client."""
        if self._client is None:
            self._client = hvac.Client(
                url=self.address,
                token=self._token,
                timeout=self._timeout,
                verify=self._verify,
            )
        return self._client

    def renew_token(self) -> RenewalOutcome:
        """
        Renew the current token via auth/token/renew-self.

        Returns:
            RenewalOutcome describing the new lease

        Raises:
            AuthError: If the store rejects the renewal
            TransportError: If the store cannot be reached
        """
        logger.info(f"Attempting to renew Vault token for address: {self.address}")
        try:
            response = self.client.auth.token.renew_self()
        except VaultError as e:
            errors = _vault_errors(e)
            raise AuthError(
                f"Error renewing Vault token: {'; '.join(errors) or 'Unknown error or malformed response.'}",
                errors=errors,
            )
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Failed to reach Vault at {self.address} for token renewal: {e}")

        if not isinstance(response, dict):
            raise AuthError("Error renewing Vault token: Unknown error or malformed response.")
        if "errors" in response:
            errors = [str(e) for e in response.get("errors") or []]
            raise AuthError(
                f"Error renewing Vault token: {'; '.join(errors) or 'Unknown error or malformed response.'}",
                errors=errors,
            )

        auth = response.get("auth") or {}
        try:
            lease_seconds = int(auth.get("lease_duration") or 0)
        except (TypeError, ValueError):
            lease_seconds = 0
        return RenewalOutcome(
            renewed=True,
            renewable=bool(auth.get("renewable")),
            lease_seconds=lease_seconds,
        )

    def fetch_secret(self, path: str) -> SecretRecord:
        """
        Fetch one secret path and return its flat key/value record.

        Args:
            path: Configured secret path, e.g. "secret/my-app/config"

        Returns:
            Mapping of key to string value

        Raises:
            TransportError: If the request cannot be completed or the store refuses it
            FormatError: If the response is not the expected JSON structure
        """
        resolved = self.kv_version.resolve_path(path)
        logger.debug(f"Reading v1/{resolved}")
        try:
            response: Any = self.client.read(resolved)
        except VaultError as e:
            raise TransportError(
                f"Vault refused request for secret '{path}': {'; '.join(_vault_errors(e))}",
                path=path,
            )
        except ValueError as e:
            raise FormatError(f"Vault response for secret '{path}' is not valid JSON: {e}", path=path)
        except requests.exceptions.RequestException as e:
            raise TransportError(f"Failed to request secret from Vault at '{path}': {e}", path=path)

        if response is None:
            raise FormatError(f"No secret found at '{path}'", path=path)
        if not isinstance(response, dict):
            raise FormatError(f"Vault response for secret '{path}' is not valid JSON.", path=path)

        record = self.kv_version.unwrap(response, path)
        return {str(key): normalize_value(value) for key, value in record.items()}
