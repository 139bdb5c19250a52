"""Error taxonomy for vault-template.

Messages name the offending path or key, never a secret value.
"""
from typing import List, Optional


class VaultTemplateError(Exception):
    """Base class for all vault-template errors."""
    pass


class ConfigError(VaultTemplateError):
    """Configuration error exception."""
    pass


class AuthError(VaultTemplateError):
    """Token renewal was rejected by the store."""

    def __init__(self, message: str, errors: Optional[List[str]] = None):
        super().__init__(message)
        self.errors = errors or []


class SecretFetchError(VaultTemplateError):
    """A single secret path could not be collected. Aborts the whole run."""

    def __init__(self, message: str, path: Optional[str] = None):
        super().__init__(message)
        self.path = path


class TransportError(SecretFetchError):
    """The store could not be reached or refused the request."""
    pass


class FormatError(SecretFetchError):
    """The store response did not have the expected structure."""
    pass


class KeyFormatError(SecretFetchError):
    """A secret key is not a safe placeholder identifier."""

    def __init__(self, key: str, path: str):
        super().__init__(
            f"Invalid secret key {key!r} at path '{path}': "
            f"keys must match [A-Za-z_][A-Za-z0-9_]*",
            path=path,
        )
        self.key = key


class TemplateIOError(VaultTemplateError, OSError):
    """The template file cannot be read or written."""
    pass
