"""Domain models for secret collection and template rendering."""
import json
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .errors import ConfigError, FormatError

# Placeholder identifiers and secret keys share one syntax.
IDENTIFIER_PATTERN = re.compile(r"[A-Za-z_][A-Za-z0-9_]*", re.ASCII)

SecretRecord = Dict[str, str]


def is_identifier(name: str) -> bool:
    """Return True if name is usable as a %NAME% placeholder."""
    return isinstance(name, str) and IDENTIFIER_PATTERN.fullmatch(name) is not None


def normalize_value(value: Any) -> str:
    """Render a store value as text. Strings pass through untouched."""
    if isinstance(value, str):
        return value
    return json.dumps(value, separators=(",", ":"))


class KVVersion(Enum):
    """KV secrets engine version, chosen once from configuration."""
    V1 = "1"
    V2 = "2"

    @classmethod
    def parse(cls, raw: Any) -> "KVVersion":
        text = str(raw).strip().lstrip("vV")
        for member in cls:
            if member.value == text:
                return member
        raise ConfigError(
            f"Unsupported KV engine version: {raw!r}\n"
            f"Only versions 1 and 2 are supported."
        )

    def resolve_path(self, path: str) -> str:
        """Map a configured secret path to the API path.

        KV v2 inserts a ``data`` segment after the mount, touching only the
        first boundary: ``secret/app/secret/x`` -> ``secret/data/app/secret/x``.
        """
        path = path.strip("/")
        if not path or "" in path.split("/"):
            raise ConfigError(f"Secret path '{path}' has an empty segment")
        if self is KVVersion.V1:
            return path
        mount, sep, rest = path.partition("/")
        if not sep:
            raise ConfigError(
                f"Secret path '{path}' has no sub-path below its mount "
                f"(expected e.g. 'secret/my-app')"
            )
        return f"{mount}/data/{rest}"

    def unwrap(self, payload: Dict[str, Any], path: str) -> Dict[str, Any]:
        """Extract the flat key/value record from a read response."""
        envelope = payload.get("data")
        if not isinstance(envelope, dict):
            raise FormatError(f"Vault response for secret '{path}' has no 'data' object", path=path)
        if self is KVVersion.V1:
            return envelope
        record = envelope.get("data")
        if not isinstance(record, dict):
            raise FormatError(f"Vault response for secret '{path}' has no 'data.data' object", path=path)
        return record


class ValueEncoding(Enum):
    """How a secret value is written into the template."""
    RAW = "raw"
    JSON = "json"

    @classmethod
    def parse(cls, raw: Any) -> "ValueEncoding":
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            raise ConfigError(
                f"Unsupported value encoding: {raw!r}\n"
                f"Choose one of: {', '.join(m.value for m in cls)}"
            )

    def encode(self, value: str) -> str:
        if self is ValueEncoding.RAW:
            return value
        # Body of the JSON string literal, outer quotes dropped.
        return json.dumps(value, ensure_ascii=False)[1:-1]


@dataclass
class RenewalOutcome:
    """Result of a best-effort token renewal. Never raised, only reported."""
    renewed: bool
    renewable: bool = False
    lease_seconds: int = 0
    error: Optional[str] = None


@dataclass
class AggregatedSecrets:
    """Merged secrets with last-write-wins semantics."""
    values: Dict[str, str] = field(default_factory=dict)
    sources: Dict[str, str] = field(default_factory=dict)

    def merge(self, path: str, record: SecretRecord) -> List[str]:
        """Merge a record, returning the keys it overrode."""
        overridden = [key for key in record if key in self.values]
        for key, value in record.items():
            self.values[key] = value
            self.sources[key] = path
        return overridden

    def __len__(self) -> int:
        return len(self.values)


@dataclass
class SubstitutionReport:
    """Key names touched by a substitution run. Never holds values."""
    replaced: Dict[str, int] = field(default_factory=dict)
    unresolved: List[str] = field(default_factory=list)

    @property
    def total(self) -> int:
        return sum(self.replaced.values())
