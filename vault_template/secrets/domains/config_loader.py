"""Configuration loader for vault-template."""
import os
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional
import yaml

from .errors import ConfigError
from .models import KVVersion, ValueEncoding

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off", ""}


@dataclass(frozen=True)
class Settings:
    """Validated runtime settings for one render run."""
    address: str
    token: str
    template_path: Optional[Path]
    secret_paths: List[str]
    kv_version: KVVersion = KVVersion.V2
    timeout: float = DEFAULT_TIMEOUT
    verify: bool = True
    value_encoding: ValueEncoding = ValueEncoding.RAW
    renew_token: bool = True


def default_config_path() -> Path:
    """XDG location of the optional config file."""
    return Path.home() / ".config" / "vault-template" / "config.yml"


def _get_config_path(config_path: Optional[str], environ: Mapping[str, str]) -> Optional[Path]:
    """
    Resolve which config file to read, if any.

    Priority order:
    1. Explicit path (--config)
    2. VAULT_TEMPLATE_CONFIG environment variable
    3. Default location: ~/.config/vault-template/config.yml

    An explicitly requested file must exist; the default location is optional.

    Raises:
        ConfigError: If an explicitly requested file doesn't exist
    """
    explicit = config_path or environ.get("VAULT_TEMPLATE_CONFIG")
    if explicit:
        path = Path(explicit).expanduser()
        if not path.is_file():
            raise ConfigError(f"Configuration file not found at: {path}")
        logger.info(f"Using config file: {path}")
        return path

    default_config = default_config_path()
    if default_config.is_file():
        logger.info(f"Using default config location: {default_config}")
        return default_config

    logger.debug("No config file found, using environment only")
    return None


def load_config_file(path: Path) -> Dict[str, Any]:
    """
    Load a YAML config file.

    Returns:
        Dict with optional sections 'vault', 'template' and 'secrets'

    Raises:
        ConfigError: If the file is unreadable, invalid YAML, empty or not a mapping
    """
    try:
        with open(path, 'r', encoding='utf-8') as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse YAML config at {path}: {e}")
    except OSError as e:
        raise ConfigError(f"Failed to read config file at {path}: {e}")

    if not config:
        raise ConfigError(f"Config file at {path} is empty")

    if not isinstance(config, dict):
        raise ConfigError(f"Config file at {path} must contain a mapping at the top level")

    for section in ("vault", "template"):
        if section in config and not isinstance(config[section], dict):
            raise ConfigError(f"Section '{section}' in config at {path} must be a mapping")

    return config


def parse_secret_paths(raw: Any) -> List[str]:
    """Split a comma-separated string (or list) into ordered, non-empty paths."""
    if raw is None:
        return []
    if isinstance(raw, str):
        items = raw.split(",")
    elif isinstance(raw, (list, tuple)):
        items = [str(item) for item in raw]
    else:
        raise ConfigError(f"Secret paths must be a list or a comma-separated string, got {type(raw).__name__}")
    return [item.strip() for item in items if item.strip()]


def _parse_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    text = str(raw).strip().lower()
    if text in _TRUTHY:
        return True
    if text in _FALSY:
        return False
    raise ConfigError(f"Setting '{name}' must be a boolean, got {raw!r}")


def _parse_timeout(raw: Any) -> float:
    try:
        timeout = float(raw)
    except (TypeError, ValueError):
        raise ConfigError(f"Timeout must be a number of seconds, got {raw!r}")
    if timeout <= 0:
        raise ConfigError(f"Timeout must be positive, got {raw!r}")
    return timeout


def _first(*candidates: Any) -> Any:
    for candidate in candidates:
        if candidate is not None and candidate != "":
            return candidate
    return None


def load_settings(
    config_path: Optional[str] = None,
    overrides: Optional[Dict[str, Any]] = None,
    environ: Optional[Mapping[str, str]] = None,
    require_template: bool = True,
) -> Settings:
    """
    Build validated settings.

    Precedence: overrides (CLI flags) > environment > YAML file > defaults.

    Args:
        config_path: Explicit config file path
        overrides: Values from the command line, keyed like Settings fields
        environ: Environment mapping (defaults to os.environ)
        require_template: Whether a template path must be configured

    Raises:
        ConfigError: If a required value is missing or any value is invalid
    """
    environ = os.environ if environ is None else environ
    overrides = overrides or {}

    path = _get_config_path(config_path, environ)
    config = load_config_file(path) if path else {}
    vault = config.get("vault") or {}
    template = config.get("template") or {}

    address = _first(overrides.get("address"), environ.get("VAULT_ADDR"), vault.get("address"))
    token = _first(overrides.get("token"), environ.get("VAULT_TOKEN"), vault.get("token"))
    template_path = _first(overrides.get("template_path"), environ.get("HCL_TEMPLATE"), template.get("path"))
    raw_paths = _first(overrides.get("secret_paths"), environ.get("VAULT_SECRETS"), config.get("secrets"))

    missing = []
    if not address:
        missing.append("store address (VAULT_ADDR or vault.address)")
    if not token:
        missing.append("store token (VAULT_TOKEN or vault.token)")
    if require_template and not template_path:
        missing.append("template path (HCL_TEMPLATE or template.path)")
    if not raw_paths:
        missing.append("secret paths (VAULT_SECRETS or secrets)")
    if missing:
        raise ConfigError(
            "Missing required configuration:\n"
            + "\n".join(f"  - {item}" for item in missing)
        )

    secret_paths = parse_secret_paths(raw_paths)
    if not secret_paths:
        raise ConfigError("No secret paths configured (e.g. VAULT_SECRETS=secret/path1,secret/path2)")

    kv_version = KVVersion.parse(
        _first(overrides.get("kv_version"), environ.get("VAULT_KV_VERSION"), vault.get("kv_version"), "2")
    )
    # Reject unusable paths now rather than mid-run.
    for secret_path in secret_paths:
        kv_version.resolve_path(secret_path)

    timeout = _parse_timeout(
        _first(overrides.get("timeout"), environ.get("VAULT_TIMEOUT"), vault.get("timeout"), DEFAULT_TIMEOUT)
    )

    skip_verify = environ.get("VAULT_SKIP_VERIFY")
    if skip_verify is not None and skip_verify != "":
        verify = not _parse_bool("VAULT_SKIP_VERIFY", skip_verify)
    else:
        verify = _parse_bool("vault.verify", vault.get("verify", True))

    value_encoding = ValueEncoding.parse(
        _first(overrides.get("value_encoding"), environ.get("TEMPLATE_VALUE_ENCODING"),
               template.get("value_encoding"), ValueEncoding.RAW.value)
    )

    renew = _first(overrides.get("renew_token"), environ.get("VAULT_RENEW_TOKEN"), vault.get("renew_token"), True)

    settings = Settings(
        address=str(address).rstrip("/"),
        token=str(token),
        template_path=Path(str(template_path)).expanduser() if template_path else None,
        secret_paths=secret_paths,
        kv_version=kv_version,
        timeout=timeout,
        verify=verify,
        value_encoding=value_encoding,
        renew_token=_parse_bool("renew_token", renew),
    )

    logger.debug(f"Using Vault address: {settings.address}")
    logger.debug(f"Using KV engine version: {settings.kv_version.value}")
    logger.debug(f"Secret paths: {', '.join(settings.secret_paths)}")

    return settings
