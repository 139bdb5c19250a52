"""Workflow for collecting secrets across paths."""
import logging
from typing import Iterable, Optional

from ..domains.assignment_log import AssignmentLog
from ..domains.errors import KeyFormatError, SecretFetchError
from ..domains.models import AggregatedSecrets, SecretRecord, is_identifier
from ..domains.vault_client import VaultClient

logger = logging.getLogger(__name__)


def validate_record(record: SecretRecord, path: str) -> None:
    """Raise KeyFormatError for the first key that is not a safe identifier."""
    for key in record:
        if not is_identifier(key):
            raise KeyFormatError(key, path)


def aggregate(
    client: VaultClient,
    paths: Iterable[str],
    log: Optional[AssignmentLog] = None,
) -> AggregatedSecrets:
    """
    Fetch every path in order and merge the records.

    Args:
        client: Vault client
        paths: Ordered secret paths; later paths win on key collision
        log: Optional assignment log that receives each validated record

    Returns:
        AggregatedSecrets with the winning value per key

    Raises:
        TransportError: If a path cannot be fetched
        FormatError: If a response is malformed
        KeyFormatError: If a record holds an unsafe key name
    """
    secrets = AggregatedSecrets()
    for path in paths:
        logger.info(f"Fetching secret: {path}")
        try:
            record = client.fetch_secret(path)
            validate_record(record, path)
        except SecretFetchError as e:
            if e.path is None:
                e.path = path
            logger.error(f"Failed to collect secrets from '{path}': {type(e).__name__}")
            raise

        for key in secrets.merge(path, record):
            logger.info(f"Key '{key}' overridden by later path: {path}")
        if log is not None:
            log.append(record)
        logger.info(f"Collected {len(record)} key(s) from {path}: {', '.join(sorted(record)) or '(none)'}")

    return secrets
