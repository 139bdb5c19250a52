"""Render workflow: renew, collect, substitute, clean up."""
import logging
from dataclasses import dataclass, field
from typing import Dict, Optional

from ..domains.assignment_log import AssignmentLog
from ..domains.config_loader import Settings
from ..domains.errors import AuthError, TransportError
from ..domains.models import RenewalOutcome, SubstitutionReport
from ..domains.vault_client import VaultClient
from .aggregate import aggregate
from .substitute import substitute

logger = logging.getLogger(__name__)


@dataclass
class RenderResult:
    """Summary of a successful run. Holds key names and paths only."""
    renewal: Optional[RenewalOutcome]
    sources: Dict[str, str] = field(default_factory=dict)
    report: SubstitutionReport = field(default_factory=SubstitutionReport)


def renew_token_best_effort(client: VaultClient) -> RenewalOutcome:
    """Renew the token, reporting failure instead of raising it."""
    try:
        outcome = client.renew_token()
    except (AuthError, TransportError) as e:
        logger.warning(f"{e}")
        return RenewalOutcome(renewed=False, error=str(e))

    if outcome.renewable:
        logger.info("Vault token renewed successfully to its maximum allowed duration.")
        logger.info(f"Current lease duration after renewal: {outcome.lease_seconds} seconds")
    else:
        logger.warning("Vault token renewed, but it is no longer renewable.")
        logger.warning(f"Current lease duration: {outcome.lease_seconds} seconds")
        logger.warning("Please consider generating a new token soon.")
    return outcome


def render_template(settings: Settings, client: Optional[VaultClient] = None) -> RenderResult:
    """
    Run the full pipeline against settings.template_path.

    Any fetch, key or template failure propagates after the assignment log
    has been removed.

    Raises:
        TransportError: If a secret path cannot be fetched
        FormatError: If a store response is malformed
        KeyFormatError: If a secret key is not a safe identifier
        TemplateIOError: If the template can't be read or written
    """
    client = client or VaultClient.from_settings(settings)

    if settings.renew_token:
        renewal = renew_token_best_effort(client)
    else:
        renewal = None
        logger.warning("Token renewal skipped (renew_token disabled)")

    with AssignmentLog() as log:
        collected = aggregate(client, settings.secret_paths, log=log)
        logger.info(f"Secret assignments prepared in: {log.path}")
        assignments = log.read()
        report = substitute(settings.template_path, assignments, settings.value_encoding)

    logger.info(f"Template modified in-place -> {settings.template_path}")
    return RenderResult(renewal=renewal, sources=dict(collected.sources), report=report)
