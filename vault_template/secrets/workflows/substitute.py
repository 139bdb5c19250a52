"""Substitute %KEY% placeholders into a template file in place."""
import logging
import os
import re
import shutil
import tempfile
from pathlib import Path
from typing import Mapping, Tuple, Union

from ..domains.errors import TemplateIOError
from ..domains.models import IDENTIFIER_PATTERN, SubstitutionReport, ValueEncoding

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"%(" + IDENTIFIER_PATTERN.pattern + r")%", re.ASCII)


def _check_template(path: Path) -> None:
    if not path.exists():
        raise TemplateIOError(f"Template file not found: {path}")
    if not path.is_file():
        raise TemplateIOError(f"Template path is not a file: {path}")
    if not os.access(path, os.R_OK):
        raise TemplateIOError(f"Template file is not readable: {path}")
    if not os.access(path, os.W_OK):
        raise TemplateIOError(f"Template file is not writable: {path}")
    if not os.access(path.parent, os.W_OK):
        raise TemplateIOError(f"Template directory is not writable: {path.parent}")


def render_text(
    text: str,
    secrets: Mapping[str, str],
    encoding: ValueEncoding = ValueEncoding.RAW,
) -> Tuple[str, SubstitutionReport]:
    """
    Replace every %KEY% whose KEY is in secrets, in a single pass.

    Keys and values are literal text. Replacement values are returned from a
    function, so backslashes and group references inside them are inert, and
    substituted text is never rescanned.
    """
    report = SubstitutionReport()
    if secrets:
        keys = sorted(secrets, key=len, reverse=True)
        pattern = re.compile("%(" + "|".join(re.escape(k) for k in keys) + ")%")
        encoded = {key: encoding.encode(secrets[key]) for key in keys}

        def _replace(match):
            key = match.group(1)
            report.replaced[key] = report.replaced.get(key, 0) + 1
            return encoded[key]

        text = pattern.sub(_replace, text)

    report.unresolved = sorted({m.group(1) for m in PLACEHOLDER_PATTERN.finditer(text)} - set(report.replaced))
    return text, report


def substitute(
    template_path: Union[str, Path],
    secrets: Mapping[str, str],
    encoding: ValueEncoding = ValueEncoding.RAW,
) -> SubstitutionReport:
    """
    Render secrets into the template file in place.

    The rendered text goes to a temporary file next to the template which is
    then renamed over it, so the template is either fully rendered or left
    untouched.

    Args:
        template_path: Template file to modify
        secrets: Key to value mapping
        encoding: How values are written into the template

    Returns:
        SubstitutionReport with per-key replacement counts

    Raises:
        TemplateIOError: If the template can't be read or written
    """
    # Render through symlinks so the link survives and its target is updated.
    path = Path(template_path).resolve()
    _check_template(path)
    logger.info(f"Substituting values directly into {path}...")

    try:
        with open(path, 'r', encoding='utf-8', newline='') as f:
            original = f.read()
    except (OSError, UnicodeDecodeError) as e:
        raise TemplateIOError(f"Failed to read template {path}: {e}")

    rendered, report = render_text(original, secrets, encoding)
    for key, count in report.replaced.items():
        logger.info(f"Replaced: %{key}% -> (value for {key}) x{count} in {path}")
    for key in report.unresolved:
        logger.info(f"No secret for placeholder %{key}%, left as is")

    if rendered == original:
        logger.info(f"No placeholders substituted in {path}")
        return report

    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, 'w', encoding='utf-8', newline='') as f:
            f.write(rendered)
        shutil.copymode(path, tmp_name)
        os.replace(tmp_name, path)
    except OSError as e:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise TemplateIOError(f"Failed to write template {path}: {e}")

    return report
