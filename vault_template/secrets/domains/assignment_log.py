"""Transient on-disk log of KEY=<json-quoted-value> assignments.

The file holds plaintext secret values, so it is created with mode 0600 and
removed on every exit path, including SIGINT and SIGTERM.
"""
import json
import logging
import os
import signal
import tempfile
import threading
from pathlib import Path
from typing import Dict, Optional

from .models import SecretRecord, is_identifier
from .errors import FormatError

logger = logging.getLogger(__name__)

_CLEANUP_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class AssignmentLog:
    """Scoped assignment log. Use as a context manager."""

    def __init__(self, directory: Optional[str] = None):
        self._directory = directory
        self.path: Optional[Path] = None
        self._previous_handlers: Dict[int, object] = {}

    def __enter__(self) -> "AssignmentLog":
        fd, name = tempfile.mkstemp(prefix="vault-template-", suffix=".env", dir=self._directory)
        os.close(fd)
        self.path = Path(name)
        logger.info(f"Created temporary file for secret assignments: {self.path}")
        self._install_signal_handlers()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        try:
            self.remove()
        finally:
            self._restore_signal_handlers()

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return
        for signum in _CLEANUP_SIGNALS:
            self._previous_handlers[signum] = signal.signal(signum, self._on_signal)

    def _restore_signal_handlers(self) -> None:
        for signum, handler in self._previous_handlers.items():
            signal.signal(signum, handler)
        self._previous_handlers.clear()

    def _on_signal(self, signum, frame) -> None:
        self.remove()
        if signum == signal.SIGINT:
            raise KeyboardInterrupt
        raise SystemExit(128 + signum)

    def remove(self) -> None:
        if self.path is None:
            return
        try:
            self.path.unlink()
            logger.info(f"Cleaned up temporary secrets file: {self.path}")
        except FileNotFoundError:
            pass
        self.path = None

    def append(self, record: SecretRecord) -> None:
        """Append one fetched record, one line per key."""
        if self.path is None:
            raise RuntimeError("AssignmentLog is not open")
        with open(self.path, 'a', encoding='utf-8') as f:
            for key, value in record.items():
                f.write(f"{key}={json.dumps(value)}\n")
                logger.debug(f"Prepared assignment for variable: {key}")

    def read(self) -> Dict[str, str]:
        """
        Read assignments back. Later lines win.

        Raises:
            FormatError: If a line is not KEY=<json string>
        """
        if self.path is None:
            raise RuntimeError("AssignmentLog is not open")
        assignments: Dict[str, str] = {}
        with open(self.path, 'r', encoding='utf-8') as f:
            for lineno, line in enumerate(f, start=1):
                line = line.rstrip("\n")
                if not line:
                    continue
                key, sep, encoded = line.partition("=")
                if not sep or not is_identifier(key):
                    raise FormatError(f"Malformed assignment on line {lineno} of {self.path}")
                try:
                    value = json.loads(encoded)
                except ValueError:
                    raise FormatError(f"Malformed value for '{key}' on line {lineno} of {self.path}")
                if not isinstance(value, str):
                    raise FormatError(f"Value for '{key}' on line {lineno} of {self.path} is not a string")
                assignments[key] = value
        return assignments
