"""
Logging setup for DNS Bench.

Bracketed lowercase level tags and UTC timestamps on stderr, with an
optional log file.
"""

import logging
import sys
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional, Union

_LEVELS = {
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "crit": logging.CRITICAL,
    "critical": logging.CRITICAL,
}

LEVEL_NAMES = ["debug", "info", "warning", "error"]


class BracketLevelFormatter(logging.Formatter):
    """Formatter that adds bracketed level tags and UTC timestamps."""

    _TAGS = {
        logging.DEBUG: "[debug]",
        logging.INFO: "[info]",
        logging.WARNING: "[warn]",
        logging.ERROR: "[error]",
        logging.CRITICAL: "[crit]",
    }

    def formatTime(self, record, datefmt=None):
        """Format the record time as UTC ISO-8601 with a Z suffix."""
        return datetime.fromtimestamp(record.created, timezone.utc).strftime(
            "%Y-%m-%dT%H:%M:%SZ"
        )

    def format(self, record):
        record.level_tag = self._TAGS.get(record.levelno, f"[lvl{record.levelno}]")
        return super().format(record)


def init_logging(
    level: str = "warning",
    log_file: Optional[Union[str, Path]] = None,
    stderr: bool = True,
) -> None:
    """
    Configure the root logger.

    Args:
        level: debug, info, warning, error or crit (unknown names mean info)
        log_file: Also append log records to this file
        stderr: Log to stderr

    Existing root handlers are removed, so calling this twice does not
    duplicate output. Python warnings are routed through logging.
    """
    formatter = BracketLevelFormatter(fmt="%(asctime)s %(level_tag)s %(name)s: %(message)s")

    root = logging.getLogger()
    root.setLevel(_LEVELS.get(str(level).lower(), logging.INFO))

    for handler in list(root.handlers):
        root.removeHandler(handler)
        handler.close()

    if stderr:
        stderr_handler = logging.StreamHandler(sys.stderr)
        stderr_handler.setFormatter(formatter)
        root.addHandler(stderr_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file)
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)

    # Route warnings.warn() output through the same handlers
    logging.captureWarnings(True)
