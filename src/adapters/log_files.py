"""Transcript file discovery and reader selection.

The platform is chosen once, from the filename: ``fnd_*.db`` for Foundry,
``r20_*.html`` for Roll20 and ``fg_*.html`` for Fantasy Grounds.
"""

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from enum import Enum
from typing import Iterator, Optional

from adapters.fantasy_grounds_log import FantasyGroundsLogReader
from adapters.foundry_log import FoundryLogReader
from adapters.roll20_log import Roll20LogReader
from core.ports import LogSource

LOGGER = logging.getLogger(__name__)


class LogFormat(Enum):
    FOUNDRY = "foundry"
    ROLL20 = "roll20"
    FANTASY_GROUNDS = "fantasy_grounds"


# (prefix, extension) per format; the prefix is the source of truth.
FILENAME_CONVENTIONS = {
    LogFormat.FOUNDRY: ("fnd_", ".db"),
    LogFormat.ROLL20: ("r20_", ".html"),
    LogFormat.FANTASY_GROUNDS: ("fg_", ".html"),
}


def detect_log_format(path: str) -> LogFormat:
    """Return the transcript format implied by a log filename.

    Raises:
        ValueError: If the filename follows none of the conventions.
    """

    filename = os.path.basename(path)
    _, extension = os.path.splitext(filename)
    for log_format, (prefix, expected_extension) in FILENAME_CONVENTIONS.items():
        if filename.startswith(prefix) and extension.lower() == expected_extension:
            return log_format
    raise ValueError(
        f"Unrecognized log filename {filename!r}: expected fnd_*.db, r20_*.html or fg_*.html"
    )


@contextmanager
def open_log_source(path: str, timezone_offset: Optional[int] = None) -> Iterator[LogSource]:
    """Open a transcript and yield the matching reader.

    The file handle is released when the block exits, whether or not the
    reader was drained.
    """

    log_format = detect_log_format(path)
    if not os.path.exists(path):
        raise FileNotFoundError(f"Log file not found: {path}")

    LOGGER.info("Reading %s log %s", log_format.value, path)
    with open(path, "r", encoding="utf-8", errors="replace") as handle:
        if log_format is LogFormat.FOUNDRY:
            # Foundry timestamps are absolute; an offset would double-shift them.
            yield FoundryLogReader(handle)
        elif log_format is LogFormat.ROLL20:
            yield Roll20LogReader(handle, timezone_offset)
        else:
            yield FantasyGroundsLogReader(handle, timezone_offset)
