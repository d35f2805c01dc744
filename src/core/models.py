"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any platform-specific transcript format.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Tuple


@dataclass(frozen=True)
class RollSingle:
    """One die: its face count and the value it landed on."""

    faces: int
    outcome: int


@dataclass(frozen=True)
class Roll:
    """One evaluated dice expression.

    single_rolls follow the left-to-right order of dice terms in formula.
    """

    formula: str
    outcome: float
    single_rolls: Tuple[RollSingle, ...] = ()


@dataclass(frozen=True)
class Post:
    """Normalized transcript entry, independent of the source platform."""

    id: str
    sender_name: str
    timestamp: datetime
    raw_content: str
    is_message: bool
    rolls: Tuple[Roll, ...] = ()


@dataclass(frozen=True)
class HistoricalRoll:
    """A persisted roll as seen by the simulation layer."""

    campaign_name: str
    sender_name: str
    formula: str
    outcome: float
    timestamp: datetime
