"""Ports (interfaces) used by the core pipeline.

Ports define the minimal contracts for transcript readers and storage
adapters so that the core can be reused with different backends.
"""

from __future__ import annotations

from typing import Iterable, Iterator, Optional, Protocol, Tuple

from core.models import HistoricalRoll, Post, RollSingle


class LogSource(Protocol):
    """A forward-only reader producing Posts from one raw transcript.

    Implementations are drained exactly once; there is no rewind.
    """

    def next_post(self) -> Optional[Post]:
        ...

    def __iter__(self) -> Iterator[Post]:
        ...


class PostStoragePort(Protocol):
    """Storage operations required by the ingestion processor."""

    def known_post_ids(self, campaign_name: str) -> set[str]:
        ...

    def save_post(self, campaign_name: str, post: Post) -> None:
        ...


class RollHistoryPort(Protocol):
    """Read access to persisted rolls for the simulation engine."""

    def fetch_single_rolls(self, senders: Iterable[Tuple[str, str]]) -> list[RollSingle]:
        ...

    def fetch_rolls(self) -> list[HistoricalRoll]:
        ...
