"""Core transcript ingestion pipeline.

This module is format-agnostic. It only relies on ports for reading posts
and storing them, enabling new transcript formats or backends without
changes here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import List

from core.config import CampaignConfig, is_mapped_sender
from core.ports import LogSource, PostStoragePort

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class IngestReport:
    """Counters for one drained transcript."""

    campaign_name: str
    read: int
    saved: int
    skipped: int
    messages: int
    rolls: int


class IngestionProcessor:
    """Drains a LogSource into storage, skipping posts already stored."""

    def __init__(self, storage: PostStoragePort) -> None:
        self._storage = storage

    def ingest(self, campaign_name: str, source: LogSource) -> IngestReport:
        """Read every post of one transcript and persist the new ones."""

        # Readers never dedup; transcripts are re-read in full on every run,
        # so identifiers already in storage are skipped here.
        known_ids = set(self._storage.known_post_ids(campaign_name))

        read = saved = skipped = messages = rolls = 0
        for post in source:
            read += 1
            if post.id in known_ids:
                skipped += 1
                continue

            self._storage.save_post(campaign_name, post)
            known_ids.add(post.id)
            saved += 1
            if post.is_message:
                messages += 1
            rolls += len(post.rolls)

        LOGGER.info(
            "Ingested %s: read=%s, saved=%s, skipped=%s, messages=%s, rolls=%s",
            campaign_name,
            read,
            saved,
            skipped,
            messages,
            rolls,
        )
        return IngestReport(
            campaign_name=campaign_name,
            read=read,
            saved=saved,
            skipped=skipped,
            messages=messages,
            rolls=rolls,
        )


def find_unmapped_senders(campaign: CampaignConfig, source: LogSource) -> List[str]:
    """List sender names in a transcript that no alias of campaign covers.

    Names are returned once each, in order of first appearance.
    """

    unmapped: List[str] = []
    for post in source:
        sender = post.sender_name
        if not sender or sender in unmapped or is_mapped_sender(campaign, sender):
            continue
        unmapped.append(sender)
    LOGGER.info("%s has %s unmapped senders", campaign.name, len(unmapped))
    return unmapped
