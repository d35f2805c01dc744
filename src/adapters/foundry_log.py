"""Foundry VTT chat log reader.

Foundry stores chat as newline-delimited JSON. Each record is decoded on its
own, so one corrupt line never stops the rest of the log.
"""

from __future__ import annotations

import json
import logging
from typing import Any, Iterable, Iterator, List, Optional

from core.models import Post, Roll, RollSingle
from core.timestamps import from_epoch_millis

LOGGER = logging.getLogger(__name__)

# Record type Foundry uses for item cards; they carry no chat content.
ITEM_CARD_TYPE = "0"
DIE_TERM_CLASS = "Die"


def _roll_from_payload(payload: Any) -> Roll:
    # Older exports store each roll as a JSON string inside the record.
    if isinstance(payload, str):
        payload = json.loads(payload)

    single_rolls: List[RollSingle] = []
    for term in payload.get("terms", []):
        if term.get("class") != DIE_TERM_CLASS:
            continue
        faces = int(term["faces"])
        for result in term.get("results", []):
            single_rolls.append(RollSingle(faces=faces, outcome=int(result["result"])))

    return Roll(
        formula=str(payload["formula"]),
        outcome=float(payload["total"]),
        single_rolls=tuple(single_rolls),
    )


def post_from_record(record: dict) -> Optional[Post]:
    """Build a Post from one decoded record, or None if it should be skipped.

    Raises:
        KeyError, TypeError, ValueError: If a required field is missing or
            malformed.
    """

    if str(record.get("type")) == ITEM_CARD_TYPE:
        return None
    if record.get("whisper"):
        return None

    payloads = record.get("rolls") or []
    rolls = tuple(_roll_from_payload(payload) for payload in payloads)

    return Post(
        id=str(record["_id"]),
        sender_name=str(record["speaker"]["alias"]),
        timestamp=from_epoch_millis(record["timestamp"]),
        raw_content=record.get("content") or "",
        is_message=not payloads,
        rolls=rolls,
    )


class FoundryLogReader:
    """LogSource over a Foundry messages database (one JSON record per line).

    The timezone override is accepted for a uniform constructor but unused:
    Foundry timestamps are epoch milliseconds.
    """

    def __init__(self, lines: Iterable[str], timezone_offset: Optional[int] = None) -> None:
        self._lines = iter(lines)
        self._timezone_offset = timezone_offset

    def next_post(self) -> Optional[Post]:
        for line in self._lines:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                LOGGER.debug("Skipping unparseable Foundry line")
                continue
            if not isinstance(record, dict):
                continue

            try:
                post = post_from_record(record)
            except (KeyError, TypeError, ValueError, AttributeError):
                LOGGER.debug("Skipping malformed Foundry record %s", record.get("_id"))
                continue
            if post is not None:
                return post

        return None

    def __iter__(self) -> Iterator[Post]:
        return self

    def __next__(self) -> Post:
        post = self.next_post()
        if post is None:
            raise StopIteration
        return post
