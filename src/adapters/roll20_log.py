"""Roll20 chat archive reader.

Archives are one huge HTML page, often too large or too broken for a full
parse. The reader streams lines through a TagDepthScanner to cut out one
chat entry at a time and only hands that small fragment to BeautifulSoup.

Roll20 leaves out repeated details: consecutive entries by one sender omit
the sender, and entries later in a day carry a bare time instead of a full
date. Both are carried forward from earlier entries.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime
from typing import Iterable, Iterator, List, Optional

from bs4 import BeautifulSoup, Tag

from adapters.tag_scanner import TagDepthScanner
from core.decompose import build_roll
from core.models import Post, Roll
from core.timestamps import localize

LOGGER = logging.getLogger(__name__)

DATETIME_FORMAT = "%B %d, %Y %I:%M%p"
TIME_FORMAT = "%I:%M%p"
PRIVATE_CLASSES = frozenset({"private", "whisper"})
# Elements that are chrome around an entry rather than what was said.
CHROME_SELECTOR = ".tstamp, .by, .avatar, .spacer"

_ROLLING_PREFIX_RE = re.compile(r"^\s*rolling\s+", re.IGNORECASE)


class ExtractionError(ValueError):
    """Raised when rendered dice and their formula cannot be reconciled."""


def _squash(text: str) -> str:
    return " ".join(text.split())


def _strip_rolling(text: str) -> str:
    return _ROLLING_PREFIX_RE.sub("", _squash(text))


def _plain_roll(message: Tag) -> Roll:
    """Extract the roll of a "rollresult" entry.

    Raises:
        ExtractionError: If any part is missing or the dice do not match.
    """

    formula_element = next(
        (
            element
            for element in message.select(".formula")
            if "formattedformula" not in element.get("class", [])
        ),
        None,
    )
    total_element = message.select_one(".rolled")
    if formula_element is None or total_element is None:
        raise ExtractionError("roll result without formula or total")

    formula = _strip_rolling(formula_element.get_text())
    try:
        outcomes = [int(element.get_text(strip=True)) for element in message.select(".didroll")]
        total = float(total_element.get_text(strip=True))
    except ValueError as exc:
        raise ExtractionError(f"unreadable dice in {formula!r}") from exc

    roll = build_roll(formula, outcomes, total)
    if roll is None:
        raise ExtractionError(f"{len(outcomes)} dice do not fit {formula!r}")
    return roll


def _macro_roll(inline: Tag) -> Optional[Roll]:
    """Extract one inline roll from its title attribute.

    Inline results without a "Rolling X = ..." title are not rolls and give
    None.

    Raises:
        ExtractionError: If the title's dice do not match its formula.
    """

    title = inline.get("title")
    if not title:
        return None
    head, separator, detail = title.partition(" = ")
    if not separator:
        return None
    try:
        total = float(inline.get_text(strip=True))
    except ValueError:
        return None

    formula = _strip_rolling(head)
    detail_soup = BeautifulSoup(detail, "html.parser")
    try:
        outcomes = [int(element.get_text(strip=True)) for element in detail_soup.select(".basicdiceroll")]
    except ValueError as exc:
        raise ExtractionError(f"unreadable dice in {formula!r}") from exc

    roll = build_roll(formula, outcomes, total)
    if roll is None:
        raise ExtractionError(f"{len(outcomes)} dice do not fit {formula!r}")
    return roll


class Roll20LogReader:
    """LogSource over a Roll20 chat archive."""

    def __init__(self, lines: Iterable[str], timezone_offset: Optional[int] = None) -> None:
        self._lines = iter(lines)
        self._timezone_offset = timezone_offset
        self._scanner = TagDepthScanner("div")
        self._fragment: List[str] = []
        self._last_sender_name: Optional[str] = None
        self._last_date: Optional[date] = None
        self._last_timestamp: Optional[datetime] = None
        self._posts = self._read_posts()

    def next_post(self) -> Optional[Post]:
        return next(self._posts, None)

    def __iter__(self) -> Iterator[Post]:
        return self

    def __next__(self) -> Post:
        post = self.next_post()
        if post is None:
            raise StopIteration
        return post

    def _read_posts(self) -> Iterator[Post]:
        for raw_line in self._lines:
            line = raw_line.rstrip("\r\n")
            start = 0
            for change in self._scanner.feed_line(line):
                if change.current < 0:
                    # The transcript wrapper closed: nothing after it is chat.
                    return
                if change.previous < 0:
                    start = change.end
                    self._fragment = []
                elif change.previous == 1 and change.current == 0:
                    self._fragment.append(line[start : change.end])
                    start = change.end
                    post = self._post_from_fragment("".join(self._fragment))
                    self._fragment = []
                    if post is not None:
                        yield post

            if self._scanner.depth >= 0:
                self._fragment.append(line[start:])
                self._fragment.append("\n")

    def _update_sender(self, message: Tag) -> None:
        element = message.select_one(".by")
        if element is None:
            return
        name = element.get_text(strip=True).removesuffix(":").strip()
        if name:
            self._last_sender_name = name

    def _update_timestamp(self, message: Tag) -> None:
        element = message.select_one(".tstamp")
        if element is None:
            return
        text = _squash(element.get_text())

        try:
            parsed = datetime.strptime(text, DATETIME_FORMAT)
        except ValueError:
            parsed = None

        if parsed is not None:
            self._last_date = parsed.date()
        else:
            if self._last_date is None:
                LOGGER.debug("Bare time %r before any full date", text)
                return
            try:
                clock = datetime.strptime(text, TIME_FORMAT)
            except ValueError:
                LOGGER.debug("Unrecognized Roll20 timestamp %r", text)
                return
            parsed = datetime.combine(self._last_date, clock.time())

        self._last_timestamp = localize(parsed, self._timezone_offset)

    def _post_from_fragment(self, fragment: str) -> Optional[Post]:
        soup = BeautifulSoup(fragment, "html.parser")
        message = soup.select_one("div.message")
        if message is None:
            return None
        post_id = message.get("data-messageid")
        if not post_id:
            return None

        # Carry-forward state updates even for entries that are dropped below.
        self._update_sender(message)
        self._update_timestamp(message)

        classes = set(message.get("class", []))
        if classes & PRIVATE_CLASSES:
            return None
        if self._last_sender_name is None or self._last_timestamp is None:
            LOGGER.debug("Skipping Roll20 entry %s without sender or time", post_id)
            return None

        rolls: List[Roll] = []
        try:
            if "rollresult" in classes:
                rolls.append(_plain_roll(message))
            for inline in message.select(".inlinerollresult"):
                roll = _macro_roll(inline)
                if roll is not None:
                    rolls.append(roll)
        except ExtractionError as exc:
            LOGGER.debug("Discarding Roll20 entry %s: %s", post_id, exc)
            return None

        for element in message.select(CHROME_SELECTOR):
            element.decompose()
        text = _squash(" ".join(message.stripped_strings))

        if not rolls:
            if "general" not in classes or not text or text == self._last_sender_name:
                return None

        return Post(
            id=post_id,
            sender_name=self._last_sender_name,
            timestamp=self._last_timestamp,
            raw_content=text,
            is_message=not rolls,
            rolls=tuple(rolls),
        )
