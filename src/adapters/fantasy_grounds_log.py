"""Fantasy Grounds chat log reader.

Fantasy Grounds writes one HTML fragment per printed chat line, each ending
in a literal ``<br />``. Entries carry no timestamps of their own: the reader
keeps a clock seeded from the latest session banner and advances it by one
minute for every post it returns. Times are therefore approximate.
"""

from __future__ import annotations

import logging
import re
from datetime import datetime, timedelta
from typing import Iterable, Iterator, List, Optional

from bs4 import BeautifulSoup

from core.models import Post, Roll
from core.timestamps import localize

LOGGER = logging.getLogger(__name__)

DATETIME_FORMAT = "%Y-%m-%d %H:%M"
LINE_TERMINATOR_RE = re.compile(r"<br\s*/>\s*$", re.IGNORECASE)
CHAT_LOG_STARTED = "Chat log started at "
SESSION_STARTED = "Session started"
POST_INTERVAL = timedelta(minutes=1)

# Recurring system announcements that look like chat.
IGNORED_ANNOUNCEMENTS = (
    "Party taking long rest.",
    "Party taking short rest.",
)
ROLL_MARKERS = frozenset("dgr")


def _parse_banner_stamp(date_text: str, time_text: str) -> Optional[datetime]:
    try:
        return datetime.strptime(f"{date_text.strip()} {time_text.strip()}", DATETIME_FORMAT)
    except ValueError:
        return None


def _short_banner_datetime(bold_text: str) -> Optional[datetime]:
    """Parse "Chat log started at D.M.YYYY / HH:MM:SS"."""

    stamp = bold_text[len(CHAT_LOG_STARTED) :]
    parts = stamp.split(" / ")
    if len(parts) != 2:
        return None
    date_text, time_text = parts

    date_parts = [component.strip().zfill(2) for component in date_text.split(".")]
    time_parts = time_text.split(":")
    if len(date_parts) != 3 or len(time_parts) < 2:
        return None
    day, month, year = date_parts
    hours, minutes = time_parts[0], time_parts[1]
    return _parse_banner_stamp(f"{year}-{month}-{day}", f"{hours}:{minutes}")


def banner_datetime(soup: BeautifulSoup) -> Optional[datetime]:
    """Return the naive local time announced by a banner fragment, if any."""

    bold = soup.find("b")
    if bold is None:
        return None
    bold_strings = list(bold.strings)
    if not bold_strings:
        return None
    bold_text = bold_strings[-1]

    anchor = soup.find("a")
    if anchor is None:
        if not bold_text.startswith(CHAT_LOG_STARTED):
            return None
        return _short_banner_datetime(bold_text)

    date_text = anchor.get("name")
    if not date_text or SESSION_STARTED not in bold_text:
        return None
    return _parse_banner_stamp(date_text, bold_text.split(" / ")[-1])


def parse_roll_annotation(text: str) -> Optional[Roll]:
    """Parse a trailing " [d20+3 = 15]" annotation into a Roll.

    The markers d, g and r all mean a die and are normalized to "d". Fantasy
    Grounds does not list individual dice, so the roll has no single rolls.
    """

    inside_brackets = False
    has_formula = False
    has_outcome = False
    complete = False
    characters: List[str] = []
    for symbol in text:
        if not characters and symbol == "[":
            inside_brackets = True
            continue
        if symbol == "]" and has_outcome:
            complete = True
            break
        if not inside_brackets:
            continue
        if symbol in ROLL_MARKERS:
            has_formula = True
            characters.append("d")
            continue
        if symbol == "=" and has_formula:
            has_outcome = True
        characters.append(symbol)

    if not complete:
        return None
    parts = "".join(characters).split(" = ")
    if len(parts) != 2:
        return None
    formula, outcome = parts
    try:
        return Roll(formula=formula, outcome=float(outcome))
    except ValueError:
        return None


def _possible_roll_text(soup: BeautifulSoup) -> Optional[str]:
    strings = list(soup.find_all(string=True))
    if not strings:
        return None
    last = str(strings[-1])
    if last.startswith(" [") and last.endswith("]"):
        return last
    return None


def _has_markup_artifacts(text: str) -> bool:
    return "&#62;" in text or ">" in text


def _is_valid_sender(sender_name: str) -> bool:
    return not (_has_markup_artifacts(sender_name) or "Extension" in sender_name)


def _is_valid_body(body: str) -> bool:
    if _has_markup_artifacts(body):
        return False
    return not any(ignored in body for ignored in IGNORED_ANNOUNCEMENTS)


def _is_message_body(body: str) -> bool:
    # Bracketed bodies are effect and check notices, except translations.
    return not body.startswith(" [") or body.startswith(" [Translation]")


class FantasyGroundsLogReader:
    """LogSource over a Fantasy Grounds chat log."""

    def __init__(self, lines: Iterable[str], timezone_offset: Optional[int] = None) -> None:
        self._lines = iter(lines)
        self._timezone_offset = timezone_offset
        self._fragment: List[str] = []
        self._clock: Optional[datetime] = None
        self._next_id = 1

    def next_post(self) -> Optional[Post]:
        for raw_line in self._lines:
            self._fragment.append(raw_line.rstrip("\r\n"))
            if not LINE_TERMINATOR_RE.search(self._fragment[-1]):
                continue

            fragment = "\n".join(self._fragment)
            self._fragment = []
            post = self._post_from_fragment(fragment)
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

    def _post_from_fragment(self, fragment: str) -> Optional[Post]:
        soup = BeautifulSoup(fragment, "html.parser")

        font = soup.find("font")
        if font is None:
            started = banner_datetime(soup)
            if started is not None:
                self._clock = localize(started, self._timezone_offset)
            return None

        font_strings = list(font.strings)
        font_text = str(font_strings[-1]) if font_strings else ""
        if not font_text or font_text.startswith("["):
            return None
        sender_name, separator, body = font_text.partition(":")
        if not separator:
            return None
        if not _is_valid_sender(sender_name) or not _is_valid_body(body):
            return None

        rolls: tuple[Roll, ...] = ()
        roll_text = _possible_roll_text(soup)
        if roll_text is not None:
            roll = parse_roll_annotation(roll_text)
            if roll is None:
                return None
            rolls = (roll,)
        elif not body.strip() or not _is_message_body(body):
            return None

        if self._clock is None:
            LOGGER.debug("Skipping Fantasy Grounds line before any session banner")
            return None

        post = Post(
            id=str(self._next_id),
            sender_name=sender_name.strip(),
            timestamp=self._clock,
            raw_content=body.strip(),
            is_message=not rolls,
            rolls=rolls,
        )
        self._next_id += 1
        self._clock += POST_INTERVAL
        return post
