"""Incremental block-tag depth tracking for huge, malformed HTML.

The scanner never builds a document tree. It walks text one grapheme cluster
at a time through three states and counts how deeply a single block tag
(``div`` by default) is nested. A "<" carrying a combining mark (as in "≮")
is one cluster and never opens a tag.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterator, List, Optional

import regex

_TAG_NAME_RE = re.compile(r"^<(/?)\s*([A-Za-z][A-Za-z0-9-]*)")
_TITLE_LINE_RE = re.compile(r"^\s*title\s*=\s*[\"']")
_QUOTES = frozenset("\"'")
_GRAPHEME_RE = regex.compile(r"\X")


class ScanState(Enum):
    OUTSIDE_TAG = "outside_tag"
    INSIDE_TAG = "inside_tag"
    INSIDE_QUOTED_ATTRIBUTE = "inside_quoted_attribute"


@dataclass(frozen=True)
class DepthChange:
    """A depth transition; end is the index just past the closing ``>``."""

    end: int
    previous: int
    current: int


def starts_with_title_attribute(line: str) -> bool:
    """Whether line opens with a quoted ``title=`` attribute declaration."""

    return _TITLE_LINE_RE.match(line) is not None


class TagDepthScanner:
    """Finite-state scanner counting open/close tags of one element name.

    Depth starts at -1 so the first opening tag (the transcript wrapper)
    lands on 0.
    """

    def __init__(self, tag_name: str = "div") -> None:
        self.tag_name = tag_name.lower()
        self.depth = -1
        self.state = ScanState.OUTSIDE_TAG
        self._tag: List[str] = []
        self._quote = ""

    def feed_line(self, line: str) -> Iterator[DepthChange]:
        """Advance over one line, yielding every depth change it causes."""

        # On a line opening with a quoted title= declaration outside any tag,
        # the first "<" is attribute text. Inside a tag the quote tracking
        # already covers it.
        ignore_next_open = self.state is ScanState.OUTSIDE_TAG and starts_with_title_attribute(line)

        for cluster in _GRAPHEME_RE.finditer(line):
            symbol = cluster.group()
            if self.state is ScanState.OUTSIDE_TAG:
                if symbol != "<":
                    continue
                if ignore_next_open:
                    ignore_next_open = False
                    continue
                self.state = ScanState.INSIDE_TAG
                self._tag = [symbol]
            elif self.state is ScanState.INSIDE_TAG:
                if symbol in _QUOTES and "".join(self._tag).rstrip().endswith("="):
                    self.state = ScanState.INSIDE_QUOTED_ATTRIBUTE
                    self._quote = symbol
                    self._tag.append(symbol)
                elif symbol == ">":
                    change = self._close_tag(cluster.end())
                    if change is not None:
                        yield change
                else:
                    self._tag.append(symbol)
            elif symbol == self._quote:
                # Attribute text is dropped from the tag buffer; only its
                # quotes are kept so the "=" check keeps working.
                self.state = ScanState.INSIDE_TAG
                self._tag.append(symbol)

    def _close_tag(self, end: int) -> Optional[DepthChange]:
        tag = "".join(self._tag)
        self._tag = []
        self.state = ScanState.OUTSIDE_TAG

        match = _TAG_NAME_RE.match(tag)
        if match is None or match.group(2).lower() != self.tag_name:
            return None
        if match.group(1):
            delta = -1
        elif tag.rstrip().endswith("/"):
            # Self-closing tags never change depth.
            return None
        else:
            delta = 1

        previous = self.depth
        self.depth += delta
        return DepthChange(end=end, previous=previous, current=self.depth)
