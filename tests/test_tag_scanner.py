from __future__ import annotations

from adapters.tag_scanner import ScanState, TagDepthScanner, starts_with_title_attribute


def _depths(scanner: TagDepthScanner, line: str) -> list[tuple[int, int]]:
    return [(change.previous, change.current) for change in scanner.feed_line(line)]


def test_counts_nested_divs() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, '<div class="content">') == [(-1, 0)]
    assert _depths(scanner, '<div class="message"><div class="clear"></div>') == [(0, 1), (1, 2), (2, 1)]
    assert _depths(scanner, "</div>") == [(1, 0)]
    assert _depths(scanner, "</div>") == [(0, -1)]


def test_change_end_points_past_the_closing_bracket() -> None:
    scanner = TagDepthScanner()
    line = 'x<div id="a">rest'
    (change,) = list(scanner.feed_line(line))
    assert line[: change.end] == 'x<div id="a">'


def test_quoted_attributes_hide_brackets() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, '<span title="<div>x</div>">1</span>') == []
    assert scanner.state is ScanState.OUTSIDE_TAG
    assert scanner.depth == -1


def test_other_tags_and_self_closing_divs_are_ignored() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, "<divider><span><div/></span>") == []


def test_tag_state_survives_line_breaks() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, '<div class="message"') == []
    assert scanner.state is ScanState.INSIDE_TAG
    assert _depths(scanner, ' data-messageid="-M1">') == [(-1, 0)]


def test_title_line_ignores_first_open_bracket_only() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, 'title="Rolling <div class=x>"') == []

    scanner = TagDepthScanner()
    assert _depths(scanner, 'title="a <b> <div>"') == [(-1, 0)]

    scanner = TagDepthScanner()
    assert _depths(scanner, "x <div class=x>") == [(-1, 0)]


def test_title_line_inside_a_tag_keeps_counting() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, '<div class="content"><div class="message"><div class="avatar"') == [(-1, 0), (0, 1)]
    assert scanner.state is ScanState.INSIDE_TAG
    assert _depths(scanner, 'title="Eve"></div></div>') == [(1, 2), (2, 1), (1, 0)]


def test_less_than_with_combining_mark_is_not_a_tag() -> None:
    scanner = TagDepthScanner()
    assert _depths(scanner, '<div class="content"><div class="message">') == [(-1, 0), (0, 1)]
    assert _depths(scanner, "a <\u0338 b</div>") == [(1, 0)]
    assert scanner.state is ScanState.OUTSIDE_TAG


def test_change_end_counts_code_points_after_clusters() -> None:
    scanner = TagDepthScanner()
    line = "e\u0301<div>tail"
    (change,) = list(scanner.feed_line(line))
    assert line[change.end :] == "tail"


def test_starts_with_title_attribute() -> None:
    assert starts_with_title_attribute('  title="Rolling 1d20"')
    assert starts_with_title_attribute("title = 'x'")
    assert not starts_with_title_attribute('<span title="x">')
    assert not starts_with_title_attribute("title without quotes")
