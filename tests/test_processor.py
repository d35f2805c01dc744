from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from core.config import CampaignConfig
from core.models import Post, Roll, RollSingle
from core.processor import IngestionProcessor, find_unmapped_senders


class FakeStorage:
    def __init__(self) -> None:
        self.saved: list[tuple[str, Post]] = []
        self.known: dict[str, set[str]] = {}

    def known_post_ids(self, campaign_name: str) -> set[str]:
        return set(self.known.get(campaign_name, set()))

    def save_post(self, campaign_name: str, post: Post) -> None:
        self.saved.append((campaign_name, post))
        self.known.setdefault(campaign_name, set()).add(post.id)


class FakeSource:
    def __init__(self, posts: list[Post]) -> None:
        self._posts = list(posts)

    def next_post(self) -> Optional[Post]:
        if not self._posts:
            return None
        return self._posts.pop(0)

    def __iter__(self):
        while True:
            post = self.next_post()
            if post is None:
                return
            yield post


def _post(post_id: str, rolls: tuple[Roll, ...] = (), sender_name: str = "Gimli") -> Post:
    return Post(
        id=post_id,
        sender_name=sender_name,
        timestamp=datetime(2021, 3, 14, 19, 0, tzinfo=timezone.utc),
        raw_content="hello",
        is_message=not rolls,
        rolls=rolls,
    )


def test_saves_every_new_post() -> None:
    storage = FakeStorage()
    attack = Roll(formula="1d20", outcome=12.0, single_rolls=(RollSingle(faces=20, outcome=12),))
    source = FakeSource([_post("1"), _post("2", rolls=(attack,))])

    report = IngestionProcessor(storage).ingest("Moria", source)

    assert [post.id for _, post in storage.saved] == ["1", "2"]
    assert report.read == 2
    assert report.saved == 2
    assert report.skipped == 0
    assert report.messages == 1
    assert report.rolls == 1


def test_skips_posts_already_stored() -> None:
    storage = FakeStorage()
    storage.known["Moria"] = {"1"}
    source = FakeSource([_post("1"), _post("2")])

    report = IngestionProcessor(storage).ingest("Moria", source)

    assert [post.id for _, post in storage.saved] == ["2"]
    assert report.skipped == 1


def test_known_ids_are_per_campaign() -> None:
    storage = FakeStorage()
    storage.known["Rohan"] = {"1"}

    report = IngestionProcessor(storage).ingest("Moria", FakeSource([_post("1")]))

    assert report.saved == 1
    assert storage.saved[0][0] == "Moria"


def test_duplicate_ids_within_one_transcript_are_saved_once() -> None:
    storage = FakeStorage()
    source = FakeSource([_post("1"), _post("1")])

    report = IngestionProcessor(storage).ingest("Moria", source)

    assert report.saved == 1
    assert report.skipped == 1


def test_find_unmapped_senders() -> None:
    campaign = CampaignConfig(
        name="Moria",
        log="r20_moria.html",
        timezone_offset=None,
        aliases={"Sam": ["Gimli"]},
    )
    source = FakeSource(
        [
            _post("1", sender_name="Gimli"),
            _post("2", sender_name="Legolas"),
            _post("3", sender_name=""),
            _post("4", sender_name="Boromir"),
            _post("5", sender_name="Legolas"),
        ]
    )

    assert find_unmapped_senders(campaign, source) == ["Legolas", "Boromir"]
