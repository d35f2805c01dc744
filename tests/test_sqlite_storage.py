from __future__ import annotations

from datetime import datetime, timezone

from adapters.sqlite_storage import SQLiteStorage
from core.models import Post, Roll, RollSingle


def _storage(tmp_path) -> SQLiteStorage:
    storage = SQLiteStorage(str(tmp_path / "rollcall.db"))
    storage.init_db()
    return storage


def _roll_post(post_id: str, sender_name: str = "Gimli") -> Post:
    attack = Roll(
        formula="2d20+5",
        outcome=27.0,
        single_rolls=(RollSingle(faces=20, outcome=18), RollSingle(faces=20, outcome=4)),
    )
    return Post(
        id=post_id,
        sender_name=sender_name,
        timestamp=datetime(2021, 3, 14, 19, 2, 0, 123000, tzinfo=timezone.utc),
        raw_content="",
        is_message=False,
        rolls=(attack,),
    )


def test_init_db_is_idempotent(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.init_db()

    assert storage.known_post_ids("Moria") == set()


def test_saved_posts_are_known_per_campaign(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1"))

    assert storage.known_post_ids("Moria") == {"1"}
    assert storage.known_post_ids("Rohan") == set()


def test_saving_twice_keeps_one_copy(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1"))
    storage.save_post("Moria", _roll_post("1"))

    assert len(storage.fetch_rolls()) == 1
    assert len(storage.fetch_single_rolls([("Moria", "Gimli")])) == 2


def test_same_id_in_two_campaigns(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1"))
    storage.save_post("Rohan", _roll_post("1"))

    assert [roll.campaign_name for roll in storage.fetch_rolls()] == ["Moria", "Rohan"]


def test_fetch_single_rolls_by_sender(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1", "Gimli"))
    storage.save_post("Moria", _roll_post("2", "Legolas"))

    assert storage.fetch_single_rolls([("Moria", "Gimli")]) == [
        RollSingle(faces=20, outcome=18),
        RollSingle(faces=20, outcome=4),
    ]
    assert len(storage.fetch_single_rolls([("Moria", "Gimli"), ("Moria", "Legolas")])) == 4
    assert storage.fetch_single_rolls([]) == []


def test_fetch_rolls_restores_timestamps(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1"))

    (roll,) = storage.fetch_rolls()

    assert roll.sender_name == "Gimli"
    assert roll.formula == "2d20+5"
    assert roll.outcome == 27.0
    assert roll.timestamp == datetime(2021, 3, 14, 19, 2, 0, 123000, tzinfo=timezone.utc)


def test_single_rolls_stay_inside_their_campaign(tmp_path) -> None:
    storage = _storage(tmp_path)
    storage.save_post("Moria", _roll_post("1", "Gimli"))
    storage.save_post("Rohan", _roll_post("1", "Gimli"))

    assert len(storage.fetch_single_rolls([("Moria", "Gimli")])) == 2
    assert len(storage.fetch_single_rolls([("Moria", "Gimli"), ("Rohan", "Gimli")])) == 4
    assert storage.fetch_single_rolls([("Isengard", "Gimli")]) == []
