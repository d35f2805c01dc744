from __future__ import annotations

from datetime import datetime, timezone

from core.config import (
    SimulationConfig,
    build_campaigns,
    build_simulation_config,
    is_mapped_sender,
    player_for_sender,
    senders_for_player,
)
from core.timestamps import from_epoch_millis, localize


def _campaigns():
    return build_campaigns(
        {
            "Moria": {
                "log": "r20_moria.html",
                "timezone_offset": -5,
                "aliases": [
                    {"player": "Sam", "senders": ["Gimli", "Gimli (GM)"]},
                    {"player": "Ana", "senders": ["Legolas"]},
                ],
            },
            "Rohan": {"log": "fnd_rohan.db", "aliases": [{"player": "Sam", "senders": ["Eomer"]}]},
            "Paused": {"log": "fg_paused.html", "enabled": False},
            "Unfinished": {"timezone_offset": 1},
        }
    )


def test_build_campaigns_skips_disabled_and_incomplete_entries() -> None:
    campaigns = _campaigns()

    assert [campaign.name for campaign in campaigns] == ["Moria", "Rohan"]
    assert campaigns[0].timezone_offset == -5
    assert campaigns[1].timezone_offset is None
    assert campaigns[0].aliases["Sam"] == ["Gimli", "Gimli (GM)"]


def test_senders_for_player_spans_campaigns() -> None:
    campaigns = _campaigns()

    assert senders_for_player(campaigns, "Sam") == [
        ("Moria", "Gimli"),
        ("Moria", "Gimli (GM)"),
        ("Rohan", "Eomer"),
    ]
    assert senders_for_player(campaigns, "Ana") == [("Moria", "Legolas")]


def test_unaliased_player_is_looked_up_by_name_in_every_campaign() -> None:
    assert senders_for_player(_campaigns(), "Frodo") == [("Moria", "Frodo"), ("Rohan", "Frodo")]


def test_is_mapped_sender_is_per_campaign() -> None:
    moria, rohan = _campaigns()

    assert is_mapped_sender(moria, "Legolas")
    assert not is_mapped_sender(rohan, "Legolas")
    assert not is_mapped_sender(moria, "Sam")


def test_player_for_sender() -> None:
    campaigns = _campaigns()

    assert player_for_sender(campaigns, "Moria", "Legolas") == "Ana"
    assert player_for_sender(campaigns, "Rohan", "Legolas") == "Legolas"


def test_simulation_config_defaults() -> None:
    assert build_simulation_config({}) == SimulationConfig()

    config = build_simulation_config({"quick_trials": "250"})
    assert config.quick_trials == 250
    assert config.precise_trials == SimulationConfig().precise_trials


def test_localize_shifts_local_time_to_utc() -> None:
    naive = datetime(2021, 3, 3, 21, 15)

    assert localize(naive, None) == datetime(2021, 3, 3, 21, 15, tzinfo=timezone.utc)
    assert localize(naive, -6) == datetime(2021, 3, 4, 3, 15, tzinfo=timezone.utc)
    assert localize(naive, 2) == datetime(2021, 3, 3, 19, 15, tzinfo=timezone.utc)


def test_from_epoch_millis() -> None:
    assert from_epoch_millis(1000) == datetime(1970, 1, 1, 0, 0, 1, tzinfo=timezone.utc)
    assert from_epoch_millis(1617235200123).microsecond == 123000
