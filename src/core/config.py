"""Core configuration dataclasses.

We keep file loading outside the core, but these dataclasses define the
shape the core expects so adapters and app layers can build safely.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Tuple


@dataclass(frozen=True)
class CampaignConfig:
    """One campaign and the transcript that feeds it."""

    name: str
    log: str
    timezone_offset: Optional[int]
    # player name -> sender names that player posted under
    aliases: dict[str, List[str]] = field(default_factory=dict)


@dataclass(frozen=True)
class SimulationConfig:
    """Trial counts used by the simulation engine."""

    odds_trials: int = 100_000
    luck_repetitions: int = 10
    quick_trials: int = 1_000
    precise_trials: int = 100_000


def build_campaigns(campaigns_config: dict) -> List[CampaignConfig]:
    """Normalize campaign configs keyed by campaign name.

    Disabled campaigns and entries without a log file are dropped so the
    ingestion loop never has to second-guess the config.
    """

    campaigns: List[CampaignConfig] = []
    for name, entry in campaigns_config.items():
        if not entry.get("enabled", True):
            continue
        log = entry.get("log")
        if not log:
            continue
        raw_offset = entry.get("timezone_offset")
        aliases: dict[str, List[str]] = {}
        for alias in entry.get("aliases", []) or []:
            player = alias.get("player")
            if not player:
                continue
            aliases.setdefault(player, []).extend(alias.get("senders", []) or [])
        campaigns.append(
            CampaignConfig(
                name=name,
                log=log,
                timezone_offset=int(raw_offset) if raw_offset is not None else None,
                aliases=aliases,
            )
        )
    return campaigns


def build_simulation_config(simulation_config: dict) -> SimulationConfig:
    """Build a SimulationConfig, falling back to defaults for missing keys."""

    defaults = SimulationConfig()
    return SimulationConfig(
        odds_trials=int(simulation_config.get("odds_trials", defaults.odds_trials)),
        luck_repetitions=int(simulation_config.get("luck_repetitions", defaults.luck_repetitions)),
        quick_trials=int(simulation_config.get("quick_trials", defaults.quick_trials)),
        precise_trials=int(simulation_config.get("precise_trials", defaults.precise_trials)),
    )


def senders_for_player(campaigns: Iterable[CampaignConfig], player: str) -> List[Tuple[str, str]]:
    """Return (campaign name, sender name) pairs mapped to player.

    Sender names are only meaningful inside their own campaign. A player
    with no aliases anywhere is looked up under their own name in every
    campaign.
    """

    campaigns = list(campaigns)
    senders: List[Tuple[str, str]] = []
    for campaign in campaigns:
        for sender in campaign.aliases.get(player, []):
            pair = (campaign.name, sender)
            if pair not in senders:
                senders.append(pair)
    return senders or [(campaign.name, player) for campaign in campaigns]


def is_mapped_sender(campaign: CampaignConfig, sender: str) -> bool:
    return any(sender in senders for senders in campaign.aliases.values())


def player_for_sender(campaigns: Iterable[CampaignConfig], campaign_name: str, sender: str) -> str:
    """Resolve a sender to its configured player, defaulting to the sender."""

    for campaign in campaigns:
        if campaign.name != campaign_name:
            continue
        for player, senders in campaign.aliases.items():
            if sender in senders:
                return player
    return sender
