"""Application entry point for rollcall."""

from __future__ import annotations

import argparse
import logging
import os
from logging.handlers import RotatingFileHandler
from typing import Optional

from art import tprint

import settings
from adapters.log_files import open_log_source
from adapters.sqlite_storage import SQLiteStorage
from core.config import player_for_sender, senders_for_player
from core.dicemath import evaluate
from core.processor import IngestionProcessor, find_unmapped_senders
from core.simulation import Superlative, SimulationEngine

NAME = "ROLLCALL"
FONT = "tarty-1"


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


def _transcript_file_handler(file_cfg: dict) -> RotatingFileHandler:
    path = file_cfg.get("path", "logs/rollcall.log")
    if not os.path.isabs(path):
        path = os.path.join(settings.PROJECT_ROOT, path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(verbose: bool = False) -> None:
    """Install handlers from the "logging" config section.

    --verbose forces DEBUG, which also reports every transcript fragment the
    readers skip.
    """

    config = settings.LOGGING or {}
    if not config.get("enabled") and not verbose:
        return

    level = logging.DEBUG if verbose else getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = logging.Formatter(
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    if config.get("console") or verbose:
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file") or {}
    if file_cfg.get("enabled"):
        handlers.append(_transcript_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)


def _build_storage() -> SQLiteStorage:
    storage = SQLiteStorage(settings.DB_PATH)
    storage.init_db()
    return storage


def _ingest() -> None:
    logger = logging.getLogger(__name__)
    storage = _build_storage()
    processor = IngestionProcessor(storage)

    logger.info("%s campaigns are configured", len(settings.CAMPAIGNS))
    # Campaigns are independent; each transcript is drained in one pass.
    for campaign in settings.CAMPAIGNS:
        path = os.path.join(settings.CHATLOGS_DIR, campaign.log)
        with open_log_source(path, campaign.timezone_offset) as source:
            report = processor.ingest(campaign.name, source)
        print(f"{campaign.name}: {report.saved:,} new posts ({report.skipped:,} already stored)")


def _senders() -> None:
    found_any = False
    for campaign in settings.CAMPAIGNS:
        path = os.path.join(settings.CHATLOGS_DIR, campaign.log)
        with open_log_source(path, campaign.timezone_offset) as source:
            unmapped = find_unmapped_senders(campaign, source)
        for sender in unmapped:
            found_any = True
            print(f"{campaign.name}: {sender}")
    if not found_any:
        print("Every sender is mapped to a player")


def _roll(expression: str) -> None:
    result = evaluate(expression)
    if result is None:
        print(f"Could not interpret {expression!r}")
        return
    print(f"{expression}: {result:g}")


def _odds(expression: str, threshold: float, trials: Optional[int]) -> None:
    engine = SimulationEngine(_build_storage(), settings.SIMULATION)
    estimate = engine.odds(expression, threshold, trials)
    print(
        f"{estimate.passes:,} of {estimate.trials:,} rolls of {expression} reached {threshold:g} "
        f"({estimate.percent:.2f}%)"
    )


def _luck(player: str, repetitions: Optional[int]) -> None:
    engine = SimulationEngine(_build_storage(), settings.SIMULATION)
    report = engine.luck(senders_for_player(settings.CAMPAIGNS, player), repetitions)
    if report is None:
        print(f"No rolls recorded for {player}")
        return
    print(f"Rolled {report.rolled:,} dice")
    print(f"Beat {player} {report.beaten:,} times ({report.beaten_percent}%)")
    print(f"Tied {report.tied:,} times ({report.tied_percent}%)")
    print(f"Luck: {report.percent_of_perfect}% of perfect")


def _print_superlative(found: Optional[Superlative], label: str) -> None:
    if found is None:
        print("No reproducible rolls recorded")
        return
    roll = found.roll
    player = player_for_sender(settings.CAMPAIGNS, roll.campaign_name, roll.sender_name)
    print(
        f"{label}: {player} in {roll.campaign_name!r} at {roll.timestamp.isoformat()} "
        f"rolled {roll.formula} = {roll.outcome:g} (~{found.percent:.3f}% chance)"
    )


def _superlative(worst: bool, precise: bool) -> None:
    engine = SimulationEngine(_build_storage(), settings.SIMULATION)
    if worst:
        _print_superlative(engine.worst_roll(precise), "Worst roll")
    else:
        _print_superlative(engine.best_roll(precise), "Best roll")


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="rollcall")
    parser.add_argument("--verbose", action="store_true", help="Log at DEBUG level")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("ingest", help="Read every configured campaign log into the database")

    subparsers.add_parser("senders", help="List transcript senders no alias maps to a player")

    roll_parser = subparsers.add_parser("roll", help="Evaluate a dice expression")
    roll_parser.add_argument("expression")

    odds_parser = subparsers.add_parser("odds", help="Estimate the odds of reaching a value")
    odds_parser.add_argument("expression")
    odds_parser.add_argument("threshold", type=float)
    odds_parser.add_argument("--trials", type=int, default=None)

    luck_parser = subparsers.add_parser("luck", help="Replay a player's dice against their history")
    luck_parser.add_argument("player")
    luck_parser.add_argument("--repetitions", type=int, default=None)

    for name, help_text in (("worst", "Find the least likely bad roll"), ("best", "Find the least likely good roll")):
        superlative_parser = subparsers.add_parser(name, help=help_text)
        superlative_parser.add_argument("--precise", action="store_true")

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    if args.command == "senders":
        _senders()
        return
    if args.command == "roll":
        _roll(args.expression)
        return
    if args.command == "odds":
        _odds(args.expression, args.threshold, args.trials)
        return
    if args.command == "luck":
        _luck(args.player, args.repetitions)
        return
    if args.command in {"worst", "best"}:
        _superlative(worst=args.command == "worst", precise=args.precise)
        return

    _print_banner()
    _ingest()


if __name__ == "__main__":
    main()
