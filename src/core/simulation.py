"""Monte-Carlo simulations built on the dice evaluator.

Every trial is an independent evaluation of an immutable expression string;
results are combined with plain reductions (sums over trial outcomes), so
there is no shared counter between trials.
"""

from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from core.config import SimulationConfig
from core.dicemath import evaluate
from core.models import HistoricalRoll, RollSingle
from core.ports import RollHistoryPort

LOGGER = logging.getLogger(__name__)

# Formula fragments the evaluator cannot reproduce: keep/drop, reroll, fudge dice.
UNSUPPORTED_FRAGMENTS = ("k", "ro", "dF")


@dataclass(frozen=True)
class OddsEstimate:
    expression: str
    threshold: float
    trials: int
    passes: int
    percent: float


@dataclass(frozen=True)
class LuckReport:
    """Outcome of replaying a player's dice against their recorded results.

    "beaten" counts simulated rolls that came out higher than the recorded
    outcome, so a lower beaten rate means the player rolled well.
    """

    rolled: int
    beaten: int
    tied: int
    lost: int
    beaten_percent: float
    tied_percent: float
    percent_of_perfect: float


@dataclass(frozen=True)
class Superlative:
    roll: HistoricalRoll
    percent: float


def _trial_passes(expression: str, threshold: float, rng: Optional[random.Random]) -> bool:
    result = evaluate(expression, rng)
    return result is not None and result >= threshold


def _count_passes(expression: str, threshold: float, trials: int, rng: Optional[random.Random]) -> int:
    return sum(1 for _ in range(trials) if _trial_passes(expression, threshold, rng))


def estimate_odds(
    expression: str,
    threshold: float,
    trials: int,
    rng: Optional[random.Random] = None,
) -> OddsEstimate:
    """Estimate the chance that expression evaluates to threshold or more.

    Trials whose evaluation fails never count as a pass.
    """

    if trials <= 0:
        raise ValueError(f"trials must be positive, got {trials}")
    passes = _count_passes(expression, threshold, trials, rng)
    return OddsEstimate(
        expression=expression,
        threshold=threshold,
        trials=trials,
        passes=passes,
        percent=passes / trials * 100.0,
    )


def _replay_die(single: RollSingle, repetitions: int, rng: Optional[random.Random]) -> tuple[int, int]:
    """Return (beaten, tied) for one die replayed repetitions times."""

    expression = f"1d{single.faces}"
    beaten = 0
    tied = 0
    for _ in range(repetitions):
        result = evaluate(expression, rng)
        if result is None:
            continue
        if result > single.outcome:
            beaten += 1
        elif result == single.outcome:
            tied += 1
    return beaten, tied


def compare_luck(
    single_rolls: Iterable[RollSingle],
    repetitions: int,
    rng: Optional[random.Random] = None,
) -> Optional[LuckReport]:
    """Replay every recorded die and compare against what was really rolled.

    Returns None when there is no roll history to compare.
    """

    if repetitions <= 0:
        raise ValueError(f"repetitions must be positive, got {repetitions}")

    rolled = 0
    beaten = 0
    tied = 0
    for single in single_rolls:
        die_beaten, die_tied = _replay_die(single, repetitions, rng)
        rolled += repetitions
        beaten += die_beaten
        tied += die_tied

    if rolled == 0:
        return None

    beaten_rate = beaten / rolled
    tied_rate = tied / rolled
    return LuckReport(
        rolled=rolled,
        beaten=beaten,
        tied=tied,
        lost=rolled - beaten - tied,
        beaten_percent=round(beaten_rate * 100, 2),
        tied_percent=round(tied_rate * 100, 2),
        percent_of_perfect=100 - round((beaten_rate + tied_rate / 2) * 100, 2),
    )


def is_reproducible(formula: str) -> bool:
    """Whether the evaluator can re-simulate a recorded formula faithfully."""

    if "d" not in formula:
        return False
    return not any(fragment in formula for fragment in UNSUPPORTED_FRAGMENTS)


def _percent_as_extreme(
    roll: HistoricalRoll,
    trials: int,
    worst: bool,
    rng: Optional[random.Random],
) -> float:
    if worst:
        # Chance of doing no better than the recorded outcome.
        better = _count_passes(roll.formula, roll.outcome + 1, trials, rng)
        return 100.0 - better / trials * 100.0
    return _count_passes(roll.formula, roll.outcome, trials, rng) / trials * 100.0


def find_superlative(
    rolls: Iterable[HistoricalRoll],
    trials: int,
    worst: bool,
    rng: Optional[random.Random] = None,
) -> Optional[Superlative]:
    """Find the single least likely recorded roll, worst or best.

    Unreproducible formulas are ignored. Returns None if nothing qualifies.
    """

    if trials <= 0:
        raise ValueError(f"trials must be positive, got {trials}")

    candidates = (
        Superlative(roll=roll, percent=_percent_as_extreme(roll, trials, worst, rng))
        for roll in rolls
        if _can_simulate(roll.formula, rng)
    )
    return min(candidates, key=lambda candidate: candidate.percent, default=None)


def _can_simulate(formula: str, rng: Optional[random.Random]) -> bool:
    # "d20+3" and "1d20[fire]" pass the fragment check but never evaluate.
    if not is_reproducible(formula):
        return False
    if evaluate(formula, rng) is None:
        LOGGER.debug("Skipping %r: the evaluator cannot replay it", formula)
        return False
    return True


class SimulationEngine:
    """Runs simulations against persisted roll history."""

    def __init__(
        self,
        history: RollHistoryPort,
        config: SimulationConfig,
        rng: Optional[random.Random] = None,
    ) -> None:
        self._history = history
        self._config = config
        self._rng = rng

    def odds(self, expression: str, threshold: float, trials: Optional[int] = None) -> OddsEstimate:
        estimate = estimate_odds(expression, threshold, trials or self._config.odds_trials, self._rng)
        LOGGER.info(
            "Odds for %s >= %s: %s/%s passes",
            expression,
            threshold,
            estimate.passes,
            estimate.trials,
        )
        return estimate

    def luck(
        self,
        senders: Iterable[Tuple[str, str]],
        repetitions: Optional[int] = None,
    ) -> Optional[LuckReport]:
        """Replay the dice of (campaign, sender) pairs against their history."""

        single_rolls = self._history.fetch_single_rolls(senders)
        LOGGER.info("Replaying %s recorded dice", len(single_rolls))
        return compare_luck(single_rolls, repetitions or self._config.luck_repetitions, self._rng)

    def worst_roll(self, precise: bool = False) -> Optional[Superlative]:
        return self._superlative(worst=True, precise=precise)

    def best_roll(self, precise: bool = False) -> Optional[Superlative]:
        return self._superlative(worst=False, precise=precise)

    def _superlative(self, worst: bool, precise: bool) -> Optional[Superlative]:
        trials = self._config.precise_trials if precise else self._config.quick_trials
        rolls = self._history.fetch_rolls()
        LOGGER.info("Searching %s recorded rolls with %s trials each", len(rolls), trials)
        return find_superlative(rolls, trials, worst=worst, rng=self._rng)
