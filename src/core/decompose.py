"""Reattach flat die outcomes to the dice terms of a formula."""

from __future__ import annotations

from typing import Iterable, List, Optional

from core.models import Roll, RollSingle


def decompose(formula: str, outcomes: Iterable[int]) -> Optional[List[RollSingle]]:
    """Split outcomes across the dice terms of formula, left to right.

    Each "NdM" term takes exactly N outcomes, each tagged with M faces; a
    missing N means one die. Modifiers such as the "k3" in "4d6k3" are not
    modeled, so the full N is still consumed.

    Returns:
        The per-die results, or None when the outcome count does not match
        the dice in the formula.
    """

    remaining = iter(outcomes)
    single_rolls: List[RollSingle] = []

    def take(count: int, faces: int) -> bool:
        for _ in range(count):
            outcome = next(remaining, None)
            if outcome is None:
                return False
            single_rolls.append(RollSingle(faces=faces, outcome=outcome))
        return True

    dice_count = ""
    numeral = ""
    for symbol in formula:
        if symbol == "d":
            dice_count = numeral or "1"
            numeral = ""
            continue

        if symbol.isascii() and symbol.isdigit():
            numeral += symbol
            continue

        # Any other character ends the current term.
        if dice_count:
            # Non-numeric faces ("4dF") mid-formula are skipped.
            if numeral and not take(int(dice_count), int(numeral)):
                return None
            dice_count = ""
        numeral = ""

    if dice_count:
        if not numeral:
            return None
        if not take(int(dice_count), int(numeral)):
            return None

    # Leftover outcomes mean the extraction and the formula disagree.
    if next(remaining, None) is not None:
        return None
    return single_rolls


def build_roll(formula: str, outcomes: Iterable[int], total: float) -> Optional[Roll]:
    """Build a Roll from a formula, its flat die outcomes, and its total."""

    single_rolls = decompose(formula, outcomes)
    if single_rolls is None:
        return None
    return Roll(formula=formula, outcome=total, single_rolls=tuple(single_rolls))
