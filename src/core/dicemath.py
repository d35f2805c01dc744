"""Dice and arithmetic expression evaluator.

Supported operators, loosest to tightest: ``+ -``, ``* /``, ``^``, ``d``.
Operands are decimal numbers and parenthesized groups. Every other
character is skipped, so a request embedded in chat ("please roll 2d20
now") still evaluates. The flip side is that digits next to unrelated words
are absorbed into the numeral being read.

Examples: 1d20+5, 2(3+4), 4d6*10, (1+2)^2.
"""

from __future__ import annotations

import math
import random
from typing import List, Optional

PRECEDENCE: dict[str, int] = {
    "+": 1,
    "-": 1,
    "*": 2,
    "/": 2,
    "^": 3,
    "d": 4,
}

_NUMERAL_CHARS = frozenset("0123456789.")
_MAX_U32 = 2**32 - 1
_MIN_I64 = -(2**63)
_MAX_I64 = 2**63 - 1


def _round_half_away(value: float) -> float:
    if not math.isfinite(value):
        return value
    return math.copysign(math.floor(abs(value) + 0.5), value)


def _is_numeral(token: str) -> bool:
    return token[0] in _NUMERAL_CHARS


def _parse_numeral(token: str) -> Optional[float]:
    try:
        return float(token)
    except ValueError:
        return None


def _tokenize(expr: str) -> List[str]:
    """Split expr into numerals, operators and parentheses.

    Skipped characters do not end a numeral: "1 2" reads as 12.
    """

    tokens: List[str] = []
    numeral: List[str] = []
    for symbol in expr:
        if symbol in _NUMERAL_CHARS:
            numeral.append(symbol)
            continue
        if symbol in PRECEDENCE or symbol in "()":
            if numeral:
                tokens.append("".join(numeral))
                numeral = []
            tokens.append(symbol)
    if numeral:
        tokens.append("".join(numeral))
    return tokens


def _power_fits_i64(base_value: float, exponent_value: float) -> bool:
    """Check that ceil(base)^ceil(exponent) fits a signed 64-bit integer."""

    if math.isnan(base_value):
        base = 0
    elif base_value >= _MAX_I64:
        base = _MAX_I64
    elif base_value <= _MIN_I64:
        base = _MIN_I64
    else:
        base = math.ceil(base_value)
    exponent = math.ceil(exponent_value)

    if base in (-1, 0, 1):
        return True
    # |base| >= 2 overflows within 64 steps, so the loop stays short.
    result = 1
    for _ in range(exponent):
        result *= base
        if not _MIN_I64 <= result <= _MAX_I64:
            return False
    return True


def _power(base: float, exponent: float) -> Optional[float]:
    if not 0 < exponent < _MAX_U32:
        return None
    if not _power_fits_i64(base, exponent):
        return None
    try:
        return math.pow(base, exponent)
    except (ValueError, OverflowError):
        return None


def _roll(count_value: float, faces_value: float, rng: Optional[random.Random]) -> Optional[float]:
    # Single-face dice (including "-1 faces") never reach the dice generator.
    if _round_half_away(abs(faces_value)) == 1:
        return count_value * faces_value

    count = _round_half_away(count_value)
    faces = _round_half_away(faces_value)
    if math.isnan(count) or math.isnan(faces):
        return None
    if count > _MAX_U32 or faces > _MAX_U32 or count < 0 or faces <= 0:
        return None

    source = rng or random
    sides = int(faces)
    return float(sum(source.randint(1, sides) for _ in range(int(count))))


def evaluate_operator(
    left: float,
    right: float,
    operator: str,
    rng: Optional[random.Random] = None,
) -> Optional[float]:
    """Apply one binary operator, returning None when the result is undefined."""

    if operator == "+":
        return left + right
    if operator == "-":
        return left - right
    if operator == "*":
        return left * right
    if operator == "/":
        if right == 0:
            return None
        return left / right
    if operator == "^":
        return _power(left, right)
    if operator == "d":
        return _roll(left, right, rng)
    return None


class _Parser:
    """Precedence-climbing parser that evaluates while it reads."""

    def __init__(self, tokens: List[str], rng: Optional[random.Random]) -> None:
        self._tokens = tokens
        self._position = 0
        self._rng = rng

    def _peek(self) -> Optional[str]:
        if self._position < len(self._tokens):
            return self._tokens[self._position]
        return None

    def _advance(self) -> None:
        self._position += 1

    def expression(self, min_precedence: int = 1) -> Optional[float]:
        left = self._operand()
        if left is None:
            return None

        while True:
            operator = self._peek()
            precedence = PRECEDENCE.get(operator) if operator else None
            # A ")" or a looser operator hands control back to the caller.
            if precedence is None or precedence < min_precedence:
                return left
            self._advance()
            right = self.expression(precedence + 1)
            if right is None:
                return None
            left = evaluate_operator(left, right, operator, self._rng)
            if left is None:
                return None

    def _operand(self) -> Optional[float]:
        token = self._peek()
        value: Optional[float] = None
        if token is not None and _is_numeral(token):
            self._advance()
            value = _parse_numeral(token)
            if value is None:
                return None
        elif token != "(":
            return None

        # "2(3+4)" multiplies; "(1)(2)" chains the same way.
        while self._peek() == "(":
            self._advance()
            group = self.expression()
            if group is None:
                return None
            if self._peek() == ")":
                self._advance()
            value = group if value is None else evaluate_operator(value, group, "*")
            if value is None:
                return None
            following = self._peek()
            if following is not None and _is_numeral(following):
                return None

        return value


def evaluate(expr: str, rng: Optional[random.Random] = None) -> Optional[float]:
    """Evaluate a dice/arithmetic expression.

    Args:
        expr: Expression text, possibly surrounded by free-form chat.
        rng: Random source for dice; defaults to the random module.

    Returns:
        The numeric result, or None if the expression is malformed or
        asks for something undefined (division by zero, invalid dice).
    """

    try:
        return _Parser(_tokenize(expr), rng).expression()
    except RecursionError:
        return None
