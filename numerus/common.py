"""
Shared value types for NUMERUS.

The rule kinds replace the sentinel base values used by other rule-based
number formatters: a rule is either a normal rule keyed on a non-negative
base value, or one of the four special kinds.
"""

import math
from enum import Enum
from fractions import Fraction
from typing import Union

# Type aliases
NumericType = Union[int, float, Fraction]


class RuleKind(Enum):
    """What a rule's descriptor selects on."""

    NORMAL = "normal"
    NEGATIVE_NUMBER = "-x"
    IMPROPER_FRACTION = "x.x"
    PROPER_FRACTION = "0.x"
    MASTER = "x.0"

    @property
    def is_fraction(self) -> bool:
        return self in FRACTION_KINDS


FRACTION_KINDS = (RuleKind.IMPROPER_FRACTION, RuleKind.PROPER_FRACTION, RuleKind.MASTER)


class ParsePosition:
    """A mutable cursor into the text being parsed."""

    __slots__ = ('index',)

    def __init__(self, index: int = 0):
        self.index = index

    def __eq__(self, other):
        if isinstance(other, ParsePosition):
            return self.index == other.index
        return False

    def __repr__(self) -> str:
        return f"ParsePosition({self.index})"


class TextBuffer:
    """
    Output text that rules insert into at arbitrary positions.

    Rules write their literal text first and then let their substitutions
    insert at offsets inside it, so a plain append-only builder isn't enough.
    """

    __slots__ = ('_text',)

    def __init__(self, text: str = ""):
        self._text = text

    def insert(self, pos: int, text: str) -> None:
        self._text = self._text[:pos] + text + self._text[pos:]

    def __len__(self) -> int:
        return len(self._text)

    def __str__(self) -> str:
        return self._text

    def __repr__(self) -> str:
        return f"TextBuffer({self._text!r})"


def round_half_up(value: NumericType) -> int:
    """Round to the nearest integer, halves going up (Java's Math.round)."""
    if isinstance(value, int):
        return value
    if isinstance(value, Fraction):
        return math.floor(value + Fraction(1, 2))
    return math.floor(value + 0.5)


def normalize_number(value: NumericType) -> NumericType:
    """Collapse integral floats and fractions to int."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, Fraction):
        return value.numerator if value.denominator == 1 else value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value
