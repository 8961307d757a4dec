"""
Substitutions: the parts of a rule's text that are filled in by formatting
some transformation of the number with another rule set (or rule).

Token syntax inside rule text:
    <<          multiplier / integral part / numerator (owning rule set)
    <%name<     same, using the named rule set
    >>          modulus / fractional part / absolute value (owning rule set)
    >%name>     same, using the named rule set
    >>>         modulus, formatted with the preceding rule directly
    =%name=     the same value, formatted with the named rule set

Which class a token becomes depends on the kind of rule it appears in and
on whether the owning rule set is a fraction rule set.
"""

import math
from decimal import Decimal, localcontext
from fractions import Fraction
from typing import List, Optional

from .common import (
    RuleKind, ParsePosition, TextBuffer, NumericType,
    round_half_up, normalize_number,
)
from .exceptions import RuleSyntaxError


class Substitution:
    """
    Base class for substitutions.

    Subclasses override transform_number() (number -> value handed to the
    rule set), compose_rule_value() (parsed value -> contribution to the
    rule's result) and calc_upper_bound() (limit on the base values a rule
    set may match while parsing this substitution).
    """

    token_char = ""

    def __init__(self, pos: int, rule, rule_set, description: str):
        self.pos = pos
        self.rule = rule

        inner = description[1:-1]
        if not inner or inner == self.token_char:
            self.rule_set = rule_set
        elif inner[0] == '%':
            try:
                self.rule_set = rule.formatter.find_rule_set(inner)
            except KeyError:
                raise RuleSyntaxError(f"Unknown rule set {inner} in {description}") from None
        elif inner[0] in '#0':
            raise RuleSyntaxError(
                f"Decimal pattern substitutions are not supported: {description}"
            )
        else:
            raise RuleSyntaxError(f"Illegal substitution syntax: {description}")

    # ------------------------------------------------------------------
    # formatting
    # ------------------------------------------------------------------

    def do_substitution(self, number: NumericType, buffer: TextBuffer,
                        position: int, depth: int) -> None:
        value = normalize_number(self.transform_number(number))
        self.rule_set.format(value, buffer, position + self.pos, depth)

    def transform_number(self, number: NumericType) -> NumericType:
        return number

    # ------------------------------------------------------------------
    # parsing
    # ------------------------------------------------------------------

    def do_parse(self, text: str, parse_position: ParsePosition,
                 base_value: NumericType, upper_bound: float) -> NumericType:
        upper_bound = self.calc_upper_bound(upper_bound)
        result = self.rule_set.parse(text, parse_position, upper_bound)
        if parse_position.index != 0:
            return normalize_number(self.compose_rule_value(result, base_value))
        return result

    def compose_rule_value(self, new_rule_value: NumericType,
                           old_rule_value: NumericType) -> NumericType:
        return new_rule_value

    def calc_upper_bound(self, old_upper_bound: float) -> float:
        return old_upper_bound

    # ------------------------------------------------------------------
    # boilerplate
    # ------------------------------------------------------------------

    def is_modulus_substitution(self) -> bool:
        return False

    def _rule_set_name(self) -> Optional[str]:
        return self.rule_set.name if self.rule_set is not None else None

    def __eq__(self, other):
        if type(self) is not type(other):
            return False
        return self.pos == other.pos and self._rule_set_name() == other._rule_set_name()

    def __str__(self) -> str:
        return f"{self.token_char}{self._rule_set_name() or ''}{self.token_char}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.pos}, {str(self)!r})"


class SameValueSubstitution(Substitution):
    """=%name= : format the same number with another rule set."""

    token_char = "="


class MultiplierSubstitution(Substitution):
    """<< in a normal rule: the number divided by the rule's divisor."""

    token_char = "<"

    @property
    def divisor(self) -> int:
        return self.rule.divisor

    def transform_number(self, number):
        if isinstance(number, int):
            return number // self.divisor
        return math.floor(number / self.divisor)

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return new_rule_value * self.divisor

    def calc_upper_bound(self, old_upper_bound):
        return self.divisor


class ModulusSubstitution(Substitution):
    """>> in a normal rule: the remainder after dividing by the divisor."""

    token_char = ">"

    def __init__(self, pos: int, rule, predecessor, rule_set, description: str):
        super().__init__(pos, rule, rule_set, description)
        # >>> bypasses rule selection and reuses the preceding rule
        self.rule_to_use = predecessor if description == ">>>" else None

    @property
    def divisor(self) -> int:
        return self.rule.divisor

    def do_substitution(self, number, buffer, position, depth):
        if self.rule_to_use is None:
            super().do_substitution(number, buffer, position, depth)
        else:
            value = normalize_number(self.transform_number(number))
            self.rule_to_use.do_format(value, buffer, position + self.pos, depth)

    def transform_number(self, number):
        if isinstance(number, int):
            return number % self.divisor
        return math.floor(number % self.divisor)

    def do_parse(self, text, parse_position, base_value, upper_bound):
        if self.rule_to_use is None:
            return super().do_parse(text, parse_position, base_value, upper_bound)
        result = self.rule_to_use.do_parse(text, parse_position, False, upper_bound)
        if parse_position.index != 0:
            return normalize_number(self.compose_rule_value(result, base_value))
        return result

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return (old_rule_value - (old_rule_value % self.divisor)) + new_rule_value

    def calc_upper_bound(self, old_upper_bound):
        return self.divisor

    def is_modulus_substitution(self) -> bool:
        return True

    def __eq__(self, other):
        if not super().__eq__(other):
            return False
        return (self.rule_to_use is None) == (other.rule_to_use is None)

    def __str__(self) -> str:
        if self.rule_to_use is not None:
            return ">>>"
        return super().__str__()


class IntegralPartSubstitution(Substitution):
    """<< in a fraction rule (x.x, 0.x, x.0): the integral part."""

    token_char = "<"

    def transform_number(self, number):
        if isinstance(number, int):
            return number
        return math.floor(number)

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return new_rule_value + old_rule_value

    def calc_upper_bound(self, old_upper_bound):
        return math.inf


class FractionalPartSubstitution(Substitution):
    """
    >> in a fraction rule (x.x, 0.x, x.0): the fractional part.

    With no rule set name (or the owning rule set's own name) the digits
    after the decimal point are formatted one at a time, separated by
    spaces. Otherwise the named rule set must be a fraction rule set and
    receives the fractional part as a whole.
    """

    token_char = ">"

    def __init__(self, pos: int, rule, rule_set, description: str):
        super().__init__(pos, rule, rule_set, description)
        self.by_digits = description in (">>", ">>>") or self.rule_set is rule_set
        self.use_spaces = description != ">>>"
        if not self.by_digits:
            self.rule_set.make_into_fraction_rule_set()

    def do_substitution(self, number, buffer, position, depth):
        if not self.by_digits:
            super().do_substitution(number, buffer, position, depth)
            return

        # digits are inserted last to first at the same position
        pad = False
        for digit in reversed(fraction_digits(number)):
            if pad and self.use_spaces:
                buffer.insert(position + self.pos, " ")
            else:
                pad = True
            self.rule_set.format(digit, buffer, position + self.pos, depth)

    def transform_number(self, number):
        if isinstance(number, int):
            return 0
        return number - math.floor(number)

    def do_parse(self, text, parse_position, base_value, upper_bound):
        if not self.by_digits:
            return super().do_parse(text, parse_position, base_value, upper_bound)

        work_text = text
        work_pos = ParsePosition(1)
        digits: List[str] = []
        while work_text and work_pos.index != 0:
            work_pos.index = 0
            digit = self.rule_set.parse(work_text, work_pos, 10)
            if work_pos.index != 0:
                digits.append(str(int(digit) % 10))
                parse_position.index += work_pos.index
                work_text = work_text[work_pos.index:]
                while work_text and work_text[0] == " ":
                    work_text = work_text[1:]
                    parse_position.index += 1

        result = float(Decimal("0." + "".join(digits))) if digits else 0.0
        return self.compose_rule_value(result, base_value)

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return new_rule_value + old_rule_value

    def calc_upper_bound(self, old_upper_bound):
        return 0

    def __str__(self) -> str:
        if self.by_digits and not self.use_spaces:
            return ">>>"
        return super().__str__()


class AbsoluteValueSubstitution(Substitution):
    """>> in a negative-number rule: the absolute value."""

    token_char = ">"

    def transform_number(self, number):
        return abs(number)

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return -new_rule_value

    def calc_upper_bound(self, old_upper_bound):
        return math.inf


class NumeratorSubstitution(Substitution):
    """<< in a fraction rule set: the numerator over the rule's base value."""

    token_char = "<"

    @property
    def denominator(self) -> int:
        return self.rule.base_value

    def transform_number(self, number):
        return round_half_up(Fraction(number) * self.denominator)

    def compose_rule_value(self, new_rule_value, old_rule_value):
        return new_rule_value / self.denominator

    def calc_upper_bound(self, old_upper_bound):
        return self.denominator


def fraction_digits(number: NumericType) -> List[int]:
    """The digits after the decimal point of ``number``, most significant first."""
    if isinstance(number, int):
        return []
    if isinstance(number, Fraction):
        # non-terminating fractions are cut at 20 significant digits
        with localcontext() as ctx:
            ctx.prec = 20
            value = Decimal(number.numerator) / Decimal(number.denominator)
    else:
        value = Decimal(repr(float(number)))
    _, _, decimals = format(abs(value), "f").partition(".")
    return [int(c) for c in decimals.rstrip("0")]


def make_substitution(pos: int, rule, predecessor, rule_set, formatter,
                      description: str) -> Substitution:
    """
    Create the substitution for one token found in a rule's text.

    Args:
        pos: Offset of the token in the rule text (after earlier tokens
            have been removed)
        rule: The rule that owns the substitution
        predecessor: The rule before ``rule`` in the description (for >>>)
        rule_set: The rule set that owns ``rule``
        formatter: The owning formatter (for the default rule set)
        description: The token, e.g. "<<" or ">%%fraction>"
    """
    if description == "==":
        raise RuleSyntaxError("== is not a legal token; name a rule set: =%name=")

    token = description[0]
    if token == "<":
        if rule.kind is RuleKind.NEGATIVE_NUMBER:
            raise RuleSyntaxError("<< not allowed in negative-number rule")
        if rule.kind.is_fraction:
            return IntegralPartSubstitution(pos, rule, rule_set, description)
        if rule_set.is_fraction_set():
            return NumeratorSubstitution(pos, rule, formatter.default_rule_set, description)
        return MultiplierSubstitution(pos, rule, rule_set, description)

    if token == ">":
        if rule.kind is RuleKind.NEGATIVE_NUMBER:
            return AbsoluteValueSubstitution(pos, rule, rule_set, description)
        if rule.kind.is_fraction:
            return FractionalPartSubstitution(pos, rule, rule_set, description)
        if rule_set.is_fraction_set():
            raise RuleSyntaxError(">> not allowed in fraction rule set")
        return ModulusSubstitution(pos, rule, predecessor, rule_set, description)

    if token == "=":
        return SameValueSubstitution(pos, rule, rule_set, description)

    raise RuleSyntaxError(f"Illegal substitution character in {description}")
