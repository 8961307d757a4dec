"""
Rule sets: named, ordered collections of rules.

A rule set picks the one rule that formats a given number and hands
control to it, and when parsing it tries all of its rules and keeps the
interpretation that consumed the most text.

Rule set descriptions:
    %name: rule; rule; rule;
    %%name: ...               private (not offered to callers)
    %name@noparse: ...        never used for parsing
    rule; rule; ...           no name: the rule set is called %default

Construction happens in two steps because rules may refer to any rule set
by name: RuleSet(descriptions, i) only takes the name off the description,
and parse_rules() builds the rules once every rule set exists.
"""

import logging
import math
from bisect import bisect_right
from fractions import Fraction
from typing import List, Optional, Sequence

from .common import RuleKind, ParsePosition, TextBuffer, NumericType, round_half_up
from .exceptions import RuleSetError, RecursionLimitError
from .rule import Rule, make_rules

logger = logging.getLogger(__name__)

# Maximum nesting of format() calls through rule sets
RECURSION_LIMIT = 50

DEFAULT_NAME = "%default"
NOPARSE_SUFFIX = "@noparse"

# Slots of RuleSet.fraction_rules
IMPROPER_FRACTION_SLOT = 0
PROPER_FRACTION_SLOT = 1
MASTER_SLOT = 2

_FRACTION_SLOTS = {
    RuleKind.IMPROPER_FRACTION: IMPROPER_FRACTION_SLOT,
    RuleKind.PROPER_FRACTION: PROPER_FRACTION_SLOT,
    RuleKind.MASTER: MASTER_SLOT,
}


# ============================================================
# Integer helpers
# ============================================================

def binary_gcd(x: int, y: int) -> int:
    """
    Greatest common divisor of two non-negative integers (Stein's algorithm).
    """
    if x == 0:
        return y
    if y == 0:
        return x

    shift = 0
    while (x | y) & 1 == 0:
        x >>= 1
        y >>= 1
        shift += 1
    while x & 1 == 0:
        x >>= 1
    while y:
        while y & 1 == 0:
            y >>= 1
        if x > y:
            x, y = y, x
        y -= x
    return x << shift


def lcm(x: int, y: int) -> int:
    """Least common multiple of two positive integers."""
    if x <= 0 or y <= 0:
        raise ValueError(f"lcm needs positive integers, got {x} and {y}")
    return x // binary_gcd(x, y) * y


def select_normal_rule(rules: Sequence[Rule], number: int, name: str = "") -> Rule:
    """
    Find the rule with the greatest base value <= ``number``, then apply the
    rollback correction.

    ``rules`` must be sorted by base value. An exact match is returned as is.

    Raises:
        RuleSetError: if ``number`` is below every base value, or the found
            rule wants to roll back but is the first rule.
    """
    hi = bisect_right(rules, number, key=lambda rule: rule.base_value)
    if hi == 0:
        raise RuleSetError(f"The rule set {name} cannot format the value {number}")

    result = rules[hi - 1]
    if result.base_value == number:
        return result

    if result.should_roll_back(number):
        if hi == 1:
            raise RuleSetError(f"The rule set {name} cannot roll back from the rule '{result}'")
        result = rules[hi - 2]
    return result


# ============================================================
# RuleSet
# ============================================================

class RuleSet:
    """
    A named collection of rules used to format and parse numbers.

    Regular rules are kept sorted by base value. Up to four special rules
    are kept apart: the negative-number rule and the three fraction rules
    (improper fraction, proper fraction, master).

    Example:
        descriptions = ["%simple: zero; one; two; 10: ten[ and >>];"]
        rule_set = RuleSet(descriptions, 0)
        rule_set.parse_rules(descriptions[0], formatter)
    """

    def __init__(self, descriptions: List[str], index: int):
        """
        Take the rule set's name off ``descriptions[index]``.

        On exit ``descriptions[index]`` holds only the rule text.

        Raises:
            RuleSetError: if the description is empty, or starts with '%'
                but has no ':' after the name.
        """
        description = descriptions[index]
        if not description:
            raise RuleSetError("Empty rule set description")

        if description[0] == '%':
            pos = description.find(':')
            if pos == -1:
                raise RuleSetError(f"Rule set name doesn't end in colon: {description[:40]!r}")
            name = description[:pos]
            pos += 1
            while pos < len(description) and description[pos].isspace():
                pos += 1
            description = description[pos:]
            descriptions[index] = description
        else:
            name = DEFAULT_NAME

        if not description:
            raise RuleSetError(f"Empty rule set description for {name}")

        self._parseable = True
        if name.endswith(NOPARSE_SUFFIX):
            name = name[:-len(NOPARSE_SUFFIX)]
            self._parseable = False

        self._name = name
        self._rules: List[Rule] = []
        self._negative_number_rule: Optional[Rule] = None
        self._fraction_rules: List[Optional[Rule]] = [None, None, None]
        self._fraction_rule_set = False
        self._populated = False

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    def parse_rules(self, description: str, owner) -> None:
        """
        Build this rule set's rules from its description.

        Rules are separated by ';' (there is no escape: every ';' is a
        separator). Each segment may expand into more than one rule; the
        last rule built from a segment is the predecessor of the next.

        Args:
            description: The rule text left over by the constructor
            owner: The formatter that owns every rule set
        """
        segments = description.split(';')
        if description.endswith(';'):
            segments.pop()

        rules: List[Rule] = []
        predecessor = None
        for segment in segments:
            make_rules(segment, self, predecessor, owner, rules)
            predecessor = rules[-1]

        self.populate(rules)

    def populate(self, rules: List[Rule]) -> None:
        """
        Sort already-built rules into this rule set.

        Rules without a base value get one (previous + 1, or the previous
        value unchanged in a fraction rule set). Special rules are set
        aside. Everything else keeps its relative order.

        Raises:
            RuleSetError: if an explicit base value is lower than the one
                the rule would have defaulted to, or a special rule occurs
                twice.
        """
        regular: List[Rule] = []
        negative_number_rule = None
        fraction_rules: List[Optional[Rule]] = [None, None, None]
        step = 0 if self._fraction_rule_set else 1
        default_base_value = 0

        for rule in rules:
            kind = rule.kind
            if kind is RuleKind.NORMAL:
                if rule.base_value == 0:
                    rule.set_base_value(default_base_value)
                elif rule.base_value < default_base_value:
                    raise RuleSetError(
                        f"Rules are not in order in {self._name}, base: "
                        f"{rule.base_value} < {default_base_value}"
                    )
                default_base_value = rule.base_value + step
                regular.append(rule)
            elif kind is RuleKind.NEGATIVE_NUMBER:
                if negative_number_rule is not None:
                    raise RuleSetError(f"Rule set {self._name} has more than one -x rule")
                negative_number_rule = rule
            else:
                slot = _FRACTION_SLOTS[kind]
                if fraction_rules[slot] is not None:
                    raise RuleSetError(f"Rule set {self._name} has more than one {kind.value} rule")
                fraction_rules[slot] = rule

        self._rules = regular
        self._negative_number_rule = negative_number_rule
        self._fraction_rules = fraction_rules
        self._populated = True
        logger.debug("Rule set %s: %d regular rules, %d special rules%s",
                     self._name, len(regular),
                     sum(r is not None for r in [negative_number_rule, *fraction_rules]),
                     " (fraction rule set)" if self._fraction_rule_set else "")

    def make_into_fraction_rule_set(self) -> None:
        """
        Flag this rule set as a fraction rule set.

        Must happen before the rules are built, since it changes how base
        values default. Calling it again is harmless.
        """
        if self._fraction_rule_set:
            return
        if self._populated:
            raise RuleSetError(
                f"Rule set {self._name} was already built as a non-fraction rule set"
            )
        self._fraction_rule_set = True

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    def is_fraction_set(self) -> bool:
        return self._fraction_rule_set

    def is_public(self) -> bool:
        return not self._name.startswith("%%")

    def is_parseable(self) -> bool:
        return self._parseable

    @property
    def regular_rules(self) -> List[Rule]:
        return list(self._rules)

    @property
    def negative_number_rule(self) -> Optional[Rule]:
        return self._negative_number_rule

    @property
    def fraction_rules(self) -> List[Optional[Rule]]:
        """[improper fraction rule, proper fraction rule, master rule]"""
        return list(self._fraction_rules)

    @property
    def improper_fraction_rule(self) -> Optional[Rule]:
        return self._fraction_rules[IMPROPER_FRACTION_SLOT]

    @property
    def proper_fraction_rule(self) -> Optional[Rule]:
        return self._fraction_rules[PROPER_FRACTION_SLOT]

    @property
    def master_rule(self) -> Optional[Rule]:
        return self._fraction_rules[MASTER_SLOT]

    # ------------------------------------------------------------------
    # formatting
    # ------------------------------------------------------------------

    def format(self, number: NumericType, buffer: TextBuffer, pos: int = 0, depth: int = 0) -> None:
        """
        Format ``number`` into ``buffer`` at ``pos``.

        Ints take the integer path; floats and Fractions the real path.
        ``depth`` counts the format() calls above this one and is passed
        down through the rules.

        Raises:
            RecursionLimitError: at RECURSION_LIMIT nested calls
            RuleSetError: if no rule can format the number
        """
        if isinstance(number, int):
            rule = self.find_normal_rule(number)
        else:
            rule = self.find_rule(number)

        depth += 1
        if depth >= RECURSION_LIMIT:
            logger.debug("Recursion limit hit in %s formatting %r", self._name, number)
            raise RecursionLimitError(self._name, depth)
        rule.do_format(number, buffer, pos, depth)

    def find_rule(self, number: NumericType) -> Rule:
        """Select the rule for a real number."""
        if self._fraction_rule_set:
            return self.find_fraction_rule_set_rule(number)

        if number < 0:
            if self._negative_number_rule is not None:
                return self._negative_number_rule
            number = -number

        if number != math.floor(number):
            if number < 1 and self.proper_fraction_rule is not None:
                return self.proper_fraction_rule
            if self.improper_fraction_rule is not None:
                return self.improper_fraction_rule

        if self.master_rule is not None:
            return self.master_rule
        return self.find_normal_rule(round_half_up(number))

    def find_normal_rule(self, number: int) -> Rule:
        """
        Select the rule for an integer: the rule with the highest base value
        <= ``number``, rolled back one rule when that rule asks for it.
        Negative numbers without a negative-number rule are formatted as
        positive ones.
        """
        if self._fraction_rule_set:
            return self.find_fraction_rule_set_rule(number)

        if number < 0:
            if self._negative_number_rule is not None:
                return self._negative_number_rule
            number = -number

        if self._rules:
            return select_normal_rule(self._rules, number, self._name)
        if self.master_rule is None:
            raise RuleSetError(f"The rule set {self._name} cannot format the value {number}")
        return self.master_rule

    def find_fraction_rule_set_rule(self, number: NumericType) -> Rule:
        """
        Select the rule of a fraction rule set for a value in [0, 1).

        Each rule's base value is a candidate denominator; the one that
        gives the fraction closest to ``number`` wins (earliest on ties).
        When two rules share the winning denominator, the first is for a
        numerator of 1 and the second for everything else ("one third" /
        "two thirds").
        """
        rules = self._rules
        if not rules:
            raise RuleSetError(f"The rule set {self._name} cannot format the value {number}")
        for rule in rules:
            if rule.base_value <= 0:
                raise RuleSetError(
                    f"Fraction rule set {self._name} has a rule with denominator {rule.base_value}"
                )

        # everything after this is exact integer arithmetic
        least_common_multiple = rules[0].base_value
        for rule in rules[1:]:
            least_common_multiple = lcm(least_common_multiple, rule.base_value)
        value = Fraction(number)
        numerator = round_half_up(value * least_common_multiple)

        difference = None
        winner = 0
        for index, rule in enumerate(rules):
            # distance of numerator * base from the closest multiple of the lcm
            temp_difference = numerator * rule.base_value % least_common_multiple
            if least_common_multiple - temp_difference < temp_difference:
                temp_difference = least_common_multiple - temp_difference
            if difference is None or temp_difference < difference:
                difference = temp_difference
                winner = index
                if difference == 0:
                    break

        if (winner + 1 < len(rules)
                and rules[winner + 1].base_value == rules[winner].base_value
                and round_half_up(value * rules[winner].base_value) != 1):
            winner += 1

        return rules[winner]

    # ------------------------------------------------------------------
    # parsing
    # ------------------------------------------------------------------

    def parse(self, text: str, parse_position: ParsePosition,
              upper_bound: float = math.inf) -> NumericType:
        """
        Parse ``text`` with whichever rule matches the most characters.

        The negative-number rule goes first, then the fraction rules, then
        the regular rules from the highest base value down (so that the most
        significant rule gets the first try). Regular rules with a base
        value >= ``upper_bound`` are skipped, except in fraction rule sets.
        Among equally long matches the first one tried wins.

        Args:
            text: The text to parse, from its start
            parse_position: On exit, the number of characters consumed
            upper_bound: Exclusive limit on regular rules' base values

        Returns:
            The parsed value, or 0 with ``parse_position`` unchanged when
            nothing matched.
        """
        high_water_mark = 0
        result = 0

        if not text:
            return result

        for rule in (self._negative_number_rule, *self._fraction_rules):
            if rule is None:
                continue
            parse_position.index = 0
            temp_result = rule.do_parse(text, parse_position, False, upper_bound)
            if parse_position.index > high_water_mark:
                result = temp_result
                high_water_mark = parse_position.index
            parse_position.index = 0

        for rule in reversed(self._rules):
            if high_water_mark >= len(text):
                break
            if not self._fraction_rule_set and rule.base_value >= upper_bound:
                continue
            parse_position.index = 0
            temp_result = rule.do_parse(text, parse_position, self._fraction_rule_set, upper_bound)
            if parse_position.index > high_water_mark:
                result = temp_result
                high_water_mark = parse_position.index
            parse_position.index = 0

        parse_position.index = high_water_mark
        return result

    # ------------------------------------------------------------------
    # boilerplate
    # ------------------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, RuleSet):
            return False
        return (self._name == other._name
                and self._negative_number_rule == other._negative_number_rule
                and self._fraction_rules == other._fraction_rules
                and self._fraction_rule_set == other._fraction_rule_set
                and self._rules == other._rules)

    # structural equality over mutable state; not usable as a dict key
    __hash__ = None

    def __str__(self) -> str:
        """Rule set name followed by every rule; reparses to an equivalent set."""
        suffix = "" if self._parseable else NOPARSE_SUFFIX
        lines = [f"{self._name}{suffix}:"]
        for rule in self._rules:
            lines.append(f"    {rule}")
        for rule in (self._negative_number_rule, *self._fraction_rules):
            if rule is not None:
                lines.append(f"    {rule}")
        return "\n".join(lines) + "\n"

    def __repr__(self) -> str:
        return f"RuleSet({self._name!r}, {len(self._rules)} rules)"
