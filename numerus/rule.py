"""
A single formatting rule and the factory that builds rules from text.

Rule syntax (one semicolon-delimited segment of a rule set):
    descriptor: rule text

Descriptors:
    1000            base value (',', '.' and spaces are ignored)
    100/20          base value with a radix other than 10
    100>            each '>' lowers the exponent (and so the divisor) by one
    -x              negative-number rule
    x.x             improper fraction rule (value >= 1 with a fraction)
    0.x             proper fraction rule (0 < value < 1)
    x.0             master rule (any value, ahead of the normal rules)
    (none)          base value is filled in by the rule set

Rule text is literal text with at most two substitution tokens (see
substitution.py). Text in [brackets] is optional: "100: << hundred[ >>]"
expands into a rule for exact hundreds and one for everything else. A
leading apostrophe is dropped so that rule text can start with a space.
"""

import re
from typing import List, Optional, Tuple

from .common import RuleKind, ParsePosition, TextBuffer, NumericType, normalize_number
from .exceptions import RuleSyntaxError
from .substitution import Substitution, make_substitution

# Prefixes that open a substitution token
_TOKEN_START = re.compile(r'<<|<%|<#|<0|>>|>%|>#|>0|==|=%|=#|=0')

# >%name> references inside fraction rules
_FRACTION_REFERENCE = re.compile(r'>(%[^>]+)>')

_SPECIAL_DESCRIPTORS = {
    "-x": RuleKind.NEGATIVE_NUMBER,
}


def split_descriptor(description: str) -> Tuple[Optional[str], str]:
    """Split a rule segment into (descriptor or None, rule text)."""
    colon = description.find(':')
    if colon == -1:
        text = description
        descriptor = None
    else:
        descriptor = description[:colon]
        pos = colon + 1
        while pos < len(description) and description[pos].isspace():
            pos += 1
        text = description[pos:]
    if text.startswith("'"):
        text = text[1:]
    return descriptor, text


def descriptor_kind(descriptor: str) -> RuleKind:
    """Classify a descriptor string without parsing its digits."""
    if descriptor in _SPECIAL_DESCRIPTORS:
        return _SPECIAL_DESCRIPTORS[descriptor]
    if not descriptor:
        raise RuleSyntaxError("Empty rule descriptor")
    first, last = descriptor[0], descriptor[-1]
    if first.isdigit() and last != 'x':
        return RuleKind.NORMAL
    if len(descriptor) == 3:
        if first == '0' and last == 'x':
            return RuleKind.PROPER_FRACTION
        if first == 'x' and last == 'x':
            return RuleKind.IMPROPER_FRACTION
        if first == 'x' and last == '0':
            return RuleKind.MASTER
    raise RuleSyntaxError(f"Unrecognized rule descriptor: {descriptor!r}")


def fraction_rule_set_references(description: str) -> List[str]:
    """
    Names of the rule sets that a segment's fractional-part substitutions
    format with. Those rule sets must be flagged as fraction rule sets
    before any rules are built.
    """
    descriptor, text = split_descriptor(description)
    if descriptor is None or not descriptor_kind(descriptor).is_fraction:
        return []
    return _FRACTION_REFERENCE.findall(text)


class Rule:
    """
    One rule of a rule set.

    A normal rule applies to values from its base value up to the next
    rule's base value. Its divisor (radix ** exponent) is what multiplier
    and modulus substitutions divide by.
    """

    def __init__(self, formatter=None, description: Optional[str] = None):
        self.formatter = formatter
        self.kind = RuleKind.NORMAL
        self.base_value = 0
        self.radix = 10
        self.exponent = 0
        self.rule_text = ""
        self.sub1: Optional[Substitution] = None
        self.sub2: Optional[Substitution] = None
        if description is not None:
            self.rule_text = self._parse_rule_descriptor(description)

    # ------------------------------------------------------------------
    # construction
    # ------------------------------------------------------------------

    def _parse_rule_descriptor(self, description: str) -> str:
        descriptor, text = split_descriptor(description)
        if descriptor is None:
            return text

        kind = descriptor_kind(descriptor)
        if kind is not RuleKind.NORMAL:
            self.kind = kind
            return text

        value, p = _accumulate_digits(descriptor, 0)
        self.set_base_value(value)

        if p < len(descriptor) and descriptor[p] == '/':
            radix, p = _accumulate_digits(descriptor, p + 1)
            if radix == 0:
                raise RuleSyntaxError("Rule can't have radix of 0")
            self.radix = radix
            self.exponent = self.expected_exponent()

        while p < len(descriptor):
            if descriptor[p] != '>' or self.exponent == 0:
                raise RuleSyntaxError(f"Illegal character in rule descriptor: {descriptor!r}")
            self.exponent -= 1
            p += 1

        return text

    def set_base_value(self, value: int) -> None:
        """Set the base value and recompute the exponent for radix 10."""
        self.base_value = value
        self.radix = 10
        self.exponent = self.expected_exponent() if value >= 1 else 0

    def expected_exponent(self) -> int:
        """The largest e such that radix ** e <= base value."""
        if self.radix < 2 or self.base_value < 1:
            return 0
        exponent = 0
        power = self.radix
        while power <= self.base_value:
            exponent += 1
            power *= self.radix
        return exponent

    @property
    def divisor(self) -> int:
        return self.radix ** self.exponent

    def extract_substitutions(self, owner, text: str, predecessor: Optional['Rule']) -> None:
        """Set the rule text, pulling out up to two substitution tokens."""
        self.rule_text = text
        self.sub1 = self._extract_substitution(owner, predecessor)
        self.sub2 = self._extract_substitution(owner, predecessor) if self.sub1 else None

    def _extract_substitution(self, owner, predecessor) -> Optional[Substitution]:
        match = _TOKEN_START.search(self.rule_text)
        if match is None:
            return None
        start = match.start()

        if self.rule_text.startswith(">>>", start):
            end = start + 2
        else:
            c = self.rule_text[start]
            end = self.rule_text.find(c, start + 1)
            # "<%foo<<" closes on the second '<'
            if (c == '<' and end != -1 and end < len(self.rule_text) - 1
                    and self.rule_text[end + 1] == c):
                end += 1
        if end == -1:
            return None

        result = make_substitution(start, self, predecessor, owner, self.formatter,
                                   self.rule_text[start:end + 1])
        self.rule_text = self.rule_text[:start] + self.rule_text[end + 1:]
        return result

    # ------------------------------------------------------------------
    # formatting
    # ------------------------------------------------------------------

    def do_format(self, number: NumericType, buffer: TextBuffer, pos: int, depth: int) -> None:
        """Insert this rule's text at ``pos`` and let the substitutions fill it in."""
        buffer.insert(pos, self.rule_text)
        if self.sub2 is not None:
            self.sub2.do_substitution(number, buffer, pos, depth)
        if self.sub1 is not None:
            self.sub1.do_substitution(number, buffer, pos, depth)

    def should_roll_back(self, number: int) -> bool:
        """
        True if the rule before this one should format ``number`` instead.

        "100: << hundred[ >>]" becomes rules at 100 and 101. The rule at 101
        would render 200 as "two hundred zero", so a rule with a modulus
        substitution whose base value isn't a multiple of its divisor rolls
        back for numbers that are.
        """
        if any(sub is not None and sub.is_modulus_substitution()
               for sub in (self.sub1, self.sub2)):
            divisor = self.divisor
            return number % divisor == 0 and self.base_value % divisor != 0
        return False

    # ------------------------------------------------------------------
    # parsing
    # ------------------------------------------------------------------

    def do_parse(self, text: str, parse_position: ParsePosition,
                 is_fraction_rule: bool, upper_bound: float) -> NumericType:
        """
        Match ``text`` against this rule.

        The literal text before the first substitution must prefix the
        input. The text between the substitutions (and after the second)
        is searched for, and the input in front of each occurrence is handed
        to the substitution until one consumes it exactly.

        On exit ``parse_position.index`` is the number of characters
        consumed (0 if the rule didn't match).
        """
        pp = ParsePosition()
        sub1_pos = self.sub1.pos if self.sub1 is not None else len(self.rule_text)
        sub2_pos = self.sub2.pos if self.sub2 is not None else len(self.rule_text)

        work_text = self._strip_prefix(text, self.rule_text[:sub1_pos], pp)
        prefix_length = len(text) - len(work_text)
        if pp.index == 0 and sub1_pos != 0:
            return 0

        pp.index = 0
        high_water_mark = 0
        result = 0
        partial = self._match_to_delimiter(work_text, 0, self.base_value,
                                           self.rule_text[sub1_pos:sub2_pos],
                                           pp, self.sub1, upper_bound)
        if pp.index != 0 or self.sub1 is None:
            pp2 = ParsePosition()
            partial = self._match_to_delimiter(work_text[pp.index:], 0, partial,
                                               self.rule_text[sub2_pos:],
                                               pp2, self.sub2, upper_bound)
            if pp2.index != 0 or self.sub2 is None:
                high_water_mark = prefix_length + pp.index + pp2.index
                result = partial

        parse_position.index = high_water_mark

        # a fraction rule set rule without substitutions has numerator 1
        if is_fraction_rule and high_water_mark > 0 and self.sub1 is None and result:
            result = 1 / result

        return normalize_number(result)

    @staticmethod
    def _strip_prefix(text: str, prefix: str, pp: ParsePosition) -> str:
        if prefix and text.startswith(prefix):
            pp.index = len(prefix)
            return text[len(prefix):]
        return text

    @staticmethod
    def _match_to_delimiter(text: str, start_pos: int, base_value: NumericType,
                            delimiter: str, pp: ParsePosition,
                            sub: Optional[Substitution], upper_bound: float) -> NumericType:
        if delimiter:
            temp_pp = ParsePosition()
            d_pos = text.find(delimiter, start_pos)
            while d_pos >= 0:
                sub_text = text[:d_pos]
                if sub_text:
                    temp_result = sub.do_parse(sub_text, temp_pp, base_value, upper_bound)
                    if temp_pp.index == d_pos:
                        pp.index = d_pos + len(delimiter)
                        return temp_result
                temp_pp.index = 0
                d_pos = text.find(delimiter, d_pos + len(delimiter))
            pp.index = 0
            return 0

        if sub is None:
            return base_value

        temp_pp = ParsePosition()
        temp_result = sub.do_parse(text, temp_pp, base_value, upper_bound)
        if temp_pp.index != 0:
            pp.index = temp_pp.index
            return temp_result
        return 0

    # ------------------------------------------------------------------
    # boilerplate
    # ------------------------------------------------------------------

    def __eq__(self, other):
        if not isinstance(other, Rule):
            return False
        return (self.kind is other.kind
                and self.base_value == other.base_value
                and self.radix == other.radix
                and self.exponent == other.exponent
                and self.rule_text == other.rule_text
                and self.sub1 == other.sub1
                and self.sub2 == other.sub2)

    __hash__ = None

    def __str__(self) -> str:
        if self.kind is RuleKind.NORMAL:
            descriptor = str(self.base_value)
            if self.radix != 10:
                descriptor += f"/{self.radix}"
            descriptor += ">" * (self.expected_exponent() - self.exponent)
        else:
            descriptor = self.kind.value

        text = self.rule_text
        if self.sub2 is not None:
            text = text[:self.sub2.pos] + str(self.sub2) + text[self.sub2.pos:]
        if self.sub1 is not None:
            text = text[:self.sub1.pos] + str(self.sub1) + text[self.sub1.pos:]

        apostrophe = ""
        if self.rule_text.startswith(" ") and (self.sub1 is None or self.sub1.pos != 0):
            apostrophe = "'"
        return f"{descriptor}: {apostrophe}{text};"

    def __repr__(self) -> str:
        return f"Rule({str(self)!r})"


def _accumulate_digits(descriptor: str, p: int) -> Tuple[int, int]:
    """Read digits from ``p``, skipping ',', '.' and spaces; stop on '/' or '>'."""
    value = 0
    while p < len(descriptor):
        c = descriptor[p]
        if c.isdigit():
            value = value * 10 + int(c)
        elif c in '/>':
            break
        elif not c.isspace() and c not in ',.':
            raise RuleSyntaxError(f"Illegal character {c!r} in rule descriptor")
        p += 1
    return value, p


def make_rules(description: str, owner, predecessor: Optional[Rule], formatter,
               rule_list: List[Rule]) -> None:
    """
    Build the rule(s) for one description segment and append them.

    A segment with [optional text] becomes two rules: the one without the
    bracketed text comes first, since it has the lower base value (or, for
    fraction rule sets, the same base value and numerator 1).

    Args:
        description: One segment of a rule set description
        owner: The rule set the rules will belong to
        predecessor: The last rule built from the previous segment
        formatter: The formatter that owns the rule set
        rule_list: List the new rules are appended to
    """
    rule1 = Rule(formatter, description)
    text = rule1.rule_text

    brack1 = text.find('[')
    brack2 = text.find(']') if brack1 >= 0 else -1

    if (brack2 < 0 or brack1 > brack2
            or rule1.kind in (RuleKind.PROPER_FRACTION, RuleKind.NEGATIVE_NUMBER)):
        rule1.extract_substitutions(owner, text, predecessor)
        rule_list.append(rule1)
        return

    rule2 = None
    splits = (
        (rule1.kind is RuleKind.NORMAL and rule1.base_value > 0
         and rule1.base_value % rule1.divisor == 0)
        or rule1.kind in (RuleKind.IMPROPER_FRACTION, RuleKind.MASTER)
    )
    if splits:
        rule2 = Rule(formatter)
        if rule1.kind is RuleKind.NORMAL:
            rule2.base_value = rule1.base_value
            if not owner.is_fraction_set():
                rule1.base_value += 1
        elif rule1.kind is RuleKind.IMPROPER_FRACTION:
            # "x.x: ...[...]" describes the proper fraction rule too
            rule2.kind = RuleKind.PROPER_FRACTION
        else:
            # "x.0: ...[...]" describes the improper fraction rule too
            rule2.kind = RuleKind.MASTER
            rule1.kind = RuleKind.IMPROPER_FRACTION
        rule2.radix = rule1.radix
        rule2.exponent = rule1.exponent
        rule2.extract_substitutions(owner, text[:brack1] + text[brack2 + 1:], predecessor)

    rule1.extract_substitutions(
        owner, text[:brack1] + text[brack1 + 1:brack2] + text[brack2 + 1:], predecessor
    )

    if rule2 is not None:
        rule_list.append(rule2)
    rule_list.append(rule1)
