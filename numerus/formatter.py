"""
RuleBasedFormatter: owns a group of rule sets and is the public entry point
for formatting numbers as text and parsing them back.

A description is a sequence of rule sets:

    %spellout: zero; one; two; ...; 20: twenty[->>]; ...;
    %%private-helper: ...;

Lines starting with '#' are comments. Whitespace at the start of the
description and after each ';' is ignored.
"""

import json
import logging
import math
import re
from decimal import Decimal
from fractions import Fraction
from pathlib import Path
from typing import Dict, Iterator, List, Optional, Union

from .common import ParsePosition, TextBuffer, NumericType, normalize_number
from .exceptions import DescriptionError, ParseError
from .rule import fraction_rule_set_references
from .ruleset import RuleSet

logger = logging.getLogger(__name__)

_WHITESPACE_AFTER_SEMICOLON = re.compile(r';\s+')


def normalize_description(description: str) -> str:
    """Drop comment lines and the whitespace the rule parser doesn't expect."""
    lines = [line for line in description.splitlines()
             if not line.lstrip().startswith('#')]
    text = "\n".join(lines).strip()
    return _WHITESPACE_AFTER_SEMICOLON.sub(';', text)


def split_rule_sets(description: str) -> List[str]:
    """
    Split a normalized description into one description per rule set.

    A new rule set starts at every ';%'. The ';' stays with the rule set it
    terminates.
    """
    result = []
    start = 0
    p = description.find(';%')
    while p != -1:
        result.append(description[start:p + 1])
        start = p + 1
        p = description.find(';%', start)
    result.append(description[start:])
    return result


class RuleBasedFormatter:
    """
    Formats numbers using a set of named rule sets.

    Example:
        >>> f = RuleBasedFormatter('''
        ...     %digits: zero; one; two; three; four; five;
        ...         six; seven; eight; nine; 10: << >>;
        ... ''')
        >>> f.format(42)
        'four two'
        >>> f.parse('four two')
        42
    """

    def __init__(self, description: str):
        text = normalize_description(description)
        if not text:
            raise DescriptionError("Empty rule description")

        descriptions = split_rule_sets(text)

        # Phase 1: create every rule set so rules can refer to them by name
        self._rule_sets: Dict[str, RuleSet] = {}
        ordered: List[RuleSet] = []
        for index in range(len(descriptions)):
            rule_set = RuleSet(descriptions, index)
            if rule_set.name in self._rule_sets:
                raise DescriptionError(f"Duplicate rule set name: {rule_set.name}")
            self._rule_sets[rule_set.name] = rule_set
            ordered.append(rule_set)

        self._default_rule_set = self._choose_default(ordered)

        # Rule sets used for fractional parts must know before their rules are built
        for rule_set, rule_text in zip(ordered, descriptions):
            for segment in rule_text.split(';'):
                for name in fraction_rule_set_references(segment):
                    target = self._rule_sets.get(name)
                    if target is not None and target is not rule_set:
                        target.make_into_fraction_rule_set()

        # Phase 2: build the rules
        for rule_set, rule_text in zip(ordered, descriptions):
            rule_set.parse_rules(rule_text, self)

        logger.debug("Built %d rule sets, default %s",
                     len(ordered), self._default_rule_set.name)

    @staticmethod
    def _choose_default(rule_sets: List[RuleSet]) -> RuleSet:
        for rule_set in reversed(rule_sets):
            if rule_set.is_public():
                return rule_set
        return rule_sets[-1]

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------

    def find_rule_set(self, name: str) -> RuleSet:
        """Get a rule set by name ('%spellout'). Raises KeyError if missing."""
        try:
            return self._rule_sets[name]
        except KeyError:
            raise KeyError(f"No rule set named '{name}'") from None

    @property
    def default_rule_set(self) -> RuleSet:
        return self._default_rule_set

    @property
    def rule_set_names(self) -> List[str]:
        """Names of the public rule sets, in description order."""
        return [name for name, rule_set in self._rule_sets.items() if rule_set.is_public()]

    def _resolve(self, rule_set: Optional[str]) -> RuleSet:
        if rule_set is None:
            return self._default_rule_set
        if not rule_set.startswith('%'):
            rule_set = '%' + rule_set
        return self.find_rule_set(rule_set)

    # ------------------------------------------------------------------
    # formatting
    # ------------------------------------------------------------------

    def format(self, number: Union[NumericType, Decimal], rule_set: Optional[str] = None) -> str:
        """
        Format a number as text.

        Args:
            number: An int, float, Fraction or Decimal
            rule_set: Rule set name ('%spellout' or 'spellout'); the default
                rule set when omitted

        Returns:
            The formatted text

        Raises:
            TypeError: if ``number`` isn't a number
            ValueError: if ``number`` is NaN or infinite
            RecursionLimitError: if the rules recurse without end
        """
        if isinstance(number, bool) or not isinstance(number, (int, float, Fraction, Decimal)):
            raise TypeError(f"Cannot format {type(number).__name__}: {number!r}")
        if isinstance(number, Decimal):
            if not number.is_finite():
                raise ValueError(f"Cannot format {number}")
            number = Fraction(number)
        elif isinstance(number, float) and not math.isfinite(number):
            raise ValueError(f"Cannot format {number}")

        buffer = TextBuffer()
        self._resolve(rule_set).format(normalize_number(number), buffer, 0)
        return str(buffer)

    # ------------------------------------------------------------------
    # parsing
    # ------------------------------------------------------------------

    def parse_prefix(self, text: str, position: ParsePosition,
                     rule_set: Optional[str] = None) -> NumericType:
        """
        Parse as much of ``text`` as possible, starting at ``position``.

        Without a rule set name every public, parseable rule set is tried
        (last to first) and the longest match wins.

        Returns:
            The value parsed, or 0 if nothing matched. ``position`` is
            advanced past the matched text.
        """
        work_text = text[position.index:]
        if rule_set is not None:
            candidates = [self._resolve(rule_set)]
        else:
            candidates = [rs for rs in reversed(list(self._rule_sets.values()))
                          if rs.is_public() and rs.is_parseable()]

        result = 0
        high_water_mark = 0
        for candidate in candidates:
            work_pos = ParsePosition()
            value = candidate.parse(work_text, work_pos)
            if work_pos.index > high_water_mark:
                result = value
                high_water_mark = work_pos.index
                if high_water_mark == len(work_text):
                    break

        position.index += high_water_mark
        return normalize_number(result)

    def parse(self, text: str, rule_set: Optional[str] = None) -> NumericType:
        """
        Parse text produced by format() back into a number.

        The whole text must match (surrounding whitespace aside).

        Raises:
            ParseError: if nothing matched or text is left over
        """
        stripped = text.strip()
        position = ParsePosition()
        result = self.parse_prefix(stripped, position, rule_set)
        if position.index == 0:
            raise ParseError(stripped, 0)
        if position.index < len(stripped):
            raise ParseError(stripped, position.index)
        return result

    # ------------------------------------------------------------------
    # serialization
    # ------------------------------------------------------------------

    def to_description(self) -> str:
        """Dump every rule set; the result builds an equal formatter."""
        return "".join(str(rule_set) for rule_set in self._rule_sets.values())

    @classmethod
    def from_text(cls, text: str) -> 'RuleBasedFormatter':
        return cls(text)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> 'RuleBasedFormatter':
        """
        Create a formatter from a rules file.

        ``.json`` files hold an object whose "rule_sets" entry is a list of
        rule set descriptions (each a string or a list of lines); any other
        file is plain description text.
        """
        path = Path(path)
        text = path.read_text()
        if path.suffix == '.json':
            return cls(description_from_json(text))
        return cls(text)

    @classmethod
    def from_builtin(cls, name: str) -> 'RuleBasedFormatter':
        """Create a formatter from one of the built-in descriptions."""
        from .builtins import BUILTIN_RULES
        try:
            return cls(BUILTIN_RULES[name])
        except KeyError:
            raise KeyError(f"No built-in rules named '{name}'") from None

    # ------------------------------------------------------------------
    # container protocol
    # ------------------------------------------------------------------

    def __contains__(self, name: str) -> bool:
        return name in self._rule_sets

    def __getitem__(self, name: str) -> RuleSet:
        return self.find_rule_set(name)

    def __iter__(self) -> Iterator[RuleSet]:
        return iter(self._rule_sets.values())

    def __len__(self) -> int:
        return len(self._rule_sets)

    def __eq__(self, other):
        if not isinstance(other, RuleBasedFormatter):
            return False
        return list(self._rule_sets.values()) == list(other._rule_sets.values())

    __hash__ = None

    def __repr__(self) -> str:
        return f"RuleBasedFormatter({len(self._rule_sets)} rule sets, default {self._default_rule_set.name})"


def description_from_json(text: str) -> str:
    """
    Assemble a description from JSON text.

    Expected format:
        {
            "name": "optional name",
            "description": "optional free text",
            "rule_sets": [
                "%spellout: zero; one; two;",
                ["%%helper:", "0: nothing;", "1: something;"]
            ]
        }
    """
    data = json.loads(text)
    rule_sets = data.get('rule_sets')
    if not rule_sets:
        raise DescriptionError("JSON rules file has no 'rule_sets'")

    parts = []
    for entry in rule_sets:
        if isinstance(entry, list):
            entry = " ".join(entry)
        parts.append(entry.strip())
    return "\n".join(parts)
