"""
NUMERUS - rule-based number formatting

Formats numbers as text ("one thousand two hundred thirty-four", "MCMLXXXVII",
"two and one half") using rule sets, and parses such text back into numbers.

Quick Start:
    from numerus import RuleBasedFormatter

    f = RuleBasedFormatter('''
        %digits: zero; one; two; three; four; five;
            six; seven; eight; nine; 10: << >>;
    ''')

    f.format(42)          # => "four two"
    f.parse("four two")   # => 42

    english = RuleBasedFormatter.from_builtin("spellout-en")
    english.format(-1234)  # => "minus one thousand two hundred thirty-four"

Description Syntax:
    # Comments start with #
    %name: rule; rule; ...;         a public rule set
    %%name: ...;                    a private rule set
    %name@noparse: ...;             a rule set that is never used to parse

Rule Syntax:
    1000: << thousand[ >>]          base value, text, optional part
    100/20: ...                     base value with radix 20
    -x: minus >>                    negative numbers
    x.x: << point >>                numbers with a fractional part
    0.x: ...                        numbers between 0 and 1
    x.0: ...                        any number (master rule)

Substitutions:
    <<  >>  >>>                     multiplier / remainder (same rule set)
    <%name<  >%name>  =%name=       the same, using another rule set
"""

__version__ = "0.1.0"

from .common import (
    RuleKind,
    ParsePosition,
    TextBuffer,
    NumericType,
    round_half_up,
)

from .exceptions import (
    NumerusError,
    RuleSetError,
    RuleSyntaxError,
    DescriptionError,
    RecursionLimitError,
    ParseError,
)

from .rule import Rule, make_rules

from .ruleset import (
    RuleSet,
    RECURSION_LIMIT,
    binary_gcd,
    lcm,
    select_normal_rule,
)

from .formatter import RuleBasedFormatter

from .builtins import (
    BUILTIN_RULES,
    RULE_SEARCH_PATHS,
    load_rules,
)

__all__ = [
    # Value types
    "RuleKind",
    "ParsePosition",
    "TextBuffer",
    "NumericType",
    "round_half_up",
    # Errors
    "NumerusError",
    "RuleSetError",
    "RuleSyntaxError",
    "DescriptionError",
    "RecursionLimitError",
    "ParseError",
    # Rules and rule sets
    "Rule",
    "make_rules",
    "RuleSet",
    "RECURSION_LIMIT",
    "binary_gcd",
    "lcm",
    "select_normal_rule",
    # Formatter
    "RuleBasedFormatter",
    # Built-in rules
    "BUILTIN_RULES",
    "RULE_SEARCH_PATHS",
    "load_rules",
]
