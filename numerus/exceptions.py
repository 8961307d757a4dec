"""
Exception classes for NUMERUS.

Construction problems (bad rule text, bad rule set descriptions) are
``RuleSetError`` subclasses, which are also ``ValueError``s. Runaway
formatting raises ``RecursionLimitError``. ``ParseError`` is only raised by
the strict parsing helpers on the formatter; rule sets themselves never
raise while parsing.
"""

from typing import Optional


class NumerusError(Exception):
    """Base class for all NUMERUS errors."""


class RuleSetError(NumerusError, ValueError):
    """A rule set is malformed or cannot handle the requested value."""


class RuleSyntaxError(RuleSetError):
    """A single rule's text could not be understood."""


class DescriptionError(RuleSetError):
    """A whole rule description (several rule sets) is malformed."""


class RecursionLimitError(NumerusError, RuntimeError):
    """Formatting re-entered rule sets too many times."""

    def __init__(self, rule_set_name: str, depth: int):
        self.rule_set_name = rule_set_name
        self.depth = depth
        super().__init__(
            f"Recursion limit exceeded when applying rule set {rule_set_name}"
        )


class ParseError(NumerusError, ValueError):
    """Text could not be matched by any rule set."""

    def __init__(self, text: str, index: int, message: Optional[str] = None):
        self.text = text
        self.index = index
        super().__init__(f"{message or 'Unparseable text'}: {text!r} (at {index})")
