"""Tests for single rules, bracket expansion and substitutions."""

import math

import pytest
from numerus.common import RuleKind, ParsePosition, TextBuffer
from numerus.exceptions import RuleSyntaxError
from numerus.formatter import RuleBasedFormatter
from numerus.rule import Rule, split_descriptor, descriptor_kind, fraction_rule_set_references
from numerus.substitution import (
    MultiplierSubstitution, ModulusSubstitution, SameValueSubstitution,
    IntegralPartSubstitution, FractionalPartSubstitution,
    AbsoluteValueSubstitution, NumeratorSubstitution, fraction_digits,
)

DIGITS = "zero; one; two; three; four; five; six; seven; eight; nine;"


class TestDescriptor:
    """Tests for reading the part before the colon."""

    def test_base_value(self):
        """Digits give the base value, exponent and divisor."""
        rule = Rule(None, "1000: thousand")
        assert rule.kind is RuleKind.NORMAL
        assert rule.base_value == 1000
        assert rule.exponent == 3
        assert rule.divisor == 1000
        assert rule.rule_text == "thousand"

    def test_separators_ignored(self):
        """Commas, periods and spaces inside the number are skipped."""
        assert Rule(None, "1,000,000: million").base_value == 1000000
        assert Rule(None, "1 000: thousand").base_value == 1000

    def test_radix(self):
        """/radix changes the divisor."""
        rule = Rule(None, "100/20: score")
        assert rule.radix == 20
        assert rule.exponent == 1
        assert rule.divisor == 20

    def test_greater_than_lowers_exponent(self):
        """Each '>' lowers the exponent by one."""
        rule = Rule(None, "100>: x")
        assert rule.exponent == 1
        assert rule.divisor == 10

    def test_too_many_greater_than_raises(self):
        """The exponent can't go below zero."""
        with pytest.raises(RuleSyntaxError):
            Rule(None, "100>>>: x")

    @pytest.mark.parametrize("descriptor,kind", [
        ("-x", RuleKind.NEGATIVE_NUMBER),
        ("x.x", RuleKind.IMPROPER_FRACTION),
        ("0.x", RuleKind.PROPER_FRACTION),
        ("x.0", RuleKind.MASTER),
    ])
    def test_special_descriptors(self, descriptor, kind):
        """Special descriptors select the rule kind."""
        rule = Rule(None, f"{descriptor}: text")
        assert rule.kind is kind
        assert rule.base_value == 0
        assert rule.rule_text == "text"

    def test_unknown_descriptor_raises(self):
        """Unrecognized descriptors are errors."""
        with pytest.raises(RuleSyntaxError):
            Rule(None, "abc: text")
        with pytest.raises(RuleSyntaxError):
            Rule(None, "1a0: text")

    def test_no_descriptor(self):
        """Without a descriptor the base value is left for the rule set."""
        rule = Rule(None, "zero")
        assert rule.base_value == 0
        assert rule.rule_text == "zero"

    def test_apostrophe(self):
        """A leading apostrophe lets rule text start with a space."""
        assert Rule(None, "100: ' hundred").rule_text == " hundred"
        assert split_descriptor("'  two") == (None, "  two")

    def test_whitespace_after_colon_skipped(self):
        """Whitespace between the colon and the text is dropped."""
        assert split_descriptor("5:    five") == ("5", "five")

    def test_descriptor_kind(self):
        """Descriptors are classified without reading the digits."""
        assert descriptor_kind("1,000") is RuleKind.NORMAL
        assert descriptor_kind("100>") is RuleKind.NORMAL
        assert descriptor_kind("x.0") is RuleKind.MASTER

    def test_expected_exponent(self):
        """Exponent is the largest power of the radix not above the base value."""
        assert Rule(None, "1: x").exponent == 0
        assert Rule(None, "9: x").exponent == 0
        assert Rule(None, "10: x").exponent == 1
        assert Rule(None, "999: x").exponent == 2


class TestRuleBehavior:
    """Tests for formatting, parsing and comparing rules without substitutions."""

    def test_do_format_inserts_at_position(self):
        """Rule text is inserted where asked."""
        buffer = TextBuffer("()")
        Rule(None, "7: seven").do_format(7, buffer, 1, 0)
        assert str(buffer) == "(seven)"

    def test_do_parse_plain_text(self):
        """A rule without substitutions matches its text and returns its base value."""
        position = ParsePosition()
        assert Rule(None, "7: seven").do_parse("seven days", position, False, math.inf) == 7
        assert position.index == 5

    def test_do_parse_no_match(self):
        """Non-matching text consumes nothing."""
        position = ParsePosition()
        assert Rule(None, "7: seven").do_parse("six", position, False, math.inf) == 0
        assert position.index == 0

    def test_do_parse_fraction_rule(self):
        """In a fraction rule set a plain rule means one over its base value."""
        position = ParsePosition()
        assert Rule(None, "4: one quarter").do_parse("one quarter", position, True, 0) == 0.25

    def test_equality(self):
        """Rules compare by structure and are unhashable."""
        assert Rule(None, "5: five") == Rule(None, "5: five")
        assert Rule(None, "5: five") != Rule(None, "6: five")
        assert Rule(None, "5: five") != Rule(None, "-x: five")
        with pytest.raises(TypeError):
            hash(Rule(None, "5: five"))

    @pytest.mark.parametrize("description", [
        "100/20: score;",
        "100>: x;",
        "-x: minus;",
        "100: ' hundred;",
    ])
    def test_str_reproduces_description(self, description):
        """str() writes the rule back out."""
        assert str(Rule(None, description[:-1])) == description


class TestBracketExpansion:
    """Tests for [optional] text."""

    def test_splits_into_two_rules(self):
        """'10: ten[ and >>]' becomes rules at 10 and 11."""
        f = RuleBasedFormatter(f"%a: {DIGITS} 10: ten[ and >>];")
        rules = f["%a"].regular_rules
        assert [r.base_value for r in rules][-2:] == [10, 11]
        assert str(rules[-2]) == "10: ten;"
        assert str(rules[-1]) == "11: ten and >%a>;"

    def test_rollback_predicate(self):
        """The bumped rule rolls back for multiples of its divisor."""
        f = RuleBasedFormatter(f"%a: {DIGITS} 10: << tens[ and >>];")
        exact, bumped = f["%a"].regular_rules[-2:]
        assert bumped.should_roll_back(20)
        assert not bumped.should_roll_back(21)
        assert not exact.should_roll_back(20)

    def test_rollback_in_use(self):
        """Multiples of ten use the rule without the optional text."""
        f = RuleBasedFormatter(f"%a: {DIGITS} 10: << tens[ and >>];")
        assert f.format(30) == "three tens"
        assert f.format(34) == "three tens and four"

    def test_no_split_when_not_multiple(self):
        """A base value that isn't a multiple of its divisor keeps one rule."""
        f = RuleBasedFormatter(f"%a: {DIGITS} 15: fifteen[ plus >>];")
        rules = f["%a"].regular_rules
        assert rules[-1].base_value == 15
        assert rules[-1].rule_text == "fifteen plus "

    def test_improper_fraction_brackets(self):
        """'x.x: a[b]' also defines the proper fraction rule."""
        f = RuleBasedFormatter(f"%a: x.x: [<< ]point >>; {DIGITS}")
        rule_set = f["%a"]
        assert rule_set.proper_fraction_rule is not None
        assert rule_set.improper_fraction_rule is not None
        assert f.format(0.5) == "point five"
        assert f.format(1.5) == "one point five"

    def test_master_brackets(self):
        """'x.0: a[b]' defines the master and improper fraction rules."""
        f = RuleBasedFormatter(f"%a: x.0: <<[ point >>]; {DIGITS}")
        rule_set = f["%a"]
        assert rule_set.master_rule is not None
        assert rule_set.improper_fraction_rule is not None
        assert f.format(2.0) == "two"
        assert f.format(2.5) == "two point five"


class TestSubstitutionKinds:
    """Tests for which substitution a token becomes."""

    @pytest.fixture
    def formatter(self):
        return RuleBasedFormatter(f"""
            %main:
                -x: minus >>;
                x.x: << point >>;
                0.x: >%%frac>;
                {DIGITS}
                10: << tens[ >>];
                100: =%other=;
            %other: {DIGITS} 10: << >>;
            %%frac: 2: half; 3: <%other< thirds;
        """)

    def test_normal_rule_tokens(self, formatter):
        """<< and >> in normal rules are multiplier and modulus."""
        rule = formatter["%main"].regular_rules[11]
        assert isinstance(rule.sub1, MultiplierSubstitution)
        assert isinstance(rule.sub2, ModulusSubstitution)
        assert rule.sub1.rule_set is formatter["%main"]

    def test_same_value(self, formatter):
        """=%name= keeps the value and switches rule sets."""
        rule = formatter["%main"].regular_rules[-1]
        assert isinstance(rule.sub1, SameValueSubstitution)
        assert rule.sub1.rule_set is formatter["%other"]

    def test_negative_rule(self, formatter):
        """>> in a -x rule is the absolute value."""
        rule = formatter["%main"].negative_number_rule
        assert isinstance(rule.sub1, AbsoluteValueSubstitution)

    def test_fraction_rules(self, formatter):
        """In x.x rules << is the integral part and >> the fractional part."""
        rule = formatter["%main"].improper_fraction_rule
        assert isinstance(rule.sub1, IntegralPartSubstitution)
        assert isinstance(rule.sub2, FractionalPartSubstitution)
        assert rule.sub2.by_digits

    def test_named_fraction_rule_set(self, formatter):
        """>%name> in a fraction rule flags the named set."""
        rule = formatter["%main"].proper_fraction_rule
        assert isinstance(rule.sub1, FractionalPartSubstitution)
        assert not rule.sub1.by_digits
        assert formatter["%%frac"].is_fraction_set()
        assert not formatter["%other"].is_fraction_set()

    def test_numerator(self, formatter):
        """<< in a fraction rule set is the numerator."""
        rule = formatter["%%frac"].regular_rules[1]
        assert isinstance(rule.sub1, NumeratorSubstitution)
        assert rule.sub1.rule_set is formatter["%other"]

    def test_formats(self, formatter):
        """Every kind of substitution in use."""
        assert formatter.format(-4, "%main") == "minus four"
        assert formatter.format(42, "%main") == "four tens two"
        assert formatter.format(250, "%main") == "two five zero"
        assert formatter.format(1.25, "%main") == "one point two five"
        assert formatter.format(0.5, "%main") == "half"
        assert formatter.format(0.666, "%main") == "two thirds"


class TestTripleGreaterThan:
    """Tests for >>>, which formats with the preceding rule directly."""

    DESCRIPTION = """
        %a: zero; 1: =%b=; 10: << and >>>;
        %b: nil; uno; dos; tres; cuatro; cinco; seis; siete; ocho; nueve;
    """

    def test_uses_predecessor(self):
        """The remainder goes to the previous rule, not through rule selection."""
        f = RuleBasedFormatter(self.DESCRIPTION)
        rules = f["%a"].regular_rules
        assert rules[-1].sub2.rule_to_use is rules[1]
        assert str(rules[-1]) == "10: <%a< and >>>;"
        assert f.format(12, "%a") == "uno and dos"

    def test_parse(self):
        """Parsing also goes through the previous rule."""
        f = RuleBasedFormatter(self.DESCRIPTION)
        assert f.parse("uno and dos", "%a") == 12


class TestSyntaxErrors:
    """Tests for malformed substitutions."""

    @pytest.mark.parametrize("description", [
        "%a: zero; ==;",
        "%a: -x: << minus; zero;",
        "%a: zero; =%nowhere=;",
        "%a: zero; =#,##0=;",
        "%a: zero; <0.00<;",
        "%a: 0.x: >%%f>; zero;%%f: 2: half >>;",
    ])
    def test_raises(self, description):
        """Each of these is a syntax error."""
        with pytest.raises(RuleSyntaxError):
            RuleBasedFormatter(description)


class TestHelpers:
    """Tests for module-level helpers."""

    def test_fraction_digits(self):
        """Digits after the decimal point, most significant first."""
        assert fraction_digits(3.25) == [2, 5]
        assert fraction_digits(0.1) == [1]
        assert fraction_digits(7) == []

    def test_fraction_rule_set_references(self):
        """Named fractional-part references are found in fraction rules only."""
        assert fraction_rule_set_references("x.x: << and >%%frac>") == ["%%frac"]
        assert fraction_rule_set_references("0.x: >>") == []
        assert fraction_rule_set_references("100: << >%other>") == []
        assert fraction_rule_set_references("zero") == []
