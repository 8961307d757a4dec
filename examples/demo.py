#!/usr/bin/env python3
"""
NUMERUS Feature Demonstration

This script walks through formatting and parsing with rule sets.
"""

from fractions import Fraction

from numerus import RuleBasedFormatter, RecursionLimitError


def section(title: str):
    """Print a section header."""
    print(f"\n{'='*60}")
    print(f" {title}")
    print('='*60)


def demo_basic_usage():
    """A rule set written inline."""
    section("Basic Usage")

    f = RuleBasedFormatter('''
        %digits: zero; one; two; three; four; five;
            six; seven; eight; nine; 10: << >>;
    ''')

    for n in [7, 42, 1984]:
        print(f"  {n} => {f.format(n)}")
    print(f"  'four two' => {f.parse('four two')}")


def demo_spellout():
    """The English spellout rules."""
    section("English Spellout")

    english = RuleBasedFormatter.from_builtin("spellout-en")
    for n in [0, 13, 21, 100, 110, 1234, 2000017, -7, 3.25]:
        print(f"  {n} => {english.format(n)}")


def demo_fractions():
    """Fraction rule sets pick the closest denominator."""
    section("Fractions")

    english = RuleBasedFormatter.from_builtin("spellout-en")
    for n in [0.5, 0.75, Fraction(2, 3), 2.5, 0.3]:
        print(f"  {n} => {english.format(n, '%spellout-fraction')}")


def demo_roman():
    """Roman numerals, and the rollback rule at work."""
    section("Roman Numerals")

    roman = RuleBasedFormatter.from_builtin("roman")
    for n in [4, 9, 14, 40, 1987, 3999, 4500, 12000]:
        print(f"  {n} => {roman.format(n)}  {roman.format(n, '%roman-lower')}")


def demo_parsing():
    """Parsing picks the longest match across rule sets."""
    section("Parsing")

    english = RuleBasedFormatter.from_builtin("spellout-en")
    for text in ["twenty-one", "minus seven", "three point two five",
                 "two and one half", "one thousand two hundred thirty-four"]:
        print(f"  {text!r} => {english.parse(text)}")


def demo_recursion_limit():
    """Rule sets that call each other forever are stopped."""
    section("Recursion Limit")

    f = RuleBasedFormatter("%ping: =%pong=;%pong: =%ping=;")
    try:
        f.format(1)
    except RecursionLimitError as e:
        print(f"  {e}")


def demo_dump():
    """A formatter can write its rules back out."""
    section("Rule Dump")

    f = RuleBasedFormatter("%digits: zero; one; two; 10: << >>; 100: << hundred[ >>];")
    print(f.to_description())


def main():
    """Run all demonstrations."""
    print("NUMERUS Feature Demonstration")
    print("Rule-based number formatting")

    demo_basic_usage()
    demo_spellout()
    demo_fractions()
    demo_roman()
    demo_parsing()
    demo_recursion_limit()
    demo_dump()

    print(f"\n{'='*60}")
    print(" Done")
    print('='*60)


if __name__ == "__main__":
    main()
