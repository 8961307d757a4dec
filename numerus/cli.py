#!/usr/bin/env python3
"""
NUMERUS Command-Line Interface

Provides an interactive REPL, one-shot formatting/parsing, and a filter
mode for stdin.

Usage:
    numerus                                   # REPL with spellout-en
    numerus -e 1234                           # Format a number
    numerus -e "twenty-one"                   # Parse text
    numerus -r roman -e 1987                  # Use another rule description
    numerus -r my.rules -s %ordinal -e 3      # Pick a rule set
    seq 1 10 | numerus -r roman               # Filter mode

Input that looks like a number (42, -7, 3.25, 3/4) is formatted; anything
else is parsed.

REPL Commands:
    :help              Show help
    :load NAME|FILE    Load a built-in description or a rules file
    :use RULESET       Select the rule set used for formatting/parsing
    :sets              List public rule sets
    :dump              Show the rules of all rule sets
    :parse TEXT        Parse TEXT even if it looks like a number
    :quit              Exit
"""

import argparse
import logging
import sys
from fractions import Fraction
from pathlib import Path
from typing import Optional

from . import __version__
from .builtins import BUILTIN_RULES, load_rules
from .exceptions import NumerusError
from .formatter import RuleBasedFormatter

# Try to import readline for better REPL experience
try:
    import readline
    HAS_READLINE = True
except ImportError:
    HAS_READLINE = False

logger = logging.getLogger(__name__)

DEFAULT_RULES = "spellout-en"


def parse_number(text: str):
    """
    Read a number literal: an int, a fraction "a/b" or a float.

    Returns None if ``text`` isn't one.
    """
    text = text.strip().replace("_", "")
    if not text:
        return None
    try:
        return int(text)
    except ValueError:
        pass
    if "/" in text:
        try:
            return Fraction(text)
        except (ValueError, ZeroDivisionError):
            return None
    try:
        return float(text)
    except ValueError:
        return None


class NumerusCompleter:
    """Tab completer for the NUMERUS REPL."""

    COMMANDS = [
        ":help", ":quit", ":exit", ":q",
        ":load", ":use", ":sets", ":dump", ":parse",
    ]

    def __init__(self, repl: 'NumerusREPL'):
        self.repl = repl
        self.matches = []

    def complete(self, text: str, state: int) -> Optional[str]:
        """Return the next possible completion for 'text'."""
        if state == 0:
            line = readline.get_line_buffer() if HAS_READLINE else ""
            self.matches = self._get_matches(text, line)
        try:
            return self.matches[state]
        except IndexError:
            return None

    def _get_matches(self, text: str, line: str) -> list:
        line = line.lstrip()

        if line.startswith(":use "):
            return [n for n in self.repl.formatter.rule_set_names if n.startswith(text)]

        if line.startswith(":load "):
            return [n for n in BUILTIN_RULES if n.startswith(text)]

        if text.startswith(":") or (line.startswith(":") and " " not in line):
            return [c for c in self.COMMANDS if c.startswith(text)]

        return []


class NumerusREPL:
    """Interactive REPL for numerus."""

    def __init__(self, formatter: Optional[RuleBasedFormatter] = None):
        if formatter is None:
            formatter = RuleBasedFormatter.from_builtin(DEFAULT_RULES)
        self.formatter = formatter
        self.rule_set: Optional[str] = None
        self.running = True

        if HAS_READLINE:
            self.history_file = Path.home() / ".numerus_history"
            try:
                readline.read_history_file(self.history_file)
            except OSError:
                pass
            readline.set_history_length(1000)

            self.completer = NumerusCompleter(self)
            readline.set_completer(self.completer.complete)
            readline.parse_and_bind("tab: complete")
            readline.set_completer_delims(" \t\n")

    def save_history(self):
        """Save readline history."""
        if HAS_READLINE:
            try:
                readline.write_history_file(self.history_file)
            except OSError as e:
                logger.debug("Could not save history: %s", e)

    def load(self, name_or_path: str) -> str:
        formatter = load_rules(name_or_path)
        if formatter is None:
            return f"Unknown rules: {name_or_path}"
        self.formatter = formatter
        self.rule_set = None
        return (f"Loaded {len(formatter)} rule sets, "
                f"default {formatter.default_rule_set.name}")

    def handle_command(self, line: str) -> Optional[str]:
        """
        Handle a REPL command (starts with :).

        Returns a message to print, or None.
        """
        parts = line[1:].split(None, 1)
        if not parts:
            return "Unknown command. Type :help for help."

        cmd = parts[0].lower()
        arg = parts[1].strip() if len(parts) > 1 else ""

        if cmd == "help":
            return self.help_text()

        elif cmd in ("quit", "exit", "q"):
            self.running = False
            return None

        elif cmd == "load":
            if not arg:
                available = ", ".join(BUILTIN_RULES)
                return f"Usage: :load NAME|FILE\nBuilt-in: {available}"
            try:
                return self.load(arg)
            except (NumerusError, OSError, ValueError) as e:
                return f"Error loading {arg}: {e}"

        elif cmd == "use":
            if not arg:
                current = self.rule_set or self.formatter.default_rule_set.name
                return f"Using {current}"
            name = arg if arg.startswith("%") else "%" + arg
            if name not in self.formatter:
                return f"Unknown rule set: {arg}"
            self.rule_set = name
            return f"Using {name}"

        elif cmd == "sets":
            return "\n".join(self.formatter.rule_set_names)

        elif cmd == "dump":
            return self.formatter.to_description().rstrip()

        elif cmd == "parse":
            if not arg:
                return "Usage: :parse TEXT"
            return self.parse(arg)

        else:
            return f"Unknown command: {cmd}. Type :help for help."

    def help_text(self) -> str:
        """Return help text."""
        return """NUMERUS REPL Commands:
  :help              Show this help
  :load NAME|FILE    Load a built-in description (spellout-en, roman) or a file
  :use RULESET       Select a rule set (no argument: show the current one)
  :sets              List public rule sets
  :dump              Show all rules
  :parse TEXT        Parse TEXT into a number
  :quit              Exit

Input:
  1234, -7, 3.25, 3/4    Format a number
  twenty-one             Parse text
"""

    def format(self, number) -> str:
        try:
            return self.formatter.format(number, self.rule_set)
        except (NumerusError, ValueError, OverflowError) as e:
            return f"Error: {e}"

    def parse(self, text: str) -> str:
        try:
            return str(self.formatter.parse(text, self.rule_set))
        except NumerusError as e:
            return f"Error: {e}"

    def process_line(self, line: str) -> Optional[str]:
        """
        Process a single line of input.

        Returns the result to print, or None.
        """
        line = line.strip()

        if not line or line.startswith("#"):
            return None

        if line.startswith(":"):
            return self.handle_command(line)

        number = parse_number(line)
        if number is not None:
            return self.format(number)
        return self.parse(line)

    def run(self):
        """Run the REPL loop."""
        print("NUMERUS - rule-based number formatting")
        print("Type :help for help, :quit to exit")
        print()

        while self.running:
            try:
                line = input("numerus> ")
                result = self.process_line(line)
                if result:
                    print(result)
            except EOFError:
                print()
                break
            except KeyboardInterrupt:
                print()
                continue

        self.save_history()


class Runner:
    """Runs one-shot and filter modes."""

    def __init__(self, formatter: RuleBasedFormatter, rule_set: Optional[str] = None,
                 force_parse: bool = False):
        self.repl = NumerusREPL(formatter)
        self.repl.rule_set = rule_set
        self.force_parse = force_parse

    def convert(self, text: str) -> str:
        if self.force_parse:
            return self.repl.parse(text.strip())
        return self.repl.process_line(text) or ""

    def run_expression(self, text: str) -> int:
        """
        Format or parse a single input.

        Returns:
            Exit code (0 for success)
        """
        result = self.convert(text)
        if result.startswith("Error"):
            print(result, file=sys.stderr)
            return 1
        print(result)
        return 0

    def run_stdin(self) -> int:
        """
        Convert each line of stdin.

        Returns:
            Exit code (0 for success, 1 if any line failed)
        """
        status = 0
        for lineno, line in enumerate(sys.stdin, 1):
            line = line.strip()
            if not line or line.startswith("#"):
                continue
            result = self.convert(line)
            if result.startswith("Error"):
                print(f"<stdin>:{lineno}: {result}", file=sys.stderr)
                status = 1
                continue
            print(result)
        return status


def main(argv=None):
    """Main entry point."""
    parser = argparse.ArgumentParser(
        prog="numerus",
        description="NUMERUS - format numbers as text and parse them back using rule sets",
        epilog="Examples:\n"
               "  numerus                          Start REPL\n"
               "  numerus -e 1234                  Spell out a number\n"
               "  numerus -e 'twenty-one'          Parse text\n"
               "  numerus -r roman -e 1987         Roman numerals\n"
               "  seq 1 10 | numerus -r roman      Filter mode\n",
        formatter_class=argparse.RawDescriptionHelpFormatter
    )

    parser.add_argument(
        "-r", "--rules",
        default=DEFAULT_RULES,
        help=f"Built-in rules ({', '.join(BUILTIN_RULES)}) or a .rules/.json file"
    )

    parser.add_argument(
        "-s", "--rule-set",
        help="Rule set to use (default: the description's default rule set)"
    )

    parser.add_argument(
        "-e", "--expr",
        help="Format a number or parse text"
    )

    parser.add_argument(
        "-p", "--parse",
        action="store_true",
        help="Always parse input, even if it looks like a number"
    )

    parser.add_argument(
        "--list",
        action="store_true",
        help="List the public rule sets and exit"
    )

    parser.add_argument(
        "--dump",
        action="store_true",
        help="Print all rules and exit"
    )

    parser.add_argument(
        "-q", "--quiet",
        action="store_true",
        help="Quiet mode (suppress non-essential output)"
    )

    parser.add_argument(
        "-v", "--verbose",
        action="store_true",
        help="Log rule construction details"
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}"
    )

    args = parser.parse_args(argv)

    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")

    try:
        formatter = load_rules(args.rules)
    except (NumerusError, OSError, ValueError) as e:
        print(f"Error loading {args.rules}: {e}", file=sys.stderr)
        sys.exit(1)
    if formatter is None:
        print(f"Unknown rules: {args.rules}", file=sys.stderr)
        sys.exit(1)
    if not args.quiet and args.rules != DEFAULT_RULES:
        print(f"Loaded rules from {args.rules}", file=sys.stderr)

    rule_set = args.rule_set
    if rule_set is not None:
        if not rule_set.startswith("%"):
            rule_set = "%" + rule_set
        if rule_set not in formatter:
            print(f"Unknown rule set: {args.rule_set}", file=sys.stderr)
            sys.exit(1)

    if args.list:
        print("\n".join(formatter.rule_set_names))
        sys.exit(0)

    if args.dump:
        print(formatter.to_description(), end="")
        sys.exit(0)

    runner = Runner(formatter, rule_set, force_parse=args.parse)

    if args.expr is not None:
        sys.exit(runner.run_expression(args.expr))

    elif not sys.stdin.isatty():
        sys.exit(runner.run_stdin())

    else:
        runner.repl.run()


if __name__ == "__main__":
    main()
