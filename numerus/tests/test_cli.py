"""Tests for CLI module."""

import io
import sys
from fractions import Fraction

import pytest

from numerus.cli import NumerusREPL, Runner, main, parse_number
from numerus.formatter import RuleBasedFormatter


class TestParseNumber:
    """Tests for recognizing number literals."""

    def test_int(self):
        """Integers, signed and with underscores."""
        assert parse_number("42") == 42
        assert parse_number("-7") == -7
        assert parse_number("1_000") == 1000

    def test_fraction(self):
        """a/b is a Fraction."""
        assert parse_number("3/4") == Fraction(3, 4)
        assert parse_number("1/0") is None

    def test_float(self):
        """Decimal literals are floats."""
        assert parse_number("3.25") == 3.25

    def test_not_a_number(self):
        """Words are not numbers."""
        assert parse_number("twenty") is None
        assert parse_number("") is None


class TestREPLCommands:
    """Tests for REPL command handling."""

    def test_help_command(self):
        """Help command returns help text."""
        repl = NumerusREPL()
        result = repl.handle_command(":help")
        assert "help" in result.lower()
        assert ":load" in result

    def test_quit_command(self):
        """Quit stops the loop."""
        repl = NumerusREPL()
        repl.handle_command(":quit")
        assert repl.running == False

    def test_sets_command(self):
        """Sets lists public rule sets."""
        repl = NumerusREPL()
        result = repl.handle_command(":sets")
        assert "%spellout-numbering" in result
        assert "%%fraction" not in result

    def test_use_command(self):
        """Use selects a rule set."""
        repl = NumerusREPL()
        result = repl.handle_command(":use spellout-fraction")
        assert repl.rule_set == "%spellout-fraction"
        assert "%spellout-fraction" in result
        assert repl.process_line("0.75") == "three quarters"

    def test_use_unknown(self):
        """Unknown rule sets are reported."""
        repl = NumerusREPL()
        result = repl.handle_command(":use klingon")
        assert "Unknown" in result
        assert repl.rule_set is None

    def test_load_builtin(self):
        """Load switches descriptions."""
        repl = NumerusREPL()
        result = repl.handle_command(":load roman")
        assert "Loaded" in result
        assert repl.process_line("1987") == "MCMLXXXVII"

    def test_load_file(self, tmp_path):
        """Load reads rule files."""
        path = tmp_path / "digits.rules"
        path.write_text("%digits: zero; one; two;")
        repl = NumerusREPL()
        repl.handle_command(f":load {path}")
        assert repl.process_line("2") == "two"

    def test_load_unknown(self):
        """Unknown names are reported."""
        repl = NumerusREPL()
        result = repl.handle_command(":load klingon")
        assert "Unknown" in result

    def test_load_bad_rules(self, tmp_path):
        """Broken rule files are reported, not raised."""
        path = tmp_path / "broken.rules"
        path.write_text("%a: zero; 10: ten; 5: five;")
        repl = NumerusREPL()
        result = repl.handle_command(f":load {path}")
        assert result.startswith("Error")

    def test_dump_command(self):
        """Dump shows the rules."""
        repl = NumerusREPL()
        result = repl.handle_command(":dump")
        assert "%spellout-numbering:" in result
        assert "twenty->%spellout-numbering>;" in result

    def test_parse_command(self):
        """Parse forces parsing."""
        repl = NumerusREPL()
        assert repl.handle_command(":parse minus seven") == "-7"

    def test_unknown_command(self):
        """Unknown commands are reported."""
        repl = NumerusREPL()
        assert "Unknown command" in repl.handle_command(":frobnicate")


class TestProcessLine:
    """Tests for REPL input handling."""

    def test_formats_numbers(self):
        """Numbers are formatted."""
        repl = NumerusREPL()
        assert repl.process_line("21") == "twenty-one"
        assert repl.process_line("-7") == "minus seven"

    def test_parses_text(self):
        """Text is parsed."""
        repl = NumerusREPL()
        assert repl.process_line("twenty-one") == "21"

    def test_parse_error(self):
        """Unparseable text gives an error message."""
        repl = NumerusREPL()
        assert repl.process_line("banana").startswith("Error")

    def test_comments_and_blank_lines(self):
        """Comments and blank lines produce nothing."""
        repl = NumerusREPL()
        assert repl.process_line("# comment") is None
        assert repl.process_line("   ") is None


class TestRunner:
    """Tests for one-shot and filter modes."""

    def test_run_expression(self, capsys):
        """A single input is converted and printed."""
        runner = Runner(RuleBasedFormatter.from_builtin("roman"))
        assert runner.run_expression("14") == 0
        assert capsys.readouterr().out == "XIV\n"

    def test_run_expression_error(self, capsys):
        """Errors go to stderr with exit code 1."""
        runner = Runner(RuleBasedFormatter.from_builtin("roman"))
        assert runner.run_expression("banana") == 1
        assert "Error" in capsys.readouterr().err

    def test_force_parse(self, capsys):
        """In parse mode numbers are parsed too."""
        runner = Runner(RuleBasedFormatter("%a: 0: 0; 1: 1; 2: 2;"), force_parse=True)
        assert runner.run_expression("2") == 0
        assert capsys.readouterr().out == "2\n"

    def test_run_stdin(self, capsys, monkeypatch):
        """Each line of stdin is converted; failures set the exit code."""
        monkeypatch.setattr(sys, "stdin", io.StringIO("1\n# skip\n\nfour\nbanana\n12\n"))
        runner = Runner(RuleBasedFormatter.from_builtin("spellout-en"))
        assert runner.run_stdin() == 1
        captured = capsys.readouterr()
        assert captured.out == "one\n4\ntwelve\n"
        assert "<stdin>:5:" in captured.err


class TestMain:
    """Tests for the command-line entry point."""

    def run_main(self, argv):
        with pytest.raises(SystemExit) as exc_info:
            main(argv)
        return exc_info.value.code

    def test_format(self, capsys):
        """-e formats a number with spellout-en by default."""
        assert self.run_main(["-e", "1234"]) == 0
        assert capsys.readouterr().out == "one thousand two hundred thirty-four\n"

    def test_parse(self, capsys):
        """-e parses text."""
        assert self.run_main(["-e", "twenty-one"]) == 0
        assert capsys.readouterr().out == "21\n"

    def test_rules_and_rule_set(self, capsys):
        """-r and -s pick the description and rule set."""
        assert self.run_main(["-q", "-r", "roman", "-s", "roman-lower", "-e", "1987"]) == 0
        assert capsys.readouterr().out == "mcmlxxxvii\n"

    def test_list(self, capsys):
        """--list prints public rule set names."""
        assert self.run_main(["-q", "-r", "roman", "--list"]) == 0
        assert capsys.readouterr().out == "%roman-lower\n%roman-upper\n"

    def test_dump(self, capsys):
        """--dump prints a description that builds the same formatter."""
        assert self.run_main(["-q", "-r", "roman", "--dump"]) == 0
        out = capsys.readouterr().out
        assert RuleBasedFormatter(out) == RuleBasedFormatter.from_builtin("roman")

    def test_unknown_rules(self, capsys):
        """Unknown rule names exit with 1."""
        assert self.run_main(["-r", "klingon", "-e", "1"]) == 1
        assert "Unknown rules" in capsys.readouterr().err

    def test_unknown_rule_set(self, capsys):
        """Unknown rule sets exit with 1."""
        assert self.run_main(["-s", "klingon", "-e", "1"]) == 1
        assert "Unknown rule set" in capsys.readouterr().err

    def test_broken_rules_file(self, tmp_path, capsys):
        """Rule files that don't build exit with 1."""
        path = tmp_path / "broken.rules"
        path.write_text("%a: zero;%a: one;")
        assert self.run_main(["-r", str(path), "-e", "1"]) == 1
        assert "Duplicate" in capsys.readouterr().err

    def test_version(self, capsys):
        """--version prints the version."""
        assert self.run_main(["--version"]) == 0
        assert "numerus" in capsys.readouterr().out
