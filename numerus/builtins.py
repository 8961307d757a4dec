"""
Built-in rule descriptions and rule file lookup.

    spellout-en     English cardinal numbers ("one thousand two hundred
                    thirty-four", "minus seven", "three point two five")
                    and simple fractions ("two and one half")
    roman           Roman numerals, upper and lower case, 0 to 4999;
                    larger values are written in digits
"""

from pathlib import Path
from typing import Dict, Optional

from .formatter import RuleBasedFormatter

SPELLOUT_EN = """
# Fractions: "three quarters", "two and one half"
%spellout-fraction:
    -x: minus >>;
    x.x: << and >%%fraction>;
    0.x: >%%fraction>;
    =%spellout-numbering=;
# Denominators come in pairs: numerator of one, then any other numerator
%%fraction:
    2: one half; 2: <%spellout-numbering< halves;
    3: one third; 3: <%spellout-numbering< thirds;
    4: one quarter; 4: <%spellout-numbering< quarters;
    5: one fifth; 5: <%spellout-numbering< fifths;
    8: one eighth; 8: <%spellout-numbering< eighths;
    10: one tenth; 10: <%spellout-numbering< tenths;
# Cardinals; decimals are read digit by digit
%spellout-numbering:
    -x: minus >>;
    x.x: << point >>;
    zero; one; two; three; four; five; six; seven; eight; nine;
    ten; eleven; twelve; thirteen; fourteen; fifteen; sixteen;
    seventeen; eighteen; nineteen;
    20: twenty[->>];
    30: thirty[->>];
    40: forty[->>];
    50: fifty[->>];
    60: sixty[->>];
    70: seventy[->>];
    80: eighty[->>];
    90: ninety[->>];
    100: << hundred[ >>];
    1000: << thousand[ >>];
    1,000,000: << million[ >>];
    1,000,000,000: << billion[ >>];
    1,000,000,000,000: << trillion[ >>];
"""

_ROMAN_RULES = """
    0: N;
    I; II; III; IV; V; VI; VII; VIII; IX;
    10: X[>>]; 20: XX[>>]; 30: XXX[>>]; 40: XL[>>]; 50: L[>>];
    60: LX[>>]; 70: LXX[>>]; 80: LXXX[>>]; 90: XC[>>];
    100: C[>>]; 200: CC[>>]; 300: CCC[>>]; 400: CD[>>]; 500: D[>>];
    600: DC[>>]; 700: DCC[>>]; 800: DCCC[>>]; 900: CM[>>];
    1000: M[>>]; 2000: MM[>>]; 3000: MMM[>>]; 4000: MMMM[>>];
    5000: =%%digits=;
"""

ROMAN = (
    "%%digits: 0; 1; 2; 3; 4; 5; 6; 7; 8; 9; 10: <<>>;"
    "%roman-lower:" + _ROMAN_RULES.lower() + "%roman-upper:" + _ROMAN_RULES
)

BUILTIN_RULES: Dict[str, str] = {
    "spellout-en": SPELLOUT_EN,
    "roman": ROMAN,
}

# Where named rule files are looked up
RULE_SEARCH_PATHS = [
    Path("./rules"),
    Path.home() / ".config" / "numerus" / "rules",
]

RULE_FILE_SUFFIXES = (".rules", ".json")


def find_rule_file(name: str) -> Optional[Path]:
    """Find NAME.rules or NAME.json in the search paths."""
    for search_dir in RULE_SEARCH_PATHS:
        for suffix in RULE_FILE_SUFFIXES:
            candidate = search_dir / f"{name}{suffix}"
            if candidate.exists():
                return candidate
    return None


def load_rules(name_or_path: str) -> Optional[RuleBasedFormatter]:
    """
    Create a formatter from a built-in name, a file path, or a rule file name.

    Args:
        name_or_path: A key of BUILTIN_RULES, a path to a .rules/.json file,
            or a name to look for in RULE_SEARCH_PATHS

    Returns:
        The formatter, or None if nothing by that name was found
    """
    if name_or_path in BUILTIN_RULES:
        return RuleBasedFormatter.from_builtin(name_or_path)

    path = Path(name_or_path)
    if path.suffix in RULE_FILE_SUFFIXES or "/" in name_or_path or "\\" in name_or_path:
        if not path.exists():
            return None
        return RuleBasedFormatter.from_file(path)

    found = find_rule_file(name_or_path)
    if found is None:
        return None
    return RuleBasedFormatter.from_file(found)
