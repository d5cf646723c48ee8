# usau_registry/parsing/names.py
import math
import re
from typing import Optional

SEED_SUFFIX_RE = re.compile(r"\s*[\(\[\{]\d+[\)\]\}]\s*$")
SEED_VALUE_RE = re.compile(r"[\(\[\{](\d+)[\)\]\}]\s*$")
INT_PREFIX_RE = re.compile(r"^\s*([+-]?\d+)")


def clean_team_name(name: str) -> str:
    """Strips a trailing seed annotation such as "(3)" or "[3]" from a team name."""
    if not name:
        return ""
    return SEED_SUFFIX_RE.sub("", name).strip()


def extract_seed(name: str) -> Optional[int]:
    """Returns the trailing seed number of a team name, or None."""
    if not name:
        return None
    match = SEED_VALUE_RE.search(name)
    return int(match.group(1)) if match else None


def parse_int(text: str, default: Optional[int] = None) -> Optional[int]:
    """Parses the leading integer of ``text`` ("12 pts" -> 12)."""
    match = INT_PREFIX_RE.match(text or "")
    return int(match.group(1)) if match else default


def parse_float(text: str) -> Optional[float]:
    """Parses ``text`` as a finite float, or returns None."""
    match = re.match(r"^\s*([+-]?(?:\d+\.?\d*|\.\d+)(?:[eE][+-]?\d+)?)", text or "")
    if not match:
        return None
    value = float(match.group(1))
    return value if math.isfinite(value) else None
