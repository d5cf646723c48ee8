# usau_registry/utils/season.py
import re
from datetime import date, datetime
from typing import Optional, Union

YEAR_IN_NAME_RE = re.compile(r"\b(20\d{2})\b")

# August (8) through December belong to the following spring's season
FALL_START_MONTH = 8

DateLike = Union[date, datetime, str, None]


def _season_for(day: date) -> int:
    return day.year + 1 if day.month >= FALL_START_MONTH else day.year


def _coerce_date(value: DateLike) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00")).date()
    except ValueError:
        return None


def derive_season(
    name: Optional[str], start_date: DateLike = None, today: Optional[date] = None
) -> int:
    """Derive the registry season year for a tournament or team.

    A year embedded in the name wins ("Stanford Invite 2025" -> 2025).
    Otherwise the start date decides, with fall events counted toward the
    next year's season, and failing that the current date does. Never raises.
    """
    if name:
        match = YEAR_IN_NAME_RE.search(name)
        if match:
            return int(match.group(1))

    start = _coerce_date(start_date)
    if start is not None:
        return _season_for(start)

    return _season_for(today or date.today())
