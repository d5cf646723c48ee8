from datetime import date, datetime

from usau_registry.parsing.names import clean_team_name, extract_seed, parse_float, parse_int
from usau_registry.utils.misc_utils import ranked_team_slug, slugify
from usau_registry.utils.season import derive_season


def test_clean_team_name_strips_seed():
    assert clean_team_name("Generic U (3)") == "Generic U"
    assert clean_team_name("Generic U [12] ") == "Generic U"
    assert clean_team_name("  Generic U  ") == "Generic U"


def test_clean_team_name_keeps_inner_numbers():
    assert clean_team_name("Team (3) Blue") == "Team (3) Blue"


def test_extract_seed():
    assert extract_seed("Generic U (3)") == 3
    assert extract_seed("Generic U {7}") == 7
    assert extract_seed("Generic U") is None
    assert extract_seed("") is None


def test_parse_int_and_float():
    assert parse_int("12 pts") == 12
    assert parse_int("abc") is None
    assert parse_int("", 0) == 0
    assert parse_float("1834.56") == 1834.56
    assert parse_float("n/a") is None
    assert parse_float("1e999") is None
    assert parse_float("-1e999") is None


def test_slugify():
    assert slugify("Stanford Invite 2025") == "stanford-invite-2025"
    assert slugify("  Ring of Fire!! ") == "ring-of-fire"
    assert ranked_team_slug("College-Men", "North Carolina") == "college-men-north-carolina"


def test_season_from_name():
    assert derive_season("Stanford Invite 2025", None) == 2025


def test_season_from_fall_date():
    assert derive_season("Fall Classic", "2025-10-01") == 2026


def test_season_from_spring_date():
    assert derive_season("Spring Open", "2025-03-01") == 2025


def test_season_accepts_date_objects():
    assert derive_season(None, date(2024, 8, 1)) == 2025
    assert derive_season(None, datetime(2024, 7, 31, 12, 0)) == 2024


def test_season_falls_back_to_today():
    assert derive_season(None, None, today=date(2025, 11, 15)) == 2026
    assert derive_season("Open", "not a date", today=date(2025, 2, 1)) == 2025


def test_season_ignores_non_20xx_numbers():
    assert derive_season("Section 1999 Qualifier", "2025-04-12") == 2025
