# usau_registry/utils/misc_utils.py
import re


def slugify(*parts: str) -> str:
    """Generates a consistent, URL-safe key from one or more strings.

    Runs of anything other than lowercase letters and digits collapse to a
    single hyphen; leading and trailing hyphens are dropped.
    """
    combined = "--".join(str(part) for part in parts if part)
    return re.sub(r"[^a-z0-9]+", "-", combined.lower()).strip("-")


def ranked_team_slug(division: str, team_name: str) -> str:
    """Slug of a ranked team, unique per division."""
    return slugify(division, team_name)
