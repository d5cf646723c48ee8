# usau_registry/parsing/roster.py
import re
from typing import Callable, List, Optional, Set

from loguru import logger

from usau_registry.models.team import RosterPlayer, TeamRoster
from .dom import Document, Element, attr_contains

MAX_PLAYERS = 50
UNKNOWN_TEAM = "Unknown Team"

# Labels that show up in roster tables but are never player names
EXCLUDE_WORDS = (
    "name", "player", "roster", "jersey", "number", "#",
    "open", "women", "mixed", "men", "division",
    "january", "february", "march", "april", "may", "june",
    "july", "august", "september", "october", "november", "december",
    "schedule", "results", "standings", "stats", "view", "more",
    "tournament", "event", "2024", "2025", "2026",
)

# Roster columns: No. | Player | Pronouns | Position | Year | Height | Points | Assists | Ds | Turns
TEXT_COLUMNS = ((2, "pronouns", 20), (3, "position", 30), (4, "year", 20), (5, "height", 15))
STAT_COLUMNS = ((6, "points"), (7, "assists"), (8, "ds"), (9, "turns"))
JERSEY_NUMBER_RE = re.compile(r"[0-9]+")


def is_valid_player_name(name: str) -> bool:
    if not name or not (3 <= len(name) <= 50):
        return False
    if not re.search(r"[a-zA-Z]", name):
        return False
    lower_name = name.lower()
    if any(word in lower_name for word in EXCLUDE_WORDS):
        return False
    # Dates and event labels start with digits; "3 Dots" style names do not end there
    if re.match(r"^\d", name) and not re.match(r"^\d+\s+[a-zA-Z]", name):
        return False
    return True


def _team_name(doc: Document) -> str:
    candidates: List[Callable[[], Optional[Element]]] = [
        lambda: doc.find("h4", where=lambda e: e.parent is not None and e.parent.has_class("profile_info")),
        lambda: doc.find("h1", where=lambda e: e.parent is not None and e.parent.has_class("team-header")),
        lambda: doc.find(classes=["team-name"]),
        lambda: doc.find(classes=["event-team-name"]),
        lambda: doc.find(attrs={"id": "ContentPlaceHolder1_lblTeamName"}),
        lambda: doc.find("strong", where=lambda e: e.parent is not None and e.parent.has_class("profile_info")),
    ]
    name = ""
    for candidate in candidates:
        element = candidate()
        text = element.text if element is not None else ""
        if 2 < len(text) < 100 and "usa ultimate" not in text.lower():
            name = text
            break

    if not name:
        first = re.split(r"[|\-–]", doc.title)[0].strip()
        if "usa ultimate" not in first.lower():
            name = first

    name = re.sub(r"\s+", " ", re.sub(r"roster", "", name, flags=re.IGNORECASE)).strip()
    return name or UNKNOWN_TEAM


def _roster_rows(doc: Document) -> List[Element]:
    """Rows of the most specific roster table present on the page."""
    strategies = [
        lambda: doc.find_all("tr", where=lambda e: _in_table_with(e, lambda t: t.has_class("global_table"))),
        lambda: doc.find_all("tr", where=lambda e: _in_table_with(e, lambda t: "gvList" in t.attr("id"))),
        lambda: doc.find_all("tr", where=lambda e: _in_table_with(e, lambda t: "roster" in t.attr("id").lower())),
        lambda: doc.find_all("tr", where=lambda e: _in_table_with(e, lambda t: t.has_class("roster-table"))),
    ]
    for strategy in strategies:
        rows = strategy()
        if len(rows) > 1:
            return rows
    return doc.find_all("tr")


def _in_table_with(row: Element, predicate: Callable[[Element], bool]) -> bool:
    table = row.closest("table")
    return table is not None and predicate(table)


def _player_from_row(cells: List[Element]) -> Optional[RosterPlayer]:
    first, second = cells[0].text, cells[1].text
    if not JERSEY_NUMBER_RE.fullmatch(first):
        return None
    if not is_valid_player_name(second):
        return None

    player = RosterPlayer(name=second, number=int(first))
    for index, field, max_length in TEXT_COLUMNS:
        if len(cells) > index:
            value = cells[index].text
            if 0 < len(value) < max_length:
                setattr(player, field, value)
    for index, field in STAT_COLUMNS:
        if len(cells) > index:
            value = cells[index].text
            match = re.match(r"^-?\d+", value)
            if match:
                setattr(player, field, int(match.group(0)))
    return player


def parse_team_roster(html: str, url: str) -> TeamRoster:
    """Extracts a team's name and player list from a registry team page."""
    doc = Document(html)
    roster: List[RosterPlayer] = []
    seen: Set[str] = set()

    def add(player: RosterPlayer) -> None:
        seen.add(player.name.lower())
        roster.append(player)

    for row in _roster_rows(doc):
        cells = row.find_all("td")
        if len(cells) < 2:
            continue
        player = _player_from_row(cells)
        if player is not None and player.name.lower() not in seen:
            add(player)

    # Looser layouts: name-first rows and player links
    for row in doc.iter_all("tr"):
        cells = row.find_all("td")
        if not cells:
            continue
        first = cells[0].text
        second = cells[1].text if len(cells) > 1 else ""
        name, number = "", None
        if re.fullmatch(r"\d{1,2}", first) and second:
            name, number = second, int(first)
        elif first and not JERSEY_NUMBER_RE.fullmatch(first):
            name = first
            if re.fullmatch(r"\d{1,2}", second):
                number = int(second)
        if is_valid_player_name(name) and name.lower() not in seen:
            add(RosterPlayer(name=name, number=number))

    for anchor in doc.iter_all("a", attrs={"href": attr_contains("/players/")}):
        name = anchor.text
        if is_valid_player_name(name) and name.lower() not in seen:
            add(RosterPlayer(name=name))

    team_name = _team_name(doc)
    logger.info(f"Found team '{team_name}' with {len(roster)} players")
    return TeamRoster(name=team_name, link=url, roster=roster[:MAX_PLAYERS])
