# usau_registry/parsing/schedule.py
"""Pool standings, pool-play games and tabs from a tournament schedule page."""

import re
from typing import Dict, List, Optional, Set

from loguru import logger

from usau_registry.config.settings import settings
from usau_registry.models.enums import MatchupStatus
from usau_registry.models.game import Matchup
from usau_registry.models.team import PoolAssignment, PoolTeam
from usau_registry.models.tournament import ScheduleData, ScheduleTab
from .bracket import parse_bracket_sections
from .dom import Document, Element, attr_contains, attr_startswith
from .names import clean_team_name, extract_seed, parse_int

MAX_MATCHUPS = 500

POOL_NAME_RE = re.compile(r"Pool\s*([A-Z])\b", re.IGNORECASE)
RECORD_RE = re.compile(r"(\d+)\s*-\s*(\d+)")
SECTION_TYPE_RE = re.compile(r"section_\d+_(\d+)_")

HEADING_TAGS = ("h2", "h3", "h4", "h5")
HEADER_LABELS = frozenset(["team", "w-l", "record"])
# Section type code used for elimination brackets
BRACKET_SECTION_TYPE = "3"


def _pool_name(text: str) -> Optional[str]:
    match = POOL_NAME_RE.search(text)
    return f"Pool {match.group(1).upper()}" if match else None


def _is_pool_heading(element: Element) -> bool:
    if element.name in HEADING_TAGS or element.has_class("pool-header"):
        return True
    return "poolSlide" in element.attr("class")


def _parse_standing_row(row: Element) -> Optional[PoolTeam]:
    cells = row.find_all("td")
    if not cells:
        return None

    raw_name = cells[0].find_text("a") or cells[0].text
    name = clean_team_name(raw_name)
    if len(name) <= 2 or name.lower() in HEADER_LABELS:
        return None

    wins = losses = 0
    if len(cells) >= 2:
        record = RECORD_RE.search(cells[1].text)
        if record:
            wins, losses = int(record.group(1)), int(record.group(2))

    return PoolTeam(name=name, seed=extract_seed(raw_name), wins=wins, losses=losses)


def parse_standings_table(table: Element) -> List[PoolTeam]:
    """Valid team rows of a standings table, skipping header-like rows."""
    teams = []
    for row in table.iter_all("tr"):
        team = _parse_standing_row(row)
        if team is not None:
            teams.append(team)
    return teams


class _PoolCollector:
    """Accumulates pool tables and the deduplicated participant list."""

    def __init__(self):
        self.pools: Dict[str, List[PoolTeam]] = {}
        self.teams: List[PoolAssignment] = []
        self._seen: Set[str] = set()

    def add(self, pool_name: str, pool_teams: List[PoolTeam]) -> None:
        self.pools[pool_name] = pool_teams
        for team in pool_teams:
            key = team.name.lower()
            if key not in self._seen:
                self._seen.add(key)
                self.teams.append(
                    PoolAssignment(name=team.name, pool=pool_name, seed=team.seed)
                )


def _collect_headed_pools(doc: Document, collector: _PoolCollector) -> None:
    """Pools announced by a "Pool X" heading; needs one valid row."""
    for heading in doc.iter_all(where=_is_pool_heading):
        pool_name = _pool_name(heading.text)
        if pool_name is None:
            continue
        container = heading.parent
        if container is None:
            continue
        for table in container.iter_all("table"):
            pool_teams = parse_standings_table(table)
            if pool_teams:
                collector.add(pool_name, pool_teams)
                break


def _fallback_table_name(table: Element, index: int) -> str:
    name = table.find_text("caption")
    if not name:
        previous = table.previous_element_sibling()
        if previous is not None and previous.name in HEADING_TAGS:
            name = previous.text
    if not name:
        name = f"Pool {chr(ord('A') + index)}"
    return _pool_name(name) or name


def _collect_table_pools(doc: Document, collector: _PoolCollector) -> None:
    """Every table is a candidate pool; needs two valid rows without a heading."""
    for index, table in enumerate(doc.iter_all("table")):
        pool_teams = parse_standings_table(table)
        if len(pool_teams) >= 2:
            collector.add(_fallback_table_name(table, index), pool_teams)


def _parse_matchup_row(row: Element) -> Optional[Matchup]:
    def field(data_type: str) -> str:
        return row.find_text(attrs={"data-type": data_type})

    home_raw = field("game-team-home")
    away_raw = field("game-team-away")
    if not home_raw or not away_raw:
        return None

    home_score = parse_int(field("game-score-home"), 0)
    away_score = parse_int(field("game-score-away"), 0)
    status_text = row.find_text(classes=["game-status"]) or field("game-status")
    completed = status_text.lower() == "final" or home_score > 0 or away_score > 0

    return Matchup(
        home_team=clean_team_name(home_raw),
        away_team=clean_team_name(away_raw),
        home_score=home_score,
        away_score=away_score,
        status=MatchupStatus.COMPLETED if completed else MatchupStatus.SCHEDULED,
    )


def parse_pool_matchups(doc: Document) -> List[Matchup]:
    """Pool-play games from the typed schedule sections; bracket sections are skipped."""
    matchups: List[Matchup] = []
    for section in doc.iter_all(attrs={"id": attr_startswith("section_")}):
        type_match = SECTION_TYPE_RE.search(section.attr("id"))
        if not type_match or type_match.group(1) == BRACKET_SECTION_TYPE:
            continue

        for home_el in section.iter_all(attrs={"data-type": "game-team-home"}):
            row = home_el.closest("tr")
            if row is None:
                continue
            matchup = _parse_matchup_row(row)
            if matchup is not None:
                matchups.append(matchup)
    return matchups[:MAX_MATCHUPS]


def parse_schedule_tabs(doc: Document) -> List[ScheduleTab]:
    tabs: List[ScheduleTab] = []
    seen: Set[Element] = set()
    for container in doc.iter_all(attrs={"id": attr_contains("rptTabs")}):
        for anchor in container.iter_all("a"):
            if anchor in seen:
                continue
            seen.add(anchor)
            if anchor.text:
                tabs.append(ScheduleTab(name=anchor.text, section_id=anchor.attr("rel")))
    return tabs


def parse_pools_and_matchups(html: str) -> ScheduleData:
    """Extracts pools, pool-play matchups, brackets and tabs from a schedule page.

    Pools come from "Pool X" headings first; only when none are found is
    every table on the page tried as an unlabelled pool.
    """
    doc = Document(html)

    collector = _PoolCollector()
    _collect_headed_pools(doc, collector)
    if not collector.pools:
        _collect_table_pools(doc, collector)

    data = ScheduleData(
        pools=collector.pools,
        matchups=parse_pool_matchups(doc),
        teams=collector.teams,
        brackets=parse_bracket_sections(doc),
        tabs=parse_schedule_tabs(doc),
    )

    if data.is_empty and doc.size > settings.zero_yield_warn_bytes:
        logger.warning(
            f"Schedule page of {doc.size} bytes yielded no pools, matchups or brackets; "
            "the markup may have changed."
        )
    else:
        logger.debug(
            f"Schedule page: {data.pool_count} pools, {len(data.matchups)} matchups, "
            f"{len(data.brackets)} brackets"
        )
    return data
