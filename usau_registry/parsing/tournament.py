# usau_registry/parsing/tournament.py
import re
from typing import List, Optional

from loguru import logger

from usau_registry.config.settings import settings
from usau_registry.models.enums import ScheduleLinkType
from usau_registry.models.team import TeamRef
from usau_registry.models.tournament import EventListing, ScheduleLink, TournamentSummary
from .dom import Document, Element, attr_contains

MAX_TEAMS = 50
MAX_SCHEDULE_LINKS = 5
MAX_EVENTS = 50
UNKNOWN_TOURNAMENT = "Unknown Tournament"

# Substrings that mark navigation chrome rather than a team
TEAM_SKIP_WORDS = (
    "schedule", "pool", "bracket", "results", "standings",
    "home", "about", "rankings", "login", "register", "sign up", "sign in",
    "contact", "search", "events", "membership", "donate",
    "match report", "consolation", "winner of", "loser of", "w of ", "l of ",
)

# Division selectors and labels, in every phrasing the registry uses
TEAM_SKIP_EXACT = frozenset(
    [
        "men", "men's", "women", "women's", "mixed", "boys", "girls",
        "college men's", "college women's", "college mixed",
        "club men's", "club women's", "club mixed",
        "tct men's", "tct women's", "tct mixed",
        "college men", "college women",
        "club men", "club women",
        "tct men", "tct women",
        "masters", "grandmasters", "great grandmasters",
    ]
)

BRACKET_PLACEHOLDER_RE = re.compile(r"^[WL]\s+of\s+", re.IGNORECASE)

DIVISION_LINK_LABELS = ("men", "men's", "women", "women's", "mixed")
DIVISION_LINK_PHRASES = ("college men", "college women", "club men", "club women")
DIVISION_HREF_MARKERS = ("/schedule/", "/Men/", "/Women/", "/Mixed/")


def resolve_href(href: str, page_url: Optional[str] = None) -> str:
    """Makes a registry href absolute.

    Root-relative hrefs join the site root; other relative hrefs are
    appended to ``page_url`` (or the site root when no page is given).
    """
    if href.startswith("http"):
        return href
    if href.startswith("/") or page_url is None:
        return settings.usau_base_url + href
    return page_url.rstrip("/") + "/" + href


def _tournament_name(doc: Document) -> str:
    heading = doc.find_text("h1")
    if heading:
        return heading
    title = doc.title.split("|")[0].strip()
    return title or UNKNOWN_TOURNAMENT


def is_team_label(name: str) -> bool:
    """Whether an anchor label looks like a team rather than page chrome."""
    if not (2 < len(name) < 100):
        return False
    name_lower = name.lower()
    if any(word in name_lower for word in TEAM_SKIP_WORDS):
        return False
    if name_lower in TEAM_SKIP_EXACT:
        return False
    return not BRACKET_PLACEHOLDER_RE.match(name)


def _schedule_link_type(text: str, href: str) -> Optional[ScheduleLinkType]:
    text_lower = text.lower()
    is_division = (
        text_lower in DIVISION_LINK_LABELS
        or any(phrase in text_lower for phrase in DIVISION_LINK_PHRASES)
    ) and any(marker in href for marker in DIVISION_HREF_MARKERS)
    if is_division:
        return ScheduleLinkType.DIVISION

    is_schedule = (
        "schedule" in href
        or "schedule" in text_lower
        or "pool play" in text_lower
        or "bracket" in text_lower
    )
    return ScheduleLinkType.SCHEDULE if is_schedule else None


def _is_team_candidate(element: Element) -> bool:
    if element.name == "a":
        if "/teams/" in element.attr("href") or element.closest("td") is not None:
            return True
    return element.has_class("team-name") or element.has_class("team")


def parse_tournament_page(html: str, url: str) -> TournamentSummary:
    """Extracts a tournament's name, participant teams and schedule links."""
    doc = Document(html)
    name = _tournament_name(doc)

    schedule_links: List[ScheduleLink] = []
    seen_hrefs = set()
    for anchor in doc.iter_all("a"):
        href = anchor.attr("href")
        if not href or href in seen_hrefs:
            continue
        text = anchor.text
        link_type = _schedule_link_type(text, href)
        if link_type is None:
            continue
        seen_hrefs.add(href)
        schedule_links.append(
            ScheduleLink(
                text=text or "Schedule",
                href=resolve_href(href, url),
                type=link_type,
            )
        )

    teams: List[TeamRef] = []
    seen_names = set()
    for element in doc.iter_all(where=_is_team_candidate):
        label = element.text
        if not label or label.lower() in seen_names or not is_team_label(label):
            continue
        seen_names.add(label.lower())
        href = element.attr("href")
        teams.append(TeamRef(name=label, link=resolve_href(href) if href else None))

    if not teams and not schedule_links and doc.size > settings.zero_yield_warn_bytes:
        logger.warning(
            f"Tournament page {url} ({doc.size} bytes) yielded no teams or schedule links"
        )

    return TournamentSummary(
        name=name,
        teams=teams[:MAX_TEAMS],
        schedule_links=schedule_links[:MAX_SCHEDULE_LINKS],
    )


def parse_events_list(html: str, query: str = "") -> List[EventListing]:
    """Lists event links from the registry's events index, filtered by ``query``."""
    doc = Document(html)
    query_lower = query.lower()

    events: List[EventListing] = []
    seen_links = set()
    for anchor in doc.iter_all("a", attrs={"href": attr_contains("/events/")}):
        link = anchor.attr("href")
        name = anchor.text
        if not name or query_lower not in name.lower():
            continue
        if link in seen_links or len(name) <= 3:
            continue
        seen_links.add(link)
        events.append(EventListing(name=name, link=resolve_href(link)))
    return events[:MAX_EVENTS]
