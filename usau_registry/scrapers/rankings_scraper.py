# usau_registry/scrapers/rankings_scraper.py

import re
from typing import Dict, List, NamedTuple, Optional, Union

from loguru import logger

from usau_registry.config.settings import settings
from usau_registry.models.enums import Division
from usau_registry.models.team import RankingEntry, RankingsResult
from usau_registry.parsing.dom import Document, attr_contains
from usau_registry.parsing.names import parse_float, parse_int
from .base_scraper import ConfigurationError, ScraperError
from .fetcher import PageFetcher

RANKINGS_PATH = "/teams/events/team_rankings/"

MIN_RANKING_CELLS = 8
REGION_COLUMN = 6
CONFERENCE_COLUMN = 7
# Expected header labels for the fixed columns above
EXPECTED_HEADERS = {REGION_COLUMN: "region", CONFERENCE_COLUMN: "conference"}

PAGE_NUMBER_RE = re.compile(r"[0-9]+")
ROW_COUNT_RE = re.compile(r"Rows:\s*\d+\s*-\s*\d+\s*of\s*(\d+)")
POSTBACK_TARGET_RE = re.compile(r"__doPostBack\('([^']+)'")

VIEWSTATE_FIELDS = ("__VIEWSTATE", "__VIEWSTATEGENERATOR", "__EVENTVALIDATION")


class PageLink(NamedTuple):
    page: int
    target: str
    is_expander: bool = False


def resolve_division(division: Union[str, Division]) -> Division:
    """Validates a division name ("College-Men") before any request is made."""
    try:
        return Division(division)
    except ValueError:
        valid = ", ".join(d.value for d in Division)
        raise ConfigurationError(
            f"Invalid division '{division}'. Valid options: {valid}"
        ) from None


def rankings_url(division: Division) -> str:
    return f"{settings.usau_base_url}{RANKINGS_PATH}?RankSet={division.value}"


def parse_rankings_page(doc: Document) -> List[RankingEntry]:
    """Parses every ranked-team row of one rankings page.

    Rows with fewer than 8 cells, a non-numeric rank, no team name or a
    non-numeric rating are skipped; this drops header and footer rows.
    """
    entries: List[RankingEntry] = []
    for row in doc.iter_all("tr"):
        cells = row.find_all("td")
        if len(cells) < MIN_RANKING_CELLS:
            continue

        rank = parse_int(cells[0].text)
        if rank is None:
            continue

        team_cell = cells[1]
        team_name = team_cell.find_text("a") or team_cell.text
        rating = parse_float(cells[2].text)
        if not team_name or rating is None:
            continue

        entries.append(
            RankingEntry(
                rank=rank,
                team_name=team_name,
                rating=rating,
                wins=parse_int(cells[-2].text, 0),
                losses=parse_int(cells[-1].text, 0),
                region=cells[REGION_COLUMN].text,
                conference=cells[CONFERENCE_COLUMN].text,
            )
        )
    return entries


def check_column_headers(doc: Document) -> bool:
    """Warns when the rankings table headers no longer match the fixed columns.

    Region and conference are read by position; a reordered table would
    silently misattribute them, so a mismatch is logged but never fatal.
    Returns False only when a header row was found and disagrees.
    """
    for row in doc.iter_all("tr"):
        headers = [h.text.lower() for h in row.find_all("th")]
        if len(headers) < MIN_RANKING_CELLS:
            continue
        for index, label in EXPECTED_HEADERS.items():
            if label not in headers[index]:
                logger.warning(
                    f"Rankings column {index} is '{headers[index]}', expected '{label}'. "
                    "Region/conference values may be misattributed."
                )
                return False
        return True
    return True


def extract_total_count(doc: Document, fallback: int) -> int:
    """Reads N from the "Rows: X - Y of N" pager label."""
    match = ROW_COUNT_RE.search(doc.body_text)
    return int(match.group(1)) if match else fallback


def find_page_links(doc: Document) -> List[PageLink]:
    """Collects postback targets for numbered pages (> 1) and "..." expanders."""
    postback_anchors = doc.find_all("a", attrs={"href": attr_contains("__doPostBack")})

    links: List[PageLink] = []
    for anchor in postback_anchors:
        text = anchor.text
        if PAGE_NUMBER_RE.fullmatch(text) and int(text) > 1:
            match = POSTBACK_TARGET_RE.search(anchor.attr("href"))
            if match:
                links.append(PageLink(int(text), match.group(1)))

    for anchor in postback_anchors:
        if anchor.text == "...":
            match = POSTBACK_TARGET_RE.search(anchor.attr("href"))
            if match:
                links.append(PageLink(len(links) + 2, match.group(1), True))
    return links


def extract_form_tokens(doc: Document) -> Dict[str, str]:
    """Reads the hidden ASP.NET state inputs carried by every postback."""
    tokens = {}
    for field in VIEWSTATE_FIELDS:
        element = doc.find("input", attrs={"name": field})
        tokens[field] = element.attr("value") if element is not None else ""
    return tokens


def _warn_if_unparsed(doc: Document, division: Division) -> None:
    if doc.size > settings.zero_yield_warn_bytes:
        logger.warning(
            f"Rankings page for {division.value} is {doc.size} bytes but yielded no rows; "
            "the table layout may have changed."
        )


async def fetch_all_rankings(
    fetcher: PageFetcher,
    division: Union[str, Division],
    max_pages: Optional[int] = None,
) -> RankingsResult:
    """Walks every rankings page of a division.

    The registry paginates by postback: each further page is requested by
    re-submitting the previous page's view-state tokens together with the
    pager link's event target. The walk stops when a page yields no rows,
    when the view state is missing (expired session), when a follow-up
    request fails, or after ``max_pages`` pages in total. Rows are not
    deduplicated. Errors fetching the first page propagate.
    """
    division = resolve_division(division)
    max_pages = max_pages or settings.max_rankings_pages
    url = rankings_url(division)
    log = logger.bind(division=division.value, url=url)

    html = await fetcher.fetch(url)
    doc = Document(html)
    check_column_headers(doc)

    rankings = parse_rankings_page(doc)
    total_count = extract_total_count(doc, len(rankings))
    pages_fetched = 1
    log.info(
        f"{division.value}: page 1 yielded {len(rankings)} rows, {total_count} reported"
    )

    if not rankings:
        _warn_if_unparsed(doc, division)
    elif len(rankings) < total_count:
        page_links = find_page_links(doc)
        log.debug(f"{division.value}: found {len(page_links)} pager links")

        for page_link in page_links[: max_pages - 1]:
            tokens = extract_form_tokens(doc)
            if not tokens["__VIEWSTATE"]:
                log.debug(
                    f"{division.value}: no view state before page {page_link.page}, stopping"
                )
                break

            fields = {
                "__EVENTTARGET": page_link.target,
                "__EVENTARGUMENT": "",
                **tokens,
            }
            try:
                html = await fetcher.post_form(url, fields)
            except ScraperError as e:
                log.bind(page=page_link.page, viewstate=tokens["__VIEWSTATE"]).error(
                    f"Failed to fetch rankings page {page_link.page} for {division.value}: {e}"
                )
                break

            doc = Document(html)
            page_results = parse_rankings_page(doc)
            if not page_results:
                log.bind(page=page_link.page, html=html).debug(
                    f"{division.value}: page {page_link.page} yielded no rows, stopping"
                )
                break
            rankings.extend(page_results)
            pages_fetched += 1

    log.info(
        f"{division.value}: collected {len(rankings)} of {total_count} teams over {pages_fetched} page(s)"
    )
    return RankingsResult(
        division=division,
        rankings=rankings,
        total_count=total_count,
        pages_fetched=pages_fetched,
    )
