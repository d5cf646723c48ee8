import asyncio

import pytest

from usau_registry.config.settings import settings
from usau_registry.models.enums import Division
from usau_registry.parsing.dom import Document
from usau_registry.scrapers.base_scraper import ConfigurationError, TransportError
from usau_registry.scrapers.fetcher import PageFetcher
from usau_registry.scrapers.rankings_scraper import (
    check_column_headers,
    extract_form_tokens,
    extract_total_count,
    fetch_all_rankings,
    find_page_links,
    parse_rankings_page,
)

from conftest import FakeTransport, rankings_page, rankings_row

PAGER = (
    "<a href=\"javascript:__doPostBack('ctl00$pager$p1','')\">1</a>"
    "<a href=\"javascript:__doPostBack('ctl00$pager$p2','')\">2</a>"
    "<a href=\"javascript:__doPostBack('ctl00$pager$p3','')\">3</a>"
    "<a href=\"javascript:__doPostBack('ctl00$pager$more','')\">...</a>"
)


def test_parses_ranking_rows():
    doc = Document(rankings_page([rankings_row(1, "Brown", "2201.5", wins=20, losses=3)]))

    [entry] = parse_rankings_page(doc)

    assert entry.rank == 1
    assert entry.team_name == "Brown"
    assert entry.rating == 2201.5
    assert (entry.wins, entry.losses) == (20, 3)
    assert (entry.region, entry.conference) == ("Southwest", "NorCal")


def test_row_with_fewer_than_eight_cells_is_skipped():
    doc = Document(
        "<table><tr><td>1</td><td>Brown</td><td>2201</td><td>x</td>"
        "<td>x</td><td>x</td><td>SW</td></tr></table>"
    )
    assert parse_rankings_page(doc) == []


def test_row_with_non_numeric_rank_is_skipped():
    doc = Document(rankings_page([rankings_row("Rank", "Brown", "2201")]))
    assert parse_rankings_page(doc) == []


def test_row_with_non_numeric_rating_is_skipped():
    doc = Document(rankings_page([rankings_row(4, "Brown", "n/a")]))
    assert parse_rankings_page(doc) == []


def test_unparseable_record_defaults_to_zero():
    doc = Document(rankings_page([rankings_row(2, "Tufts", "1999", wins="-", losses="")]))
    [entry] = parse_rankings_page(doc)
    assert (entry.wins, entry.losses) == (0, 0)


def test_team_name_falls_back_to_cell_text():
    doc = Document(
        "<table><tr><td>3</td><td>Oregon</td><td>2100</td><td>x</td><td>x</td>"
        "<td>x</td><td>NW</td><td>Cascadia</td><td>5</td><td>1</td></tr></table>"
    )
    [entry] = parse_rankings_page(doc)
    assert entry.team_name == "Oregon"


def test_column_header_check_flags_reordered_table():
    good = Document(rankings_page([]))
    bad = Document(
        "<table><tr><th>Rank</th><th>Team</th><th>Rating</th><th>A</th><th>B</th>"
        "<th>C</th><th>Conference</th><th>Region</th></tr></table>"
    )
    assert check_column_headers(good) is True
    assert check_column_headers(bad) is False


def test_total_count_and_pager_links():
    doc = Document(rankings_page([rankings_row(1, "Brown", "2201")], pager=PAGER, total=120))

    assert extract_total_count(doc, fallback=1) == 120
    links = find_page_links(doc)
    assert [(l.page, l.target, l.is_expander) for l in links] == [
        (2, "ctl00$pager$p2", False),
        (3, "ctl00$pager$p3", False),
        (4, "ctl00$pager$more", True),
    ]


def test_total_count_falls_back_without_pager_label():
    doc = Document(rankings_page([rankings_row(1, "Brown", "2201")]))
    assert extract_total_count(doc, fallback=1) == 1


def test_form_tokens():
    tokens = extract_form_tokens(Document(rankings_page([], viewstate="abc")))
    assert tokens == {
        "__VIEWSTATE": "abc",
        "__VIEWSTATEGENERATOR": "GEN1",
        "__EVENTVALIDATION": "EV1",
    }


def _fetcher(transport):
    return PageFetcher(primary=None, fallback=transport)


def test_single_page_when_rows_cover_total():
    rows = [rankings_row(i, f"Team {i}", "1500") for i in range(1, 51)]
    transport = FakeTransport(get_queue=[rankings_page(rows, pager=PAGER, total=50)])

    result = asyncio.run(fetch_all_rankings(_fetcher(transport), "College-Men"))

    assert len(result.rankings) == 50
    assert result.total_count == 50
    assert transport.posts == []
    assert transport.gets == [
        f"{settings.usau_base_url}/teams/events/team_rankings/?RankSet=College-Men"
    ]


def test_walks_postback_pages_carrying_view_state():
    page1 = rankings_page([rankings_row(1, "Brown", "2201"), rankings_row(2, "Tufts", "2100")], pager=PAGER, total=5)
    page2 = rankings_page([rankings_row(3, "Oregon", "2000"), rankings_row(4, "UNC", "1990")], pager=PAGER, total=5, viewstate="VS2")
    page3 = rankings_page([rankings_row(5, "Colorado", "1950")], pager=PAGER, total=5, viewstate="VS3")
    transport = FakeTransport(get_queue=[page1], post_queue=[page2, page3, rankings_page([])])

    result = asyncio.run(fetch_all_rankings(_fetcher(transport), Division.COLLEGE_MEN))

    assert [e.rank for e in result.rankings] == [1, 2, 3, 4, 5]
    assert result.total_count == 5
    first_post, second_post = transport.posts[0][1], transport.posts[1][1]
    assert first_post["__EVENTTARGET"] == "ctl00$pager$p2"
    assert first_post["__EVENTARGUMENT"] == ""
    assert first_post["__VIEWSTATE"] == "VS1"
    assert second_post["__EVENTTARGET"] == "ctl00$pager$p3"
    assert second_post["__VIEWSTATE"] == "VS2"
    # The expander page came back empty, ending the walk
    assert len(transport.posts) == 3
    assert result.pages_fetched == 3


def test_stops_when_view_state_is_missing():
    page1 = rankings_page([rankings_row(1, "Brown", "2201")], pager=PAGER, total=100, viewstate="")
    transport = FakeTransport(get_queue=[page1])

    result = asyncio.run(fetch_all_rankings(_fetcher(transport), "Club-Mixed"))

    assert len(result.rankings) == 1
    assert transport.posts == []


def test_page_error_returns_partial_results():
    page1 = rankings_page([rankings_row(1, "Brown", "2201")], pager=PAGER, total=100)
    transport = FakeTransport(get_queue=[page1], post_queue=[TransportError("reset")])

    result = asyncio.run(fetch_all_rankings(_fetcher(transport), "Club-Men"))

    assert [e.team_name for e in result.rankings] == ["Brown"]
    assert result.total_count == 100


def test_page_cap_limits_posts():
    pager = "".join(
        f"<a href=\"javascript:__doPostBack('pager$p{n}','')\">{n}</a>" for n in range(2, 20)
    )
    page = rankings_page([rankings_row(1, "Brown", "2201")], pager=pager, total=1000)
    transport = FakeTransport(get_queue=[page], post_queue=[page] * 30)

    result = asyncio.run(fetch_all_rankings(_fetcher(transport), "Club-Women", max_pages=4))

    assert len(transport.posts) == 3
    assert len(result.rankings) == 4


def test_invalid_division_is_rejected_before_fetching():
    transport = FakeTransport()
    with pytest.raises(ConfigurationError):
        asyncio.run(fetch_all_rankings(_fetcher(transport), "Pro-Men"))
    assert transport.gets == []


def test_total_count_ignores_pager_digits_after_label():
    rows = [rankings_row(i, f"Team {i}", "1500") for i in range(1, 51)]
    doc = Document(rankings_page(rows, pager=PAGER, total=50))
    assert "of 50 1 2 3" in doc.body_text
    assert extract_total_count(doc, fallback=0) == 50


def test_pager_ignores_non_ascii_digits():
    doc = Document("<a href=\"javascript:__doPostBack('p$2','')\">²</a>")
    assert find_page_links(doc) == []


def test_failed_page_is_logged_with_shortened_view_state(log_records):
    page1 = rankings_page([rankings_row(1, "Brown", "2201")], pager=PAGER, total=100, viewstate="V" * 500)
    transport = FakeTransport(get_queue=[page1], post_queue=[TransportError("reset")])

    asyncio.run(fetch_all_rankings(_fetcher(transport), "Club-Men"))

    (failure,) = [r for r in log_records if r["level"].name == "ERROR" and "rankings page 2" in r["message"]]
    assert failure["extra"]["division"] == "Club-Men"
    assert failure["extra"]["page"] == 2
    assert failure["extra"]["viewstate"] == "V" * 40 + "...<500 chars>"
