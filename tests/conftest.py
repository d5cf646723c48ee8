from typing import Dict, List, Mapping, Optional, Tuple, Union

import pytest
from loguru import logger

from usau_registry.config.settings import settings
from usau_registry.logging.setup import long_value_filter
from usau_registry.scrapers.base_scraper import Transport, TransportError

Response = Union[str, Exception]


class FakeTransport(Transport):
    """Serves canned pages and records every request it receives.

    GET responses come from ``pages`` (by URL) or, failing that, from the
    ``get_queue``; POST responses are taken from ``post_queue`` in order.
    Exceptions in either place are raised instead of returned.
    """

    name = "fake"

    def __init__(
        self,
        pages: Optional[Dict[str, Response]] = None,
        get_queue: Optional[List[Response]] = None,
        post_queue: Optional[List[Response]] = None,
    ):
        self.pages = dict(pages or {})
        self.get_queue = list(get_queue or [])
        self.post_queue = list(post_queue or [])
        self.gets: List[str] = []
        self.posts: List[Tuple[str, Dict[str, str]]] = []
        self.closed = False

    @staticmethod
    def _respond(response: Response) -> str:
        if isinstance(response, Exception):
            raise response
        return response

    async def get(self, url: str) -> str:
        self.gets.append(url)
        if url in self.pages:
            return self._respond(self.pages[url])
        if self.get_queue:
            return self._respond(self.get_queue.pop(0))
        raise TransportError(f"no page for {url}")

    async def post(self, url: str, fields: Mapping[str, str]) -> str:
        self.posts.append((url, dict(fields)))
        if self.post_queue:
            return self._respond(self.post_queue.pop(0))
        raise TransportError(f"no POST response for {url}")

    async def close(self) -> None:
        self.closed = True


@pytest.fixture(autouse=True)
def no_politeness_delays(monkeypatch):
    monkeypatch.setattr(settings, "division_delay", 0)
    monkeypatch.setattr(settings, "tournament_delay", 0)
    monkeypatch.setattr(settings, "schedule_delay", 0)


@pytest.fixture
def log_records():
    """Records emitted while the test runs, after the long-value filter."""
    records = []
    handler_id = logger.add(
        lambda message: records.append(message.record), level="DEBUG", filter=long_value_filter
    )
    yield records
    logger.remove(handler_id)

def rankings_row(rank, team, rating, region="Southwest", conference="NorCal", wins=10, losses=2):
    return (
        f"<tr><td>{rank}</td><td><a href='/teams/{team}'>{team}</a></td><td>{rating}</td>"
        f"<td>x</td><td>x</td><td>x</td><td>{region}</td><td>{conference}</td>"
        f"<td>{wins}</td><td>{losses}</td></tr>"
    )


def rankings_page(rows, pager="", total=None, viewstate="VS1"):
    label = f"<span>Rows: 1 - {len(rows)} of {total}</span>" if total is not None else ""
    state = (
        f"<input type='hidden' name='__VIEWSTATE' value='{viewstate}'/>"
        "<input type='hidden' name='__VIEWSTATEGENERATOR' value='GEN1'/>"
        "<input type='hidden' name='__EVENTVALIDATION' value='EV1'/>"
        if viewstate
        else ""
    )
    return (
        f"<html><body><form>{state}<table>"
        "<tr><th>Rank</th><th>Team</th><th>Rating</th><th>A</th><th>B</th><th>C</th>"
        "<th>Region</th><th>Conference</th><th>W</th><th>L</th></tr>"
        f"{''.join(rows)}</table>{label}{pager}</form></body></html>"
    )


SCHEDULE_PAGE = """
<html><body>
<div class="pool_block">
  <h3>Pool A</h3>
  <table>
    <tr><td>Team</td><td>W-L</td></tr>
    <tr><td><a href="/teams/alpha">Alpha (1)</a></td><td>2-0</td></tr>
    <tr><td><a href="/teams/bravo">Bravo (2)</a></td><td>1-1</td></tr>
    <tr><td><a href="/teams/charlie">Charlie (3)</a></td><td>0-2</td></tr>
  </table>
</div>
<div id="section_4521_1_pool">
  <table>
    <tr>
      <td data-type="game-team-home">Alpha (1)</td><td data-type="game-score-home">13</td>
      <td data-type="game-score-away">9</td><td data-type="game-team-away">Bravo (2)</td>
      <td class="game-status">Final</td>
    </tr>
    <tr>
      <td data-type="game-team-home">Alpha (1)</td><td data-type="game-score-home">15</td>
      <td data-type="game-score-away">4</td><td data-type="game-team-away">Charlie (3)</td>
      <td class="game-status">Final</td>
    </tr>
    <tr>
      <td data-type="game-team-home">Bravo (2)</td><td data-type="game-score-home">11</td>
      <td data-type="game-score-away">10</td><td data-type="game-team-away">Charlie (3)</td>
      <td class="game-status">Final</td>
    </tr>
  </table>
</div>
</body></html>
"""
