# usau_registry/sync/registry_sync.py
"""Registry refresh job: rankings, tournaments, pools and matchups.

Every unit of work (a division, a tournament, a schedule page) is fetched
and stored independently; a failure is logged and the next unit proceeds.
"""

import asyncio
from datetime import date
from typing import Dict, Iterable, List, Optional, Tuple

from loguru import logger
from pydantic import BaseModel

from usau_registry.config.settings import settings
from usau_registry.models.enums import Division, SyncStatus, SyncType
from usau_registry.models.records import (
    RankedTeamRecord,
    TournamentRecord,
    TournamentTeamRecord,
)
from usau_registry.models.tournament import EventListing
from usau_registry.parsing.schedule import parse_pools_and_matchups
from usau_registry.parsing.tournament import parse_events_list, parse_tournament_page
from usau_registry.scrapers.base_scraper import ScraperError
from usau_registry.scrapers.fetcher import PageFetcher
from usau_registry.scrapers.rankings_scraper import fetch_all_rankings, resolve_division
from usau_registry.storage.sqlite_store import SqliteStore
from usau_registry.utils.misc_utils import ranked_team_slug, slugify
from usau_registry.utils.season import derive_season

EVENTS_PATH = "/events/tournament/?ViewAll=true"
TEAM_LOOKUP_LIMIT = 500


class SyncOptions(BaseModel):
    rankings_only: bool = False
    tournaments_only: bool = False
    backfill_seasons: bool = False
    division: Optional[str] = None

    @property
    def sync_type(self) -> SyncType:
        if self.rankings_only:
            return SyncType.RANKINGS
        if self.tournaments_only:
            return SyncType.TOURNAMENTS
        return SyncType.FULL


class SyncSummary(BaseModel):
    sync_type: SyncType
    teams_synced: int = 0
    tournaments_synced: int = 0
    matchups_synced: int = 0
    teams_backfilled: int = 0
    tournaments_backfilled: int = 0


class TeamSlugLookup:
    """Maps team names (case-insensitive) to ranked-team slugs for one sync run."""

    def __init__(self, slugs_by_name: Optional[Dict[str, str]] = None):
        self._slugs: Dict[str, str] = {
            name.lower(): slug for name, slug in (slugs_by_name or {}).items()
        }

    @classmethod
    def from_store(
        cls, store: SqliteStore, divisions: Iterable[Division] = tuple(Division)
    ) -> "TeamSlugLookup":
        lookup = cls()
        for division in divisions:
            for team in store.get_ranked_teams(division.value, limit=TEAM_LOOKUP_LIMIT):
                lookup.add(team["name"], team["slug"])
        logger.debug(f"Loaded {len(lookup)} team slugs for matching")
        return lookup

    def add(self, name: str, slug: str) -> None:
        self._slugs[name.lower()] = slug

    def find(self, team_name: Optional[str]) -> Optional[str]:
        if not team_name:
            return None
        return self._slugs.get(team_name.lower())

    def __len__(self) -> int:
        return len(self._slugs)


def resolve_divisions(division: Optional[str]) -> List[Division]:
    """The divisions to sync; raises ConfigurationError for an unknown name."""
    if division:
        return [resolve_division(division)]
    return list(Division)


async def sync_rankings(
    fetcher: PageFetcher,
    store: SqliteStore,
    divisions: List[Division],
    season: Optional[int] = None,
) -> int:
    """Fetches and stores the rankings of each division; returns teams stored."""
    season = season or derive_season(None, None)
    total_teams = 0

    for division in divisions:
        logger.info(f"Syncing rankings: {division.value} (season {season})")
        try:
            result = await fetch_all_rankings(fetcher, division)
        except ScraperError as e:
            logger.error(f"Error syncing {division.value}: {e}")
        except Exception as e:
            logger.exception(f"Unexpected error syncing {division.value}: {e}")
        else:
            logger.info(
                f"Fetched {len(result.rankings)} of {result.total_count} teams for {division.value}"
            )
            stored = 0
            for entry in result.rankings:
                record = RankedTeamRecord(
                    slug=ranked_team_slug(division.value, entry.team_name),
                    name=entry.team_name,
                    division=division.value,
                    region=entry.region or None,
                    conference=entry.conference or None,
                    ranking=entry.rank,
                    rating=entry.rating,
                    wins=entry.wins,
                    losses=entry.losses,
                    season=season,
                )
                if store.upsert_ranked_team(record):
                    stored += 1
            total_teams += stored
            logger.success(f"Upserted {stored} teams for {division.value}")

        # Rate limit between divisions
        await asyncio.sleep(settings.division_delay)

    return total_teams


def is_tournament_listing(event: EventListing) -> bool:
    """Filters navigation links out of the events index."""
    name = event.name.lower()
    return (
        "/events/" in event.link
        and not event.link.endswith("/events/")
        and "ViewAll" not in event.link
        and "unaffiliated" not in name
        and "rankings" not in name
        and len(name) > 5
    )


async def sync_schedule(
    fetcher: PageFetcher,
    store: SqliteStore,
    tournament_slug: str,
    schedule_url: str,
    lookup: TeamSlugLookup,
) -> int:
    """Stores pool assignments and pool-play matchups; returns matchups stored."""
    html = await fetcher.fetch(schedule_url)
    data = parse_pools_and_matchups(html)

    for team in data.teams:
        store.upsert_tournament_team(
            TournamentTeamRecord(
                tournament_slug=tournament_slug,
                team_slug=lookup.find(team.name),
                team_name=team.name,
                pool=team.pool,
                seed=team.seed,
            )
        )

    if not data.matchups:
        return 0
    if not store.replace_matchups(tournament_slug, data.matchups):
        return 0
    logger.info(f"{len(data.matchups)} matchups, {len(data.teams)} teams")
    return len(data.matchups)


async def sync_tournament(
    fetcher: PageFetcher,
    store: SqliteStore,
    event: EventListing,
    lookup: TeamSlugLookup,
) -> int:
    """Stores one tournament with its teams and schedule; returns matchups stored."""
    slug = slugify(event.name)
    html = await fetcher.fetch(event.link)
    detail = parse_tournament_page(html, event.link)

    schedule_url = detail.schedule_links[0].href if detail.schedule_links else None
    stored = store.upsert_tournament(
        TournamentRecord(
            slug=slug,
            name=detail.name or event.name,
            usau_url=event.link,
            schedule_url=schedule_url,
            team_count=len(detail.teams),
            season=derive_season(event.name, None),
        )
    )
    if not stored:
        raise ScraperError(f"Could not store tournament {slug}")

    for team in detail.teams:
        store.upsert_tournament_team(
            TournamentTeamRecord(
                tournament_slug=slug,
                team_slug=lookup.find(team.name),
                team_name=team.name,
                usau_team_url=team.link,
            )
        )

    if schedule_url is None:
        return 0
    try:
        await asyncio.sleep(settings.schedule_delay)
        return await sync_schedule(fetcher, store, slug, schedule_url, lookup)
    except ScraperError as e:
        logger.error(f"Schedule fetch error for {slug}: {e}")
        return 0


async def sync_tournaments(
    fetcher: PageFetcher, store: SqliteStore, lookup: TeamSlugLookup
) -> Tuple[int, int]:
    """Walks the events index; returns (tournaments stored, matchups stored)."""
    total_tournaments = 0
    total_matchups = 0

    logger.info("Fetching USAU events listing")
    try:
        events_html = await fetcher.fetch(settings.usau_base_url + EVENTS_PATH)
    except ScraperError as e:
        logger.error(f"Error fetching events: {e}")
        return 0, 0

    events = [e for e in parse_events_list(events_html, "") if is_tournament_listing(e)]
    logger.info(f"Found {len(events)} tournaments")

    for event in events:
        logger.info(f"Processing: {event.name[:60]}")
        try:
            total_matchups += await sync_tournament(fetcher, store, event, lookup)
        except ScraperError as e:
            logger.error(f"Error processing tournament {event.name}: {e}")
            continue
        except Exception as e:
            logger.exception(f"Unexpected error processing tournament {event.name}: {e}")
            continue
        total_tournaments += 1
        # Rate limit between tournaments
        await asyncio.sleep(settings.tournament_delay)

    return total_tournaments, total_matchups


def backfill_seasons(store: SqliteStore, today: Optional[date] = None) -> Tuple[int, int]:
    """Fills in missing season values; returns (teams, tournaments) updated."""
    current_season = derive_season(None, None, today=today)
    teams_updated = store.set_missing_team_seasons(current_season)

    tournaments_updated = 0
    for tournament in store.tournaments_without_season():
        season = derive_season(tournament["name"], tournament["start_date"], today=today)
        if store.set_tournament_season(tournament["slug"], season):
            tournaments_updated += 1

    logger.info(
        f"Backfilled seasons: {teams_updated} teams, {tournaments_updated} tournaments"
    )
    return teams_updated, tournaments_updated


async def run_sync(
    options: SyncOptions, fetcher: PageFetcher, store: SqliteStore
) -> SyncSummary:
    """Runs one registry sync and records it in the sync log.

    Invalid divisions are rejected before any request is made.
    """
    if options.backfill_seasons:
        teams, tournaments = backfill_seasons(store)
        return SyncSummary(
            sync_type=options.sync_type,
            teams_backfilled=teams,
            tournaments_backfilled=tournaments,
        )

    divisions = resolve_divisions(options.division)
    summary = SyncSummary(sync_type=options.sync_type)
    log_id = store.create_sync_log(options.sync_type, options.division)

    try:
        if not options.tournaments_only:
            summary.teams_synced = await sync_rankings(fetcher, store, divisions)

        if not options.rankings_only:
            lookup = TeamSlugLookup.from_store(store)
            tournaments, matchups = await sync_tournaments(fetcher, store, lookup)
            summary.tournaments_synced = tournaments
            summary.matchups_synced = matchups
    except Exception as e:
        store.update_sync_log(log_id, SyncStatus.FAILED, error_message=str(e))
        raise

    store.update_sync_log(
        log_id,
        SyncStatus.COMPLETED,
        teams_synced=summary.teams_synced,
        tournaments_synced=summary.tournaments_synced,
        matchups_synced=summary.matchups_synced,
    )
    logger.success(
        f"Sync complete: {summary.teams_synced} teams, "
        f"{summary.tournaments_synced} tournaments, {summary.matchups_synced} matchups"
    )
    return summary
