import sys
import asyncio
import argparse
from typing import List, Optional

# --- Settings/Logging ---
from usau_registry.logging.setup import setup_logging
from usau_registry.config.settings import settings

setup_logging()

from loguru import logger

from usau_registry.parsing.bracket import find_championship_bracket, parse_bracket_sections
from usau_registry.parsing.dom import Document
from usau_registry.parsing.roster import parse_team_roster
from usau_registry.parsing.schedule import parse_pools_and_matchups
from usau_registry.parsing.tournament import parse_events_list, parse_tournament_page
from usau_registry.scrapers.base_scraper import ConfigurationError, ScraperError
from usau_registry.scrapers.fetcher import PageFetcher
from usau_registry.scrapers.rankings_scraper import fetch_all_rankings
from usau_registry.storage.sqlite_store import SqliteStore
from usau_registry.sync.registry_sync import EVENTS_PATH, SyncOptions, run_sync

from rich import print, print_json
from rich.panel import Panel


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Scrape the USA Ultimate registry into a local SQLite cache."
    )
    commands = parser.add_subparsers(dest="command", required=True)

    sync = commands.add_parser("sync", help="Refresh the registry cache")
    mode = sync.add_mutually_exclusive_group()
    mode.add_argument("--rankings-only", action="store_true")
    mode.add_argument("--tournaments-only", action="store_true")
    mode.add_argument("--backfill-seasons", action="store_true")
    sync.add_argument("--division", help="Only sync one division, e.g. College-Men")
    sync.add_argument("--database", default=settings.database_path)

    scrape = commands.add_parser("scrape", help="Scrape a single page and print JSON")
    targets = scrape.add_subparsers(dest="target", required=True)
    targets.add_parser("rankings").add_argument("division")
    targets.add_parser("tournament").add_argument("url")
    targets.add_parser("pools").add_argument("url")
    targets.add_parser("bracket").add_argument("url")
    targets.add_parser("team").add_argument("url")
    events = targets.add_parser("events")
    events.add_argument("query", nargs="?", default="")

    return parser


async def run_scrape(args: argparse.Namespace, fetcher: PageFetcher) -> str:
    """Runs one extraction and returns its JSON."""
    if args.target == "rankings":
        result = await fetch_all_rankings(fetcher, args.division)
        return result.model_dump_json(indent=2)

    url = getattr(args, "url", None) or settings.usau_base_url + EVENTS_PATH
    html = await fetcher.fetch(url)

    if args.target == "tournament":
        return parse_tournament_page(html, url).model_dump_json(indent=2)
    if args.target == "pools":
        return parse_pools_and_matchups(html).model_dump_json(indent=2)
    if args.target == "team":
        return parse_team_roster(html, url).model_dump_json(indent=2)
    if args.target == "bracket":
        brackets = parse_bracket_sections(Document(html))
        championship = find_championship_bracket(brackets)
        panel = f"{len(brackets)} brackets, {sum(len(b.games) for b in brackets)} games"
        if championship is not None:
            panel += f"\nChampion: {championship.champion or 'undecided'}"
        print(Panel(panel, title="Brackets"))
        return "[" + ",".join(b.model_dump_json() for b in brackets) + "]"

    listings = parse_events_list(html, args.query)
    return "[" + ",".join(e.model_dump_json() for e in listings) + "]"


async def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = build_parser().parse_args(argv)

    async with PageFetcher.from_settings() as fetcher:
        if args.command == "scrape":
            print_json(await run_scrape(args, fetcher))
            return 0

        options = SyncOptions(
            rankings_only=args.rankings_only,
            tournaments_only=args.tournaments_only,
            backfill_seasons=args.backfill_seasons,
            division=args.division,
        )
        logger.info(f"=== USAU Registry Sync === Mode: {options.sync_type.value}")
        with SqliteStore(args.database) as store:
            summary = await run_sync(options, fetcher, store)

    if options.backfill_seasons:
        body = (
            f"Teams updated: {summary.teams_backfilled}\n"
            f"Tournaments updated: {summary.tournaments_backfilled}"
        )
    else:
        body = (
            f"Teams synced: {summary.teams_synced}\n"
            f"Tournaments synced: {summary.tournaments_synced}\n"
            f"Matchups synced: {summary.matchups_synced}"
        )
    print(Panel(body, title="Sync Complete"))
    return 0


if __name__ == "__main__":
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        logger.info("Execution interrupted by user (KeyboardInterrupt).")
        sys.exit(0)
    except ConfigurationError as e:
        logger.error(str(e))
        sys.exit(2)
    except ScraperError as e:
        logger.error(f"Scrape failed: {e}")
        sys.exit(1)
    except Exception as e:
        logger.exception(f"Unhandled exception in main execution: {e}")
        sys.exit(1)
