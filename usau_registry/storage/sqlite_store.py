# usau_registry/storage/sqlite_store.py
import sqlite3
from typing import Any, Dict, Iterable, List, Optional, Sequence

from loguru import logger
from tenacity import (
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from usau_registry.config.settings import settings
from usau_registry.models.game import Matchup
from usau_registry.models.records import (
    RankedTeamRecord,
    TournamentRecord,
    TournamentTeamRecord,
)
from usau_registry.models.enums import SyncStatus, SyncType
from usau_registry.scrapers.base_scraper import ScraperError

POOL_PLAY_ROUND = "Pool Play"

SCHEMA = """
CREATE TABLE IF NOT EXISTS usau_teams (
    slug TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    division TEXT NOT NULL,
    region TEXT,
    conference TEXT,
    ranking INTEGER,
    rating REAL,
    wins INTEGER DEFAULT 0,
    losses INTEGER DEFAULT 0,
    usau_url TEXT,
    season INTEGER,
    last_synced DATETIME,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS usau_tournaments (
    slug TEXT PRIMARY KEY,
    name TEXT NOT NULL,
    usau_url TEXT NOT NULL,
    start_date DATE,
    end_date DATE,
    location TEXT,
    competition_level TEXT,
    gender_division TEXT,
    schedule_url TEXT,
    team_count INTEGER DEFAULT 0,
    season INTEGER,
    last_synced DATETIME,
    created_at DATETIME DEFAULT CURRENT_TIMESTAMP
);

CREATE TABLE IF NOT EXISTS usau_tournament_teams (
    tournament_slug TEXT NOT NULL,
    team_slug TEXT,
    team_name TEXT NOT NULL,
    pool TEXT,
    seed INTEGER,
    usau_team_url TEXT,
    PRIMARY KEY (tournament_slug, team_name),
    FOREIGN KEY (tournament_slug) REFERENCES usau_tournaments(slug) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS usau_matchups (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    tournament_slug TEXT NOT NULL,
    home_team TEXT NOT NULL,
    away_team TEXT NOT NULL,
    home_score INTEGER DEFAULT 0,
    away_score INTEGER DEFAULT 0,
    round TEXT,
    status TEXT DEFAULT 'scheduled',
    FOREIGN KEY (tournament_slug) REFERENCES usau_tournaments(slug) ON DELETE CASCADE
);

CREATE TABLE IF NOT EXISTS sync_log (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    sync_type TEXT NOT NULL,
    division TEXT,
    status TEXT DEFAULT 'running',
    teams_synced INTEGER DEFAULT 0,
    tournaments_synced INTEGER DEFAULT 0,
    matchups_synced INTEGER DEFAULT 0,
    error_message TEXT,
    started_at DATETIME DEFAULT CURRENT_TIMESTAMP,
    completed_at DATETIME
);

CREATE INDEX IF NOT EXISTS idx_usau_teams_division ON usau_teams(division);
CREATE INDEX IF NOT EXISTS idx_usau_teams_name ON usau_teams(name);
CREATE INDEX IF NOT EXISTS idx_usau_teams_season_division ON usau_teams(season, division);
CREATE INDEX IF NOT EXISTS idx_usau_tournaments_season ON usau_tournaments(season);
CREATE INDEX IF NOT EXISTS idx_usau_tournament_teams_tournament ON usau_tournament_teams(tournament_slug);
CREATE INDEX IF NOT EXISTS idx_usau_matchups_tournament ON usau_matchups(tournament_slug);
"""


class StorageError(ScraperError):
    """Custom exception for registry storage errors."""

    pass


def _is_locked(exc: BaseException) -> bool:
    return isinstance(exc, sqlite3.OperationalError) and "locked" in str(exc).lower()


# The web app reads the same file; a writer can briefly hold the lock
_retry_when_locked = retry(
    stop=stop_after_attempt(3),
    wait=wait_exponential(multiplier=0.5, min=0.5, max=4),
    retry=retry_if_exception(_is_locked),
    reraise=True,
)


class SqliteStore:
    """Registry cache backed by a single SQLite file."""

    def __init__(self, path: Optional[str] = None):
        self.path = path or settings.database_path
        self.conn: Optional[sqlite3.Connection] = None

    def connect(self) -> "SqliteStore":
        if self.conn is None:
            self.conn = sqlite3.connect(self.path)
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(SCHEMA)
            logger.debug(f"Opened registry database at {self.path}")
        return self

    def close(self) -> None:
        if self.conn is not None:
            self.conn.close()
            self.conn = None
            logger.debug("Closed registry database")

    def __enter__(self) -> "SqliteStore":
        return self.connect()

    def __exit__(self, *exc_info) -> None:
        self.close()

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise StorageError("Database is not connected; call connect() first.")
        return self.conn

    @_retry_when_locked
    def _write(self, sql: str, params: Sequence[Any] = ()) -> sqlite3.Cursor:
        conn = self._require_conn()
        with conn:
            return conn.execute(sql, params)

    def _handle_write(self, table_name: str, sql: str, params: Sequence[Any]) -> bool:
        """Runs one write, logging instead of raising on database errors."""
        try:
            self._write(sql, params)
            return True
        except sqlite3.Error as e:
            logger.error(f"Error writing to {table_name}: {e}")
            return False

    def _all(self, sql: str, params: Sequence[Any] = ()) -> List[Dict[str, Any]]:
        rows = self._require_conn().execute(sql, params).fetchall()
        return [dict(row) for row in rows]

    def _one(self, sql: str, params: Sequence[Any] = ()) -> Optional[Dict[str, Any]]:
        row = self._require_conn().execute(sql, params).fetchone()
        return dict(row) if row is not None else None

    # --- Ranked teams ---

    def upsert_ranked_team(self, team: RankedTeamRecord) -> bool:
        """Inserts or updates a ranked team, keyed by slug."""
        return self._handle_write(
            "usau_teams",
            """INSERT INTO usau_teams (slug, name, division, region, conference, ranking, rating,
                    wins, losses, usau_url, season, last_synced)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(slug) DO UPDATE SET
                    name=excluded.name, ranking=excluded.ranking, rating=excluded.rating,
                    wins=excluded.wins, losses=excluded.losses, region=excluded.region,
                    conference=excluded.conference, usau_url=excluded.usau_url,
                    season=COALESCE(excluded.season, season),
                    last_synced=CURRENT_TIMESTAMP""",
            (
                team.slug, team.name, team.division, team.region, team.conference,
                team.ranking, team.rating, team.wins, team.losses, team.usau_url, team.season,
            ),
        )

    def get_ranked_teams(
        self,
        division: str,
        search: Optional[str] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> List[Dict[str, Any]]:
        sql = "SELECT * FROM usau_teams WHERE division = ?"
        params: List[Any] = [division]
        if search:
            sql += " AND name LIKE ?"
            params.append(f"%{search}%")
        sql += " ORDER BY ranking IS NULL, ranking ASC LIMIT ? OFFSET ?"
        params.extend([limit, offset])
        return self._all(sql, params)

    def count_ranked_teams(self, division: str, search: Optional[str] = None) -> int:
        sql = "SELECT COUNT(*) AS total FROM usau_teams WHERE division = ?"
        params: List[Any] = [division]
        if search:
            sql += " AND name LIKE ?"
            params.append(f"%{search}%")
        row = self._one(sql, params)
        return row["total"] if row else 0

    # --- Tournaments ---

    def upsert_tournament(self, tournament: TournamentRecord) -> bool:
        """Inserts or updates a tournament, keyed by slug."""
        start_date = tournament.start_date.isoformat() if tournament.start_date else None
        return self._handle_write(
            "usau_tournaments",
            """INSERT INTO usau_tournaments (slug, name, usau_url, start_date, location,
                    competition_level, gender_division, schedule_url, team_count, season, last_synced)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, CURRENT_TIMESTAMP)
                ON CONFLICT(slug) DO UPDATE SET
                    name=excluded.name, usau_url=excluded.usau_url, start_date=excluded.start_date,
                    location=excluded.location, schedule_url=excluded.schedule_url,
                    team_count=excluded.team_count, season=COALESCE(excluded.season, season),
                    last_synced=CURRENT_TIMESTAMP""",
            (
                tournament.slug, tournament.name, tournament.usau_url, start_date,
                tournament.location, tournament.competition_level, tournament.gender_division,
                tournament.schedule_url, tournament.team_count, tournament.season,
            ),
        )

    def get_tournament(self, slug: str) -> Optional[Dict[str, Any]]:
        return self._one("SELECT * FROM usau_tournaments WHERE slug = ?", (slug,))

    def upsert_tournament_team(self, team: TournamentTeamRecord) -> bool:
        """Inserts or updates a tournament participant, keyed by (tournament, team name).

        Null values never overwrite what an earlier pass already stored, so
        the landing-page pass (links) and the schedule pass (pools, seeds)
        complement each other.
        """
        return self._handle_write(
            "usau_tournament_teams",
            """INSERT INTO usau_tournament_teams (tournament_slug, team_slug, team_name, pool, seed, usau_team_url)
                VALUES (?, ?, ?, ?, ?, ?)
                ON CONFLICT(tournament_slug, team_name) DO UPDATE SET
                    team_slug=COALESCE(excluded.team_slug, team_slug),
                    pool=COALESCE(excluded.pool, pool),
                    seed=COALESCE(excluded.seed, seed),
                    usau_team_url=COALESCE(excluded.usau_team_url, usau_team_url)""",
            (
                team.tournament_slug, team.team_slug, team.team_name,
                team.pool, team.seed, team.usau_team_url,
            ),
        )

    def get_tournament_teams(self, tournament_slug: str) -> List[Dict[str, Any]]:
        return self._all(
            """SELECT tt.*, t.ranking, t.rating, t.region
                FROM usau_tournament_teams tt
                LEFT JOIN usau_teams t ON tt.team_slug = t.slug
                WHERE tt.tournament_slug = ?
                ORDER BY tt.seed IS NULL, tt.seed ASC""",
            (tournament_slug,),
        )

    # --- Matchups ---

    @_retry_when_locked
    def _replace_matchups(self, tournament_slug: str, matchups: Iterable[Matchup]) -> None:
        conn = self._require_conn()
        with conn:
            conn.execute(
                "DELETE FROM usau_matchups WHERE tournament_slug = ?", (tournament_slug,)
            )
            conn.executemany(
                """INSERT INTO usau_matchups (tournament_slug, home_team, away_team,
                        home_score, away_score, round, status)
                    VALUES (?, ?, ?, ?, ?, ?, ?)""",
                [
                    (
                        tournament_slug, m.home_team, m.away_team,
                        m.home_score, m.away_score, POOL_PLAY_ROUND, m.status.value,
                    )
                    for m in matchups
                ],
            )

    def replace_matchups(self, tournament_slug: str, matchups: List[Matchup]) -> bool:
        """Replaces every stored matchup of a tournament in one transaction."""
        try:
            self._replace_matchups(tournament_slug, matchups)
            logger.debug(f"Stored {len(matchups)} matchups for {tournament_slug}")
            return True
        except sqlite3.Error as e:
            logger.error(f"Error replacing matchups for {tournament_slug}: {e}")
            return False

    def get_matchups(self, tournament_slug: str) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT * FROM usau_matchups WHERE tournament_slug = ? ORDER BY id",
            (tournament_slug,),
        )

    # --- Sync log ---

    def create_sync_log(self, sync_type: SyncType, division: Optional[str] = None) -> int:
        try:
            cursor = self._write(
                "INSERT INTO sync_log (sync_type, division) VALUES (?, ?)",
                (sync_type.value, division),
            )
        except sqlite3.Error as e:
            raise StorageError(f"Could not create sync log: {e}") from e
        return cursor.lastrowid

    def update_sync_log(
        self,
        log_id: int,
        status: SyncStatus,
        teams_synced: int = 0,
        tournaments_synced: int = 0,
        matchups_synced: int = 0,
        error_message: Optional[str] = None,
    ) -> bool:
        return self._handle_write(
            "sync_log",
            """UPDATE sync_log SET status=?, teams_synced=?, tournaments_synced=?,
                    matchups_synced=?, error_message=?, completed_at=CURRENT_TIMESTAMP
                WHERE id=?""",
            (status.value, teams_synced, tournaments_synced, matchups_synced, error_message, log_id),
        )

    def get_latest_sync_log(self) -> Optional[Dict[str, Any]]:
        return self._one("SELECT * FROM sync_log ORDER BY id DESC LIMIT 1")

    # --- Maintenance ---

    def set_missing_team_seasons(self, season: int) -> int:
        cursor = self._write("UPDATE usau_teams SET season = ? WHERE season IS NULL", (season,))
        return cursor.rowcount

    def tournaments_without_season(self) -> List[Dict[str, Any]]:
        return self._all(
            "SELECT slug, name, start_date FROM usau_tournaments WHERE season IS NULL"
        )

    def set_tournament_season(self, slug: str, season: int) -> bool:
        return self._handle_write(
            "usau_tournaments",
            "UPDATE usau_tournaments SET season = ? WHERE slug = ?",
            (season, slug),
        )
