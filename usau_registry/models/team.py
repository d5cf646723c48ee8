# usau_registry/models/team.py
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .enums import Division


class TeamRef(BaseModel):
    """A team label found on a tournament page, with its registry link if any."""

    model_config = ConfigDict(frozen=True)

    name: str
    link: Optional[str] = None


class RankingEntry(BaseModel):
    """One row of a division rankings table."""

    model_config = ConfigDict(frozen=True)

    rank: int
    team_name: str
    rating: float
    wins: int = 0
    losses: int = 0
    region: str = ""
    conference: str = ""


class RankingsResult(BaseModel):
    """All rows collected while walking a division's rankings pages."""

    division: Division
    rankings: List[RankingEntry] = []
    total_count: int = 0  # As reported by the first page
    pages_fetched: int = 0


class PoolTeam(BaseModel):
    """A team row in a pool standings table."""

    name: str
    seed: Optional[int] = None
    wins: int = 0
    losses: int = 0
    point_diff: int = 0  # Not published in standings tables


class PoolAssignment(BaseModel):
    """A tournament participant and the pool it was first seen in."""

    name: str
    pool: str
    seed: Optional[int] = None


class RosterPlayer(BaseModel):
    name: str
    number: Optional[int] = None
    pronouns: Optional[str] = None
    position: Optional[str] = None
    year: Optional[str] = None
    height: Optional[str] = None
    points: Optional[int] = None
    assists: Optional[int] = None
    ds: Optional[int] = None
    turns: Optional[int] = None


class TeamRoster(BaseModel):
    name: str
    link: str
    roster: List[RosterPlayer] = Field(default_factory=list)
