# usau_registry/models/records.py
"""Rows handed to the persistence sink."""

from datetime import date
from typing import Optional

from pydantic import BaseModel


class RankedTeamRecord(BaseModel):
    slug: str
    name: str
    division: str
    region: Optional[str] = None
    conference: Optional[str] = None
    ranking: Optional[int] = None
    rating: Optional[float] = None
    wins: int = 0
    losses: int = 0
    usau_url: Optional[str] = None
    season: Optional[int] = None


class TournamentRecord(BaseModel):
    slug: str
    name: str
    usau_url: str
    start_date: Optional[date] = None
    location: Optional[str] = None
    competition_level: Optional[str] = None
    gender_division: Optional[str] = None
    schedule_url: Optional[str] = None
    team_count: int = 0
    season: Optional[int] = None


class TournamentTeamRecord(BaseModel):
    tournament_slug: str
    team_slug: Optional[str] = None
    team_name: str
    pool: Optional[str] = None
    seed: Optional[int] = None
    usau_team_url: Optional[str] = None
