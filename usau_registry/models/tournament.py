# usau_registry/models/tournament.py
from typing import Dict, List

from pydantic import BaseModel, Field, computed_field

from .enums import ScheduleLinkType
from .game import Bracket, Matchup
from .team import PoolAssignment, PoolTeam, TeamRef


class ScheduleLink(BaseModel):
    text: str
    href: str
    type: ScheduleLinkType = ScheduleLinkType.SCHEDULE


class TournamentSummary(BaseModel):
    """What a tournament landing page tells us about the event."""

    name: str
    teams: List[TeamRef] = Field(default_factory=list)
    schedule_links: List[ScheduleLink] = Field(default_factory=list)


class EventListing(BaseModel):
    """An entry of the registry's events index."""

    name: str
    link: str


class ScheduleTab(BaseModel):
    name: str
    section_id: str = ""


class ScheduleData(BaseModel):
    """Everything extracted from a tournament schedule page."""

    pools: Dict[str, List[PoolTeam]] = Field(default_factory=dict)
    matchups: List[Matchup] = Field(default_factory=list)
    teams: List[PoolAssignment] = Field(default_factory=list)
    brackets: List[Bracket] = Field(default_factory=list)
    tabs: List[ScheduleTab] = Field(default_factory=list)

    @computed_field  # type: ignore[misc]
    @property
    def pool_count(self) -> int:
        return len(self.pools)

    @property
    def is_empty(self) -> bool:
        return not (self.pools or self.matchups or self.brackets)
