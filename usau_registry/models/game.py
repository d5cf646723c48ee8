# usau_registry/models/game.py
from typing import List, Optional, Union

from pydantic import BaseModel, Field

from .enums import MatchupStatus

# Bracket score slots hold either a number or a marker such as "W" or "BYE"
Score = Union[int, str, None]


class Matchup(BaseModel):
    """A pool-play game between two teams."""

    home_team: str
    away_team: str
    home_score: int = 0
    away_score: int = 0
    status: MatchupStatus = MatchupStatus.SCHEDULED


class BracketGame(BaseModel):
    """A single game slot inside an elimination bracket.

    ``next_game_id`` is the id of the game the winner advances to; an empty
    value marks the final of its bracket.
    """

    game_id: str = ""
    next_game_id: str = ""
    round: str = ""
    bracket_name: str

    home_team: str = ""
    home_team_raw: str = ""
    home_seed: Optional[int] = None
    home_score: Score = None
    home_won: bool = False

    away_team: str = ""
    away_team_raw: str = ""
    away_seed: Optional[int] = None
    away_score: Score = None
    away_won: bool = False

    status: str = "Pending"
    date: Optional[str] = None
    location: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        return not self.next_game_id

    @property
    def winner(self) -> Optional[str]:
        if self.home_won:
            return self.home_team
        if self.away_won:
            return self.away_team
        return None


class Bracket(BaseModel):
    """One named elimination bracket (e.g. "Championship Bracket")."""

    name: str
    rounds: List[str] = Field(default_factory=list)  # In order of first sight
    games: List[BracketGame] = Field(default_factory=list)
    champion: Optional[str] = None

    def games_in_round(self, round_name: str) -> List[BracketGame]:
        return [g for g in self.games if g.round == round_name]
