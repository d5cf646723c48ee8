# usau_registry/parsing/bracket.py
import re
from typing import List, Optional, Tuple

from loguru import logger

from usau_registry.models.game import Bracket, BracketGame, Score
from .dom import Document, Element
from .names import clean_team_name

BRACKET_SEED_RE = re.compile(r"\((\d+)\)\s*$")
CHAMPIONSHIP_MARKERS = ("1st", "championship", "final")
NUMERIC_SCORE_RE = re.compile(r"[0-9]+")


def _parse_score(text: str) -> Score:
    if NUMERIC_SCORE_RE.fullmatch(text):
        return int(text)
    return text or None


def _parse_seed(raw_name: str) -> Optional[int]:
    match = BRACKET_SEED_RE.search(raw_name)
    return int(match.group(1)) if match else None


def _parse_side(game: Element, area_class: str, side: str) -> Tuple[str, Score, bool]:
    """Raw team label, score and winner flag for one side of a game block."""
    area = game.find(classes=[area_class])
    if area is None:
        return "", None, False
    team_raw = area.find_text(attrs={"data-type": f"game-team-{side}"})
    score = _parse_score(area.find_text(attrs={"data-type": f"game-score-{side}"}))
    return team_raw, score, area.has_class("winner")


def _parse_game(game: Element, round_name: str, bracket_name: str) -> BracketGame:
    home_raw, home_score, home_won = _parse_side(game, "top_area", "home")
    away_raw, away_score, away_won = _parse_side(game, "btm_area", "away")

    return BracketGame(
        game_id=game.attr("id"),
        next_game_id=game.attr("data-relation"),
        round=round_name,
        bracket_name=bracket_name,
        home_team=clean_team_name(home_raw),
        home_team_raw=home_raw,
        home_seed=_parse_seed(home_raw),
        home_score=home_score,
        home_won=home_won,
        away_team=clean_team_name(away_raw),
        away_team_raw=away_raw,
        away_seed=_parse_seed(away_raw),
        away_score=away_score,
        away_won=away_won,
        status=game.find_text(classes=["game-status"]) or "Pending",
        date=game.find_text(classes=["date"]) or None,
        location=game.find_text(classes=["location"]) or None,
    )


def _parse_slide(slide: Element) -> Optional[Bracket]:
    title = slide.find("h3", classes=["slide_trigger"])
    bracket_name = title.find_text("a") if title is not None else ""
    if not bracket_name:
        return None

    bracket = Bracket(name=bracket_name)
    for column in slide.iter_all(classes=["bracket_col"]):
        round_name = column.find_text("h4", classes=["col_title"])
        for game_el in column.iter_all(classes=["bracket_game"]):
            game = _parse_game(game_el, round_name, bracket_name)
            bracket.games.append(game)

            if round_name and round_name not in bracket.rounds:
                bracket.rounds.append(round_name)

            # A game feeding nothing is the final; its winner takes the bracket
            if game.is_terminal and game.winner is not None:
                bracket.champion = game.winner

    return bracket if bracket.games else None


def parse_bracket_sections(doc: Document) -> List[Bracket]:
    """Extracts every elimination bracket slide on a schedule page.

    Championship and consolation brackets on the same page are returned
    separately, in document order.
    """
    brackets: List[Bracket] = []
    for slide in doc.iter_all("div", classes=["mod_slide", "alt_slide"]):
        bracket = _parse_slide(slide)
        if bracket is not None:
            brackets.append(bracket)
            logger.debug(
                f"Bracket '{bracket.name}': {len(bracket.games)} games, "
                f"{len(bracket.rounds)} rounds, champion {bracket.champion}"
            )
    return brackets


def find_championship_bracket(brackets: List[Bracket]) -> Optional[Bracket]:
    """The bracket deciding first place, recognised by its name."""
    for bracket in brackets:
        name = bracket.name.lower()
        if any(marker in name for marker in CHAMPIONSHIP_MARKERS):
            return bracket
    return None
