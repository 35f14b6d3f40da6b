"""
Bracket play runtime. Teams and games are seeded from final pool standings;
completing a game routes its winner and loser downstream through the bracket graph.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from podvolley.auth import CurrentUser, get_current_user, require_tournament_organizer
from podvolley.database import get_session
from podvolley.models.bracket_match import BracketMatch
from podvolley.models.bracket_team import BracketTeam
from podvolley.models.pod import Pod
from podvolley.models.pool_match import MATCH_COMPLETED, MATCH_IN_PROGRESS, MATCH_PENDING
from podvolley.models.tournament import Tournament
from podvolley.services.bracket_service import (
    BracketStateError,
    advance_bracket,
    get_bracket_matches,
    get_bracket_teams,
    get_champion,
    initialize_bracket,
    reset_bracket,
)
from podvolley.services.pool_schedule import is_pool_play_complete
from podvolley.services.scoring import (
    SIDE_A,
    ScoreValidationError,
    ScoringRules,
    validate_completion,
    validate_score_values,
)
from podvolley.utils.names import combined_first_names

logger = logging.getLogger(__name__)

router = APIRouter()


class BracketTournamentRequest(BaseModel):
    tournament_id: int


class BracketScoreUpdate(BaseModel):
    team_a_score: Any = None
    team_b_score: Any = None


class BracketTeamResponse(BaseModel):
    id: int
    team_name: str
    seed_rank: int
    pod_ids: List[int]
    pod_names: List[str] = []


class BracketMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    game_number: int
    bracket_type: str
    team_a_id: Optional[int] = None
    team_b_id: Optional[int] = None
    source_game_a: Optional[int] = None
    source_a_role: Optional[str] = None
    source_game_b: Optional[int] = None
    source_b_role: Optional[str] = None
    team_a_score: int
    team_b_score: int
    status: str
    winner_team_id: Optional[int] = None
    updated_at: datetime


class BracketResponse(BaseModel):
    tournament_id: int
    bracket_format: str
    pool_play_complete: bool
    teams: List[BracketTeamResponse]
    games: List[BracketMatchResponse]
    champion_team_id: Optional[int] = None


class BracketInitResponse(BaseModel):
    success: bool = True
    teams_created: int
    games_created: int


class BracketGameActionResponse(BaseModel):
    success: bool = True
    game: BracketMatchResponse


class BracketCompleteResponse(BracketGameActionResponse):
    winner_team_id: int
    loser_team_id: int
    slots_filled: int
    decider_created: bool
    champion_team_id: Optional[int] = None


def _get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def _get_game_or_404(session: Session, game_id: int) -> BracketMatch:
    match = session.get(BracketMatch, game_id)
    if not match:
        raise HTTPException(status_code=404, detail="Game not found")
    return match


def _team_to_response(team: BracketTeam, pod_names: Dict[int, str]) -> BracketTeamResponse:
    return BracketTeamResponse(
        id=team.id,
        team_name=team.team_name,
        seed_rank=team.seed_rank,
        pod_ids=team.pod_ids,
        pod_names=[pod_names.get(pid, "") for pid in team.pod_ids],
    )


@router.get("/tournaments/{tournament_id}/bracket", response_model=BracketResponse)
def get_bracket(tournament_id: int, session: Session = Depends(get_session)):
    """Bracket teams, games in game-number order, and the champion once decided."""
    tournament = _get_tournament_or_404(session, tournament_id)

    pods = session.exec(select(Pod).where(Pod.tournament_id == tournament_id)).all()
    pod_names = {p.id: combined_first_names(p.name) for p in pods}

    return BracketResponse(
        tournament_id=tournament_id,
        bracket_format=tournament.bracket_format,
        pool_play_complete=is_pool_play_complete(session, tournament),
        teams=[_team_to_response(t, pod_names) for t in get_bracket_teams(session, tournament_id)],
        games=[BracketMatchResponse.model_validate(m) for m in get_bracket_matches(session, tournament_id)],
        champion_team_id=get_champion(session, tournament),
    )


@router.post("/bracket/initialize", response_model=BracketInitResponse)
def initialize(payload: BracketTournamentRequest, session: Session = Depends(get_session)):
    """Seed bracket teams and games once pool play is complete. Safe to call again."""
    tournament = _get_tournament_or_404(session, payload.tournament_id)
    try:
        teams, games = initialize_bracket(session, tournament)
    except BracketStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        logger.exception("Error initializing bracket for tournament %d", tournament.id)
        raise HTTPException(status_code=500, detail=f"Failed to initialize bracket: {str(e)}")
    return BracketInitResponse(teams_created=len(teams), games_created=len(games))


@router.post("/bracket/reset", response_model=BracketInitResponse)
def reset(
    payload: BracketTournamentRequest,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Delete bracket teams and games and seed them again from current standings."""
    tournament = _get_tournament_or_404(session, payload.tournament_id)
    require_tournament_organizer(session, user, tournament.id, "reset the bracket for")
    try:
        teams, games = reset_bracket(session, tournament)
    except BracketStateError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        logger.exception("Error resetting bracket for tournament %d", tournament.id)
        raise HTTPException(status_code=500, detail=f"Failed to reset bracket: {str(e)}")
    logger.info(f"Tournament {tournament.id}: bracket reset by {user.user_id}")
    return BracketInitResponse(teams_created=len(teams), games_created=len(games))


@router.post("/bracket/games/start", response_model=BracketGameActionResponse)
def start_next_bracket_game(payload: BracketTournamentRequest, session: Session = Depends(get_session)):
    """Start the next pending bracket game. Both of its teams must already be known."""
    tournament = _get_tournament_or_404(session, payload.tournament_id)

    in_progress = session.exec(
        select(BracketMatch).where(
            BracketMatch.tournament_id == tournament.id,
            BracketMatch.status == MATCH_IN_PROGRESS,
        )
    ).first()
    if in_progress is not None:
        raise HTTPException(status_code=400, detail="A bracket game is already in progress")

    match = session.exec(
        select(BracketMatch)
        .where(BracketMatch.tournament_id == tournament.id, BracketMatch.status == MATCH_PENDING)
        .order_by(BracketMatch.game_number)
    ).first()
    if match is None:
        raise HTTPException(status_code=404, detail="No pending games available")
    if match.team_a_id is None or match.team_b_id is None:
        raise HTTPException(status_code=400, detail="Cannot start game - teams not yet determined")

    rules = ScoringRules.from_json(tournament.scoring_rules)
    try:
        match.status = MATCH_IN_PROGRESS
        match.team_a_score = rules.start_points
        match.team_b_score = rules.start_points
        match.updated_at = datetime.utcnow()
        session.add(match)
        session.commit()
        session.refresh(match)
    except Exception as e:
        session.rollback()
        logger.exception("Error starting bracket game for tournament %d", tournament.id)
        raise HTTPException(status_code=500, detail=f"Failed to start game: {str(e)}")

    logger.info(f"Tournament {tournament.id}: started bracket game {match.game_number}")
    return BracketGameActionResponse(game=BracketMatchResponse.model_validate(match))


@router.patch("/bracket/games/{game_id}/score", response_model=BracketGameActionResponse)
def update_bracket_score(game_id: int, payload: BracketScoreUpdate, session: Session = Depends(get_session)):
    try:
        validate_score_values(payload.team_a_score, payload.team_b_score)
    except ScoreValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    match = _get_game_or_404(session, game_id)
    if match.status != MATCH_IN_PROGRESS:
        raise HTTPException(status_code=400, detail="Can only update scores for in-progress games")

    try:
        match.team_a_score = payload.team_a_score
        match.team_b_score = payload.team_b_score
        match.updated_at = datetime.utcnow()
        session.add(match)
        session.commit()
        session.refresh(match)
    except Exception as e:
        session.rollback()
        logger.exception("Error updating score for bracket game %d", game_id)
        raise HTTPException(status_code=500, detail=f"Failed to update score: {str(e)}")

    return BracketGameActionResponse(game=BracketMatchResponse.model_validate(match))


@router.post("/bracket/games/{game_id}/complete", response_model=BracketCompleteResponse)
def complete_bracket_game(game_id: int, session: Session = Depends(get_session)):
    """
    Complete an in-progress bracket game on a valid final score, then advance:
    the winner and loser fill their downstream slots and, after the final,
    the decider game is created when the once-beaten team won.
    """
    match = _get_game_or_404(session, game_id)
    if match.status != MATCH_IN_PROGRESS:
        raise HTTPException(status_code=400, detail="Game is not in progress")
    if match.team_a_id is None or match.team_b_id is None:
        raise HTTPException(status_code=400, detail="Game does not have both teams assigned")

    tournament = session.get(Tournament, match.tournament_id)
    rules = ScoringRules.from_json(tournament.scoring_rules if tournament else None)
    try:
        winning_side = validate_completion(match.team_a_score, match.team_b_score, rules)
    except ScoreValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    if winning_side == SIDE_A:
        winner_id, loser_id = match.team_a_id, match.team_b_id
    else:
        winner_id, loser_id = match.team_b_id, match.team_a_id

    try:
        match.status = MATCH_COMPLETED
        match.winner_team_id = winner_id
        match.updated_at = datetime.utcnow()
        session.add(match)
        result = advance_bracket(session, match.tournament_id, match.game_number, winner_id, loser_id)
        session.refresh(match)
    except Exception as e:
        session.rollback()
        logger.exception("Error completing bracket game %d", game_id)
        raise HTTPException(status_code=500, detail=f"Failed to complete game: {str(e)}")

    logger.info(
        f"Tournament {match.tournament_id}: bracket game {match.game_number} won by team {winner_id} "
        f"({match.team_a_score}-{match.team_b_score})"
    )
    return BracketCompleteResponse(
        game=BracketMatchResponse.model_validate(match),
        winner_team_id=winner_id,
        loser_team_id=loser_id,
        slots_filled=result.slots_filled,
        decider_created=result.decider_created,
        champion_team_id=result.champion_team_id,
    )
