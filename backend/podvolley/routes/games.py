"""
Pool play runtime: start the next game, live score updates, completion.
Completing a game validates the final score and applies it to standings in the
same commit.
"""
import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, ConfigDict
from sqlmodel import Session, select

from podvolley.auth import CurrentUser, get_current_user, require_tournament_organizer
from podvolley.database import get_session
from podvolley.models.pod import Pod
from podvolley.models.pool_match import MATCH_COMPLETED, MATCH_IN_PROGRESS, PoolMatch
from podvolley.models.tournament import Tournament
from podvolley.services.pool_schedule import (
    ScheduleError,
    get_all_pool_matches,
    get_current_pool_matches,
    get_next_pending_pool_match,
    seed_pool_schedule,
)
from podvolley.services.scoring import (
    ScoreValidationError,
    ScoringRules,
    validate_completion,
    validate_score_values,
)
from podvolley.services.standings_service import apply_pool_result
from podvolley.utils.names import combined_first_names

logger = logging.getLogger(__name__)

router = APIRouter()


class StartGameRequest(BaseModel):
    tournament_id: int


class ScoreUpdate(BaseModel):
    # Validated by hand so bad values are a 400, not a 422
    team_a_score: Any = None
    team_b_score: Any = None


class PoolMatchResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    tournament_id: int
    game_number: int
    round_number: int
    scheduled_time: Optional[str] = None
    court_number: int
    team_a_pods: List[int]
    team_b_pods: List[int]
    sitting_pods: List[int]
    team_a_names: List[str] = []
    team_b_names: List[str] = []
    team_a_score: int
    team_b_score: int
    status: str
    updated_at: datetime


class GameActionResponse(BaseModel):
    success: bool = True
    game: PoolMatchResponse
    standings_updated: Optional[int] = None


def _pod_labels(session: Session, tournament_id: int) -> Dict[int, str]:
    pods = session.exec(select(Pod).where(Pod.tournament_id == tournament_id)).all()
    return {p.id: combined_first_names(p.name) or f"Pod {p.pod_number}" for p in pods}


def _to_response(match: PoolMatch, labels: Optional[Dict[int, str]] = None) -> PoolMatchResponse:
    labels = labels or {}
    response = PoolMatchResponse.model_validate(match)
    response.team_a_names = [labels.get(pid, f"Pod {pid}") for pid in match.team_a_pods]
    response.team_b_names = [labels.get(pid, f"Pod {pid}") for pid in match.team_b_pods]
    return response


def _get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def _get_game_or_404(session: Session, game_id: int) -> PoolMatch:
    match = session.get(PoolMatch, game_id)
    if not match:
        raise HTTPException(status_code=404, detail="Game not found")
    return match


@router.post("/games/start", response_model=GameActionResponse)
def start_next_game(payload: StartGameRequest, session: Session = Depends(get_session)):
    """Start the next pending pool game (lowest game number). Only one game may be in progress."""
    tournament = _get_tournament_or_404(session, payload.tournament_id)

    if get_current_pool_matches(session, tournament.id):
        raise HTTPException(status_code=400, detail="A game is already in progress")

    match = get_next_pending_pool_match(session, tournament.id)
    if match is None:
        raise HTTPException(status_code=404, detail="No pending games available")

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
        logger.exception("Error starting game for tournament %d", tournament.id)
        raise HTTPException(status_code=500, detail=f"Failed to start game: {str(e)}")

    logger.info(f"Tournament {tournament.id}: started pool game {match.game_number}")
    return GameActionResponse(game=_to_response(match, _pod_labels(session, tournament.id)))


@router.patch("/games/{game_id}/score", response_model=GameActionResponse)
def update_game_score(game_id: int, payload: ScoreUpdate, session: Session = Depends(get_session)):
    """Set both scores of an in-progress pool game. Last write wins."""
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
        logger.exception("Error updating score for game %d", game_id)
        raise HTTPException(status_code=500, detail=f"Failed to update score: {str(e)}")

    return GameActionResponse(game=_to_response(match, _pod_labels(session, match.tournament_id)))


@router.post("/games/{game_id}/complete", response_model=GameActionResponse)
def complete_game(game_id: int, session: Session = Depends(get_session)):
    """Complete an in-progress pool game on a valid final score and update standings."""
    match = _get_game_or_404(session, game_id)
    if match.status != MATCH_IN_PROGRESS:
        raise HTTPException(status_code=400, detail="Can only complete in-progress games")

    tournament = session.get(Tournament, match.tournament_id)
    rules = ScoringRules.from_json(tournament.scoring_rules if tournament else None)
    try:
        winning_side = validate_completion(match.team_a_score, match.team_b_score, rules)
    except ScoreValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        match.status = MATCH_COMPLETED
        match.updated_at = datetime.utcnow()
        session.add(match)
        updated = apply_pool_result(session, match, winning_side)
        session.commit()
        session.refresh(match)
    except Exception as e:
        session.rollback()
        logger.exception("Error completing game %d", game_id)
        raise HTTPException(status_code=500, detail=f"Failed to complete game: {str(e)}")

    logger.info(
        f"Tournament {match.tournament_id}: completed pool game {match.game_number} "
        f"({match.team_a_score}-{match.team_b_score}), {updated} standings updated"
    )
    return GameActionResponse(
        game=_to_response(match, _pod_labels(session, match.tournament_id)),
        standings_updated=updated,
    )


@router.get("/tournaments/{tournament_id}/games", response_model=List[PoolMatchResponse])
def list_games(tournament_id: int, session: Session = Depends(get_session)):
    """Full pool schedule in game-number order."""
    _get_tournament_or_404(session, tournament_id)
    labels = _pod_labels(session, tournament_id)
    return [_to_response(m, labels) for m in get_all_pool_matches(session, tournament_id)]


@router.get("/tournaments/{tournament_id}/games/current", response_model=Optional[PoolMatchResponse])
def get_current_game(tournament_id: int, session: Session = Depends(get_session)):
    """The in-progress pool game, or null."""
    _get_tournament_or_404(session, tournament_id)
    current = get_current_pool_matches(session, tournament_id)
    if not current:
        return None
    return _to_response(current[0], _pod_labels(session, tournament_id))


@router.get("/tournaments/{tournament_id}/games/log", response_model=List[PoolMatchResponse])
def get_game_log(tournament_id: int, session: Session = Depends(get_session)):
    """Completed pool games, most recent first."""
    _get_tournament_or_404(session, tournament_id)
    labels = _pod_labels(session, tournament_id)
    completed = [m for m in get_all_pool_matches(session, tournament_id) if m.status == MATCH_COMPLETED]
    return [_to_response(m, labels) for m in reversed(completed)]


@router.post("/tournaments/{tournament_id}/pool-schedule", response_model=List[PoolMatchResponse], status_code=201)
def create_pool_schedule(
    tournament_id: int,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Seed the pool schedule from registered pods. Returns the existing schedule if already seeded."""
    tournament = _get_tournament_or_404(session, tournament_id)
    require_tournament_organizer(session, user, tournament_id, "schedule")

    try:
        matches = seed_pool_schedule(session, tournament)
    except ScheduleError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        session.rollback()
        logger.exception("Error seeding pool schedule for tournament %d", tournament_id)
        raise HTTPException(status_code=500, detail=f"Failed to create pool schedule: {str(e)}")

    labels = _pod_labels(session, tournament_id)
    return [_to_response(m, labels) for m in matches]
