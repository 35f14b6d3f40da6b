from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel
from sqlmodel import Session

from podvolley.database import get_session
from podvolley.models.tournament import Tournament
from podvolley.services.pool_schedule import count_completed_pool_matches
from podvolley.services.standings_service import rank_standings
from podvolley.utils.names import combined_first_names

router = APIRouter()


class StandingResponse(BaseModel):
    rank: int
    pod_id: int
    pod_number: int
    name: str
    team_name: Optional[str] = None
    wins: int
    losses: int
    points_for: int
    points_against: int
    point_differential: int
    games_played: int


class StandingsResponse(BaseModel):
    tournament_id: int
    completed_games: int
    standings: List[StandingResponse]


@router.get("/tournaments/{tournament_id}/standings", response_model=StandingsResponse)
def get_standings(tournament_id: int, session: Session = Depends(get_session)):
    """Ranked pool standings: point differential, then points for, then wins. Includes pods with no games."""
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")

    rows = rank_standings(session, tournament_id)
    return StandingsResponse(
        tournament_id=tournament_id,
        completed_games=count_completed_pool_matches(session, tournament_id),
        standings=[
            StandingResponse(
                rank=i,
                pod_id=row.pod_id,
                pod_number=row.pod_number,
                name=combined_first_names(row.name),
                team_name=row.team_name,
                wins=row.wins,
                losses=row.losses,
                points_for=row.points_for,
                points_against=row.points_against,
                point_differential=row.point_differential,
                games_played=row.games_played,
            )
            for i, row in enumerate(rows, start=1)
        ],
    )
