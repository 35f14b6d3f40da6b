import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response
from pydantic import BaseModel, ConfigDict, field_validator, model_validator
from sqlmodel import Session, func, select, text

from podvolley.auth import (
    CurrentUser,
    get_current_user,
    get_optional_user,
    get_user_tournament_role,
    require_tournament_organizer,
    require_whitelisted_organizer,
)
from podvolley.database import get_session
from podvolley.models.tournament import TOURNAMENT_STATUSES, Tournament
from podvolley.models.tournament_role import ROLE_ORGANIZER, TournamentRole
from podvolley.services.bracket_formats import BRACKET_FORMATS
from podvolley.services.registration_service import count_pods, get_registration_state
from podvolley.services.scoring import ScoringRules
from podvolley.utils.slug import ensure_unique_slug, generate_slug, is_valid_slug

logger = logging.getLogger(__name__)

router = APIRouter()


class ScoringRulesInput(BaseModel):
    start_points: int = 0
    end_points: int = 21
    win_by_two: bool = True
    cap: Optional[int] = 25

    @model_validator(mode="after")
    def validate_points(self):
        if self.start_points < 0 or self.end_points <= self.start_points:
            raise ValueError("end_points must be greater than start_points")
        if self.cap is not None and self.cap < self.end_points:
            raise ValueError("cap must be >= end_points")
        return self


class TournamentCreate(BaseModel):
    name: str
    date: datetime
    slug: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: str = "upcoming"
    max_pods: int = 9
    bracket_format: str = "three_team"
    scoring_rules: Optional[ScoringRulesInput] = None
    registration_open_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    is_public: bool = True
    require_auth: bool = True

    @field_validator("name")
    @classmethod
    def validate_name(cls, v):
        if not v or not v.strip():
            raise ValueError("name is required")
        return v.strip()


class TournamentUpdate(BaseModel):
    name: Optional[str] = None
    date: Optional[datetime] = None
    location: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    max_pods: Optional[int] = None
    scoring_rules: Optional[ScoringRulesInput] = None
    registration_open_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    is_public: Optional[bool] = None
    require_auth: Optional[bool] = None


class TournamentResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    slug: str
    date: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    status: str
    max_pods: int
    bracket_format: str
    scoring_rules: Dict[str, Any]
    registration_open_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    is_public: bool
    require_auth: bool
    created_by: str
    created_at: datetime
    updated_at: datetime

    @field_validator("scoring_rules", mode="before")
    @classmethod
    def fill_scoring_defaults(cls, v):
        """Older rows may have no scoring_rules; report the effective rules."""
        return ScoringRules.from_json(v).to_json()


class RegistrationStatusResponse(BaseModel):
    is_open: bool
    pod_count: int
    max_pods: int
    spots_remaining: int
    reason: Optional[str] = None


def _get_tournament_or_404(session: Session, tournament_id: int) -> Tournament:
    tournament = session.get(Tournament, tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


def _check_common_fields(status: Optional[str], max_pods: Optional[int]) -> None:
    if status is not None and status not in TOURNAMENT_STATUSES:
        raise HTTPException(status_code=400, detail=f"Invalid status: {status}")
    if max_pods is not None and max_pods < 2:
        raise HTTPException(status_code=400, detail="Tournament must allow at least 2 pods")


@router.get("/tournaments", response_model=List[TournamentResponse])
def list_tournaments(
    status: Optional[str] = Query(default=None),
    is_public: Optional[bool] = Query(default=None),
    session: Session = Depends(get_session),
):
    """List tournaments, soonest first"""
    query = select(Tournament)
    if status is not None:
        query = query.where(Tournament.status == status)
    if is_public is not None:
        query = query.where(Tournament.is_public == is_public)
    return session.exec(query.order_by(Tournament.date)).all()


@router.post("/tournaments", response_model=TournamentResponse, status_code=201)
def create_tournament(
    tournament_data: TournamentCreate,
    user: CurrentUser = Depends(require_whitelisted_organizer),
    session: Session = Depends(get_session),
):
    """Create a tournament. The creator becomes its organizer."""
    _check_common_fields(tournament_data.status, tournament_data.max_pods)
    if tournament_data.bracket_format not in BRACKET_FORMATS:
        raise HTTPException(status_code=400, detail=f"Invalid bracket_format: {tournament_data.bracket_format}")

    if tournament_data.slug:
        slug = tournament_data.slug.strip()
        if not is_valid_slug(slug):
            raise HTTPException(
                status_code=400,
                detail="Invalid slug format. Use lowercase letters, numbers, and hyphens only.",
            )
        if session.exec(select(Tournament.id).where(Tournament.slug == slug)).first() is not None:
            raise HTTPException(
                status_code=400,
                detail="This URL slug is already taken. Please choose a different one.",
            )
    else:
        slug = ensure_unique_slug(session, generate_slug(tournament_data.name, tournament_data.date))

    rules = tournament_data.scoring_rules or ScoringRulesInput()
    try:
        tournament = Tournament(
            **tournament_data.model_dump(exclude={"slug", "scoring_rules"}),
            slug=slug,
            scoring_rules=rules.model_dump(),
            created_by=user.user_id,
        )
        session.add(tournament)
        session.flush()  # Get the ID

        session.add(TournamentRole(tournament_id=tournament.id, user_id=user.user_id, role=ROLE_ORGANIZER))
        session.commit()
        session.refresh(tournament)
    except Exception as e:
        session.rollback()
        logger.exception("Tournament creation failed")
        raise HTTPException(status_code=500, detail=f"Failed to create tournament: {str(e)}")

    logger.info(f"Tournament {tournament.id} ({tournament.slug}) created by {user.user_id}")
    return tournament


@router.get("/tournaments/by-slug/{slug}", response_model=TournamentResponse)
def get_tournament_by_slug(slug: str, session: Session = Depends(get_session)):
    tournament = session.exec(select(Tournament).where(Tournament.slug == slug)).first()
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    return tournament


@router.get("/tournaments/{tournament_id}", response_model=TournamentResponse)
def get_tournament(tournament_id: int, session: Session = Depends(get_session)):
    """Get a tournament by ID"""
    return _get_tournament_or_404(session, tournament_id)


@router.patch("/tournaments/{tournament_id}", response_model=TournamentResponse)
def update_tournament(
    tournament_id: int,
    tournament_data: TournamentUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Update tournament settings. Organizer of this tournament only."""
    tournament = _get_tournament_or_404(session, tournament_id)
    require_tournament_organizer(session, user, tournament_id, "edit")
    _check_common_fields(tournament_data.status, tournament_data.max_pods)

    update_data = tournament_data.model_dump(exclude_unset=True)
    if "max_pods" in update_data and update_data["max_pods"] < count_pods(session, tournament_id):
        raise HTTPException(status_code=400, detail="max_pods cannot be lower than the number of registered pods")

    try:
        for field, value in update_data.items():
            setattr(tournament, field, value)
        tournament.updated_at = datetime.utcnow()
        session.add(tournament)
        session.commit()
        session.refresh(tournament)
    except Exception as e:
        session.rollback()
        logger.exception("Tournament %d update failed", tournament_id)
        raise HTTPException(status_code=500, detail=f"Failed to update tournament: {str(e)}")
    return tournament


@router.delete("/tournaments/{tournament_id}", status_code=204)
def delete_tournament(
    tournament_id: int,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Delete a tournament and everything registered or played in it. Organizer only."""
    tournament_exists = session.exec(select(func.count(Tournament.id)).where(Tournament.id == tournament_id)).one()
    if tournament_exists == 0:
        raise HTTPException(status_code=404, detail="Tournament not found")
    require_tournament_organizer(session, user, tournament_id, "delete")

    try:
        # Children first: bracket games reference teams, teams and standings reference pods
        for table in (
            "bracket_matches",
            "bracket_teams",
            "pool_standings",
            "pool_matches",
            "email_log",
            "tournament_roles",
            "pods",
        ):
            session.execute(
                text(f"DELETE FROM {table} WHERE tournament_id = :tournament_id"),
                {"tournament_id": tournament_id},
            )
        session.execute(text("DELETE FROM tournaments WHERE id = :tournament_id"), {"tournament_id": tournament_id})
        session.commit()
    except Exception as e:
        session.rollback()
        logger.exception("Tournament %d delete failed", tournament_id)
        raise HTTPException(status_code=500, detail=f"Failed to delete tournament: {str(e)}")

    logger.info(f"Tournament {tournament_id} deleted by {user.user_id}")
    return Response(status_code=204)


@router.get("/tournaments/{tournament_id}/pods-count")
def get_pods_count(tournament_id: int, session: Session = Depends(get_session)) -> Dict[str, int]:
    tournament = _get_tournament_or_404(session, tournament_id)
    return {"count": count_pods(session, tournament_id), "max_pods": tournament.max_pods}


@router.get("/tournaments/{tournament_id}/registration-status", response_model=RegistrationStatusResponse)
def get_registration_status(tournament_id: int, session: Session = Depends(get_session)):
    tournament = _get_tournament_or_404(session, tournament_id)
    state = get_registration_state(session, tournament)
    return RegistrationStatusResponse(
        is_open=state.is_open,
        pod_count=state.pod_count,
        max_pods=state.max_pods,
        spots_remaining=state.spots_remaining,
        reason=state.reason,
    )


@router.get("/tournaments/{tournament_id}/role")
def get_my_role(
    tournament_id: int,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    session: Session = Depends(get_session),
) -> Dict[str, Optional[str]]:
    """The caller's role in the tournament (organizer, participant), or null."""
    _get_tournament_or_404(session, tournament_id)
    if user is None:
        return {"role": None}
    return {"role": get_user_tournament_role(session, user.user_id, tournament_id)}
