"""Pod registration and roster display."""

import logging
from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Request
from pydantic import BaseModel
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from podvolley.auth import CurrentUser, get_current_user, get_optional_user, require_tournament_organizer
from podvolley.database import get_session
from podvolley.models.pod import Pod
from podvolley.models.tournament import Tournament
from podvolley.models.tournament_role import ROLE_PARTICIPANT, TournamentRole
from podvolley.services.captcha_service import get_captcha_service
from podvolley.services.email_service import get_email_service, validate_email
from podvolley.services.registration_service import (
    find_duplicate_registration,
    get_registration_state,
    next_pod_number,
)
from podvolley.utils.names import combined_first_names, first_name, pod_display_name

logger = logging.getLogger(__name__)

router = APIRouter()


class PodRegistration(BaseModel):
    tournament_id: int
    email: Optional[str] = None
    player1: Optional[str] = None
    player2: Optional[str] = None
    player3: Optional[str] = None
    team_name: Optional[str] = None
    captcha_token: Optional[str] = None


class RegisteredPod(BaseModel):
    id: int
    pod_number: int
    name: str
    team_name: str
    players: List[str]
    email: str


class RegistrationResponse(BaseModel):
    success: bool = True
    pod: RegisteredPod
    message: str
    email_warning: Optional[str] = None


class PodListItem(BaseModel):
    id: int
    pod_number: int
    name: str  # first names only
    team_name: Optional[str] = None
    players: List[str]  # first names only


class PodUpdate(BaseModel):
    name: Optional[str] = None
    player1: Optional[str] = None
    player2: Optional[str] = None
    player3: Optional[str] = None
    team_name: Optional[str] = None


class PodResponse(BaseModel):
    id: int
    tournament_id: int
    pod_number: int
    name: str
    player1: str
    player2: Optional[str] = None
    player3: Optional[str] = None
    team_name: Optional[str] = None
    created_at: datetime

    class Config:
        from_attributes = True


def _clean(value: Optional[str]) -> str:
    return (value or "").strip()


@router.post("/register-pod", response_model=RegistrationResponse, status_code=201)
def register_pod(
    payload: PodRegistration,
    request: Request,
    user: Optional[CurrentUser] = Depends(get_optional_user),
    session: Session = Depends(get_session),
):
    """
    Register a pod for a tournament.

    Checks run in order: required fields, email format, CAPTCHA, registration
    window and capacity, duplicate registration. A failed confirmation email
    does not fail the registration; it is reported as email_warning.
    """
    email = _clean(payload.email)
    player1 = _clean(payload.player1)
    player2 = _clean(payload.player2)
    player3 = _clean(payload.player3)
    team_name = _clean(payload.team_name)
    captcha_token = _clean(payload.captcha_token)

    if not email or not player1 or not player2 or not captcha_token:
        raise HTTPException(status_code=400, detail="Missing required fields")
    if not validate_email(email):
        raise HTTPException(status_code=400, detail="Invalid email format")

    tournament = session.get(Tournament, payload.tournament_id)
    if not tournament:
        raise HTTPException(status_code=404, detail="Tournament not found")
    if tournament.require_auth and user is None:
        raise HTTPException(status_code=401, detail="Sign in to register for this tournament")

    remote_ip = request.client.host if request.client else None
    if not get_captcha_service().verify(captcha_token, remote_ip):
        raise HTTPException(status_code=400, detail="CAPTCHA verification failed. Please try again.")

    state = get_registration_state(session, tournament)
    if not state.is_open:
        raise HTTPException(status_code=400, detail=state.reason)

    if find_duplicate_registration(session, tournament, email, user.user_id if user else None):
        if tournament.require_auth:
            detail = "You have already registered a pod for this tournament."
        else:
            detail = "This email is already registered. Each pod must use a unique email address."
        raise HTTPException(status_code=400, detail=detail)

    players = [p for p in (player1, player2, player3) if p]
    try:
        pod = Pod(
            tournament_id=tournament.id,
            pod_number=next_pod_number(session, tournament.id),
            user_id=user.user_id if user and tournament.require_auth else None,
            email=email,
            name=pod_display_name(players),
            player1=player1,
            player2=player2,
            player3=player3 or None,
            team_name=team_name or None,
        )
        session.add(pod)
        if user is not None and tournament.require_auth:
            session.add(TournamentRole(tournament_id=tournament.id, user_id=user.user_id, role=ROLE_PARTICIPANT))
        session.commit()
        session.refresh(pod)
    except IntegrityError:
        # Lost a race with a concurrent registration
        session.rollback()
        raise HTTPException(status_code=400, detail="This pod is already registered.")
    except Exception as e:
        session.rollback()
        logger.exception("Registration failed for tournament %d", tournament.id)
        raise HTTPException(status_code=500, detail=f"Failed to register pod: {str(e)}")

    logger.info(f"Tournament {tournament.id}: registered pod #{pod.pod_number} ({pod.name})")

    email_warning = None
    try:
        result = get_email_service().send_registration_confirmation(session, tournament, pod)
        if result["status"] == "failed":
            email_warning = f"Registration succeeded but the confirmation email could not be sent: {result['error']}"
    except Exception as e:
        session.rollback()
        logger.error(f"Failed to send confirmation email for pod {pod.id}: {e}")
        email_warning = "Registration succeeded but the confirmation email could not be sent."

    return RegistrationResponse(
        pod=RegisteredPod(
            id=pod.id,
            pod_number=pod.pod_number,
            name=pod.name,
            team_name=pod.team_name or pod.name,
            players=pod.players,
            email=pod.email,
        ),
        message="Registration successful! Check your email for confirmation.",
        email_warning=email_warning,
    )


@router.get("/tournaments/{tournament_id}/pods", response_model=List[PodListItem])
def list_pods(tournament_id: int, session: Session = Depends(get_session)):
    """Registered pods in pod-number order. Only first names are shown publicly."""
    if not session.get(Tournament, tournament_id):
        raise HTTPException(status_code=404, detail="Tournament not found")

    pods = session.exec(
        select(Pod).where(Pod.tournament_id == tournament_id).order_by(Pod.pod_number, Pod.id)
    ).all()
    return [
        PodListItem(
            id=p.id,
            pod_number=p.pod_number,
            name=combined_first_names(p.name),
            team_name=p.team_name,
            players=[first_name(name) for name in p.players],
        )
        for p in pods
    ]


@router.patch("/pods/{pod_id}", response_model=PodResponse)
def update_pod(
    pod_id: int,
    pod_data: PodUpdate,
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Organizer name edits. Pod membership and numbering never change."""
    pod = session.get(Pod, pod_id)
    if not pod:
        raise HTTPException(status_code=404, detail="Pod not found")
    require_tournament_organizer(session, user, pod.tournament_id, "edit pods in")

    update_data = {k: v.strip() if isinstance(v, str) else v for k, v in pod_data.model_dump(exclude_unset=True).items()}
    for required in ("name", "player1"):
        if required in update_data and not update_data[required]:
            raise HTTPException(status_code=400, detail=f"{required} cannot be empty")

    try:
        for field, value in update_data.items():
            setattr(pod, field, value or None)
        if "name" not in update_data and {"player1", "player2", "player3"} & set(update_data):
            pod.name = pod_display_name(pod.players)
        session.add(pod)
        session.commit()
        session.refresh(pod)
    except Exception as e:
        session.rollback()
        logger.exception("Pod %d update failed", pod_id)
        raise HTTPException(status_code=500, detail=f"Failed to update pod: {str(e)}")
    return pod
