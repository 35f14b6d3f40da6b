"""
Registration rules for pods: the registration window, capacity, duplicate
detection, and stored pod numbering.
"""
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from sqlmodel import Session, func, select

from podvolley.models.pod import Pod
from podvolley.models.tournament import Tournament

logger = logging.getLogger(__name__)


@dataclass
class RegistrationState:
    is_open: bool
    pod_count: int
    max_pods: int
    reason: Optional[str] = None  # why registration is closed

    @property
    def spots_remaining(self) -> int:
        return max(self.max_pods - self.pod_count, 0)


def count_pods(session: Session, tournament_id: int) -> int:
    return session.exec(select(func.count(Pod.id)).where(Pod.tournament_id == tournament_id)).one()


def next_pod_number(session: Session, tournament_id: int) -> int:
    current = session.exec(select(func.max(Pod.pod_number)).where(Pod.tournament_id == tournament_id)).one()
    return (current or 0) + 1


def _naive(value: datetime) -> datetime:
    return value.replace(tzinfo=None) if value.tzinfo else value


def get_registration_state(session: Session, tournament: Tournament, now: Optional[datetime] = None) -> RegistrationState:
    """Registration is open until the tournament completes, inside its window, and below capacity."""
    now = _naive(now or datetime.utcnow())
    pod_count = count_pods(session, tournament.id)
    state = RegistrationState(is_open=False, pod_count=pod_count, max_pods=tournament.max_pods)

    if tournament.status == "completed":
        state.reason = "This tournament has already been completed."
    elif tournament.registration_open_date and now < _naive(tournament.registration_open_date):
        state.reason = "Registration has not opened yet."
    elif tournament.registration_deadline and now > _naive(tournament.registration_deadline):
        state.reason = "The registration deadline has passed."
    elif pod_count >= tournament.max_pods:
        state.reason = f"Registration is closed. All {tournament.max_pods} spots have been filled."
    else:
        state.is_open = True
    return state


def find_duplicate_registration(
    session: Session,
    tournament: Tournament,
    email: str,
    user_id: Optional[str] = None,
) -> Optional[Pod]:
    """
    An existing pod for the same registrant: matched by user identity when the
    tournament requires sign-in, otherwise by email (case-insensitive).
    """
    query = select(Pod).where(Pod.tournament_id == tournament.id)
    if tournament.require_auth and user_id:
        query = query.where(Pod.user_id == user_id)
    else:
        query = query.where(func.lower(Pod.email) == email.strip().lower())
    return session.exec(query).first()
