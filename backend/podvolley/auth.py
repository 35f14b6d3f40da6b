"""
Request identity and organizer checks.

Authentication itself is done by the upstream identity provider, which
forwards the signed-in user as X-User-Id / X-User-Email headers. This module
only reads that identity and answers authorization questions against the
organizer_whitelist and tournament_roles tables.
"""
import logging
from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header, HTTPException
from sqlmodel import Session, select

from podvolley.database import get_session
from podvolley.models.organizer_whitelist import OrganizerWhitelist
from podvolley.models.tournament_role import ROLE_ORGANIZER, ROLE_PARTICIPANT, TournamentRole

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CurrentUser:
    user_id: str
    email: Optional[str] = None


def get_optional_user(
    x_user_id: Optional[str] = Header(default=None),
    x_user_email: Optional[str] = Header(default=None),
) -> Optional[CurrentUser]:
    """The signed-in user, or None for anonymous requests."""
    if not x_user_id or not x_user_id.strip():
        return None
    return CurrentUser(user_id=x_user_id.strip(), email=(x_user_email or "").strip() or None)


def get_current_user(user: Optional[CurrentUser] = Depends(get_optional_user)) -> CurrentUser:
    if user is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return user


def is_whitelisted_organizer(session: Session, user_id: str) -> bool:
    try:
        return (
            session.exec(select(OrganizerWhitelist).where(OrganizerWhitelist.user_id == user_id)).first()
            is not None
        )
    except Exception as e:
        logger.error(f"Error checking organizer whitelist: {e}")
        return False


def get_user_tournament_role(session: Session, user_id: str, tournament_id: int) -> Optional[str]:
    """The user's role in a tournament; organizer wins over participant when both exist."""
    roles = session.exec(
        select(TournamentRole.role).where(
            TournamentRole.user_id == user_id,
            TournamentRole.tournament_id == tournament_id,
        )
    ).all()
    if ROLE_ORGANIZER in roles:
        return ROLE_ORGANIZER
    if ROLE_PARTICIPANT in roles:
        return ROLE_PARTICIPANT
    return None


def is_tournament_organizer(session: Session, user_id: str, tournament_id: int) -> bool:
    return get_user_tournament_role(session, user_id, tournament_id) == ROLE_ORGANIZER


def require_tournament_organizer(session: Session, user: CurrentUser, tournament_id: int, action: str) -> None:
    """Raise 403 unless the user organizes this tournament."""
    if not is_tournament_organizer(session, user.user_id, tournament_id):
        raise HTTPException(status_code=403, detail=f"Not authorized to {action} this tournament")


def require_whitelisted_organizer(
    user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
) -> CurrentUser:
    if not is_whitelisted_organizer(session, user.user_id):
        raise HTTPException(status_code=403, detail="Not authorized to create tournaments")
    return user
