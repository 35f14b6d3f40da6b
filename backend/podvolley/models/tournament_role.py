from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

ROLE_ORGANIZER = "organizer"
ROLE_PARTICIPANT = "participant"


class TournamentRole(SQLModel, table=True):
    __tablename__ = "tournament_roles"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    user_id: str = Field(index=True)  # Identity provider user id
    role: str  # organizer | participant
    created_at: datetime = Field(default_factory=datetime.utcnow)
