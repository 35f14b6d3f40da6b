from datetime import datetime
from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:
    from podvolley.models.tournament import Tournament


class Pod(SQLModel, table=True):
    __tablename__ = "pods"
    __table_args__ = (
        # One pod per user per tournament (user_id is null for anonymous registrations)
        SAUniqueConstraint("user_id", "tournament_id", name="unique_user_tournament"),
        SAUniqueConstraint("tournament_id", "pod_number", name="uq_tournament_pod_number"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    pod_number: int  # 1-based display number, assigned at registration and never recomputed
    user_id: Optional[str] = Field(default=None)
    email: str  # Captain's email
    name: str  # "John & Sarah"
    player1: str
    player2: Optional[str] = None
    player3: Optional[str] = None
    team_name: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.utcnow)

    tournament: "Tournament" = Relationship(back_populates="pods")

    @property
    def players(self) -> List[str]:
        return [p for p in (self.player1, self.player2, self.player3) if p]
