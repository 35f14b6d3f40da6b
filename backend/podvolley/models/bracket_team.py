from datetime import datetime
from typing import List, Optional

from sqlmodel import Field, SQLModel


class BracketTeam(SQLModel, table=True):
    """Three pods combined for bracket play. Immutable once seeded."""

    __tablename__ = "bracket_teams"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    team_name: str  # "Team A", "Team B", ...
    seed_rank: int  # 1 for Team A
    pod1_id: int = Field(foreign_key="pods.id")
    pod2_id: int = Field(foreign_key="pods.id")
    pod3_id: int = Field(foreign_key="pods.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def pod_ids(self) -> List[int]:
        return [self.pod1_id, self.pod2_id, self.pod3_id]
