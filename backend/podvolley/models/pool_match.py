from datetime import datetime
from typing import List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel

MATCH_PENDING = "pending"
MATCH_IN_PROGRESS = "in_progress"
MATCH_COMPLETED = "completed"


class PoolMatch(SQLModel, table=True):
    __tablename__ = "pool_matches"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    game_number: int  # 1..N, play order
    round_number: int
    scheduled_time: Optional[str] = Field(default=None, max_length=20)  # "10:00 AM"
    court_number: int = Field(default=1)

    # Rosters are pod ids (not pod numbers)
    team_a_pods: List[int] = Field(sa_column=Column(JSON, nullable=False))
    team_b_pods: List[int] = Field(sa_column=Column(JSON, nullable=False))
    sitting_pods: List[int] = Field(default_factory=list, sa_column=Column(JSON, nullable=False))

    team_a_score: int = Field(default=0)
    team_b_score: int = Field(default=0)
    status: str = Field(default=MATCH_PENDING)  # pending | in_progress | completed
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
