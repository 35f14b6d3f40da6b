from datetime import datetime
from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel

from podvolley.models.pool_match import MATCH_PENDING


class BracketMatch(SQLModel, table=True):
    __tablename__ = "bracket_matches"
    __table_args__ = (SAUniqueConstraint("tournament_id", "game_number", name="uq_bracket_game_number"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    game_number: int
    bracket_type: str  # "winners" | "losers" | "championship"

    # Null until a feeder game's outcome fills them
    team_a_id: Optional[int] = Field(default=None, foreign_key="bracket_teams.id")
    team_b_id: Optional[int] = Field(default=None, foreign_key="bracket_teams.id")

    # Feeder edges: slot is filled by the WINNER/LOSER of source game number
    source_game_a: Optional[int] = Field(default=None)
    source_a_role: Optional[str] = Field(default=None)  # "WINNER" | "LOSER"
    source_game_b: Optional[int] = Field(default=None)
    source_b_role: Optional[str] = Field(default=None)

    team_a_score: int = Field(default=0)
    team_b_score: int = Field(default=0)
    status: str = Field(default=MATCH_PENDING)  # pending | in_progress | completed
    winner_team_id: Optional[int] = Field(default=None, foreign_key="bracket_teams.id")
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
