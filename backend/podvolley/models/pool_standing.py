from typing import Optional

from sqlalchemy import UniqueConstraint as SAUniqueConstraint
from sqlmodel import Field, SQLModel


class PoolStanding(SQLModel, table=True):
    """Running pool-play aggregates for one pod. Point differential is derived, never stored."""

    __tablename__ = "pool_standings"
    __table_args__ = (SAUniqueConstraint("tournament_id", "pod_id", name="uq_standing_tournament_pod"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    pod_id: int = Field(foreign_key="pods.id", ondelete="CASCADE")
    wins: int = Field(default=0)
    losses: int = Field(default=0)
    points_for: int = Field(default=0)
    points_against: int = Field(default=0)
