from datetime import datetime
from typing import TYPE_CHECKING, Any, Dict, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, Relationship, SQLModel

if TYPE_CHECKING:
    from podvolley.models.pod import Pod

TOURNAMENT_STATUSES = ("upcoming", "active", "completed")


class Tournament(SQLModel, table=True):
    __tablename__ = "tournaments"

    id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    slug: str = Field(unique=True, index=True)
    date: datetime
    location: Optional[str] = None
    description: Optional[str] = None
    status: str = Field(default="upcoming")  # upcoming | active | completed
    max_pods: int = Field(default=9)
    bracket_format: str = Field(default="three_team")  # three_team | four_team

    # {"start_points": 0, "end_points": 21, "win_by_two": true, "cap": 25}
    scoring_rules: Optional[Dict[str, Any]] = Field(default=None, sa_column=Column(JSON, nullable=True))

    registration_open_date: Optional[datetime] = None
    registration_deadline: Optional[datetime] = None
    is_public: bool = Field(default=True)
    require_auth: bool = Field(default=True)  # False: anonymous registration, duplicates checked by email
    created_by: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})

    # Relationships
    pods: List["Pod"] = Relationship(back_populates="tournament")
