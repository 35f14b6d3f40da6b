"""Organizer whitelist: who may create tournaments."""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class OrganizerWhitelist(SQLModel, table=True):
    __tablename__ = "organizer_whitelist"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(unique=True)
    email: str  # For reference/display
    added_by: str
    added_at: datetime = Field(default_factory=datetime.utcnow)
    notes: Optional[str] = None
