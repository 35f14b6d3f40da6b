"""Email log model for tracking outbound messages."""

from datetime import datetime, timezone
from typing import Optional

from sqlmodel import Field, SQLModel


class EmailLog(SQLModel, table=True):
    """Log of every email sent through the system."""

    __tablename__ = "email_log"

    id: Optional[int] = Field(default=None, primary_key=True)
    tournament_id: int = Field(foreign_key="tournaments.id", ondelete="CASCADE", index=True)
    pod_id: Optional[int] = Field(default=None, foreign_key="pods.id", ondelete="SET NULL")
    recipient: str
    subject: str
    message_type: str  # registration_confirmation
    provider_id: Optional[str] = Field(default=None)  # Resend message id
    status: str = Field(default="queued")  # sent|dry_run|failed
    error_message: Optional[str] = Field(default=None)
    sent_at: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
