"""Resend email service wrapper.

Thin wrapper around the Resend HTTP API for transactional email.
Handles the registration confirmation message and logs every send.
"""

import html
import logging
import os
import re
from datetime import datetime, timezone
from typing import List, Optional

import requests
from sqlmodel import Session

from podvolley.models.email_log import EmailLog

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com/emails"
DEFAULT_FROM = "Pod Volley <tournament@podvolley.app>"
REQUEST_TIMEOUT = 10

EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")

MESSAGE_REGISTRATION = "registration_confirmation"


def validate_email(address: str) -> bool:
    """Loose shape check: something@something.tld, no whitespace."""
    return bool(address) and bool(EMAIL_PATTERN.fullmatch(address.strip()))


def render_registration_confirmation(
    tournament_name: str,
    team_name: str,
    players: List[str],
    pod_number: int,
) -> str:
    """HTML body for the registration confirmation email."""
    player_items = "".join(f"<li>{html.escape(p)}</li>" for p in players)
    return (
        "<div style=\"font-family: sans-serif\">"
        f"<h1>You're registered for {html.escape(tournament_name)}!</h1>"
        f"<p>Your pod <strong>{html.escape(team_name)}</strong> is Pod #{pod_number}.</p>"
        f"<ul>{player_items}</ul>"
        "<p>Pool play schedules and standings will be posted on the tournament page.</p>"
        "</div>"
    )


class EmailService:
    """
    Wrapper around the Resend REST API for sending email.

    Reads configuration from environment variables:
      - RESEND_API_KEY
      - EMAIL_FROM (optional, sender address)

    If the API key is not set, operates in dry-run mode
    (logs messages but doesn't send).
    """

    def __init__(self):
        self.api_key = os.getenv("RESEND_API_KEY", "")
        self.from_address = os.getenv("EMAIL_FROM", DEFAULT_FROM)
        self.dry_run = not self.api_key

        if self.dry_run:
            logger.warning(
                "Resend API key not configured. Running in dry-run mode. "
                "Set RESEND_API_KEY."
            )

    def send_email(self, to: str, subject: str, html_body: str) -> dict:
        """
        Send a single email.

        Returns:
            dict with keys: id, status, error
        """
        if not validate_email(to):
            return {"id": None, "status": "failed", "error": f"Invalid email address: {to}"}

        if self.dry_run:
            logger.info(f"[DRY RUN] Email to {to}: {subject}")
            return {
                "id": f"DRY_RUN_{datetime.now(timezone.utc).isoformat()}",
                "status": "dry_run",
                "error": None,
            }

        try:
            response = requests.post(
                RESEND_API_URL,
                headers={"Authorization": f"Bearer {self.api_key}"},
                json={
                    "from": self.from_address,
                    "to": [to],
                    "subject": subject,
                    "html": html_body,
                },
                timeout=REQUEST_TIMEOUT,
            )
            response.raise_for_status()
            message_id = response.json().get("id")
            logger.info(f"Email sent to {to}: id={message_id}")
            return {"id": message_id, "status": "sent", "error": None}
        except requests.RequestException as e:
            logger.error(f"Failed to send email to {to}: {e}")
            return {"id": None, "status": "failed", "error": str(e)}

    def send_registration_confirmation(
        self,
        session: Session,
        tournament,
        pod,
    ) -> dict:
        """Send the confirmation for a new pod and record it in email_log. Commits the log row."""
        subject = f"Registration Confirmed - {tournament.name}"
        body = render_registration_confirmation(
            tournament.name,
            pod.team_name or pod.name,
            pod.players,
            pod.pod_number,
        )
        result = self.send_email(pod.email, subject, body)

        session.add(
            EmailLog(
                tournament_id=tournament.id,
                pod_id=pod.id,
                recipient=pod.email,
                subject=subject,
                message_type=MESSAGE_REGISTRATION,
                provider_id=result["id"],
                status=result["status"],
                error_message=result["error"],
            )
        )
        session.commit()
        return result

    @property
    def is_configured(self) -> bool:
        """Check if Resend is properly configured (not in dry-run mode)."""
        return not self.dry_run


# Singleton instance
_email_service: Optional[EmailService] = None


def get_email_service() -> EmailService:
    """Get or create the singleton EmailService instance."""
    global _email_service
    if _email_service is None:
        _email_service = EmailService()
    return _email_service
