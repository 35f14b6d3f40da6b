"""Cloudflare Turnstile verification for public forms."""

import logging
import os
from typing import Optional

import requests

logger = logging.getLogger(__name__)

TURNSTILE_VERIFY_URL = "https://challenges.cloudflare.com/turnstile/v0/siteverify"
REQUEST_TIMEOUT = 10


class CaptchaService:
    """
    Verifies Turnstile tokens with Cloudflare.

    Reads TURNSTILE_SECRET_KEY from the environment. Without it every
    non-empty token is accepted (local development).
    """

    def __init__(self):
        self.secret_key = os.getenv("TURNSTILE_SECRET_KEY", "")
        self.dry_run = not self.secret_key
        if self.dry_run:
            logger.warning(
                "Turnstile secret not configured. CAPTCHA tokens will not be verified. "
                "Set TURNSTILE_SECRET_KEY."
            )

    def verify(self, token: str, remote_ip: Optional[str] = None) -> bool:
        if not token:
            return False
        if self.dry_run:
            logger.info("[DRY RUN] Accepting CAPTCHA token without verification")
            return True

        payload = {"secret": self.secret_key, "response": token}
        if remote_ip:
            payload["remoteip"] = remote_ip
        try:
            response = requests.post(TURNSTILE_VERIFY_URL, json=payload, timeout=REQUEST_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except (requests.RequestException, ValueError) as e:
            logger.error(f"Turnstile verification request failed: {e}")
            return False

        if data.get("success") is not True:
            logger.info("Turnstile rejected token: %s", data.get("error-codes"))
            return False
        return True


_captcha_service: Optional[CaptchaService] = None


def get_captcha_service() -> CaptchaService:
    global _captcha_service
    if _captcha_service is None:
        _captcha_service = CaptchaService()
    return _captcha_service
