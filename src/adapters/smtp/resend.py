"""
Resend email sender adapter - Implements EmailSender protocol.

Delivers the verification link through the Resend HTTP API using httpx.
Delivery is attempted once; failures raise EmailDeliveryFailed and the
caller decides what to do with the already stored registration.
"""

import logging

import httpx

from src.config.settings import Settings
from src.domain.exceptions import EmailDeliveryFailed

from .console import ConsoleEmailSender, build_verification_url

logger = logging.getLogger(__name__)

RESEND_API_URL = "https://api.resend.com"
SUBJECT = "Verify your pre-launch registration"

TEXT_TEMPLATE = """\
Hi {name},

You're one step away from early access.

Please verify your email by opening this link:
{url}

This link will expire in 24 hours.

If you didn't sign up, you can safely ignore this email.
"""

HTML_TEMPLATE = """\
<div style="font-family: Arial, sans-serif; max-width: 600px; margin: 0 auto;">
  <h1>Hi {name},</h1>
  <p>You're one step away from early access.</p>
  <p><a href="{url}">Verify your email</a></p>
  <p style="color: #888;">This link will expire in 24 hours.</p>
  <p style="color: #888;">If you didn't sign up, you can safely ignore this email.</p>
</div>
"""


class ResendEmailSender:
    """Implements EmailSender protocol via the Resend API."""

    def __init__(
        self,
        client: httpx.Client,
        from_email: str,
        base_url: str = "http://localhost:3000",
    ) -> None:
        """
        Args:
            client: httpx.Client with base_url and Authorization set for Resend
            from_email: Sender address
            base_url: Public site URL used to build the verification link
        """
        self._client = client
        self.from_email = from_email
        self.base_url = base_url

    def send_verification_email(self, email: str, token: str, full_name: str | None = None) -> None:
        url = build_verification_url(self.base_url, token)
        name = full_name or "there"
        payload = {
            "from": self.from_email,
            "to": [email],
            "subject": SUBJECT,
            "html": HTML_TEMPLATE.format(name=name, url=url),
            "text": TEXT_TEMPLATE.format(name=name, url=url),
        }

        try:
            response = self._client.post("/emails", json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.error(f"Failed to send verification email to {email}: {e}")
            raise EmailDeliveryFailed(f"Email sending failed: {e}") from e

        logger.info("Verification email sent to %s (id=%s)", email, response.json().get("id"))

    def close(self) -> None:
        self._client.close()


def create_email_sender(settings: Settings) -> ConsoleEmailSender | ResendEmailSender:
    """Resend sender when an API key is configured, console sender otherwise."""
    if not settings.resend_api_key:
        logger.warning("RESEND_API_KEY not set - verification emails will only be logged")
        return ConsoleEmailSender(base_url=settings.base_url)

    client = httpx.Client(
        base_url=RESEND_API_URL,
        headers={"Authorization": f"Bearer {settings.resend_api_key}"},
        timeout=settings.http_timeout_seconds,
    )
    return ResendEmailSender(client, settings.resend_from_email, base_url=settings.base_url)
