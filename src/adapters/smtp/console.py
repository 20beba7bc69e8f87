"""
Console email sender adapter - Implements EmailSender protocol.

This module provides a console-based implementation of the domain's
email sender port, logging verification links instead of sending them.
Used whenever no email provider key is configured.
"""

import logging

logger = logging.getLogger(__name__)


def build_verification_url(base_url: str, token: str) -> str:
    """Link the verification email points at."""
    return f"{base_url.rstrip('/')}/verify?token={token}"


class ConsoleEmailSender:
    """
    Implements EmailSender protocol via console logging.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Never fails, so registration works without an email provider.
    """

    def __init__(self, base_url: str = "http://localhost:3000") -> None:
        self.base_url = base_url

    def send_verification_email(self, email: str, token: str, full_name: str | None = None) -> None:
        """
        Log the would-be verification email (simulates delivery).

        The link is logged at INFO level so it can be followed from the
        server logs during development.

        Args:
            email: Recipient email address (normalized by the store)
            token: Verification token
            full_name: Optional recipient name
        """
        logger.info(
            "[VERIFICATION] Email: %s URL: %s",
            email,
            build_verification_url(self.base_url, token),
        )
