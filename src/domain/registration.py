"""
Registration domain service - pre-launch sign-up and email verification.

This module contains the rules every store applies (email normalization
and validation, full-name validation, token generation, verification
window) and the service that orchestrates a store and an email sender.

Registration State Machine (Forward-Only Transitions)
=====================================================

States:
- PENDING: Record created, verification token issued (24-hour window)
- REGISTERED: Terminal state after the token is consumed

Valid Transitions:
    PENDING -> REGISTERED   (verify with a live, unexpired token)

Invalid Transitions (never allowed):
    REGISTERED -> any       (REGISTERED is terminal)
    any -> PENDING          (no backward movement)

Expiry does not move a record out of PENDING; an expired token simply
fails verification with TokenExpired and leaves the record untouched.
"""

import hashlib
import logging
import re
import secrets
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone

from .exceptions import InvalidEmail, InvalidFullName, InvalidToken, TokenExpired
from .ports import EmailSender, Registration, RegistrationStore, Stats

logger = logging.getLogger(__name__)

VERIFICATION_TTL = timedelta(hours=24)
MIN_FULL_NAME_LENGTH = 2

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(email: str) -> str:
    """
    Normalize email address for consistent storage and lookup.

    Applies: strip whitespace + lowercase
    """
    return email.strip().lower()


def validate_email(email: str | None) -> str:
    """
    Normalize ``email`` and check it against local@domain.tld.

    Returns:
        Normalized email address

    Raises:
        InvalidEmail: Missing or malformed address
    """
    if not email:
        raise InvalidEmail("Email is required")
    normalized = normalize_email(email)
    if not _EMAIL_PATTERN.match(normalized):
        raise InvalidEmail("Invalid email format")
    return normalized


def validate_full_name(full_name: str | None, required: bool) -> str | None:
    """
    Trim ``full_name``; enforce the minimum length when the store requires it.

    An empty name collapses to None for stores that treat it as optional.
    """
    trimmed = full_name.strip() if full_name else ""
    if required and len(trimmed) < MIN_FULL_NAME_LENGTH:
        raise InvalidFullName(
            f"Full name is required and must be at least {MIN_FULL_NAME_LENGTH} characters"
        )
    return trimmed or None


def generate_token() -> str:
    """
    Generate a verification token.

    32 random bytes from the secrets module rendered as 64 hex
    characters. Tokens carry no structure and are not time-ordered.
    """
    return secrets.token_hex(32)


def token_digest(token: str) -> str:
    """SHA-256 of a consumed token, kept so re-use reads as AlreadyVerified."""
    return hashlib.sha256(token.encode()).hexdigest()


@dataclass
class RegistrationService:
    """
    Domain service for pre-launch registration.

    Orchestrates the registration flow: the store validates and persists,
    the email sender delivers the verification link.
    """

    store: RegistrationStore
    email_sender: EmailSender

    def register(self, email: str, full_name: str | None = None) -> Registration:
        """
        Register an email address and send its verification link.

        Args:
            email: User's email address (normalized by the store)
            full_name: Optional display name

        Returns:
            The pending registration

        Raises:
            InvalidEmail, InvalidFullName, DuplicateEmail: From the store
            EmailDeliveryFailed: Record was stored but the email was not sent
        """
        registration = self.store.add_registration(email, full_name)
        logger.info("Registration %s created for %s", registration.id, registration.email)
        self.email_sender.send_verification_email(
            registration.email, registration.verification_token, registration.full_name
        )
        return registration

    def verify(self, token: str) -> Registration:
        """Consume ``token``; see RegistrationStore.verify_registration."""
        registration = self.store.verify_registration(token)
        logger.info("Registration %s verified", registration.id)
        return registration

    def check_token(self, token: str, now: datetime | None = None) -> Registration:
        """
        Validity probe for a token without consuming it.

        Raises:
            InvalidToken: Token unknown or already consumed
            TokenExpired: Token expiry is in the past
        """
        registration = self.store.get_registration_by_token(token)
        if registration is None:
            raise InvalidToken("Invalid verification token")
        if registration.is_expired(now or utcnow()):
            raise TokenExpired("Verification token has expired")
        return registration

    def get_stats(self) -> Stats:
        return self.store.get_stats()
