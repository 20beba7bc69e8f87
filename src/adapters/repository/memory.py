"""
In-memory repository adapter - Implements RegistrationStore protocol.

Process-local storage used as the last-resort fallback when no durable
store can be created. Data is lost when the process exits.
"""

import logging
import threading
import uuid
from collections.abc import Callable
from datetime import datetime

from src.domain.exceptions import AlreadyVerified, DuplicateEmail, InvalidToken, TokenExpired
from src.domain.ports import Registration, RegistrationStatus, Stats, StorageKind
from src.domain.registration import (
    VERIFICATION_TTL,
    generate_token,
    token_digest,
    utcnow,
    validate_email,
    validate_full_name,
)
from src.domain.stats import advance_fake_base_count, build_stats

logger = logging.getLogger(__name__)


class MemoryRegistrationRepository:
    """
    Implements RegistrationStore protocol with a list in process memory.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Every operation holds one lock, so the verify read-check-write is
    indivisible for callers in this process.
    """

    kind = StorageKind.MEMORY
    requires_full_name = True
    supports_full_name = True

    def __init__(self, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._registrations: list[Registration] = []
        # digest of consumed token -> registration id
        self._consumed: dict[str, str] = {}
        self._fake_base_count, _ = advance_fake_base_count(None, clock())

    def add_registration(self, email: str, full_name: str | None = None) -> Registration:
        normalized_email = validate_email(email)
        trimmed_name = validate_full_name(full_name, self.requires_full_name)

        with self._lock:
            if any(r.email == normalized_email for r in self._registrations):
                raise DuplicateEmail(normalized_email)

            now = self._clock()
            registration = Registration(
                id=uuid.uuid4().hex,
                email=normalized_email,
                full_name=trimmed_name,
                status=RegistrationStatus.PENDING,
                created_at=now,
                verification_token=generate_token(),
                verification_expires_at=now + VERIFICATION_TTL,
            )
            self._registrations.append(registration)
        return registration

    def get_registration_by_token(self, token: str) -> Registration | None:
        if not token:
            return None
        with self._lock:
            return self._find_by_token(token)

    def verify_registration(self, token: str) -> Registration:
        with self._lock:
            registration = self._find_by_token(token) if token else None
            if registration is None:
                if token and token_digest(token) in self._consumed:
                    raise AlreadyVerified("Email already verified")
                raise InvalidToken("Invalid verification token")

            now = self._clock()
            if registration.is_expired(now):
                raise TokenExpired("Verification token has expired")
            if not registration.is_pending:
                raise AlreadyVerified("Email already verified")

            verified = registration.mark_verified(now)
            index = self._registrations.index(registration)
            self._registrations[index] = verified
            self._consumed[token_digest(token)] = verified.id
        return verified

    def get_stats(self) -> Stats:
        with self._lock:
            registered = sum(1 for r in self._registrations if not r.is_pending)
            pending = len(self._registrations) - registered
            self._fake_base_count, _ = advance_fake_base_count(self._fake_base_count, self._clock())
            return build_stats(registered, pending, self._fake_base_count)

    def list_registrations(self) -> list[Registration]:
        with self._lock:
            return sorted(self._registrations, key=lambda r: r.created_at, reverse=True)

    def clear_registrations(self) -> None:
        with self._lock:
            self._registrations.clear()
            self._consumed.clear()
        logger.info("In-memory registrations cleared")

    def _find_by_token(self, token: str) -> Registration | None:
        return next((r for r in self._registrations if r.verification_token == token), None)
