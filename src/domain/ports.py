"""
Port interfaces - Protocol definitions for infrastructure abstraction.

This module defines the interfaces (ports) that the domain requires
from infrastructure, plus the value types that cross them. Adapters
implement these protocols.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from enum import Enum
from typing import Any, Protocol


class RegistrationStatus(str, Enum):
    """
    Registration lifecycle states.

    State Transitions (forward-only):
    - PENDING -> REGISTERED (successful verification)

    REGISTERED is terminal. The transition is enforced by each store:
    a lock for in-process stores, a conditional UPDATE for PostgreSQL.
    """

    PENDING = "pending"
    REGISTERED = "registered"


class StorageKind(str, Enum):
    """Backend kinds the store selector can create."""

    MEMORY = "memory"
    FILE = "file"
    POSTGRES = "postgres"
    REMOTE = "remote"


def _isoformat(value: datetime | None) -> str | None:
    return value.isoformat() if value is not None else None


def _parse_datetime(value: Any) -> datetime | None:
    if value is None or isinstance(value, datetime):
        return value
    # Python < 3.11 does not accept the trailing "Z" written by other tools
    return datetime.fromisoformat(str(value).replace("Z", "+00:00"))


@dataclass(frozen=True)
class Registration:
    """A single pre-launch sign-up record."""

    id: str
    email: str
    status: RegistrationStatus
    created_at: datetime
    full_name: str | None = None
    verification_token: str | None = None
    verification_expires_at: datetime | None = None
    verified_at: datetime | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == RegistrationStatus.PENDING

    def is_expired(self, now: datetime) -> bool:
        """True when the verification window has closed at ``now``."""
        return self.verification_expires_at is not None and now > self.verification_expires_at

    def mark_verified(self, now: datetime) -> "Registration":
        """Return the registered form of this record."""
        return replace(
            self,
            status=RegistrationStatus.REGISTERED,
            verified_at=now,
            verification_token=None,
            verification_expires_at=None,
        )

    def to_dict(self) -> dict[str, Any]:
        """camelCase representation used by the JSON file and the API."""
        return {
            "id": self.id,
            "email": self.email,
            "fullName": self.full_name,
            "status": self.status.value,
            "createdAt": _isoformat(self.created_at),
            "verificationToken": self.verification_token,
            "verificationExpiresAt": _isoformat(self.verification_expires_at),
            "verifiedAt": _isoformat(self.verified_at),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Registration":
        return cls(
            id=str(data["id"]),
            email=data["email"],
            full_name=data.get("fullName"),
            status=RegistrationStatus(data.get("status") or RegistrationStatus.PENDING.value),
            created_at=_parse_datetime(data["createdAt"]),
            verification_token=data.get("verificationToken"),
            verification_expires_at=_parse_datetime(data.get("verificationExpiresAt")),
            verified_at=_parse_datetime(data.get("verifiedAt")),
        )


@dataclass(frozen=True)
class Stats:
    """
    Registration counts plus the public display count.

    fake_base_count is a backend capability; stores that do not keep
    one report None and it counts as zero.
    """

    total_registered: int
    total_pending: int
    total: int
    fake_base_count: int | None = None
    display_count: int = field(init=False)

    def __post_init__(self) -> None:
        object.__setattr__(self, "display_count", (self.fake_base_count or 0) + self.total_registered)


class RegistrationStore(Protocol):
    """
    Port interface for registration persistence.

    Every backend implements the same semantics; they differ only in
    durability and concurrency discipline.
    """

    kind: StorageKind
    requires_full_name: bool
    supports_full_name: bool

    def add_registration(self, email: str, full_name: str | None = None) -> Registration:
        """
        Create a pending registration with a fresh verification token.

        Args:
            email: Raw email address (normalized by the store)
            full_name: Display name, required by some stores

        Returns:
            The stored registration, token included

        Raises:
            InvalidEmail: Email fails the local@domain.tld check
            InvalidFullName: Store requires a name of 2+ characters
            DuplicateEmail: Normalized email already registered
        """
        ...

    def get_registration_by_token(self, token: str) -> Registration | None:
        """Look up the pending registration holding ``token``."""
        ...

    def verify_registration(self, token: str) -> Registration:
        """
        Consume a verification token and mark the registration registered.

        Checks run in order: token known, not expired, not already
        registered. At most one concurrent caller succeeds per token.

        Raises:
            InvalidToken: No registration holds this token
            TokenExpired: Token expiry is in the past (no mutation)
            AlreadyVerified: Registration is already registered
        """
        ...

    def get_stats(self) -> Stats:
        """Compute counts, advancing the persisted synthetic floor if due."""
        ...

    def list_registrations(self) -> list[Registration]:
        """All registrations, newest first (admin use)."""
        ...

    def clear_registrations(self) -> None:
        """Delete every registration (test use only)."""
        ...


class EmailSender(Protocol):
    """Port interface for email delivery."""

    def send_verification_email(self, email: str, token: str, full_name: str | None = None) -> None:
        """
        Send the verification link for ``token`` to ``email``.

        Args:
            email: Recipient email address
            token: Verification token to embed in the link
            full_name: Optional name for the greeting
        """
        ...
