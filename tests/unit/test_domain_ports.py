"""
Unit tests for domain ports and exceptions.

Tests verify:
- Port interfaces are properly defined
- Exceptions are properly structured
- Registration value type and its serialized form
- Domain purity (zero framework imports)
"""

import subprocess
from datetime import datetime, timedelta, timezone
from enum import Enum
from pathlib import Path

import pytest

from src.domain.exceptions import (
    AlreadyVerified,
    BackendUnavailable,
    DuplicateEmail,
    EmailDeliveryFailed,
    InvalidEmail,
    InvalidFullName,
    InvalidToken,
    RegistrationError,
    TokenExpired,
)
from src.domain.ports import (
    EmailSender,
    Registration,
    RegistrationStatus,
    RegistrationStore,
    StorageKind,
)

REPO_ROOT = Path(__file__).resolve().parents[2]
CREATED = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def pending_registration() -> Registration:
    return Registration(
        id="abc",
        email="user@example.com",
        full_name="Jane Doe",
        status=RegistrationStatus.PENDING,
        created_at=CREATED,
        verification_token="t" * 64,
        verification_expires_at=CREATED + timedelta(hours=24),
    )


class TestRegistrationStatusEnum:
    """Tests for RegistrationStatus enum."""

    def test_is_str_enum(self) -> None:
        assert issubclass(RegistrationStatus, Enum)
        assert issubclass(RegistrationStatus, str)

    def test_values(self) -> None:
        assert [s.value for s in RegistrationStatus] == ["pending", "registered"]


class TestStorageKindEnum:
    """Tests for StorageKind enum."""

    def test_has_four_kinds(self) -> None:
        assert {k.value for k in StorageKind} == {"memory", "file", "postgres", "remote"}


class TestExceptions:
    """Tests for the exception hierarchy."""

    @pytest.mark.parametrize(
        "exc_class",
        [
            InvalidEmail,
            InvalidFullName,
            DuplicateEmail,
            InvalidToken,
            TokenExpired,
            AlreadyVerified,
            BackendUnavailable,
            EmailDeliveryFailed,
        ],
    )
    def test_all_inherit_registration_error(self, exc_class) -> None:
        assert issubclass(exc_class, RegistrationError)
        assert issubclass(exc_class, Exception)

    def test_exception_carries_message(self) -> None:
        with pytest.raises(DuplicateEmail, match="user@example.com"):
            raise DuplicateEmail("user@example.com")


class TestRegistration:
    """Tests for the Registration value type."""

    def test_is_immutable(self) -> None:
        registration = pending_registration()

        with pytest.raises(AttributeError):
            registration.email = "other@example.com"  # type: ignore[misc]

    def test_is_expired_boundary(self) -> None:
        registration = pending_registration()

        assert registration.is_expired(CREATED + timedelta(hours=24)) is False
        assert registration.is_expired(CREATED + timedelta(hours=24, microseconds=1)) is True

    def test_mark_verified_clears_token(self) -> None:
        verified_at = CREATED + timedelta(hours=1)

        verified = pending_registration().mark_verified(verified_at)

        assert verified.status == RegistrationStatus.REGISTERED
        assert verified.verified_at == verified_at
        assert verified.verification_token is None
        assert verified.verification_expires_at is None
        assert verified.created_at == CREATED
        assert verified.id == "abc"

    def test_to_dict_is_camel_case(self) -> None:
        data = pending_registration().to_dict()

        assert data == {
            "id": "abc",
            "email": "user@example.com",
            "fullName": "Jane Doe",
            "status": "pending",
            "createdAt": "2025-06-01T12:00:00+00:00",
            "verificationToken": "t" * 64,
            "verificationExpiresAt": "2025-06-02T12:00:00+00:00",
            "verifiedAt": None,
        }

    def test_from_dict_round_trip(self) -> None:
        registration = pending_registration()

        assert Registration.from_dict(registration.to_dict()) == registration

    def test_from_dict_accepts_zulu_timestamps(self) -> None:
        """Records written by other tools use a trailing Z."""
        registration = Registration.from_dict(
            {
                "id": 17,
                "email": "user@example.com",
                "status": "registered",
                "createdAt": "2025-06-01T12:00:00.000Z",
                "verifiedAt": "2025-06-01T13:00:00.000Z",
            }
        )

        assert registration.id == "17"
        assert registration.full_name is None
        assert registration.created_at == CREATED
        assert registration.status == RegistrationStatus.REGISTERED


class TestProtocols:
    """Tests for port protocol definitions."""

    def test_registration_store_methods(self) -> None:
        for name in (
            "add_registration",
            "get_registration_by_token",
            "verify_registration",
            "get_stats",
            "list_registrations",
            "clear_registrations",
        ):
            assert hasattr(RegistrationStore, name)

    def test_email_sender_method(self) -> None:
        assert hasattr(EmailSender, "send_verification_email")


class TestDomainPurity:
    """Domain layer stays free of framework and driver imports."""

    @pytest.mark.parametrize(
        "pattern",
        ["from fastapi", "import fastapi", "from pydantic", "from psycopg", "import httpx"],
    )
    def test_no_framework_imports_in_domain(self, pattern: str) -> None:
        result = subprocess.run(
            ["grep", "-r", pattern, "src/domain/"],
            capture_output=True,
            text=True,
            cwd=REPO_ROOT,
        )
        assert result.returncode != 0, f"{pattern} found: {result.stdout}"
