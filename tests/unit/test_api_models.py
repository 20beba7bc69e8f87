"""
Unit tests for API request/response models.

Tests camelCase aliasing and the conversions from domain types.
"""

from datetime import datetime, timedelta, timezone

from src.api.models import (
    ErrorResponse,
    PublicStatsResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrationResponse,
    StatsResponse,
    VerifyRequest,
    VerifyResponse,
)
from src.domain.ports import Registration, RegistrationStatus
from src.domain.stats import build_stats

CREATED = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


class TestRegisterRequest:
    """Tests for RegisterRequest model."""

    def test_accepts_camel_case(self) -> None:
        request = RegisterRequest.model_validate({"email": "a@b.co", "fullName": "Jane Doe"})
        assert request.full_name == "Jane Doe"

    def test_accepts_field_names(self) -> None:
        request = RegisterRequest(email="a@b.co", full_name="Jane Doe")
        assert request.full_name == "Jane Doe"

    def test_fields_optional(self) -> None:
        """Missing fields reach the store, which answers with a domain error."""
        request = RegisterRequest.model_validate({})
        assert request.email is None
        assert request.full_name is None


class TestResponses:
    """Tests for response serialization."""

    def test_register_response(self) -> None:
        response = RegisterResponse(message="ok", id="42")
        assert response.model_dump(by_alias=True) == {"success": True, "message": "ok", "id": "42"}

    def test_public_stats_is_display_count_only(self) -> None:
        response = PublicStatsResponse(display_count=2900)
        assert response.model_dump(by_alias=True) == {"displayCount": 2900}

    def test_verify_response_uses_camel_case(self) -> None:
        response = VerifyResponse(message="ok", email="a@b.co", verified_at=CREATED)
        data = response.model_dump(by_alias=True)
        assert data["verifiedAt"] == CREATED
        assert data["success"] is True

    def test_verify_request_token_optional(self) -> None:
        assert VerifyRequest.model_validate({}).token is None

    def test_error_response(self) -> None:
        assert ErrorResponse(detail="nope").model_dump() == {"detail": "nope"}


class TestFromDomain:
    """Tests for conversions from domain types."""

    def test_stats_response(self) -> None:
        response = StatsResponse.from_stats(
            build_stats(registered=2, pending=1, fake_base_count=100)
        )

        assert response.model_dump(by_alias=True) == {
            "totalRegistered": 2,
            "totalPending": 1,
            "total": 3,
            "fakeBaseCount": 100,
            "displayCount": 102,
        }

    def test_registration_response(self) -> None:
        registration = Registration(
            id="7",
            email="a@b.co",
            status=RegistrationStatus.PENDING,
            created_at=CREATED,
            full_name="Jane Doe",
            verification_token="abc",
            verification_expires_at=CREATED + timedelta(hours=24),
        )

        data = RegistrationResponse.from_registration(
            registration, "http://localhost:3000/verify?token=abc"
        ).model_dump(by_alias=True)

        assert data["status"] == "pending"
        assert data["fullName"] == "Jane Doe"
        assert data["verificationLink"] == "http://localhost:3000/verify?token=abc"
        assert data["verifiedAt"] is None
