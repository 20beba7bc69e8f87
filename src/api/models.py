"""
API request and response models.

Pydantic models for FastAPI endpoint validation and OpenAPI schema
generation. JSON uses camelCase keys; Python code uses field names.
Email format and full-name length are checked by the store so every
backend applies the same rules and the API can answer 400, not 422.
"""

from datetime import datetime

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from src.domain.ports import Registration, Stats


class CamelModel(BaseModel):
    """Base model serializing to camelCase and accepting either spelling."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RegisterRequest(CamelModel):
    """Request model for pre-launch registration."""

    email: str | None = None
    full_name: str | None = None


class RegisterResponse(CamelModel):
    """Response model for successful registration."""

    success: bool = True
    message: str
    id: str


class PublicStatsResponse(CamelModel):
    """The only count shown to the public."""

    display_count: int


class VerifyRequest(CamelModel):
    """Request model for email verification."""

    token: str | None = None


class VerifyResponse(CamelModel):
    """Response model for successful verification."""

    success: bool = True
    message: str
    email: str
    verified_at: datetime


class TokenCheckResponse(CamelModel):
    """Response model for a token validity probe."""

    valid: bool = True
    email: str
    expires_at: datetime | None


class StatsResponse(CamelModel):
    """Full counts, admin only."""

    total_registered: int
    total_pending: int
    total: int
    fake_base_count: int | None
    display_count: int

    @classmethod
    def from_stats(cls, stats: Stats) -> "StatsResponse":
        return cls(
            total_registered=stats.total_registered,
            total_pending=stats.total_pending,
            total=stats.total,
            fake_base_count=stats.fake_base_count,
            display_count=stats.display_count,
        )


class RegistrationResponse(CamelModel):
    """Registration as listed on the admin endpoint."""

    id: str
    email: str
    full_name: str | None
    status: str
    created_at: datetime
    verification_token: str | None
    verification_expires_at: datetime | None
    verified_at: datetime | None
    verification_link: str | None

    @classmethod
    def from_registration(
        cls, registration: Registration, verification_link: str | None
    ) -> "RegistrationResponse":
        return cls(
            id=registration.id,
            email=registration.email,
            full_name=registration.full_name,
            status=registration.status.value,
            created_at=registration.created_at,
            verification_token=registration.verification_token,
            verification_expires_at=registration.verification_expires_at,
            verified_at=registration.verified_at,
            verification_link=verification_link,
        )


class RegistrationsResponse(CamelModel):
    """Admin listing of every registration."""

    registrations: list[RegistrationResponse]
    stats: StatsResponse
    storage_type: str


class ErrorResponse(BaseModel):
    """Standard error response model."""

    detail: str
