"""
API v1 routes.

Defines REST endpoints for the pre-launch registration API:
- POST /register - Register an email and send its verification link
- GET /register - Public display count
- POST /verify - Consume a verification token
- GET /verify - Check a token without consuming it
- GET /registrations - Admin listing (only with ADMIN_ENABLED)
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.adapters.repository.selector import StoreSelector
from src.adapters.smtp.console import build_verification_url
from src.api.dependencies import (
    get_app_settings,
    get_registration_service,
    get_store,
    get_store_selector,
    require_admin,
)
from src.api.models import (
    ErrorResponse,
    PublicStatsResponse,
    RegisterRequest,
    RegisterResponse,
    RegistrationResponse,
    RegistrationsResponse,
    StatsResponse,
    TokenCheckResponse,
    VerifyRequest,
    VerifyResponse,
)
from src.config.settings import Settings
from src.domain.exceptions import (
    AlreadyVerified,
    DuplicateEmail,
    EmailDeliveryFailed,
    InvalidEmail,
    InvalidFullName,
    InvalidToken,
    TokenExpired,
)
from src.domain.ports import RegistrationStore
from src.domain.registration import RegistrationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["v1"])

TOKEN_ERROR_MESSAGES = {
    InvalidToken: "Invalid verification link. Please try registering again.",
    TokenExpired: "Verification link has expired. Please register again to receive a new link.",
    AlreadyVerified: "This email has already been verified.",
}


def _token_error(exc: InvalidToken | TokenExpired | AlreadyVerified) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_400_BAD_REQUEST,
        detail=TOKEN_ERROR_MESSAGES[type(exc)],
    )


@router.post(
    "/register",
    response_model=RegisterResponse,
    status_code=status.HTTP_201_CREATED,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid email or full name"},
        409: {"model": ErrorResponse, "description": "Email already registered"},
        500: {"model": ErrorResponse, "description": "Verification email could not be sent"},
    },
    summary="Register for pre-launch access",
    description="Submit an email (and optionally a full name). "
    "A verification link valid for 24 hours is emailed to the address.",
)
async def register(
    request_data: RegisterRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> RegisterResponse:
    """
    Register an email address and send the verification link.

    - **email**: Email address to register
    - **fullName**: Display name (required by some storage backends)
    """
    try:
        registration = service.register(request_data.email, request_data.full_name)
    except (InvalidEmail, InvalidFullName) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e)) from None
    except DuplicateEmail:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="This email is already registered for pre-launch access",
        ) from None
    except EmailDeliveryFailed as e:
        logger.error(f"Registration stored but verification email failed: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Something went wrong. Please try again later.",
        ) from None

    return RegisterResponse(
        message="Registration successful! Please check your email to verify your account.",
        id=registration.id,
    )


@router.get(
    "/register",
    response_model=PublicStatsResponse,
    summary="Public registration counter",
)
async def registration_stats(
    service: RegistrationService = Depends(get_registration_service),
) -> PublicStatsResponse:
    """Display count only; raw pending/total counts stay on the admin endpoint."""
    stats = service.get_stats()
    return PublicStatsResponse(display_count=stats.display_count)


@router.post(
    "/verify",
    response_model=VerifyResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid, expired or used token"},
    },
    summary="Verify an email address",
)
async def verify(
    request_data: VerifyRequest,
    service: RegistrationService = Depends(get_registration_service),
) -> VerifyResponse:
    """Consume the verification token from the emailed link."""
    if not request_data.token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Verification token is required",
        )

    try:
        registration = service.verify(request_data.token)
    except (InvalidToken, TokenExpired, AlreadyVerified) as e:
        raise _token_error(e) from None

    return VerifyResponse(
        message="Email verified successfully!",
        email=registration.email,
        verified_at=registration.verified_at,
    )


@router.get(
    "/verify",
    response_model=TokenCheckResponse,
    responses={
        400: {"model": ErrorResponse, "description": "Invalid or expired token"},
    },
    summary="Check a verification token",
)
async def check_token(
    token: str | None = None,
    service: RegistrationService = Depends(get_registration_service),
) -> TokenCheckResponse:
    """Validity probe used by the verify page before submitting; never mutates."""
    if not token:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Verification token is required",
        )

    try:
        registration = service.check_token(token)
    except (InvalidToken, TokenExpired) as e:
        raise _token_error(e) from None

    return TokenCheckResponse(
        email=registration.email,
        expires_at=registration.verification_expires_at,
    )


@router.get(
    "/registrations",
    response_model=RegistrationsResponse,
    dependencies=[Depends(require_admin)],
    summary="List every registration (admin)",
)
async def list_registrations(
    store: RegistrationStore = Depends(get_store),
    selector: StoreSelector = Depends(get_store_selector),
    settings: Settings = Depends(get_app_settings),
) -> RegistrationsResponse:
    """All registrations with their verification links, full stats and storage kind."""
    registrations = [
        RegistrationResponse.from_registration(
            registration,
            build_verification_url(settings.base_url, registration.verification_token)
            if registration.verification_token
            else None,
        )
        for registration in store.list_registrations()
    ]
    return RegistrationsResponse(
        registrations=registrations,
        stats=StatsResponse.from_stats(store.get_stats()),
        storage_type=selector.storage_kind.value,
    )
