"""
Domain exceptions - Semantic error types for registration.

This module defines domain-specific exceptions that communicate
business rule violations without leaking infrastructure details.
The first six are expected outcomes of normal traffic; the API layer
maps them to 4xx responses. BackendUnavailable and EmailDeliveryFailed
are operational faults.
"""


class RegistrationError(Exception):
    """Base class for registration domain errors."""

    pass


class InvalidEmail(RegistrationError):
    """Email is missing or does not look like local@domain.tld."""

    pass


class InvalidFullName(RegistrationError):
    """Full name is required by the active store and is too short."""

    pass


class DuplicateEmail(RegistrationError):
    """Normalized email already has a registration (pending or registered)."""

    pass


class InvalidToken(RegistrationError):
    """No registration holds this verification token."""

    pass


class TokenExpired(RegistrationError):
    """Verification token is past its expiry."""

    pass


class AlreadyVerified(RegistrationError):
    """Registration behind this token is already registered."""

    pass


class BackendUnavailable(RegistrationError):
    """Durable store cannot be reached, created, read or written."""

    pass


class EmailDeliveryFailed(RegistrationError):
    """Outbound verification email could not be handed to the provider."""

    pass
