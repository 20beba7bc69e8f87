"""
Domain layer - Pure business logic with zero framework imports.

This package contains the core business logic for pre-launch
registration. It defines its own port interfaces for infrastructure
abstraction, so stores and email senders stay interchangeable.
"""

from .exceptions import (
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
from .ports import (
    EmailSender,
    Registration,
    RegistrationStatus,
    RegistrationStore,
    Stats,
    StorageKind,
)
from .registration import RegistrationService

__all__ = [
    "AlreadyVerified",
    "BackendUnavailable",
    "DuplicateEmail",
    "EmailDeliveryFailed",
    "EmailSender",
    "InvalidEmail",
    "InvalidFullName",
    "InvalidToken",
    "Registration",
    "RegistrationError",
    "RegistrationService",
    "RegistrationStatus",
    "RegistrationStore",
    "Stats",
    "StorageKind",
    "TokenExpired",
]
