"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the store
selector, the active store and the domain service into routes. All of
them read from app.state, populated once by the lifespan handler.
"""

from fastapi import Depends, HTTPException, Request, status

from src.adapters.repository.selector import StoreSelector
from src.config.settings import Settings
from src.domain.ports import EmailSender, RegistrationStore
from src.domain.registration import RegistrationService


def get_app_settings(request: Request) -> Settings:
    """Settings the application was started with."""
    return request.app.state.settings


def get_store_selector(request: Request) -> StoreSelector:
    """
    Get the store selector from app state.

    The selector is created during app lifespan startup and stored in app.state.
    """
    return request.app.state.store_selector


def get_store(selector: StoreSelector = Depends(get_store_selector)) -> RegistrationStore:
    """Active store; the selector falls back to memory if the durable one fails."""
    return selector.get_storage()


def get_email_sender(request: Request) -> EmailSender:
    """Get the email sender chosen at startup."""
    return request.app.state.email_sender


def get_registration_service(
    store: RegistrationStore = Depends(get_store),
    email_sender: EmailSender = Depends(get_email_sender),
) -> RegistrationService:
    """
    Create registration service with injected dependencies.

    Wires together the active store and email sender for the domain service.
    """
    return RegistrationService(store=store, email_sender=email_sender)


def require_admin(settings: Settings = Depends(get_app_settings)) -> None:
    """Hide admin endpoints unless ADMIN_ENABLED is set."""
    if not settings.admin_enabled:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Not Found")
