"""
FastAPI dependencies - Dependency injection factories.

This module provides Depends() factories for injecting the domain
orchestrator and settings into routes.
"""

from fastapi import Request
from fastapi.requests import HTTPConnection

from kitsu_verify.config.settings import Settings
from kitsu_verify.domain.orchestrator import VerificationOrchestrator


def get_orchestrator(connection: HTTPConnection) -> VerificationOrchestrator:
    """
    Get the verification orchestrator from app state.

    The orchestrator is created during app lifespan startup and stored in
    app.state. Works for both HTTP requests and WebSocket connections.
    """
    return connection.app.state.orchestrator


def get_signup_verify_host(request: Request) -> str:
    """Host shown by the signup gate, from the settings stored at startup."""
    settings: Settings | None = getattr(request.app.state, "settings", None)
    if settings is None:
        return Settings.model_fields["signup_verify_host"].default
    return settings.signup_verify_host
