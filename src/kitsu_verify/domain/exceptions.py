"""
Domain exceptions - Semantic error types for the verification gateway.

This module defines domain-specific exceptions that communicate
failures at each boundary without leaking collaborator details
to connected clients.
"""


class GatewayError(Exception):
    """Base class for verification gateway errors."""

    pass


class TransportError(GatewayError):
    """Frame or upgrade rejected at the socket boundary."""

    pass


class MalformedFrameError(TransportError):
    """Inbound frame is not a well-formed protocol message."""

    pass


class ReservedIdentityError(TransportError):
    """Identity is a reserved sentinel and may never connect."""

    pass


class ProviderError(GatewayError):
    """Verification provider call failed or timed out."""

    pass


class PlatformError(GatewayError):
    """Moderation platform call failed."""

    pass


class UserNotFoundError(PlatformError):
    """Platform user record could not be fetched."""

    pass


class ConfigurationError(GatewayError):
    """Settings are missing or invalid; no traffic may be served."""

    pass
