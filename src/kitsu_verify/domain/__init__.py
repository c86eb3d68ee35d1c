"""
Domain layer - Verification logic with zero web framework imports.

This package contains the core of the verification gateway: the
per-identity state machine, the connection registry, the moderation
note grammar and the WebSocket message codec. It defines its own port
interfaces for collaborator abstraction, so adapters can be swapped
without touching the state machine.
"""

from .exceptions import (
    ConfigurationError,
    GatewayError,
    MalformedFrameError,
    PlatformError,
    ProviderError,
    ReservedIdentityError,
    TransportError,
    UserNotFoundError,
)
from .orchestrator import VerificationOrchestrator
from .policy import Action, Outcome, OutcomePolicy, RequiresInputPolicy
from .ports import (
    ClientSocket,
    ModerationPlatform,
    PlatformUser,
    SessionStatus,
    VerificationProvider,
    VerificationSession,
    VerificationSessionRef,
    WebhookEvent,
)
from .registry import ConnectionEntry, ConnectionRegistry

__all__ = [
    "Action",
    "ClientSocket",
    "ConfigurationError",
    "ConnectionEntry",
    "ConnectionRegistry",
    "GatewayError",
    "MalformedFrameError",
    "ModerationPlatform",
    "Outcome",
    "OutcomePolicy",
    "PlatformError",
    "PlatformUser",
    "ProviderError",
    "RequiresInputPolicy",
    "ReservedIdentityError",
    "SessionStatus",
    "TransportError",
    "UserNotFoundError",
    "VerificationOrchestrator",
    "VerificationProvider",
    "VerificationSession",
    "VerificationSessionRef",
    "WebhookEvent",
]
