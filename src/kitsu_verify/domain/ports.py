"""
Port interfaces - Protocol definitions for collaborator abstraction.

This module defines the interfaces (ports) that the domain requires
from the moderation platform, the verification provider and the
client socket, along with the value types exchanged across them.
Adapters implement these protocols.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Protocol


class SessionStatus(str, Enum):
    """
    Verification session status as reported by the provider.

    Only a re-fetched session's status is authoritative. Statuses
    carried by client messages or webhook event names are never
    trusted on their own.
    """

    REQUIRES_INPUT = "requires_input"
    PROCESSING = "processing"
    VERIFIED = "verified"
    CANCELED = "canceled"


class WebhookEvent(str, Enum):
    """Provider webhook event types the gateway subscribes to."""

    VERIFIED = "identity.verification_session.verified"
    REQUIRES_INPUT = "identity.verification_session.requires_input"


@dataclass(frozen=True)
class VerificationSession:
    """Provider truth for one verification session, from a fresh fetch."""

    id: str
    status: str
    client_secret: str | None = None
    last_error_code: str | None = None
    identity: str | None = None

    @property
    def is_verified(self) -> bool:
        return self.status == SessionStatus.VERIFIED.value

    @property
    def requires_input(self) -> bool:
        return self.status == SessionStatus.REQUIRES_INPUT.value


@dataclass(frozen=True)
class VerificationSessionRef:
    """
    Reference to the provider session a connection is waiting on.

    Holds the last observed status and error code for diagnostics only;
    decisions are always taken on a re-fetched VerificationSession.
    """

    session_id: str
    status: str | None = None
    last_error_code: str | None = None

    @classmethod
    def from_session(cls, session: VerificationSession) -> "VerificationSessionRef":
        return cls(
            session_id=session.id,
            status=session.status,
            last_error_code=session.last_error_code,
        )


@dataclass(frozen=True)
class PlatformUser:
    """Platform user record as returned by the moderation API."""

    id: str
    username: str
    moderation_note: str | None = None


class ClientSocket(Protocol):
    """Port interface for one live client connection."""

    @property
    def closed(self) -> bool:
        """True once the socket has been closed by either side."""
        ...

    async def send_text(self, text: str) -> None:
        """
        Send one text frame.

        Sending on a closed socket is a no-op, never an error.
        """
        ...

    async def close(self, code: int = 1000) -> None:
        """Close the socket. Closing twice is a no-op."""
        ...


class ModerationPlatform(Protocol):
    """Port interface for the platform moderation API."""

    async def whoami(self) -> str:
        """
        Return the username the configured credential signs in as.

        Raises:
            PlatformError: If the credential is rejected or the call fails
        """
        ...

    async def get_user(self, user_id: str) -> PlatformUser:
        """
        Fetch a user record including its moderation note.

        Raises:
            UserNotFoundError: If the user cannot be fetched
        """
        ...

    async def update_user_note(self, user_id: str, text: str) -> None:
        """
        Replace the moderation note of a user.

        Raises:
            PlatformError: If the call fails
        """
        ...

    async def unsuspend_user(self, user_id: str) -> None:
        """
        Lift a suspension. Unsuspending an active user is harmless.

        Raises:
            PlatformError: If the call fails
        """
        ...


class VerificationProvider(Protocol):
    """Port interface for the document verification provider."""

    async def create_session(self, identity: str) -> VerificationSession:
        """
        Open a document verification session tagged with the identity.

        Raises:
            ProviderError: If the call fails
        """
        ...

    async def retrieve_session(self, session_id: str) -> VerificationSession:
        """
        Fetch the canonical state of a session.

        Raises:
            ProviderError: If the call fails
        """
        ...

    async def redact_session(self, session_id: str) -> None:
        """
        Erase the personal data collected by a session.

        Raises:
            ProviderError: If the call fails
        """
        ...

    async def register_webhook(self, url: str, events: list[str]) -> None:
        """
        Subscribe a public endpoint to session events.

        Raises:
            ProviderError: If the call fails
        """
        ...
