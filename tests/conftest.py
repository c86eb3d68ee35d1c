"""
Shared test fixtures and configuration.

This module provides pytest fixtures for:
- In-memory fakes of the moderation platform and verification provider
- A recording client socket
- A wired orchestrator
"""

import json

import pytest

from kitsu_verify.domain.exceptions import ProviderError, UserNotFoundError
from kitsu_verify.domain.orchestrator import VerificationOrchestrator
from kitsu_verify.domain.policy import OutcomePolicy
from kitsu_verify.domain.ports import PlatformUser, VerificationSession
from kitsu_verify.domain.registry import ConnectionRegistry


class RecordingSocket:
    """ClientSocket fake that records every frame and the close call."""

    def __init__(self) -> None:
        self.sent: list[str] = []
        self.closed = False
        self.close_code: int | None = None

    async def send_text(self, text: str) -> None:
        if not self.closed:
            self.sent.append(text)

    async def close(self, code: int = 1000) -> None:
        if not self.closed:
            self.closed = True
            self.close_code = code

    @property
    def messages(self) -> list[dict]:
        return [json.loads(frame) for frame in self.sent]

    @property
    def types(self) -> list[str]:
        return [message["type"] for message in self.messages]


class FakeProvider:
    """VerificationProvider fake with a scripted session store."""

    def __init__(self) -> None:
        self.sessions: dict[str, VerificationSession] = {}
        self.calls: list[tuple] = []
        self.client_secret = "mock_client_secret"
        self.fail_on: set[str] = set()
        self._counter = 0

    def put(self, session: VerificationSession) -> None:
        self.sessions[session.id] = session

    def _maybe_fail(self, operation: str) -> None:
        if operation in self.fail_on:
            raise ProviderError(f"{operation} failed")

    async def create_session(self, identity: str) -> VerificationSession:
        self.calls.append(("create", identity))
        self._maybe_fail("create")
        self._counter += 1
        session = VerificationSession(
            id=f"vs_{self._counter}",
            status="requires_input",
            client_secret=self.client_secret,
            identity=identity,
        )
        self.sessions[session.id] = session
        return session

    async def retrieve_session(self, session_id: str) -> VerificationSession:
        self.calls.append(("retrieve", session_id))
        self._maybe_fail("retrieve")
        try:
            return self.sessions[session_id]
        except KeyError:
            raise ProviderError(f"no such session {session_id}") from None

    async def redact_session(self, session_id: str) -> None:
        self.calls.append(("redact", session_id))
        self._maybe_fail("redact")

    async def register_webhook(self, url: str, events: list[str]) -> None:
        self.calls.append(("webhook", url, tuple(events)))
        self._maybe_fail("webhook")

    async def aclose(self) -> None:
        self.calls.append(("aclose",))


class FakePlatform:
    """ModerationPlatform fake backed by a dict of users."""

    def __init__(self) -> None:
        self.users: dict[str, PlatformUser] = {}
        self.calls: list[tuple] = []

    def put(self, user_id: str, note: str | None, username: str | None = None) -> None:
        self.users[user_id] = PlatformUser(
            id=user_id, username=username or user_id, moderation_note=note
        )

    async def whoami(self) -> str:
        self.calls.append(("i",))
        return "moderator"

    async def get_user(self, user_id: str) -> PlatformUser:
        self.calls.append(("users/show", user_id))
        try:
            return self.users[user_id]
        except KeyError:
            raise UserNotFoundError(user_id) from None

    async def update_user_note(self, user_id: str, text: str) -> None:
        self.calls.append(("admin/update-user-note", user_id, text))
        user = self.users[user_id]
        self.users[user_id] = PlatformUser(id=user.id, username=user.username, moderation_note=text)

    async def unsuspend_user(self, user_id: str) -> None:
        self.calls.append(("admin/unsuspend-user", user_id))

    async def aclose(self) -> None:
        self.calls.append(("aclose",))

    def note_writes(self) -> list[tuple]:
        return [call for call in self.calls if call[0] == "admin/update-user-note"]


@pytest.fixture
def provider() -> FakeProvider:
    return FakeProvider()


@pytest.fixture
def platform() -> FakePlatform:
    return FakePlatform()


@pytest.fixture
def registry() -> ConnectionRegistry:
    return ConnectionRegistry()


@pytest.fixture
def orchestrator(
    registry: ConnectionRegistry, provider: FakeProvider, platform: FakePlatform
) -> VerificationOrchestrator:
    return VerificationOrchestrator(
        registry=registry,
        provider=provider,
        platform=platform,
        policy=OutcomePolicy(),
    )


@pytest.fixture
def socket_factory():
    """Build fresh recording sockets."""
    return RecordingSocket


@pytest.fixture
def socket() -> RecordingSocket:
    return RecordingSocket()
