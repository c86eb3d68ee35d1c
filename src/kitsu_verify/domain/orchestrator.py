"""
Verification orchestrator - Per-identity verification state machine.

This module reconciles the two asynchronous event sources of the
gateway (client messages over the WebSocket and provider webhooks)
into one outcome per user.

States (per identity)
=====================

- IDLE: connected, no provider session
- PENDING: provider session created, waiting for an outcome
- VERIFIED: provider confirmed the document; note rewritten, user unsuspended
- DENIED: provider reported a denial code; note overwritten with a permanent deny
- INCOMPLETE: provider needs more input; still PENDING for the same session

Transitions:
    IDLE    -> PENDING     verify request (session created, ref stored)
    PENDING -> PENDING     verify request again (ref overwritten, old session orphaned)
    PENDING -> INCOMPLETE  done signal, fresh status is requires_input
    PENDING -> DENIED      error signal or requires_input webhook, fresh code denies
    PENDING -> VERIFIED    verified webhook, fresh status is exactly "verified"
    VERIFIED -> closed     session ref cleared, socket closed
    DENIED  -> IDLE        session ref cleared

Every transition is taken on a freshly fetched session. Codes and
statuses asserted by the client or named by a webhook event only
trigger the fetch. A requires_input webhook only acts on the session
a live connection is still waiting on. Transitions for one identity
run under the registry's per-identity lock, and every side effect is
safe to repeat when the provider delivers the same webhook more than
once.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import assert_never

from pydantic import BaseModel

from . import notes
from .exceptions import MalformedFrameError, PlatformError, ProviderError
from .messages import (
    Identification,
    IdentificationFailed,
    IdentificationResult,
    IdentifyRequest,
    InboundMessage,
    ProviderDoneSignal,
    ProviderErrorSignal,
    SessionCreated,
    VerificationComplete,
    VerificationId,
    VerificationIncomplete,
    VerificationProgress,
    VerifyRequest,
    decode_inbound,
    encode,
    failed,
)
from .policy import Action, OutcomePolicy, RequiresInputPolicy
from .ports import (
    ClientSocket,
    ModerationPlatform,
    PlatformUser,
    VerificationProvider,
    VerificationSession,
    VerificationSessionRef,
    WebhookEvent,
)
from .registry import ConnectionRegistry

logger = logging.getLogger(__name__)

# Reason sent when a collaborator fails; details stay in the logs.
GENERIC_FAILURE_REASON = "error"


@dataclass
class VerificationOrchestrator:
    """
    Domain service driving verification for every connected identity.

    Wires the connection registry to the verification provider and the
    moderation platform. Transport code feeds it raw frames and webhook
    events; it answers through the registered client sockets.
    """

    registry: ConnectionRegistry
    provider: VerificationProvider
    platform: ModerationPlatform
    policy: OutcomePolicy = field(default_factory=OutcomePolicy)
    identity_prefix: str = "M_"
    _tasks: set[asyncio.Task] = field(default_factory=set, init=False, repr=False)

    # -- connection lifecycle ------------------------------------------------

    async def connect(self, identity: str, socket: ClientSocket) -> None:
        """
        Register a freshly accepted socket.

        Raises:
            ReservedIdentityError: If the identity may never connect
        """
        await self.registry.register(identity, socket)

    def disconnect(self, identity: str, socket: ClientSocket) -> None:
        """Forget a socket the client closed. In-flight work keeps running."""
        self.registry.remove(identity, socket)

    async def receive(
        self, identity: str, socket: ClientSocket, raw: str | bytes
    ) -> asyncio.Task | None:
        """
        Accept one inbound frame.

        Malformed frames close the connection without a reply. Unknown
        message types are ignored. Anything else is handled on its own
        task so a slow provider call never blocks the socket.

        Returns:
            The task handling the message, if one was started
        """
        try:
            message = decode_inbound(raw)
        except MalformedFrameError:
            logger.debug("%s: malformed frame, terminating connection", identity)
            await self._close(identity, socket)
            return None

        if message is None:
            logger.debug("%s: ignoring unknown message type", identity)
            return None

        return self.dispatch(identity, socket, message)

    def dispatch(
        self, identity: str, socket: ClientSocket, message: InboundMessage
    ) -> asyncio.Task:
        task = asyncio.create_task(
            self._run(identity, socket, message), name=f"{identity}:{message.type}"
        )
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task

    async def drain(self) -> None:
        """Wait for every in-flight message handler to finish."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    async def _run(
        self, identity: str, socket: ClientSocket, message: InboundMessage
    ) -> None:
        try:
            await self.handle(identity, socket, message)
        except Exception:
            logger.exception("%s: unhandled error while handling %s", identity, message.type)

    async def handle(
        self, identity: str, socket: ClientSocket, message: InboundMessage
    ) -> None:
        if isinstance(message, VerifyRequest):
            await self.request_verification(identity, socket)
        elif isinstance(message, ProviderErrorSignal):
            await self.handle_provider_error(identity, socket, message.data.code)
        elif isinstance(message, ProviderDoneSignal):
            await self.handle_done(identity, socket)
        elif isinstance(message, IdentifyRequest):
            await self.identify(socket, message.data.user_id)
        else:
            assert_never(message)

    # -- client-driven transitions -------------------------------------------

    async def request_verification(self, identity: str, socket: ClientSocket) -> None:
        """IDLE -> PENDING: open a provider session and hand out its secret."""
        async with self.registry.lock(identity):
            if self.registry.lookup(identity) is None:
                logger.debug("%s: verify request from a closed connection", identity)
                return

            try:
                session = await self.provider.create_session(identity)
            except ProviderError:
                logger.exception("%s: could not create verification session", identity)
                await self._send(socket, failed(GENERIC_FAILURE_REASON))
                return

            replaced = self.registry.set_session(
                identity, VerificationSessionRef.from_session(session)
            )
            if replaced is not None and replaced.session_id != session.id:
                logger.warning(
                    "%s: session %s replaced by %s and left open at the provider",
                    identity,
                    replaced.session_id,
                    session.id,
                )

            logger.info("%s: verification session %s created", identity, session.id)
            await self._send(socket, SessionCreated(data=session.client_secret or ""))

    async def handle_done(self, identity: str, socket: ClientSocket) -> None:
        """The hosted flow closed; tell the client if more input is needed."""
        async with self.registry.lock(identity):
            try:
                session = await self._refetch_pending(identity)
            except ProviderError:
                logger.exception("%s: could not refresh session after done signal", identity)
                await self._send(socket, failed(GENERIC_FAILURE_REASON))
                return

            if session is not None and session.requires_input:
                await self._send(socket, VerificationIncomplete())

    async def handle_provider_error(
        self, identity: str, socket: ClientSocket, code: str
    ) -> None:
        """
        The hosted flow reported an error.

        The client's code only decides whether to look; the outcome is
        classified from the session's own last error after a re-fetch.
        """
        if self.policy.is_client_retry(code):
            logger.debug("%s: session cancelled by user", identity)
            return

        async with self.registry.lock(identity):
            try:
                session = await self._refetch_pending(identity)
            except ProviderError:
                logger.exception("%s: could not refresh session after error signal", identity)
                await self._send(socket, failed(GENERIC_FAILURE_REASON))
                return

            if session is not None:
                await self._apply_outcome(identity, session)

    async def identify(self, socket: ClientSocket, user_id: str) -> None:
        """Report which ban, if any, the platform records for a user."""
        try:
            user = await self.platform.get_user(user_id)
        except PlatformError:
            logger.info("identify: user %s could not be fetched", user_id)
            await self._send(socket, IdentificationFailed())
            return

        ban_type = notes.classify(user.moderation_note)
        await self._send(
            socket,
            Identification(
                data=IdentificationResult(username=user.username, ban_type=ban_type.value)
            ),
        )

    # -- provider-driven transitions -----------------------------------------

    async def handle_webhook(self, event_type: str, session_id: str) -> None:
        """
        React to a provider webhook.

        The event name only selects the path; the fetched session decides
        whether it is taken and for which identity.

        Raises:
            ProviderError: If the session cannot be fetched
        """
        if event_type not in (WebhookEvent.VERIFIED.value, WebhookEvent.REQUIRES_INPUT.value):
            logger.debug("webhook: ignoring event %s", event_type)
            return

        if (
            event_type == WebhookEvent.REQUIRES_INPUT.value
            and self.policy.requires_input is RequiresInputPolicy.IGNORE
        ):
            logger.debug("webhook: requires_input for %s ignored by policy", session_id)
            return

        session = await self.provider.retrieve_session(session_id)
        identity = session.identity
        if not identity:
            logger.warning("webhook: session %s carries no identity", session_id)
            return

        async with self.registry.lock(identity):
            if event_type == WebhookEvent.VERIFIED.value:
                if not session.is_verified:
                    logger.info(
                        "%s: verified event for %s but status is %s",
                        identity,
                        session.id,
                        session.status,
                    )
                    return
                await self._complete(identity, session)
            elif self._is_awaited(identity, session.id):
                await self._apply_outcome(identity, session)
            else:
                logger.info(
                    "%s: requires_input for %s, which is no longer pending", identity, session.id
                )

    # -- terminal paths ------------------------------------------------------

    async def _apply_outcome(self, identity: str, session: VerificationSession) -> None:
        outcome = self.policy.classify(session.last_error_code)
        if outcome.action is Action.DENY:
            await self._deny(identity, outcome.reason or GENERIC_FAILURE_REASON)
        elif outcome.action is Action.FAIL:
            logger.info("%s: session %s failed (%s)", identity, session.id, outcome.reason)
            await self._send_to(identity, failed(outcome.reason or GENERIC_FAILURE_REASON))
        else:
            logger.debug(
                "%s: no action for error code %s", identity, session.last_error_code
            )

    async def _complete(self, identity: str, session: VerificationSession) -> None:
        """
        VERIFIED path.

        Success is announced before the purge: the user-visible outcome
        does not depend on redaction succeeding, but redaction is always
        attempted before the socket is closed.
        """
        logger.info("%s: session %s verified", identity, session.id)
        await self._send_to(
            identity, VerificationComplete(data=VerificationId(verification_id=session.id))
        )

        try:
            await self.provider.redact_session(session.id)
        except ProviderError:
            logger.exception("%s: redaction of session %s failed", identity, session.id)
        else:
            await self._send_to(identity, VerificationProgress(data="redact"))

        try:
            user = await self._lookup_user(identity)
            note = notes.apply_verified(user.moderation_note, session.id)
            if note != (user.moderation_note or ""):
                await self.platform.update_user_note(user.id, note)
            else:
                logger.info("%s: note carries no pending tag, left untouched", identity)
            await self.platform.unsuspend_user(user.id)
        except PlatformError:
            logger.exception("%s: aborting verified path for session %s", identity, session.id)
            return

        await self._send_to(identity, VerificationProgress(data="unban"))
        self.registry.clear_session(identity)

        entry = self.registry.lookup(identity)
        if entry is not None:
            await self._close(identity, entry.socket)

    async def _deny(self, identity: str, reason: str) -> None:
        """DENIED path: permanent deny note, then the failure notice."""
        try:
            user = await self._lookup_user(identity)
            await self.platform.update_user_note(
                user.id, notes.apply_permanent_deny(user.moderation_note)
            )
        except PlatformError:
            logger.exception("%s: aborting denied path (%s)", identity, reason)
            await self._send_to(identity, failed(GENERIC_FAILURE_REASON))
            return

        logger.info("%s: verification denied (%s)", identity, reason)
        await self._send_to(identity, failed(reason))
        self.registry.clear_session(identity)

    # -- helpers -------------------------------------------------------------

    async def _refetch_pending(self, identity: str) -> VerificationSession | None:
        """
        Fetch the canonical state of the identity's pending session.

        Returns:
            The fresh session, or None when nothing is pending
        """
        entry = self.registry.lookup(identity)
        if entry is None or entry.session is None:
            logger.debug("%s: no pending verification session", identity)
            return None

        session = await self.provider.retrieve_session(entry.session.session_id)
        self.registry.set_session(identity, VerificationSessionRef.from_session(session))
        return session

    def _is_awaited(self, identity: str, session_id: str) -> bool:
        """
        True unless a live connection is waiting on some other session.

        With no live connection the webhook is the only signal left, so
        it is acted on. A live connection whose ref was cleared or points
        elsewhere has already reached an outcome for this session.
        """
        entry = self.registry.lookup(identity)
        if entry is None:
            return True
        return entry.session is not None and entry.session.session_id == session_id

    async def _lookup_user(self, identity: str) -> PlatformUser:
        """
        Fetch the platform record behind an identity.

        Raises:
            UserNotFoundError: If the record cannot be fetched
        """
        user_id = identity.removeprefix(self.identity_prefix) if self.identity_prefix else identity
        return await self.platform.get_user(user_id)

    async def _send(self, socket: ClientSocket | None, message: BaseModel) -> None:
        if socket is None or socket.closed:
            return
        await socket.send_text(encode(message))

    async def _send_to(self, identity: str, message: BaseModel) -> None:
        entry = self.registry.lookup(identity)
        await self._send(entry.socket if entry else None, message)

    async def _close(self, identity: str, socket: ClientSocket) -> None:
        await socket.close()
        self.registry.remove(identity, socket)
