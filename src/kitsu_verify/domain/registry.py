"""
Connection registry - One live connection per identity.

The registry is the only shared mutable state in the gateway. It maps
an identity to its live client socket and the verification session the
identity is waiting on, and hands out one asyncio lock per identity so
that Pending-state handling never interleaves across awaited calls.

Re-registration policy: replace. A newer connection for an identity
closes and evicts the older one but inherits its pending session, so a
page reload in the middle of verification keeps tracking the same
provider session.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from dataclasses import dataclass

from .exceptions import ReservedIdentityError
from .messages import Connected, encode
from .ports import ClientSocket, VerificationSessionRef

logger = logging.getLogger(__name__)

RESERVED_IDENTITIES = frozenset({"GUESTID", "NAH"})


@dataclass
class ConnectionEntry:
    identity: str
    socket: ClientSocket
    session: VerificationSessionRef | None = None


class ConnectionRegistry:
    """In-process registry of live connections, keyed by identity."""

    def __init__(self, reserved: Iterable[str] = RESERVED_IDENTITIES) -> None:
        self._reserved = frozenset(reserved)
        self._entries: dict[str, ConnectionEntry] = {}
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, identity: object) -> bool:
        return identity in self._entries

    def is_reserved(self, identity: str | None) -> bool:
        return not identity or identity in self._reserved

    async def register(self, identity: str, socket: ClientSocket) -> ConnectionEntry:
        """
        Store a new live connection and acknowledge it.

        Args:
            identity: Identity taken from the upgrade request
            socket: The accepted client socket

        Returns:
            The new entry

        Raises:
            ReservedIdentityError: If the identity is a reserved sentinel
        """
        if self.is_reserved(identity):
            raise ReservedIdentityError(identity)

        previous = self._entries.get(identity)
        entry = ConnectionEntry(
            identity=identity,
            socket=socket,
            session=previous.session if previous else None,
        )
        self._entries[identity] = entry

        if previous is not None and previous.socket is not socket:
            logger.info("%s: replacing existing connection", identity)
            await previous.socket.close()

        logger.debug("%s: connection open", identity)
        await socket.send_text(encode(Connected()))
        return entry

    def lookup(self, identity: str) -> ConnectionEntry | None:
        return self._entries.get(identity)

    def set_session(self, identity: str, ref: VerificationSessionRef) -> VerificationSessionRef | None:
        """
        Attach a pending session to an identity.

        Returns:
            The reference that was replaced, if any
        """
        entry = self._entries.get(identity)
        if entry is None:
            return None
        previous = entry.session
        entry.session = ref
        return previous

    def clear_session(self, identity: str) -> None:
        entry = self._entries.get(identity)
        if entry is not None:
            entry.session = None

    def remove(self, identity: str, socket: ClientSocket | None = None) -> bool:
        """
        Drop an identity's entry.

        When ``socket`` is given the entry is only removed if it still
        belongs to that socket, so a replaced connection closing late
        cannot evict its successor.

        Returns:
            True if an entry was removed
        """
        entry = self._entries.get(identity)
        if entry is None or (socket is not None and entry.socket is not socket):
            return False
        del self._entries[identity]
        logger.debug("%s: connection removed", identity)
        return True

    @asynccontextmanager
    async def lock(self, identity: str) -> AsyncIterator[None]:
        """Serialize state transitions for one identity."""
        lock = self._locks.setdefault(identity, asyncio.Lock())
        self._lock_users[identity] = self._lock_users.get(identity, 0) + 1
        try:
            async with lock:
                yield
        finally:
            # Drop the lock once nobody holds or waits on it.
            self._lock_users[identity] -= 1
            if not self._lock_users[identity]:
                del self._lock_users[identity]
                del self._locks[identity]
