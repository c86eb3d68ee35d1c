"""
WebSocket adapter - Implements ClientSocket protocol over FastAPI.

Wraps a Starlette/FastAPI WebSocket so the domain can reply and close
without caring whether the peer is still there. Writes after either
side closed are dropped.
"""

import logging

from fastapi import WebSocket, WebSocketDisconnect
from starlette.websockets import WebSocketState

logger = logging.getLogger(__name__)


class FastAPIClientSocket:
    """
    Implements ClientSocket protocol via a FastAPI WebSocket.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(self, websocket: WebSocket) -> None:
        self._websocket = websocket
        self._closed = False

    @property
    def closed(self) -> bool:
        return (
            self._closed
            or self._websocket.client_state == WebSocketState.DISCONNECTED
            or self._websocket.application_state == WebSocketState.DISCONNECTED
        )

    async def receive_frame(self) -> str | bytes:
        """
        Wait for the next text or binary frame.

        Raises:
            WebSocketDisconnect: When the peer goes away
        """
        message = await self._websocket.receive()
        if message["type"] == "websocket.disconnect":
            self._closed = True
            raise WebSocketDisconnect(message.get("code", 1000))
        if message.get("text") is not None:
            return message["text"]
        return message.get("bytes") or b""

    async def send_text(self, text: str) -> None:
        if self.closed:
            return
        try:
            await self._websocket.send_text(text)
        except (WebSocketDisconnect, RuntimeError, OSError):
            # Peer vanished between the state check and the write.
            self._closed = True
            logger.debug("Dropped frame for a closed socket")

    async def close(self, code: int = 1000) -> None:
        if self.closed:
            self._closed = True
            return
        self._closed = True
        try:
            await self._websocket.close(code=code)
        except RuntimeError:
            logger.debug("Socket already closed")
