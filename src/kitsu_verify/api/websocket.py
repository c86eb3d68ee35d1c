"""
WebSocket endpoint - Browser sessions for the verification flow.

The identity travels as the ``identity`` query parameter. Reserved or
missing identities are refused before the upgrade is accepted, so they
never reach the registry.
"""

import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, WebSocketException, status

from kitsu_verify.adapters.websocket import FastAPIClientSocket
from kitsu_verify.api.dependencies import get_orchestrator
from kitsu_verify.domain.exceptions import ReservedIdentityError
from kitsu_verify.domain.orchestrator import VerificationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.websocket("/websockets")
async def verification_socket(
    websocket: WebSocket,
    identity: str | None = None,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
) -> None:
    if orchestrator.registry.is_reserved(identity):
        logger.debug("Refused upgrade for identity %r", identity)
        raise WebSocketException(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid identity")

    await websocket.accept()
    client = FastAPIClientSocket(websocket)

    try:
        await orchestrator.connect(identity, client)
    except ReservedIdentityError:
        await client.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    try:
        while not client.closed:
            frame = await client.receive_frame()
            await orchestrator.receive(identity, client, frame)
    except WebSocketDisconnect:
        logger.debug("%s: client disconnected", identity)
    finally:
        orchestrator.disconnect(identity, client)
