"""
API routes - Provider webhook and signup gate endpoints.

This module defines the HTTP endpoints:
- POST /callback - Stripe Identity webhook
- GET /api/signup - Signup gate for regions requiring ID verification
"""

import logging

from fastapi import APIRouter, Depends, Request, status
from pydantic import ValidationError

from kitsu_verify.api.dependencies import get_orchestrator, get_signup_verify_host
from kitsu_verify.api.models import SignupGateResponse, WebhookAck, WebhookEventPayload
from kitsu_verify.domain.orchestrator import VerificationOrchestrator

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post(
    "/callback",
    response_model=WebhookAck,
    summary="Verification provider webhook",
    description="Receives verification session events. The event only triggers "
    "a fresh fetch of the session; its payload is never trusted.",
)
async def provider_callback(
    request: Request,
    orchestrator: VerificationOrchestrator = Depends(get_orchestrator),
) -> WebhookAck:
    """
    Handle one provider event.

    Always answers 200 so the provider never retries. An unparseable
    body is logged and acknowledged with understood=false; a parsed one
    is dispatched and acknowledged whatever the dispatch outcome.
    """
    try:
        event = WebhookEventPayload.model_validate(await request.json())
    except (ValueError, ValidationError):
        logger.warning("webhook: unparseable event body, ignoring")
        return WebhookAck(understood=False)

    try:
        await orchestrator.handle_webhook(event.type, event.data.object.id)
    except Exception:
        logger.exception("webhook: dispatch of %s for %s failed", event.type, event.data.object.id)

    return WebhookAck(understood=True)


@router.get(
    "/api/signup",
    response_model=SignupGateResponse,
    status_code=status.HTTP_400_BAD_REQUEST,
    summary="Signup gate",
    description="Always refuses: signups from this location must go through ID verification.",
)
async def signup_gate(
    verify_host: str = Depends(get_signup_verify_host),
) -> SignupGateResponse:
    return SignupGateResponse(
        message=(
            "You're in a location that requires ID Verification. "
            f"To sign up, visit {verify_host}."
        ),
    )
