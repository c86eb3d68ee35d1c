"""
Stripe Identity adapter - Implements VerificationProvider protocol.

This module drives Stripe Identity verification sessions over the
Stripe REST API using httpx: form-encoded requests, bearer secret key,
API version pinned so response shapes stay stable.
"""

import logging
from typing import Any

import httpx

from kitsu_verify.domain.exceptions import ProviderError
from kitsu_verify.domain.ports import VerificationSession

logger = logging.getLogger(__name__)

STRIPE_API_BASE = "https://api.stripe.com/v1/"
STRIPE_API_VERSION = "2024-06-20"


class StripeIdentityClient:
    """
    Implements VerificationProvider protocol via the Stripe REST API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    Collected documents never pass through this process; only session
    ids, statuses and error codes do.
    """

    def __init__(
        self,
        secret_key: str,
        api_base: str = STRIPE_API_BASE,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._client = httpx.AsyncClient(
            base_url=api_base.rstrip("/") + "/",
            timeout=timeout,
            transport=transport,
            headers={
                "Authorization": f"Bearer {secret_key}",
                "Stripe-Version": STRIPE_API_VERSION,
            },
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(
        self, method: str, path: str, data: dict[str, str] | None = None
    ) -> dict[str, Any]:
        try:
            response = await self._client.request(method, path, data=data)
        except httpx.HTTPError as e:
            raise ProviderError(f"{method} {path}: {type(e).__name__}") from e

        if response.status_code >= 400:
            raise ProviderError(
                f"{method} {path}: HTTP {response.status_code} {_error_code(response)}"
            )
        return response.json()

    async def create_session(self, identity: str) -> VerificationSession:
        body = await self._request(
            "POST",
            "identity/verification_sessions",
            {"type": "document", "metadata[identity]": identity},
        )
        return _to_session(body)

    async def retrieve_session(self, session_id: str) -> VerificationSession:
        if not session_id:
            raise ProviderError("retrieve: empty session id")
        body = await self._request("GET", f"identity/verification_sessions/{session_id}")
        return _to_session(body)

    async def redact_session(self, session_id: str) -> None:
        await self._request("POST", f"identity/verification_sessions/{session_id}/redact")
        logger.debug("Session %s redacted", session_id)

    async def register_webhook(self, url: str, events: list[str]) -> None:
        data = {"url": url}
        for index, event in enumerate(events):
            data[f"enabled_events[{index}]"] = event
        body = await self._request("POST", "webhook_endpoints", data)
        logger.info("Webhook endpoint %s registered for %s", body.get("id"), url)


def _to_session(body: dict[str, Any]) -> VerificationSession:
    last_error = body.get("last_error") or {}
    metadata = body.get("metadata") or {}
    return VerificationSession(
        id=body["id"],
        status=body.get("status", ""),
        client_secret=body.get("client_secret"),
        last_error_code=last_error.get("code"),
        identity=metadata.get("identity"),
    )


def _error_code(response: httpx.Response) -> str:
    try:
        error = response.json()["error"]
    except (ValueError, KeyError, TypeError):
        return ""
    return error.get("code") or error.get("type") or ""
