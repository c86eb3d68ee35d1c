"""
Misskey moderation adapter - Implements ModerationPlatform protocol.

This module talks to a Misskey-compatible instance over its HTTP API
using httpx. Every endpoint is a POST with a JSON body; the moderator
credential travels in the body as ``i``.
"""

import logging
from typing import Any

import httpx

from kitsu_verify.domain.exceptions import PlatformError, UserNotFoundError
from kitsu_verify.domain.ports import PlatformUser

logger = logging.getLogger(__name__)


class MisskeyModerationClient:
    """
    Implements ModerationPlatform protocol via the Misskey HTTP API.

    Uses structural subtyping - no explicit inheritance from Protocol.
    """

    def __init__(
        self,
        base_url: str,
        token: str,
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        """
        Initialize the client.

        Args:
            base_url: Instance origin, e.g. https://misskey.example
            token: Moderator API token
            timeout: Per-request timeout in seconds
            transport: Optional httpx transport (tests inject a mock)
        """
        self._token = token
        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/") + "/api/",
            timeout=timeout,
            transport=transport,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, endpoint: str, params: dict[str, Any]) -> Any:
        try:
            response = await self._client.post(endpoint, json={**params, "i": self._token})
        except httpx.HTTPError as e:
            raise PlatformError(f"{endpoint}: {type(e).__name__}") from e

        if response.status_code >= 400:
            raise PlatformError(f"{endpoint}: HTTP {response.status_code} {_error_code(response)}")

        # Mutating endpoints answer 204 No Content.
        if response.status_code == 204 or not response.content:
            return None
        return response.json()

    async def whoami(self) -> str:
        me = await self._request("i", {})
        return me["username"]

    async def get_user(self, user_id: str) -> PlatformUser:
        """
        Fetch a user with its moderation note.

        The note is only visible to moderator credentials.

        Raises:
            UserNotFoundError: If the user does not exist or the call fails
        """
        try:
            data = await self._request("users/show", {"userId": user_id})
        except PlatformError as e:
            raise UserNotFoundError(user_id) from e
        if not data:
            raise UserNotFoundError(user_id)
        return PlatformUser(
            id=data["id"],
            username=data["username"],
            moderation_note=data.get("moderationNote"),
        )

    async def update_user_note(self, user_id: str, text: str) -> None:
        await self._request("admin/update-user-note", {"userId": user_id, "text": text})
        logger.debug("Moderation note updated for %s", user_id)

    async def unsuspend_user(self, user_id: str) -> None:
        await self._request("admin/unsuspend-user", {"userId": user_id})
        logger.debug("User %s unsuspended", user_id)


def _error_code(response: httpx.Response) -> str:
    try:
        return response.json()["error"]["code"]
    except (ValueError, KeyError, TypeError):
        return ""
