"""
Jellyfin REST API client.

Thin async wrapper over httpx covering the endpoints the tools need:
user lookup, item queries, suggestions, next-up, sessions and the session
playback commands. Responses are returned as parsed JSON; non-success
statuses raise JellyfinApiError.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from typing import Any
from urllib.parse import quote

import httpx

from jellyfin_mcp.errors import JellyfinApiError

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT_MS = 15000

API_PATHS: dict[str, str] = {
    "users_me": "/Users/Me",
    "users": "/Users",
    "items": "/Items",
    "suggestions": "/Items/Suggestions",
    "next_up": "/Shows/NextUp",
    "sessions": "/Sessions",
}


def encode_query(query: Mapping[str, Any] | None) -> dict[str, str]:
    """
    Render query parameters the way Jellyfin expects them.

    None, empty strings and empty lists are dropped; lists are joined with
    commas; booleans are lower-case.
    """
    params: dict[str, str] = {}
    for key, value in (query or {}).items():
        if value is None or value == "":
            continue
        if isinstance(value, bool):
            params[key] = "true" if value else "false"
        elif isinstance(value, (list, tuple)):
            if not value:
                continue
            params[key] = ",".join(str(entry) for entry in value)
        else:
            params[key] = str(value)
    return params


def _parse_body(text: str) -> Any:
    try:
        return json.loads(text)
    except json.JSONDecodeError:
        return {"raw": text}


class JellyfinClient:
    """
    Async client for one Jellyfin server.

    Authenticates with an API key sent as ``X-Emby-Token``. The optional
    ``transport`` lets tests plug in ``httpx.MockTransport``.

    Attributes:
        base_url: Server URL without trailing slash.
        user_id: Default user for user-scoped queries, if configured.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        user_id: str | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.user_id = user_id or None
        self.timeout_ms = timeout_ms

        self._http = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "X-Emby-Token": api_key,
                "Accept": "application/json",
            },
            timeout=timeout_ms / 1000,
            transport=transport,
        )

    async def __aenter__(self) -> JellyfinClient:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._http.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        query: Mapping[str, Any] | None = None,
        body: Any = None,
    ) -> Any:
        """
        Perform one API call.

        Args:
            method: HTTP method.
            path: Path relative to the server URL.
            query: Query parameters, encoded with ``encode_query``.
            body: JSON body, if any.

        Returns:
            The parsed JSON response, or None for an empty body.

        Raises:
            JellyfinApiError: On a non-success status or a transport failure.
        """
        params = encode_query(query)
        logger.debug("%s %s %s", method, path, params)

        try:
            response = await self._http.request(
                method,
                path,
                params=params or None,
                json=body,
            )
        except httpx.TimeoutException:
            raise JellyfinApiError(
                f"Jellyfin {method} {path} timed out after {self.timeout_ms} ms", status=0
            ) from None
        except httpx.TransportError as e:
            raise JellyfinApiError(f"Jellyfin {method} {path} failed: {e}", status=0) from e

        text = response.text
        payload = _parse_body(text) if text else None

        if not response.is_success:
            if isinstance(payload, dict) and payload.get("message"):
                message = payload["message"]
            else:
                message = text or response.reason_phrase
            raise JellyfinApiError(
                f"Jellyfin {method} {path} failed: {response.status_code} {message}",
                status=response.status_code,
                payload=payload,
            )

        return payload

    # -------------------------------------------------------------------------
    # Users
    # -------------------------------------------------------------------------

    async def get_me(self) -> Any:
        return await self.request("GET", API_PATHS["users_me"])

    async def list_users(self) -> Any:
        return await self.request("GET", API_PATHS["users"])

    async def get_current_user(self) -> dict[str, Any]:
        """
        Find the user the API key acts for.

        ``/Users/Me`` answers 400 for plain API keys (no user context); in
        that case a server with exactly one user is accepted.

        Returns:
            {"user": <user object>, "source": "me" | "users_single"}
        """
        try:
            me = await self.get_me()
            return {"user": me, "source": "me"}
        except JellyfinApiError as e:
            if e.status != 400:
                raise
            logger.debug("/Users/Me rejected the API key, falling back to /Users")

        users = await self.list_users()
        if not isinstance(users, list) or not users:
            raise JellyfinApiError("Unable to resolve Jellyfin user: /Users returned no users.", status=400)
        if len(users) == 1:
            return {"user": users[0], "source": "users_single"}

        raise JellyfinApiError(
            "Unable to resolve Jellyfin user from API key alone. "
            "Set JELLYFIN_USER_ID or pass userId explicitly.",
            status=400,
        )

    async def resolve_user_id(self, explicit_user_id: str | None = None) -> str:
        """Explicit id, then the configured default, then the API key's user."""
        if explicit_user_id:
            return explicit_user_id
        if self.user_id:
            return self.user_id

        current = await self.get_current_user()
        return current["user"]["Id"]

    # -------------------------------------------------------------------------
    # Library
    # -------------------------------------------------------------------------

    async def list_items(self, query: Mapping[str, Any]) -> Any:
        return await self.request("GET", API_PATHS["items"], query=query)

    async def get_suggestions(self, query: Mapping[str, Any]) -> Any:
        return await self.request("GET", API_PATHS["suggestions"], query=query)

    async def get_next_up(self, query: Mapping[str, Any]) -> Any:
        return await self.request("GET", API_PATHS["next_up"], query=query)

    # -------------------------------------------------------------------------
    # Sessions
    # -------------------------------------------------------------------------

    async def list_sessions(self, query: Mapping[str, Any] | None = None) -> Any:
        return await self.request("GET", API_PATHS["sessions"], query=query)

    async def send_play(
        self,
        session_id: str,
        item_ids: list[str],
        play_command: str = "PlayNow",
        start_position_ticks: int | None = None,
    ) -> Any:
        """Tell a session to play the given items."""
        return await self.request(
            "POST",
            f"/Sessions/{quote(session_id, safe='')}/Playing",
            query={
                "itemIds": item_ids,
                "playCommand": play_command,
                "startPositionTicks": start_position_ticks,
            },
        )

    async def send_playstate(
        self,
        session_id: str,
        command: str,
        seek_position_ticks: int | None = None,
    ) -> Any:
        """Send a playstate command (Pause, Unpause, Stop, ...) to a session."""
        return await self.request(
            "POST",
            f"/Sessions/{quote(session_id, safe='')}/Playing/{quote(command, safe='')}",
            query={"SeekPositionTicks": seek_position_ticks},
        )
