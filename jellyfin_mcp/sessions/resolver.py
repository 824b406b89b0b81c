"""
Session Resolver - picks the target session for playback commands.

The resolver fetches the current session list from Jellyfin on every call
and hands it to the ranking engine together with the configured strategy,
device hint and the current time. It keeps no state between calls.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from jellyfin_mcp.sessions.models import SessionCandidate
from jellyfin_mcp.sessions.ranking import SessionSelection, SessionStrategy, resolve_session

if TYPE_CHECKING:
    from jellyfin_mcp.client import JellyfinClient

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(timezone.utc)


class SessionResolver:
    """
    Resolves which Jellyfin session a command should go to.

    Attributes:
        client: Jellyfin API client used to list sessions.
        strategy: Default selection strategy.
        device_id_hint: Default device hint, overridable per call.
        clock: Returns the current time; injectable for tests.
    """

    def __init__(
        self,
        client: JellyfinClient,
        strategy: SessionStrategy | str = SessionStrategy.ACTIVE,
        device_id_hint: str | None = None,
        clock: Clock | None = None,
    ) -> None:
        self.client = client
        self.strategy = SessionStrategy.parse(strategy)
        self.device_id_hint = device_id_hint or None
        self.clock = clock or utc_now

    async def list_candidates(self) -> list[SessionCandidate]:
        """
        Fetch the sessions currently known to the server.

        Returns:
            Candidates in the order the server listed them.
        """
        sessions = await self.client.list_sessions()
        if not isinstance(sessions, list):
            logger.warning("Unexpected /Sessions payload: %s", type(sessions).__name__)
            return []

        return [SessionCandidate.from_api(raw) for raw in sessions if isinstance(raw, dict)]

    async def resolve(
        self,
        session_id: str | None = None,
        device_hint: str | None = None,
        require_active_player: bool = False,
    ) -> SessionSelection:
        """
        Resolve the target session.

        Args:
            session_id: Explicit session id; skips the lookup entirely.
            device_hint: Device hint for this call (defaults to the configured one).
            require_active_player: Fail unless the chosen session is playing something.

        Returns:
            The selection.

        Raises:
            ToolError subclasses from the ranking engine.
        """
        if session_id:
            return resolve_session([], strategy=self.strategy, now=self.clock(), explicit_id=session_id)

        candidates = await self.list_candidates()
        logger.debug("Resolving among %d sessions (strategy=%s)", len(candidates), self.strategy.value)

        return resolve_session(
            candidates,
            strategy=self.strategy,
            now=self.clock(),
            device_hint=device_hint or self.device_id_hint,
            require_active_player=require_active_player,
        )
