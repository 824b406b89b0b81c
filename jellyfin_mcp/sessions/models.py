"""
Session candidate representation.

A SessionCandidate is a snapshot of one Jellyfin session as reported by
``GET /Sessions``, reduced to the fields that session selection looks at.
Candidates are built fresh for every selection and never cached.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

logger = logging.getLogger(__name__)


def parse_timestamp(value: Any) -> datetime | None:
    """
    Parse a Jellyfin timestamp into an aware UTC datetime.

    Jellyfin sends ISO 8601 strings such as "2026-02-17T17:58:30.1234567Z".
    Naive values are taken as UTC. Anything unparseable yields None.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value:
        try:
            parsed = datetime.fromisoformat(value)
        except ValueError:
            logger.debug("Unparseable timestamp: %r", value)
            return None
    else:
        return None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class SessionCandidate:
    """
    A remote-controllable endpoint considered for a control action.

    Attributes:
        id: Session id used to address commands (None if the server omitted it).
        device_name: Human-readable device label.
        device_id: Device identifier reported by the client app.
        client: Client application name (e.g. "Jellyfin Web").
        user_name: User signed in on the session.
        supports_remote_control: Remote-control flag as reported; None when absent.
        has_now_playing: Whether the session has live content.
        now_playing: Title of the live content, if known.
        is_paused: Whether the live content is paused.
        last_activity: Last activity time (UTC), None if unknown.
    """

    id: str | None
    device_name: str | None = None
    device_id: str | None = None
    client: str | None = None
    user_name: str | None = None
    supports_remote_control: bool | None = None
    has_now_playing: bool = False
    now_playing: str | None = None
    is_paused: bool = False
    last_activity: datetime | None = None

    @property
    def is_controllable(self) -> bool:
        """Only an explicit False marks a session as not controllable."""
        return self.supports_remote_control is not False

    @property
    def is_playing(self) -> bool:
        """Has live content that is not paused."""
        return self.has_now_playing and not self.is_paused

    @classmethod
    def from_api(cls, raw: dict[str, Any]) -> SessionCandidate:
        """Build a candidate from one entry of the ``/Sessions`` response."""
        now_playing = raw.get("NowPlayingItem")
        play_state = raw.get("PlayState")
        if not isinstance(play_state, dict):
            play_state = {}

        remote = raw.get("SupportsRemoteControl")

        return cls(
            id=raw.get("Id") or None,
            device_name=raw.get("DeviceName") or None,
            device_id=raw.get("DeviceId") or None,
            client=raw.get("Client") or None,
            user_name=raw.get("UserName") or None,
            supports_remote_control=remote if isinstance(remote, bool) else None,
            has_now_playing=bool(now_playing),
            now_playing=now_playing.get("Name") if isinstance(now_playing, dict) else None,
            is_paused=bool(play_state.get("IsPaused")),
            last_activity=parse_timestamp(raw.get("LastActivityDate")),
        )

    def __repr__(self) -> str:
        return f"SessionCandidate(id={self.id!r}, device={self.device_name!r}, playing={self.now_playing!r})"
