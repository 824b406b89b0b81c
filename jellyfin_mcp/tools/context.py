"""
Context object passed to all tool handlers.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from jellyfin_mcp.client import JellyfinClient
    from jellyfin_mcp.sessions import SessionResolver


@dataclass
class ToolContext:
    """
    Dependencies shared by every tool handler.

    Handlers are stateless functions that receive everything through this
    context, which is built once at startup and only read afterwards.
    """

    client: JellyfinClient
    """Jellyfin API client."""

    resolver: SessionResolver
    """Picks the session playback commands go to."""

    default_user_id: str | None = None
    """User for library queries when the call does not name one."""
