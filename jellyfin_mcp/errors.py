"""
Structured errors raised by tool invocations.

Every failure a tool can report to the orchestrator is one of the classes
below. Each class carries a fixed machine-readable ``code`` and a fixed set of
extra fields, which ``to_payload()`` renders into the JSON body returned
inside an ``isError`` tool result.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any


class ToolError(Exception):
    """Base class for failures reported back to the orchestrator."""

    code = "TOOL_ERROR"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_payload(self) -> dict[str, Any]:
        """Render the error as the JSON payload of a failed tool call."""
        return {"error": self.message, "code": self.code}


class InvalidArgumentsError(ToolError):
    """Tool arguments failed validation."""

    code = "INVALID_ARGUMENTS"


class UnknownToolError(ToolError):
    """No tool is registered under the requested name."""

    code = "UNKNOWN_TOOL"

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class NoMatchError(ToolError):
    """A catalog search found nothing worth playing."""

    code = "NO_MATCH"

    def __init__(self, query: str) -> None:
        super().__init__("No matching media items found.")
        self.query = query

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["query"] = self.query
        return payload


class SessionNotFoundError(ToolError):
    """The server reported no sessions at all."""

    code = "SESSION_NOT_FOUND"

    def __init__(self) -> None:
        super().__init__("No active Jellyfin sessions found.")


class SessionSelectionError(ToolError):
    """Sessions exist, but the best-ranked one cannot be addressed."""

    code = "SESSION_SELECTION_FAILED"

    def __init__(self) -> None:
        super().__init__("Failed to select a Jellyfin session.")


class NoActivePlayerError(ToolError):
    """The selected session is not playing anything."""

    code = "NO_ACTIVE_PLAYER"

    def __init__(self, session_id: str) -> None:
        super().__init__("No active Jellyfin player session found.")
        self.session_id = session_id


@dataclass(frozen=True)
class SessionChoice:
    """One ranked alternative offered when session selection is ambiguous."""

    session_id: str
    device_name: str | None
    client: str | None
    now_playing: str | None
    score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessionId": self.session_id,
            "deviceName": self.device_name,
            "client": self.client,
            "nowPlaying": self.now_playing,
            "score": self.score,
        }


class AmbiguousSessionError(ToolError):
    """
    Several sessions scored too close to pick one.

    Only raised under the "ask" strategy. ``choices`` is ordered best first so
    the caller can re-issue the call with an explicit ``sessionId``.
    """

    code = "SESSION_AMBIGUOUS"

    def __init__(self, choices: list[SessionChoice]) -> None:
        super().__init__("Multiple likely sessions; explicit sessionId required.")
        self.choices = choices

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["choices"] = [choice.to_dict() for choice in self.choices]
        return payload


class JellyfinApiError(ToolError):
    """The Jellyfin server answered with a non-success status."""

    code = "JELLYFIN_API_ERROR"

    def __init__(self, message: str, status: int, payload: Any = None) -> None:
        super().__init__(message)
        self.status = status
        self.payload = payload

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["status"] = self.status
        return payload


__all__ = [
    "AmbiguousSessionError",
    "InvalidArgumentsError",
    "JellyfinApiError",
    "NoActivePlayerError",
    "NoMatchError",
    "SessionChoice",
    "SessionNotFoundError",
    "SessionSelectionError",
    "ToolError",
    "UnknownToolError",
]
