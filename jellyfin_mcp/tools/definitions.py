"""
Tool catalog.

Static list of the tools this server offers, with their input contracts as
JSON Schema. ``tools/list`` returns exactly this list, and the ToolRunner
refuses to start unless every entry has a handler.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

# Tool names
TOOL_BROWSE = "jellyfin_browse"
TOOL_RECOMMENDATIONS = "jellyfin_get_recommendations"
TOOL_NEXT_UP = "jellyfin_get_next_up"
TOOL_PLAY_BY_NAME = "jellyfin_play_by_name"
TOOL_PLAYBACK_CONTROL = "jellyfin_playback_control"

# Result list limits
DEFAULT_LIMIT = 20
MAX_LIMIT = 20

ITEM_TYPES = ("Series", "Movie", "Episode", "Audio")

# Action name -> Jellyfin playstate command
PLAYBACK_ACTIONS: dict[str, str] = {
    "pause": "Pause",
    "resume": "Unpause",
    "stop": "Stop",
    "toggle": "PlayPause",
    "next": "NextTrack",
    "previous": "PreviousTrack",
}

PLAY_COMMANDS = ("PlayNow", "PlayNext", "PlayLast")

_SESSION_PROPERTIES: dict[str, Any] = {
    "sessionId": {
        "type": "string",
        "description": "Explicit Jellyfin session id. Skips automatic session selection.",
    },
    "deviceHint": {
        "type": "string",
        "description": "Part of the device name or id to prefer, e.g. 'living room'.",
    },
}


@dataclass(frozen=True)
class ToolDefinition:
    """One entry of the tool catalog."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }


TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=TOOL_BROWSE,
        description="Search or browse the Jellyfin library. Returns compact items without ids.",
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "Search text. Omit to browse."},
                "types": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(ITEM_TYPES)},
                },
                "limit": {"type": "integer", "minimum": 1, "maximum": MAX_LIMIT},
                "userId": {"type": "string"},
            },
            "additionalProperties": False,
        },
    ),
    ToolDefinition(
        name=TOOL_RECOMMENDATIONS,
        description="Get personalized suggestions for the user.",
        input_schema={
            "type": "object",
            "properties": {
                "mediaType": {"type": "string", "description": "e.g. Video or Audio."},
                "limit": {"type": "integer", "minimum": 1, "maximum": MAX_LIMIT},
                "userId": {"type": "string"},
            },
            "additionalProperties": False,
        },
    ),
    ToolDefinition(
        name=TOOL_NEXT_UP,
        description="Get the next episodes to watch in series the user is following.",
        input_schema={
            "type": "object",
            "properties": {
                "limit": {"type": "integer", "minimum": 1, "maximum": MAX_LIMIT},
                "userId": {"type": "string"},
            },
            "additionalProperties": False,
        },
    ),
    ToolDefinition(
        name=TOOL_PLAY_BY_NAME,
        description="Find a title by name and start playing it on a Jellyfin session.",
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "minLength": 1},
                "types": {
                    "type": "array",
                    "items": {"type": "string", "enum": list(ITEM_TYPES)},
                },
                "playCommand": {"type": "string", "enum": list(PLAY_COMMANDS)},
                "userId": {"type": "string"},
                **_SESSION_PROPERTIES,
            },
            "required": ["query"],
            "additionalProperties": False,
        },
    ),
    ToolDefinition(
        name=TOOL_PLAYBACK_CONTROL,
        description="Pause, resume, stop or skip on the Jellyfin session that is currently playing.",
        input_schema={
            "type": "object",
            "properties": {
                "action": {"type": "string", "enum": list(PLAYBACK_ACTIONS)},
                **_SESSION_PROPERTIES,
            },
            "required": ["action"],
            "additionalProperties": False,
        },
    ),
)
