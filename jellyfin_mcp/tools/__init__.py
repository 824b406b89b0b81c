"""
Tool handlers package.

This package contains the tool catalog and the handler modules behind
``tools/call``.

Modules:
- definitions: tool names, limits and input schemas
- library: jellyfin_browse, jellyfin_get_recommendations, jellyfin_get_next_up
- playback: jellyfin_play_by_name, jellyfin_playback_control
- matching: title normalization and match scoring
- runner: ToolRunner and the handler table
"""

from jellyfin_mcp.tools.context import ToolContext
from jellyfin_mcp.tools.definitions import TOOL_DEFINITIONS, ToolDefinition
from jellyfin_mcp.tools.runner import TOOL_HANDLERS, ToolRunner

__all__ = ["TOOL_DEFINITIONS", "TOOL_HANDLERS", "ToolContext", "ToolDefinition", "ToolRunner"]
