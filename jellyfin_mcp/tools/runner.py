"""
Tool runner.

Dispatches ``tools/call`` requests to the handler functions in the tool
modules. The handler table and the catalog in ``definitions`` must name the
same tools; this is checked when the runner is created.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine, Iterable, Mapping
from typing import Any

from jellyfin_mcp.errors import UnknownToolError
from jellyfin_mcp.tools.context import ToolContext
from jellyfin_mcp.tools.definitions import (
    TOOL_BROWSE,
    TOOL_DEFINITIONS,
    TOOL_NEXT_UP,
    TOOL_PLAY_BY_NAME,
    TOOL_PLAYBACK_CONTROL,
    TOOL_RECOMMENDATIONS,
    ToolDefinition,
)
from jellyfin_mcp.tools.library import tool_browse, tool_next_up, tool_recommendations
from jellyfin_mcp.tools.playback import tool_play_by_name, tool_playback_control

logger = logging.getLogger(__name__)

# Type alias for tool handlers
ToolHandler = Callable[[ToolContext, dict[str, Any]], Coroutine[Any, Any, dict[str, Any]]]

# Tool dispatch table
TOOL_HANDLERS: dict[str, ToolHandler] = {
    # Library
    TOOL_BROWSE: tool_browse,
    TOOL_RECOMMENDATIONS: tool_recommendations,
    TOOL_NEXT_UP: tool_next_up,
    # Playback
    TOOL_PLAY_BY_NAME: tool_play_by_name,
    TOOL_PLAYBACK_CONTROL: tool_playback_control,
}


class ToolRunner:
    """
    Invokes tools by name.

    Attributes:
        context: Dependencies passed to every handler.
        definitions: The tool catalog, in the order ``tools/list`` reports it.
    """

    def __init__(
        self,
        context: ToolContext,
        handlers: Mapping[str, ToolHandler] | None = None,
        definitions: Iterable[ToolDefinition] | None = None,
    ) -> None:
        self.context = context
        self.definitions: tuple[ToolDefinition, ...] = tuple(
            definitions if definitions is not None else TOOL_DEFINITIONS
        )
        self._handlers: dict[str, ToolHandler] = dict(handlers if handlers is not None else TOOL_HANDLERS)

        declared = {definition.name for definition in self.definitions}
        registered = set(self._handlers)
        if declared != registered:
            missing = sorted(declared - registered)
            undeclared = sorted(registered - declared)
            raise ValueError(f"Tool table mismatch: no handler for {missing}, not declared: {undeclared}")

    def list_definitions(self) -> list[dict[str, Any]]:
        """The catalog as returned by ``tools/list``."""
        return [definition.to_dict() for definition in self.definitions]

    async def invoke(self, name: str, arguments: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        Run one tool.

        Args:
            name: Tool name.
            arguments: Tool arguments; anything that is not a dict counts as empty.

        Returns:
            The tool's result payload.

        Raises:
            UnknownToolError: If no tool has this name.
            ToolError: Any structured failure raised by the tool.
        """
        handler = self._handlers.get(name)
        if handler is None:
            raise UnknownToolError(name)

        safe_args = arguments if isinstance(arguments, dict) else {}
        logger.debug("Invoking %s with %s", name, safe_args)
        return await handler(self.context, safe_args)
