"""
Library Tool Handlers.

Handles read-only catalog tools:
- jellyfin_browse: search or browse items
- jellyfin_get_recommendations: personalized suggestions
- jellyfin_get_next_up: next episodes of followed series
"""

from __future__ import annotations

import logging
from typing import Any

from jellyfin_mcp.tools.common import (
    CONTEXT_FIELDS,
    build_list_result,
    clamp_int,
    normalize_item_types,
    optional_str,
    response_items,
)
from jellyfin_mcp.tools.context import ToolContext
from jellyfin_mcp.tools.definitions import DEFAULT_LIMIT, MAX_LIMIT

logger = logging.getLogger(__name__)


async def _user_id(ctx: ToolContext, args: dict[str, Any]) -> str:
    return await ctx.client.resolve_user_id(optional_str(args, "userId") or ctx.default_user_id)


async def tool_browse(
    ctx: ToolContext,
    args: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'jellyfin_browse'.

    With a query this is a library search, without one it lists items in
    name order. Results are limited to MAX_LIMIT entries.
    """
    user_id = await _user_id(ctx, args)
    limit = clamp_int(args.get("limit"), DEFAULT_LIMIT, 1, MAX_LIMIT)
    query = optional_str(args, "query")

    response = await ctx.client.list_items(
        {
            "UserId": user_id,
            "Recursive": True,
            "SearchTerm": query,
            "IncludeItemTypes": normalize_item_types(args.get("types")),
            "Limit": limit,
            "SortBy": "SortName",
            "SortOrder": "Ascending",
            "Fields": CONTEXT_FIELDS,
        }
    )

    items = response_items(response)
    logger.debug("Browse %r returned %d items", query, len(items))
    return build_list_result(items)


async def tool_recommendations(
    ctx: ToolContext,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Handle 'jellyfin_get_recommendations'."""
    user_id = await _user_id(ctx, args)
    limit = clamp_int(args.get("limit"), DEFAULT_LIMIT, 1, MAX_LIMIT)

    response = await ctx.client.get_suggestions(
        {
            "UserId": user_id,
            "MediaType": optional_str(args, "mediaType"),
            "Limit": limit,
        }
    )
    return build_list_result(response_items(response))


async def tool_next_up(
    ctx: ToolContext,
    args: dict[str, Any],
) -> dict[str, Any]:
    """Handle 'jellyfin_get_next_up'."""
    user_id = await _user_id(ctx, args)
    limit = clamp_int(args.get("limit"), DEFAULT_LIMIT, 1, MAX_LIMIT)

    response = await ctx.client.get_next_up(
        {
            "UserId": user_id,
            "Limit": limit,
            "Fields": CONTEXT_FIELDS,
        }
    )
    return build_list_result(response_items(response))
