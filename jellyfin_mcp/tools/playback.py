"""
Playback Tool Handlers.

Handles tools that act on a Jellyfin session:
- jellyfin_play_by_name: search for a title and start it
- jellyfin_playback_control: pause/resume/stop/skip the current player

Both resolve their target session through the SessionResolver; an explicit
``sessionId`` argument bypasses ranking.
"""

from __future__ import annotations

import logging
from typing import Any

from jellyfin_mcp.errors import InvalidArgumentsError, NoMatchError
from jellyfin_mcp.tools.common import (
    CONTEXT_FIELDS,
    compact_item,
    normalize_item_types,
    optional_str,
    response_items,
)
from jellyfin_mcp.tools.context import ToolContext
from jellyfin_mcp.tools.definitions import PLAY_COMMANDS, PLAYBACK_ACTIONS
from jellyfin_mcp.tools.matching import build_search_terms, choose_best_match, rank_matches

logger = logging.getLogger(__name__)

# Items requested per search term
SEARCH_LIMIT = 10

# Items listed when no search term found anything
FALLBACK_SCAN_LIMIT = 200

MAX_ALTERNATIVES = 4


async def _search_candidates(
    ctx: ToolContext,
    user_id: str,
    query: str,
    include_types: list[str],
) -> list[dict[str, Any]]:
    """
    Collect items matching any of the derived search terms.

    Results are merged by item id. If the server finds nothing for any term,
    a plain listing is scanned locally for the best match instead.
    """
    merged: dict[str, dict[str, Any]] = {}
    for term in build_search_terms(query):
        response = await ctx.client.list_items(
            {
                "UserId": user_id,
                "Recursive": True,
                "SearchTerm": term,
                "IncludeItemTypes": include_types,
                "Limit": SEARCH_LIMIT,
                "SortBy": "SortName",
                "SortOrder": "Ascending",
                "Fields": CONTEXT_FIELDS,
            }
        )
        for item in response_items(response):
            if item.get("Id"):
                merged[item["Id"]] = item

    if merged:
        return list(merged.values())

    logger.debug("No search hits for %r, scanning library listing", query)
    fallback = await ctx.client.list_items(
        {
            "UserId": user_id,
            "Recursive": True,
            "IncludeItemTypes": include_types,
            "Limit": FALLBACK_SCAN_LIMIT,
            "SortBy": "SortName",
            "SortOrder": "Ascending",
            "Fields": CONTEXT_FIELDS,
        }
    )
    best = choose_best_match(response_items(fallback), query)
    return [best] if best is not None else []


async def _first_episode(ctx: ToolContext, user_id: str, series: dict[str, Any]) -> dict[str, Any] | None:
    response = await ctx.client.list_items(
        {
            "UserId": user_id,
            "Recursive": True,
            "ParentId": series["Id"],
            "IncludeItemTypes": ["Episode"],
            "Limit": 1,
            "SortBy": "ParentIndexNumber,IndexNumber,SortName",
            "SortOrder": "Ascending",
            "Fields": CONTEXT_FIELDS,
        }
    )
    episodes = response_items(response)
    return episodes[0] if episodes else None


async def tool_play_by_name(
    ctx: ToolContext,
    args: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'jellyfin_play_by_name'.

    Behavior:
    - Search with several variants of the query and pick the best name match.
    - A matched series starts at its first episode.
    - Resolve the target session, then send the play command.
    """
    query = optional_str(args, "query")
    if not query:
        raise InvalidArgumentsError("query is required.")

    play_command = optional_str(args, "playCommand") or "PlayNow"
    if play_command not in PLAY_COMMANDS:
        raise InvalidArgumentsError(f"playCommand must be one of: {', '.join(PLAY_COMMANDS)}.")

    user_id = await ctx.client.resolve_user_id(optional_str(args, "userId") or ctx.default_user_id)
    include_types = normalize_item_types(args.get("types"))

    candidates = await _search_candidates(ctx, user_id, query, include_types)
    ranked = rank_matches(candidates, query)
    if not ranked:
        raise NoMatchError(query)

    selected = ranked[0][0]
    if selected.get("Type") == "Series":
        episode = await _first_episode(ctx, user_id, selected)
        if episode is not None:
            selected = episode

    selection = await ctx.resolver.resolve(
        session_id=optional_str(args, "sessionId"),
        device_hint=optional_str(args, "deviceHint"),
    )
    await ctx.client.send_play(selection.session_id, [selected["Id"]], play_command=play_command)

    logger.info(
        "Playing %r (%s) on session %s via %s",
        selected.get("Name"),
        selected.get("Type"),
        selection.session_id,
        selection.method,
    )

    return {
        "ok": True,
        "query": query,
        "selectedTitle": selected.get("Name"),
        "selectedType": selected.get("Type"),
        "selected": compact_item(selected),
        "sessionName": selection.label,
        "resolution": selection.method,
        "alternatives": [compact_item(item) for item, _score in ranked[1 : 1 + MAX_ALTERNATIVES]],
    }


async def tool_playback_control(
    ctx: ToolContext,
    args: dict[str, Any],
) -> dict[str, Any]:
    """
    Handle 'jellyfin_playback_control'.

    Only a session with something loaded can be controlled, so automatic
    selection requires an active player.
    """
    action = optional_str(args, "action")
    action = action.lower() if action else None
    command = PLAYBACK_ACTIONS.get(action) if action else None
    if command is None:
        raise InvalidArgumentsError(f"action must be one of: {', '.join(PLAYBACK_ACTIONS)}.")

    selection = await ctx.resolver.resolve(
        session_id=optional_str(args, "sessionId"),
        device_hint=optional_str(args, "deviceHint"),
        require_active_player=True,
    )
    await ctx.client.send_playstate(selection.session_id, command)

    logger.info("Sent %s to session %s via %s", command, selection.session_id, selection.method)

    return {
        "ok": True,
        "action": action,
        "command": command,
        "sessionName": selection.label,
        "resolution": selection.method,
    }
