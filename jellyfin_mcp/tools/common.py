"""
Tool Helper Functions.

This module provides utilities shared by the tool handlers:
- Argument parsing (limits, strings, item type lists)
- Item shaping (Jellyfin item objects to compact result entries)
"""

from __future__ import annotations

import logging
from typing import Any

from jellyfin_mcp.errors import InvalidArgumentsError
from jellyfin_mcp.tools.definitions import ITEM_TYPES

logger = logging.getLogger(__name__)

# Extra item fields requested so results carry series/season context
CONTEXT_FIELDS: tuple[str, ...] = (
    "SeriesName",
    "SeriesId",
    "SeasonName",
    "SeasonId",
    "ParentIndexNumber",
    "IndexNumber",
    "RunTimeTicks",
    "CommunityRating",
    "ProductionYear",
)

# Jellyfin durations are in 100ns ticks
TICKS_PER_MINUTE = 600_000_000


# =============================================================================
# Argument Parsing
# =============================================================================


def clamp_int(value: Any, fallback: int, minimum: int, maximum: int) -> int:
    """
    Parse an integer argument and clamp it into [minimum, maximum].

    Args:
        value: Raw argument (int, numeric string, or anything else)
        fallback: Returned when the value is missing or not numeric
        minimum: Lower bound
        maximum: Upper bound

    Returns:
        The clamped integer
    """
    if isinstance(value, bool):
        return fallback
    try:
        number = int(value)
    except (ValueError, TypeError):
        return fallback
    return min(maximum, max(minimum, number))


def optional_str(args: dict[str, Any], key: str) -> str | None:
    """
    Get an optional string argument.

    Returns None for missing or blank values.

    Raises:
        InvalidArgumentsError: If the value is present but not a string.
    """
    value = args.get(key)
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidArgumentsError(f"{key} must be a string.")
    value = value.strip()
    return value or None


def normalize_item_types(value: Any) -> list[str]:
    """
    Clean up an item type filter.

    Falls back to all supported types when the value is missing, not a list,
    or contains no usable entries.
    """
    if not isinstance(value, list):
        return list(ITEM_TYPES)
    clean = [entry for entry in value if isinstance(entry, str) and entry]
    return clean or list(ITEM_TYPES)


# =============================================================================
# Item Shaping
# =============================================================================


def response_items(response: Any) -> list[dict[str, Any]]:
    """Extract the ``Items`` list from a Jellyfin query result."""
    if isinstance(response, dict):
        items = response.get("Items")
        if isinstance(items, list):
            return [item for item in items if isinstance(item, dict)]
    return []


def compact_item(item: dict[str, Any]) -> dict[str, Any]:
    """
    Reduce a Jellyfin item to the fields worth showing to the orchestrator.

    Ids are left out on purpose; fields without a value are omitted.
    """
    rating = item.get("CommunityRating")
    ticks = item.get("RunTimeTicks")

    fields: dict[str, Any] = {
        "title": item.get("Name"),
        "type": item.get("Type"),
        "year": item.get("ProductionYear"),
        "rating": round(float(rating), 1) if isinstance(rating, (int, float)) else None,
        "seriesName": item.get("SeriesName"),
        "seasonNumber": item.get("ParentIndexNumber"),
        "episodeNumber": item.get("IndexNumber"),
        "runtimeMinutes": round(ticks / TICKS_PER_MINUTE) if isinstance(ticks, int) and ticks > 0 else None,
    }
    return {key: value for key, value in fields.items() if value is not None and value != ""}


def build_list_result(items: list[dict[str, Any]]) -> dict[str, Any]:
    """Standard result for list-style tools."""
    compact = [compact_item(item) for item in items]
    return {
        "count": len(compact),
        "items": compact,
    }
