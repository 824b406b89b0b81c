"""
Jellyfin API client package.
"""

from jellyfin_mcp.client.jellyfin import API_PATHS, JellyfinClient, encode_query

__all__ = ["API_PATHS", "JellyfinClient", "encode_query"]
