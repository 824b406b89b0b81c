"""
Jellyfin MCP Server

A Model Context Protocol server that lets an orchestrator browse a Jellyfin
library and control playback on Jellyfin sessions over stdio.
"""

__version__ = "0.1.0"
__author__ = "Jellyfin MCP Team"

from jellyfin_mcp.server import JellyfinMcpServer

__all__ = ["JellyfinMcpServer", "__version__"]
