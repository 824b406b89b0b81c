"""
Jellyfin MCP Server - Entry Point

Run with: python -m jellyfin_mcp

Standard output carries protocol frames only; all logging goes to stderr.
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

from jellyfin_mcp import __version__
from jellyfin_mcp.config import ConfigError, ServerConfig, load_config
from jellyfin_mcp.server import JellyfinMcpServer


def setup_logging(verbose: bool = False) -> None:
    """Configure logging for the application."""
    level = logging.DEBUG if verbose else logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
        stream=sys.stderr,
    )

    # Reduce noise from third-party libraries
    logging.getLogger("asyncio").setLevel(logging.WARNING)
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("httpcore").setLevel(logging.WARNING)


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(
        prog="jellyfin-mcp",
        description="Jellyfin MCP Server - control Jellyfin playback over stdio",
    )

    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable verbose (debug) logging",
    )

    parser.add_argument(
        "-c",
        "--config",
        type=Path,
        default=None,
        help="TOML config file (default: $JELLYFIN_MCP_CONFIG, if set)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser.parse_args(argv)


async def run_server(config: ServerConfig) -> None:
    """Start and run the MCP server."""
    server = JellyfinMcpServer(config)
    await server.run()


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the application."""
    args = parse_args(argv)
    setup_logging(verbose=args.verbose)

    logger = logging.getLogger(__name__)

    try:
        config = load_config(config_path=args.config)
    except ConfigError as e:
        logger.error("%s", e)
        return 1

    logger.debug("Loaded %r", config)

    try:
        asyncio.run(run_server(config))
    except KeyboardInterrupt:
        logger.info("Shutdown requested by user")
    except Exception as e:
        logger.exception("Fatal error: %s", e)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
