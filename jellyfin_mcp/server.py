"""
Jellyfin MCP Server - Main Server Module

This module contains the JellyfinMcpServer class that wires the Jellyfin
client, session resolver, tool runner, dispatcher and stdio transport
together and manages the process lifecycle.
"""

import asyncio
import contextlib
import logging
import signal

from jellyfin_mcp import __version__
from jellyfin_mcp.client import JellyfinClient
from jellyfin_mcp.config import ServerConfig
from jellyfin_mcp.protocol import FrameDecoder, StdioTransport, open_stdin_reader, open_stdout_writer
from jellyfin_mcp.protocol.transport import ByteReader, ByteWriter
from jellyfin_mcp.rpc import RequestDispatcher
from jellyfin_mcp.sessions import SessionResolver
from jellyfin_mcp.tools import ToolContext, ToolRunner

logger = logging.getLogger(__name__)


class JellyfinMcpServer:
    """
    Stdio MCP server for one Jellyfin instance.

    The server manages:
    - JellyfinClient: HTTP access to the Jellyfin API
    - SessionResolver: target session selection for playback tools
    - ToolRunner: the tool catalog and handlers
    - RequestDispatcher: JSON-RPC method handling
    - StdioTransport: framed message exchange over stdin/stdout

    The server runs until stdin reaches EOF or a shutdown signal arrives.
    """

    def __init__(self, config: ServerConfig, client: JellyfinClient | None = None) -> None:
        """
        Initialize the server.

        Args:
            config: Loaded configuration.
            client: Optional pre-built client (tests pass one with a mock transport).
        """
        self.config = config

        self.client = client or JellyfinClient(
            config.base_url,
            config.api_key,
            timeout_ms=config.timeout_ms,
            user_id=config.user_id,
        )
        self.resolver = SessionResolver(
            self.client,
            strategy=config.session_strategy,
            device_id_hint=config.device_id_hint,
        )
        self.tool_runner = ToolRunner(
            ToolContext(
                client=self.client,
                resolver=self.resolver,
                default_user_id=config.user_id,
            )
        )
        self.dispatcher = RequestDispatcher(self.tool_runner, server_version=__version__)
        self.transport = StdioTransport(
            self.dispatcher,
            decoder=FrameDecoder(max_frame_bytes=config.max_frame_bytes),
        )

        # Server state
        self._running = False
        self._shutdown_event: asyncio.Event | None = None

    async def start(self) -> None:
        """Prepare for serving."""
        logger.info(
            "Starting %s %s for %s (session strategy: %s)",
            self.dispatcher.server_name,
            __version__,
            self.config.base_url,
            self.config.session_strategy.value,
        )
        self._running = True
        self._shutdown_event = asyncio.Event()

    async def stop(self) -> None:
        """Stop serving and release the HTTP client."""
        if not self._running:
            return

        logger.info("Stopping server...")
        self._running = False
        self.transport.stop()

        await self.client.aclose()

        if self._shutdown_event:
            self._shutdown_event.set()

        logger.info("Server stopped")

    async def run(self, reader: ByteReader | None = None, writer: ByteWriter | None = None) -> None:
        """
        Serve until input EOF or a shutdown signal (SIGINT or SIGTERM).

        Args:
            reader: Input stream; defaults to the process's stdin.
            writer: Output stream; defaults to the process's stdout.
        """
        await self.start()

        if reader is None:
            reader = await open_stdin_reader()
        if writer is None:
            writer = await open_stdout_writer()

        # Set up signal handlers for graceful shutdown
        loop = asyncio.get_running_loop()

        def handle_signal() -> None:
            logger.info("Received shutdown signal")
            if self._shutdown_event:
                self._shutdown_event.set()

        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, handle_signal)
            except NotImplementedError:
                # Signal handlers not supported on Windows
                pass

        assert self._shutdown_event is not None
        serve_task = asyncio.create_task(self.transport.serve(reader, writer))
        shutdown_task = asyncio.create_task(self._shutdown_event.wait())

        try:
            done, _pending = await asyncio.wait(
                {serve_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
            if serve_task in done:
                # Surface transport failures
                serve_task.result()
            else:
                serve_task.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await serve_task
        finally:
            shutdown_task.cancel()
            for sig in (signal.SIGINT, signal.SIGTERM):
                with contextlib.suppress(NotImplementedError, ValueError):
                    loop.remove_signal_handler(sig)
            await self.stop()

    @property
    def is_running(self) -> bool:
        """Check if the server is running."""
        return self._running
