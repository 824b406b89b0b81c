"""
JSON-RPC request dispatcher.

Maps decoded messages to protocol methods and builds the response envelope.
The method table is fixed; tool calls are forwarded to the ToolRunner, whose
failures are reported inside a successful envelope with ``isError`` set so
the orchestrator can show them as text.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Coroutine
from typing import TYPE_CHECKING, Any

from jellyfin_mcp import __version__
from jellyfin_mcp.errors import ToolError
from jellyfin_mcp.rpc.helpers import (
    ERROR_INTERNAL_ERROR,
    ERROR_INVALID_PARAMS,
    ERROR_INVALID_REQUEST,
    ERROR_METHOD_NOT_FOUND,
    build_tool_result,
    is_notification,
    jsonrpc_error,
    jsonrpc_result,
)

if TYPE_CHECKING:
    from jellyfin_mcp.tools import ToolRunner

logger = logging.getLogger(__name__)

PROTOCOL_VERSION = "2024-11-05"
SERVER_NAME = "jellyfin-mcp"

# Type alias for method handlers
MethodHandler = Callable[[Any], Coroutine[Any, Any, dict[str, Any]]]


class InvalidParamsError(Exception):
    """Request params have the wrong shape for the method."""

    pass


class RequestDispatcher:
    """
    Protocol method dispatcher.

    Supported methods:
    - initialize: protocol version, capabilities and server identity
    - notifications/initialized: acknowledged, nothing to do
    - tools/list: the tool catalog
    - tools/call: invoke one tool
    - ping: liveness check
    """

    def __init__(
        self,
        tool_runner: ToolRunner,
        server_name: str = SERVER_NAME,
        server_version: str = __version__,
        protocol_version: str = PROTOCOL_VERSION,
    ) -> None:
        self.tool_runner = tool_runner
        self.server_name = server_name
        self.server_version = server_version
        self.protocol_version = protocol_version

        self._methods: dict[str, MethodHandler] = {
            "initialize": self._handle_initialize,
            "notifications/initialized": self._handle_initialized,
            "tools/list": self._handle_tools_list,
            "tools/call": self._handle_tools_call,
            "ping": self._handle_ping,
        }

    @property
    def methods(self) -> list[str]:
        """Names of all recognized methods."""
        return list(self._methods)

    async def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """
        Handle one decoded message.

        Args:
            message: The JSON-RPC request object with id, method, and params.

        Returns:
            The response envelope, or None when the message was a
            notification (no id), which never gets a response.
        """
        request_id = message.get("id")
        notification = is_notification(message)
        method = message.get("method")

        if not isinstance(method, str):
            logger.warning("Request without a valid method (id=%r)", request_id)
            if notification:
                return None
            return jsonrpc_error(request_id, ERROR_INVALID_REQUEST, "Invalid request")

        handler = self._methods.get(method)
        if handler is None:
            if notification:
                logger.debug("Ignoring unknown notification %s", method)
                return None
            logger.warning("Unknown method: %s", method)
            return jsonrpc_error(request_id, ERROR_METHOD_NOT_FOUND, f"Method not found: {method}")

        params = message.get("params")
        if params is None:
            params = {}

        try:
            result = await handler(params)
        except InvalidParamsError as e:
            logger.warning("Invalid params for %s: %s", method, e)
            response = jsonrpc_error(request_id, ERROR_INVALID_PARAMS, str(e))
        except Exception as e:
            logger.exception("Error handling %s: %s", method, e)
            response = jsonrpc_error(request_id, ERROR_INTERNAL_ERROR, str(e) or "Internal error")
        else:
            response = jsonrpc_result(request_id, result)

        if notification:
            return None
        return response

    async def _handle_initialize(self, params: Any) -> dict[str, Any]:
        if isinstance(params, dict):
            client_info = params.get("clientInfo") or {}
            if isinstance(client_info, dict) and client_info.get("name"):
                logger.info(
                    "Initialize from %s %s (protocol %s)",
                    client_info.get("name"),
                    client_info.get("version", ""),
                    params.get("protocolVersion", "?"),
                )

        return {
            "protocolVersion": self.protocol_version,
            "capabilities": {
                "tools": {
                    "listChanged": False,
                },
            },
            "serverInfo": {
                "name": self.server_name,
                "version": self.server_version,
            },
        }

    async def _handle_initialized(self, params: Any) -> dict[str, Any]:
        logger.debug("Client finished initialization")
        return {}

    async def _handle_tools_list(self, params: Any) -> dict[str, Any]:
        return {"tools": self.tool_runner.list_definitions()}

    async def _handle_tools_call(self, params: Any) -> dict[str, Any]:
        if not isinstance(params, dict):
            raise InvalidParamsError("params must be an object")

        name = params.get("name")
        if not isinstance(name, str) or not name:
            raise InvalidParamsError("Missing tool name")

        arguments = params.get("arguments")
        if arguments is None:
            arguments = {}
        if not isinstance(arguments, dict):
            raise InvalidParamsError("Tool arguments must be an object")

        try:
            payload = await self.tool_runner.invoke(name, arguments)
        except ToolError as e:
            logger.warning("Tool %s failed [%s]: %s", name, e.code, e)
            return build_tool_result(e.to_payload(), is_error=True)
        except Exception as e:
            logger.exception("Tool %s raised: %s", name, e)
            return build_tool_result({"error": str(e) or type(e).__name__}, is_error=True)

        return build_tool_result(payload)

    async def _handle_ping(self, params: Any) -> dict[str, Any]:
        return {}
