"""
JSON-RPC Helper Functions.

Builders for response envelopes and tool-call result bodies, plus the
standard JSON-RPC error codes used by the dispatcher.
"""

from __future__ import annotations

import json
from typing import Any

JSONRPC_VERSION = "2.0"

# Standard JSON-RPC error codes. Parse errors (-32700) are never sent:
# undecodable frames are dropped by the framing layer.
ERROR_INVALID_REQUEST = -32600
ERROR_METHOD_NOT_FOUND = -32601
ERROR_INVALID_PARAMS = -32602
ERROR_INTERNAL_ERROR = -32603


def build_error_response(code: int, message: str) -> dict[str, Any]:
    """
    Build a JSON-RPC error object.

    Args:
        code: Error code
        message: Error message

    Returns:
        Error dict for the ``error`` member of a response
    """
    return {
        "code": code,
        "message": message,
    }


def jsonrpc_result(request_id: Any, result: dict[str, Any]) -> dict[str, Any]:
    """Wrap a result in a JSON-RPC response envelope."""
    return {"jsonrpc": JSONRPC_VERSION, "id": request_id, "result": result}


def jsonrpc_error(request_id: Any, code: int, message: str) -> dict[str, Any]:
    """Wrap an error in a JSON-RPC response envelope."""
    return {
        "jsonrpc": JSONRPC_VERSION,
        "id": request_id,
        "error": build_error_response(code, message),
    }


def build_tool_result(payload: Any, *, is_error: bool = False) -> dict[str, Any]:
    """
    Build the result body of a ``tools/call`` request.

    The payload is rendered as pretty-printed JSON text so the orchestrator
    can show it verbatim. Failures use the same shape with ``isError`` set.
    """
    return {
        "content": [
            {
                "type": "text",
                "text": json.dumps(payload, indent=2, ensure_ascii=False),
            }
        ],
        "isError": is_error,
    }


def is_notification(message: dict[str, Any]) -> bool:
    """A message without an id (or with a null id) expects no response."""
    return message.get("id") is None
