"""
JSON-RPC method dispatch for the stdio server.

Modules:
- dispatcher: RequestDispatcher and its method table
- helpers: envelope builders and error codes
"""

from jellyfin_mcp.rpc.dispatcher import PROTOCOL_VERSION, InvalidParamsError, RequestDispatcher

__all__ = ["PROTOCOL_VERSION", "InvalidParamsError", "RequestDispatcher"]
