"""
Protocol layer: stdio framing and the transport loop.
"""

from jellyfin_mcp.protocol.framing import (
    DEFAULT_MAX_FRAME_BYTES,
    FrameBuffer,
    FrameDecoder,
    FramingError,
    decode_message,
    encode_frame,
)
from jellyfin_mcp.protocol.transport import StdioTransport, StdoutWriter, open_stdin_reader, open_stdout_writer

__all__ = [
    "DEFAULT_MAX_FRAME_BYTES",
    "FrameBuffer",
    "FrameDecoder",
    "FramingError",
    "StdioTransport",
    "StdoutWriter",
    "decode_message",
    "encode_frame",
    "open_stdin_reader",
    "open_stdout_writer",
]
