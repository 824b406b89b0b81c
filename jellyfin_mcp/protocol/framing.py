"""
Stdio framing for JSON-RPC messages.

Two framing styles are accepted on input and may be mixed within one stream:

Header-length framing (LSP / MCP style):

    Content-Length: <n>\\r\\n
    [Other-Header: value\\r\\n ...]
    \\r\\n
    <n bytes of UTF-8 JSON>

Newline-delimited framing:

    <one JSON document per line>\\n

The style is chosen again at every frame boundary: if the buffered bytes
start with a ``content-length:`` line (case-insensitive) a header block is
expected, otherwise the next line is taken as a frame. Output always uses
header-length framing.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Callable, Iterator
from typing import Any

logger = logging.getLogger(__name__)

HEADER_TERMINATOR = b"\r\n\r\n"
CONTENT_LENGTH_PREFIX = b"content-length:"

# Largest body (or undelimited line) the decoder will buffer.
DEFAULT_MAX_FRAME_BYTES = 4 * 1024 * 1024

DiagnosticSink = Callable[[str], None]


class FramingError(Exception):
    """A frame body could not be turned into a message."""

    pass


class FrameBuffer:
    """
    Growable byte buffer owned by a single decoder.

    Bytes are appended at the back and consumed from the front. Appended
    chunks are copied, so callers may reuse or mutate their chunk afterwards.
    """

    def __init__(self) -> None:
        self._data = bytearray()

    def append(self, chunk: bytes) -> None:
        self._data += chunk

    def find(self, needle: bytes, start: int = 0) -> int:
        return self._data.find(needle, start)

    def peek(self, size: int) -> bytes:
        """Return up to ``size`` bytes from the front without consuming them."""
        return bytes(self._data[:size])

    def consume(self, size: int) -> bytes:
        """Remove and return ``size`` bytes from the front."""
        taken = bytes(self._data[:size])
        del self._data[:size]
        return taken

    def clear(self) -> int:
        """Drop everything; returns the number of bytes dropped."""
        dropped = len(self._data)
        self._data.clear()
        return dropped

    def __len__(self) -> int:
        return len(self._data)


def parse_headers(block: bytes) -> dict[str, str]:
    """
    Parse a ``key: value`` header block.

    Keys are lower-cased, values stripped. Lines without a colon are ignored.
    """
    headers: dict[str, str] = {}
    for line in block.split(b"\r\n"):
        key, sep, value = line.partition(b":")
        if not sep:
            continue
        headers[key.strip().lower().decode("latin-1")] = value.strip().decode("latin-1")
    return headers


def decode_message(body: bytes) -> dict[str, Any]:
    """
    Decode one frame body into a JSON-RPC message object.

    Raises:
        FramingError: If the body is not UTF-8 JSON describing an object.
    """
    try:
        text = body.decode("utf-8")
    except UnicodeDecodeError as e:
        raise FramingError(f"invalid utf-8: {e}") from None

    try:
        message = json.loads(text)
    except (ValueError, RecursionError) as e:
        # ValueError covers JSONDecodeError and the int digit limit;
        # RecursionError comes from very deep nesting.
        raise FramingError(f"invalid json: {e}") from None

    if not isinstance(message, dict):
        raise FramingError(f"expected a JSON object, got {type(message).__name__}")

    return message


def encode_frame(message: dict[str, Any]) -> bytes:
    """Serialize a message as a header-length frame."""
    body = json.dumps(message, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    header = f"Content-Length: {len(body)}\r\n\r\n".encode("ascii")
    return header + body


class FrameDecoder:
    """
    Incremental decoder that turns an arbitrary chunked byte stream into frames.

    The decoder keeps all unconsumed bytes between calls, so a chunk may end
    anywhere (inside a header block, a body, or a line). A header-length body
    is never released before all of its declared bytes have arrived.

    Attributes:
        max_frame_bytes: Upper bound for a declared body length, and for a
            newline-delimited line that has not been terminated yet.
    """

    def __init__(
        self,
        max_frame_bytes: int = DEFAULT_MAX_FRAME_BYTES,
        on_diagnostic: DiagnosticSink | None = None,
    ) -> None:
        self.max_frame_bytes = max_frame_bytes
        self._buffer = FrameBuffer()
        self._pending_length: int | None = None
        self._discarding_line = False
        self._diagnostic: DiagnosticSink = on_diagnostic or logger.warning

    @property
    def pending_length(self) -> int | None:
        """Body length still being waited for, if a header block was read."""
        return self._pending_length

    @property
    def buffered(self) -> int:
        """Number of bytes received but not yet consumed."""
        return len(self._buffer)

    def feed(self, chunk: bytes) -> Iterator[bytes]:
        """
        Add a chunk and iterate over the frame bodies it completes.

        The chunk is buffered immediately; the returned iterator is lazy and
        consumes frames from the buffer as it is advanced. Frames not pulled
        from the iterator stay buffered and are returned by the next call.
        """
        self._buffer.append(chunk)
        return self._frames()

    def feed_messages(self, chunk: bytes) -> Iterator[dict[str, Any]]:
        """
        Like ``feed`` but yields decoded message objects.

        Malformed bodies are reported to the diagnostic sink and skipped.
        """
        return self._messages(self.feed(chunk))

    def _messages(self, frames: Iterator[bytes]) -> Iterator[dict[str, Any]]:
        for body in frames:
            try:
                message = decode_message(body)
            except FramingError as e:
                self._diagnostic(f"Dropping malformed frame ({len(body)} bytes): {e}")
                continue
            yield message

    def _frames(self) -> Iterator[bytes]:
        buffer = self._buffer

        while True:
            # Header block already read; wait for the full body.
            if self._pending_length is not None:
                if len(buffer) < self._pending_length:
                    return
                body = buffer.consume(self._pending_length)
                self._pending_length = None
                yield body
                continue

            # Tail of an oversized line we already gave up on.
            if self._discarding_line:
                line_end = buffer.find(b"\n")
                if line_end == -1:
                    buffer.clear()
                    return
                buffer.consume(line_end + 1)
                self._discarding_line = False
                continue

            if self._starts_with_header():
                boundary = buffer.find(HEADER_TERMINATOR)
                if boundary == -1:
                    if len(buffer) > self.max_frame_bytes:
                        dropped = buffer.clear()
                        self._diagnostic(f"Header block exceeds {self.max_frame_bytes} bytes, dropped {dropped} bytes")
                    return
                block = buffer.consume(boundary + len(HEADER_TERMINATOR))[:boundary]
                self._pending_length = self._content_length(block)
                continue

            line_end = buffer.find(b"\n")
            if line_end == -1:
                if len(buffer) > self.max_frame_bytes:
                    dropped = buffer.clear()
                    self._discarding_line = True
                    self._diagnostic(f"Line exceeds {self.max_frame_bytes} bytes, dropped {dropped} bytes")
                return

            line = buffer.consume(line_end + 1)[:line_end]
            if line.endswith(b"\r"):
                line = line[:-1]
            if not line.strip():
                continue
            yield line

    def _starts_with_header(self) -> bool:
        return self._buffer.peek(len(CONTENT_LENGTH_PREFIX)).lower() == CONTENT_LENGTH_PREFIX

    def _content_length(self, block: bytes) -> int | None:
        """
        Extract the declared body length from a header block.

        Returns None (after reporting a diagnostic) when the block has no
        usable length; decoding then resumes right after the block.
        """
        headers = parse_headers(block)
        raw = headers.get("content-length")
        if raw is None:
            self._diagnostic("Header block without Content-Length skipped")
            return None

        if not raw.isascii() or not raw.isdigit():
            self._diagnostic(f"Invalid Content-Length {raw!r}, header block skipped")
            return None

        length = int(raw)
        if length > self.max_frame_bytes:
            self._diagnostic(
                f"Content-Length {length} exceeds limit of {self.max_frame_bytes} bytes, header block skipped"
            )
            return None

        logger.debug("Header block declares %d byte body", length)
        return length
