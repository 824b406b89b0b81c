"""
Stdio transport loop.

Reads bytes from the input stream, feeds them to the FrameDecoder and hands
every decoded message to the dispatcher in its own task. Reading continues
while earlier requests are still being handled, so a slow tool call never
holds up a later, faster one. Responses are written as soon as each task
finishes; only the id pairing ties a response to its request.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from typing import TYPE_CHECKING, Any, BinaryIO, Protocol

from jellyfin_mcp.protocol.framing import FrameDecoder, encode_frame
from jellyfin_mcp.rpc.helpers import ERROR_INTERNAL_ERROR, jsonrpc_error

if TYPE_CHECKING:
    from jellyfin_mcp.rpc.dispatcher import RequestDispatcher

logger = logging.getLogger(__name__)

READ_CHUNK_SIZE = 64 * 1024


class ByteReader(Protocol):
    async def read(self, n: int = -1) -> bytes: ...


class ByteWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class StdoutWriter:
    """
    Writer over a blocking binary stream.

    Only used when standard output is a regular file, which asyncio cannot
    attach a pipe transport to; writes to a file never stall on a reader.

    Each frame is handed to the stream in one ``write`` call and flushed on
    ``drain``, so frames from concurrent tasks never interleave.
    """

    def __init__(self, stream: BinaryIO | None = None) -> None:
        self._stream = stream if stream is not None else sys.stdout.buffer

    def write(self, data: bytes) -> None:
        self._stream.write(data)

    async def drain(self) -> None:
        self._stream.flush()


async def open_stdin_reader() -> asyncio.StreamReader:
    """Attach an asyncio StreamReader to the process's standard input."""
    loop = asyncio.get_running_loop()
    reader = asyncio.StreamReader()
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin.buffer)
    return reader


async def open_stdout_writer(stream: BinaryIO | None = None) -> ByteWriter:
    """
    Attach an asyncio StreamWriter to the process's standard output.

    ``drain()`` then waits for the pipe to accept data instead of blocking
    the event loop when the reading side falls behind. Falls back to
    ``StdoutWriter`` when the stream is a regular file.
    """
    loop = asyncio.get_running_loop()
    stream = stream if stream is not None else sys.stdout.buffer
    try:
        transport, protocol = await loop.connect_write_pipe(asyncio.streams.FlowControlMixin, stream)
    except ValueError:
        logger.debug("Output is not a pipe, socket or terminal; using blocking writes")
        return StdoutWriter(stream)
    return asyncio.StreamWriter(transport, protocol, None, loop)


class StdioTransport:
    """
    Drives one byte stream through decode, dispatch and encode.

    The decoder is only touched from ``serve``; dispatch tasks never see it.

    Attributes:
        dispatcher: Handles decoded messages and returns responses.
        decoder: Frame decoder owning the inbound buffer.
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        decoder: FrameDecoder | None = None,
        read_size: int = READ_CHUNK_SIZE,
    ) -> None:
        self.dispatcher = dispatcher
        self.decoder = decoder if decoder is not None else FrameDecoder()
        self.read_size = read_size

        self._tasks: set[asyncio.Task[None]] = set()
        self._running = False

    @property
    def in_flight(self) -> int:
        """Number of requests currently being handled."""
        return len(self._tasks)

    @property
    def is_running(self) -> bool:
        return self._running

    async def serve(self, reader: ByteReader, writer: ByteWriter) -> None:
        """
        Process the input stream until EOF.

        After EOF, waits for all in-flight requests so their responses are
        still written. If cancelled, in-flight requests are cancelled too.
        """
        self._running = True
        logger.info("Transport started")

        try:
            while self._running:
                chunk = await reader.read(self.read_size)
                if not chunk:
                    logger.info("Input stream closed")
                    break

                logger.debug("Received %d bytes", len(chunk))
                for message in self.decoder.feed_messages(chunk):
                    self._spawn(message, writer)

            if self._tasks:
                logger.debug("Waiting for %d in-flight requests", len(self._tasks))
                await asyncio.gather(*list(self._tasks), return_exceptions=True)
        except asyncio.CancelledError:
            pending = list(self._tasks)
            for task in pending:
                task.cancel()
            await asyncio.gather(*pending, return_exceptions=True)
            raise
        finally:
            self._running = False
            logger.info("Transport stopped")

    def stop(self) -> None:
        """Stop reading after the current chunk."""
        self._running = False

    def _spawn(self, message: dict[str, Any], writer: ByteWriter) -> None:
        task = asyncio.create_task(self._dispatch(message, writer))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _dispatch(self, message: dict[str, Any], writer: ByteWriter) -> None:
        try:
            response = await self.dispatcher.handle(message)
        except Exception as e:
            logger.exception("Request handler error for %r: %s", message.get("method"), e)
            if message.get("id") is None:
                return
            response = jsonrpc_error(message["id"], ERROR_INTERNAL_ERROR, str(e) or "Internal error")

        if response is None:
            return

        frame = encode_frame(response)
        try:
            writer.write(frame)
            await writer.drain()
            logger.debug("Sent response id=%r (%d bytes)", response.get("id"), len(frame))
        except (ConnectionError, OSError) as e:
            logger.warning("Failed to write response id=%r: %s", response.get("id"), e)
