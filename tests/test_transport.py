"""
Tests for the stdio transport loop.

These tests drive StdioTransport with an in-memory StreamReader and a
collecting writer to verify framing of responses, request concurrency and
shutdown behavior.
"""

import asyncio
import io
import os
from pathlib import Path
from typing import Any

import pytest

from jellyfin_mcp.protocol import FrameDecoder, StdioTransport, StdoutWriter, encode_frame, open_stdout_writer

# -----------------------------------------------------------------------------
# Fixtures
# -----------------------------------------------------------------------------


class CollectingWriter:
    """Writer that records every write call."""

    def __init__(self) -> None:
        self.writes: list[bytes] = []
        self.drains = 0

    def write(self, data: bytes) -> None:
        self.writes.append(data)

    async def drain(self) -> None:
        self.drains += 1

    def messages(self) -> list[dict[str, Any]]:
        decoder = FrameDecoder()
        return list(decoder.feed_messages(b"".join(self.writes)))


class DelayDispatcher:
    """Echoes the request id after an optional per-request delay."""

    def __init__(self, delays: dict[Any, float] | None = None) -> None:
        self.delays = delays or {}
        self.handled: list[Any] = []

    async def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
        request_id = message.get("id")
        await asyncio.sleep(self.delays.get(request_id, 0))
        self.handled.append(request_id)
        if request_id is None:
            return None
        return {"jsonrpc": "2.0", "id": request_id, "result": {}}


def make_reader(data: bytes) -> asyncio.StreamReader:
    reader = asyncio.StreamReader()
    reader.feed_data(data)
    reader.feed_eof()
    return reader


def request(request_id: Any) -> bytes:
    return encode_frame({"jsonrpc": "2.0", "id": request_id, "method": "ping"})


# =============================================================================
# Tests
# =============================================================================


class TestStdioTransport:
    """Tests for StdioTransport.serve."""

    @pytest.mark.asyncio
    async def test_responses_are_header_framed(self) -> None:
        writer = CollectingWriter()
        transport = StdioTransport(DelayDispatcher())

        await transport.serve(make_reader(request(1)), writer)

        assert len(writer.writes) == 1
        assert writer.writes[0].startswith(b"Content-Length: ")
        assert writer.messages() == [{"jsonrpc": "2.0", "id": 1, "result": {}}]
        assert writer.drains == 1

    @pytest.mark.asyncio
    async def test_line_input_gets_header_output(self) -> None:
        writer = CollectingWriter()
        transport = StdioTransport(DelayDispatcher())

        await transport.serve(make_reader(b'{"jsonrpc":"2.0","id":5,"method":"ping"}\n'), writer)

        assert writer.writes[0].startswith(b"Content-Length: ")
        assert writer.messages()[0]["id"] == 5

    @pytest.mark.asyncio
    async def test_slow_request_does_not_block_fast_one(self) -> None:
        dispatcher = DelayDispatcher(delays={1: 0.2, 2: 0})
        writer = CollectingWriter()
        transport = StdioTransport(dispatcher)

        await transport.serve(make_reader(request(1) + request(2)), writer)

        assert [message["id"] for message in writer.messages()] == [2, 1]

    @pytest.mark.asyncio
    async def test_waits_for_in_flight_requests_at_eof(self) -> None:
        dispatcher = DelayDispatcher(delays={1: 0.05})
        writer = CollectingWriter()
        transport = StdioTransport(dispatcher)

        await transport.serve(make_reader(request(1)), writer)

        assert dispatcher.handled == [1]
        assert transport.in_flight == 0
        assert not transport.is_running

    @pytest.mark.asyncio
    async def test_notifications_write_nothing(self) -> None:
        dispatcher = DelayDispatcher()
        writer = CollectingWriter()
        transport = StdioTransport(dispatcher)

        await transport.serve(make_reader(b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n'), writer)

        assert dispatcher.handled == [None]
        assert writer.writes == []

    @pytest.mark.asyncio
    async def test_malformed_frame_does_not_stop_stream(self) -> None:
        diagnostics: list[str] = []
        writer = CollectingWriter()
        transport = StdioTransport(DelayDispatcher(), decoder=FrameDecoder(on_diagnostic=diagnostics.append))

        await transport.serve(make_reader(b"{garbage\n" + request(9)), writer)

        assert [message["id"] for message in writer.messages()] == [9]
        assert len(diagnostics) == 1

    @pytest.mark.asyncio
    async def test_small_read_size(self) -> None:
        """Frames split across many reads are reassembled."""
        writer = CollectingWriter()
        transport = StdioTransport(DelayDispatcher(), read_size=3)

        await transport.serve(make_reader(request(1) + request(2)), writer)

        assert sorted(message["id"] for message in writer.messages()) == [1, 2]

    @pytest.mark.asyncio
    async def test_dispatcher_exception_is_contained(self) -> None:
        class FailingDispatcher:
            async def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
                if message["id"] == 1:
                    raise RuntimeError("handler bug")
                return {"jsonrpc": "2.0", "id": message["id"], "result": {}}

        writer = CollectingWriter()
        transport = StdioTransport(FailingDispatcher())

        await transport.serve(make_reader(request(1) + request(2)), writer)

        responses = {message["id"]: message for message in writer.messages()}
        assert sorted(responses) == [1, 2]
        assert responses[1]["error"] == {"code": -32603, "message": "handler bug"}
        assert responses[2]["result"] == {}

    @pytest.mark.asyncio
    async def test_dispatcher_exception_on_notification_writes_nothing(self) -> None:
        class FailingDispatcher:
            async def handle(self, message: dict[str, Any]) -> dict[str, Any] | None:
                raise RuntimeError("handler bug")

        writer = CollectingWriter()
        transport = StdioTransport(FailingDispatcher())

        await transport.serve(make_reader(b'{"jsonrpc":"2.0","method":"notifications/initialized"}\n'), writer)

        assert writer.writes == []

    @pytest.mark.asyncio
    async def test_oversized_integer_does_not_stop_stream(self) -> None:
        diagnostics: list[str] = []
        writer = CollectingWriter()
        transport = StdioTransport(DelayDispatcher(), decoder=FrameDecoder(on_diagnostic=diagnostics.append))
        huge = b'{"jsonrpc":"2.0","id":7,"method":"ping","params":{"n":' + b"9" * 5000 + b"}}\n"

        await transport.serve(make_reader(huge + request(1)), writer)

        assert [message["id"] for message in writer.messages()] == [1]
        assert len(diagnostics) == 1

    @pytest.mark.asyncio
    async def test_cancel_cancels_in_flight(self) -> None:
        dispatcher = DelayDispatcher(delays={1: 10})
        writer = CollectingWriter()
        transport = StdioTransport(dispatcher)

        reader = asyncio.StreamReader()
        reader.feed_data(request(1))
        task = asyncio.create_task(transport.serve(reader, writer))
        await asyncio.sleep(0.05)
        assert transport.in_flight == 1

        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

        # In-flight requests are finished before serve() re-raises.
        assert transport.in_flight == 0
        assert dispatcher.handled == []
        assert writer.writes == []


class TestStdoutWriter:
    """Tests for the blocking-stream writer."""

    @pytest.mark.asyncio
    async def test_write_and_flush(self) -> None:
        stream = io.BytesIO()
        writer = StdoutWriter(stream)

        writer.write(b"abc")
        await writer.drain()

        assert stream.getvalue() == b"abc"


class TestOpenStdoutWriter:
    """Tests for attaching a writer to an output stream."""

    @pytest.mark.asyncio
    async def test_pipe_gets_stream_writer(self) -> None:
        read_fd, write_fd = os.pipe()
        stream = os.fdopen(write_fd, "wb", buffering=0)
        try:
            writer = await open_stdout_writer(stream)
            assert isinstance(writer, asyncio.StreamWriter)

            writer.write(encode_frame({"id": 1}))
            await writer.drain()

            assert os.read(read_fd, 1024) == encode_frame({"id": 1})
            writer.close()
            await asyncio.sleep(0)
        finally:
            os.close(read_fd)

    @pytest.mark.asyncio
    async def test_regular_file_falls_back(self, tmp_path: Path) -> None:
        path = tmp_path / "out.bin"
        with path.open("wb") as stream:
            writer = await open_stdout_writer(stream)
            assert isinstance(writer, StdoutWriter)

            writer.write(b"abc")
            await writer.drain()

        assert path.read_bytes() == b"abc"
