"""Unit tests for the HTTP transport and the stream_chat call."""

import json

import httpx
import pytest
import pytest_check as check

from ragchat.client.api import StreamOutcome, stream_chat
from ragchat.client.encoder import encode_chat_request
from ragchat.client.errors import (
    ChatConnectionError,
    ChatRequestFailedError,
    NoResponseBodyError,
    StreamReadError,
)
from ragchat.client.transport import ChatTransport
from ragchat.models.schemas import ChatMessage, ChatRequest, ChatRole, StreamChunk
from tests.streams import mock_client, sse_body, sse_handler

URL = "http://test/api/chat"


def make_request(images: list[str] | None = None) -> ChatRequest:
    return ChatRequest(
        session_id="s1",
        messages=[ChatMessage(role=ChatRole.USER, content="hi", timestamp="t0")],
        images=images or [],
    )


class Recorder:
    """Collects stream_chat callbacks."""

    def __init__(self) -> None:
        self.chunks: list[StreamChunk] = []
        self.errors: list[str] = []
        self.opened = 0
        self.events: list[str] = []

    def on_chunk(self, chunk: StreamChunk) -> None:
        self.chunks.append(chunk)
        self.events.append("chunk")

    def on_error(self, error: str) -> None:
        self.errors.append(error)

    def on_open(self) -> None:
        self.opened += 1

    def on_done(self) -> None:
        self.events.append("done")


async def run_stream(handler, request: ChatRequest | None = None) -> tuple[StreamOutcome, Recorder]:
    recorder = Recorder()
    async with mock_client(handler) as client:
        outcome = await stream_chat(
            request or make_request(),
            recorder.on_chunk,
            recorder.on_error,
            transport=ChatTransport(client),
            url=URL,
            on_open=recorder.on_open,
            on_done=recorder.on_done,
        )
    return outcome, recorder


class TestOpenStream:
    """Tests for ChatTransport.open_stream error mapping."""

    async def test_non_success_status_raises_with_body(self) -> None:
        """A 500 response raises once with the body text."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        async with mock_client(handler) as client:
            transport = ChatTransport(client)
            with pytest.raises(ChatRequestFailedError) as exc_info:
                async with transport.open_stream(encode_chat_request(make_request(), URL)):
                    pytest.fail("stream must not open")

        check.equal(exc_info.value.status_code, 500)
        check.equal(exc_info.value.body, "boom")
        check.is_in("boom", str(exc_info.value))

    async def test_no_content_raises_no_body(self) -> None:
        """A 204 response has no readable body."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(204)

        async with mock_client(handler) as client:
            with pytest.raises(NoResponseBodyError, match="No response body"):
                async with ChatTransport(client).open_stream(
                    encode_chat_request(make_request(), URL)
                ):
                    pass

    async def test_network_failure_raises_connection_error(self) -> None:
        """A failure before any status maps to ChatConnectionError."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            with pytest.raises(ChatConnectionError, match="connection refused"):
                async with ChatTransport(client).open_stream(
                    encode_chat_request(make_request(), URL)
                ):
                    pass

    async def test_read_failure_raises_stream_read_error(self) -> None:
        """A failure while reading the body maps to StreamReadError."""
        handler = sse_handler(
            sse_body({"content": "a"}), error=httpx.ReadError("connection reset")
        )

        async with mock_client(handler) as client:
            with pytest.raises(StreamReadError, match="connection reset"):
                async with ChatTransport(client).open_stream(
                    encode_chat_request(make_request(), URL)
                ) as body:
                    async for _ in body:
                        pass

    async def test_json_request_on_the_wire(self) -> None:
        """JSON mode sends the encoded body with both headers."""
        captured: list[httpx.Request] = []

        await run_stream(sse_handler(sse_body("[DONE]"), captured=captured))

        request = captured[0]
        check.equal(request.method, "POST")
        check.equal(str(request.url), URL)
        check.equal(request.headers["content-type"], "application/json")
        check.equal(request.headers["accept"], "text/event-stream")
        check.equal(json.loads(request.content)["session_id"], "s1")

    async def test_multipart_request_on_the_wire(self) -> None:
        """Multipart mode lets httpx set the boundary and sends plain fields."""
        captured: list[httpx.Request] = []

        await run_stream(
            sse_handler(sse_body("[DONE]"), captured=captured),
            make_request(images=["AAAA", "BBBB"]),
        )

        request = captured[0]
        body = request.content.decode()
        check.is_true(request.headers["content-type"].startswith("multipart/form-data; boundary="))
        check.equal(request.headers["accept"], "text/event-stream")
        check.is_in('name="image_0"', body)
        check.is_in("data:image/jpeg;base64,AAAA", body)
        check.is_in('name="image_1"', body)
        check.is_in('name="session_id"', body)
        check.is_not_in('name="images"', body)
        check.is_not_in("filename=", body)


class TestStreamChat:
    """Tests for the callback-style stream_chat call."""

    async def test_hello_world_stream(self) -> None:
        """Two chunks are reported in order with no errors."""
        body = (
            b'data: {"content":"Hello ","is_final":false}\n\n'
            b'data: {"content":"world!","is_final":true}\n\n'
        )

        outcome, recorder = await run_stream(sse_handler(body))

        check.equal([c.content for c in recorder.chunks], ["Hello ", "world!"])
        check.equal(recorder.errors, [])
        check.equal(recorder.opened, 1)
        check.equal(outcome, StreamOutcome.EOF)

    async def test_server_error_reports_once(self) -> None:
        """HTTP 500 yields exactly one error containing the body and no chunks."""

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="boom")

        outcome, recorder = await run_stream(handler)

        check.equal(outcome, StreamOutcome.ERROR)
        check.equal(len(recorder.errors), 1)
        check.is_in("boom", recorder.errors[0])
        check.equal(recorder.chunks, [])
        check.equal(recorder.opened, 0)

    async def test_malformed_frame_is_not_an_error(self) -> None:
        """A bad frame between two valid ones is skipped silently."""
        body = (
            b'data: {"content":"ok","is_final":false}\n\n'
            b"data: {bad json\n\n"
            b'data: {"content":"done","is_final":true}\n\n'
        )

        _, recorder = await run_stream(sse_handler(body))

        check.equal([c.content for c in recorder.chunks], ["ok", "done"])
        check.equal(recorder.errors, [])

    async def test_done_sentinel_ends_cleanly(self) -> None:
        """[DONE] ends the call without an error and ignores later frames."""
        handler = sse_handler(
            sse_body({"content": "a"}), sse_body("[DONE]"), sse_body({"content": "b"})
        )

        outcome, recorder = await run_stream(handler)

        check.equal(outcome, StreamOutcome.DONE)
        check.equal([c.content for c in recorder.chunks], ["a"])
        check.equal(recorder.errors, [])

    async def test_read_error_after_chunks_reports_once(self) -> None:
        """Chunks before a read failure are delivered, then one error."""
        handler = sse_handler(sse_body({"content": "a"}), error=httpx.ReadError("reset"))

        outcome, recorder = await run_stream(handler)

        check.equal(outcome, StreamOutcome.ERROR)
        check.equal([c.content for c in recorder.chunks], ["a"])
        check.equal(len(recorder.errors), 1)

    async def test_connection_error_reports_once(self) -> None:
        """A network failure yields one error and never opens the stream."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        outcome, recorder = await run_stream(handler)

        check.equal(outcome, StreamOutcome.ERROR)
        check.equal(len(recorder.errors), 1)
        check.is_in("Could not connect", recorder.errors[0])
        check.equal(recorder.opened, 0)

    async def test_on_done_follows_last_chunk(self) -> None:
        """on_done fires once, after every chunk before the marker."""
        handler = sse_handler(sse_body({"content": "a"}, {"content": "b"}, "[DONE]"))

        _, recorder = await run_stream(handler)

        assert recorder.events == ["chunk", "chunk", "done"]

    async def test_on_done_not_called_without_marker(self) -> None:
        """A final chunk or a failure never triggers on_done."""
        _, finished = await run_stream(sse_handler(sse_body({"content": "a", "is_final": True})))
        _, failed = await run_stream(
            sse_handler(sse_body({"content": "a"}), error=httpx.ReadError("reset"))
        )

        check.equal(finished.events, ["chunk"])
        check.equal(failed.events, ["chunk"])
