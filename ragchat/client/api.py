"""Callback-style streaming chat call.

Encodes a ChatRequest, sends it through a ChatTransport and decodes the SSE
response, reporting every chunk to ``on_chunk`` and at most one failure to
``on_error``.
"""

import logging
from collections.abc import Callable
from enum import Enum

from ragchat.client.decoder import SSEDecoder, decode_stream
from ragchat.client.encoder import encode_chat_request
from ragchat.client.errors import ChatClientError
from ragchat.client.transport import ChatTransport
from ragchat.models.schemas import ChatRequest, StreamChunk

logger = logging.getLogger(__name__)


class StreamOutcome(str, Enum):
    """How a streaming call ended."""

    DONE = "done"  # [DONE] marker received
    EOF = "eof"  # body ended without the marker
    ERROR = "error"  # on_error was called


async def stream_chat(
    request: ChatRequest,
    on_chunk: Callable[[StreamChunk], None],
    on_error: Callable[[str], None],
    *,
    transport: ChatTransport,
    url: str,
    on_open: Callable[[], None] | None = None,
    on_done: Callable[[], None] | None = None,
) -> StreamOutcome:
    """Send a chat request and consume its SSE response.

    Args:
        request: The logical chat request.
        on_chunk: Called with each decoded chunk in arrival order.
        on_error: Called once with the error text if the call fails.
        transport: Transport used to send the request.
        url: Absolute URL of the chat endpoint.
        on_open: Called once the response stream is available.
        on_done: Called as soon as the [DONE] marker is decoded, before the
            connection is closed.

    Returns:
        StreamOutcome describing how the call ended.
    """
    http_request = encode_chat_request(request, url)
    decoder = SSEDecoder()

    try:
        async with transport.open_stream(http_request) as body:
            if on_open is not None:
                on_open()
            async for chunk in decode_stream(body, decoder):
                on_chunk(chunk)
            if decoder.done and on_done is not None:
                on_done()
    except ChatClientError as e:
        logger.error(f"Chat stream failed: {e}")
        on_error(str(e))
        return StreamOutcome.ERROR

    return StreamOutcome.DONE if decoder.done else StreamOutcome.EOF
