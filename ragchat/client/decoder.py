"""Incremental decoder for the chat server-sent event stream.

The response body is a sequence of frames separated by a blank line. Each frame
carries one ``data:`` line whose payload is either a JSON StreamChunk or the
literal ``[DONE]`` marker that ends the stream.

Bytes are decoded with an incremental UTF-8 decoder and frames are only split
out of the accumulated text, so a multi-byte character or a ``data:`` line cut
across two reads decodes the same as if it arrived in one read.
"""

import codecs
import logging
import re
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from ragchat.models.schemas import StreamChunk

logger = logging.getLogger(__name__)

FRAME_DELIMITER = "\n\n"
DONE_SENTINEL = "[DONE]"

_DATA_LINE = re.compile(r"^data:\s*(.*)$", re.MULTILINE)


def extract_data(frame: str) -> str | None:
    """Return the stripped payload of the first ``data:`` line, if any."""
    match = _DATA_LINE.search(frame)
    if match is None:
        return None
    return match.group(1).strip()


def parse_chunk(payload: str) -> StreamChunk | None:
    """Parse a frame payload, returning None when it is not a valid chunk."""
    try:
        return StreamChunk.model_validate_json(payload)
    except ValidationError as e:
        logger.warning(f"Failed to parse SSE chunk: {payload!r} ({e.error_count()} errors)")
        return None


class SSEDecoder:
    """Turns raw response bytes into StreamChunk objects.

    Feed byte blocks in arrival order with :meth:`feed`. Once the ``[DONE]``
    marker is seen, :attr:`done` is set and further input is ignored.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self.done = False

    @property
    def pending(self) -> str:
        """Text received after the last frame delimiter."""
        return self._buffer

    def feed(self, data: bytes) -> list[StreamChunk]:
        """Consume one block of bytes and return the chunks it completes.

        Args:
            data: Next block of the response body.

        Returns:
            Chunks parsed from every frame completed by this block, in order.
        """
        if self.done:
            return []

        self._buffer += self._decoder.decode(data)
        *frames, self._buffer = self._buffer.split(FRAME_DELIMITER)

        chunks: list[StreamChunk] = []
        for frame in frames:
            frame = frame.strip()
            if not frame:
                continue

            payload = extract_data(frame)
            if payload is None:
                logger.debug(f"Skipping frame without data line: {frame[:80]!r}")
                continue

            if payload == DONE_SENTINEL:
                self.done = True
                self._buffer = ""
                break

            chunk = parse_chunk(payload)
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def close(self) -> None:
        """Signal end of input. An undelimited trailing frame is discarded."""
        self._decoder.decode(b"", final=True)
        if self._buffer.strip():
            logger.debug(f"Discarding incomplete trailing frame: {self._buffer[:80]!r}")
        self._buffer = ""


async def decode_stream(
    byte_stream: AsyncIterable[bytes],
    decoder: SSEDecoder | None = None,
) -> AsyncIterator[StreamChunk]:
    """Decode an async byte stream into StreamChunk objects.

    Stops reading as soon as the ``[DONE]`` marker arrives. Pass a decoder to
    inspect its :attr:`SSEDecoder.done` flag afterwards.

    Args:
        byte_stream: Response body as async byte blocks.
        decoder: Optional decoder instance to use.

    Yields:
        Parsed chunks in arrival order.
    """
    decoder = decoder or SSEDecoder()
    async for block in byte_stream:
        for chunk in decoder.feed(block):
            yield chunk
        if decoder.done:
            return
    decoder.close()
