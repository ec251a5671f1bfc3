"""HTTP transport for the streaming chat endpoint.

Sends an encoded chat request with httpx and hands the response body back as
an async iterator of raw byte blocks. Every failure that happens before the
body is handed out becomes exactly one ChatTransportError; failures while the
body is being read become StreamReadError.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

import httpx

from ragchat.client.encoder import ChatHttpRequest
from ragchat.client.errors import (
    ChatConnectionError,
    ChatRequestFailedError,
    NoResponseBodyError,
    StreamReadError,
)

logger = logging.getLogger(__name__)

# Statuses that never carry a body even when successful
_BODILESS_STATUSES = frozenset({204, 205})


def _has_no_body(response: httpx.Response) -> bool:
    if response.status_code in _BODILESS_STATUSES:
        return True
    return response.headers.get("content-length") == "0"


class ChatTransport:
    """Sends chat requests over a shared httpx.AsyncClient.

    The client is owned by the caller, which keeps connection pooling and
    test transports (MockTransport, ASGITransport) under its control.
    """

    def __init__(self, client: httpx.AsyncClient) -> None:
        self._client = client

    def _build_request(self, request: ChatHttpRequest) -> httpx.Request:
        if request.is_multipart:
            # A None filename makes httpx emit plain form-data fields
            files = [(name, (None, value)) for name, value in request.form or []]
            return self._client.build_request(
                request.method, request.url, headers=request.headers, files=files
            )
        return self._client.build_request(
            request.method, request.url, headers=request.headers, json=request.json_body
        )

    @asynccontextmanager
    async def open_stream(self, request: ChatHttpRequest) -> AsyncIterator[AsyncIterator[bytes]]:
        """Send the request and yield the response body as byte blocks.

        Args:
            request: Encoded chat request.

        Yields:
            Async iterator over raw response bytes.

        Raises:
            ChatConnectionError: Network failure before a status was received.
            ChatRequestFailedError: Non-success HTTP status.
            NoResponseBodyError: Success status without a body.
        """
        try:
            response = await self._client.send(self._build_request(request), stream=True)
        except httpx.TransportError as e:
            logger.error(f"Could not connect to chat API at {request.url}: {e}")
            raise ChatConnectionError(f"Could not connect to chat API: {e}") from e

        try:
            if not response.is_success:
                body = await self._read_error_body(response)
                logger.warning(f"Chat request failed with HTTP {response.status_code}")
                raise ChatRequestFailedError(response.status_code, body)

            if _has_no_body(response):
                raise NoResponseBodyError()

            yield self._iter_body(response)
        finally:
            await response.aclose()

    @staticmethod
    async def _read_error_body(response: httpx.Response) -> str:
        try:
            await response.aread()
        except httpx.HTTPError as e:
            logger.warning(f"Failed to read error body: {e}")
            return f"HTTP {response.status_code}"
        return response.text

    @staticmethod
    async def _iter_body(response: httpx.Response) -> AsyncIterator[bytes]:
        try:
            async for block in response.aiter_bytes():
                if block:
                    yield block
        except httpx.HTTPError as e:
            raise StreamReadError(f"Failed to read chat stream: {e}") from e
