"""Streaming client for the RAG chat endpoint.

Turns a logical chat request into HTTP, and the server-sent event response
back into StreamChunk objects.

Responsibilities:
    - Request encoding (JSON, or multipart when images are attached)
    - HTTP transport with a single error channel per call
    - Incremental SSE decoding across arbitrary byte boundaries
    - Environment-driven client configuration

Holds no conversation state. The chat package folds chunks into history.
"""

from ragchat.client.api import StreamOutcome, stream_chat
from ragchat.client.config import ClientConfig, get_client_config
from ragchat.client.decoder import SSEDecoder, decode_stream
from ragchat.client.encoder import ChatHttpRequest, encode_chat_request
from ragchat.client.errors import (
    ChatClientError,
    ChatConnectionError,
    ChatRequestFailedError,
    ChatTransportError,
    ConversationBusyError,
    NoResponseBodyError,
    StreamIncompleteError,
    StreamReadError,
)
from ragchat.client.transport import ChatTransport

__all__ = [
    "ChatClientError",
    "ChatConnectionError",
    "ChatHttpRequest",
    "ChatRequestFailedError",
    "ChatTransport",
    "ChatTransportError",
    "ClientConfig",
    "ConversationBusyError",
    "NoResponseBodyError",
    "SSEDecoder",
    "StreamIncompleteError",
    "StreamOutcome",
    "StreamReadError",
    "decode_stream",
    "encode_chat_request",
    "get_client_config",
    "stream_chat",
]
