"""Pydantic models for the chat wire protocol and conversation history.

Provides type safety and validation for everything that crosses the wire
or lands in durable storage.

Models:
    - ChatMessage: Individual message in conversation history
    - ChatSettings: Retrieval and generation configuration
    - ChatRequest: Outgoing chat request payload
    - InlineImage: Base64 image attached to a request
    - StreamChunk: Decoded unit of the SSE response
    - SourceDocument: Attribution record attached to an answer
"""

from ragchat.models.schemas import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    ChatSettings,
    InlineImage,
    SourceDocument,
    StreamChunk,
    Usage,
    utc_timestamp,
)

__all__ = [
    "ChatMessage",
    "ChatRequest",
    "ChatRole",
    "ChatSettings",
    "InlineImage",
    "SourceDocument",
    "StreamChunk",
    "Usage",
    "utc_timestamp",
]
