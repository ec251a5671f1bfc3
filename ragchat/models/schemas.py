from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_validator,
    model_serializer,
)

DEFAULT_IMAGE_MIME_TYPE = "image/jpeg"
MAX_COMPLETION_TOKENS = 65_536
DEFAULT_MAX_TOKENS = 1000


def utc_timestamp() -> str:
    """Return the current time as an ISO-8601 UTC string with millisecond precision."""
    return datetime.now(UTC).isoformat(timespec="milliseconds").replace("+00:00", "Z")


class ChatRole(str, Enum):
    """Speaker of a chat message."""

    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class SourceDocument(BaseModel):
    """Attribution record for a retrieved document chunk.

    Treated as opaque: every field is optional and unknown fields are kept.
    Only fields present in the received record are written back out, so the
    record round-trips unchanged into history and later requests.
    """

    model_config = ConfigDict(extra="allow")

    filename: str | None = None
    chunk_index: int | None = None
    store_id: str | None = None
    similarity_score: float | None = None
    rerank_score: float | None = None
    content_preview: str | None = None
    location: str | None = None
    source_name: str | None = None
    custom_tags: list[str] = Field(default_factory=list)

    @model_serializer(mode="wrap")
    def _only_received_fields(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        received = self.model_fields_set | set(self.model_extra or {})
        return {key: value for key, value in data.items() if key in received}


class Usage(BaseModel):
    """Token accounting reported alongside a stream chunk."""

    model_config = ConfigDict(extra="allow")

    total_tokens: int | None = None
    cost_usd: float | None = None


class ChatMessage(BaseModel):
    """A single message in the conversation history.

    Attributes:
        role: Speaker identifier (user, assistant, or system).
        content: Message text. Grows by append while an assistant reply streams.
        timestamp: ISO-8601 creation time.
        sources: Attribution records from the final chunk, if any.
        confidence: Total token count reported by the server. The name is
            historical and kept for wire compatibility; it is not a probability.
    """

    role: ChatRole
    content: str = ""
    timestamp: str = Field(default_factory=utc_timestamp)
    sources: list[SourceDocument] | None = None
    confidence: float | None = None

    @model_serializer(mode="wrap")
    def _omit_missing_optionals(self, handler: SerializerFunctionWrapHandler) -> dict[str, Any]:
        data = handler(self)
        for key in ("sources", "confidence"):
            if data.get(key) is None:
                data.pop(key, None)
        return data


class StreamChunk(BaseModel):
    """A decoded unit of streamed assistant output.

    Attributes:
        content: Text delta to append to the assistant message.
        is_final: Whether this chunk completes the reply.
        sources: Attribution records, usually only on the final chunk.
        usage: Token usage, usually only on the final chunk.
    """

    content: str = ""
    is_final: bool = False
    sources: list[SourceDocument] | None = None
    usage: Usage | None = None


class InlineImage(BaseModel):
    """An image attached inline to a chat request.

    Attributes:
        data: Base64 payload without the data URI prefix.
        mime_type: MIME type used in the data URI.
    """

    data: str = Field(..., min_length=1)
    mime_type: str = DEFAULT_IMAGE_MIME_TYPE

    @property
    def data_uri(self) -> str:
        return f"data:{self.mime_type};base64,{self.data}"


class ChatSettings(BaseModel):
    """Retrieval and generation settings sent with every chat request."""

    top_k: int = Field(default=20, ge=1)
    max_docs_for_context: int = Field(default=3, ge=1)
    similarity_threshold: float = Field(default=0.0, ge=0.0, le=1.0)
    include_metadata: bool = False
    include_sources: bool = True
    include_confidence: bool = False
    query_expansion: bool = False
    deep_reasoning: bool = False
    multi_source_fetch: bool = True
    temperature: float = Field(default=0.7, ge=0.0, le=2.0)
    max_tokens: int = Field(default=DEFAULT_MAX_TOKENS, ge=1, le=MAX_COMPLETION_TOKENS)
    system_prompt: str = ""
    condense_context: bool = True
    vector_stores: list[str] = Field(default_factory=list)
    metadata_filters: dict[str, Any] = Field(default_factory=dict)


class ChatRequest(ChatSettings):
    """Logical chat request: conversation plus flattened settings.

    Attributes:
        session_id: Client-side session identifier.
        messages: Conversation history up to and including the new user message.
        images: Inline images; switches the wire encoding to multipart.
    """

    session_id: str | None = None
    messages: list[ChatMessage] = Field(default_factory=list)
    images: list[InlineImage] = Field(default_factory=list)

    @field_validator("images", mode="before")
    @classmethod
    def wrap_bare_base64(cls, v: Any) -> Any:
        """Accept bare base64 strings as JPEG images."""
        if isinstance(v, list):
            return [{"data": item} if isinstance(item, str) else item for item in v]
        return v

    @classmethod
    def build(
        cls,
        session_id: str | None,
        messages: list[ChatMessage],
        settings: ChatSettings,
        images: list[InlineImage] | None = None,
    ) -> "ChatRequest":
        """Combine a session, its messages and settings into one request."""
        return cls(
            session_id=session_id,
            messages=messages,
            images=images or [],
            **settings.model_dump(),
        )
