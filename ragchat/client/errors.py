"""Exceptions raised by the chat streaming client."""


class ChatClientError(Exception):
    """Base class for chat client failures."""

    pass


class ChatTransportError(ChatClientError):
    """Raised when the chat request fails before a byte stream is available."""

    pass


class ChatRequestFailedError(ChatTransportError):
    """Raised when the server answers with a non-success status.

    Attributes:
        status_code: HTTP status returned by the server.
        body: Full response body as text.
    """

    def __init__(self, status_code: int, body: str) -> None:
        super().__init__(f"Chat request failed: {body}")
        self.status_code = status_code
        self.body = body


class NoResponseBodyError(ChatTransportError):
    """Raised when a successful response carries no readable body."""

    def __init__(self) -> None:
        super().__init__("No response body received")


class ChatConnectionError(ChatTransportError):
    """Raised when the request fails before any status is known."""

    pass


class StreamReadError(ChatClientError):
    """Raised when reading the response body fails mid-stream."""

    pass


class StreamIncompleteError(ChatClientError):
    """Raised when the stream ends without a final chunk or [DONE] marker."""

    def __init__(self) -> None:
        super().__init__("Stream ended before a final chunk was received")


class ConversationBusyError(ChatClientError):
    """Raised when a send is attempted while a reply is still streaming."""

    pass
