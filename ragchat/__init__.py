"""RAG Chat Client - streaming conversation client for a retrieval-augmented backend.

Sends chat requests to the backend, decodes the server-sent event response and
keeps a durable, device-local conversation history.

Components:
    - models: Wire and history schemas
    - session: Session id and history persistence
    - client: Request encoding, HTTP transport and SSE decoding
    - chat: Conversation state machine for streamed replies
    - ui: Web interface for chat interactions
"""

__version__ = "0.1.0"
