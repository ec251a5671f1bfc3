"""Unit tests for individual components in isolation.

Coverage:
    - models/: Pydantic validation and serialization
    - session/: Session id and history persistence
    - client/: Request encoding, transport errors and SSE decoding
    - chat/: Conversation state machine

HTTP is served by httpx.MockTransport. No network access required.
"""
