"""Pytest fixtures and shared test configuration.

Fixtures:
    - storage: Empty in-memory key/value storage
    - store: SessionStore over that storage
    - chat_url: Chat endpoint URL used by mock transports
    - settings: Default chat settings
"""

import pytest

from ragchat.models.schemas import ChatSettings
from ragchat.session.storage import InMemoryStorage
from ragchat.session.store import SessionStore


@pytest.fixture
def storage() -> InMemoryStorage:
    """Return fresh in-memory storage.

    Returns:
        Empty InMemoryStorage instance.
    """
    return InMemoryStorage()


@pytest.fixture
def store(storage: InMemoryStorage) -> SessionStore:
    """Return a session store over the test storage.

    Args:
        storage: Backing storage for the store.

    Returns:
        SessionStore instance.
    """
    return SessionStore(storage)


@pytest.fixture
def chat_url() -> str:
    """Return the chat endpoint URL used in tests."""
    return "http://test/api/chat"


@pytest.fixture
def settings() -> ChatSettings:
    """Return default chat settings with one selected knowledge base."""
    return ChatSettings(vector_stores=["store-1"])
