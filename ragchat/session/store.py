"""Session identity and message history on top of a key/value storage.

The active session id lives under a fixed key. Each session's history is a
JSON array of ChatMessage objects stored under a key derived from the id.
"""

import logging
import uuid

from pydantic import TypeAdapter, ValidationError

from ragchat.models.schemas import ChatMessage
from ragchat.session.storage import KeyValueStorage

logger = logging.getLogger(__name__)

SESSION_ID_KEY = "chatSessionId"
HISTORY_KEY_PREFIX = "chatHistory:"

_history_adapter = TypeAdapter(list[ChatMessage])


def history_key(session_id: str) -> str:
    return f"{HISTORY_KEY_PREFIX}{session_id}"


class SessionStore:
    """Owns the durable session id and per-session message history.

    Args:
        storage: Backend the session state is persisted to.
    """

    def __init__(self, storage: KeyValueStorage) -> None:
        self._storage = storage

    def get_or_create_session(self) -> str:
        """Return the persisted session id, minting and saving one if needed."""
        session_id = self._storage.get(SESSION_ID_KEY)
        if session_id:
            return session_id

        session_id = self._mint_session_id()
        self._storage.put(SESSION_ID_KEY, session_id)
        logger.info(f"Created chat session {session_id}")
        return session_id

    def reset_session(self) -> str:
        """Replace the current session with a fresh one.

        The previous session's history is discarded.

        Returns:
            The new session id.
        """
        previous = self._storage.get(SESSION_ID_KEY)
        session_id = self._mint_session_id(exclude=previous)
        self._storage.put(SESSION_ID_KEY, session_id)
        if previous:
            self._storage.clear(history_key(previous))
        logger.info(f"Reset chat session {previous} -> {session_id}")
        return session_id

    def load_history(self, session_id: str) -> list[ChatMessage]:
        """Load the stored history for a session, empty when none is stored."""
        raw = self._storage.get(history_key(session_id))
        if raw is None:
            return []
        try:
            return _history_adapter.validate_json(raw)
        except ValidationError as e:
            logger.warning(f"Discarding unreadable history for session {session_id}: {e}")
            return []

    def save_history(self, session_id: str, messages: list[ChatMessage]) -> None:
        """Overwrite the stored history for a session."""
        self._storage.put(history_key(session_id), _history_adapter.dump_json(messages).decode())

    def _mint_session_id(self, exclude: str | None = None) -> str:
        # A fresh id must not collide with the current one or with stored history
        while True:
            session_id = str(uuid.uuid4())
            if session_id != exclude and self._storage.get(history_key(session_id)) is None:
                return session_id
