"""Device-local session persistence.

A session is a durable conversation identity that survives restarts. The
store keeps the active session id and each session's message history in an
injected key/value storage.
"""

from ragchat.session.storage import InMemoryStorage, JsonFileStorage, KeyValueStorage
from ragchat.session.store import SESSION_ID_KEY, SessionStore, history_key

__all__ = [
    "SESSION_ID_KEY",
    "InMemoryStorage",
    "JsonFileStorage",
    "KeyValueStorage",
    "SessionStore",
    "history_key",
]
