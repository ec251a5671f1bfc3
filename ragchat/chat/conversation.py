"""Conversation state for a streaming chat session.

ChatConversation owns the in-memory message list for the active session and
drives one send cycle at a time:

    IDLE -> SENT_USER_MESSAGE -> STREAMING -> FINALIZED | ERRORED

A send appends the user message and an empty assistant placeholder. Each
decoded chunk is appended to the placeholder. A final chunk or the [DONE]
marker finalizes it; any failure removes it again so history never holds a
truncated answer. History is written to the session store after every change.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum

from ragchat.client.api import StreamOutcome, stream_chat
from ragchat.client.errors import ConversationBusyError, StreamIncompleteError
from ragchat.client.transport import ChatTransport
from ragchat.models.schemas import (
    ChatMessage,
    ChatRequest,
    ChatRole,
    ChatSettings,
    InlineImage,
    StreamChunk,
)
from ragchat.session.store import SessionStore

logger = logging.getLogger(__name__)


class ConversationState(str, Enum):
    """Phase of the current send cycle."""

    IDLE = "idle"
    SENT_USER_MESSAGE = "sent_user_message"
    STREAMING = "streaming"
    FINALIZED = "finalized"
    ERRORED = "errored"


_IN_FLIGHT = frozenset({ConversationState.SENT_USER_MESSAGE, ConversationState.STREAMING})


class ChatConversation:
    """Manages chat state for the active session.

    Attributes:
        session_id: Active session identifier.
        messages: Ordered conversation history.
        settings: Default settings sent with each message.
        state: Phase of the current send cycle.
        is_streaming: True while a response stream is open.
    """

    def __init__(
        self,
        store: SessionStore,
        transport: ChatTransport,
        url: str,
        settings: ChatSettings | None = None,
    ) -> None:
        self._store = store
        self._transport = transport
        self._url = url
        self.settings = settings or ChatSettings()
        self.session_id = store.get_or_create_session()
        self.messages: list[ChatMessage] = store.load_history(self.session_id)
        self.state = ConversationState.IDLE
        self.is_streaming = False
        self._stream_task: asyncio.Task[StreamOutcome] | None = None
        self._cancel_requested = False
        self._on_update: Callable[[ChatMessage], None] | None = None
        self._on_error: Callable[[str], None] | None = None

    @property
    def in_flight(self) -> bool:
        """Whether a send cycle has started and not yet finished."""
        return self.state in _IN_FLIGHT

    async def send_message(
        self,
        text: str,
        *,
        images: list[InlineImage] | None = None,
        settings: ChatSettings | None = None,
        on_update: Callable[[ChatMessage], None] | None = None,
        on_error: Callable[[str], None] | None = None,
    ) -> bool:
        """Send a user message and stream the assistant reply into history.

        Args:
            text: Message text; surrounding whitespace is removed.
            images: Optional inline images.
            settings: Settings for this send; defaults to ``self.settings``.
            on_update: Called with the assistant message after each chunk.
            on_error: Called once with the error text if the send fails.

        Returns:
            True if the reply finalized, False if nothing was sent or it failed.

        Raises:
            ConversationBusyError: If a previous send is still in flight.
            Exception: Anything raised by a callback propagates after the
                placeholder is rolled back.
        """
        content = text.strip()
        if not content:
            return False
        if self.in_flight:
            raise ConversationBusyError("A reply is still streaming for this session")

        self._on_update = on_update
        self._on_error = on_error
        self._cancel_requested = False

        self.messages.append(ChatMessage(role=ChatRole.USER, content=content))
        request = ChatRequest.build(
            self.session_id, list(self.messages), settings or self.settings, images
        )
        self.messages.append(ChatMessage(role=ChatRole.ASSISTANT, content=""))
        self.state = ConversationState.SENT_USER_MESSAGE
        self._persist()

        self._stream_task = asyncio.ensure_future(
            stream_chat(
                request,
                self.apply_chunk,
                self.fail,
                transport=self._transport,
                url=self._url,
                on_open=self._mark_streaming,
                on_done=self._finish_on_done,
            )
        )
        try:
            await self._stream_task
        except asyncio.CancelledError:
            self._rollback()
            if not self._cancel_requested:
                raise
            logger.info(f"Chat stream cancelled for session {self.session_id}")
            return self.state is ConversationState.FINALIZED
        except Exception:
            self._rollback()
            raise
        finally:
            self._stream_task = None

        if self.state is ConversationState.STREAMING:
            # Neither a final chunk nor the [DONE] marker arrived
            self.fail(str(StreamIncompleteError()))

        return self.state is ConversationState.FINALIZED

    def apply_chunk(self, chunk: StreamChunk) -> None:
        """Fold a decoded chunk into the assistant placeholder.

        Content is appended, sources are replaced when present and the total
        token count is stored in ``confidence``. Chunks that arrive once the
        reply is finalized are ignored.
        """
        if self.state is not ConversationState.STREAMING:
            logger.debug(f"Ignoring chunk received in state {self.state.value}")
            return

        placeholder = self.messages[-1]
        update: dict[str, object] = {"content": placeholder.content + chunk.content}
        if chunk.sources is not None:
            update["sources"] = chunk.sources
        if chunk.usage is not None and chunk.usage.total_tokens is not None:
            # Token count shown in the confidence slot, not a probability
            update["confidence"] = chunk.usage.total_tokens
        self.messages[-1] = placeholder.model_copy(update=update)
        self._persist()

        if self._on_update is not None:
            self._on_update(self.messages[-1])

        if chunk.is_final:
            self._finalize()

    def fail(self, error: str) -> None:
        """Abort the current send, dropping the assistant placeholder."""
        if not self.in_flight:
            logger.debug(f"Ignoring error outside a send cycle: {error}")
            return
        logger.warning(f"Chat reply failed for session {self.session_id}: {error}")
        self._rollback()
        if self._on_error is not None:
            self._on_error(error)

    def cancel(self) -> bool:
        """Abandon the in-flight stream and close its connection.

        Returns:
            True if a stream was cancelled.
        """
        if self._stream_task is None or self._stream_task.done():
            return False
        self._cancel_requested = True
        self._stream_task.cancel()
        return True

    def new_session(self) -> str:
        """Start a fresh session, discarding the current history.

        Raises:
            ConversationBusyError: If a reply is still streaming.
        """
        if self.in_flight:
            raise ConversationBusyError("Cannot start a new session while a reply is streaming")
        self.session_id = self._store.reset_session()
        self.messages = []
        self.state = ConversationState.IDLE
        return self.session_id

    def _mark_streaming(self) -> None:
        self.is_streaming = True
        self.state = ConversationState.STREAMING

    def _finish_on_done(self) -> None:
        if self.state is ConversationState.STREAMING:
            self._finalize()

    def _finalize(self) -> None:
        self.is_streaming = False
        self.state = ConversationState.FINALIZED
        self._persist()

    def _rollback(self) -> None:
        if not self.in_flight:
            return
        placeholder = self.messages.pop()
        if placeholder.role is not ChatRole.ASSISTANT:
            # Only the assistant placeholder is ever removed
            self.messages.append(placeholder)
        self.is_streaming = False
        self.state = ConversationState.ERRORED
        self._persist()

    def _persist(self) -> None:
        self._store.save_history(self.session_id, self.messages)
