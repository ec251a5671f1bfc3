"""Conversation state machine for streamed assistant replies.

Folds decoded stream chunks into the session history and keeps the session
store in sync after every change.
"""

from ragchat.chat.conversation import ChatConversation, ConversationState

__all__ = ["ChatConversation", "ConversationState"]
