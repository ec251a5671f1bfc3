"""NiceGUI interface - thin visualization layer for chat interactions.

Responsibilities:
    - Chat message display with streaming updates
    - New session and cancel controls
    - Error notifications

Contains no protocol or state logic. Delegates everything to ChatConversation.
"""
