"""Test package for the RAG chat client.

Structure:
    - unit/: Individual function and class tests
    - integration/: End-to-end streaming against an in-process SSE server
    - streams.py: Helpers for SSE bodies and mock chat endpoints

Leverages pytest with pytest-asyncio for async tests and pytest-check for
soft assertions.
"""
