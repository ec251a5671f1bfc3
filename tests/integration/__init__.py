"""Integration tests for components working together as a system.

Runs the full send cycle against an in-process FastAPI app that speaks the
chat SSE protocol, served through httpx.ASGITransport.
"""
