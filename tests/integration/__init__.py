"""Integration tests for components working together as a system.

Coverage:
    - Relay endpoint over ASGI with a fake Ollama backend
    - PDF upload endpoint with generated documents
    - Full exchanges from ChatSession through the relay to the backend
"""
