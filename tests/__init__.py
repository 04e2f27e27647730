"""Test package for the chat relay.

Structure:
    - unit/: Individual function and class tests
    - integration/: Relay endpoints and full exchanges over ASGI

The Ollama backend is replaced by an httpx.MockTransport fake, so no
external services are needed. Leverages pytest with pytest-check for soft
assertions.
"""
