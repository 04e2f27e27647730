"""FastAPI endpoints for the chat relay.

Endpoints:
    - GET /health: Service health status
    - POST /api/chat: SSE token relay, or model listing
    - POST /api/upload-pdf: PDF text extraction for grounding
"""

from chat_relay.api.app import app, create_app

__all__ = ["app", "create_app"]
