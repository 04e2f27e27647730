"""Ollama Chat Relay - streaming chat widget for a local inference server.

Combines FastAPI for the SSE relay, httpx for talking to Ollama,
NiceGUI for the chat widget, and Pydantic for data validation.

Components:
    - inference: Streaming generation requests to the Ollama backend
    - streaming: Line assembly and NDJSON-to-SSE reframing
    - api: Relay and upload endpoints
    - parsing: PDF text extraction for grounding
    - ui: Stream consumer, chat session state and the chat widget
    - models: Request/response schemas
"""

__version__ = "0.1.0"
