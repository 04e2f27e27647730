"""Pydantic models for API requests, responses and stream events.

Provides type safety, validation, and automatic OpenAPI documentation.

Models:
    - ConversationTurn: Individual turn in the conversation
    - ChatRequest: Incoming relay request payload
    - GenerationRequest: Outgoing Ollama generation request
    - TokenEvent: One decoded line of the backend stream
    - AssembledMessage: Assistant message built from streamed fragments
    - ModelsResponse / PDFUploadResponse / ErrorResponse: Endpoint bodies
"""

from chat_relay.models.schemas import (
    AssembledMessage,
    ChatRequest,
    ConversationTurn,
    ErrorResponse,
    GenerationRequest,
    ModelsResponse,
    PDFUploadResponse,
    Role,
    TokenEvent,
)

__all__ = [
    "AssembledMessage",
    "ChatRequest",
    "ConversationTurn",
    "ErrorResponse",
    "GenerationRequest",
    "ModelsResponse",
    "PDFUploadResponse",
    "Role",
    "TokenEvent",
]
