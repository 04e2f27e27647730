"""Ollama inference client for streaming generation.

Responsibilities:
    - Prompt construction from conversation turns and grounding text
    - Streaming POST to /api/generate with a bounded connection timeout
    - Model listing via /api/tags

Configuration is injected so the backend can be replaced in tests.
"""

from chat_relay.inference.client import (
    BackendUnavailable,
    GenerationStream,
    InferenceClient,
    build_prompt,
    close_inference_client,
    get_inference_client,
)
from chat_relay.inference.config import InferenceConfig, get_inference_config

__all__ = [
    "BackendUnavailable",
    "GenerationStream",
    "InferenceClient",
    "InferenceConfig",
    "build_prompt",
    "close_inference_client",
    "get_inference_client",
    "get_inference_config",
]
