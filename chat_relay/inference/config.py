"""Inference backend configuration with environment variable loading.

Pydantic-based configuration injected into the InferenceClient so tests
can point it at a fake backend.
"""

import os

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field, field_validator

# Load environment variables from .env file
load_dotenv()

DEFAULT_BASE_URL = "http://localhost:11434"
DEFAULT_MODEL = "llama2"
DEFAULT_TIMEOUT_SECONDS = 30.0


class InferenceConfig(BaseModel):
    """Configuration for the Ollama inference backend.

    Attributes:
        backend_base_url: Base URL of the Ollama server (no trailing slash).
        model: Model identifier used when a request does not name one.
        timeout_seconds: Hard limit for reaching the backend and receiving
            its response headers.
    """

    # Environment-sourced defaults go through the validators below.
    model_config = ConfigDict(validate_default=True)

    backend_base_url: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_BASE_URL", DEFAULT_BASE_URL),
        description="Ollama server base URL",
    )
    model: str = Field(
        default_factory=lambda: os.getenv("OLLAMA_MODEL", DEFAULT_MODEL),
        description="Default model identifier",
    )
    timeout_seconds: float = Field(
        default_factory=lambda: os.getenv("OLLAMA_TIMEOUT", str(DEFAULT_TIMEOUT_SECONDS)),
        gt=0.0,
        description="Connection timeout in seconds",
    )

    @field_validator("backend_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Require an http(s) URL and drop any trailing slash."""
        v = v.strip()
        if not v:
            raise ValueError("Backend URL required. Set OLLAMA_BASE_URL in .env")
        if not v.startswith(("http://", "https://")):
            raise ValueError(f"Backend URL must start with http:// or https://, got {v!r}")
        return v.rstrip("/")

    @field_validator("model")
    @classmethod
    def validate_model(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("Model required. Set OLLAMA_MODEL in .env")
        return v.strip()

    @property
    def generate_url(self) -> str:
        return f"{self.backend_base_url}/api/generate"

    @property
    def tags_url(self) -> str:
        return f"{self.backend_base_url}/api/tags"


def get_inference_config() -> InferenceConfig:
    """Create inference configuration from environment.

    Returns:
        Configured InferenceConfig instance.

    Raises:
        ValueError: If the environment holds an invalid URL, model or timeout.
    """
    return InferenceConfig()
