"""Ollama inference client with streaming generation support.

Owns the HTTP connection to the backend. The relay asks it to open a
generation stream, hands the raw body to the reframer, and closes the
stream when the outbound response finishes.

Failures reaching the backend (connect errors, timeouts, error statuses)
raise BackendUnavailable before any byte is streamed. Nothing is retried.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence

import httpx

from chat_relay.inference.config import InferenceConfig, get_inference_config
from chat_relay.models.schemas import ConversationTurn, GenerationRequest

logger = logging.getLogger(__name__)

GROUNDING_PREAMBLE = (
    "The following is the content of a PDF document:\n\n"
    "{grounding_text}\n\n"
    "Please answer questions based on this content.\n\n"
)
BULLET_INSTRUCTION = (
    '\nPlease format your response as a list of bullet points, using "-" as the '
    "bullet character. Each bullet point should be on a new line.\n\nassistant:"
)


class BackendUnavailable(Exception):
    """Raised when the inference backend cannot be reached in time."""


def build_prompt(
    messages: Sequence[ConversationTurn],
    grounding_text: str | None = None,
) -> str:
    """Render a conversation into a single generation prompt.

    Args:
        messages: Conversation turns, oldest first.
        grounding_text: Optional document text placed ahead of the turns.

    Returns:
        ``"role: content"`` lines, optionally preceded by the grounding
        preamble, followed by the bullet-format instruction and the
        ``assistant:`` cue.
    """
    prompt = "\n".join(turn.render() for turn in messages)
    if grounding_text:
        prompt = GROUNDING_PREAMBLE.format(grounding_text=grounding_text) + prompt
    return prompt + BULLET_INSTRUCTION


class GenerationStream:
    """An open streaming response from ``/api/generate``.

    Iterate ``chunks()`` for the raw body and always ``aclose()`` when done.
    """

    def __init__(self, response: httpx.Response) -> None:
        self._response = response

    async def chunks(self) -> AsyncIterator[bytes]:
        async for chunk in self._response.aiter_bytes():
            yield chunk

    async def aclose(self) -> None:
        await self._response.aclose()


class InferenceClient:
    """Client for the Ollama HTTP API.

    Args:
        config: Backend location, default model and timeout.
        transport: Optional httpx transport, used by tests to stand in for
            a real Ollama server.
    """

    def __init__(
        self,
        config: InferenceConfig | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self._config = config or get_inference_config()
        self._client = httpx.AsyncClient(
            timeout=httpx.Timeout(self._config.timeout_seconds),
            transport=transport,
        )

    @property
    def config(self) -> InferenceConfig:
        return self._config

    def build_request(
        self,
        messages: Sequence[ConversationTurn],
        grounding_text: str | None = None,
        model: str | None = None,
    ) -> GenerationRequest:
        return GenerationRequest(
            model=model or self._config.model,
            prompt=build_prompt(messages, grounding_text),
        )

    async def open_stream(
        self,
        messages: Sequence[ConversationTurn],
        grounding_text: str | None = None,
        model: str | None = None,
    ) -> GenerationStream:
        """Start a streaming generation and wait for the response headers.

        Args:
            messages: Conversation turns, oldest first.
            grounding_text: Optional document text to ground the answer in.
            model: Optional model override.

        Returns:
            The open stream. The caller owns it and must close it.

        Raises:
            BackendUnavailable: On connection failure, timeout, or an error
                status from the backend.
        """
        body = self.build_request(messages, grounding_text, model)
        logger.info(
            f"Sending streaming request to {self._config.generate_url} "
            f"(model={body.model}, turns={len(messages)}, grounded={bool(grounding_text)})"
        )

        request = self._client.build_request(
            "POST", self._config.generate_url, json=body.model_dump()
        )
        try:
            response = await asyncio.wait_for(
                self._client.send(request, stream=True),
                timeout=self._config.timeout_seconds,
            )
        except (TimeoutError, httpx.TimeoutException) as e:
            logger.error(f"Timed out after {self._config.timeout_seconds}s waiting for backend")
            raise BackendUnavailable("Inference backend timed out") from e
        except httpx.RequestError as e:
            logger.error(f"Error communicating with inference backend: {e}")
            raise BackendUnavailable(f"Inference backend unreachable: {e}") from e

        if response.is_error:
            await response.aread()
            await response.aclose()
            logger.error(
                f"Inference backend returned HTTP {response.status_code}: {response.text[:200]}"
            )
            raise BackendUnavailable(f"Inference backend returned HTTP {response.status_code}")

        return GenerationStream(response)

    async def list_models(self) -> list[str]:
        """Return model identifiers known to the backend.

        Best-effort: any failure is logged and yields an empty list.
        """
        try:
            response = await self._client.get(self._config.tags_url)
            response.raise_for_status()
            payload = response.json()
        except (httpx.HTTPError, ValueError) as e:
            logger.warning(f"Error fetching models: {e}")
            return []

        models = payload.get("models") if isinstance(payload, dict) else None
        if not isinstance(models, list):
            return []

        names: list[str] = []
        for entry in models:
            if isinstance(entry, str):
                names.append(entry)
            elif isinstance(entry, dict) and isinstance(entry.get("name"), str):
                names.append(entry["name"])
        return names

    async def aclose(self) -> None:
        await self._client.aclose()


# Module-level singleton instance
_inference_client: InferenceClient | None = None


def get_inference_client() -> InferenceClient:
    """Get or create the global inference client.

    Returns:
        The InferenceClient instance.
    """
    global _inference_client
    if _inference_client is None:
        _inference_client = InferenceClient()
    return _inference_client


async def close_inference_client() -> None:
    """Close and forget the global inference client, if one was created."""
    global _inference_client
    if _inference_client is not None:
        await _inference_client.aclose()
        _inference_client = None
