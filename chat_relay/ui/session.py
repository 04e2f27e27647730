"""Chat session state for one widget instance.

Holds the finished conversation, the single in-progress assistant turn and
the session's grounding text, and runs exchanges through StreamConsumer.
Only the session writes these fields.
"""

import asyncio
import logging
import os
from collections.abc import Callable

import httpx

from chat_relay.models.schemas import (
    AssembledMessage,
    ChatRequest,
    ConversationTurn,
    Role,
)
from chat_relay.ui.stream_consumer import ExchangeAborted, ExchangeState, StreamConsumer

logger = logging.getLogger(__name__)

API_BASE_URL = os.getenv("API_BASE_URL", "http://localhost:8000")

EXCHANGE_FAILED_NOTICE = "An error occurred while sending the message. Please try again."
UPLOAD_SUCCESS_NOTICE = "PDF uploaded successfully. You can now ask questions about its content."


class UploadFailed(Exception):
    """Raised when the relay rejects or fails to process an upload."""


def render_transcript(turns: list[ConversationTurn]) -> str:
    """Render turns as ``"role: content"`` blocks separated by blank lines."""
    return "\n\n".join(turn.render() for turn in turns)


class ChatSession:
    """Manages chat state for a widget session.

    Args:
        client: HTTP client for the relay. The session does not close it.
        api_base_url: Base URL of the relay API.
        on_change: Called whenever the visible conversation changes.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        api_base_url: str = API_BASE_URL,
        on_change: Callable[[], None] | None = None,
    ) -> None:
        self._client = client
        self._api_base_url = api_base_url.rstrip("/")
        self.on_change = on_change
        self.messages: list[ConversationTurn] = []
        self.in_progress: AssembledMessage | None = None
        self.grounding_text: str | None = None
        self._consumer: StreamConsumer | None = None
        self._task: asyncio.Task[AssembledMessage] | None = None

    @property
    def chat_url(self) -> str:
        return f"{self._api_base_url}/api/chat"

    @property
    def upload_url(self) -> str:
        return f"{self._api_base_url}/api/upload-pdf"

    @property
    def state(self) -> ExchangeState:
        if self._consumer is None:
            return ExchangeState.IDLE
        return self._consumer.state

    @property
    def is_busy(self) -> bool:
        return self._task is not None and not self._task.done()

    def turns(self) -> list[ConversationTurn]:
        """Conversation as displayed: finished turns plus the in-progress reply."""
        if self.in_progress is None:
            return list(self.messages)
        return [*self.messages, self.in_progress.as_turn()]

    def add_message(self, role: Role, content: str) -> None:
        self.messages.append(ConversationTurn(role=role, content=content))
        self._notify()

    def transcript(self) -> str:
        return render_transcript(self.messages)

    async def send(self, text: str) -> ExchangeState:
        """Run one exchange for a user message.

        An exchange still in flight is cancelled first. On failure a system
        notice is appended instead of the partial reply.

        Args:
            text: The user's message.

        Returns:
            Final state of the exchange.
        """
        text = text.strip()
        if not text:
            return self.state

        await self.cancel()

        self.add_message(Role.USER, text)
        request = ChatRequest(messages=self.messages, grounding_text=self.grounding_text)
        payload = request.model_dump(mode="json", by_alias=True, exclude_none=True)

        self._consumer = StreamConsumer(self._client, self.chat_url, on_update=self._publish)
        self._task = asyncio.create_task(self._consumer.consume(payload))

        try:
            message = await self._task
        except ExchangeAborted as e:
            logger.warning(f"Exchange aborted: {e}")
            self.in_progress = None
            self.add_message(Role.SYSTEM, EXCHANGE_FAILED_NOTICE)
        except asyncio.CancelledError:
            self.in_progress = None
            self._notify()
            current = asyncio.current_task()
            if current is not None and current.cancelling():
                raise
        else:
            self.in_progress = None
            self.add_message(Role.ASSISTANT, message.content)

        return self.state

    async def cancel(self) -> None:
        """Abort the exchange in flight, releasing its connection."""
        task = self._task
        if task is None or task.done():
            return
        task.cancel()
        try:
            await task
        except (asyncio.CancelledError, ExchangeAborted):
            pass
        self.in_progress = None
        self._notify()

    async def upload_document(self, filename: str, content: bytes) -> None:
        """Upload a PDF and adopt its text as the session's grounding text.

        Raises:
            UploadFailed: If the relay is unreachable or rejects the file.
        """
        try:
            response = await self._client.post(
                self.upload_url,
                files={"pdf": (filename, content, "application/pdf")},
            )
        except httpx.HTTPError as e:
            raise UploadFailed(f"Upload failed: {e}") from e

        if response.is_error:
            try:
                detail = response.json().get("error")
            except (ValueError, AttributeError):
                detail = None
            raise UploadFailed(detail or f"Upload failed with HTTP {response.status_code}")

        self.grounding_text = response.json()["content"]
        logger.info(f"Grounding text set from {filename} ({len(self.grounding_text)} chars)")
        self.add_message(Role.SYSTEM, UPLOAD_SUCCESS_NOTICE)

    async def reset(self) -> None:
        """Start over: cancel any exchange, drop the conversation and grounding text."""
        await self.cancel()
        self.messages.clear()
        self.grounding_text = None
        self._consumer = None
        self._notify()

    def _publish(self, message: AssembledMessage) -> None:
        self.in_progress = message
        self._notify()

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change()
