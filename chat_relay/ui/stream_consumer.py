"""Consumer side of the relay's SSE stream.

Reads the relay response incrementally, splits it back into lines with its
own LineBuffer, and folds token fragments into one AssembledMessage. Each
fragment publishes a fresh AssembledMessage that replaces the previous
in-progress one.

Per exchange:

    IDLE -> SENDING -> STREAMING -> COMPLETED | ABORTED

SENDING becomes STREAMING on the first received byte, STREAMING becomes
COMPLETED on ``data: [DONE]``. Connection errors, error statuses, a close
without the sentinel, and cancellation all end in ABORTED.
"""

import asyncio
import logging
from collections.abc import Callable
from enum import Enum
from typing import Any

import httpx

from chat_relay.models.schemas import AssembledMessage
from chat_relay.streaming.line_buffer import LineBuffer
from chat_relay.streaming.reframer import (
    DONE_SENTINEL,
    SSE_DATA_PREFIX,
    MalformedUpstreamLine,
    parse_token_event,
)

logger = logging.getLogger(__name__)


class ExchangeState(str, Enum):
    """Lifecycle of one exchange."""

    IDLE = "idle"
    SENDING = "sending"
    STREAMING = "streaming"
    COMPLETED = "completed"
    ABORTED = "aborted"


class ExchangeAborted(Exception):
    """Raised when an exchange ends without the terminal sentinel."""


class StreamConsumer:
    """Runs a single exchange against the relay.

    Instances are single-use: one ``consume()`` call per exchange.

    Args:
        client: HTTP client used to reach the relay.
        url: Full URL of the relay's chat endpoint.
        on_update: Called with each new in-progress AssembledMessage, in
            fragment arrival order.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        url: str,
        on_update: Callable[[AssembledMessage], None] | None = None,
    ) -> None:
        self._client = client
        self._url = url
        self._on_update = on_update
        self.state = ExchangeState.IDLE
        self.message = AssembledMessage()

    async def consume(self, payload: dict[str, Any]) -> AssembledMessage:
        """Send the chat request and assemble the streamed reply.

        Args:
            payload: JSON body for the relay's chat endpoint.

        Returns:
            The completed assistant message.

        Raises:
            ExchangeAborted: If the relay errors, the connection fails, or
                the stream closes before ``[DONE]``.
            asyncio.CancelledError: If the exchange is cancelled; the
                connection is released and the state is ABORTED.
        """
        if self.state is not ExchangeState.IDLE:
            raise RuntimeError("StreamConsumer instances are single-use")

        self.state = ExchangeState.SENDING
        try:
            async with self._client.stream(
                "POST",
                self._url,
                json=payload,
                headers={"Accept": "text/event-stream"},
            ) as response:
                if response.is_error:
                    await response.aread()
                    raise ExchangeAborted(_describe_error(response))

                if await self._read_events(response):
                    self.state = ExchangeState.COMPLETED
                    return self.message
        except ExchangeAborted:
            self.state = ExchangeState.ABORTED
            raise
        except httpx.HTTPError as e:
            self.state = ExchangeState.ABORTED
            raise ExchangeAborted(f"Connection failed: {e}") from e
        except asyncio.CancelledError:
            self.state = ExchangeState.ABORTED
            logger.info("Exchange cancelled")
            raise

        self.state = ExchangeState.ABORTED
        raise ExchangeAborted("Stream closed before the response was complete")

    async def _read_events(self, response: httpx.Response) -> bool:
        """Process the body until the sentinel or end of stream.

        Returns:
            True if the sentinel was seen.
        """
        buffer = LineBuffer()
        async for chunk in response.aiter_bytes():
            if self.state is ExchangeState.SENDING:
                self.state = ExchangeState.STREAMING
            for line in buffer.feed(chunk):
                if self._handle_line(line):
                    return True
        return self._handle_line(buffer.flush())

    def _handle_line(self, line: str) -> bool:
        """Apply one SSE line. Returns True for the sentinel frame."""
        if not line.startswith(SSE_DATA_PREFIX):
            return False

        data = line.removeprefix(SSE_DATA_PREFIX)
        if data.strip() == DONE_SENTINEL:
            return True

        try:
            event = parse_token_event(data)
        except MalformedUpstreamLine as e:
            logger.warning(f"Skipping undecodable frame: {e}")
            return False

        if event.response:
            self.message = AssembledMessage(content=self.message.content + event.response)
            if self._on_update is not None:
                self._on_update(self.message)
        return False


def _describe_error(response: httpx.Response) -> str:
    try:
        detail = response.json().get("error")
    except (ValueError, AttributeError):
        detail = None
    return f"HTTP {response.status_code}" + (f": {detail}" if detail else "")
