"""NDJSON to Server-Sent Events reframing.

Ollama streams one JSON object per line. The relay forwards each object to
the browser as an SSE ``data:`` frame and replaces the ``done`` event with
the ``[DONE]`` sentinel.
"""

import json
import logging
from collections.abc import AsyncIterable, AsyncIterator

from pydantic import ValidationError

from chat_relay.models.schemas import TokenEvent
from chat_relay.streaming.line_buffer import LineBuffer

logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"
SSE_DATA_PREFIX = "data: "

# Malformed lines are truncated to this length in log output
_LOG_PREVIEW = 200


class MalformedUpstreamLine(ValueError):
    """Raised when a backend line is not a valid token event."""


def format_sse(data: str) -> str:
    """Wrap a payload in a single SSE data frame."""
    return f"{SSE_DATA_PREFIX}{data}\n\n"


DONE_FRAME = format_sse(DONE_SENTINEL)


def parse_token_event(line: str) -> TokenEvent:
    """Decode one NDJSON line into a TokenEvent.

    Args:
        line: A complete, non-blank line from the backend.

    Returns:
        The decoded event.

    Raises:
        MalformedUpstreamLine: If the line is not a JSON object with a
            string ``response`` and boolean ``done``.
    """
    try:
        return TokenEvent.model_validate_json(line)
    except ValidationError as e:
        raise MalformedUpstreamLine(f"Invalid token event: {line[:_LOG_PREVIEW]!r}") from e


def reframe_line(line: str) -> str | None:
    """Translate one backend line into an outbound SSE frame.

    Returns:
        ``DONE_FRAME`` for a done event, a data frame carrying the event
        otherwise, or None if the line is blank or malformed.
    """
    if not line.strip():
        return None
    try:
        event = parse_token_event(line)
    except MalformedUpstreamLine as e:
        logger.warning(f"Skipping malformed upstream line: {e}")
        return None
    # done wins over any fragment carried by the same event
    if event.done:
        return DONE_FRAME
    return format_sse(json.dumps(event.model_dump(), ensure_ascii=False))


async def reframe(chunks: AsyncIterable[str | bytes]) -> AsyncIterator[str]:
    """Re-emit a chunked NDJSON stream as SSE frames.

    Frames are yielded one at a time, so a slow consumer stalls reading
    from ``chunks`` instead of letting frames pile up.

    Args:
        chunks: Raw backend body, chunked however the transport likes.

    Yields:
        SSE frames in backend order. ``DONE_FRAME`` is yielded at most once
        and always last; reading stops as soon as it has been sent.
        No sentinel is synthesized if the backend never sends ``done``.
    """
    buffer = LineBuffer()

    async for chunk in chunks:
        for line in buffer.feed(chunk):
            frame = reframe_line(line)
            if frame is None:
                continue
            yield frame
            if frame == DONE_FRAME:
                return

    frame = reframe_line(buffer.flush())
    if frame is not None:
        yield frame
