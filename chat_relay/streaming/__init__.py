"""Streaming primitives shared by the relay and the chat widget.

Responsibilities:
    - Line assembly over arbitrarily chunked byte/text streams
    - Parsing backend NDJSON lines into token events
    - Reframing token events as Server-Sent Events with a [DONE] sentinel
"""

from chat_relay.streaming.line_buffer import LineBuffer
from chat_relay.streaming.reframer import (
    DONE_FRAME,
    DONE_SENTINEL,
    SSE_DATA_PREFIX,
    MalformedUpstreamLine,
    format_sse,
    parse_token_event,
    reframe,
    reframe_line,
)

__all__ = [
    "DONE_FRAME",
    "DONE_SENTINEL",
    "SSE_DATA_PREFIX",
    "LineBuffer",
    "MalformedUpstreamLine",
    "format_sse",
    "parse_token_event",
    "reframe",
    "reframe_line",
]
