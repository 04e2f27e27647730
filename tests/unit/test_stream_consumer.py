"""Unit tests for the StreamConsumer state machine.

The relay is replaced by an httpx.MockTransport serving scripted SSE bodies.
"""

import asyncio
import json
from collections.abc import AsyncIterator

import httpx
import pytest
import pytest_check as check

from chat_relay.models.schemas import AssembledMessage
from chat_relay.ui.stream_consumer import ExchangeAborted, ExchangeState, StreamConsumer

CHAT_URL = "http://relay.test/api/chat"
PAYLOAD = {"messages": [{"role": "user", "content": "Hi"}]}


def frame(fragment: str) -> str:
    return f"data: {json.dumps({'response': fragment, 'done': False})}\n\n"


DONE = "data: [DONE]\n\n"


def sse_client(*chunks: str, status_code: int = 200) -> httpx.AsyncClient:
    async def body() -> AsyncIterator[bytes]:
        for chunk in chunks:
            yield chunk.encode()

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code, content=body(), headers={"Content-Type": "text/event-stream"}
        )

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


class TestCompletedExchange:
    """Tests for exchanges that end with the sentinel."""

    async def test_concatenates_fragments(self) -> None:
        """Fragments "Hel" and "lo" assemble to "Hello"."""
        async with sse_client(frame("Hel"), frame("lo"), DONE) as client:
            consumer = StreamConsumer(client, CHAT_URL)
            message = await consumer.consume(PAYLOAD)

        check.equal(message.content, "Hello")
        check.equal(message.role.value, "assistant")
        check.equal(consumer.state, ExchangeState.COMPLETED)

    async def test_publishes_each_update_in_order(self) -> None:
        """Every fragment publishes a replacement message, oldest first."""
        published: list[AssembledMessage] = []

        async with sse_client(frame("a"), frame("b"), frame("c"), DONE) as client:
            consumer = StreamConsumer(client, CHAT_URL, on_update=published.append)
            await consumer.consume(PAYLOAD)

        check.equal([m.content for m in published], ["a", "ab", "abc"])
        check.is_not(published[0], published[1])

    async def test_handles_frames_split_across_chunks(self) -> None:
        """Line splitting is independent of how the body is chunked."""
        body = frame("- one") + frame("\n- two") + DONE
        chunks = [body[i : i + 7] for i in range(0, len(body), 7)]

        async with sse_client(*chunks) as client:
            message = await StreamConsumer(client, CHAT_URL).consume(PAYLOAD)

        assert message.content == "- one\n- two"

    async def test_skips_undecodable_frame(self) -> None:
        async with sse_client(frame("a"), "data: {nope\n\n", frame("b"), DONE) as client:
            message = await StreamConsumer(client, CHAT_URL).consume(PAYLOAD)

        assert message.content == "ab"

    async def test_ignores_fragments_after_sentinel(self) -> None:
        """The message is frozen once [DONE] is seen."""
        async with sse_client(frame("a"), DONE, frame("late")) as client:
            message = await StreamConsumer(client, CHAT_URL).consume(PAYLOAD)

        assert message.content == "a"

    async def test_sentinel_without_trailing_newline(self) -> None:
        async with sse_client(frame("a"), "data: [DONE]") as client:
            consumer = StreamConsumer(client, CHAT_URL)
            await consumer.consume(PAYLOAD)

        assert consumer.state is ExchangeState.COMPLETED

    async def test_consumer_is_single_use(self) -> None:
        async with sse_client(DONE) as client:
            consumer = StreamConsumer(client, CHAT_URL)
            await consumer.consume(PAYLOAD)

            with pytest.raises(RuntimeError, match="single-use"):
                await consumer.consume(PAYLOAD)


class TestAbortedExchange:
    """Tests for exchanges that end without the sentinel."""

    async def test_close_without_sentinel_aborts(self) -> None:
        """An unexpected close is an abort, not a silent completion."""
        async with sse_client(frame("partial")) as client:
            consumer = StreamConsumer(client, CHAT_URL)
            with pytest.raises(ExchangeAborted, match="closed before"):
                await consumer.consume(PAYLOAD)

        check.equal(consumer.state, ExchangeState.ABORTED)
        check.equal(consumer.message.content, "partial")

    async def test_error_status_aborts_with_detail(self) -> None:
        async with sse_client(
            '{"error": "Failed to generate response from inference backend"}',
            status_code=500,
        ) as client:
            consumer = StreamConsumer(client, CHAT_URL)
            with pytest.raises(ExchangeAborted, match="HTTP 500: Failed to generate"):
                await consumer.consume(PAYLOAD)

        assert consumer.state is ExchangeState.ABORTED

    async def test_connection_error_aborts(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("Connection refused", request=request)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            consumer = StreamConsumer(client, CHAT_URL)
            with pytest.raises(ExchangeAborted, match="Connection failed"):
                await consumer.consume(PAYLOAD)

        assert consumer.state is ExchangeState.ABORTED

    async def test_cancel_aborts_and_releases_stream(self) -> None:
        """Cancelling mid-stream ends in ABORTED and stops reading the body."""
        first_fragment = asyncio.Event()
        released = asyncio.Event()

        async def body() -> AsyncIterator[bytes]:
            try:
                yield frame("a").encode()
                await asyncio.Event().wait()
                yield DONE.encode()
            finally:
                released.set()

        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, content=body())

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            consumer = StreamConsumer(
                client, CHAT_URL, on_update=lambda message: first_fragment.set()
            )
            task = asyncio.create_task(consumer.consume(PAYLOAD))
            await asyncio.wait_for(first_fragment.wait(), timeout=1.0)
            check.equal(consumer.state, ExchangeState.STREAMING)

            task.cancel()
            with pytest.raises(asyncio.CancelledError):
                await task

        check.equal(consumer.state, ExchangeState.ABORTED)
        check.is_true(released.is_set())
