"""Chat relay endpoint.

POST /api/chat has two modes, chosen by the body:

- ``{"messages": [...], "groundingText"?: str, "model"?: str}`` streams the
  backend's answer back as Server-Sent Events, one ``data:`` frame per token
  event, ending with ``data: [DONE]``.
- A body without ``messages`` (an empty body, or an empty list) returns
  ``{"models": [...]}`` from the backend.

If the backend cannot be reached the request fails with 500 before the
event stream is opened. Failures after that just end the stream without a
sentinel, which the widget reports as an aborted exchange.
"""

import json
import logging
from collections.abc import AsyncIterator
from typing import Annotated, Any

import httpx
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import StreamingResponse
from pydantic import ValidationError
from starlette.background import BackgroundTask

from chat_relay.inference.client import (
    BackendUnavailable,
    GenerationStream,
    InferenceClient,
    get_inference_client,
)
from chat_relay.models.schemas import ChatRequest, ModelsResponse
from chat_relay.streaming.reframer import reframe

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

SSE_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _read_json_body(request: Request) -> dict[str, Any]:
    """Decode the request body as a JSON object.

    An empty body reads as ``{}``, i.e. a models query.

    Raises:
        HTTPException: 400 if the body is not a JSON object.
    """
    if not (await request.body()).strip():
        return {}

    try:
        body = await request.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be valid JSON",
        ) from e

    if not isinstance(body, dict):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Request body must be a JSON object",
        )
    return body


def _parse_chat_request(body: dict[str, Any]) -> ChatRequest:
    try:
        return ChatRequest.model_validate(body)
    except ValidationError as e:
        logger.warning(f"Rejected chat request: {e.error_count()} validation error(s)")
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Invalid messages format",
        ) from e


async def relay_events(stream: GenerationStream) -> AsyncIterator[str]:
    """Forward a backend generation stream as SSE frames.

    Mid-stream backend failures are logged and end the stream silently.
    The backend response is closed however the stream ends, including when
    the browser disconnects.
    """
    try:
        async for frame in reframe(stream.chunks()):
            yield frame
    except httpx.HTTPError as e:
        logger.warning(f"Backend stream failed mid-response: {e}")
    finally:
        await stream.aclose()


@router.api_route("/chat", methods=["POST"], response_model=None)
async def chat(
    request: Request,
    client: Annotated[InferenceClient, Depends(get_inference_client)],
) -> StreamingResponse | ModelsResponse:
    """Relay a conversation to the backend, or list its models.

    Returns:
        An SSE stream of reframed token events, or ModelsResponse when the
        body has no message list.

    Raises:
        400: Body is not JSON, or the message list is malformed.
        500: Backend unreachable or timed out before streaming began.
    """
    body = await _read_json_body(request)

    if not body.get("messages"):
        models = await client.list_models()
        return ModelsResponse(models=models)

    chat_request = _parse_chat_request(body)

    try:
        stream = await client.open_stream(
            chat_request.messages,
            grounding_text=chat_request.grounding_text,
            model=chat_request.model,
        )
    except BackendUnavailable as e:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to generate response from inference backend",
        ) from e

    return StreamingResponse(
        relay_events(stream),
        media_type="text/event-stream",
        headers=SSE_HEADERS,
        background=BackgroundTask(stream.aclose),
    )
