"""FastAPI application factory and configuration.

Main application entry point with lifespan management, middleware,
error handlers and router registration.
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI
from fastapi.middleware.cors import CORSMiddleware

from chat_relay.api.chat import router as chat_router
from chat_relay.api.errors import register_error_handlers
from chat_relay.api.routes import router as upload_router
from chat_relay.inference.client import (
    InferenceClient,
    close_inference_client,
    get_inference_client,
)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Manage application startup and shutdown lifecycle.

    Closes the shared inference client's connection pool on shutdown.

    Args:
        app: The FastAPI application instance.

    Yields:
        Control to the application while it runs.
    """
    logger.info("Starting chat relay API...")
    yield
    logger.info("Shutting down chat relay API...")
    await close_inference_client()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application.

    Returns:
        Configured FastAPI application instance.
    """
    application = FastAPI(
        title="Ollama Chat Relay",
        description=(
            "Relays chat conversations to a local Ollama server and streams "
            "generated tokens back as Server-Sent Events. Optionally grounds "
            "answers in text extracted from an uploaded PDF."
        ),
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # The widget is embedded on third-party pages
    application.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["POST", "HEAD"],
        allow_headers=["*"],
    )

    register_error_handlers(application)
    application.include_router(chat_router)
    application.include_router(upload_router)

    @application.get("/health")
    async def health_check(
        client: Annotated[InferenceClient, Depends(get_inference_client)],
    ) -> dict[str, str]:
        """Check service health status."""
        return {
            "status": "healthy",
            "service": "chat-relay",
            "backend": client.config.backend_base_url,
            "model": client.config.model,
        }

    return application


app = create_app()
