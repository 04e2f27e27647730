"""Main application entry point.

Runs the FastAPI relay (port 8000) with the NiceGUI chat widget mounted.
Environment variables are loaded from .env file.
"""

import logging
import os
import sys

from dotenv import load_dotenv

# Load environment variables before any other imports that might need them
load_dotenv()

# Configure logging
logging.basicConfig(
    level=os.getenv("LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)
logger = logging.getLogger(__name__)


def run_integrated() -> None:
    """Run the relay with the chat widget mounted on the same server.

    FastAPI handles /api and /health, NiceGUI serves the widget at /.
    """
    import uvicorn
    from nicegui import ui

    from chat_relay.api.app import create_app
    from chat_relay.ui.chat_page import chat_page  # noqa: F401 - Registers the page

    app = create_app()

    ui.run_with(
        app,
        title="Chat",
        storage_secret=os.getenv("NICEGUI_STORAGE_SECRET", "chat-relay-secret"),
    )

    port = int(os.getenv("PORT", "8000"))
    logger.info(f"Starting integrated server on http://localhost:{port}")
    logger.info(f"API docs available at http://localhost:{port}/docs")

    uvicorn.run(
        app,
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        log_level=os.getenv("LOG_LEVEL", "info").lower(),
    )


def run_separate() -> None:
    """Run the relay and the widget as separate servers.

    Relay on port 8000, widget on port 8080 (set API_BASE_URL accordingly).
    """
    import subprocess
    import time

    logger.info("Starting relay on http://localhost:8000")
    logger.info("Starting chat widget on http://localhost:8080")

    relay_proc = subprocess.Popen(
        [
            sys.executable,
            "-m",
            "uvicorn",
            "chat_relay.api.app:app",
            "--host",
            os.getenv("HOST", "0.0.0.0"),
            "--port",
            "8000",
        ]
    )
    widget_proc = subprocess.Popen(
        [sys.executable, "-c", "from chat_relay.ui.chat_page import main; main()"]
    )

    try:
        while relay_proc.poll() is None and widget_proc.poll() is None:
            time.sleep(1)
    except KeyboardInterrupt:
        logger.info("Shutting down servers...")
    finally:
        relay_proc.terminate()
        widget_proc.terminate()
        relay_proc.wait()
        widget_proc.wait()


def check_config() -> None:
    """Validate the inference settings before any server starts.

    Raises:
        SystemExit: If OLLAMA_* holds an invalid URL, model or timeout.
    """
    from pydantic import ValidationError

    from chat_relay.inference.config import get_inference_config

    try:
        config = get_inference_config()
    except ValidationError as e:
        logger.error(f"Invalid inference configuration:\n{e}")
        raise SystemExit(1) from e

    logger.info(f"Inference backend {config.backend_base_url} (model {config.model})")


RUN_MODES = {"integrated": run_integrated, "separate": run_separate}


def main() -> None:
    """Application entry point.

    Set RUN_MODE=separate to run the relay and the widget on different ports.
    Default is integrated mode (both on port 8000).
    """
    mode = os.getenv("RUN_MODE", "integrated").lower()
    if mode not in RUN_MODES:
        logger.error(f"Unknown RUN_MODE {mode!r}, expected one of {sorted(RUN_MODES)}")
        raise SystemExit(2)

    check_config()
    logger.info(f"Starting chat relay in {mode} mode")
    RUN_MODES[mode]()


if __name__ == "__main__":
    main()
