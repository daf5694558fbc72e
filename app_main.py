"""Application entry point for the QuizDesk server."""

from __future__ import annotations

import socket

from quizdesk.constants.about import APP_NAME, APP_VERSION
from quizdesk.constants.network_constants import DEFAULT_HOST, DEFAULT_PORT
from quizdesk.core.quiz_manager import QuizManager
from quizdesk.core.services.memory_store import InMemoryQuizStore
from quizdesk.server.api_server import run_api_server
from quizdesk.utils.logging_config import configure_logging


def _determine_api_url(port: int) -> str:
    """Best-effort determination of the LAN address students should use."""
    try:
        with socket.socket(socket.AF_INET, socket.SOCK_DGRAM) as sock:
            sock.connect(("8.8.8.8", 80))
            ip_address = sock.getsockname()[0]
    except OSError:
        ip_address = "127.0.0.1"
    return f"http://{ip_address}:{port}/"


def main() -> None:
    """Initialize logging, seed the demo data and serve the API."""
    logger = configure_logging()
    logger.info("Starting %s %s", APP_NAME, APP_VERSION)

    quiz_manager = QuizManager(InMemoryQuizStore.with_demo_data())
    logger.info("API available at %s", _determine_api_url(DEFAULT_PORT))
    run_api_server(quiz_manager=quiz_manager, host=DEFAULT_HOST, port=DEFAULT_PORT)


if __name__ == "__main__":
    main()
