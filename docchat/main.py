"""Main application entry point.

Runs the NiceGUI chat view. Environment variables are loaded from .env file.
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


def main() -> None:
    """Application entry point.

    Open /chat/{session_id}?document_name=... with a session id issued by
    the upload flow.
    """
    from nicegui import ui

    from docchat.config import get_chat_config
    from docchat.ui import chat_page  # noqa: F401 - Registers the pages

    config = get_chat_config()
    port = int(os.getenv("PORT", "8081"))
    logger.info(f"Starting Document Chat in {config.transport_mode.value} mode")
    logger.info(f"Backend API at {config.api_base_url}")
    logger.info(f"Chat UI available at http://localhost:{port}/")

    ui.run(
        title="Document Chat",
        host=os.getenv("HOST", "0.0.0.0"),
        port=port,
        reload=False,
        show=False,
    )


if __name__ == "__main__":
    main()
