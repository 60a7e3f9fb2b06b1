"""Main entry point for the Scrape Monitor API."""

import os
import uvicorn

from scrape_monitor.core.config import settings
from scrape_monitor.core.logging import logger


def main():
    """Run the Scrape Monitor API server."""
    logger.info(f"Starting {settings.APP_NAME} API server")

    # Dev mode: enable auto-reload (set DEV_MODE=1 or UVICORN_RELOAD=1)
    dev_mode = os.environ.get("DEV_MODE", "0") == "1" or os.environ.get("UVICORN_RELOAD", "0") == "1"

    if dev_mode:
        logger.info("Running in DEV MODE with auto-reload enabled")
        uvicorn.run(
            "scrape_monitor.api.main:app",
            host=settings.SERVER_HOST,
            port=settings.SERVER_PORT,
            reload=True,
            reload_dirs=["src"],
            reload_excludes=["*.log", "*.pyc", "__pycache__", "logs/*"],
            log_level=settings.LOG_LEVEL.lower(),
        )
    else:
        # Single worker: dashboard state lives in process memory
        logger.info("Running in PRODUCTION MODE")
        uvicorn.run(
            "scrape_monitor.api.main:app",
            host=settings.SERVER_HOST,
            port=settings.SERVER_PORT,
            reload=False,
            log_level=settings.LOG_LEVEL.lower(),
        )


if __name__ == "__main__":
    main()
