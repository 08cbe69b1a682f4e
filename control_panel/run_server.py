# control_panel/run_server.py
"""Run the control panel API server."""

import logging
import sys

import uvicorn

from control_panel.config import settings

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format=LOG_FORMAT,
)

if settings.log_file:
    file_handler = logging.FileHandler(settings.log_file)
    file_handler.setFormatter(logging.Formatter(LOG_FORMAT))
    logging.getLogger().addHandler(file_handler)

logger = logging.getLogger(__name__)


def main():
    """Main entry point."""
    logger.info("=" * 80)
    logger.info("SERVER CONTROL PANEL")
    logger.info("=" * 80)
    logger.info(f"Version: {settings.panel_version}")
    logger.info(f"Listening on {settings.host}:{settings.port}")

    try:
        uvicorn.run(
            "control_panel.api.main:app",
            host=settings.host,
            port=settings.port,
            log_config=None,
        )
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
