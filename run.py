"""
Entry point: serve the ThreadForge API with uvicorn.

Usage::

    python run.py
"""

import logging
import sys

import uvicorn
from dotenv import load_dotenv

load_dotenv()

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)-8s %(name)s | %(message)s",
    datefmt="%H:%M:%S",
)
logger = logging.getLogger("run")


def main() -> None:
    from threadforge.config import get_settings, validate_env
    from threadforge.exceptions import ConfigurationError

    try:
        validate_env(strict=True)
        settings = get_settings()
    except ConfigurationError:
        logger.exception("Invalid configuration")
        sys.exit(1)

    logging.getLogger().setLevel(settings.log_level)
    logger.info(
        "Starting %s on %s:%s (%s)",
        settings.app_name,
        settings.server.host,
        settings.server.port,
        settings.environment,
    )
    uvicorn.run(
        "threadforge.api.app:create_app",
        factory=True,
        host=settings.server.host,
        port=settings.server.port,
        log_level=settings.log_level.lower(),
    )


if __name__ == "__main__":
    try:
        main()
    except KeyboardInterrupt:
        logger.info("Interrupted")
        sys.exit(0)
