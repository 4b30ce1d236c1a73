"""
Logging Configuration

Sets up standard logging for the portal. Modules obtain their own
logger with ``logging.getLogger(__name__)``.
"""

import logging
import sys

from chgk_portal.config import settings


def setup_logging() -> None:
    """Configure the root logger from ``settings.LOG_LEVEL``."""
    logging.basicConfig(
        level=getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.StreamHandler(sys.stdout)
        ]
    )

    # Set specific logger levels
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    logger = logging.getLogger(__name__)
    logger.info("Logging configuration initialized")
