"""
Simple Centralized Logging Configuration

Uses Python's standard logging.basicConfig().
All configuration via environment variables in .env file.

Usage:
    # In realty_api/main.py (one-time setup)
    from realty_api.utils.logging_config import setup_logging
    setup_logging()

    # In any module
    import logging
    logger = logging.getLogger(__name__)
    logger.info("This works!")
"""

import logging
import sys

from realty_api.config import settings


def _get_log_level(level_str: str) -> int:
    """Convert string log level to logging constant"""
    level_map = {
        "DEBUG": logging.DEBUG,
        "INFO": logging.INFO,
        "WARNING": logging.WARNING,
        "ERROR": logging.ERROR,
        "CRITICAL": logging.CRITICAL,
    }
    return level_map.get(level_str.upper(), logging.INFO)


def setup_logging() -> None:
    """Configure logging from Pydantic Settings

    Reads from settings:
    - LOG_LEVEL: Global log level (default: INFO)
    - DATABASE_ECHO: keep SQLAlchemy engine logs visible when enabled
    """
    root_level = _get_log_level(settings.LOG_LEVEL)

    log_format = "%(asctime)s | %(name)-32s | %(levelname)-8s | %(message)s"
    date_format = "%Y-%m-%d %H:%M:%S"

    logging.basicConfig(
        level=root_level,
        format=log_format,
        datefmt=date_format,
        handlers=[logging.StreamHandler(sys.stdout)],
        force=True,  # Override any existing configuration
    )

    # SQLAlchemy - silent unless SQL echo was requested
    if not settings.DATABASE_ECHO:
        logging.getLogger("sqlalchemy.engine").setLevel(logging.CRITICAL)
        logging.getLogger("sqlalchemy.pool").setLevel(logging.CRITICAL)
        logging.getLogger("sqlalchemy").setLevel(logging.CRITICAL)

    # Note: uvicorn.error logs all messages, not just errors
    logging.getLogger("uvicorn.error").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(logging.INFO)

    # Other noisy libraries
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("websockets").setLevel(logging.WARNING)
    logging.getLogger("apscheduler").setLevel(logging.WARNING)
