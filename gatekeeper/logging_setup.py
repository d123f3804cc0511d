# =======================================================================================
# gatekeeper/logging_setup.py - Logger Configuration
# =======================================================================================
import sys
from loguru import logger
from .config import config

_configured = False


def configure_logging() -> None:
    """Route loguru output to stderr at the configured level (idempotent)."""
    global _configured
    if _configured:
        return

    logger.remove()
    logger.add(
        sys.stderr,
        level=config.LOG_LEVEL,
        format="<green>{time:YYYY-MM-DD HH:mm:ss}</green> | <level>{level: <8}</level> | {name}:{line} - {message}",
        backtrace=config.API_DEBUG,
        diagnose=config.API_DEBUG,
    )
    _configured = True
