import secrets
import sys
from typing import Optional
from loguru import logger as loguru_logger

from src.config.settings_env import settings


def initialize_logger():
    """Initialize the logger based on DEV_MODE setting."""
    loguru_logger.remove()

    if settings.DEV_MODE:
        loguru_logger.add(sys.stderr, level="TRACE")
    else:
        loguru_logger.add(sys.stderr, level="INFO")

    return loguru_logger


def mint_qr_token(num_bytes: Optional[int] = None) -> str:
    """Random hex token printed into a reservation's QR code."""
    return secrets.token_hex(num_bytes or settings.QR_TOKEN_BYTES)


# Initialize logger
logger = initialize_logger()
