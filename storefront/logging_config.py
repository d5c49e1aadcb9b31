"""
Logging setup shared by the API process and the client tooling.

Modules log through ``logging.getLogger(__name__)``; this only attaches the
console handler to the ``storefront`` logger once.
"""
import logging
import sys
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: Optional[str] = None) -> logging.Logger:
    from storefront.config import settings

    level = (level or settings.LOG_LEVEL).upper()
    logger = logging.getLogger("storefront")
    logger.setLevel(level)

    if not logger.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setLevel(level)
        handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=DATE_FORMAT))
        logger.addHandler(handler)

    # avoid duplicate lines under uvicorn's root handler
    logger.propagate = False
    return logger
