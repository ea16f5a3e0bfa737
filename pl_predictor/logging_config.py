"""
Logging setup for the predictor service.

Every module logs through ``logging.getLogger(__name__)``; this only wires the
root logger once at startup.
"""

import logging

from .config import LOG_FORMAT, LOG_LEVEL

_configured = False


def setup_logging(level: str = LOG_LEVEL, fmt: str = LOG_FORMAT) -> None:
    global _configured
    if _configured:
        return

    root_logger = logging.getLogger()
    root_logger.setLevel(getattr(logging, level.upper(), logging.INFO))

    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(fmt))
    root_logger.addHandler(handler)

    # Keep SQL noise out of application logs
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)

    _configured = True
