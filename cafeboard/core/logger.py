from __future__ import annotations

import logging

from .config import settings
from .logging_config import configure_json_logging

_configured = False


def configure_logging():
    global _configured
    if _configured:
        return
    configure_json_logging(settings)
    _configured = True


def get_logger(name: str) -> logging.Logger:
    configure_logging()
    logger = logging.getLogger(name)
    logger.propagate = True
    return logger
