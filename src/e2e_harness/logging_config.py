"""Logging setup for harness runs."""
from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

_HANDLER_NAME = "e2e_harness"


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach a timestamped stream handler to the ``e2e_harness`` logger.

    Level comes from ``level``, then ``E2E_LOG_LEVEL``, then INFO.
    Calling it again only updates the level.
    """
    level_name = (level or os.environ.get("E2E_LOG_LEVEL") or "INFO").upper()
    logger = logging.getLogger("e2e_harness")
    logger.setLevel(getattr(logging, level_name, logging.INFO))

    if not any(h.get_name() == _HANDLER_NAME for h in logger.handlers):
        handler = logging.StreamHandler()
        handler.set_name(_HANDLER_NAME)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        logger.addHandler(handler)
    return logger
