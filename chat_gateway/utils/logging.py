# chat_gateway/utils/logging.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — logging utilities
--------------------------------------
Central logging configuration for the gateway.

We try to:
- Use a consistent format across all modules.
- Honour settings.debug (more verbose in dev).
- Play nice with Uvicorn/FastAPI logs.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(
    *,
    debug: bool = False,
    level: Optional[int] = None,
) -> None:
    """
    Configure root logging for the process.

    Parameters
    ----------
    debug:
        If True, default log level becomes DEBUG, otherwise INFO.
        This is typically wired from settings.debug.
    level:
        Optional explicit logging level (overrides debug flag).

    This function is idempotent: calling it multiple times is safe.
    """
    if level is not None:
        base_level = level
    else:
        base_level = logging.DEBUG if debug else logging.INFO

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(base_level)
        for h in root.handlers:
            h.setLevel(base_level)
    else:
        logging.basicConfig(
            level=base_level,
            format=LOG_FORMAT,
            datefmt=LOG_DATEFMT,
        )

    # The relay logs its own per-request summary; per-request access/HTTP
    # client lines are just noise next to it.
    for noisy in ("uvicorn.access", "httpx", "httpcore"):
        logging.getLogger(noisy).setLevel(os.getenv("GATEWAY_NOISY_LOG_LEVEL", "WARNING"))


def get_logger(name: str) -> logging.Logger:
    """
    Small convenience wrapper around logging.getLogger.

    Usage:
        from chat_gateway.utils import get_logger
        logger = get_logger(__name__)
    """
    return logging.getLogger(name)
