# chat_gateway/utils/__init__.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Utility toolbox
------------------------------------
Shared helper functions that are used across the gateway:

- logging   : central logging configuration
- timers    : small timing/profiling helpers

Import from here when it makes sense, for a clean public API, e.g.:

    from chat_gateway.utils import setup_logging, get_logger
"""

from __future__ import annotations

from .logging import (  # noqa: F401
    setup_logging,
    get_logger,
)

from .timers import (  # noqa: F401
    Stopwatch,
)
