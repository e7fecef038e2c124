# chat_gateway/utils/timers.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — timing utilities
-------------------------------------
Lightweight stopwatch for measuring how long an upstream stream took.
"""

from __future__ import annotations

import logging
import time
from typing import Optional


class Stopwatch:
    """
    Simple stopwatch context manager.

    Example:
        from chat_gateway.utils import Stopwatch, get_logger

        logger = get_logger(__name__)

        with Stopwatch("Ollama stream", logger):
            ...

    This will log something like:
        Ollama stream took 2.371 s

    Pass `logger=None` and read `.elapsed` to log the figure yourself.
    """

    def __init__(
        self,
        label: str,
        logger: Optional[logging.Logger] = None,
        level: int = logging.INFO,
    ) -> None:
        self.label = label
        self.logger = logger
        self.level = level
        self.elapsed: float = 0.0
        self._start: float = 0.0

    def __enter__(self) -> "Stopwatch":
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc, exc_tb) -> None:
        self.elapsed = time.perf_counter() - self._start
        if self.logger is not None:
            self.logger.log(self.level, "%s took %.3f s", self.label, self.elapsed)
