# chat_gateway/core/types.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Shared type helpers
----------------------------------------
Small shared type definitions used between the relay and the routers:

- RelayEventKind : "token" | "error" | "done"
- RelayEvent     : one item yielded by InferenceRelay.stream()
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

RelayEventKind = Literal["token", "error", "done"]


@dataclass(frozen=True)
class RelayEvent:
    """
    One event produced while relaying an upstream generation.

    Attributes
    ----------
    kind:
        "token" for an incremental fragment, "error" for a terminal
        upstream failure, "done" once the stream finished normally.
    text:
        token: the fragment as received.
        error: the upstream error text (or a generic fallback).
        done:  the full reply, trimmed of surrounding whitespace.
    """
    kind: RelayEventKind
    text: str

    @classmethod
    def token(cls, fragment: str) -> "RelayEvent":
        return cls("token", fragment)

    @classmethod
    def error(cls, message: str) -> "RelayEvent":
        return cls("error", message)

    @classmethod
    def done(cls, full_text: str) -> "RelayEvent":
        return cls("done", full_text)
