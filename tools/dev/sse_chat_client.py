#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Dev SSE Chat Client (/chat-stream)
-------------------------------------------------------
Interactive console tool for talking to the gateway from a terminal.

Features:
- Simple REPL: you type, the local model answers token by token.
- Calls GET /chat-stream and parses the Server-Sent Events as they arrive.
- Keeps the `sessionId` cookie between turns, so multi-turn memory works
  exactly like in the browser UI.
- /clear  → POST /clear (forget the conversation)
- /mode X → switch persona (customer_support, study_helper, ...)
- /quit   → exit

This client is meant for development / testing on your laptop.
"""

from __future__ import annotations

import argparse
import json
import sys
from typing import Dict, Iterable, Iterator, Tuple

import requests

DEFAULT_SERVER = "http://127.0.0.1:3000"
MODES = (
    "virtual_assistant",
    "customer_support",
    "study_helper",
    "business_assistant",
    "interview_ai",
)


# ---------------------------------------------------------------------------
# CLI argument parsing
# ---------------------------------------------------------------------------


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Local Chat Gateway — Dev SSE Chat Client (/chat-stream)",
    )
    parser.add_argument(
        "--server",
        type=str,
        default=DEFAULT_SERVER,
        help=f"Gateway base URL (default: {DEFAULT_SERVER})",
    )
    parser.add_argument(
        "--mode",
        type=str,
        default="virtual_assistant",
        choices=MODES,
        help="Persona to start with (default: virtual_assistant).",
    )
    return parser.parse_args()


# ---------------------------------------------------------------------------
# SSE parsing
# ---------------------------------------------------------------------------


def iter_sse_events(lines: Iterable[str]) -> Iterator[Tuple[str, Dict]]:
    """
    Group raw SSE lines into (event_name, data) pairs.

    Frames without an `event:` line are reported as "message".
    """
    event = "message"
    data_lines = []
    for line in lines:
        if line == "":
            if data_lines:
                raw = "\n".join(data_lines)
                try:
                    yield event, json.loads(raw)
                except json.JSONDecodeError:
                    yield event, {"raw": raw}
            event, data_lines = "message", []
            continue
        if line.startswith("event:"):
            event = line[len("event:"):].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:"):].strip())


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


def ask(http: requests.Session, server: str, message: str, mode: str) -> None:
    """Send one message and print the streamed reply."""
    resp = http.get(
        f"{server}/chat-stream",
        params={"message": message, "mode": mode},
        stream=True,
        timeout=(5, None),
    )
    with resp:
        if resp.status_code != 200:
            print(f"Server error: HTTP {resp.status_code} - {resp.text}\n")
            return

        print("AI: ", end="", flush=True)
        lines = resp.iter_lines(decode_unicode=True)
        for event, data in iter_sse_events(lines):
            if event == "message":
                print(data.get("token", ""), end="", flush=True)
            elif event == "error":
                print(f"\n[error] {data.get('error')}")
                break
            elif event == "done":
                break
        print("\n")


def clear(http: requests.Session, server: str) -> None:
    resp = http.post(f"{server}/clear", timeout=5)
    resp.raise_for_status()
    print("[client] Session cleared.\n")


# ---------------------------------------------------------------------------
# REPL
# ---------------------------------------------------------------------------


def run_repl(args: argparse.Namespace) -> None:
    mode = args.mode
    http = requests.Session()

    print("Type a message and press Enter. Commands: /clear, /mode <name>, /quit\n")
    print(f"[client] server : {args.server}")
    print(f"[client] mode   : {mode}")
    print()

    while True:
        try:
            text = input("You: ").strip()
        except (EOFError, KeyboardInterrupt):
            print("\nBye.")
            return

        if not text:
            continue
        if text.lower() in {"/quit", "/exit"}:
            print("Bye.")
            return
        if text.lower() == "/clear":
            try:
                clear(http, args.server)
            except requests.RequestException as exc:
                print(f"Clear failed: {exc}\n")
            continue
        if text.lower().startswith("/mode"):
            _, _, new_mode = text.partition(" ")
            new_mode = new_mode.strip()
            if new_mode not in MODES:
                print(f"Unknown mode {new_mode!r}. Choose one of: {', '.join(MODES)}\n")
                continue
            mode = new_mode
            print(f"[client] mode   : {mode}\n")
            continue

        try:
            ask(http, args.server, text, mode)
        except requests.RequestException as exc:
            print(f"\nConnection error: {exc}\n")


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main() -> None:
    args = parse_args()
    try:
        run_repl(args)
    except KeyboardInterrupt:
        print("\nBye.")
        sys.exit(0)


if __name__ == "__main__":
    main()
