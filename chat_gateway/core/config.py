# chat_gateway/core/config.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — Configuration
----------------------------------
Central configuration for the gateway, including:

- app metadata
- API host/port
- filesystem paths (public UI assets)
- the local inference backend (Ollama /api/generate),
- session lifetime and history limits.

"""

from __future__ import annotations

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

# This file is: chat_gateway/core/config.py
APP_DIR: Path = Path(__file__).resolve().parents[1]   # .../chat_gateway
ROOT_DIR: Path = APP_DIR.parent                       # repo root

PUBLIC_DIR: Path = ROOT_DIR / "public"


# ---------------------------------------------------------------------------
# Settings model
# ---------------------------------------------------------------------------


class Settings(BaseSettings):
    """
    Global configuration for the gateway.

    This class is instantiated once at import time as `settings`
    and used everywhere in the codebase.
    """

    model_config = SettingsConfigDict(
        env_file=ROOT_DIR / ".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # --- App / server basics -----------------------------------------------
    app_name: str = "Local Chat Gateway"
    environment: Literal["development", "production", "test"] = "development"
    debug: bool = True

    api_host: str = "127.0.0.1"
    api_port: int = 3000

    # --- Filesystem paths ---------------------------------------------------
    public_dir: Path = PUBLIC_DIR

    # --- Inference backend (Ollama HTTP) -----------------------------------
    #
    # Configuration comes from:
    #   OLLAMA_URL   (e.g. http://localhost:11434/api/generate)
    #   OLLAMA_MODEL (e.g. llama3.2:3b)
    #
    ollama_url: str = Field(
        default="http://localhost:11434/api/generate",
        description="Ollama generate endpoint (env: OLLAMA_URL).",
    )
    ollama_model: str = Field(
        default="llama3.2:3b",
        description="Ollama model name (env: OLLAMA_MODEL).",
    )

    # --- Sessions -----------------------------------------------------------
    session_ttl_s: int = 60 * 60             # Idle sessions expire after 1 hour
    session_sweep_interval_s: int = 60 * 10  # Sweeper wakes every 10 minutes
    max_history_turns: int = 16              # Turns replayed into each prompt
    session_cookie_name: str = "sessionId"


# Single global settings instance used by the rest of the app.
settings = Settings()


if __name__ == "__main__":
    # Minimal self-test so you can quickly verify config loading.
    print("Local Chat Gateway — Settings self-test")
    print(f"ROOT_DIR        : {ROOT_DIR}")
    print(f"APP_DIR         : {APP_DIR}")
    print(f"PUBLIC_DIR      : {settings.public_dir}")
    print(f"Environment     : {settings.environment}")
    print(f"Ollama          : url={settings.ollama_url!r}, model={settings.ollama_model!r}")
    print(f"Session TTL     : {settings.session_ttl_s}s (sweep every {settings.session_sweep_interval_s}s)")
    print(f"History window  : {settings.max_history_turns} turns")
