# chat_gateway/main.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — FastAPI application entrypoint
---------------------------------------------------
This file wires everything together:

- Sets up central logging.
- Creates the FastAPI app with its session store and inference relay.
- Starts/stops the background session sweeper via the lifespan.
- Adds middleware (CORS for dev).
- Mounts routers:
    * /chat-stream  (GET, SSE) → streamed reply from the local Ollama model
    * /clear        (POST)     → forget the caller's session
    * /health       (GET)      → meta / health check
    * /             (static)   → browser UI from public/
- Exposes an ASGI `app` object for uvicorn.

Typical run command (dev):

    uvicorn chat_gateway.main:app --host 127.0.0.1 --port 3000 --reload

"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.staticfiles import StaticFiles

from chat_gateway.core.config import settings
from chat_gateway.models.chat import HealthResponse
from chat_gateway.providers.ollama_stream import InferenceRelay
from chat_gateway.routers.chat import router as chat_router
from chat_gateway.runtime_state import SessionStore, SessionSweeper
from chat_gateway.utils import setup_logging, get_logger


# ---------------------------------------------------------------------------
# Global logging config
# ---------------------------------------------------------------------------
setup_logging(debug=settings.debug)
logger = get_logger(__name__)
logger.info(
    "Local Chat Gateway starting (env=%s, model=%s, ollama_url=%s)",
    settings.environment,
    settings.ollama_model,
    settings.ollama_url,
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    sweeper = SessionSweeper(
        app.state.session_store,
        interval_seconds=settings.session_sweep_interval_s,
    )
    app.state.sweeper = sweeper
    sweeper.start()
    try:
        yield
    finally:
        await sweeper.stop()


def create_app(
    session_store: Optional[SessionStore] = None,
    relay: Optional[InferenceRelay] = None,
    mount_static: bool = True,
) -> FastAPI:
    """
    Application factory.

    `session_store` and `relay` default to instances built from settings;
    tests pass their own.
    """
    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    app.state.session_store = (
        session_store
        if session_store is not None
        else SessionStore(ttl_seconds=settings.session_ttl_s)
    )
    app.state.relay = (
        relay
        if relay is not None
        else InferenceRelay(settings.ollama_url, settings.ollama_model)
    )

    # ------------------------------------------------------------------
    # CORS (the UI is normally same-origin, but a dev page on another
    # port should still work)
    # ------------------------------------------------------------------
    if settings.environment != "production":
        app.add_middleware(
            CORSMiddleware,
            allow_origins=["*"],
            allow_credentials=False,
            allow_methods=["*"],
            allow_headers=["*"],
        )

    # ------------------------------------------------------------------
    # Routers
    # ------------------------------------------------------------------
    #   GET  /chat-stream -> SSE token stream
    #   POST /clear       -> drop session history
    app.include_router(chat_router)

    @app.get("/health", tags=["meta"], response_model=HealthResponse)
    async def health_check() -> HealthResponse:
        """
        Lightweight health check for the UI / monitoring scripts.
        """
        return HealthResponse(
            environment=settings.environment,
            model=app.state.relay.model,
            inference_url=app.state.relay.url,
            active_sessions=len(app.state.session_store),
        )

    # ------------------------------------------------------------------
    # Static UI. Mounted last so it never shadows the API routes.
    # ------------------------------------------------------------------
    if mount_static:
        if settings.public_dir.is_dir():
            app.mount(
                "/",
                StaticFiles(directory=str(settings.public_dir), html=True),
                name="public",
            )
            logger.info("Static UI mounted at / (path=%s)", settings.public_dir)
        else:
            logger.warning("Public dir %s not found; static UI disabled", settings.public_dir)

    logger.info("FastAPI app created (env=%s)", settings.environment)
    return app


# ASGI app for uvicorn / gunicorn
app = create_app()


if __name__ == "__main__":
    """
    Allow `python3 -m chat_gateway.main` during development.

    In production you normally use:

        uvicorn chat_gateway.main:app --host 127.0.0.1 --port 3000
    """
    import uvicorn

    uvicorn.run(
        "chat_gateway.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment != "production"),
    )
