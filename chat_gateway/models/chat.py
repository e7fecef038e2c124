# chat_gateway/models/chat.py
# -*- coding: utf-8 -*-
"""
Local Chat Gateway — response models
------------------------------------
JSON payloads returned by the non-streaming endpoints:

- ClearResponse  : POST /clear acknowledgement
- HealthResponse : GET /health
"""

from __future__ import annotations

from pydantic import BaseModel, Field


class ClearResponse(BaseModel):
    """Acknowledgement for POST /clear."""

    ok: bool = True


class HealthResponse(BaseModel):
    """
    Lightweight health payload.

    Fields
    ------
    status:
        Always "ok" while the process is serving requests.
    environment:
        development / production / test.
    model:
        Ollama model every prompt is sent to.
    inference_url:
        Ollama endpoint the relay POSTs to.
    active_sessions:
        Number of sessions currently held in memory.
    """

    status: str = "ok"
    environment: str
    model: str
    inference_url: str
    active_sessions: int = Field(..., ge=0)

    model_config = {
        "protected_namespaces": (),
        "json_schema_extra": {
            "examples": [
                {
                    "status": "ok",
                    "environment": "development",
                    "model": "llama3.2:3b",
                    "inference_url": "http://localhost:11434/api/generate",
                    "active_sessions": 2,
                }
            ]
        },
    }
