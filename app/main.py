"""Entry point for the faq-assist FastAPI application."""
from __future__ import annotations

import logging
from typing import Any, Dict

from fastapi import FastAPI

from .api import assistant as assistant_router
from .api import references as references_router
from .config import settings
from .core.providers import get_knowledge_base

logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)

app = FastAPI(
    title="faq-assist API",
    version="0.1.0",
    summary="Compound question breakdown and FAQ answer retrieval",
)


@app.get("/", tags=["meta"])
def index() -> Dict[str, Any]:
    """Basic service descriptor."""

    return {
        "service": "faq-assist-api",
        "environment": settings.app_env,
        "docs": "/docs",
        "health": "/healthz",
    }


@app.get("/healthz", tags=["meta"])
def healthz() -> Dict[str, Any]:
    """Report whether the knowledge base loaded and the LLM credential is configured."""

    return {
        "status": "ok",
        "environment": settings.app_env,
        "faq_entries": len(get_knowledge_base()),
        "llm": {
            "model": settings.gemini_model,
            "configured": bool(settings.gemini_api_key),
        },
    }


app.include_router(assistant_router.router, prefix="/api/v1")
app.include_router(references_router.router, prefix="/api/v1")
