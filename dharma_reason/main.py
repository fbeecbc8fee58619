"""dharma-reason — contemplative multi-step reasoning service.

This is the application entry point.  It configures logging and wires the
reasoning-session endpoints together.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI

from dharma_reason.api.chat import create_chat_router
from dharma_reason.api.ws_reason import create_reason_router
from dharma_reason.config import settings
from dharma_reason.core.termination import MINIMUM_STEPS

# ── Logging ──────────────────────────────────────────────────────────────────

logging.basicConfig(
    level=settings.log_level,
    format="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
)

# ── App ──────────────────────────────────────────────────────────────────────

app = FastAPI(
    title=settings.app_name,
    description="Multi-step reasoning with dharma self-evaluation and feedback",
    version="0.1.0",
)

# ── Routes ───────────────────────────────────────────────────────────────────

app.include_router(create_chat_router())
app.include_router(create_reason_router())


# ── Health ───────────────────────────────────────────────────────────────────

@app.get("/health")
async def health() -> dict:
    return {
        "status": "ok",
        "target": settings.target,
        "max_steps": settings.max_steps,
        "minimum_steps": MINIMUM_STEPS,
        "model": settings.gemini_model,
    }
