"""HTTP streaming endpoint for reasoning sessions.

Path: POST /api/chat

Accepts a ChatRequest (the full prior conversation), starts a reasoning
session, and streams its events as Server-Sent Events:

    event: reasoning-step   data: {"type": "reasoning-step", "content": {...}}
    event: text             data: {"type": "text", "content": "..."}

The session runs as its own task.  The response generator only drains the
event channel; if the client goes away the session task is cancelled.
"""

from __future__ import annotations

import json
import logging
from typing import Any

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from dharma_reason.graph.runner import start_session
from dharma_reason.models.chat import ChatRequest
from dharma_reason.services.llm import LLMFactory

logger = logging.getLogger(__name__)


def sse_frame(event: str, data: dict[str, Any]) -> str:
    """Render one SSE frame; multi-line JSON is split over data: lines."""
    payload = json.dumps(data, ensure_ascii=False)
    lines = [f"event: {event}"]
    for line in payload.splitlines():
        lines.append(f"data: {line}")
    lines.append("")
    return "\n".join(lines) + "\n"


def create_chat_router(llm_factory: LLMFactory | None = None) -> APIRouter:
    """Factory that wires the chat endpoint to a reasoning-service factory."""

    router = APIRouter(prefix="/api", tags=["reasoning"])

    @router.post("/chat")
    async def chat(request: ChatRequest) -> StreamingResponse:
        channel, task = start_session(request.messages, llm_factory=llm_factory)

        async def event_stream():
            try:
                async for event in channel:
                    yield sse_frame(event.kind, event.to_payload())
            finally:
                if not task.done():
                    logger.info("Client left before session finished; cancelling")
                    task.cancel()

        return StreamingResponse(
            event_stream(),
            media_type="text/event-stream",
            headers={
                "Cache-Control": "no-cache, no-transform",
                "X-Accel-Buffering": "no",
            },
        )

    return router
