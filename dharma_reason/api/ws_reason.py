"""WebSocket endpoint for reasoning sessions.

Path: /ws/reason

Accepts JSON matching the ChatRequest schema, validates it at the boundary,
runs one reasoning session per request, and streams its events back:

    {"type": "reasoning-step", "content": {...}}   (one per step)
    {"type": "text", "content": "..."}             (final answer)
    {"type": "done", "run_id": "..."}

The connection stays open for further requests.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect
from pydantic import ValidationError

from dharma_reason.foundation.identifiers import new_run_id
from dharma_reason.graph.runner import start_session
from dharma_reason.models.chat import ChatRequest
from dharma_reason.services.llm import LLMFactory

logger = logging.getLogger(__name__)


def create_reason_router(llm_factory: LLMFactory | None = None) -> APIRouter:
    """Factory that wires the reasoning WebSocket to a reasoning-service factory."""

    router = APIRouter()

    @router.websocket("/ws/reason")
    async def reason(websocket: WebSocket) -> None:
        await websocket.accept()
        logger.info("Reasoning client connected")

        task = None
        try:
            while True:
                raw = await websocket.receive_json()

                # ── Validate at the boundary ─────────────────────────────
                try:
                    request = ChatRequest.model_validate(raw)
                except ValidationError as exc:
                    await websocket.send_json({
                        "status": "error",
                        "detail": f"Invalid chat request: {exc.error_count()} validation error(s)",
                    })
                    continue

                # ── Run session, forward events as they arrive ───────────
                run_id = new_run_id()
                channel, task = start_session(
                    request.messages, llm_factory=llm_factory, run_id=run_id,
                )
                async for event in channel:
                    await websocket.send_json(event.to_payload())
                try:
                    await task
                except Exception as exc:
                    logger.exception("Session %s failed", run_id)
                    await websocket.send_json({
                        "status": "error",
                        "detail": f"Reasoning session failed: {exc}",
                    })
                    continue

                await websocket.send_json({"type": "done", "run_id": run_id})

        except WebSocketDisconnect:
            logger.info("Reasoning client disconnected")
            if task is not None and not task.done():
                task.cancel()

    return router
