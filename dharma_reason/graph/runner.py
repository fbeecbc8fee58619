"""Session runner — clean interface for driving a reasoning session.

Usage:
    from dharma_reason.graph.runner import run_session, start_session

    final_state = await run_session(messages)

    channel, task = start_session(messages)
    async for event in channel:
        ...

The runner validates the session configuration, seeds a fresh
SessionState, builds the graph, and drives it.  Each session owns its own
state; nothing is shared across sessions and nothing outlives the session.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Sequence

from pydantic import BaseModel, Field

from dharma_reason.config import settings
from dharma_reason.core.termination import MINIMUM_STEPS
from dharma_reason.domain.events import ReasoningStepEvent, TextEvent
from dharma_reason.foundation.clock import monotonic_ms
from dharma_reason.foundation.identifiers import new_run_id
from dharma_reason.graph.builder import build_session_graph, recursion_limit_for
from dharma_reason.graph.state import SessionState
from dharma_reason.models.chat import ChatMessage
from dharma_reason.services.event_channel import EventChannel
from dharma_reason.services.llm import LLMFactory, default_llm_factory, to_langchain_messages

logger = logging.getLogger(__name__)


class SessionConfig(BaseModel):
    """Resolved, validated settings for one session."""

    target: float = Field(..., gt=0.0, le=1.0)
    max_steps: int = Field(..., ge=1)
    minimum_steps: int = MINIMUM_STEPS

    model_config = {"frozen": True}

    @classmethod
    def resolve(cls, target: float | None = None, max_steps: int | None = None) -> SessionConfig:
        """Apply overrides on top of settings.  Raises ValueError when out of range."""
        return cls(
            target=settings.target if target is None else target,
            max_steps=settings.max_steps if max_steps is None else max_steps,
        )


def initial_state(
    messages: Sequence[ChatMessage],
    config: SessionConfig,
    run_id: str,
) -> SessionState:
    """Seed state: step_index 0, empty history, no feedback yet."""
    return {
        "run_id": run_id,
        "conversation": to_langchain_messages(messages),
        "target": config.target,
        "max_steps": config.max_steps,
        "minimum_steps": config.minimum_steps,
        "step_index": 0,
        "steps": [],
        "score_history": [],
        "previous_feedback": None,
        "aborted": False,
        "abort_reason": None,
        "answer": None,
    }


def _prepare(
    messages: Sequence[ChatMessage],
    llm_factory: LLMFactory | None,
    target: float | None,
    max_steps: int | None,
    run_id: str | None,
):
    config = SessionConfig.resolve(target=target, max_steps=max_steps)
    run_id = run_id or new_run_id()
    graph = build_session_graph(llm_factory or default_llm_factory)
    state = initial_state(messages, config, run_id)
    graph_config = {"recursion_limit": recursion_limit_for(config.max_steps)}
    logger.info(
        "Starting session %s (target=%.2f, max_steps=%d, minimum_steps=%d)",
        run_id, config.target, config.max_steps, config.minimum_steps,
    )
    return graph, state, graph_config, run_id


async def run_session(
    messages: Sequence[ChatMessage],
    *,
    llm_factory: LLMFactory | None = None,
    target: float | None = None,
    max_steps: int | None = None,
    run_id: str | None = None,
) -> dict[str, Any]:
    """Run a whole session and return the final SessionState.

    Args:
        messages: Seed conversation, oldest turn first.
        llm_factory: Optional override for LLM construction (for testing).
        target: Override the aggregate-score target.
        max_steps: Override the step ceiling.
        run_id: Optional externally supplied run identifier.
    """
    graph, state, graph_config, run_id = _prepare(
        messages, llm_factory, target, max_steps, run_id,
    )
    started = monotonic_ms()
    final_state = await graph.ainvoke(state, config=graph_config)
    logger.info(
        "Session %s completed in %dms: steps=%d aborted=%s",
        run_id,
        monotonic_ms() - started,
        len(final_state.get("steps", [])),
        final_state.get("aborted", False),
    )
    return final_state


async def stream_session(
    messages: Sequence[ChatMessage],
    channel: EventChannel,
    *,
    llm_factory: LLMFactory | None = None,
    target: float | None = None,
    max_steps: int | None = None,
    run_id: str | None = None,
) -> None:
    """Run a session, publishing each event into ``channel`` as it completes.

    One reasoning-step event per completed iteration, in order, then exactly
    one text event with the final answer.  The channel is always closed.
    """
    try:
        graph, state, graph_config, run_id = _prepare(
            messages, llm_factory, target, max_steps, run_id,
        )
        started = monotonic_ms()
        step_count = 0
        async for update in graph.astream(state, config=graph_config, stream_mode="updates"):
            if "finalize_step" in update:
                step = update["finalize_step"]["steps"][-1]
                step_count += 1
                channel.publish(ReasoningStepEvent(step=step))
            elif "synthesize" in update:
                channel.publish(TextEvent(content=update["synthesize"]["answer"]))
        logger.info(
            "Session %s completed in %dms with %d steps",
            run_id, monotonic_ms() - started, step_count,
        )
    finally:
        channel.close()


def start_session(
    messages: Sequence[ChatMessage],
    *,
    llm_factory: LLMFactory | None = None,
    target: float | None = None,
    max_steps: int | None = None,
    run_id: str | None = None,
) -> tuple[EventChannel, asyncio.Task]:
    """Spawn the controller as a task and hand back the channel it feeds.

    Must be called from a running event loop.  The caller consumes the
    channel and may cancel the task (e.g. on client disconnect).
    Invalid overrides raise ValueError here, before anything is spawned.
    """
    SessionConfig.resolve(target=target, max_steps=max_steps)
    channel = EventChannel()
    task = asyncio.create_task(stream_session(
        messages,
        channel,
        llm_factory=llm_factory,
        target=target,
        max_steps=max_steps,
        run_id=run_id,
    ))
    return channel, task
