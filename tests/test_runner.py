"""Tests for the session runner, streaming events and the event channel."""

from __future__ import annotations

import asyncio

import pytest

from dharma_reason.core.synthesis import SYNTHESIS_FAILURE_MESSAGE
from dharma_reason.domain.events import ReasoningStepEvent, TextEvent
from dharma_reason.graph.runner import SessionConfig, start_session, stream_session
from dharma_reason.models.chat import ChatMessage, Role
from dharma_reason.services.event_channel import EventChannel

from tests.scripted_llm import ScriptedReasoningService, failing, uniform_step


_QUESTION = [ChatMessage(role=Role.USER, content="Is remote work good for teams?")]


async def _collect(channel: EventChannel) -> list:
    return [event async for event in channel]


# ── Event channel ────────────────────────────────────────────────────────────


class TestEventChannel:
    @pytest.mark.asyncio
    async def test_delivers_in_order_until_closed(self) -> None:
        channel = EventChannel()
        channel.publish(TextEvent(content="a"))
        channel.publish(TextEvent(content="b"))
        channel.close()
        events = await _collect(channel)
        assert [e.content for e in events] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_publish_after_close_rejected(self) -> None:
        channel = EventChannel()
        channel.close()
        with pytest.raises(RuntimeError):
            channel.publish(TextEvent(content="late"))

    @pytest.mark.asyncio
    async def test_close_is_idempotent(self) -> None:
        channel = EventChannel()
        channel.close()
        channel.close()
        assert channel.closed
        assert await _collect(channel) == []

    @pytest.mark.asyncio
    async def test_consumer_waits_for_producer(self) -> None:
        channel = EventChannel()

        async def produce() -> None:
            await asyncio.sleep(0.01)
            channel.publish(TextEvent(content="late arrival"))
            channel.close()

        producer = asyncio.create_task(produce())
        events = await _collect(channel)
        await producer
        assert [e.content for e in events] == ["late arrival"]


# ── Session config ───────────────────────────────────────────────────────────


class TestSessionConfig:
    def test_defaults_from_settings(self) -> None:
        config = SessionConfig.resolve()
        assert config.target == 0.75
        assert config.max_steps == 10
        assert config.minimum_steps == 4

    def test_overrides(self) -> None:
        config = SessionConfig.resolve(target=0.9, max_steps=3)
        assert config.target == 0.9
        assert config.max_steps == 3

    @pytest.mark.parametrize("target", [0.0, -0.2, 1.01])
    def test_rejects_target_out_of_range(self, target: float) -> None:
        with pytest.raises(ValueError):
            SessionConfig.resolve(target=target)

    def test_target_of_one_allowed(self) -> None:
        assert SessionConfig.resolve(target=1.0).target == 1.0

    def test_rejects_zero_max_steps(self) -> None:
        with pytest.raises(ValueError):
            SessionConfig.resolve(max_steps=0)


# ── Streaming ────────────────────────────────────────────────────────────────


class TestStreamSession:
    @pytest.mark.asyncio
    async def test_steps_then_single_text_event(self) -> None:
        service = ScriptedReasoningService(step=uniform_step(0.9), synthesis="Be kind.")
        channel = EventChannel()
        await stream_session(_QUESTION, channel, llm_factory=service)
        events = await _collect(channel)

        assert [type(e) for e in events] == [ReasoningStepEvent] * 4 + [TextEvent]
        assert [e.step.step_index for e in events[:4]] == [1, 2, 3, 4]
        assert events[-1].content == "Be kind."
        assert channel.closed

    @pytest.mark.asyncio
    async def test_synthesis_failure_still_emits_text(self) -> None:
        service = ScriptedReasoningService(step=uniform_step(0.9), synthesis=failing())
        channel = EventChannel()
        await stream_session(_QUESTION, channel, llm_factory=service, max_steps=1)
        events = await _collect(channel)
        assert len(events) == 2
        assert events[-1].content == SYNTHESIS_FAILURE_MESSAGE

    @pytest.mark.asyncio
    async def test_abort_emits_recorded_steps_and_answer(self) -> None:
        def flaky(messages, n):
            if n == 2:
                raise RuntimeError("boom")
            return uniform_step(0.3)(messages, n)

        service = ScriptedReasoningService(step=flaky)
        channel = EventChannel()
        await stream_session(_QUESTION, channel, llm_factory=service)
        events = await _collect(channel)
        assert [e.kind for e in events] == ["reasoning-step", "text"]

    @pytest.mark.asyncio
    async def test_channel_closed_on_invalid_config(self) -> None:
        channel = EventChannel()
        with pytest.raises(ValueError):
            await stream_session(_QUESTION, channel, llm_factory=ScriptedReasoningService(), target=2.0)
        assert channel.closed

    @pytest.mark.asyncio
    async def test_start_session_runs_as_task(self) -> None:
        service = ScriptedReasoningService(step=uniform_step(0.1))
        channel, task = start_session(_QUESTION, llm_factory=service, max_steps=5)
        events = await _collect(channel)
        await task
        assert len(events) == 6
        assert events[-2].step.termination_reason.value == "max_steps_reached"

    @pytest.mark.asyncio
    async def test_start_session_validates_before_spawning(self) -> None:
        with pytest.raises(ValueError):
            start_session(_QUESTION, llm_factory=ScriptedReasoningService(), max_steps=0)
