"""Scripted stand-in for the reasoning service used across the test suite.

One object plays the LLM factory and the chat model.  Each ``ainvoke`` is
classified as a step, feedback, or synthesis request from its messages and
answered by the matching script.  A script is a string, or a callable
``(messages, call_number) -> str`` that may raise to simulate a failure.
"""

from __future__ import annotations

import json
from types import SimpleNamespace
from typing import Any, Callable, Union

from langchain_core.messages import BaseMessage

Script = Union[str, Callable[[list[BaseMessage], int], str]]


def step_json(
    title: str = "Examining the question",
    content: str = "Let me consider the assumptions behind the question.",
    scores: tuple[float, float, float, float] = (0.8, 0.7, 0.6, 0.7),
    rationale: str = "Assumptions noted, perspectives weighed.",
) -> str:
    m, e, n, b = scores
    return json.dumps({
        "title": title,
        "content": content,
        "dharma": {
            "mindfulness": m,
            "emptiness": e,
            "nonDuality": n,
            "boundlessCare": b,
            "rationale": rationale,
        },
    })


def uniform_step(value: float) -> Script:
    """Step script returning the same score on every dimension, every call."""
    return lambda messages, n: step_json(title=f"Step {n}", scores=(value,) * 4)


def failing(message: str = "service unavailable") -> Script:
    def _raise(messages, n):
        raise RuntimeError(message)
    return _raise


class ScriptedReasoningService:
    """Fake LLM factory + chat model with per-call-kind scripts and call logs."""

    def __init__(
        self,
        step: Script = step_json(),
        feedback: Script = "Deepen the consideration of affected stakeholders.",
        synthesis: Script = "Final answer.",
    ) -> None:
        self._scripts = {"step": step, "feedback": feedback, "synthesis": synthesis}
        self.calls: dict[str, list[list[BaseMessage]]] = {
            "step": [], "feedback": [], "synthesis": [],
        }
        self.profiles: list[Any] = []

    # Factory protocol
    def __call__(self, profile):
        self.profiles.append(profile)
        return self

    # Chat model protocol
    async def ainvoke(self, messages: list[BaseMessage]):
        kind = self.classify(messages)
        self.calls[kind].append(list(messages))
        script = self._scripts[kind]
        if callable(script):
            text = script(list(messages), len(self.calls[kind]))
        else:
            text = script
        return SimpleNamespace(content=text)

    @staticmethod
    def classify(messages: list[BaseMessage]) -> str:
        last = str(messages[-1].content)
        if last.startswith("Generate reasoning step"):
            return "step"
        if last.startswith("Please provide your final synthesized answer"):
            return "synthesis"
        return "feedback"
