"""Pydantic models for the inbound chat request that seeds a session."""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, Field


class Role(str, Enum):
    USER = "user"
    ASSISTANT = "assistant"
    SYSTEM = "system"


class ChatMessage(BaseModel):
    """One prior conversation turn."""

    role: Role = Field(..., description="Who produced this turn")
    content: str = Field(..., description="Turn text")


class ChatRequest(BaseModel):
    """The full prior conversation, oldest turn first."""

    messages: list[ChatMessage] = Field(..., min_length=1)
