"""Application configuration loaded from environment variables."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    app_name: str = "dharma-reason"
    log_level: str = "INFO"

    # Iteration control
    target: float = Field(default=0.75, gt=0.0, le=1.0)
    max_steps: int = Field(default=10, ge=1)

    # Gemini LLM
    gemini_model: str = "gemini-2.0-flash"
    step_temperature: float | None = None
    step_max_output_tokens: int = 2000
    feedback_temperature: float = 0.3
    feedback_max_output_tokens: int = 250
    synthesis_temperature: float | None = None
    synthesis_max_output_tokens: int = 1000

    model_config = {"env_prefix": "DHARMA_"}


settings = Settings()
