"""ID generation for reasoning sessions."""

from __future__ import annotations

from uuid import uuid4


def new_run_id() -> str:
    """Generate a new random run identifier for a reasoning session."""
    return str(uuid4())
