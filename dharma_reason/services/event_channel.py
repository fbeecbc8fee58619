"""EventChannel — hands stream events from the controller to transport.

The controller publishes events as steps complete; the transport consumes
them at its own pace.  The queue is unbounded, so ``publish`` never waits
on the consumer and the controller never blocks on transport.
"""

from __future__ import annotations

import asyncio
from typing import AsyncIterator

from dharma_reason.domain.events import StreamEvent

_CLOSED = object()


class EventChannel:
    """Single-producer, single-consumer channel of stream events."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def publish(self, event: StreamEvent) -> None:
        if self._closed:
            raise RuntimeError("Cannot publish to a closed channel")
        self._queue.put_nowait(event)

    def close(self) -> None:
        """Signal end of stream.  Idempotent."""
        if not self._closed:
            self._closed = True
            self._queue.put_nowait(_CLOSED)

    async def __aiter__(self) -> AsyncIterator[StreamEvent]:
        while True:
            item = await self._queue.get()
            if item is _CLOSED:
                return
            yield item
