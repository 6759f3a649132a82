"""Unbounded event channel and cancellation token."""

import asyncio

from sysdash.events import Event


class CancellationToken:
    """Shared, idempotent "cancel requested" flag for one scheduler session."""

    def __init__(self) -> None:
        self._event = asyncio.Event()

    @property
    def cancelled(self) -> bool:
        """Whether cancel() has been called."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation. Calling it again has no effect."""
        self._event.set()

    async def wait(self) -> None:
        """Suspend until cancellation is requested."""
        await self._event.wait()


class EventChannel:
    """
    Multi-producer, single-consumer queue of events.

    Sends never block. Once closed, sends fail and the receiver sees the end
    of the stream after draining whatever was queued before the close.
    """

    def __init__(self) -> None:
        self._queue: asyncio.Queue[Event] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        """Whether the consumer has gone away."""
        return self._closed

    def send(self, event: Event) -> bool:
        """
        Enqueue an event.

        Returns:
            False if the channel is closed and the event was dropped.
        """
        if self._closed:
            return False
        self._queue.put_nowait(event)
        return True

    def close(self) -> None:
        """Close the channel. Producers stop on their next send."""
        self._closed = True

    def empty(self) -> bool:
        """Whether no event is waiting."""
        return self._queue.empty()

    def get_nowait(self) -> Event:
        """Dequeue without waiting; raises asyncio.QueueEmpty."""
        return self._queue.get_nowait()

    async def get(self) -> Event:
        """Suspend until an event is available."""
        return await self._queue.get()
