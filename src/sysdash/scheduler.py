"""Event scheduler merging input, timers and data collection into one stream."""

import asyncio
import logging
import random
from typing import Callable, Protocol

from textual import events

from sysdash.channel import CancellationToken, EventChannel
from sysdash.collector import DATA_COLLECTION_INTERVAL, DataCollector, collection_loop
from sysdash.errors import InputDecodeError, ShutdownTimeoutError
from sysdash.events import Error, Event, Init, Mouse, Paste, Render, Tick, decode_input
from sysdash.provider import SystemInfoProvider

logger = logging.getLogger(__name__)

# Seconds to sleep between task status checks
SLEEP_INTERVAL = 0.001

# Maximum number of task status checks in stop()
MAX_RETRIES = 10

# Consecutive failed reads after which the input source is abandoned
MAX_READ_FAILURES = 3


class InputSource(Protocol):
    """Anything that yields raw terminal events."""

    async def read(self) -> events.Event | None:
        """Return the next raw event, or None once the source is exhausted."""
        ...


class QueueInputSource:
    """InputSource fed by the terminal driver through feed()."""

    def __init__(self) -> None:
        self._queue: asyncio.Queue[events.Event | None] = asyncio.Queue()

    def feed(self, raw: events.Event) -> None:
        """Hand a raw event to the scheduler."""
        self._queue.put_nowait(raw)

    def close(self) -> None:
        """Mark the source as exhausted."""
        self._queue.put_nowait(None)

    async def read(self) -> events.Event | None:
        return await self._queue.get()


class Interval:
    """
    Periodic timer.

    The first tick completes immediately; later ticks fall on multiples of
    the period from the first one. Ticks missed while nobody was waiting are
    skipped rather than burst.
    """

    def __init__(self, period: float) -> None:
        if period <= 0:
            raise ValueError("period must be positive")
        self._period = period
        self._deadline: float | None = None

    @property
    def period(self) -> float:
        """Seconds between ticks."""
        return self._period

    async def tick(self) -> None:
        """Suspend until the next deadline."""
        loop = asyncio.get_running_loop()
        now = loop.time()
        if self._deadline is None:
            self._deadline = now
        delay = self._deadline - now
        if delay > 0:
            await asyncio.sleep(delay)
        else:
            # Yield once so a ready tick never starves other branches
            await asyncio.sleep(0)
        missed = max(0.0, loop.time() - self._deadline) // self._period
        self._deadline += (missed + 1) * self._period


class EventScheduler:
    """
    Merges terminal input, a tick timer, a render timer and data snapshots
    into one ordered queue for a single consumer.

    Two background tasks feed the queue: the input loop (input and both
    timers) and the data collection loop. Events from one task keep their
    order; events from different tasks interleave freely.
    """

    def __init__(
        self,
        tick_rate: float,
        frame_rate: float,
        mouse: bool = False,
        paste: bool = False,
        *,
        input_source: InputSource,
        provider_factory: Callable[[], SystemInfoProvider] = SystemInfoProvider,
        poll_interval: float = DATA_COLLECTION_INTERVAL,
    ) -> None:
        """
        Initialize the EventScheduler. No task is started.

        Args:
            tick_rate: Tick events per second.
            frame_rate: Render events per second.
            mouse: Forward mouse events.
            paste: Forward paste events.
            input_source: Source of raw terminal events.
            provider_factory: Builds the provider for each collection task.
            poll_interval: Seconds between data collection cycles.
        """
        if tick_rate <= 0 or frame_rate <= 0:
            raise ValueError("tick_rate and frame_rate must be positive")
        if poll_interval <= 0:
            raise ValueError("poll_interval must be positive")
        self.tick_rate = tick_rate
        self.frame_rate = frame_rate
        self.mouse = mouse
        self.paste = paste
        self.poll_interval = poll_interval
        self._input_source = input_source
        self._provider_factory = provider_factory
        self._channel = EventChannel()
        self._token = CancellationToken()
        self._input_task: asyncio.Task[None] | None = None
        self._data_task: asyncio.Task[None] | None = None
        self._idle = asyncio.Event()
        self._idle.set()

    @property
    def running(self) -> bool:
        """Whether any background task is still alive."""
        return any(not task.done() for task in self._tasks())

    def _tasks(self) -> list[asyncio.Task[None]]:
        return [task for task in (self._input_task, self._data_task) if task is not None]

    def start(self) -> None:
        """Cancel any previous session and spawn fresh background tasks."""
        self.cancel()
        self._token = CancellationToken()
        self._idle.clear()

        self._data_task = asyncio.create_task(
            self._data_collection_task(self._token),
            name="sysdash-data-collection",
        )
        self._input_task = asyncio.create_task(
            self._input_loop(self._token),
            name="sysdash-input-loop",
        )
        for task in self._tasks():
            task.add_done_callback(self._on_task_done)

    def cancel(self) -> None:
        """Request cooperative shutdown of the current session."""
        self._token.cancel()

    def close(self) -> None:
        """Close the queue. Producers stop on their next send."""
        self._channel.close()

    async def stop(self) -> None:
        """
        Cancel and wait for both background tasks.

        Raises:
            ShutdownTimeoutError: If a task is still running after the retry
                budget, even after being forcibly cancelled.
        """
        self.cancel()
        for task in self._tasks():
            await self._abort_task(task, MAX_RETRIES)

    async def _abort_task(self, task: asyncio.Task[None], max_retries: int) -> None:
        for attempt in range(max_retries):
            if task.done():
                return

            if attempt == max_retries // 2:
                logger.debug("Forcing abort of %s", task.get_name())
                task.cancel()

            await asyncio.sleep(SLEEP_INTERVAL)

        if task.done():
            return
        raise ShutdownTimeoutError(
            f"Failed to abort task within {int(max_retries * SLEEP_INTERVAL * 1000)} milliseconds"
        )

    async def suspend(self) -> None:
        """Stop the background tasks before the terminal is released."""
        await self.stop()

    def resume(self) -> None:
        """Restart the background tasks once the terminal is back."""
        self.start()

    async def next(self) -> Event | None:
        """
        Wait for the next event.

        Returns:
            The next event, or None when the channel is closed or no producer
            is left and the queue is drained.
        """
        while True:
            if not self._channel.empty():
                return self._channel.get_nowait()
            if self._channel.closed or self._idle.is_set():
                return None

            getter = asyncio.ensure_future(self._channel.get())
            idle = asyncio.ensure_future(self._idle.wait())
            try:
                await asyncio.wait({getter, idle}, return_when=asyncio.FIRST_COMPLETED)
            finally:
                idle.cancel()
                if not getter.done():
                    getter.cancel()
            if getter.done() and not getter.cancelled():
                return getter.result()

    def _on_task_done(self, task: asyncio.Task[None]) -> None:
        if not task.cancelled() and task.exception() is not None:
            logger.error(
                "Background task %s failed",
                task.get_name(),
                exc_info=task.exception(),
            )
        if task in self._tasks() and not self.running:
            self._idle.set()

    async def _data_collection_task(self, token: CancellationToken) -> None:
        collector = DataCollector(self._provider_factory())
        await collection_loop(collector, self._channel, token, self.poll_interval)

    async def _input_loop(self, token: CancellationToken) -> None:
        channel = self._channel
        tick_interval = Interval(1.0 / self.tick_rate)
        render_interval = Interval(1.0 / self.frame_rate)

        channel.send(Init())

        cancelled = asyncio.ensure_future(token.wait())
        reader: asyncio.Future | None = asyncio.ensure_future(self._input_source.read())
        tick = asyncio.ensure_future(tick_interval.tick())
        render = asyncio.ensure_future(render_interval.tick())
        read_failures = 0

        try:
            while True:
                waiting = {cancelled, tick, render}
                if reader is not None:
                    waiting.add(reader)
                done, _ = await asyncio.wait(waiting, return_when=asyncio.FIRST_COMPLETED)

                # Service exactly one ready branch, chosen without priority
                ready = random.choice(list(done))

                if ready is cancelled:
                    return

                if ready is reader:
                    read_failures = read_failures + 1 if reader.exception() is not None else 0
                    sent, exhausted = self._handle_input(reader)
                    if read_failures >= MAX_READ_FAILURES:
                        logger.warning("Input source failed %d times in a row, no longer reading it", read_failures)
                        exhausted = True
                    reader = None
                    if not exhausted:
                        reader = asyncio.ensure_future(self._input_source.read())
                elif ready is tick:
                    sent = channel.send(Tick())
                    tick = asyncio.ensure_future(tick_interval.tick())
                else:
                    sent = channel.send(Render())
                    render = asyncio.ensure_future(render_interval.tick())

                if not sent:
                    logger.debug("Event channel closed, stopping input loop")
                    return
        finally:
            for future in (cancelled, reader, tick, render):
                if future is not None and not future.done():
                    future.cancel()

    def _handle_input(self, reader: asyncio.Future) -> tuple[bool, bool]:
        """
        Decode one finished read and enqueue the result.

        Returns:
            (sent, exhausted): whether the channel accepted the event and
            whether the input source has no more events.
        """
        try:
            raw = reader.result()
        except Exception as e:
            logger.warning("Failed to read terminal input: %s", e)
            return self._channel.send(Error(message=str(e))), False

        if raw is None:
            logger.debug("Input source exhausted")
            return True, True

        try:
            event = decode_input(raw)
        except InputDecodeError as e:
            logger.debug("%s", e)
            return self._channel.send(Error(message=str(e))), False

        # Capture of these is opt-in
        if isinstance(event, Mouse) and not self.mouse:
            return True, False
        if isinstance(event, Paste) and not self.paste:
            return True, False
        return self._channel.send(event), False
