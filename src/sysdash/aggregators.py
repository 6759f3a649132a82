"""Sliding-window view models fed by DataUpdate events."""

import logging
from collections import deque
from enum import Enum
from typing import Iterator, Protocol

from sysdash.events import DataUpdate, Event
from sysdash.models import DiskReading, MemoryReading, NetworkReading, ProcessReading

logger = logging.getLogger(__name__)

MAX_DATA_POINTS = 50
MEMORY_WINDOW_SIZE = 10
NETWORK_WINDOW_SIZE = 25


class Aggregator(Protocol):
    """State that updates itself from scheduler events."""

    def apply(self, event: Event) -> None:
        ...


class SlidingWindow:
    """
    Fixed-capacity series of (position, value) points for one chart channel.

    Positions always run 0..len-1: when the window is full, the oldest point
    is dropped and every remaining point shifts one position to the left
    before the new point is appended.
    """

    def __init__(self, capacity: int) -> None:
        if capacity < 1:
            raise ValueError("capacity must be at least 1")
        self._capacity = capacity
        self._points: deque[tuple[float, float]] = deque()

    @property
    def capacity(self) -> int:
        return self._capacity

    def push(self, value: float) -> None:
        """Append a value, evicting and reindexing if the window is full."""
        if len(self._points) >= self._capacity:
            self._points.popleft()
            self._points = deque((x - 1.0, y) for x, y in self._points)
        self._points.append((float(len(self._points)), value))

    def points(self) -> list[tuple[float, float]]:
        """Copy of the (position, value) points, oldest first."""
        return list(self._points)

    def values(self) -> list[float]:
        """Values only, oldest first."""
        return [y for _, y in self._points]

    def last(self) -> float | None:
        """Most recent value, None if empty."""
        return self._points[-1][1] if self._points else None

    def __len__(self) -> int:
        return len(self._points)

    def __iter__(self) -> Iterator[tuple[float, float]]:
        return iter(self._points)


class CpuAggregator:
    """Per-core usage history."""

    def __init__(self, capacity: int = MAX_DATA_POINTS) -> None:
        self.capacity = capacity
        self.windows: dict[str, SlidingWindow] = {}
        self.max_usage = 0.0

    def apply(self, event: Event) -> None:
        if not isinstance(event, DataUpdate):
            return
        cpu = event.snapshot.cpu
        if cpu is None:
            logger.debug("DataUpdate without CPU data")
            return

        for reading in cpu:
            window = self.windows.get(reading.name)
            if window is None:
                window = self.windows[reading.name] = SlidingWindow(self.capacity)
            window.push(reading.usage_percent)
            self.max_usage = max(self.max_usage, reading.usage_percent)

    def latest(self) -> dict[str, float]:
        """Last usage of every core, ordered by core name."""
        return {
            name: window.last() or 0.0
            for name, window in sorted(self.windows.items(), key=lambda item: _natural_key(item[0]))
        }


def _natural_key(name: str) -> tuple[str, int]:
    """Sort 'cpu10' after 'cpu9'."""
    prefix = name.rstrip("0123456789")
    suffix = name[len(prefix):]
    return prefix, int(suffix) if suffix else -1


def usage_percent(total: int, free: int) -> float:
    """Used share of `total` in percent, 0.0 when total is 0."""
    if total <= 0:
        return 0.0
    percent = (total - free) / total * 100.0
    return min(100.0, max(0.0, percent))


class MemoryAggregator:
    """RAM and swap usage history."""

    def __init__(self, capacity: int = MEMORY_WINDOW_SIZE) -> None:
        self.ram = SlidingWindow(capacity)
        self.swap = SlidingWindow(capacity)
        self.latest: MemoryReading | None = None

    def apply(self, event: Event) -> None:
        if not isinstance(event, DataUpdate):
            return
        memory = event.snapshot.memory
        if memory is None:
            logger.debug("DataUpdate without memory data")
            return

        self.latest = memory
        self.ram.push(usage_percent(memory.total_ram, memory.free_ram))
        self.swap.push(usage_percent(memory.total_swap, memory.free_swap))


class NetworkAggregator:
    """Received and transmitted bytes per cycle, summed over interfaces."""

    def __init__(self, capacity: int = NETWORK_WINDOW_SIZE) -> None:
        self.received = SlidingWindow(capacity)
        self.transmitted = SlidingWindow(capacity)
        self.total_received = 0
        self.total_transmitted = 0
        self.interfaces: tuple[NetworkReading, ...] = ()

    def apply(self, event: Event) -> None:
        if not isinstance(event, DataUpdate):
            return
        networks = event.snapshot.networks
        if networks is None:
            logger.debug("DataUpdate without network data")
            return

        received = sum(n.received_delta for n in networks)
        transmitted = sum(n.transmitted_delta for n in networks)

        self.interfaces = networks
        self.received.push(received)
        self.transmitted.push(transmitted)
        self.total_received += received
        self.total_transmitted += transmitted


class SortKey(Enum):
    """Sort keys for the process table."""

    CPU = "cpu"
    PID = "pid"
    NAME = "name"


class ProcessAggregator:
    """Latest process list and its sort order."""

    def __init__(self) -> None:
        self.processes: tuple[ProcessReading, ...] = ()
        self._sort_key = SortKey.CPU

    @property
    def sort_key(self) -> SortKey:
        """Get current sort key."""
        return self._sort_key

    def cycle_sort(self) -> SortKey:
        """Cycle to the next sort key and return it."""
        keys = list(SortKey)
        self._sort_key = keys[(keys.index(self._sort_key) + 1) % len(keys)]
        return self._sort_key

    def apply(self, event: Event) -> None:
        if not isinstance(event, DataUpdate):
            return
        if event.snapshot.processes is None:
            logger.debug("DataUpdate without process data")
            return
        self.processes = event.snapshot.processes

    def sorted(self) -> list[ProcessReading]:
        """Processes ordered by the current sort key, busiest first for CPU."""
        key_func = {
            SortKey.CPU: lambda p: p.cpu_usage,
            SortKey.PID: lambda p: p.pid,
            SortKey.NAME: lambda p: p.name.lower(),
        }
        return sorted(self.processes, key=key_func[self._sort_key], reverse=self._sort_key is SortKey.CPU)


class DiskAggregator:
    """Latest disk list."""

    def __init__(self) -> None:
        self.disks: tuple[DiskReading, ...] = ()

    def apply(self, event: Event) -> None:
        if isinstance(event, DataUpdate) and event.snapshot.disks is not None:
            self.disks = event.snapshot.disks
