"""Shared fixtures for sysdash tests."""

import asyncio

import pytest

from sysdash.events import DataUpdate, Init, Render, Tick
from sysdash.models import (
    CpuReading,
    DiskReading,
    MemoryReading,
    NetworkReading,
    ProcessReading,
)


class FakeProvider:
    """In-memory provider; subsystems named in `fail` raise on access."""

    def __init__(self, fail: tuple[str, ...] = ()) -> None:
        self.fail = set(fail)
        self.refreshed: list[str] = []

    def _check(self, name: str) -> None:
        if name in self.fail:
            raise RuntimeError(f"{name} unavailable")

    def refresh_cpu(self) -> None:
        self.refreshed.append("cpu")

    def refresh_memory(self) -> None:
        self.refreshed.append("memory")

    def refresh_processes(self) -> None:
        self.refreshed.append("processes")

    def refresh_disks(self) -> None:
        self.refreshed.append("disks")

    def refresh_networks(self) -> None:
        self.refreshed.append("networks")

    def refresh_all(self) -> None:
        for refresh in (
            self.refresh_cpu,
            self.refresh_memory,
            self.refresh_processes,
            self.refresh_disks,
            self.refresh_networks,
        ):
            refresh()

    def cpus(self) -> list[CpuReading]:
        self._check("cpu")
        return [
            CpuReading(name="cpu0", vendor="GenuineIntel", brand="Test CPU", usage_percent=12.5),
            CpuReading(name="cpu1", vendor="GenuineIntel", brand="Test CPU", usage_percent=40.0),
        ]

    def memory(self) -> MemoryReading:
        self._check("memory")
        return MemoryReading(total_ram=1000, free_ram=250, total_swap=0, free_swap=0)

    def processes(self) -> list[ProcessReading]:
        self._check("processes")
        return [
            ProcessReading(pid=1, parent=None, name="init", status="sleeping", cpu_usage=0.1),
            ProcessReading(pid=42, parent=1, name="python", status="running", cpu_usage=55.0),
        ]

    def disks(self) -> list[DiskReading]:
        self._check("disks")
        return [
            DiskReading(
                name="/dev/sda1",
                kind="SSD",
                filesystem="ext4",
                total_bytes=1000,
                available_bytes=400,
                removable=False,
                mount_path="/",
            )
        ]

    def networks(self) -> list[NetworkReading]:
        self._check("networks")
        return [
            NetworkReading(
                name="eth0",
                mac="00:11:22:33:44:55",
                received_delta=5,
                received_total=500,
                transmitted_delta=2,
                transmitted_total=200,
                packets_received=10,
                packets_transmitted=4,
            ),
            NetworkReading(
                name="lo",
                mac="00:00:00:00:00:00",
                received_delta=10,
                received_total=1000,
                transmitted_delta=10,
                transmitted_total=1000,
                packets_received=20,
                packets_transmitted=20,
            ),
        ]


@pytest.fixture
def fake_provider() -> FakeProvider:
    return FakeProvider()


TIMER_EVENTS = (Init, Tick, Render, DataUpdate)


async def next_input_event(scheduler, timeout: float = 2.0):
    """Next event that is not a timer, Init or DataUpdate."""

    async def _wait():
        while True:
            event = await scheduler.next()
            if event is None or not isinstance(event, TIMER_EVENTS):
                return event

    return await asyncio.wait_for(_wait(), timeout=timeout)
