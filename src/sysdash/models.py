"""Data models for sysdash."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class CpuReading:
    """Usage of a single logical core."""

    name: str  # 'cpu0', 'cpu1', ...
    vendor: str
    brand: str
    usage_percent: float  # 0.0 - 100.0


@dataclass(slots=True, frozen=True)
class ProcessReading:
    """Immutable snapshot of a process state."""

    pid: int
    parent: int | None
    name: str
    status: str  # 'running', 'sleeping', 'zombie', etc.
    cpu_usage: float


@dataclass(slots=True, frozen=True)
class DiskReading:
    """Capacity of a mounted filesystem."""

    name: str
    kind: str  # 'SSD', 'HDD' or 'Unknown'
    filesystem: str
    total_bytes: int
    available_bytes: int
    removable: bool
    mount_path: str

    @property
    def used_bytes(self) -> int:
        """Bytes in use on the filesystem."""
        return max(0, self.total_bytes - self.available_bytes)

    @property
    def used_percent(self) -> float:
        """Share of the filesystem in use, 0.0 when the size is unknown."""
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes * 100.0


@dataclass(slots=True, frozen=True)
class NetworkReading:
    """Traffic counters of one network interface."""

    name: str
    mac: str
    received_delta: int  # Bytes since the previous refresh
    received_total: int
    transmitted_delta: int
    transmitted_total: int
    packets_received: int
    packets_transmitted: int


@dataclass(slots=True, frozen=True)
class MemoryReading:
    """RAM and swap totals in bytes."""

    total_ram: int
    free_ram: int
    total_swap: int
    free_swap: int


@dataclass(slots=True, frozen=True)
class Snapshot:
    """
    One collection cycle of readings.

    A field is None when its subsystem failed to collect during the cycle.
    """

    cpu: tuple[CpuReading, ...] | None = None
    processes: tuple[ProcessReading, ...] | None = None
    disks: tuple[DiskReading, ...] | None = None
    networks: tuple[NetworkReading, ...] | None = None
    memory: MemoryReading | None = None
