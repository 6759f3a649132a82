"""psutil-backed system information provider."""

import logging
import platform
import socket
from pathlib import Path

import psutil

from sysdash.models import (
    CpuReading,
    DiskReading,
    MemoryReading,
    NetworkReading,
    ProcessReading,
)

logger = logging.getLogger(__name__)

_SYS_BLOCK = Path("/sys/block")


def _read_cpu_identity() -> tuple[str, str]:
    """Return (vendor, brand) of the host CPU, empty strings if unknown."""
    vendor = ""
    brand = ""
    try:
        with open("/proc/cpuinfo", encoding="utf-8") as f:
            for line in f:
                key, _, value = line.partition(":")
                key = key.strip()
                if key == "vendor_id" and not vendor:
                    vendor = value.strip()
                elif key == "model name" and not brand:
                    brand = value.strip()
                if vendor and brand:
                    break
    except OSError:
        pass
    return vendor, brand or platform.processor()


def _block_device(device: str) -> Path | None:
    """Map '/dev/sda1' to its parent '/sys/block/sda' directory."""
    name = Path(device).name
    if not name or not _SYS_BLOCK.is_dir():
        return None
    for block in _SYS_BLOCK.iterdir():
        if name == block.name or (block / name).exists():
            return block
    return None


def _disk_kind(block: Path | None) -> str:
    if block is None:
        return "Unknown"
    try:
        rotational = (block / "queue" / "rotational").read_text().strip()
    except OSError:
        return "Unknown"
    return "HDD" if rotational == "1" else "SSD"


def _disk_removable(block: Path | None) -> bool:
    if block is None:
        return False
    try:
        return (block / "removable").read_text().strip() == "1"
    except OSError:
        return False


class SystemInfoProvider:
    """
    Source of OS counters for the collection loop.

    Each subsystem is refreshed explicitly and then read back through its
    accessor as plain records. Not thread-safe: a single owner drives it.
    """

    def __init__(self) -> None:
        """Initialize the provider and prime the delta based counters."""
        self._vendor, self._brand = _read_cpu_identity()
        self._cpu_percents: list[float] = []
        self._memory: MemoryReading | None = None
        self._processes: list[ProcessReading] = []
        self._disks: list[DiskReading] = []
        self._networks: list[NetworkReading] = []
        self._prev_net: dict[str, tuple[int, int]] = {}
        # First call returns 0.0 for every core
        psutil.cpu_percent(percpu=True)
        # Process cpu_percent() is relative to the previous call as well
        for proc in psutil.process_iter():
            try:
                proc.cpu_percent()
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

    def refresh_all(self) -> None:
        """Refresh every subsystem."""
        self.refresh_cpu()
        self.refresh_memory()
        self.refresh_processes()
        self.refresh_disks()
        self.refresh_networks()

    def refresh_cpu(self) -> None:
        """Sample per-core usage since the previous refresh."""
        self._cpu_percents = psutil.cpu_percent(percpu=True)

    def refresh_memory(self) -> None:
        """Sample RAM and swap."""
        ram = psutil.virtual_memory()
        swap = psutil.swap_memory()
        self._memory = MemoryReading(
            total_ram=ram.total,
            free_ram=ram.available,
            total_swap=swap.total,
            free_swap=swap.free,
        )

    def refresh_processes(self) -> None:
        """
        Sample the process table.

        Processes that vanish or deny access mid-iteration are skipped.
        """
        processes: list[ProcessReading] = []
        attrs = ["pid", "ppid", "name", "status", "cpu_percent"]

        for proc in psutil.process_iter(attrs=attrs):
            try:
                info = proc.info
                ppid = info.get("ppid")
                processes.append(
                    ProcessReading(
                        pid=info.get("pid", 0),
                        parent=ppid if ppid else None,
                        name=info.get("name") or "",
                        status=info.get("status") or "?",
                        cpu_usage=info.get("cpu_percent") or 0.0,
                    )
                )
            except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
                continue

        self._processes = processes

    def refresh_disks(self) -> None:
        """Re-list mounted filesystems and sample their usage."""
        disks: list[DiskReading] = []

        for part in psutil.disk_partitions(all=False):
            try:
                usage = psutil.disk_usage(part.mountpoint)
            except (PermissionError, OSError) as e:
                logger.debug("Skipping disk %s: %s", part.mountpoint, e)
                continue
            block = _block_device(part.device)
            disks.append(
                DiskReading(
                    name=part.device,
                    kind=_disk_kind(block),
                    filesystem=part.fstype,
                    total_bytes=usage.total,
                    available_bytes=usage.free,
                    removable=_disk_removable(block),
                    mount_path=part.mountpoint,
                )
            )

        self._disks = disks

    def refresh_networks(self) -> None:
        """
        Sample interface counters.

        Deltas are relative to the previous refresh; an interface seen for the
        first time reports a delta of 0.
        """
        counters = psutil.net_io_counters(pernic=True)
        addresses = psutil.net_if_addrs()
        link_family = getattr(psutil, "AF_LINK", getattr(socket, "AF_PACKET", None))

        networks: list[NetworkReading] = []
        current: dict[str, tuple[int, int]] = {}

        for name, stats in counters.items():
            mac = ""
            for addr in addresses.get(name, []):
                if addr.family == link_family:
                    mac = addr.address
                    break

            prev_recv, prev_sent = self._prev_net.get(name, (stats.bytes_recv, stats.bytes_sent))
            current[name] = (stats.bytes_recv, stats.bytes_sent)
            networks.append(
                NetworkReading(
                    name=name,
                    mac=mac,
                    # Counters can wrap or reset when an interface goes down
                    received_delta=max(0, stats.bytes_recv - prev_recv),
                    received_total=stats.bytes_recv,
                    transmitted_delta=max(0, stats.bytes_sent - prev_sent),
                    transmitted_total=stats.bytes_sent,
                    packets_received=stats.packets_recv,
                    packets_transmitted=stats.packets_sent,
                )
            )

        self._prev_net = current
        self._networks = networks

    def cpus(self) -> list[CpuReading]:
        """Per-core readings from the last refresh."""
        return [
            CpuReading(
                name=f"cpu{i}",
                vendor=self._vendor,
                brand=self._brand,
                usage_percent=float(usage),
            )
            for i, usage in enumerate(self._cpu_percents)
        ]

    def memory(self) -> MemoryReading:
        """Memory reading from the last refresh."""
        if self._memory is None:
            raise RuntimeError("memory has not been refreshed")
        return self._memory

    def processes(self) -> list[ProcessReading]:
        """Process readings from the last refresh."""
        return list(self._processes)

    def disks(self) -> list[DiskReading]:
        """Disk readings from the last refresh."""
        return list(self._disks)

    def networks(self) -> list[NetworkReading]:
        """Interface readings from the last refresh."""
        return list(self._networks)
