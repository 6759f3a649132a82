"""Tests for sysdash data models."""

import dataclasses

import pytest

from sysdash.models import (
    CpuReading,
    DiskReading,
    MemoryReading,
    NetworkReading,
    ProcessReading,
    Snapshot,
)


def make_disk(total: int = 1000, available: int = 250) -> DiskReading:
    return DiskReading(
        name="/dev/nvme0n1p2",
        kind="SSD",
        filesystem="ext4",
        total_bytes=total,
        available_bytes=available,
        removable=False,
        mount_path="/",
    )


def test_process_reading_creation():
    """Test ProcessReading dataclass creation."""
    reading = ProcessReading(pid=123, parent=1, name="test_process", status="running", cpu_usage=50.0)

    assert reading.pid == 123
    assert reading.parent == 1
    assert reading.name == "test_process"
    assert reading.status == "running"
    assert reading.cpu_usage == 50.0


def test_process_reading_parent_is_optional():
    """Test a process without parent keeps None."""
    reading = ProcessReading(pid=1, parent=None, name="init", status="sleeping", cpu_usage=0.0)
    assert reading.parent is None


def test_cpu_reading_is_frozen():
    """Test that CpuReading is immutable (frozen)."""
    reading = CpuReading(name="cpu0", vendor="AuthenticAMD", brand="Ryzen", usage_percent=3.0)

    with pytest.raises(dataclasses.FrozenInstanceError):
        reading.usage_percent = 99.0


@pytest.mark.parametrize(
    "reading",
    [
        CpuReading(name="cpu0", vendor="", brand="", usage_percent=0.0),
        ProcessReading(pid=1, parent=None, name="init", status="sleeping", cpu_usage=0.0),
        make_disk(),
        NetworkReading(
            name="eth0",
            mac="",
            received_delta=0,
            received_total=0,
            transmitted_delta=0,
            transmitted_total=0,
            packets_received=0,
            packets_transmitted=0,
        ),
        MemoryReading(total_ram=1, free_ram=1, total_swap=0, free_swap=0),
        Snapshot(),
    ],
)
def test_readings_use_slots(reading):
    """Test that readings use __slots__ for memory efficiency."""
    # Slots-based dataclasses don't have __dict__
    assert not hasattr(reading, "__dict__")


def test_disk_usage_properties():
    """Test DiskReading derives used bytes and percent."""
    disk = make_disk(total=1000, available=250)

    assert disk.used_bytes == 750
    assert disk.used_percent == 75.0


def test_disk_usage_with_unknown_size():
    """Test a zero-sized disk reports 0% instead of dividing by zero."""
    disk = make_disk(total=0, available=0)

    assert disk.used_bytes == 0
    assert disk.used_percent == 0.0


def test_snapshot_defaults_to_all_absent():
    """Test an empty Snapshot has every subsystem missing."""
    snapshot = Snapshot()

    assert snapshot.cpu is None
    assert snapshot.processes is None
    assert snapshot.disks is None
    assert snapshot.networks is None
    assert snapshot.memory is None


def test_snapshot_is_frozen():
    """Test that a published Snapshot cannot be modified."""
    snapshot = Snapshot(cpu=())

    with pytest.raises(dataclasses.FrozenInstanceError):
        snapshot.cpu = None
