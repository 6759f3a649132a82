"""Periodic data collection for sysdash."""

import asyncio
import logging
from typing import Callable, TypeVar

from sysdash.channel import CancellationToken, EventChannel
from sysdash.events import DataUpdate
from sysdash.models import Snapshot
from sysdash.provider import SystemInfoProvider

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Seconds between two collection cycles
DATA_COLLECTION_INTERVAL = 1.0


class DataCollector:
    """
    Builds one Snapshot per cycle from a SystemInfoProvider.

    Each subsystem is collected independently: a failure leaves its field
    empty and is logged, the other subsystems are unaffected.
    """

    def __init__(self, provider: SystemInfoProvider) -> None:
        """
        Initialize the DataCollector.

        Args:
            provider: Provider owned exclusively by this collector.
        """
        self._provider = provider

    def update_data(self) -> Snapshot:
        """Refresh the provider and collect a fresh Snapshot."""
        stale = self._refresh_provider()

        cpu = self._update_info(lambda p: tuple(p.cpus()), "CPU", stale)
        processes = self._update_info(lambda p: tuple(p.processes()), "Process", stale)
        disks = self._update_info(lambda p: tuple(p.disks()), "Disk", stale)
        networks = self._update_info(lambda p: tuple(p.networks()), "Network", stale)
        memory = self._update_info(lambda p: p.memory(), "Memory", stale)

        return Snapshot(
            cpu=cpu,
            processes=processes,
            disks=disks,
            networks=networks,
            memory=memory,
        )

    def _refresh_provider(self) -> set[str]:
        """Refresh every subsystem, returning the names whose refresh failed."""
        provider = self._provider
        failed = set()
        for name, refresh in (
            ("Network", provider.refresh_networks),
            ("CPU", provider.refresh_cpu),
            ("Memory", provider.refresh_memory),
            ("Process", provider.refresh_processes),
            ("Disk", provider.refresh_disks),
        ):
            try:
                refresh()
            except Exception as e:
                logger.warning("Failed to refresh %s data: %s", name, e)
                failed.add(name)
        return failed

    def _update_info(
        self,
        get_info: Callable[[SystemInfoProvider], T],
        info_type: str,
        stale: set[str],
    ) -> T | None:
        # The provider still holds the previous cycle's readings
        if info_type in stale:
            logger.warning("Failed to collect %s data: refresh failed", info_type)
            return None
        try:
            info = get_info(self._provider)
        except Exception as e:
            logger.warning("Failed to collect %s data: %s", info_type, e)
            return None
        logger.debug("Collected %s data", info_type)
        return info


async def collection_loop(
    collector: DataCollector,
    channel: EventChannel,
    token: CancellationToken,
    interval: float = DATA_COLLECTION_INTERVAL,
) -> None:
    """
    Publish a DataUpdate every `interval` seconds until cancelled.

    The provider calls run in a worker thread so a slow process scan does not
    stall the input loop. The sleep between cycles ends early on cancellation.
    """
    while not token.cancelled:
        snapshot = await asyncio.to_thread(collector.update_data)

        if not channel.send(DataUpdate(snapshot)):
            logger.debug("Event channel closed, stopping data collection")
            return

        try:
            await asyncio.wait_for(token.wait(), timeout=interval)
        except asyncio.TimeoutError:
            pass
