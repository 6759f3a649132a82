"""sysdash - Textual render layer and event consumer."""

import logging
import os
import signal
from typing import Callable

from textual import events
from textual.app import App, ComposeResult, SuspendNotSupported
from textual.containers import Container, Horizontal, Vertical
from textual.css.query import NoMatches
from textual.widgets import DataTable, Sparkline, Static

from sysdash.aggregators import (
    Aggregator,
    CpuAggregator,
    DiskAggregator,
    MemoryAggregator,
    NetworkAggregator,
    ProcessAggregator,
)
from sysdash.config import Config
from sysdash.errors import ShutdownTimeoutError
from sysdash.events import DataUpdate, Error, Event, Init, Key, Render, Resize
from sysdash.logs import initialize_logging
from sysdash.models import DiskReading, ProcessReading
from sysdash.provider import SystemInfoProvider
from sysdash.scheduler import EventScheduler, QueueInputSource

logger = logging.getLogger(__name__)

# Rows shown in the process table
MAX_PROCESS_ROWS = 200

_RAW_INPUT = (
    events.Key,
    events.MouseEvent,
    events.Resize,
    events.Paste,
    events.AppFocus,
    events.AppBlur,
)


def format_bytes(size: float) -> str:
    """Format bytes as human-readable string."""
    for unit in ["B", "K", "M", "G", "T"]:
        if size < 1024:
            return f"{size:5.1f}{unit}" if unit != "B" else f"{int(size):5d}{unit}"
        size = size / 1024
    return f"{size:.1f}P"


def usage_bar(percent: float, width: int = 20, color: str = "green") -> str:
    """Rich markup bar for a 0-100 value."""
    filled = min(width, max(0, int(percent / 100 * width)))
    return f"[{color}]" + "█" * filled + f"[/{color}]" + "[dim]░[/dim]" * (width - filled)


class CpuPanel(Static):
    """Per-core usage bars."""

    DEFAULT_CSS = """
    CpuPanel {
        height: auto;
        min-height: 3;
        border: solid $primary;
        padding: 0 1;
    }
    """

    def show(self, cpu: CpuAggregator) -> None:
        """Redraw from the CPU aggregator."""
        latest = cpu.latest()
        self.border_title = f"CPU (peak {cpu.max_usage:.1f}%)"
        if not latest:
            self.update("Loading CPU info...")
            return
        lines = [
            f"{name:<6} \\[{usage_bar(usage)}] {usage:5.1f}%"
            for name, usage in latest.items()
        ]
        self.update("\n".join(lines))


class MemoryPanel(Vertical):
    """RAM and swap usage sparklines."""

    DEFAULT_CSS = """
    MemoryPanel {
        height: auto;
        border: solid $primary;
        padding: 0 1;
    }
    MemoryPanel Sparkline {
        height: 2;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("Loading memory info...", id="ram-label")
        yield Sparkline([], id="ram-spark")
        yield Static("", id="swap-label")
        yield Sparkline([], id="swap-spark")

    def on_mount(self) -> None:
        self.border_title = "Memory"

    def show(self, memory: MemoryAggregator) -> None:
        """Redraw from the memory aggregator."""
        reading = memory.latest
        if reading is None:
            return
        ram = memory.ram.last() or 0.0
        swap = memory.swap.last() or 0.0
        self.query_one("#ram-label", Static).update(
            f"RAM  {ram:5.1f}%  {format_bytes(reading.total_ram - reading.free_ram)}"
            f"/{format_bytes(reading.total_ram)}"
        )
        self.query_one("#swap-label", Static).update(
            f"Swap {swap:5.1f}%  {format_bytes(reading.total_swap - reading.free_swap)}"
            f"/{format_bytes(reading.total_swap)}"
        )
        self.query_one("#ram-spark", Sparkline).data = memory.ram.values()
        self.query_one("#swap-spark", Sparkline).data = memory.swap.values()


class NetworkPanel(Vertical):
    """Received and transmitted throughput sparklines."""

    DEFAULT_CSS = """
    NetworkPanel {
        height: auto;
        border: solid $primary;
        padding: 0 1;
    }
    NetworkPanel Sparkline {
        height: 2;
    }
    """

    def compose(self) -> ComposeResult:
        yield Static("Received", id="rx-label")
        yield Sparkline([], id="rx-spark")
        yield Static("Transmitted", id="tx-label")
        yield Sparkline([], id="tx-spark")

    def on_mount(self) -> None:
        self.border_title = "Network"

    def show(self, network: NetworkAggregator) -> None:
        """Redraw from the network aggregator."""
        rx = network.received.last() or 0
        tx = network.transmitted.last() or 0
        self.query_one("#rx-label", Static).update(
            f"Received    {format_bytes(rx)}/s  total {format_bytes(network.total_received)}"
        )
        self.query_one("#tx-label", Static).update(
            f"Transmitted {format_bytes(tx)}/s  total {format_bytes(network.total_transmitted)}"
        )
        self.query_one("#rx-spark", Sparkline).data = network.received.values()
        self.query_one("#tx-spark", Sparkline).data = network.transmitted.values()


class DiskTable(Container):
    """Mounted filesystems."""

    DEFAULT_CSS = """
    DiskTable {
        height: auto;
        max-height: 10;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        yield DataTable(id="disk-table", show_cursor=False)

    def on_mount(self) -> None:
        self.border_title = "Disks"
        table = self.query_one("#disk-table", DataTable)
        table.add_column("Mount", key="mount")
        table.add_column("Name", key="name")
        table.add_column("FS", key="fs", width=6)
        table.add_column("Kind", key="kind", width=7)
        table.add_column("Used", key="used", width=8)
        table.add_column("Total", key="total", width=8)
        table.add_column("Use%", key="percent", width=6)

    def update_disks(self, disks: tuple[DiskReading, ...]) -> None:
        """Replace the rows with the latest disks."""
        table = self.query_one("#disk-table", DataTable)
        table.clear()
        for disk in disks:
            mount = disk.mount_path + (" (rm)" if disk.removable else "")
            table.add_row(
                mount,
                disk.name,
                disk.filesystem,
                disk.kind,
                format_bytes(disk.used_bytes),
                format_bytes(disk.total_bytes),
                f"{disk.used_percent:5.1f}",
                key=disk.mount_path,
            )


class ProcessTable(Container):
    """Container for the process data table."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 1fr;
        border: solid $primary;
    }
    """

    def compose(self) -> ComposeResult:
        """Compose the process table."""
        yield DataTable(id="process-table")

    def on_mount(self) -> None:
        """Initialize the data table when mounted."""
        table = self.query_one("#process-table", DataTable)
        table.cursor_type = "row"

        table.add_column("PID", key="pid", width=8)
        table.add_column("Parent", key="parent", width=8)
        table.add_column("Name", key="name", width=24)
        table.add_column("Status", key="status", width=10)
        table.add_column("CPU%", key="cpu", width=8)

    def update_processes(self, processes: list[ProcessReading]) -> None:
        """
        Replace the table contents with already sorted processes.

        Rows are rebuilt rather than patched so the sort order is kept.
        """
        table = self.query_one("#process-table", DataTable)
        table.clear()

        for proc in processes[:MAX_PROCESS_ROWS]:
            table.add_row(
                str(proc.pid),
                str(proc.parent) if proc.parent is not None else "-",
                proc.name[:24],
                proc.status,
                f"{proc.cpu_usage:5.1f}",
                key=str(proc.pid),
            )


class SysdashApp(App):
    """Main sysdash application and the scheduler's consumer."""

    TITLE = "sysdash"
    SUB_TITLE = "q quit  s sort  ctrl+z suspend"

    CSS = """
    Screen {
        layout: vertical;
    }

    #charts {
        height: auto;
    }

    #cpu-panel {
        width: 1fr;
    }

    #side-panels {
        width: 1fr;
        height: auto;
    }
    """

    def __init__(
        self,
        config: Config | None = None,
        provider_factory: Callable[[], SystemInfoProvider] = SystemInfoProvider,
    ) -> None:
        """Initialize the SysdashApp."""
        super().__init__()
        self.dashboard_config = config or Config()
        self._input = QueueInputSource()
        self._scheduler = EventScheduler(
            self.dashboard_config.tick_rate,
            self.dashboard_config.frame_rate,
            mouse=self.dashboard_config.mouse,
            paste=self.dashboard_config.paste,
            input_source=self._input,
            provider_factory=provider_factory,
            poll_interval=self.dashboard_config.poll_interval,
        )
        self.cpu = CpuAggregator(self.dashboard_config.cpu_window)
        self.memory = MemoryAggregator(self.dashboard_config.memory_window)
        self.network = NetworkAggregator(self.dashboard_config.network_window)
        self.processes = ProcessAggregator()
        self.disks = DiskAggregator()
        self._aggregators: list[Aggregator] = [
            self.cpu,
            self.memory,
            self.network,
            self.processes,
            self.disks,
        ]
        self._dirty = False

    @property
    def scheduler(self) -> EventScheduler:
        return self._scheduler

    def compose(self) -> ComposeResult:
        """Compose the application layout."""
        with Horizontal(id="charts"):
            yield CpuPanel(id="cpu-panel")
            with Vertical(id="side-panels"):
                yield MemoryPanel(id="memory-panel")
                yield NetworkPanel(id="network-panel")
        yield DiskTable(id="disk-panel")
        yield ProcessTable(id="process-panel")

    def on_mount(self) -> None:
        """Start the scheduler and its consumer."""
        self._scheduler.start()
        self.run_worker(self._consume_events(), name="sysdash-consumer", exclusive=True)

    async def on_event(self, event: events.Event) -> None:
        """Hand raw terminal input to the scheduler before normal dispatch."""
        # Input bubbling back up from widgets was already fed once
        if isinstance(event, _RAW_INPUT) and not event.is_forwarded:
            self._input.feed(event)
        await super().on_event(event)

    async def _consume_events(self) -> None:
        while (event := await self._scheduler.next()) is not None:
            await self.route_event(event)
        logger.debug("Event stream ended")

    async def route_event(self, event: Event) -> None:
        """Route one scheduler event."""
        if isinstance(event, DataUpdate):
            for aggregator in self._aggregators:
                aggregator.apply(event)
            self._dirty = True
        elif isinstance(event, Render):
            if self._dirty:
                try:
                    self._redraw()
                except NoMatches:
                    logger.debug("Skipping redraw, widgets not mounted")
                    return
                self._dirty = False
        elif isinstance(event, Key):
            await self._run_binding(event)
        elif isinstance(event, Error):
            logger.warning("Input error: %s", event.message)
        elif isinstance(event, Resize):
            logger.debug("Terminal resized to %dx%d", event.cols, event.rows)
            self._dirty = True
        elif isinstance(event, Init):
            logger.info("Scheduler session started")

    async def _run_binding(self, key: Key) -> None:
        action = self.dashboard_config.keybindings.get(key.key)
        if action == "quit":
            await self.action_quit()
        elif action == "suspend":
            await self.action_suspend_dashboard()
        elif action == "sort":
            sort_key = self.processes.cycle_sort()
            self.notify(f"Sort: {sort_key.value.upper()}")
            self._dirty = True

    def _redraw(self) -> None:
        self.query_one(CpuPanel).show(self.cpu)
        self.query_one(MemoryPanel).show(self.memory)
        self.query_one(NetworkPanel).show(self.network)
        self.query_one(DiskTable).update_disks(self.disks.disks)
        self.query_one(ProcessTable).update_processes(self.processes.sorted())

    async def _stop_scheduler(self) -> bool:
        """Stop the background tasks, False if they would not finish."""
        try:
            await self._scheduler.stop()
        except ShutdownTimeoutError as e:
            logger.error("Shutdown failed: %s", e)
            return False
        return True

    async def action_quit(self) -> None:
        """Stop the scheduler and leave."""
        stopped = await self._stop_scheduler()
        self._scheduler.close()
        self.exit(return_code=0 if stopped else 1)

    async def action_suspend_dashboard(self) -> None:
        """Release the terminal and stop the process until it is resumed."""
        if not await self._stop_scheduler():
            self._scheduler.close()
            self.exit(return_code=1)
            return
        try:
            with self.suspend():
                if hasattr(signal, "SIGTSTP"):
                    os.kill(os.getpid(), signal.SIGTSTP)
        except SuspendNotSupported:
            logger.warning("Suspend is not supported by this terminal driver")
        finally:
            self._scheduler.resume()

    async def on_unmount(self) -> None:
        """Make sure no background task outlives the app."""
        if self._scheduler.running:
            await self._stop_scheduler()


def run(config: Config) -> int:
    """Run the dashboard until the user quits."""
    log_path = initialize_logging(config)
    logger.info("Starting sysdash, logging to %s", log_path)
    app = SysdashApp(config)
    app.run()
    return app.return_code or 0
