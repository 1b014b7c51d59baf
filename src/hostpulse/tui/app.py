"""Real-time host status dashboard.

The app is a thin driver around the refresh state machine: timers and key
presses become events, `transition` decides what happens, and this module
executes the returned commands and renders the latest snapshot.
"""

import asyncio
from typing import Any

from rich.text import Text
from textual.app import App, ComposeResult
from textual.containers import Horizontal, Vertical
from textual.css.query import NoMatches
from textual.timer import Timer
from textual.widgets import DataTable, Footer, Label, Static

from hostpulse.collector import Collector, MetricsSnapshot
from hostpulse.config import Config
from hostpulse.formatting import (
    format_bytes,
    format_percent,
    format_rate,
    format_uptime,
    progress_bar,
    truncate,
)
from hostpulse.health import HealthBand, health_band, usage_band
from hostpulse.refresh import (
    Command,
    Event,
    MetricsReady,
    Quit,
    RefreshRequested,
    Tick,
    ToggleDisplay,
    initial_state,
    start,
    transition,
)
from hostpulse.ringbuffer import TrendHistory
from hostpulse.tui.sparkline import GradientColor, Sparkline

BAR_WIDTH = 30


def band_color(config: Config, band: HealthBand) -> str:
    """Look up the configured color for a band."""
    return getattr(config.tui.colors, band)


def render_usage(config: Config, label: str, used: int, total: int, percent: float) -> Text:
    """Two-line usage block: "label used / total (pct)" plus a bar."""
    color = band_color(config, usage_band(percent))
    text = Text()
    text.append(f"{label} ", style=config.tui.colors.dim)
    text.append(format_bytes(used), style=color)
    text.append(f" / {format_bytes(total)} ")
    text.append(f"({format_percent(percent)})", style=color)
    text.append("\n")
    text.append(progress_bar(percent, BAR_WIDTH), style=color)
    return text


class HealthHeader(Static):
    """Health score gauge and status message."""

    DEFAULT_CSS = """
    HealthHeader {
        height: 3;
        padding: 0 1;
        border: solid green;
        border-title-align: left;
    }
    """

    def compose(self) -> ComposeResult:
        yield Label("Loading system metrics...", id="health-gauge")

    def on_mount(self) -> None:
        self.border_title = "HEALTH"

    def update_from_snapshot(self, snapshot: MetricsSnapshot, collecting: bool) -> None:
        config = self.app.config
        color = band_color(config, health_band(snapshot.health_score))
        self.styles.border = ("solid", color)

        gauge = Text()
        gauge.append(f"{snapshot.health_score:3d}% ", style=f"bold {color}")
        gauge.append(progress_bar(snapshot.health_score, 20), style=color)
        gauge.append(f"  {snapshot.health_message}")
        stamp = snapshot.collected_at.strftime("%H:%M:%S")
        gauge.append(f"   {stamp}{' …' if collecting else ''}", style=config.tui.colors.dim)
        try:
            self.query_one("#health-gauge", Label).update(gauge)
        except NoMatches:
            pass


class InfoPanel(Static):
    """Bordered panel whose body is replaced on every snapshot."""

    DEFAULT_CSS = """
    InfoPanel {
        height: auto;
        min-height: 4;
        padding: 0 1;
        border: solid $primary;
        border-title-align: left;
    }
    """

    def __init__(self, title: str, **kwargs: Any) -> None:
        super().__init__(**kwargs)
        self._title = title

    def on_mount(self) -> None:
        self.border_title = self._title


def system_text(config: Config, s: MetricsSnapshot) -> Text:
    dim = config.tui.colors.dim
    text = Text()
    text.append("Host: ", style=dim)
    text.append(s.hostname or "-")
    text.append("\nOS: ", style=dim)
    text.append(s.os_detail or s.platform or "-")
    text.append("\nUptime: ", style=dim)
    text.append(format_uptime(s.uptime_seconds))
    if s.battery is not None:
        text.append("\nBattery: ", style=dim)
        text.append(f"{s.battery.percent}%")
        if s.battery.charging:
            text.append(" (charging)", style=dim)
    return text


def cpu_text(config: Config, s: MetricsSnapshot) -> Text:
    dim = config.tui.colors.dim
    color = band_color(config, usage_band(s.cpu_percent))
    text = Text()
    text.append("Model: ", style=dim)
    text.append(truncate(s.cpu_model, 50) or "-")
    text.append("\nUsage: ", style=dim)
    text.append(format_percent(s.cpu_percent), style=color)
    text.append(f" ({s.cpu_cores} cores)")
    text.append("\n")
    text.append(progress_bar(s.cpu_percent, BAR_WIDTH), style=color)
    return text


def memory_text(config: Config, s: MetricsSnapshot) -> Text:
    text = render_usage(config, "RAM:", s.mem_used, s.mem_total, s.mem_percent)
    if s.swap_total > 0:
        text.append("\n")
        text.append_text(render_usage(config, "Swap:", s.swap_used, s.swap_total, s.swap_percent))
    return text


def disks_text(config: Config, s: MetricsSnapshot) -> Text:
    if not s.disks:
        return Text("No disks", style=config.tui.colors.dim)
    parts = [
        render_usage(config, truncate(d.device, 20), d.used, d.total, d.used_percent)
        for d in s.disks
    ]
    return Text("\n").join(parts)


def network_text(config: Config, s: MetricsSnapshot, history: TrendHistory) -> Text:
    dim = config.tui.colors.dim
    text = Text()
    recv, sent = history.net_recv_rate.latest, history.net_send_rate.latest
    if recv is not None and sent is not None:
        text.append("Rate: ", style=dim)
        text.append(f"↓{format_rate(recv)} ↑{format_rate(sent)}\n")
    for n in s.networks[: config.tui.max_networks]:
        text.append(truncate(n.name, config.tui.name_truncate_length) + ": ", style=dim)
        text.append(f"↑{format_bytes(n.bytes_sent)} ↓{format_bytes(n.bytes_recv)}\n")
    if not s.networks:
        text.append("No active interfaces", style=dim)
    text.rstrip()
    return text


class TrendPanel(Static):
    """Sparklines fed from the trend history ring buffers."""

    DEFAULT_CSS = """
    TrendPanel {
        height: auto;
        padding: 0 1;
        border: solid $primary;
        border-title-align: left;
    }

    TrendPanel Horizontal {
        height: auto;
    }

    TrendPanel .trend-label {
        width: 8;
    }
    """

    SERIES = (
        ("cpu", "CPU"),
        ("memory", "MEM"),
        ("health", "HEALTH"),
    )

    def compose(self) -> ComposeResult:
        height = self.app.config.tui.sparkline_height
        for key, label in self.SERIES:
            yield Horizontal(
                Label(label, classes="trend-label"),
                Sparkline(
                    height=height,
                    max_value=100,
                    color_func=self._color_for(key),
                    id=f"trend-{key}",
                ),
            )

    def on_mount(self) -> None:
        self.border_title = "TRENDS"

    def _color_for(self, key: str):
        colors = self.app.config.tui.colors
        if key == "health":
            # Low health is bad
            return GradientColor([(0, colors.danger), (50, colors.warn), (90, colors.ok)])
        return GradientColor([(0, colors.ok), (70, colors.warn), (90, colors.danger)])

    def update_history(self, history: TrendHistory) -> None:
        for key, _ in self.SERIES:
            try:
                sparkline = self.query_one(f"#trend-{key}", Sparkline)
            except NoMatches:
                continue
            sparkline.set_values(getattr(history, key).values())


class ProcessTable(Static):
    """Top processes by CPU."""

    DEFAULT_CSS = """
    ProcessTable {
        height: 9;
        border: solid $primary;
        border-title-align: left;
    }

    ProcessTable DataTable {
        width: 100%;
        height: 100%;
    }
    """

    def compose(self) -> ComposeResult:
        yield DataTable(id="process-table", zebra_stripes=True, cursor_type="none")

    def on_mount(self) -> None:
        self.border_title = "TOP PROCESSES"
        self.query_one("#process-table", DataTable).add_columns("PID", "Process", "CPU", "MEM")

    def update_processes(self, snapshot: MetricsSnapshot) -> None:
        config = self.app.config
        try:
            table = self.query_one("#process-table", DataTable)
        except NoMatches:
            return
        table.clear()
        for p in snapshot.top_processes:
            color = band_color(config, usage_band(p.cpu_percent))
            table.add_row(
                Text(str(p.pid), style=config.tui.colors.dim),
                Text(truncate(p.name, config.tui.name_truncate_length)),
                Text(format_percent(p.cpu_percent), style=color),
                Text(format_percent(p.memory_percent)),
            )


class HostPulseApp(App):
    """Real-time host status dashboard."""

    CSS = """
    Screen {
        layout: vertical;
    }

    #columns {
        height: auto;
    }

    #columns > Vertical {
        width: 1fr;
        height: auto;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("c", "toggle_trends", "Trends"),
    ]

    def __init__(self, config: Config | None = None, collector: Collector | None = None):
        super().__init__()
        self.config = config or Config.load()
        self.collector = collector or Collector(self.config.collector)
        self.history = TrendHistory(self.config.refresh.history_size)
        self.state = initial_state()
        self._collect_task: asyncio.Task | None = None
        self._tick_timer: Timer | None = None

    def compose(self) -> ComposeResult:
        yield HealthHeader(id="header")
        yield Horizontal(
            Vertical(
                InfoPanel("SYSTEM", id="system"),
                InfoPanel("CPU", id="cpu"),
                InfoPanel("MEMORY", id="memory"),
            ),
            Vertical(
                InfoPanel("DISKS", id="disks"),
                InfoPanel("NETWORK", id="network"),
            ),
            id="columns",
        )
        yield TrendPanel(id="trends")
        yield ProcessTable(id="processes")
        yield Footer()

    def on_mount(self) -> None:
        self.title = "hostpulse"
        self.sub_title = "Host Status"
        self.state, commands = start()
        self._execute(commands)

    def on_unmount(self) -> None:
        if self._collect_task and not self._collect_task.done():
            self._collect_task.cancel()
        self.collector.close()

    # ─── Event plumbing ───────────────────────────────────────────────────

    def feed(self, event: Event) -> None:
        """Feed an event through the state machine and act on the result."""
        if isinstance(event, MetricsReady):
            self.history.record(event.snapshot)
        self.state, commands = transition(
            self.state, event, collect_every=self.config.refresh.collect_every
        )
        self._execute(commands)
        self._render_state()

    def _execute(self, commands: tuple[Command, ...]) -> None:
        for command in commands:
            if command is Command.COLLECT:
                self._collect_task = asyncio.create_task(self._collect())
            elif command is Command.SCHEDULE_TICK:
                self._tick_timer = self.set_timer(
                    self.config.refresh.tick_interval, lambda: self.feed(Tick())
                )
            elif command is Command.QUIT:
                self.exit()

    async def _collect(self) -> None:
        snapshot = await self.collector.collect()
        self.feed(MetricsReady(snapshot))

    async def action_quit(self) -> None:
        self.feed(Quit())

    def action_refresh(self) -> None:
        self.feed(RefreshRequested())

    def action_toggle_trends(self) -> None:
        self.feed(ToggleDisplay())

    # ─── Rendering ────────────────────────────────────────────────────────

    def _render_state(self) -> None:
        state = self.state
        try:
            self.query_one("#trends", TrendPanel).display = state.show_trends
        except NoMatches:
            pass

        snapshot = state.snapshot
        if snapshot is None:
            return

        self.sub_title = "Host Status (refreshing)" if state.collecting else "Host Status"
        panels = {
            "#system": system_text(self.config, snapshot),
            "#cpu": cpu_text(self.config, snapshot),
            "#memory": memory_text(self.config, snapshot),
            "#disks": disks_text(self.config, snapshot),
            "#network": network_text(self.config, snapshot, self.history),
        }
        try:
            self.query_one("#header", HealthHeader).update_from_snapshot(
                snapshot, state.collecting
            )
            for selector, body in panels.items():
                self.query_one(selector, InfoPanel).update(body)
            self.query_one("#trends", TrendPanel).update_history(self.history)
            self.query_one("#processes", ProcessTable).update_processes(snapshot)
        except NoMatches:
            pass


def run_tui(config: Config | None = None) -> None:
    """Run the TUI application."""
    app = HostPulseApp(config)
    app.run()
