"""
Terminal renderer built on rich.Live.

Draws the usage bars, I/O rates, running max/mean, trend sparklines and
the top-process list for each Frame. Refresh is manual (auto_refresh off)
so nothing draws outside the monitor's own thread.
"""
from __future__ import annotations
from datetime import datetime
from typing import List, Optional

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from .alerts import status_text
from .history import sparkline
from .models import AlertEvent, Frame, Level, ProcInfo

BAR_WIDTH = 20

LEVEL_STYLES = {
    Level.NORMAL:   "green",
    Level.CAUTION:  "yellow",
    Level.WARNING:  "red",
    Level.CRITICAL: "bold red",
}

_BARS = (("CPU", "cpu_percent"), ("RAM", "ram_percent"), ("DISK", "disk_percent"))
_TRENDS = (("CPU", "cpu_percent"), ("RAM", "ram_percent"), ("DSK", "disk_percent"))


def fmt_kbps(v: Optional[float]) -> str:
    return "n/a" if v is None else f"{v:.1f} KB/s"


def usage_bar(label: str, percent: float, level: Level) -> Text:
    percent = max(0.0, min(100.0, percent))
    filled = min(int(percent / 100.0 * BAR_WIDTH), BAR_WIDTH)
    style = LEVEL_STYLES[level]
    t = Text()
    t.append(f"{label:<5}", style="bold")
    t.append("[" + "#" * filled + "-" * (BAR_WIDTH - filled) + "]", style=style)
    t.append(f" {percent:5.1f}%", style=style)
    return t


class ConsoleRenderer:
    def __init__(self, console: Optional[Console] = None, log_path: str = "", bell: bool = True):
        self.console = console or Console()
        self.log_path = log_path
        self.bell = bell
        self._live: Optional[Live] = None

    # ── renderer contract ─────────────────────
    def render(self, frame: Frame) -> None:
        panel = self.build(frame)
        if self._live is None:
            self._live = Live(panel, console=self.console, auto_refresh=False, transient=False)
            self._live.start()
        self._live.update(panel, refresh=True)

    def reset(self) -> None:
        self._close_live()
        self.console.clear()

    def status(self, message: str) -> None:
        self._close_live()
        self.console.print(f"[dim]{message}[/dim]")

    def on_alert(self, event: AlertEvent) -> None:
        if self.bell and event.level >= Level.CAUTION:
            self.console.bell()

    def _close_live(self) -> None:
        if self._live is not None:
            try:
                self._live.stop()
            finally:
                self._live = None

    # ── layout ────────────────────────────────
    def build(self, frame: Frame) -> Panel:
        s = frame.sample
        parts: List = []

        header = Text()
        header.append("Elapsed: ", style="dim")
        header.append(str(frame.elapsed).split(".")[0])
        header.append("   Last update: ", style="dim")
        header.append(s.timestamp.strftime("%H:%M:%S"))
        parts.append(header)
        parts.append(Text())

        for label, name in _BARS:
            parts.append(usage_bar(label, getattr(s, name), frame.levels.get(name, Level.NORMAL)))

        ram_avail = "n/a" if s.ram_available_mb is None else f"{s.ram_available_mb:.0f} MB"
        parts.append(Text(f"RAM available: {ram_avail}"))
        if s.net_sent_kbps is None and s.net_recv_kbps is None:
            parts.append(Text("Network: unavailable", style="dim"))
        else:
            parts.append(Text(f"Network: ↑ {fmt_kbps(s.net_sent_kbps)} | ↓ {fmt_kbps(s.net_recv_kbps)}"))
        parts.append(Text(f"Disk I/O: read {fmt_kbps(s.disk_read_kbps)} | write {fmt_kbps(s.disk_write_kbps)}"))
        parts.append(Text())

        parts.append(self._stats_table(frame))
        parts.append(Text())
        parts.append(Text(status_text(frame.overall), style=LEVEL_STYLES[frame.overall]))

        trend_len = max((len(frame.history.get(n, ())) for _l, n in _TRENDS), default=0)
        if trend_len > 1:
            parts.append(Text())
            parts.append(Text(f"Trends over the last {trend_len} samples:", style="dim"))
            for label, name in _TRENDS:
                parts.append(Text(f"{label}: {sparkline(frame.history.get(name, ()))}"))

        procs = frame.extras.get("processes")
        if procs:
            parts.append(Text())
            parts.append(self._process_table(procs))

        subtitle = "[dim]Press Ctrl+C to stop[/dim]"
        if self.log_path:
            subtitle += f"[dim]  •  log: {self.log_path}[/dim]"
        return Panel(
            Group(*parts),
            title=f"[bold]System monitor[/bold] [dim]{datetime.now():%Y-%m-%d}[/dim]",
            subtitle=subtitle,
            border_style="cyan",
        )

    def _stats_table(self, frame: Frame) -> Table:
        table = Table(show_header=True, box=None, padding=(0, 2), header_style="dim")
        table.add_column("")
        table.add_column("Max", justify="right")
        table.add_column("Mean", justify="right")
        for label, name in _BARS:
            st = frame.stats.get(name)
            if st is None:
                continue
            table.add_row(label, f"{st.max:.1f}%", f"{st.mean:.1f}%")
        return table

    def _process_table(self, procs: List[ProcInfo]) -> Table:
        table = Table(title="Top processes", title_justify="left", box=None, padding=(0, 2))
        table.add_column("Name")
        table.add_column("RAM", justify="right")
        table.add_column("CPU", justify="right")
        for p in procs:
            cpu = "n/a" if p.cpu_seconds is None else f"{p.cpu_seconds:.1f}s"
            table.add_row(p.name[:20], f"{p.rss_mb:.0f} MB", cpu)
        return table
