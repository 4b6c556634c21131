"""
hostpulse – main window
"""
from __future__ import annotations

import time
from typing import List, Optional

from PySide6 import QtWidgets
from PySide6.QtCore import Qt, QTimer

from ..alerts import status_text
from ..config import AppConfig
from ..models import (
    AlertEvent, Frame, Level, METRIC_LABELS, METRICS, REQUIRED_METRICS, ProcInfo,
)

from .widgets import (
    MONO, PALETTE, LEVEL_COLORS,
    fmt_kbps, fmt_mb,
    LevelBadge, LevelDot, MetricCard, NumericSortItem,
)

STATS_COLUMNS = ["Metric", "Current", "Max", "Mean", "Samples", "Level"]
PROC_COLUMNS = ["Name", "PID", "RAM", "CPU time"]


# ──────────────────────────────────────────────
# Helpers
# ──────────────────────────────────────────────
def _set_cell(table: QtWidgets.QTableWidget, row: int, col: int, text: str, numeric: bool = False):
    item = NumericSortItem(text) if numeric else QtWidgets.QTableWidgetItem(text)
    item.setFlags(item.flags() & ~Qt.ItemIsEditable)
    table.setItem(row, col, item)


def _fmt_metric(name: str, value: Optional[float]) -> str:
    if value is None:
        return "n/a"
    if name in REQUIRED_METRICS:
        return f"{value:.1f}%"
    if name == "ram_available_mb":
        return fmt_mb(value)
    return fmt_kbps(value)


# ──────────────────────────────────────────────
# TopBar – name, run state, elapsed time, clock
# ──────────────────────────────────────────────
class TopBar(QtWidgets.QFrame):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(50)
        self.setStyleSheet(f"""
            TopBar {{ background: {PALETTE['bg_card']}; border-bottom: 1px solid {PALETTE['cyan']}; }}
            QLabel {{ {MONO} color: {PALETTE['text_muted']}; font-size: 13px; }}
        """)

        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(22, 0, 22, 0)
        lay.setSpacing(12)

        name = QtWidgets.QLabel(
            f'<span style="font-size:19px;font-weight:800;color:{PALETTE["cyan"]};">host</span>'
            f'<span style="font-size:19px;font-weight:300;">pulse</span>'
        )
        lay.addWidget(name)
        lay.addStretch(1)

        self._state_dot = LevelDot(PALETTE["green"])
        self._state = QtWidgets.QLabel("RUNNING")
        self._elapsed = QtWidgets.QLabel("up 0:00:00")
        self._clock = QtWidgets.QLabel("")
        for w in (self._state_dot, self._state, self._elapsed, self._clock):
            lay.addWidget(w)

        timer = QTimer(self)
        timer.setInterval(1000)
        timer.timeout.connect(lambda: self._clock.setText(time.strftime("%H:%M:%S")))
        timer.start()
        self._clock.setText(time.strftime("%H:%M:%S"))

    def set_elapsed(self, text: str):
        self._elapsed.setText(f"up {text}")

    def set_stopped(self):
        self._state_dot.set_color(PALETTE["text_muted"])
        self._state.setText("STOPPED")


# ──────────────────────────────────────────────
# StatusLine – steady status text with short alert flashes
# ──────────────────────────────────────────────
class StatusLine(QtWidgets.QFrame):
    FLASH_MS = 3500

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(32)
        self.setStyleSheet(f"StatusLine {{ background: {PALETTE['bg_card']}; "
                           f"border-top: 1px solid {PALETTE['border']}; }}")
        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(18, 0, 18, 0)
        lay.setSpacing(10)

        self._dot = LevelDot(PALETTE["text_muted"], diameter=8)
        self._text = QtWidgets.QLabel()
        self._path = QtWidgets.QLabel()
        self._path.setStyleSheet(f"{MONO} font-size: 10px; color: {PALETTE['text_muted']};")
        lay.addWidget(self._dot)
        lay.addWidget(self._text, 1)
        lay.addWidget(self._path)

        self._steady = ("Starting monitoring …", PALETTE["text_muted"])
        self._flash_timer = QTimer(self)
        self._flash_timer.setSingleShot(True)
        self._flash_timer.setInterval(self.FLASH_MS)
        self._flash_timer.timeout.connect(lambda: self._show(*self._steady))
        self._show(*self._steady)

    def set_log_path(self, path: str):
        self._path.setText(f"log: {path}" if path else "logging off")

    def set_steady(self, text: str, color: str):
        self._steady = (text, color)
        if not self._flash_timer.isActive():
            self._show(text, color)

    def flash(self, text: str, color: str):
        self._show(text, color)
        self._flash_timer.start()

    def _show(self, text: str, color: str):
        self._dot.set_color(color)
        self._text.setText(text)
        self._text.setStyleSheet(f"{MONO} font-size: 11px; color: {color};")


# ──────────────────────────────────────────────
# MainWindow
# ──────────────────────────────────────────────
class MainWindow(QtWidgets.QMainWindow):
    def __init__(self, cfg: AppConfig, log_path: str = ""):
        super().__init__()
        self.cfg = cfg
        self.setWindowTitle("hostpulse")
        self.resize(1200, 760)
        self.setMinimumSize(900, 600)

        root = QtWidgets.QWidget()
        root.setStyleSheet(f"background: {PALETTE['bg_deep']}; color: {PALETTE['text_primary']};")
        self.setCentralWidget(root)
        vroot = QtWidgets.QVBoxLayout(root)
        vroot.setContentsMargins(0, 0, 0, 0)
        vroot.setSpacing(0)

        self.topbar = TopBar()
        vroot.addWidget(self.topbar)

        body = QtWidgets.QVBoxLayout()
        body.setContentsMargins(16, 14, 16, 10)
        body.setSpacing(12)
        vroot.addLayout(body, 1)

        self.cards = {
            "cpu_percent":  MetricCard("CPU", PALETTE["cyan"]),
            "ram_percent":  MetricCard("MEMORY", PALETTE["blue"]),
            "disk_percent": MetricCard("DISK", PALETTE["yellow"]),
            "network":      MetricCard("NETWORK", PALETTE["purple"], fmt="{:.1f} KB/s"),
            "disk_io":      MetricCard("DISK I/O", PALETTE["orange"], fmt="{:.1f} KB/s"),
        }
        cards_row = QtWidgets.QHBoxLayout()
        cards_row.setSpacing(12)
        for card in self.cards.values():
            cards_row.addWidget(card, 1)
        body.addLayout(cards_row, 2)

        self.tbl_stats = self._make_table(STATS_COLUMNS)
        self.tbl_stats.setRowCount(len(METRICS))
        for r, name in enumerate(METRICS):
            _set_cell(self.tbl_stats, r, 0, METRIC_LABELS[name])
        self.tbl_procs = self._make_table(PROC_COLUMNS)
        self.tbl_procs.setSortingEnabled(True)

        tables_row = QtWidgets.QHBoxLayout()
        tables_row.setSpacing(12)
        tables_row.addWidget(self._titled("RUNNING STATISTICS", self.tbl_stats), 3)
        tables_row.addWidget(self._titled("TOP PROCESSES", self.tbl_procs), 2)
        body.addLayout(tables_row, 3)

        self.status_line = StatusLine()
        self.status_line.set_log_path(log_path)
        vroot.addWidget(self.status_line)

    # ── widget factories ──────────────────────
    def _make_table(self, headers: List[str]) -> QtWidgets.QTableWidget:
        t = QtWidgets.QTableWidget(0, len(headers))
        t.setHorizontalHeaderLabels(headers)
        t.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        t.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        t.setShowGrid(False)
        t.verticalHeader().setVisible(False)
        t.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.ResizeToContents)
        t.horizontalHeader().setStretchLastSection(True)
        t.setStyleSheet(f"""
            QTableWidget {{ {MONO} font-size: 12px; background: {PALETTE['bg_card']}; border: none; }}
            QHeaderView::section {{
                {MONO} font-size: 10px; font-weight: 700;
                background: {PALETTE['bg_card']}; color: {PALETTE['text_muted']};
                border: none; border-bottom: 1px solid {PALETTE['border']}; padding: 6px;
            }}
        """)
        return t

    def _titled(self, title: str, widget: QtWidgets.QWidget) -> QtWidgets.QWidget:
        box = QtWidgets.QFrame()
        box.setStyleSheet(f"QFrame {{ background: {PALETTE['bg_card']}; border-radius: 10px; }}")
        lay = QtWidgets.QVBoxLayout(box)
        lay.setContentsMargins(10, 8, 10, 8)
        lbl = QtWidgets.QLabel(title)
        lbl.setStyleSheet(f"{MONO} font-size: 11px; font-weight: 600; color: {PALETTE['cyan']};")
        lay.addWidget(lbl)
        lay.addWidget(widget, 1)
        return box

    # ── frame updates (GUI thread) ────────────
    def show_frame(self, frame: Frame):
        s = frame.sample
        self.topbar.set_elapsed(str(frame.elapsed).split(".")[0])

        for name in REQUIRED_METRICS:
            card = self.cards[name]
            card.set_value(getattr(s, name))
            card.set_level(frame.levels.get(name, Level.NORMAL))
            card.trend.set_values(frame.history.get(name, ()))
            st = frame.stats.get(name)
            detail = f"max {st.max:.1f}%  avg {st.mean:.1f}%" if st else ""
            if name == "ram_percent" and s.ram_available_mb is not None:
                detail += f"  free {fmt_mb(s.ram_available_mb)}"
            card.set_detail(detail)

        self._show_pair("network", frame, "net_sent_kbps", "net_recv_kbps", "↑", "↓")
        self._show_pair("disk_io", frame, "disk_read_kbps", "disk_write_kbps", "R", "W")

        self._update_stats_table(frame)
        procs = frame.extras.get("processes")
        if procs is not None:
            self.update_processes(procs)

        self.status_line.set_steady(status_text(frame.overall), LEVEL_COLORS[frame.overall])

    def _show_pair(self, key: str, frame: Frame, a: str, b: str, la: str, lb: str):
        """Card showing the sum of two rates, with both in the detail line."""
        card = self.cards[key]
        va, vb = getattr(frame.sample, a), getattr(frame.sample, b)
        if va is None and vb is None:
            card.set_value(None)
            card.set_detail("not monitored")
            return
        card.set_value((va or 0.0) + (vb or 0.0))
        card.set_detail(f"{la} {fmt_kbps(va)}  {lb} {fmt_kbps(vb)}")
        ha, hb = frame.history.get(a, ()), frame.history.get(b, ())
        n = min(len(ha), len(hb))
        card.trend.set_values([x + y for x, y in zip(ha[-n:], hb[-n:])] if n else ha or hb)

    def _update_stats_table(self, frame: Frame):
        t = self.tbl_stats
        for r, name in enumerate(METRICS):
            st = frame.stats.get(name)
            _set_cell(t, r, 1, _fmt_metric(name, getattr(frame.sample, name)))
            _set_cell(t, r, 2, _fmt_metric(name, st.max if st else None))
            _set_cell(t, r, 3, _fmt_metric(name, st.mean if st else None))
            _set_cell(t, r, 4, str(st.count if st else 0), numeric=True)
            level = frame.levels.get(name)
            badge = t.cellWidget(r, 5)
            if level is None:
                t.removeCellWidget(r, 5)
            elif isinstance(badge, LevelBadge):
                badge.set_level(level)
            else:
                t.setCellWidget(r, 5, LevelBadge(level))

    def update_processes(self, procs: List[ProcInfo]):
        t = self.tbl_procs
        t.setSortingEnabled(False)
        t.setRowCount(len(procs))
        for r, p in enumerate(procs):
            _set_cell(t, r, 0, p.name)
            _set_cell(t, r, 1, str(p.pid), numeric=True)
            _set_cell(t, r, 2, f"{p.rss_mb:.0f} MB", numeric=True)
            _set_cell(t, r, 3, "n/a" if p.cpu_seconds is None else f"{p.cpu_seconds:.1f} s", numeric=True)
        t.setSortingEnabled(True)

    def show_alert(self, event: AlertEvent):
        self.status_line.flash(f"⚠  {event.summary}", LEVEL_COLORS[event.level])

    def show_status(self, message: str):
        self.topbar.set_stopped()
        self.status_line.set_steady(message, PALETTE["text_muted"])

    def reset_view(self):
        """Back to the start-up state; the next frame repaints everything."""
        for card in self.cards.values():
            card.clear()
        self.tbl_procs.setRowCount(0)
        for r in range(self.tbl_stats.rowCount()):
            for c in range(1, 5):
                _set_cell(self.tbl_stats, r, c, "")
            self.tbl_stats.removeCellWidget(r, 5)
