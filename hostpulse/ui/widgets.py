"""
hostpulse – themed widget primitives
"""
from __future__ import annotations

from typing import List, Optional, Sequence

from PySide6 import QtCore, QtWidgets
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QBrush, QColor, QPainter

from ..history import scale_heights
from ..models import Level

# ──────────────────────────────────────────────
# Palette
# ──────────────────────────────────────────────
PALETTE = {
    "bg_deep":      "#0b0e13",
    "bg_card":      "#12161d",
    "border":       "#202733",
    "text_primary": "#e4e8ee",
    "text_muted":   "#6b7280",
    "cyan":         "#22d3ee",
    "blue":         "#3b82f6",
    "purple":       "#a78bfa",
    "green":        "#22c55e",
    "yellow":       "#eab308",
    "orange":       "#f97316",
    "red":          "#ef4444",
}

LEVEL_COLORS = {
    Level.NORMAL:   PALETTE["green"],
    Level.CAUTION:  PALETTE["yellow"],
    Level.WARNING:  PALETTE["orange"],
    Level.CRITICAL: PALETTE["red"],
}

MONO = "font-family: 'Consolas', 'Courier New', monospace;"


def fmt_kbps(kbps: Optional[float]) -> str:
    if kbps is None:
        return "n/a"
    if kbps >= 1024.0:
        return f"{kbps / 1024.0:.1f} MB/s"
    return f"{kbps:.1f} KB/s"


def fmt_mb(mb: Optional[float]) -> str:
    if mb is None:
        return "n/a"
    if mb >= 1024.0:
        return f"{mb / 1024.0:.1f} GB"
    return f"{mb:.0f} MB"


# ──────────────────────────────────────────────
# LevelDot – status light, blinks while critical
# ──────────────────────────────────────────────
class LevelDot(QtWidgets.QWidget):
    def __init__(self, color: str = PALETTE["green"], diameter: int = 10, parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self._lit = True
        self.setFixedSize(diameter + 4, diameter + 4)
        self._blink = QTimer(self)
        self._blink.setInterval(450)
        self._blink.timeout.connect(self._toggle)

    def set_color(self, color: str, blink: bool = False):
        self._color = QColor(color)
        if blink and not self._blink.isActive():
            self._blink.start()
        elif not blink:
            self._blink.stop()
            self._lit = True
        self.update()

    def _toggle(self):
        self._lit = not self._lit
        self.update()

    def paintEvent(self, _event):
        color = QColor(self._color)
        if not self._lit:
            color.setAlpha(60)
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(color))
        p.drawEllipse(QtCore.QRectF(2, 2, self.width() - 4, self.height() - 4))
        p.end()


# ──────────────────────────────────────────────
# TrendBars – history window as a bar chart
# ──────────────────────────────────────────────
class TrendBars(QtWidgets.QWidget):
    """
    One bar per sample in the window. Heights are bucketed against the
    window's own min/max on every paint, the same scaling the terminal
    sparklines use.
    """
    LEVELS = 16

    def __init__(self, color: str = PALETTE["cyan"], parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self._values: List[float] = []
        self.setMinimumHeight(48)

    def set_values(self, values: Sequence[float]):
        self._values = list(values)
        self.update()

    def paintEvent(self, _event):
        if not self._values:
            return
        heights = scale_heights(self._values, self.LEVELS)
        w, h = self.width(), self.height() - 2
        slot = w / len(heights)
        bar_w = max(1.0, slot - 2)

        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        p.setPen(Qt.NoPen)
        for i, level in enumerate(heights):
            bar_h = h * (level + 1) / self.LEVELS
            color = QColor(self._color)
            # newest sample fully opaque, older ones fade
            color.setAlpha(255 if i == len(heights) - 1 else 140)
            p.setBrush(QBrush(color))
            p.drawRoundedRect(QtCore.QRectF(i * slot + 1, h - bar_h + 1, bar_w, bar_h), 1.5, 1.5)
        p.end()


# ──────────────────────────────────────────────
# MetricCard – current value, detail line, trend
# ──────────────────────────────────────────────
class MetricCard(QtWidgets.QFrame):
    def __init__(self, title: str, color: str = PALETTE["cyan"], fmt: str = "{:.1f}%", parent=None):
        super().__init__(parent)
        self._fmt = fmt
        self.setObjectName("metricCard")
        self.setStyleSheet(f"""
            QFrame#metricCard {{
                background: {PALETTE['bg_card']};
                border: 1px solid {PALETTE['border']};
                border-top: 2px solid {color};
                border-radius: 12px;
            }}
            QLabel {{ border: none; background: transparent; }}
        """)

        lay = QtWidgets.QVBoxLayout(self)
        lay.setContentsMargins(14, 12, 14, 10)
        lay.setSpacing(4)

        head = QtWidgets.QHBoxLayout()
        title_lbl = QtWidgets.QLabel(title)
        title_lbl.setStyleSheet(f"{MONO} font-size: 11px; font-weight: 600; "
                                f"letter-spacing: 1.5px; color: {PALETTE['text_muted']};")
        head.addWidget(title_lbl, 1)
        self.dot = LevelDot(PALETTE["text_muted"], diameter=8)
        head.addWidget(self.dot)
        lay.addLayout(head)

        self.value_label = QtWidgets.QLabel("–")
        self.value_label.setStyleSheet(f"{MONO} font-size: 26px; font-weight: 700; "
                                       f"color: {PALETTE['text_primary']};")
        lay.addWidget(self.value_label)

        self.detail_label = QtWidgets.QLabel("")
        self.detail_label.setStyleSheet(f"{MONO} font-size: 11px; color: {PALETTE['text_muted']};")
        lay.addWidget(self.detail_label)

        self.trend = TrendBars(color)
        lay.addWidget(self.trend, 1)

    def set_value(self, value: Optional[float]):
        self.value_label.setText("n/a" if value is None else self._fmt.format(value))

    def set_detail(self, text: str):
        self.detail_label.setText(text)

    def set_level(self, level: Level):
        self.dot.set_color(LEVEL_COLORS[level], blink=level is Level.CRITICAL)

    def clear(self):
        self.value_label.setText("–")
        self.detail_label.setText("")
        self.trend.set_values(())
        self.dot.set_color(PALETTE["text_muted"])


# ──────────────────────────────────────────────
# LevelBadge – colored pill for a pressure level
# ──────────────────────────────────────────────
class LevelBadge(QtWidgets.QLabel):
    def __init__(self, level: Level = Level.NORMAL, parent=None):
        super().__init__(parent)
        self.setAlignment(Qt.AlignCenter)
        self.setFixedSize(84, 22)
        self.set_level(level)

    def set_level(self, level: Level):
        color = LEVEL_COLORS[level]
        self.setText(level.name)
        self.setStyleSheet(f"""
            {MONO} font-size: 9px; font-weight: 700;
            color: {color}; border: 1px solid {color}; border-radius: 10px;
        """)


# ──────────────────────────────────────────────
# NumericSortItem – QTableWidgetItem that sorts by number
# ──────────────────────────────────────────────
class NumericSortItem(QtWidgets.QTableWidgetItem):
    """Sorts on the leading number of the cell text ("812 MB", "3.5 s")."""

    def __lt__(self, other: QtWidgets.QTableWidgetItem) -> bool:
        try:
            return float(self.text().split()[0]) < float(other.text().split()[0])
        except (ValueError, IndexError):
            return self.text() < other.text()
