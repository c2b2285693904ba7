"""
defensedesk – themed widget primitives for the defense view
"""
from __future__ import annotations

import math
import time as _time
from typing import List, Optional

from PySide6 import QtCore, QtWidgets
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import (
    QColor, QPainter, QPen, QBrush, QFont, QLinearGradient,
    QPainterPath,
)

# ──────────────────────────────────────────────
# Palette
# ──────────────────────────────────────────────
PALETTE = {
    "bg_deep":       "#0a0c10",
    "bg_card":       "#111418",
    "border":        "#1e2530",
    "border_glow":   "#2a3a5c",
    "text_primary":  "#e2e6ec",
    "text_muted":    "#6b7280",
    "accent_cyan":   "#22d3ee",
    "accent_blue":   "#3b82f6",
    "accent_purple": "#a78bfa",
    "green":         "#22c55e",
    "yellow":        "#eab308",
    "orange":        "#f97316",
    "red":           "#ef4444",
    "red_deep":      "#450a0a",
}

# Log severities + threat-feed severities share one badge
SEVERITY_COLORS = {
    "INFO":     PALETTE["accent_cyan"],
    "WARN":     PALETTE["yellow"],
    "CRITICAL": PALETTE["red"],
    "DEFENSE":  PALETTE["accent_purple"],
    "HIGH":     PALETTE["orange"],
    "MEDIUM":   PALETTE["yellow"],
    "LOW":      PALETTE["accent_blue"],
}

LEVEL_COLORS = {
    "NORMAL":   PALETTE["green"],
    "WARNING":  PALETTE["yellow"],
    "CRITICAL": PALETTE["red"],
}

RISK_COLORS = {
    "LOW":    PALETTE["green"],
    "MEDIUM": PALETTE["yellow"],
    "HIGH":   PALETTE["red"],
}

STATUS_COLORS = {
    "PENDING":   PALETTE["orange"],
    "EXECUTING": PALETTE["yellow"],
    "COMPLETED": PALETTE["green"],
    "FAILED":    PALETTE["red"],
}

VERDICT_COLORS = {
    "SAFE":       PALETTE["green"],
    "SUSPICIOUS": PALETTE["yellow"],
    "MALICIOUS":  PALETTE["red"],
}

COUNTERMEASURE_ICONS = {
    "NETWORK": "🌐",
    "PROCESS": "⚙️",
    "FILE":    "📁",
}


def fmt_rate(mbps: float) -> str:
    return f"{mbps:.1f} MB/s"


# ──────────────────────────────────────────────
# _PulseHub – ONE shared timer drives ALL PulsingDots
# ──────────────────────────────────────────────
class _PulseHub(QtCore.QObject):
    """Singleton.  A single 60 ms timer pushes a sine-wave value
    to every registered PulsingDot."""
    _instance = None

    def __new__(cls):
        if cls._instance is None:
            obj = super().__new__(cls)
            obj._inited = False
            cls._instance = obj
        return cls._instance

    def __init__(self):
        if self._inited:
            return
        super().__init__()
        self._inited = True
        self._subscribers: List["PulsingDot"] = []
        self._start_time = _time.monotonic()
        self._timer = QTimer(self)
        self._timer.setInterval(60)
        self._timer.timeout.connect(self._tick)
        self._timer.start()

    def register(self, dot: "PulsingDot"):
        self._subscribers.append(dot)

    def unregister(self, dot: "PulsingDot"):
        try:
            self._subscribers.remove(dot)
        except ValueError:
            pass

    def _tick(self):
        t = _time.monotonic() - self._start_time
        pulse = (math.sin(t * 2.6 - math.pi / 2) + 1.0) * 0.5
        for dot in self._subscribers:
            dot._pulse = pulse
            dot.update()


class PulsingDot(QtWidgets.QWidget):
    def __init__(self, color: str = PALETTE["green"], radius: int = 6, parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self._radius = radius
        self._pulse = 0.0
        self.setFixedSize(radius * 4, radius * 4)
        _PulseHub().register(self)

    def set_color(self, color: str):
        self._color = QColor(color)
        self.update()

    def closeEvent(self, e):
        _PulseHub().unregister(self)
        super().closeEvent(e)

    def paintEvent(self, _event):
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        cx, cy = self.width() / 2, self.height() / 2
        r_core = self._radius
        r_ring = r_core + self._pulse * (self._radius * 0.9)

        glow = QColor(self._color)
        glow.setAlpha(int(60 * (1.0 - self._pulse)))
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(glow))
        p.drawEllipse(QtCore.QRectF(cx - r_ring, cy - r_ring, r_ring * 2, r_ring * 2))
        p.setBrush(QBrush(self._color))
        p.drawEllipse(QtCore.QRectF(cx - r_core, cy - r_core, r_core * 2, r_core * 2))
        p.end()


class AnimatedCounter(QtWidgets.QLabel):
    def __init__(self, fmt: str = "{:.0f}", parent=None):
        super().__init__("0", parent)
        self._fmt = fmt
        self._current = 0.0
        self._target = 0.0
        self._timer = QTimer(self)
        self._timer.setInterval(32)          # only runs while moving
        self._timer.timeout.connect(self._step)

    def set_value(self, value: float):
        self._target = value
        if not self._timer.isActive():
            self._timer.start()

    def _step(self):
        diff = self._target - self._current
        if abs(diff) < 0.1:
            self._current = self._target
            self._timer.stop()
        else:
            self._current += diff * 0.22
        self.setText(self._fmt.format(self._current))


# ──────────────────────────────────────────────
# ThresholdGraph – rolling series with a critical reference line
# ──────────────────────────────────────────────
class ThresholdGraph(QtWidgets.QWidget):
    """
    Fixed-scale sparkline.  Points flagged as anomalies are drawn red and
    the critical threshold is drawn as a dashed line.  The scale grows to
    fit the threshold and the largest visible value.
    """

    def __init__(self, color: str = PALETTE["accent_cyan"], floor_max: float = 100.0, parent=None):
        super().__init__(parent)
        self._color = QColor(color)
        self._floor_max = floor_max
        self._values: List[float] = []
        self._anomalies: List[bool] = []
        self._threshold: Optional[float] = None
        self.setMinimumHeight(56)

    def set_series(self, values: List[float], anomalies: List[bool]):
        self._values = list(values)
        self._anomalies = list(anomalies)
        self.update()

    def set_threshold(self, value: Optional[float]):
        self._threshold = value
        self.update()

    def _scale_max(self) -> float:
        hi = max(self._values) if self._values else 0.0
        if self._threshold is not None:
            hi = max(hi, self._threshold)
        return max(self._floor_max, hi * 1.1)

    def paintEvent(self, _event):
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        w, h = self.width(), self.height()
        pad = 4
        top = self._scale_max()

        def y_of(v: float) -> float:
            return h - pad - (v / top) * (h - pad * 2)

        if self._threshold is not None:
            pen = QPen(QColor(PALETTE["red"]), 1, Qt.DashLine)
            p.setPen(pen)
            ty = y_of(self._threshold)
            p.drawLine(QtCore.QPointF(pad, ty), QtCore.QPointF(w - pad, ty))

        if len(self._values) < 2:
            p.end()
            return

        step_x = (w - pad * 2) / (len(self._values) - 1)
        coords = [(pad + i * step_x, y_of(v)) for i, v in enumerate(self._values)]

        path = QPainterPath()
        path.moveTo(*coords[0])
        for x, y in coords[1:]:
            path.lineTo(x, y)

        fill = QPainterPath(path)
        fill.lineTo(coords[-1][0], h)
        fill.lineTo(coords[0][0], h)
        fill.closeSubpath()
        grad = QLinearGradient(0, 0, 0, h)
        top_c = QColor(self._color)
        top_c.setAlpha(90)
        bot_c = QColor(self._color)
        bot_c.setAlpha(0)
        grad.setColorAt(0, top_c)
        grad.setColorAt(1, bot_c)
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(grad))
        p.drawPath(fill)

        pen = QPen(self._color, 2)
        pen.setCapStyle(Qt.RoundCap)
        pen.setJoinStyle(Qt.RoundJoin)
        p.setPen(pen)
        p.setBrush(Qt.NoBrush)
        p.drawPath(path)

        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(QColor(PALETTE["red"])))
        for (x, y), bad in zip(coords, self._anomalies):
            if bad:
                p.drawEllipse(QtCore.QRectF(x - 3, y - 3, 6, 6))
        p.end()


class MetricCard(QtWidgets.QWidget):
    def __init__(self, title: str, icon: str = "", unit: str = "%",
                 color: str = PALETTE["accent_cyan"], floor_max: float = 100.0, parent=None):
        super().__init__(parent)
        self._color = color

        layout = QtWidgets.QVBoxLayout(self)
        layout.setContentsMargins(16, 14, 16, 10)
        layout.setSpacing(4)

        header = QtWidgets.QHBoxLayout()
        header.setSpacing(8)
        if icon:
            icon_lbl = QtWidgets.QLabel(icon)
            icon_lbl.setStyleSheet(f"font-size: 18px; color: {color};")
            header.addWidget(icon_lbl)
        title_lbl = QtWidgets.QLabel(title.upper())
        title_lbl.setStyleSheet(f"""
            font-size: 11px; font-weight: 600;
            color: {PALETTE['text_muted']}; letter-spacing: 1.5px;
        """)
        header.addWidget(title_lbl, 1)
        self.dot = PulsingDot(color=color, radius=4)
        header.addWidget(self.dot)
        layout.addLayout(header)

        value_row = QtWidgets.QHBoxLayout()
        self.value_label = AnimatedCounter("{:.0f}" if unit == "%" else "{:.1f}")
        self.value_label.setStyleSheet(f"""
            font-size: 28px; font-weight: 700;
            color: {PALETTE['text_primary']};
            font-family: 'Consolas', 'Courier New', monospace;
        """)
        value_row.addWidget(self.value_label)
        unit_lbl = QtWidgets.QLabel(unit)
        unit_lbl.setStyleSheet(f"font-size: 12px; color: {PALETTE['text_muted']};")
        value_row.addWidget(unit_lbl)
        value_row.addStretch(1)
        layout.addLayout(value_row)

        self.sub_label = QtWidgets.QLabel("")
        self.sub_label.setStyleSheet(f"font-size: 11px; color: {PALETTE['text_muted']}; font-family: monospace;")
        layout.addWidget(self.sub_label)

        self.graph = ThresholdGraph(color=color, floor_max=floor_max)
        layout.addWidget(self.graph, 1)

    def set_breached(self, breached: bool):
        self.dot.set_color(PALETTE["red"] if breached else self._color)

    def paintEvent(self, event):
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        rect = self.rect()
        p.setPen(QPen(QColor(PALETTE["border"]), 1))
        p.setBrush(QBrush(QColor(PALETTE["bg_card"])))
        path = QPainterPath()
        path.addRoundedRect(rect, 14, 14)
        p.drawPath(path)

        accent = QColor(self._color)
        accent.setAlpha(180)
        pen = QPen(accent, 2.5)
        pen.setCapStyle(Qt.RoundCap)
        p.setPen(pen)
        p.drawLine(QtCore.QPointF(20, 1.5), QtCore.QPointF(rect.width() - 20, 1.5))
        p.end()
        super().paintEvent(event)


# ──────────────────────────────────────────────
# Badge – colored pill for severities / levels / statuses
# ──────────────────────────────────────────────
class Badge(QtWidgets.QWidget):
    def __init__(self, text: str = "", colors: Optional[dict] = None, width: int = 78, parent=None):
        super().__init__(parent)
        self._text = text
        self._colors = colors if colors is not None else SEVERITY_COLORS
        self.setFixedSize(width, 22)

    def set_text(self, text: str):
        self._text = text
        self.update()

    def paintEvent(self, _event):
        p = QPainter(self)
        p.setRenderHint(QPainter.Antialiasing)
        color = QColor(self._colors.get(self._text, PALETTE["text_muted"]))
        bg = QColor(color)
        bg.setAlpha(28)
        p.setPen(QPen(color, 1))
        p.setBrush(QBrush(bg))
        p.drawRoundedRect(self.rect().adjusted(0, 0, -1, -1), 10, 10)
        p.setFont(QFont("Consolas", 8, QFont.Bold))
        p.setPen(QPen(color))
        p.drawText(self.rect(), Qt.AlignCenter, self._text)
        p.end()
