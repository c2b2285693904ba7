"""
defensedesk – defense view  (telemetry, alerting, isolation, countermeasures, AI intel)
"""
from __future__ import annotations

import time
from typing import List, Optional

from PySide6 import QtCore, QtWidgets
from PySide6.QtCore import Qt, QTimer
from PySide6.QtGui import QColor, QPainter, QPen, QBrush, QLinearGradient

from ..config import AppConfig
from ..intel import format_sandbox_report
from ..sandbox import SafeRunner
from ..session import MonitorSession
from ..models import (
    Countermeasure, SecurityLogEntry, TelemetrySample, ThreatIntel, SandboxResult,
    CM_PENDING,
)

from .widgets import (
    PALETTE, SEVERITY_COLORS, LEVEL_COLORS, RISK_COLORS, STATUS_COLORS, VERDICT_COLORS,
    COUNTERMEASURE_ICONS, fmt_rate,
    MetricCard, PulsingDot, Badge,
)


def _set_cell(table: QtWidgets.QTableWidget, row: int, col: int, text: str, color: str = ""):
    item = QtWidgets.QTableWidgetItem(text)
    item.setFlags(item.flags() & ~Qt.ItemIsEditable)
    if color:
        item.setForeground(QColor(color))
    table.setItem(row, col, item)


def _mono(size: int = 11, color: str = PALETTE["text_muted"], weight: int = 400) -> str:
    return (f"font-family: 'Consolas', monospace; font-size: {size}px; "
            f"font-weight: {weight}; color: {color};")


# ──────────────────────────────────────────────
# TopBar
# ──────────────────────────────────────────────
class TopBar(QtWidgets.QWidget):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(52)

        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(24, 0, 24, 0)
        lay.setSpacing(12)

        logo = QtWidgets.QLabel()
        logo.setText(
            f'<span style="font-family:Consolas,monospace;font-size:20px;'
            f'font-weight:800;color:{PALETTE["accent_cyan"]};letter-spacing:4px;">'
            f'DEFENSE</span>'
            f'<span style="font-family:Consolas,monospace;font-size:20px;'
            f'font-weight:300;color:{PALETTE["text_muted"]};letter-spacing:4px;">'
            f'DESK</span>'
        )
        lay.addWidget(logo)
        lay.addStretch(1)

        self.level_badge = Badge("NORMAL", LEVEL_COLORS, width=96)
        lay.addWidget(self.level_badge)

        self._live_dot = PulsingDot(color=PALETTE["green"], radius=5)
        lay.addWidget(self._live_dot)
        self._mode_lbl = QtWidgets.QLabel("LIVE")
        self._mode_lbl.setStyleSheet(_mono(11, PALETTE["green"], 700))
        lay.addWidget(self._mode_lbl)

        self._clock = QtWidgets.QLabel("")
        self._clock.setStyleSheet(_mono(13))
        lay.addWidget(self._clock)

        self._clock_timer = QTimer(self)
        self._clock_timer.setInterval(1000)
        self._clock_timer.timeout.connect(self._update_clock)
        self._clock_timer.start()
        self._update_clock()

    def set_state(self, level: str, mode: str):
        self.level_badge.set_text(level)
        color = {"STRESS": PALETTE["orange"], "ISOLATED": PALETTE["red"]}.get(mode, PALETTE["green"])
        self._live_dot.set_color(color)
        self._mode_lbl.setText("LIVE" if mode == "NORMAL" else mode)
        self._mode_lbl.setStyleSheet(_mono(11, color, 700))

    def _update_clock(self):
        self._clock.setText(time.strftime("%H:%M:%S"))

    def paintEvent(self, _event):
        p = QPainter(self)
        w, h = self.width(), self.height()
        p.setPen(Qt.NoPen)
        p.setBrush(QBrush(QColor(PALETTE["bg_card"])))
        p.drawRect(0, 0, w, h)
        grad = QLinearGradient(0, h - 1, w, h - 1)
        grad.setColorAt(0,   QColor("#00000000"))
        grad.setColorAt(0.5, QColor(PALETTE["accent_cyan"]))
        grad.setColorAt(1,   QColor("#00000000"))
        p.setPen(QPen(QBrush(grad), 1.5))
        p.drawLine(0, h - 1, w, h - 1)
        p.end()
        super().paintEvent(_event)


# ──────────────────────────────────────────────
# IsolationBanner – shown while the system is contained
# ──────────────────────────────────────────────
class IsolationBanner(QtWidgets.QFrame):
    def __init__(self, parent=None):
        super().__init__(parent)
        self.setStyleSheet(f"""
            QFrame {{
                background: {PALETTE['red_deep']};
                border: 2px solid {PALETTE['red']};
                border-radius: 12px;
            }}
            QLabel {{ border: none; background: transparent; }}
        """)
        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(18, 10, 18, 10)
        lay.setSpacing(14)

        icon = QtWidgets.QLabel("🛡️")
        icon.setStyleSheet("font-size: 30px;")
        lay.addWidget(icon)

        text = QtWidgets.QVBoxLayout()
        title = QtWidgets.QLabel("ISOLATION PROTOCOL ACTIVE")
        title.setStyleSheet(_mono(16, "#ffffff", 800))
        text.addWidget(title)
        self.detail = QtWidgets.QLabel(
            "Critical anomalies detected. NETWORK: DISABLED  |  DISK I/O: READ-ONLY  |  KERNEL: SAFE MODE"
        )
        self.detail.setStyleSheet(_mono(11, "#fca5a5"))
        text.addWidget(self.detail)
        lay.addLayout(text, 1)

        self.btn_execute_all = _make_button("⚡  Execute All", PALETTE["orange"])
        self.btn_reset = _make_button("↺  Reset Isolation", PALETTE["green"])
        lay.addWidget(self.btn_execute_all)
        lay.addWidget(self.btn_reset)


# ──────────────────────────────────────────────
# AlertFlash – bottom status bar
# ──────────────────────────────────────────────
class AlertFlash(QtWidgets.QWidget):
    _IDLE = "Defense monitoring active …"

    def __init__(self, parent=None):
        super().__init__(parent)
        self.setFixedHeight(34)
        lay = QtWidgets.QHBoxLayout(self)
        lay.setContentsMargins(20, 0, 20, 0)
        lay.setSpacing(10)
        self._dot = PulsingDot(color=PALETTE["green"], radius=4)
        lay.addWidget(self._dot)
        self._label = QtWidgets.QLabel(self._IDLE)
        self._label.setStyleSheet(_mono())
        lay.addWidget(self._label, 1)

        self._timer = QTimer(self)
        self._timer.setSingleShot(True)
        self._timer.setInterval(3500)
        self._timer.timeout.connect(self._reset)

    def flash(self, msg: str, color: str = PALETTE["green"]):
        self._dot.set_color(color)
        self._label.setText(msg)
        self._label.setStyleSheet(_mono(11, color))
        self._timer.start()

    def _reset(self):
        self._dot.set_color(PALETTE["green"])
        self._label.setText(self._IDLE)
        self._label.setStyleSheet(_mono())


def _make_button(text: str, accent: str) -> QtWidgets.QPushButton:
    btn = QtWidgets.QPushButton(text)
    btn.setStyleSheet(f"""
        QPushButton {{
            background: {accent}18; color: {accent};
            border: 1px solid {accent}60;
            padding: 8px 18px; border-radius: 8px;
            font-family: 'Consolas', monospace;
            font-size: 12px; font-weight: 600;
        }}
        QPushButton:hover  {{ background: {accent}30; border-color: {accent}; }}
        QPushButton:pressed {{ background: {accent}45; }}
        QPushButton:disabled {{ color: {PALETTE['text_muted']}; border-color: {PALETTE['border']}; }}
    """)
    return btn


# ──────────────────────────────────────────────
# DefenseWindow
# ──────────────────────────────────────────────
class DefenseWindow(QtWidgets.QMainWindow):
    # AI service requests, dispatched by the Controller
    scenario_requested = QtCore.Signal(str)
    sandbox_requested  = QtCore.Signal(str)
    threats_requested  = QtCore.Signal()

    def __init__(self, session: MonitorSession, cfg: AppConfig):
        super().__init__()
        self.session = session
        self.cfg = cfg
        self._last_sandbox: Optional[SandboxResult] = None
        self.runner = SafeRunner(session, cfg.sandbox_timeout_ms,
                                 cfg.sandbox_interpreter or None, parent=self)

        self.setWindowTitle("DefenseDesk")
        self.resize(1400, 860)
        self.setMinimumSize(1100, 700)

        self._build_ui()
        self._apply_global_style()

        session.sample_added.connect(self.on_sample)
        session.state_changed.connect(self.on_state)
        session.thresholds_changed.connect(lambda _t: self._refresh_charts())
        session.countermeasures_changed.connect(self.on_countermeasures)
        session.log_appended.connect(self.on_log)

        self._refresh_charts()
        self.on_state()
        self.on_countermeasures(session.countermeasures)
        self._refresh_log()

    # ═══════════════════════════════════════════
    # Layout
    # ═══════════════════════════════════════════
    def _build_ui(self):
        root = QtWidgets.QWidget()
        self.setCentralWidget(root)
        vroot = QtWidgets.QVBoxLayout(root)
        vroot.setContentsMargins(0, 0, 0, 0)
        vroot.setSpacing(0)

        self.topbar = TopBar()
        vroot.addWidget(self.topbar)

        body = QtWidgets.QWidget()
        body_lay = QtWidgets.QVBoxLayout(body)
        body_lay.setContentsMargins(18, 16, 18, 8)
        body_lay.setSpacing(14)
        vroot.addWidget(body, 1)

        self.banner = IsolationBanner()
        self.banner.btn_reset.clicked.connect(self.session.reset_isolation)
        self.banner.btn_execute_all.clicked.connect(self.session.execute_all)
        self.banner.hide()
        body_lay.addWidget(self.banner)

        cards_row = QtWidgets.QHBoxLayout()
        cards_row.setSpacing(14)
        self.card_cpu  = MetricCard("CPU",     icon="⚡", unit="%",    color=PALETTE["accent_cyan"])
        self.card_mem  = MetricCard("Memory",  icon="💾", unit="%",    color=PALETTE["accent_blue"])
        self.card_net  = MetricCard("Network", icon="🌐", unit="MB/s", color=PALETTE["accent_purple"], floor_max=150.0)
        self.card_disk = MetricCard("Disk I/O", icon="🗄️", unit="MB/s", color=PALETTE["orange"], floor_max=250.0)
        for card in (self.card_cpu, self.card_mem, self.card_net, self.card_disk):
            cards_row.addWidget(card, 1)
        body_lay.addLayout(cards_row)

        self.tabs = QtWidgets.QTabWidget()
        body_lay.addWidget(self.tabs, 1)
        self._build_monitor_tab()
        self._build_countermeasures_tab()
        self._build_strategy_tab()
        self._build_sandbox_tab()
        self._build_threats_tab()

        self.status_bar = AlertFlash()
        vroot.addWidget(self.status_bar)

    # ── Monitor: controls + security log ──────
    def _build_monitor_tab(self):
        w = QtWidgets.QWidget()
        lay = QtWidgets.QHBoxLayout(w)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(14)

        controls = QtWidgets.QWidget()
        form = QtWidgets.QFormLayout(controls)
        form.setContentsMargins(14, 10, 14, 10)
        form.setLabelAlignment(Qt.AlignLeft)

        self.btn_stress = _make_button("☢  Stress Test: OFF", PALETTE["orange"])
        self.btn_stress.setCheckable(True)
        self.btn_stress.toggled.connect(self.session.set_stress_mode)
        form.addRow(self.btn_stress)

        t = self.session.thresholds
        self._spins = {}
        for field, label, hi in (
            ("cpu_warning",   "CPU warning %",        100.0),
            ("cpu_critical",  "CPU critical %",       100.0),
            ("mem_warning",   "Memory warning %",     100.0),
            ("mem_critical",  "Memory critical %",    100.0),
            ("net_critical",  "Network critical MB/s", 1000.0),
            ("disk_critical", "Disk critical MB/s",   1000.0),
        ):
            spin = QtWidgets.QDoubleSpinBox()
            spin.setRange(0.0, hi)
            spin.setDecimals(0)
            spin.setValue(getattr(t, field))
            spin.valueChanged.connect(lambda v, f=field: self.session.update_thresholds(**{f: v}))
            self._spins[field] = spin
            form.addRow(label, spin)

        self.chk_auto = QtWidgets.QCheckBox("Auto-isolation")
        self.chk_auto.setChecked(t.auto_isolation)
        self.chk_auto.toggled.connect(lambda on: self.session.update_thresholds(auto_isolation=on))
        form.addRow(self.chk_auto)

        self.tbl_log = self._make_table(["Time", "Type", "Message"])
        self.tbl_log.setColumnWidth(1, 90)

        lay.addWidget(self._card_wrap("⚙  Alert Configuration", controls), 0)
        lay.addWidget(self._card_wrap("⟳  Security Log", self.tbl_log), 1)
        self.tabs.addTab(w, "  Monitor")

    # ── Countermeasures ───────────────────────
    def _build_countermeasures_tab(self):
        w = QtWidgets.QWidget()
        lay = QtWidgets.QVBoxLayout(w)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(8)

        self.tbl_cm = self._make_table(["Type", "Action", "Target", "Risk", "Status", ""])
        self.tbl_cm.setColumnWidth(3, 90)
        self.tbl_cm.setColumnWidth(4, 100)
        lay.addWidget(self._card_wrap("🛡  Suggested Countermeasures", self.tbl_cm), 1)

        btn_row = QtWidgets.QHBoxLayout()
        self.btn_execute_all = _make_button("⚡  Execute All Pending", PALETTE["orange"])
        self.btn_execute_all.clicked.connect(self.session.execute_all)
        self.btn_reset = _make_button("↺  Reset Isolation", PALETTE["green"])
        self.btn_reset.clicked.connect(self.session.reset_isolation)
        btn_row.addWidget(self.btn_execute_all)
        btn_row.addWidget(self.btn_reset)
        btn_row.addStretch(1)
        lay.addLayout(btn_row)
        self.tabs.addTab(w, "  Countermeasures")

    # ── Strategy (scenario analysis) ──────────
    def _build_strategy_tab(self):
        w = QtWidgets.QWidget()
        lay = QtWidgets.QVBoxLayout(w)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(8)

        self.txt_scenario = QtWidgets.QPlainTextEdit()
        self.txt_scenario.setPlaceholderText("Describe a threat scenario (e.g. lateral movement after phishing) …")
        self.txt_scenario.setMaximumHeight(110)
        lay.addWidget(self.txt_scenario)

        row = QtWidgets.QHBoxLayout()
        self.btn_analyze = _make_button("🧠  Analyze Scenario", PALETTE["accent_cyan"])
        self.btn_analyze.clicked.connect(self._request_scenario)
        row.addWidget(self.btn_analyze)
        row.addStretch(1)
        lay.addLayout(row)

        self.txt_analysis = QtWidgets.QTextBrowser()
        lay.addWidget(self._card_wrap("⟳  Defense Analysis", self.txt_analysis), 1)
        self.tabs.addTab(w, "  Strategy")

    # ── Sandbox (static analysis / safe execute) ──
    def _build_sandbox_tab(self):
        w = QtWidgets.QWidget()
        lay = QtWidgets.QHBoxLayout(w)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(14)

        left = QtWidgets.QVBoxLayout()
        self.txt_code = QtWidgets.QPlainTextEdit()
        self.txt_code.setPlaceholderText(
            "Paste a suspicious Python script or payload. Static analysis never runs it; "
            "Safe Execute runs it in a separate, time-limited interpreter."
        )
        left.addWidget(self.txt_code, 1)
        row = QtWidgets.QHBoxLayout()
        self.btn_sandbox = _make_button("🔬  Static Analysis", PALETTE["accent_purple"])
        self.btn_sandbox.clicked.connect(self._request_sandbox)
        self.btn_run = _make_button("▶  Safe Execute", PALETTE["orange"])
        self.btn_run.clicked.connect(self._safe_execute)
        self.btn_report = _make_button("💾  Save Report", PALETTE["accent_cyan"])
        self.btn_report.setEnabled(False)
        self.btn_report.clicked.connect(self._save_sandbox_report)
        row.addWidget(self.btn_sandbox)
        row.addWidget(self.btn_run)
        row.addWidget(self.btn_report)
        row.addStretch(1)
        left.addLayout(row)

        self.txt_console = QtWidgets.QPlainTextEdit()
        self.txt_console.setReadOnly(True)
        self.txt_console.setMaximumBlockCount(500)
        self.txt_console.setPlaceholderText("Execution console")
        self.txt_console.setStyleSheet(_mono(11, PALETTE["green"]))
        left.addWidget(self.txt_console, 1)
        lay.addLayout(left, 1)

        self.runner.output.connect(self.txt_console.appendPlainText)
        self.runner.finished.connect(self._on_run_finished)

        result = QtWidgets.QWidget()
        rlay = QtWidgets.QVBoxLayout(result)
        rlay.setContentsMargins(14, 10, 14, 10)
        self.verdict_badge = Badge("—", VERDICT_COLORS, width=110)
        rlay.addWidget(self.verdict_badge)
        self.lbl_sandbox = QtWidgets.QLabel("No analysis yet.")
        self.lbl_sandbox.setWordWrap(True)
        self.lbl_sandbox.setAlignment(Qt.AlignTop | Qt.AlignLeft)
        self.lbl_sandbox.setStyleSheet(_mono(12, PALETTE["text_primary"]))
        rlay.addWidget(self.lbl_sandbox, 1)
        lay.addWidget(self._card_wrap("⟳  Sandbox Verdict", result), 1)
        self.tabs.addTab(w, "  Sandbox")

    # ── Threat feed ───────────────────────────
    def _build_threats_tab(self):
        w = QtWidgets.QWidget()
        lay = QtWidgets.QVBoxLayout(w)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(8)
        self.tbl_threats = self._make_table(["Severity", "Title", "Summary", "Source", "When"])
        self.tbl_threats.setColumnWidth(0, 90)
        lay.addWidget(self._card_wrap("🌍  Live Threat Feed", self.tbl_threats), 1)
        row = QtWidgets.QHBoxLayout()
        self.btn_threats = _make_button("⟳  Refresh Feed", PALETTE["accent_cyan"])
        self.btn_threats.clicked.connect(self._request_threats)
        row.addWidget(self.btn_threats)
        row.addStretch(1)
        lay.addLayout(row)
        self.tabs.addTab(w, "  Threat Feed")

    # ═══════════════════════════════════════════
    # Widget factories
    # ═══════════════════════════════════════════
    def _make_table(self, headers: List[str]) -> QtWidgets.QTableWidget:
        t = QtWidgets.QTableWidget(0, len(headers))
        t.setHorizontalHeaderLabels(headers)
        t.setEditTriggers(QtWidgets.QAbstractItemView.NoEditTriggers)
        t.setSelectionBehavior(QtWidgets.QAbstractItemView.SelectRows)
        t.setSelectionMode(QtWidgets.QAbstractItemView.SingleSelection)
        t.setAlternatingRowColors(True)
        t.setShowGrid(False)
        t.setFrameShape(QtWidgets.QFrame.NoFrame)
        t.verticalHeader().setVisible(False)
        t.horizontalHeader().setSectionResizeMode(QtWidgets.QHeaderView.ResizeToContents)
        t.horizontalHeader().setStretchLastSection(True)
        return t

    def _card_wrap(self, title: str, widget: QtWidgets.QWidget) -> QtWidgets.QWidget:
        card = QtWidgets.QWidget()
        card.setObjectName("card")
        card.setStyleSheet(f"""
            QWidget#card {{
                background: {PALETTE['bg_card']};
                border: 1px solid {PALETTE['border']};
                border-radius: 12px;
            }}
        """)
        lay = QtWidgets.QVBoxLayout(card)
        lay.setContentsMargins(0, 0, 0, 0)
        lay.setSpacing(0)
        lbl = QtWidgets.QLabel(title)
        lbl.setFixedHeight(36)
        lbl.setContentsMargins(14, 0, 14, 0)
        lbl.setStyleSheet(_mono(11, PALETTE["accent_cyan"], 600)
                          + f" border-bottom: 1px solid {PALETTE['border']};")
        lay.addWidget(lbl)
        lay.addWidget(widget, 1)
        return card

    def _apply_global_style(self):
        self.setStyleSheet(f"""
            QMainWindow, QWidget {{ background: {PALETTE['bg_deep']}; color: {PALETTE['text_primary']}; }}
            QTabBar::tab {{
                background: transparent; color: {PALETTE['text_muted']};
                padding: 8px 18px; font-family: 'Consolas', monospace;
                font-size: 12px; font-weight: 600; border-radius: 6px; margin-bottom: 4px;
            }}
            QTabBar::tab:selected {{
                background: {PALETTE['bg_card']}; color: {PALETTE['accent_cyan']};
                border: 1px solid {PALETTE['border']};
            }}
            QTabWidget::pane {{ border: none; }}
            QTableWidget {{
                background: transparent; border: none;
                font-family: 'Consolas', 'Courier New', monospace; font-size: 12px;
                selection-background-color: {PALETTE['border_glow']};
                alternate-background-color: #12161c;
            }}
            QTableWidget::item {{ padding: 6px 10px; border-bottom: 1px solid {PALETTE['border']}; }}
            QHeaderView::section {{
                background: {PALETTE['bg_card']}; color: {PALETTE['text_muted']};
                padding: 8px 10px; border: none; border-bottom: 1px solid {PALETTE['border']};
                font-family: 'Consolas', monospace; font-size: 10px; font-weight: 700;
            }}
            QPlainTextEdit, QTextBrowser, QDoubleSpinBox {{
                background: {PALETTE['bg_card']}; border: 1px solid {PALETTE['border']};
                border-radius: 8px; padding: 6px;
                font-family: 'Consolas', monospace; font-size: 12px;
            }}
            QScrollBar:vertical {{ background: {PALETTE['bg_deep']}; width: 8px; }}
            QScrollBar::handle:vertical {{ background: {PALETTE['border']}; border-radius: 4px; min-height: 30px; }}
            QScrollBar::add-line:vertical, QScrollBar::sub-line:vertical {{ height: 0px; }}
        """)

    # ═══════════════════════════════════════════
    # Session hooks
    # ═══════════════════════════════════════════
    @QtCore.Slot(object)
    def on_sample(self, s: TelemetrySample):
        t = self.session.thresholds
        self.card_cpu.value_label.set_value(s.cpu_pct)
        self.card_mem.value_label.set_value(s.mem_pct)
        self.card_net.value_label.set_value(s.net_rate)
        self.card_disk.value_label.set_value(s.disk_rate)
        self.card_cpu.sub_label.setText(f"warn {t.cpu_warning:.0f}%  crit {t.cpu_critical:.0f}%")
        self.card_mem.sub_label.setText(f"crit {t.mem_critical:.0f}%")
        self.card_net.sub_label.setText(f"crit {fmt_rate(t.net_critical)}")
        self.card_disk.sub_label.setText(f"crit {fmt_rate(t.disk_critical)}")
        self.card_cpu.set_breached(s.cpu_pct >= t.cpu_critical)
        self.card_mem.set_breached(s.mem_pct >= t.mem_critical)
        self.card_net.set_breached(s.net_rate >= t.net_critical)
        self.card_disk.set_breached(s.disk_rate >= t.disk_critical)
        self._refresh_charts()

    def _refresh_charts(self):
        samples = self.session.samples
        t = self.session.thresholds
        flags = [s.is_anomaly for s in samples]
        self.card_cpu.graph.set_series([s.cpu_pct for s in samples], flags)
        self.card_cpu.graph.set_threshold(t.cpu_critical)
        self.card_mem.graph.set_series([s.mem_pct for s in samples], flags)
        self.card_mem.graph.set_threshold(t.mem_critical)
        self.card_net.graph.set_series([s.net_rate for s in samples], flags)
        self.card_net.graph.set_threshold(t.net_critical)
        self.card_disk.graph.set_series([s.disk_rate for s in samples], flags)
        self.card_disk.graph.set_threshold(t.disk_critical)

    @QtCore.Slot()
    def on_state(self):
        s = self.session
        self.topbar.set_state(s.alert_level, s.mode)
        self.banner.setVisible(s.isolated)
        self.btn_reset.setEnabled(s.isolated)

        self.btn_stress.blockSignals(True)
        self.btn_stress.setChecked(s.stress_mode)
        self.btn_stress.setText(f"☢  Stress Test: {'ON' if s.stress_mode else 'OFF'}")
        self.btn_stress.blockSignals(False)
        self.btn_stress.setEnabled(not s.isolated)

        if s.isolated:
            self.tabs.setCurrentIndex(1)
            self.status_bar.flash("⛔  System isolated. Review the proposed countermeasures.", PALETTE["red"])

    @QtCore.Slot(list)
    def on_countermeasures(self, cms: List[Countermeasure]):
        t = self.tbl_cm
        t.setRowCount(len(cms))
        pending = 0
        for r, cm in enumerate(cms):
            _set_cell(t, r, 0, f"{COUNTERMEASURE_ICONS.get(cm.type, '')}  {cm.type}")
            _set_cell(t, r, 1, cm.action)
            _set_cell(t, r, 2, cm.target)
            _set_cell(t, r, 3, cm.risk, RISK_COLORS.get(cm.risk, ""))
            _set_cell(t, r, 4, cm.status, STATUS_COLORS.get(cm.status, ""))
            if cm.status == CM_PENDING:
                pending += 1
                btn = _make_button("EXECUTE", PALETTE["red"])
                btn.clicked.connect(lambda _=False, cid=cm.id: self.session.execute(cid))
                t.setCellWidget(r, 5, btn)
            else:
                t.removeCellWidget(r, 5)
                _set_cell(t, r, 5, "")
        self.btn_execute_all.setEnabled(pending > 0)
        self.banner.btn_execute_all.setEnabled(pending > 0)
        self.tabs.setTabText(1, f"  Countermeasures  ({pending})" if pending else "  Countermeasures")

    @QtCore.Slot(object)
    def on_log(self, entry: SecurityLogEntry):
        self._refresh_log()
        if entry.severity in ("CRITICAL", "DEFENSE"):
            self.status_bar.flash(entry.message, SEVERITY_COLORS[entry.severity])

    def _refresh_log(self):
        entries = self.session.log_entries
        t = self.tbl_log
        t.setRowCount(len(entries))
        for r, e in enumerate(entries):
            _set_cell(t, r, 0, time.strftime("%H:%M:%S", time.localtime(e.ts)))
            t.setCellWidget(r, 1, Badge(e.severity))
            _set_cell(t, r, 2, e.message, SEVERITY_COLORS.get(e.severity, ""))
        t.scrollToBottom()

    # ═══════════════════════════════════════════
    # AI intel requests / results
    # ═══════════════════════════════════════════
    def _request_scenario(self):
        text = self.txt_scenario.toPlainText().strip()
        if not text:
            self.status_bar.flash("⚠  Describe a scenario first.", PALETTE["orange"])
            return
        self.btn_analyze.setEnabled(False)
        self.txt_analysis.setPlainText("Analyzing …")
        self.scenario_requested.emit(text)

    def _request_sandbox(self):
        code = self.txt_code.toPlainText().strip()
        if not code:
            self.status_bar.flash("⚠  Paste a payload first.", PALETTE["orange"])
            return
        self.btn_sandbox.setEnabled(False)
        self.lbl_sandbox.setText("Running static analysis …")
        self.sandbox_requested.emit(code)

    def _safe_execute(self):
        code = self.txt_code.toPlainText()
        if not code.strip():
            self.status_bar.flash("⚠  Paste a payload first.", PALETTE["orange"])
            return
        self.txt_console.clear()
        if self.runner.start(code):
            self.btn_run.setEnabled(False)

    def _on_run_finished(self, killed: bool):
        self.btn_run.setEnabled(True)
        if killed:
            self.status_bar.flash("⛔  Payload terminated: time limit exceeded.", PALETTE["red"])

    def _request_threats(self):
        self.btn_threats.setEnabled(False)
        self.threats_requested.emit()

    def show_analysis(self, text: str):
        self.btn_analyze.setEnabled(True)
        self.txt_analysis.setMarkdown(text)

    def show_sandbox(self, result: SandboxResult):
        self._last_sandbox = result
        self.btn_sandbox.setEnabled(True)
        self.btn_report.setEnabled(True)
        self.verdict_badge.set_text(result.verdict)
        behaviors = "\n".join(f"• {b}" for b in result.detected_behaviors)
        self.lbl_sandbox.setText(
            f"Risk score: {result.risk_score:.0f}/100\n"
            f"Isolation action: {result.isolation_action}\n\n"
            f"{behaviors}\n\n{result.technical_analysis}"
        )

    def show_threats(self, threats: List[ThreatIntel]):
        self.btn_threats.setEnabled(True)
        t = self.tbl_threats
        t.setRowCount(len(threats))
        for r, th in enumerate(threats):
            t.setCellWidget(r, 0, Badge(th.severity))
            _set_cell(t, r, 1, th.title)
            _set_cell(t, r, 2, th.summary)
            _set_cell(t, r, 3, th.source)
            _set_cell(t, r, 4, th.timestamp)

    def _save_sandbox_report(self):
        if self._last_sandbox is None:
            return
        default = f"sandbox_analysis_{int(time.time())}.txt"
        path, _ = QtWidgets.QFileDialog.getSaveFileName(self, "Save sandbox report", default, "Text (*.txt)")
        if not path:
            return
        try:
            with open(path, "w", encoding="utf-8") as fh:
                fh.write(format_sandbox_report(self._last_sandbox))
        except OSError as e:
            self.status_bar.flash(f"⚠  Could not save report: {e}", PALETTE["orange"])
            return
        self.status_bar.flash(f"✔  Report saved: {path}", PALETTE["green"])

    # ═══════════════════════════════════════════
    # Lifecycle
    # ═══════════════════════════════════════════
    def closeEvent(self, e):
        self.runner.stop()
        self.session.stop()
        super().closeEvent(e)
