from __future__ import annotations

import pytest
from PySide6 import QtCore

QtWidgets = pytest.importorskip("PySide6.QtWidgets")

from conftest import build_session, sample, wait_ms

from defensedesk.app import Controller
from defensedesk.config import AppConfig
from defensedesk.intel import IntelClient, SANDBOX_FALLBACK
from defensedesk.models import SandboxResult, ThreatIntel
from defensedesk.ui.main_window import DefenseWindow


@pytest.fixture
def gui(qt_app):
    if not isinstance(qt_app, QtWidgets.QApplication):
        pytest.skip("needs a QApplication")
    session = build_session(sample(cpu=95, net=120))
    win = DefenseWindow(session, session.cfg)
    yield session, win
    win.close()


def test_isolation_shows_banner_and_countermeasures(gui):
    session, win = gui
    assert win.banner.isHidden()

    session.tick()

    assert not win.banner.isHidden()
    assert win.tbl_cm.rowCount() == 4
    assert win.tbl_cm.cellWidget(0, 5) is not None
    assert win.topbar.level_badge._text == "CRITICAL"
    assert win.tbl_log.rowCount() == len(session.log_entries)


def test_execute_button_and_reset(gui):
    session, win = gui
    session.tick()

    win.tbl_cm.cellWidget(0, 5).click()
    assert session.countermeasures[0].status == "EXECUTING"
    wait_ms(150)
    assert win.tbl_cm.item(0, 4).text() == "COMPLETED"

    win.btn_reset.click()
    assert win.banner.isHidden()
    assert win.tbl_cm.rowCount() == 0


def test_threshold_editor_updates_session(gui):
    session, win = gui
    win._spins["cpu_critical"].setValue(60)
    win.chk_auto.setChecked(False)
    assert session.thresholds.cpu_critical == 60
    assert session.thresholds.auto_isolation is False


def test_closing_window_stops_session(gui):
    session, win = gui
    session.start()
    win.close()
    assert not session.running


def test_controller_surfaces_failures_as_warnings(gui):
    session, win = gui
    ctl = Controller(AppConfig(), session, win, IntelClient(AppConfig(), api_key=""))

    ctl.on_intel_failed("sandbox", "boom")
    assert win.verdict_badge._text == SANDBOX_FALLBACK.verdict
    assert session.log_entries[-1].severity == "WARN"

    ctl.on_intel_failed("threats", "boom")
    assert win.tbl_threats.rowCount() == 0

    ctl.on_intel_finished("threats", [ThreatIntel("CVE-1", "HIGH", "s", "src", "Recent")])
    assert win.tbl_threats.rowCount() == 1
    assert session.log_entries[-1].severity == "INFO"

    ctl.on_intel_finished("sandbox", SandboxResult("SAFE", 3.0, (), "None", "Benign."))
    assert win.btn_report.isEnabled()


def test_safe_execute_button_streams_to_console_and_times_out(gui):
    session, win = gui
    win.btn_run.click()
    assert not win.runner.running

    win.runner.timeout_ms = 300
    win.txt_code.setPlainText("import time\ntime.sleep(30)")
    done = []
    loop = QtCore.QEventLoop()
    win.runner.finished.connect(lambda killed: (done.append(killed), loop.quit()))
    QtCore.QTimer.singleShot(15000, loop.quit)

    win.btn_run.click()
    assert not win.btn_run.isEnabled()
    if not done:
        loop.exec()

    assert done == [True]
    assert win.btn_run.isEnabled()
    assert "SAFETY TIMEOUT" in win.txt_console.toPlainText()
    assert session.log_entries[-1].severity == "DEFENSE"
