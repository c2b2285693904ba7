from __future__ import annotations
from PySide6 import QtCore, QtWidgets
import sys
from typing import Set

from .config import AppConfig, load_config
from .intel import IntelClient, SCENARIO_FALLBACK, SANDBOX_FALLBACK
from .models import SEV_INFO, SEV_WARN
from .session import MonitorSession
from .workers import IntelJob, IntelSignals
from .ui.main_window import DefenseWindow


class Controller(QtCore.QObject):
    """
    Wires the defense view together:
    - MonitorSession ticks on the GUI thread (1s)
    - AI service calls run on the global thread pool
    Intel failures become WARN log entries plus a fallback value.
    """
    def __init__(self, cfg: AppConfig, session: MonitorSession, win: DefenseWindow,
                 client: IntelClient):
        super().__init__()
        self.cfg = cfg
        self.session = session
        self.win = win
        self.client = client
        self._pool = QtCore.QThreadPool.globalInstance()
        self._inflight: Set[IntelSignals] = set()

        win.scenario_requested.connect(self.analyze_scenario)
        win.sandbox_requested.connect(self.analyze_code)
        win.threats_requested.connect(self.load_threats)

        print("[Controller] Initialized - tick every "
              f"{cfg.sample_interval_ms}ms, countermeasure delay {cfg.countermeasure_delay_ms}ms")

    # ── dispatch ──────────────────────────────
    @QtCore.Slot(str)
    def analyze_scenario(self, text: str):
        self._submit(IntelJob("scenario", self.client.analyze_scenario, text))

    @QtCore.Slot(str)
    def analyze_code(self, source: str):
        self.session.record(SEV_INFO, "Starting static payload analysis...")
        self._submit(IntelJob("sandbox", self.client.analyze_code, source))

    @QtCore.Slot()
    def load_threats(self):
        self._submit(IntelJob("threats", self.client.fetch_threat_feed))

    def _submit(self, job: IntelJob):
        self._inflight.add(job.signals)
        job.signals.finished.connect(self.on_intel_finished)
        job.signals.failed.connect(self.on_intel_failed)
        self._pool.start(job)

    def _release(self):
        sig = self.sender()
        self._inflight.discard(sig)

    # ── results (GUI thread) ──────────────────
    @QtCore.Slot(str, object)
    def on_intel_finished(self, kind: str, result):
        self._release()
        if kind == "scenario":
            self.win.show_analysis(result)
            self.session.record(SEV_INFO, "Strategic analysis completed.")
        elif kind == "sandbox":
            self.win.show_sandbox(result)
            self.session.record(SEV_INFO, f"Sandbox finished. Verdict: {result.verdict}")
        elif kind == "threats":
            self.win.show_threats(result)
            self.session.record(SEV_INFO, f"Threat feed updated: {len(result)} items.")

    @QtCore.Slot(str, str)
    def on_intel_failed(self, kind: str, error: str):
        self._release()
        if kind == "scenario":
            self.win.show_analysis(SCENARIO_FALLBACK)
            self.session.record(SEV_WARN, "Connection to the analysis engine failed.")
        elif kind == "sandbox":
            self.win.show_sandbox(SANDBOX_FALLBACK)
            self.session.record(SEV_WARN, "Sandbox analysis failed. Preventive quarantine applied.")
        elif kind == "threats":
            self.win.show_threats([])
            self.session.record(SEV_WARN, "Threat feed unavailable.")


def main():
    cfg = load_config()

    app = QtWidgets.QApplication(sys.argv)
    session = MonitorSession(cfg)
    win = DefenseWindow(session, cfg)
    controller = Controller(cfg, session, win, IntelClient(cfg))

    session.start()
    controller.load_threats()
    win.show()

    code = app.exec()

    # Cleanup (no-op if the window already stopped it)
    session.stop()
    sys.exit(code)


if __name__ == "__main__":
    main()
