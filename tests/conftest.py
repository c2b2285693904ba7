from __future__ import annotations
import os
import random

import pytest

os.environ.setdefault("QT_QPA_PLATFORM", "offscreen")

from PySide6 import QtCore

from defensedesk.config import AppConfig
from defensedesk.models import TelemetrySample
from defensedesk.session import MonitorSession
from defensedesk.telemetry import TelemetryGenerator


@pytest.fixture(scope="session", autouse=True)
def qt_app():
    app = QtCore.QCoreApplication.instance()
    if app is None:
        try:
            from PySide6 import QtWidgets
            app = QtWidgets.QApplication([])
        except ImportError:
            # no GUI libraries on this host; timers only need a core app
            app = QtCore.QCoreApplication([])
    yield app


class ScriptedGenerator(TelemetryGenerator):
    """Returns queued samples for NORMAL/STRESS ticks; ISOLATED stays quiescent."""

    def __init__(self, *samples: TelemetrySample):
        super().__init__(spike_probability=0.0, rng=random.Random(7))
        self.queue = list(samples)
        self.modes = []

    def tick(self, mode, ts=None):
        self.modes.append(mode)
        if mode == "ISOLATED" or not self.queue:
            return super().tick(mode, ts)
        return self.queue.pop(0)


def wait_ms(ms: int) -> None:
    """Spin the Qt event loop so single-shot timers can fire."""
    loop = QtCore.QEventLoop()
    QtCore.QTimer.singleShot(ms, loop.quit)
    loop.exec()


def sample(cpu=20.0, mem=25.0, net=5.0, disk=10.0, ts=1_700_000_000):
    return TelemetrySample(ts=ts, cpu_pct=cpu, mem_pct=mem, net_rate=net, disk_rate=disk)


def build_session(*samples, **cfg_overrides) -> MonitorSession:
    cfg_overrides.setdefault("countermeasure_delay_ms", 20)
    cfg = AppConfig(**cfg_overrides)
    return MonitorSession(cfg, generator=ScriptedGenerator(*samples), seed_history=False)
