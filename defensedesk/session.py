from __future__ import annotations
import dataclasses
import time
from collections import deque
from typing import Dict, List, Optional

from PySide6 import QtCore

from .config import AppConfig
from .evaluator import evaluate
from .eventlog import EventLog
from .planner import CountermeasurePlanner
from .telemetry import TelemetryGenerator
from .models import (
    TelemetrySample, ThresholdConfig, Countermeasure, SecurityLogEntry,
    MODE_NORMAL, MODE_STRESS, MODE_ISOLATED,
    LEVEL_NORMAL, LEVEL_CRITICAL,
    METRIC_NETWORK, METRIC_DISK,
    SEV_INFO, SEV_WARN, SEV_CRITICAL, SEV_DEFENSE,
    CM_PENDING, CM_EXECUTING, CM_COMPLETED,
)


def thresholds_from_config(cfg: AppConfig) -> ThresholdConfig:
    return ThresholdConfig(
        cpu_warning=cfg.cpu_warning,
        cpu_critical=cfg.cpu_critical,
        mem_warning=cfg.mem_warning,
        mem_critical=cfg.mem_critical,
        net_critical=cfg.net_critical,
        disk_critical=cfg.disk_critical,
        auto_isolation=cfg.auto_isolation,
    )


class MonitorSession(QtCore.QObject):
    """
    Owns the whole defense control loop for one open defense view:
    sample window, thresholds, alert level, isolation flag,
    countermeasures and the security log.

    Everything runs on the thread that owns the session (the GUI thread):
    the 1s tick timer, the per-countermeasure execution timers and the
    operator commands are all serialized by the Qt event loop, so no
    locking is needed.
    """

    sample_added           = QtCore.Signal(object)   # TelemetrySample
    state_changed          = QtCore.Signal()         # level / isolation / stress
    thresholds_changed     = QtCore.Signal(object)   # ThresholdConfig
    countermeasures_changed = QtCore.Signal(list)    # List[Countermeasure]
    log_appended           = QtCore.Signal(object)   # SecurityLogEntry

    def __init__(self, cfg: AppConfig, generator: Optional[TelemetryGenerator] = None,
                 seed_history: bool = True, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self.cfg = cfg
        self.generator = generator or TelemetryGenerator(cfg.spike_probability)
        self.planner = CountermeasurePlanner()
        self.log = EventLog(cfg.log_max_entries)

        self._samples: deque = deque(maxlen=max(1, cfg.history_size))
        if seed_history:
            self._samples.extend(self.generator.seed_history(cfg.history_size))

        self._thresholds = thresholds_from_config(cfg)
        self._level = LEVEL_NORMAL
        self._isolated = False
        self._stress = False
        self._countermeasures: List[Countermeasure] = []

        # countermeasure id → single-shot completion timer
        self._exec_timers: Dict[str, QtCore.QTimer] = {}

        self._timer = QtCore.QTimer(self)
        self._timer.setInterval(cfg.sample_interval_ms)
        self._timer.timeout.connect(self.tick)

    # ══════════════════════════════════════════
    # Lifecycle
    # ══════════════════════════════════════════
    def start(self) -> None:
        if self._timer.isActive():
            return
        self._log(SEV_INFO, "Monitoring active. Heuristic protocols started.")
        self._timer.start()
        print(f"[MonitorSession] Started - tick every {self.cfg.sample_interval_ms}ms")

    def stop(self) -> None:
        self._timer.stop()
        self._cancel_executions()
        print("[MonitorSession] Stopped")

    @property
    def running(self) -> bool:
        return self._timer.isActive()

    # ══════════════════════════════════════════
    # Read access
    # ══════════════════════════════════════════
    @property
    def samples(self) -> List[TelemetrySample]:
        return list(self._samples)

    @property
    def alert_level(self) -> str:
        return self._level

    @property
    def isolated(self) -> bool:
        return self._isolated

    @property
    def stress_mode(self) -> bool:
        return self._stress

    @property
    def mode(self) -> str:
        if self._isolated:
            return MODE_ISOLATED
        return MODE_STRESS if self._stress else MODE_NORMAL

    @property
    def thresholds(self) -> ThresholdConfig:
        return self._thresholds

    @property
    def countermeasures(self) -> List[Countermeasure]:
        return list(self._countermeasures)

    @property
    def log_entries(self) -> List[SecurityLogEntry]:
        return self.log.entries()

    def countermeasure(self, cm_id: str) -> Optional[Countermeasure]:
        for cm in self._countermeasures:
            if cm.id == cm_id:
                return cm
        return None

    # ══════════════════════════════════════════
    # Tick
    # ══════════════════════════════════════════
    @QtCore.Slot()
    def tick(self) -> None:
        ts = int(time.time())

        # Contained: frozen telemetry, no evaluation
        if self._isolated:
            self._push_sample(self.generator.tick(MODE_ISOLATED, ts))
            return

        sample = self.generator.tick(self.mode, ts)
        if sample.spike:
            self._log(SEV_WARN, "Network traffic spike detected.")

        ev = evaluate(sample, self._thresholds)
        if ev.level == LEVEL_CRITICAL:
            if METRIC_NETWORK in ev.breaches:
                self._log(SEV_CRITICAL, f"Network anomaly: {sample.net_rate:.1f} MB/s (likely exfiltration)")
            if METRIC_DISK in ev.breaches:
                self._log(SEV_CRITICAL, f"I/O anomaly: {sample.disk_rate:.1f} MB/s (mass encryption?)")

            if self._thresholds.auto_isolation:
                # triggering sample is dropped; telemetry freezes from the next tick
                self._enter_isolation(ev.breaches, ts)
                return

        self._set_level(ev.level)
        self._push_sample(dataclasses.replace(sample, is_anomaly=ev.level == LEVEL_CRITICAL))

    def _enter_isolation(self, breaches: frozenset, ts: int) -> None:
        self._isolated = True
        self._stress = False
        self._level = LEVEL_CRITICAL

        self._log(SEV_DEFENSE, "ISOLATION PROTOCOLS ACTIVATED AUTOMATICALLY.")
        self._log(SEV_DEFENSE, "Network interfaces disabled. Processes suspended.")

        self._countermeasures = self.planner.plan(breaches, ts)
        print(f"[MonitorSession] Isolation triggered by {sorted(breaches)}, "
              f"{len(self._countermeasures)} countermeasures proposed")

        self.state_changed.emit()
        self.countermeasures_changed.emit(self.countermeasures)

    # ══════════════════════════════════════════
    # Operator commands
    # ══════════════════════════════════════════
    @QtCore.Slot(bool)
    def set_stress_mode(self, enabled: bool) -> None:
        enabled = bool(enabled)
        if self._isolated or enabled == self._stress:
            return
        self._stress = enabled
        if enabled:
            self._log(SEV_WARN, "Stress test enabled: simulating attack load.")
        else:
            self._log(SEV_INFO, "Stress test disabled.")
        self.state_changed.emit()

    def update_thresholds(self, **changes) -> ThresholdConfig:
        known = {k: v for k, v in changes.items() if k in ThresholdConfig.__dataclass_fields__}
        if known:
            self._thresholds = dataclasses.replace(self._thresholds, **known)
            self.thresholds_changed.emit(self._thresholds)
        return self._thresholds

    @QtCore.Slot()
    def reset_isolation(self) -> None:
        if not self._isolated:
            return
        self._cancel_executions()
        self._isolated = False
        self._stress = False
        self._level = LEVEL_NORMAL
        self._countermeasures = []

        self._log(SEV_INFO, "Isolation protocols suspended manually by the operator.")
        self._log(SEV_INFO, "Network and I/O systems re-enabled.")
        print("[MonitorSession] Isolation reset by operator")

        self.state_changed.emit()
        self.countermeasures_changed.emit([])

    @QtCore.Slot(str)
    def execute(self, cm_id: str) -> None:
        cm = self.countermeasure(cm_id)
        if cm is None or cm.status != CM_PENDING:
            return
        self._replace_countermeasure(dataclasses.replace(cm, status=CM_EXECUTING))

        timer = QtCore.QTimer(self)
        timer.setSingleShot(True)
        timer.setInterval(self.cfg.countermeasure_delay_ms)
        timer.timeout.connect(lambda cid=cm_id: self._complete(cid))
        self._exec_timers[cm_id] = timer
        timer.start()

        self.countermeasures_changed.emit(self.countermeasures)

    @QtCore.Slot()
    def execute_all(self) -> None:
        for cm in self.countermeasures:
            if cm.status == CM_PENDING:
                self.execute(cm.id)

    def record(self, severity: str, message: str) -> SecurityLogEntry:
        """Log an outcome from outside the loop (e.g. an AI service call)."""
        return self._log(severity, message)

    # ══════════════════════════════════════════
    # Internals
    # ══════════════════════════════════════════
    def _complete(self, cm_id: str) -> None:
        timer = self._exec_timers.pop(cm_id, None)
        if timer is not None:
            timer.deleteLater()
        cm = self.countermeasure(cm_id)
        if cm is None or cm.status != CM_EXECUTING:
            return
        done = dataclasses.replace(cm, status=CM_COMPLETED)
        self._replace_countermeasure(done)
        self._log(SEV_DEFENSE, f"COUNTERMEASURE EXECUTED: {done.action} on {done.target}")
        self.countermeasures_changed.emit(self.countermeasures)

    def _cancel_executions(self) -> None:
        for timer in self._exec_timers.values():
            timer.stop()
            timer.deleteLater()
        self._exec_timers.clear()

    def _replace_countermeasure(self, updated: Countermeasure) -> None:
        self._countermeasures = [
            updated if cm.id == updated.id else cm for cm in self._countermeasures
        ]

    def _push_sample(self, sample: TelemetrySample) -> None:
        self._samples.append(sample)
        self.sample_added.emit(sample)

    def _set_level(self, level: str) -> None:
        if level != self._level:
            self._level = level
            self.state_changed.emit()

    def _log(self, severity: str, message: str) -> SecurityLogEntry:
        entry = self.log.append(severity, message)
        self.log_appended.emit(entry)
        return entry
