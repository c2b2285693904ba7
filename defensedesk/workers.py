from __future__ import annotations
from typing import Any, Callable

from PySide6 import QtCore

from .intel import IntelError


class IntelSignals(QtCore.QObject):
    finished = QtCore.Signal(str, object)   # kind, result
    failed   = QtCore.Signal(str, str)      # kind, error message


class IntelJob(QtCore.QRunnable):
    """
    Runs one blocking AI-service call on a pool thread.
    Results come back to the GUI thread through queued signals;
    the job never touches the MonitorSession.
    """

    def __init__(self, kind: str, fn: Callable[..., Any], *args: Any):
        super().__init__()
        self.kind = kind
        self._fn = fn
        self._args = args
        self.signals = IntelSignals()
        self.setAutoDelete(True)

    def run(self):
        try:
            result = self._fn(*self._args)
        except IntelError as e:
            print(f"[IntelJob] {self.kind} failed: {e}")
            self.signals.failed.emit(self.kind, str(e))
            return
        except Exception as e:
            # every job ends in finished or failed
            print(f"[IntelJob] {self.kind} crashed: {e!r}")
            self.signals.failed.emit(self.kind, f"Unexpected error: {e}")
            return
        self.signals.finished.emit(self.kind, result)
