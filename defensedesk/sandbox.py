from __future__ import annotations
import sys
from typing import Optional

from PySide6 import QtCore

from .session import MonitorSession
from .models import SEV_WARN, SEV_DEFENSE


class SafeRunner(QtCore.QObject):
    """
    Runs an untrusted Python payload in a separate interpreter process
    (isolated mode, unbuffered) and streams its output as console lines.

    A single-shot deadline kills the process when it runs past
    `timeout_ms`. Start and timeout are written to the session's
    security log.
    """

    output   = QtCore.Signal(str)    # console line
    finished = QtCore.Signal(bool)   # True when killed by the deadline

    def __init__(self, session: MonitorSession, timeout_ms: int = 5000,
                 interpreter: Optional[str] = None, parent: Optional[QtCore.QObject] = None):
        super().__init__(parent)
        self.session = session
        self.timeout_ms = timeout_ms
        self.interpreter = interpreter or sys.executable

        self._proc: Optional[QtCore.QProcess] = None
        self._timed_out = False
        self._buf = {"STDOUT": "", "STDERR": ""}

        self._deadline = QtCore.QTimer(self)
        self._deadline.setSingleShot(True)
        self._deadline.timeout.connect(self._on_timeout)

    @property
    def running(self) -> bool:
        return self._proc is not None

    def start(self, code: str) -> bool:
        if self.running or not code.strip():
            return False
        self._timed_out = False
        self._buf = {"STDOUT": "", "STDERR": ""}

        proc = QtCore.QProcess(self)
        proc.setProgram(self.interpreter)
        proc.setArguments(["-I", "-u", "-c", code])
        proc.setWorkingDirectory(QtCore.QDir.tempPath())
        proc.readyReadStandardOutput.connect(self._read_stdout)
        proc.readyReadStandardError.connect(self._read_stderr)
        proc.finished.connect(self._on_finished)
        proc.errorOccurred.connect(self._on_error)
        self._proc = proc

        self.output.emit("> Starting isolated interpreter (subprocess) ...")
        self.session.record(SEV_WARN, "Unverified code execution started in an isolated subprocess.")
        print(f"[SafeRunner] Started {self.interpreter} (limit {self.timeout_ms}ms)")
        self._deadline.start(self.timeout_ms)
        proc.start()
        return True

    def stop(self) -> None:
        """Kill a running payload without logging a timeout (view closing)."""
        proc = self._proc
        if proc is None:
            return
        self._deadline.stop()
        proc.kill()
        proc.waitForFinished(1000)
        if self._proc is proc:
            self._finish()

    # ── process callbacks ─────────────────────
    def _read_stdout(self):
        if self._proc is not None:
            self._feed("STDOUT", bytes(self._proc.readAllStandardOutput()))

    def _read_stderr(self):
        if self._proc is not None:
            self._feed("STDERR", bytes(self._proc.readAllStandardError()))

    def _feed(self, channel: str, data: bytes) -> None:
        text = self._buf[channel] + data.decode("utf-8", errors="replace")
        *lines, self._buf[channel] = text.split("\n")
        for line in lines:
            self.output.emit(f"[{channel}] {line.rstrip()}")

    def _flush(self) -> None:
        for channel, rest in self._buf.items():
            if rest.strip():
                self.output.emit(f"[{channel}] {rest.rstrip()}")
        self._buf = {"STDOUT": "", "STDERR": ""}

    def _on_timeout(self):
        if self._proc is None:
            return
        self._timed_out = True
        self._proc.kill()
        self.output.emit("!!! SAFETY TIMEOUT: PROCESS TERMINATED !!!")
        self.session.record(SEV_DEFENSE, "Sandbox worker exceeded time limit. Terminated.")
        print("[SafeRunner] Payload killed after time limit")

    def _on_finished(self, exit_code: int, _status=None):
        if self._proc is None or self.sender() is not self._proc:
            return
        self._read_stdout()
        self._read_stderr()
        self._flush()
        if not self._timed_out:
            self.output.emit(f"[RETURN] exit code {exit_code}")
            self.output.emit("> Execution finished.")
        self._finish()

    def _on_error(self, error):
        # other errors (crash after kill, ...) are followed by finished
        if error != QtCore.QProcess.ProcessError.FailedToStart:
            return
        if self._proc is None or self.sender() is not self._proc:
            return
        self.output.emit(f"[STDERR] could not start interpreter: {self._proc.errorString()}")
        self._finish()

    def _finish(self) -> None:
        self._deadline.stop()
        proc, self._proc = self._proc, None
        proc.deleteLater()
        self.finished.emit(self._timed_out)
