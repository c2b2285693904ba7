from __future__ import annotations
import itertools
import time
from typing import AbstractSet, List, Optional

from .models import Countermeasure, METRIC_CPU, METRIC_NETWORK, METRIC_DISK


# ──────────────────────────────────────────────
# Candidate actions per breach family
# (type, action, target, risk)
# ──────────────────────────────────────────────
_NETWORK_ACTIONS = (
    ("NETWORK", "BLOCK_IP",     "203.0.113.45 (remote host)",         "MEDIUM"),
    ("NETWORK", "DISABLE_PORT", "TCP/445 (SMB)",                      "HIGH"),
)

_HOST_ACTIONS = (
    ("PROCESS", "KILL_PROCESS", "PID 9942 (svchost.exe - injected)",  "HIGH"),
    ("FILE",    "LOCK_DIR",     "/usr/local/data (read-only)",        "LOW"),
)


class CountermeasurePlanner:
    """Maps the breaches that triggered isolation to remediation candidates."""

    def __init__(self):
        self._seq = itertools.count(1)

    def plan(self, breaches: AbstractSet[str], ts: Optional[int] = None) -> List[Countermeasure]:
        ts = int(time.time()) if ts is None else ts
        rows = []
        if METRIC_NETWORK in breaches:
            rows.extend(_NETWORK_ACTIONS)
        if METRIC_DISK in breaches or METRIC_CPU in breaches:
            rows.extend(_HOST_ACTIONS)

        return [
            Countermeasure(id=f"cm-{ts}-{next(self._seq)}", type=kind,
                           action=action, target=target, risk=risk)
            for (kind, action, target, risk) in rows
        ]
