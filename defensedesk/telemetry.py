from __future__ import annotations
import random
import time
from typing import List, Optional

from .models import TelemetrySample, MODE_NORMAL, MODE_STRESS, MODE_ISOLATED


# (cpu, mem, net, disk, variance) per mode
_BASELINES = {
    MODE_NORMAL: (15.0, 25.0, 5.0, 10.0, 5.0),
    MODE_STRESS: (85.0, 80.0, 120.0, 200.0, 15.0),
}

_SPIKE_CPU = 30.0
_SPIKE_NET = 90.0


def _pct(v: float) -> float:
    return min(100.0, max(0.0, v))

def _rate(v: float) -> float:
    return max(0.0, v)


class TelemetryGenerator:
    """
    Synthetic system metrics, one sample per tick.
    - NORMAL: calm baseline with an occasional burst (spike)
    - STRESS: baseline near/above the critical thresholds
    - ISOLATED: frozen, quiescent sample
    Percentages vary by ±variance, rates by ±2×variance.
    """

    def __init__(self, spike_probability: float = 0.05, rng: Optional[random.Random] = None):
        self.spike_probability = spike_probability
        self._rng = rng or random.Random()

    def tick(self, mode: str, ts: Optional[int] = None) -> TelemetrySample:
        ts = int(time.time()) if ts is None else ts

        if mode == MODE_ISOLATED:
            return TelemetrySample(ts=ts, cpu_pct=5.0, mem_pct=5.0, net_rate=0.0, disk_rate=0.0)

        base_cpu, base_mem, base_net, base_disk, var = _BASELINES[mode]
        u = self._rng.uniform
        cpu  = base_cpu  + u(-var, var)
        mem  = base_mem  + u(-var, var)
        net  = base_net  + u(-var * 2, var * 2)
        disk = base_disk + u(-var * 2, var * 2)

        spike = mode == MODE_NORMAL and self._rng.random() < self.spike_probability
        if spike:
            cpu += _SPIKE_CPU
            net += _SPIKE_NET

        return TelemetrySample(
            ts=ts,
            cpu_pct=_pct(cpu),
            mem_pct=_pct(mem),
            net_rate=_rate(net),
            disk_rate=_rate(disk),
            spike=spike,
        )

    def seed_history(self, count: int, ts: Optional[int] = None, step: int = 5) -> List[TelemetrySample]:
        """Calm back-dated samples used to pre-fill the chart window."""
        ts = int(time.time()) if ts is None else ts
        u = self._rng.uniform
        return [
            TelemetrySample(
                ts=ts - (count - i) * step,
                cpu_pct=u(10.0, 30.0),
                mem_pct=u(20.0, 30.0),
                net_rate=u(0.0, 5.0),
                disk_rate=u(0.0, 5.0),
            )
            for i in range(count)
        ]
