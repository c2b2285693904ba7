from __future__ import annotations

from .models import (
    TelemetrySample, ThresholdConfig, Evaluation,
    LEVEL_NORMAL, LEVEL_WARNING, LEVEL_CRITICAL,
    METRIC_CPU, METRIC_MEM, METRIC_NETWORK, METRIC_DISK,
)


def evaluate(sample: TelemetrySample, t: ThresholdConfig) -> Evaluation:
    """
    Classify one sample.  Critical checks win over the CPU warning tier;
    memory, network and disk go straight from NORMAL to CRITICAL.
    """
    breaches = set()
    if sample.cpu_pct >= t.cpu_critical:
        breaches.add(METRIC_CPU)
    if sample.mem_pct >= t.mem_critical:
        breaches.add(METRIC_MEM)
    if sample.net_rate >= t.net_critical:
        breaches.add(METRIC_NETWORK)
    if sample.disk_rate >= t.disk_critical:
        breaches.add(METRIC_DISK)

    if breaches:
        return Evaluation(LEVEL_CRITICAL, frozenset(breaches))
    if sample.cpu_pct >= t.cpu_warning:
        return Evaluation(LEVEL_WARNING)
    return Evaluation(LEVEL_NORMAL)
