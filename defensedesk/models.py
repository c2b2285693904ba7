from __future__ import annotations
from dataclasses import dataclass, field
from typing import Tuple

# Telemetry generator modes
MODE_NORMAL   = "NORMAL"
MODE_STRESS   = "STRESS"
MODE_ISOLATED = "ISOLATED"

# Alert levels
LEVEL_NORMAL   = "NORMAL"
LEVEL_WARNING  = "WARNING"
LEVEL_CRITICAL = "CRITICAL"

# Breachable metrics
METRIC_CPU     = "CPU"
METRIC_MEM     = "MEM"
METRIC_NETWORK = "NETWORK"
METRIC_DISK    = "DISK"

# Event log severities
SEV_INFO     = "INFO"
SEV_WARN     = "WARN"
SEV_CRITICAL = "CRITICAL"
SEV_DEFENSE  = "DEFENSE"

# Countermeasure lifecycle
CM_PENDING   = "PENDING"
CM_EXECUTING = "EXECUTING"
CM_COMPLETED = "COMPLETED"
CM_FAILED    = "FAILED"


@dataclass(frozen=True)
class TelemetrySample:
    ts: int
    cpu_pct: float
    mem_pct: float
    net_rate: float      # MB/s
    disk_rate: float     # MB/s
    is_anomaly: bool = False
    spike: bool = False

@dataclass(frozen=True)
class ThresholdConfig:
    cpu_warning: float = 70.0
    cpu_critical: float = 90.0
    mem_warning: float = 75.0     # carried for the editor; no warning tier for memory
    mem_critical: float = 95.0
    net_critical: float = 80.0
    disk_critical: float = 150.0
    auto_isolation: bool = True

@dataclass(frozen=True)
class Evaluation:
    level: str                                  # NORMAL|WARNING|CRITICAL
    breaches: frozenset = field(default_factory=frozenset)

@dataclass(frozen=True)
class Countermeasure:
    id: str
    type: str           # NETWORK|PROCESS|FILE
    action: str
    target: str
    risk: str           # LOW|MEDIUM|HIGH
    status: str = CM_PENDING

@dataclass(frozen=True)
class SecurityLogEntry:
    id: int
    ts: int
    severity: str       # INFO|WARN|CRITICAL|DEFENSE
    message: str

@dataclass(frozen=True)
class ThreatIntel:
    title: str
    severity: str       # CRITICAL|HIGH|MEDIUM|LOW
    summary: str
    source: str
    timestamp: str

@dataclass(frozen=True)
class SandboxResult:
    verdict: str        # SAFE|SUSPICIOUS|MALICIOUS
    risk_score: float
    detected_behaviors: Tuple[str, ...]
    isolation_action: str
    technical_analysis: str
