from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
import json

APP_DIR = Path.home() / ".defensedesk"
CFG_PATH = APP_DIR / "config.json"

@dataclass
class AppConfig:
    sample_interval_ms: int = 1000
    history_size: int = 40               # samples kept for the charts
    log_max_entries: int = 50

    # Telemetry generator
    spike_probability: float = 0.05

    # Countermeasure executor
    countermeasure_delay_ms: int = 1500

    # Default thresholds (operator edits are in-memory only)
    cpu_warning: float = 70.0
    cpu_critical: float = 90.0
    mem_warning: float = 75.0
    mem_critical: float = 95.0
    net_critical: float = 80.0           # MB/s
    disk_critical: float = 150.0         # MB/s
    auto_isolation: bool = True

    # Safe-execute sandbox ("" = the interpreter running DefenseDesk)
    sandbox_timeout_ms: int = 5000
    sandbox_interpreter: str = ""

    # AI analysis service
    api_key_env: str = "GEMINI_API_KEY"
    api_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    analysis_model: str = "gemini-2.5-pro"
    fast_model: str = "gemini-2.5-flash"
    request_timeout_s: float = 60.0

def ensure_dirs() -> None:
    APP_DIR.mkdir(parents=True, exist_ok=True)

def load_config() -> AppConfig:
    ensure_dirs()
    if not CFG_PATH.exists():
        cfg = AppConfig()
        save_config(cfg)
        return cfg
    try:
        data = json.loads(CFG_PATH.read_text(encoding="utf-8"))
        known = {k: data[k] for k in data if k in AppConfig.__dataclass_fields__}
        return AppConfig(**known)
    except (OSError, ValueError, TypeError):
        cfg = AppConfig()
        save_config(cfg)
        return cfg

def save_config(cfg: AppConfig) -> None:
    ensure_dirs()
    CFG_PATH.write_text(json.dumps(cfg.__dict__, indent=2), encoding="utf-8")
