from __future__ import annotations
import json

import pytest

from defensedesk import config
from defensedesk.config import AppConfig


@pytest.fixture
def cfg_home(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "APP_DIR", tmp_path)
    monkeypatch.setattr(config, "CFG_PATH", tmp_path / "config.json")
    return tmp_path / "config.json"


def test_first_load_writes_defaults(cfg_home):
    cfg = config.load_config()
    assert cfg == AppConfig()
    assert json.loads(cfg_home.read_text(encoding="utf-8"))["cpu_critical"] == 90.0


def test_unknown_keys_are_dropped(cfg_home):
    cfg_home.write_text(json.dumps({"net_critical": 40, "legacy_option": True}), encoding="utf-8")
    cfg = config.load_config()
    assert cfg.net_critical == 40
    assert cfg.disk_critical == 150.0


def test_corrupt_file_falls_back_to_defaults(cfg_home):
    cfg_home.write_text("{not json", encoding="utf-8")
    assert config.load_config() == AppConfig()
    assert json.loads(cfg_home.read_text(encoding="utf-8"))["history_size"] == 40


def test_save_round_trip(cfg_home):
    config.save_config(AppConfig(auto_isolation=False, countermeasure_delay_ms=500))
    cfg = config.load_config()
    assert cfg.auto_isolation is False
    assert cfg.countermeasure_delay_ms == 500
