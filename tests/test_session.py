from __future__ import annotations
import random

from conftest import build_session, sample, wait_ms

from defensedesk.config import AppConfig
from defensedesk.session import MonitorSession
from defensedesk.telemetry import TelemetryGenerator


def _count(session, severity):
    return sum(1 for e in session.log_entries if e.severity == severity)


# ──────────────────────────────────────────────
# Alert state machine
# ──────────────────────────────────────────────
def test_critical_with_auto_isolation_isolates_and_plans():
    session = build_session(sample(cpu=95))
    changes = []
    session.state_changed.connect(lambda: changes.append(session.isolated))

    session.tick()

    assert session.isolated
    assert session.alert_level == "CRITICAL"
    assert session.mode == "ISOLATED"
    assert session.countermeasures
    assert {cm.type for cm in session.countermeasures} == {"PROCESS", "FILE"}
    assert _count(session, "DEFENSE") == 2
    assert changes == [True]


def test_triggering_sample_is_not_kept_in_window():
    session = build_session(sample(), sample(net=120))
    session.tick()
    session.tick()
    assert session.isolated
    assert len(session.samples) == 1
    assert session.samples[0].net_rate == 5.0


def test_isolated_ticks_produce_quiescent_samples_only():
    session = build_session(sample(cpu=95), sample(cpu=99), sample(cpu=99))
    session.tick()
    session.tick()
    session.tick()

    assert session.generator.modes == ["NORMAL", "ISOLATED", "ISOLATED"]
    assert [(s.cpu_pct, s.net_rate) for s in session.samples] == [(5.0, 0.0), (5.0, 0.0)]
    assert session.alert_level == "CRITICAL"
    # planner ran once only
    assert len(session.countermeasures) == 2


def test_without_auto_isolation_critical_persists():
    session = build_session(sample(cpu=95), sample(net=100), sample(disk=400), auto_isolation=False)
    for _ in range(3):
        session.tick()
        assert session.alert_level == "CRITICAL"
        assert not session.isolated

    assert session.countermeasures == []
    assert all(s.is_anomaly for s in session.samples)
    assert len(session.samples) == 3
    assert _count(session, "CRITICAL") == 2       # network + disk anomalies


def test_warning_and_recovery_to_normal():
    session = build_session(sample(cpu=75), sample(cpu=20))
    session.tick()
    assert session.alert_level == "WARNING"
    session.tick()
    assert session.alert_level == "NORMAL"


def test_spike_logs_warning_independent_of_thresholds():
    gen = TelemetryGenerator(spike_probability=1.0, rng=random.Random(9))
    cfg = AppConfig(cpu_critical=1000, net_critical=1000)
    session = MonitorSession(cfg, generator=gen, seed_history=False)
    session.tick()
    assert session.alert_level == "NORMAL"
    assert _count(session, "WARN") == 1


def test_window_is_bounded():
    gen = TelemetryGenerator(spike_probability=0.0, rng=random.Random(10))
    session = MonitorSession(AppConfig(history_size=5), generator=gen)
    assert len(session.samples) == 5
    for _ in range(8):
        session.tick()
    assert len(session.samples) == 5


# ──────────────────────────────────────────────
# Operator commands
# ──────────────────────────────────────────────
def test_reset_when_not_isolated_is_noop():
    session = build_session()
    session.tick()
    before = session.log_entries
    fired = []
    session.state_changed.connect(lambda: fired.append(1))

    session.reset_isolation()

    assert session.log_entries == before
    assert fired == []
    assert session.alert_level == "NORMAL"


def test_stress_mode_cannot_be_enabled_while_isolated():
    session = build_session(sample(net=120))
    session.tick()
    assert session.isolated
    before = len(session.log_entries)

    session.set_stress_mode(True)

    assert not session.stress_mode
    assert session.mode == "ISOLATED"
    assert len(session.log_entries) == before


def test_reset_clears_isolation_state():
    session = build_session(sample(net=120))
    session.set_stress_mode(True)
    session.tick()
    assert session.isolated and not session.stress_mode

    info_before = _count(session, "INFO")
    session.reset_isolation()

    assert not session.isolated
    assert session.alert_level == "NORMAL"
    assert session.countermeasures == []
    assert not session.stress_mode
    assert _count(session, "INFO") == info_before + 2


def test_update_thresholds_is_partial_and_ignores_unknown_fields():
    session = build_session()
    seen = []
    session.thresholds_changed.connect(seen.append)

    t = session.update_thresholds(cpu_critical=50, bogus=1)
    assert t.cpu_critical == 50
    assert t.net_critical == 80
    session.update_thresholds(cpu_critical=60)
    assert session.thresholds.cpu_critical == 60
    assert len(seen) == 2

    session.update_thresholds(nope=3)
    assert len(seen) == 2


def test_threshold_edit_applies_on_next_tick():
    session = build_session(sample(cpu=55))
    session.update_thresholds(cpu_critical=50)
    session.tick()
    assert session.isolated


# ──────────────────────────────────────────────
# Countermeasure executor
# ──────────────────────────────────────────────
def test_execute_unknown_id_is_noop():
    session = build_session(sample(cpu=95))
    session.tick()
    before = session.countermeasures
    session.execute("cm-does-not-exist")
    assert session.countermeasures == before


def test_execute_runs_pending_to_completed():
    session = build_session(sample(cpu=95))
    session.tick()
    cm_id = session.countermeasures[0].id
    defense_before = _count(session, "DEFENSE")

    session.execute(cm_id)
    assert session.countermeasure(cm_id).status == "EXECUTING"
    assert _count(session, "DEFENSE") == defense_before

    wait_ms(200)
    assert session.countermeasure(cm_id).status == "COMPLETED"
    assert _count(session, "DEFENSE") == defense_before + 1
    assert session.log_entries[-1].message.startswith("COUNTERMEASURE EXECUTED: KILL_PROCESS")


def test_repeated_execute_is_idempotent():
    session = build_session(sample(cpu=95))
    session.tick()
    cm_id = session.countermeasures[0].id
    defense_before = _count(session, "DEFENSE")

    session.execute(cm_id)
    session.execute(cm_id)
    wait_ms(200)
    session.execute(cm_id)

    assert session.countermeasure(cm_id).status == "COMPLETED"
    assert _count(session, "DEFENSE") == defense_before + 1


def test_execute_all_runs_every_pending_action():
    session = build_session(sample(cpu=95, net=120))
    session.tick()
    assert len(session.countermeasures) == 4
    defense_before = _count(session, "DEFENSE")

    session.execute_all()
    assert all(cm.status == "EXECUTING" for cm in session.countermeasures)

    wait_ms(250)
    assert all(cm.status == "COMPLETED" for cm in session.countermeasures)
    assert _count(session, "DEFENSE") == defense_before + 4


def test_reset_cancels_in_flight_executions():
    session = build_session(sample(cpu=95))
    session.tick()
    session.execute_all()
    session.reset_isolation()
    defense_after_reset = _count(session, "DEFENSE")

    wait_ms(200)
    assert session.countermeasures == []
    assert _count(session, "DEFENSE") == defense_after_reset


# ──────────────────────────────────────────────
# Lifecycle / end to end
# ──────────────────────────────────────────────
def test_start_and_stop_manage_the_tick_timer():
    session = build_session(sample_interval_ms=10)
    session.start()
    assert session.running
    assert session.log_entries[0].severity == "INFO"
    wait_ms(100)
    session.stop()
    assert not session.running
    ticked = len(session.samples)
    assert ticked >= 1
    wait_ms(60)
    assert len(session.samples) == ticked


def test_stress_mode_end_to_end_with_default_thresholds():
    gen = TelemetryGenerator(spike_probability=0.0, rng=random.Random(11))
    session = MonitorSession(AppConfig(countermeasure_delay_ms=20), generator=gen)
    seeded = len(session.samples)

    session.set_stress_mode(True)
    assert session.mode == "STRESS"
    session.tick()

    assert session.isolated
    assert session.alert_level == "CRITICAL"
    assert session.countermeasures
    assert not session.stress_mode
    assert len(session.samples) == seeded

    for _ in range(3):
        session.tick()
    tail = session.samples[-3:]
    assert all((s.cpu_pct, s.mem_pct, s.net_rate, s.disk_rate) == (5.0, 5.0, 0.0, 0.0) for s in tail)

    session.reset_isolation()
    session.tick()
    assert not session.isolated
    assert session.samples[-1].cpu_pct != 5.0 or session.samples[-1].net_rate != 0.0
