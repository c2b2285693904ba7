from __future__ import annotations

from conftest import sample

from defensedesk.evaluator import evaluate
from defensedesk.models import ThresholdConfig


DEFAULTS = ThresholdConfig()


def test_cpu_over_critical_is_critical_with_cpu_breach():
    ev = evaluate(sample(cpu=95), ThresholdConfig(cpu_critical=90))
    assert ev.level == "CRITICAL"
    assert "CPU" in ev.breaches


def test_cpu_between_warning_and_critical_is_warning():
    ev = evaluate(sample(cpu=75), ThresholdConfig(cpu_warning=70, cpu_critical=90))
    assert ev.level == "WARNING"
    assert ev.breaches == frozenset()


def test_calm_sample_is_normal():
    ev = evaluate(sample(), DEFAULTS)
    assert ev.level == "NORMAL"
    assert not ev.breaches


def test_threshold_is_inclusive():
    ev = evaluate(sample(net=80.0), DEFAULTS)
    assert ev.level == "CRITICAL"
    assert ev.breaches == frozenset({"NETWORK"})


def test_memory_has_no_warning_tier():
    # above mem_warning (75) but under mem_critical (95)
    assert evaluate(sample(mem=90), DEFAULTS).level == "NORMAL"
    assert evaluate(sample(mem=95), DEFAULTS).breaches == frozenset({"MEM"})


def test_breaches_list_every_critical_metric():
    ev = evaluate(sample(cpu=99, mem=99, net=200, disk=300), DEFAULTS)
    assert ev.breaches == frozenset({"CPU", "MEM", "NETWORK", "DISK"})


def test_critical_wins_over_cpu_warning():
    ev = evaluate(sample(cpu=75, disk=150), DEFAULTS)
    assert ev.level == "CRITICAL"
    assert ev.breaches == frozenset({"DISK"})
