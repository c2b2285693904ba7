from __future__ import annotations

from defensedesk.planner import CountermeasurePlanner


def test_network_breach_yields_two_network_actions():
    cms = CountermeasurePlanner().plan({"NETWORK"}, ts=1)
    assert len(cms) == 2
    assert {cm.type for cm in cms} == {"NETWORK"}
    assert len({cm.id for cm in cms}) == 2
    assert {(cm.action, cm.risk) for cm in cms} == {("BLOCK_IP", "MEDIUM"), ("DISABLE_PORT", "HIGH")}


def test_cpu_and_disk_yield_one_process_and_one_file_action():
    cms = CountermeasurePlanner().plan({"CPU", "DISK"}, ts=1)
    assert len(cms) == 2
    assert sorted(cm.type for cm in cms) == ["FILE", "PROCESS"]
    by_type = {cm.type: cm for cm in cms}
    assert by_type["PROCESS"].risk == "HIGH"
    assert by_type["FILE"].risk == "LOW"


def test_memory_only_breach_proposes_nothing():
    assert CountermeasurePlanner().plan({"MEM"}, ts=1) == []


def test_everything_starts_pending():
    cms = CountermeasurePlanner().plan({"NETWORK", "CPU"}, ts=1)
    assert len(cms) == 4
    assert all(cm.status == "PENDING" for cm in cms)


def test_ids_unique_across_batches_in_same_second():
    planner = CountermeasurePlanner()
    first = planner.plan({"NETWORK", "DISK"}, ts=5)
    second = planner.plan({"NETWORK", "DISK"}, ts=5)
    ids = [cm.id for cm in first + second]
    assert len(ids) == len(set(ids)) == 8
