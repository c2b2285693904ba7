from __future__ import annotations

from defensedesk.eventlog import EventLog


def test_fifty_first_entry_evicts_oldest():
    log = EventLog(max_entries=50)
    for i in range(51):
        log.append("INFO", f"msg {i}", ts=i)

    entries = log.entries()
    assert len(entries) == 50
    assert entries[0].message == "msg 1"
    assert entries[-1].message == "msg 50"
    assert [e.ts for e in entries] == list(range(1, 51))


def test_ids_increase_in_insertion_order():
    log = EventLog()
    a = log.append("WARN", "a")
    b = log.append("DEFENSE", "b")
    assert b.id > a.id
    assert [e.severity for e in log.entries()] == ["WARN", "DEFENSE"]
    assert len(log) == 2
