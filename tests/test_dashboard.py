from gearguard.services.dashboard import (
    critical_equipment_count,
    is_open,
    summarize,
    technician_load_pct,
    technician_summary,
)


REQUESTS = [
    {"status": "new", "equipment_id": 1, "assigned_to_user_id": None},
    {"status": "in_progress", "equipment_id": 1, "assigned_to_user_id": 7},
    {"status": "new", "equipment_id": 2, "assigned_to_user_id": 7},
    {"status": "repaired", "equipment_id": 3, "assigned_to_user_id": 7},
    {"status": "scrap", "equipment_id": 4, "assigned_to_user_id": None},
    {"status": "new", "equipment_id": None, "assigned_to_user_id": None},
]


def test_is_open():
    assert is_open("new")
    assert is_open("in_progress")
    assert not is_open("repaired")
    assert not is_open("scrap")


def test_critical_equipment_counts_distinct_open_equipment():
    assert critical_equipment_count(REQUESTS) == 2
    assert critical_equipment_count([]) == 0


def test_technician_load_pct():
    # 2 of 4 open requests are assigned
    assert technician_load_pct(REQUESTS) == 50
    assert technician_load_pct([]) == 0
    assert technician_load_pct([{"status": "repaired", "assigned_to_user_id": 1}]) == 0
    three = [{"status": "new", "assigned_to_user_id": 1}] + [{"status": "new", "assigned_to_user_id": None}] * 2
    assert technician_load_pct(three) == 33


def test_technician_summary():
    assert technician_summary(REQUESTS) == {
        "total": 6,
        "new": 3,
        "in_progress": 1,
        "repaired": 1,
        "scrap": 1,
    }


def test_summarize_accepts_generators():
    out = summarize(r for r in REQUESTS)
    assert out["open_requests"] == 4
    assert out["critical_equipment_count"] == 2
    assert out["summary"]["total"] == 6
