from gearguard.models.models import Note

from .conftest import API, headers_for


def _equipment(client, user, serial="SN-001"):
    return client.post(
        f"{API}/equipment", json={"name": "Lathe 1", "serial_number": serial}, headers=headers_for(user)
    ).json()["data"]


def _request(client, user, **fields):
    return client.post(f"{API}/maintenance", json=fields, headers=headers_for(user))


def test_corrective_request_full_lifecycle(client, manager, technician, other_technician):
    equipment = _equipment(client, manager)
    created = _request(
        client,
        technician,
        type="corrective",
        subject="Belt broken",
        equipment_id=equipment["id"],
        created_by_user_id=technician.id,
    )
    assert created.status_code == 201
    req = created.json()["data"]
    assert req["status"] == "new"
    assert req["assigned_to_user_id"] is None
    assert req["created_by_name"] == "Terry Tech"
    assert req["equipment_name"] == "Lathe 1"

    assigned = client.patch(
        f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(technician)
    )
    assert assigned.status_code == 200
    assert assigned.json()["data"]["assigned_to_user_id"] == technician.id
    assert assigned.json()["data"]["assigned_to_name"] == "Terry Tech"

    wrong_caller = client.patch(
        f"{API}/maintenance/{req['id']}/status", json={"status": "in_progress"}, headers=headers_for(other_technician)
    )
    assert wrong_caller.status_code == 403

    started = client.patch(
        f"{API}/maintenance/{req['id']}/status", json={"status": "in_progress"}, headers=headers_for(technician)
    )
    assert started.status_code == 200
    assert started.json()["data"]["status"] == "in_progress"

    done = client.patch(
        f"{API}/maintenance/{req['id']}/status",
        json={"status": "repaired", "duration_hours": 2.5},
        headers=headers_for(technician),
    )
    assert done.status_code == 200
    assert done.json()["data"]["status"] == "repaired"
    assert done.json()["data"]["duration_hours"] == 2.5


def test_complete_requires_positive_duration(client, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, technician, type="corrective", subject="Noise", equipment_id=equipment["id"]).json()["data"]
    client.patch(f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(technician))
    client.patch(f"{API}/maintenance/{req['id']}/status", json={"status": "in_progress"}, headers=headers_for(technician))

    for duration in (0, -1, None):
        resp = client.patch(
            f"{API}/maintenance/{req['id']}/status",
            json={"status": "repaired", "duration_hours": duration},
            headers=headers_for(technician),
        )
        assert resp.status_code == 400


def test_cannot_skip_in_progress(client, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, technician, type="corrective", subject="Noise", equipment_id=equipment["id"]).json()["data"]
    client.patch(f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(technician))
    resp = client.patch(
        f"{API}/maintenance/{req['id']}/status",
        json={"status": "repaired", "duration_hours": 1},
        headers=headers_for(technician),
    )
    assert resp.status_code == 409


def test_assignment_is_exclusive(client, manager, technician, other_technician):
    equipment = _equipment(client, manager)
    req = _request(client, manager, type="corrective", subject="Noise", equipment_id=equipment["id"]).json()["data"]
    url = f"{API}/maintenance/{req['id']}/assign"

    assert client.patch(url, json={"user_id": technician.id}, headers=headers_for(manager)).status_code == 200
    assert client.patch(url, json={"user_id": technician.id}, headers=headers_for(manager)).status_code == 200
    conflict = client.patch(url, json={"user_id": other_technician.id}, headers=headers_for(manager))
    assert conflict.status_code == 409
    assert client.patch(url, json={"user_id": 999}, headers=headers_for(manager)).status_code == 404


def test_scrap_is_manager_only_and_terminal(client, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, technician, type="corrective", subject="Smoke", equipment_id=equipment["id"]).json()["data"]
    url = f"{API}/maintenance/{req['id']}/status"

    assert client.patch(url, json={"status": "scrap"}, headers=headers_for(technician)).status_code == 403
    scrapped = client.patch(url, json={"status": "scrap"}, headers=headers_for(manager))
    assert scrapped.status_code == 200
    assert scrapped.json()["data"]["status"] == "scrap"

    assert client.patch(url, json={"status": "scrap"}, headers=headers_for(manager)).status_code == 409
    assign = client.patch(
        f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(manager)
    )
    assert assign.status_code == 409


def test_create_validation(client, db, manager, technician):
    equipment = _equipment(client, manager)
    wc = client.post(f"{API}/work-centers", json={"name": "Line 1"}, headers=headers_for(manager)).json()["data"]

    no_target = _request(client, technician, type="corrective", subject="X")
    assert no_target.status_code == 400
    both = _request(
        client, technician, type="corrective", subject="X", equipment_id=equipment["id"], work_center_id=wc["id"]
    )
    assert both.status_code == 400
    assert _request(client, technician, type="corrective", subject=" ", equipment_id=equipment["id"]).status_code == 400
    assert _request(client, technician, type="upgrade", subject="X", equipment_id=equipment["id"]).status_code == 400
    assert _request(client, technician, type="corrective", subject="X", equipment_id=999).status_code == 404
    assert _request(
        client, technician, type="corrective", subject="X", equipment_id=equipment["id"], team_id=999
    ).status_code == 404
    assert _request(client, technician, type="preventive", subject="X", work_center_id=wc["id"]).status_code == 400
    assert _request(
        client, technician, type="corrective", subject="X", equipment_id=equipment["id"], created_by_user_id=manager.id
    ).status_code == 403


def test_list_filters_and_calendar(client, manager, technician):
    lathe = _equipment(client, manager)
    press = _equipment(client, manager, serial="SN-002")
    wc = client.post(f"{API}/work-centers", json={"name": "Line 1"}, headers=headers_for(manager)).json()["data"]

    _request(client, technician, type="corrective", subject="Lathe noise", equipment_id=lathe["id"])
    _request(
        client, manager, type="preventive", subject="Press check", equipment_id=press["id"],
        scheduled_date="2030-05-02T09:00:00",
    )
    _request(
        client, manager, type="preventive", subject="Line audit", work_center_id=wc["id"],
        scheduled_date="2030-05-01T09:00:00",
    )

    everything = client.get(f"{API}/maintenance", headers=headers_for(manager)).json()["data"]
    assert [r["subject"] for r in everything] == ["Line audit", "Press check", "Lathe noise"]
    assert everything[0]["work_center_name"] == "Line 1"

    lathe_only = client.get(
        f"{API}/maintenance", params={"equipment_id": lathe["id"]}, headers=headers_for(manager)
    ).json()["data"]
    assert [r["subject"] for r in lathe_only] == ["Lathe noise"]

    by_wc = client.get(
        f"{API}/maintenance", params={"work_center_id": wc["id"]}, headers=headers_for(manager)
    ).json()["data"]
    assert [r["subject"] for r in by_wc] == ["Line audit"]

    calendar = client.get(f"{API}/maintenance/calendar", headers=headers_for(manager)).json()["data"]
    assert [c["subject"] for c in calendar] == ["Line audit", "Press check"]
    assert calendar[1]["equipment_name"] == "Lathe 1"
    assert set(calendar[0]) == {
        "id", "subject", "type", "status", "scheduled_date", "equipment_name", "work_center_name",
    }


def test_summary_is_recomputed(client, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, manager, type="corrective", subject="A", equipment_id=equipment["id"]).json()["data"]
    _request(client, manager, type="corrective", subject="B", equipment_id=equipment["id"])

    summary = client.get(f"{API}/maintenance/summary", headers=headers_for(manager)).json()["data"]
    assert summary["critical_equipment_count"] == 1
    assert summary["technician_load_pct"] == 0
    assert summary["summary"]["new"] == 2

    client.patch(f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(manager))
    summary = client.get(f"{API}/maintenance/summary", headers=headers_for(manager)).json()["data"]
    assert summary["technician_load_pct"] == 50


def test_notes_and_delete_cascade(client, db, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, technician, type="corrective", subject="Leak", equipment_id=equipment["id"]).json()["data"]
    notes_url = f"{API}/maintenance/{req['id']}/notes"

    assert client.post(notes_url, json={"message": "First look"}, headers=headers_for(technician)).status_code == 201
    assert client.post(notes_url, json={"message": "Seal replaced"}, headers=headers_for(technician)).status_code == 201
    assert client.post(notes_url, json={"message": ""}, headers=headers_for(technician)).status_code == 400
    assert client.post(
        f"{API}/maintenance/999/notes", json={"message": "x"}, headers=headers_for(technician)
    ).status_code == 404

    notes = client.get(notes_url, headers=headers_for(technician)).json()["data"]
    assert [n["message"] for n in notes] == ["First look", "Seal replaced"]

    assert client.delete(f"{API}/maintenance/{req['id']}", headers=headers_for(technician)).status_code == 403
    assert client.delete(f"{API}/maintenance/{req['id']}", headers=headers_for(manager)).status_code == 200
    assert client.get(f"{API}/maintenance/{req['id']}", headers=headers_for(manager)).status_code == 404
    assert db.query(Note).count() == 0


def test_complete_rejects_non_finite_duration(client, db, manager, technician):
    equipment = _equipment(client, manager)
    req = _request(client, technician, type="corrective", subject="Noise", equipment_id=equipment["id"]).json()["data"]
    client.patch(f"{API}/maintenance/{req['id']}/assign", json={"user_id": technician.id}, headers=headers_for(technician))
    client.patch(f"{API}/maintenance/{req['id']}/status", json={"status": "in_progress"}, headers=headers_for(technician))

    for raw in ("NaN", "Infinity", "-Infinity"):
        resp = client.patch(
            f"{API}/maintenance/{req['id']}/status",
            content='{"status": "repaired", "duration_hours": %s}' % raw,
            headers={**headers_for(technician), "Content-Type": "application/json"},
        )
        assert resp.status_code == 400

    stored = client.get(f"{API}/maintenance/{req['id']}", headers=headers_for(technician)).json()["data"]
    assert stored["status"] == "in_progress"
    assert stored["duration_hours"] is None
