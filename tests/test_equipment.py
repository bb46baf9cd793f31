import pytest

from gearguard.errors import Conflict, NotFound
from gearguard.models.models import Equipment, MaintenanceRequest, Team
from gearguard.services import equipment_service

from .conftest import API, headers_for


def _create(client, user, **fields):
    body = {"name": "Lathe 1", "serial_number": "SN-001"}
    body.update(fields)
    return client.post(f"{API}/equipment", json=body, headers=headers_for(user))


def test_duplicate_serial_number_conflicts(client, db, technician):
    first = _create(client, technician)
    assert first.status_code == 201
    data = first.json()["data"]
    assert isinstance(data["id"], int)
    assert data["status"] == "active"

    second = _create(client, technician, name="Lathe 2")
    assert second.status_code == 409
    assert second.json()["success"] is False
    assert db.query(Equipment).count() == 1


def test_create_requires_name_and_serial(client, technician):
    assert _create(client, technician, name="  ").status_code == 400
    resp = client.post(f"{API}/equipment", json={"name": "Drill"}, headers=headers_for(technician))
    assert resp.status_code == 400


def test_create_with_unknown_team_is_not_found(client, technician):
    resp = _create(client, technician, maintenance_team_id=999)
    assert resp.status_code == 404


def test_list_filters_and_team_name(client, db, technician):
    team = Team(name="Mechanics")
    db.add(team)
    db.commit()
    _create(client, technician, serial_number="A-1", department="Production", maintenance_team_id=team.id)
    _create(client, technician, serial_number="A-2", department="Office", assigned_employee_name="Sam")
    _create(client, technician, serial_number="A-3", department="Production", status="inactive")

    everything = client.get(f"{API}/equipment", headers=headers_for(technician)).json()["data"]
    assert [e["serial_number"] for e in everything] == ["A-3", "A-2", "A-1"]
    assert everything[2]["team_name"] == "Mechanics"

    production = client.get(
        f"{API}/equipment", params={"department": "Production"}, headers=headers_for(technician)
    ).json()["data"]
    assert {e["serial_number"] for e in production} == {"A-1", "A-3"}

    by_employee = client.get(
        f"{API}/equipment", params={"employee": "Sam"}, headers=headers_for(technician)
    ).json()["data"]
    assert [e["serial_number"] for e in by_employee] == ["A-2"]

    inactive = client.get(
        f"{API}/equipment", params={"status": "inactive"}, headers=headers_for(technician)
    ).json()["data"]
    assert [e["serial_number"] for e in inactive] == ["A-3"]


def test_partial_update_keeps_omitted_fields_and_clears_explicit_nulls(client, technician):
    created = _create(client, technician, department="Production", location="Hall A").json()["data"]

    resp = client.put(
        f"{API}/equipment/{created['id']}",
        json={"location": None, "status": "under_maintenance"},
        headers=headers_for(technician),
    )
    assert resp.status_code == 200
    data = resp.json()["data"]
    assert data["department"] == "Production"
    assert data["location"] is None
    assert data["status"] == "under_maintenance"
    assert data["name"] == "Lathe 1"


def test_update_cannot_blank_required_fields(client, technician):
    created = _create(client, technician).json()["data"]
    resp = client.put(
        f"{API}/equipment/{created['id']}", json={"name": ""}, headers=headers_for(technician)
    )
    assert resp.status_code == 400
    resp = client.put(
        f"{API}/equipment/{created['id']}", json={"serial_number": None}, headers=headers_for(technician)
    )
    assert resp.status_code == 400


def test_update_to_taken_serial_conflicts(client, technician):
    _create(client, technician)
    other = _create(client, technician, serial_number="SN-002").json()["data"]
    resp = client.put(
        f"{API}/equipment/{other['id']}", json={"serial_number": "SN-001"}, headers=headers_for(technician)
    )
    assert resp.status_code == 409


def test_delete_blocked_while_requests_reference_equipment(client, db, technician):
    created = _create(client, technician).json()["data"]
    db.add(MaintenanceRequest(
        type="corrective",
        subject="Belt broken",
        equipment_id=created["id"],
        status="repaired",
        created_by_user_id=technician.id,
    ))
    db.commit()

    resp = client.delete(f"{API}/equipment/{created['id']}", headers=headers_for(technician))
    assert resp.status_code == 400
    assert db.query(Equipment).count() == 1


def test_delete_and_get_unknown(client, technician):
    created = _create(client, technician).json()["data"]
    assert client.delete(f"{API}/equipment/{created['id']}", headers=headers_for(technician)).status_code == 200
    assert client.get(f"{API}/equipment/{created['id']}", headers=headers_for(technician)).status_code == 404


def test_equipment_requests_listing(client, technician):
    created = _create(client, technician).json()["data"]
    client.post(
        f"{API}/maintenance",
        json={"type": "corrective", "subject": "Noise", "equipment_id": created["id"]},
        headers=headers_for(technician),
    )
    resp = client.get(f"{API}/equipment/{created['id']}/requests", headers=headers_for(technician))
    assert resp.status_code == 200
    assert [r["subject"] for r in resp.json()["data"]] == ["Noise"]
    assert client.get(f"{API}/equipment/999/requests", headers=headers_for(technician)).status_code == 404


def test_update_unknown_equipment_is_not_found(client, technician):
    resp = client.put(f"{API}/equipment/999", json={"location": "Hall B"}, headers=headers_for(technician))
    assert resp.status_code == 404


def test_update_with_unknown_team_is_not_found(client, technician):
    created = _create(client, technician).json()["data"]
    resp = client.put(
        f"{API}/equipment/{created['id']}", json={"maintenance_team_id": 999}, headers=headers_for(technician)
    )
    assert resp.status_code == 404
    assert resp.json()["message"] == "Maintenance team not found"


def test_team_removed_before_flush_reports_missing_team(db, monkeypatch):
    equipment = equipment_service.create_equipment(db, {"name": "Lathe 1", "serial_number": "SN-001"})
    db.commit()
    # the team vanished after the existence check ran
    monkeypatch.setattr(equipment_service, "_ensure_team", lambda db, team_id: None)

    with pytest.raises(NotFound) as exc_info:
        equipment_service.update_equipment(db, equipment.id, {"maintenance_team_id": 999})
    assert exc_info.value.message == "Maintenance team not found"


def test_duplicate_serial_at_flush_still_conflicts(db, monkeypatch):
    equipment_service.create_equipment(db, {"name": "Lathe 1", "serial_number": "SN-001"})
    db.commit()
    monkeypatch.setattr(equipment_service, "_ensure_serial_free", lambda db, serial, exclude_id=None: None)

    with pytest.raises(Conflict):
        equipment_service.create_equipment(db, {"name": "Lathe 2", "serial_number": "SN-001"})
