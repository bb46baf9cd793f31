from .conftest import API, headers_for


def _create(client, user, **fields):
    body = {"name": "Assembly Line 1"}
    body.update(fields)
    return client.post(f"{API}/work-centers", json=body, headers=headers_for(user))


def test_create_applies_defaults(client, manager):
    resp = _create(client, manager, code="ASM-1")
    assert resp.status_code == 201
    data = resp.json()["data"]
    assert data["time_efficiency_pct"] == 100
    assert data["cost_per_hour"] == 0
    assert data["status"] == "active"

    fetched = client.get(f"{API}/work-centers/{data['id']}", headers=headers_for(manager))
    assert fetched.json()["data"]["code"] == "ASM-1"


def test_create_validation(client, manager):
    assert _create(client, manager, name="").status_code == 400
    assert _create(client, manager, oee_target_pct=120).status_code == 400
    assert _create(client, manager, cost_per_hour=-1).status_code == 400
    _create(client, manager, code="ASM-1")
    assert _create(client, manager, name="Copy", code="ASM-1").status_code == 409


def test_list_ordered_by_name(client, manager):
    _create(client, manager, name="Paint Shop")
    _create(client, manager, name="Assembly")
    names = [w["name"] for w in client.get(f"{API}/work-centers", headers=headers_for(manager)).json()["data"]]
    assert names == ["Assembly", "Paint Shop"]


def test_alternatives(client, manager):
    main = _create(client, manager, name="Line 1").json()["data"]
    backup = _create(client, manager, name="Line 2").json()["data"]
    url = f"{API}/work-centers/{main['id']}/alternatives"

    resp = client.post(url, json={"alternative_work_center_id": backup["id"]}, headers=headers_for(manager))
    assert resp.status_code == 201
    assert client.post(
        url, json={"alternative_work_center_id": backup["id"]}, headers=headers_for(manager)
    ).status_code == 409
    assert client.post(
        url, json={"alternative_work_center_id": main["id"]}, headers=headers_for(manager)
    ).status_code == 400
    assert client.post(
        url, json={"alternative_work_center_id": 999}, headers=headers_for(manager)
    ).status_code == 404

    alts = client.get(url, headers=headers_for(manager)).json()["data"]
    assert [a["name"] for a in alts] == ["Line 2"]
    assert client.get(f"{API}/work-centers/999/alternatives", headers=headers_for(manager)).status_code == 404
