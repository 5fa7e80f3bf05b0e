import pytest

@pytest.fixture
def editor_headers(make_user, auth_headers):
    return auth_headers(make_user("editor"))

def test_create_persona_find_or_creates_reference_rows(client, editor_headers):
    resp = client.post("/personas", headers=editor_headers, json={
        "name": "Urban Yogis",
        "age_range": "25-34",
        "platforms": ["Instagram", "Pinterest"],
        "interests": ["Yoga"],
    })

    assert resp.status_code == 201
    body = resp.json()
    assert sorted(p["name"] for p in body["platforms"]) == ["Instagram", "Pinterest"]
    assert [i["name"] for i in body["interests"]] == ["Yoga"]
    assert body["content_count"] == 0

    again = client.post("/personas", headers=editor_headers, json={
        "name": "Studio Regulars",
        "platforms": ["instagram"],
        "interests": ["Yoga", "Running"],
    })
    assert again.status_code == 201

    platforms = client.get("/personas/platforms/all", headers=editor_headers).json()
    interests = client.get("/personas/interests/all", headers=editor_headers).json()
    assert [p["name"] for p in platforms] == ["Instagram", "Pinterest"]
    assert [i["name"] for i in interests] == ["Running", "Yoga"]

def test_update_with_omitted_lists_keeps_links(client, editor_headers):
    persona_id = client.post("/personas", headers=editor_headers, json={
        "name": "Marathoners", "platforms": ["YouTube"], "interests": ["Running"],
    }).json()["id"]

    kept = client.put(f"/personas/{persona_id}", headers=editor_headers, json={"description": "Long distance"})
    assert [p["name"] for p in kept.json()["platforms"]] == ["YouTube"]

    cleared = client.put(f"/personas/{persona_id}", headers=editor_headers, json={"platforms": []})
    assert cleared.json()["platforms"] == []
    assert [i["name"] for i in cleared.json()["interests"]] == ["Running"]

def test_filters(client, editor_headers):
    client.post("/personas", headers=editor_headers, json={"name": "Active One"})
    client.post("/personas", headers=editor_headers, json={"name": "Dormant One", "active": False})

    names = [p["name"] for p in client.get("/personas", headers=editor_headers, params={"active": "false"}).json()]
    assert names == ["Dormant One"]

def test_unknown_company_is_rejected(client, editor_headers):
    resp = client.post("/personas", headers=editor_headers, json={"name": "Nobody's", "company_id": 404})
    assert resp.status_code == 422
    assert resp.json()["entity"] == "company"

def test_viewer_reads_but_cannot_write(client, make_user, auth_headers):
    headers = auth_headers(make_user("viewer"))
    assert client.get("/personas", headers=headers).status_code == 200
    assert client.post("/personas", headers=headers, json={"name": "Nope Nope"}).status_code == 403

def test_delete_persona_detaches_content(client, editor_headers):
    persona_id = client.post("/personas", headers=editor_headers, json={"name": "Short Lived", "platforms": ["TikTok"]}).json()["id"]
    content = client.post("/content", headers=editor_headers, json={"title": "Teaser", "type": "video", "personas": [persona_id]}).json()
    assert client.get(f"/personas/{persona_id}", headers=editor_headers).json()["content_count"] == 1

    assert client.delete(f"/personas/{persona_id}", headers=editor_headers).status_code == 200

    assert client.get(f"/personas/{persona_id}", headers=editor_headers).status_code == 404
    assert client.get(f"/content/{content['id']}", headers=editor_headers).json()["personas"] == []
    assert [p["name"] for p in client.get("/personas/platforms/all", headers=editor_headers).json()] == ["TikTok"]
