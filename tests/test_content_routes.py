import pytest

from dashboard.models import Persona, Platform

@pytest.fixture
def editor(make_user):
    return make_user("editor")

@pytest.fixture
def targets(db):
    persona = Persona(name="Weekend Hikers")
    instagram = Platform(name="Instagram")
    tiktok = Platform(name="TikTok")
    db.add_all([persona, instagram, tiktok])
    db.commit()
    return {"persona": persona.id, "instagram": instagram.id, "tiktok": tiktok.id}

def create(client, headers, **overrides):
    payload = {"title": "Spring Collection", "type": "video"}
    payload.update(overrides)
    return client.post("/content", headers=headers, json=payload)

def test_editor_creates_content_with_targets(client, editor, auth_headers, targets):
    resp = create(client, auth_headers(editor), personas=[targets["persona"]], platforms=[targets["instagram"]])

    assert resp.status_code == 201
    body = resp.json()
    assert body["author_id"] == editor.id
    assert body["status"] == "draft"
    assert [p["name"] for p in body["personas"]] == ["Weekend Hikers"]
    assert [p["name"] for p in body["platforms"]] == ["Instagram"]
    assert (body["views"], body["likes"], body["comments"], body["shares"]) == (0, 0, 0, 0)

def test_viewer_cannot_create(client, make_user, auth_headers):
    resp = create(client, auth_headers(make_user("viewer")))
    assert resp.status_code == 403

def test_anonymous_cannot_read(client):
    assert client.get("/content").status_code == 401

def test_unknown_persona_id_is_rejected(client, editor, auth_headers, targets):
    resp = create(client, auth_headers(editor), personas=[targets["persona"], 999])
    assert resp.status_code == 422
    assert resp.json()["entity"] == "persona"
    assert resp.json()["ids"] == [999]
    assert client.get("/content", headers=auth_headers(editor)).json() == []

def test_invalid_type_is_rejected(client, editor, auth_headers):
    assert create(client, auth_headers(editor), type="podcast").status_code == 422

def test_filters(client, editor, auth_headers, targets):
    headers = auth_headers(editor)
    create(client, headers, title="Hike video", platforms=[targets["instagram"]], personas=[targets["persona"]])
    create(client, headers, title="Dance article", type="article", status="published", platforms=[targets["tiktok"]])

    def titles(**params):
        return [c["title"] for c in client.get("/content", headers=headers, params=params).json()]

    assert titles(type="article") == ["Dance article"]
    assert titles(status="draft") == ["Hike video"]
    assert titles(persona_id=targets["persona"]) == ["Hike video"]
    assert titles(platform_id=targets["tiktok"]) == ["Dance article"]

def test_update_replaces_links(client, editor, auth_headers, targets):
    headers = auth_headers(editor)
    content_id = create(client, headers, platforms=[targets["instagram"]]).json()["id"]

    resp = client.put(f"/content/{content_id}", headers=headers, json={"platforms": [targets["tiktok"]], "title": "Renamed"})

    assert resp.status_code == 200
    assert resp.json()["title"] == "Renamed"
    assert [p["name"] for p in resp.json()["platforms"]] == ["TikTok"]

def test_publish_once(client, editor, auth_headers):
    headers = auth_headers(editor)
    content_id = create(client, headers).json()["id"]

    first = client.post(f"/content/{content_id}/publish", headers=headers)
    assert first.status_code == 200
    assert first.json()["status"] == "published"
    assert first.json()["publish_date"] is not None

    assert client.post(f"/content/{content_id}/publish", headers=headers).status_code == 400

def test_metrics_only_grow(client, editor, auth_headers):
    headers = auth_headers(editor)
    content_id = create(client, headers).json()["id"]

    resp = client.post(f"/content/{content_id}/metrics", headers=headers, json={"views": 10, "likes": 2})
    assert resp.json()["views"] == 10 and resp.json()["likes"] == 2

    resp = client.post(f"/content/{content_id}/metrics", headers=headers, json={"views": 5})
    assert resp.json()["views"] == 15 and resp.json()["likes"] == 2

    rejected = client.post(f"/content/{content_id}/metrics", headers=headers, json={"views": -20})
    assert rejected.status_code == 422
    assert client.get(f"/content/{content_id}", headers=headers).json()["views"] == 15

def test_delete_content(client, editor, auth_headers, targets):
    headers = auth_headers(editor)
    content_id = create(client, headers, personas=[targets["persona"]]).json()["id"]

    assert client.delete(f"/content/{content_id}", headers=headers).status_code == 200
    assert client.get(f"/content/{content_id}", headers=headers).status_code == 404
    assert client.delete(f"/content/{content_id}", headers=headers).status_code == 404
