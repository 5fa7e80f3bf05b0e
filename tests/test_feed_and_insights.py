import pytest

@pytest.fixture
def editor_headers(make_user, auth_headers):
    return auth_headers(make_user("editor"))

@pytest.fixture
def viewer_headers(make_user, auth_headers):
    return auth_headers(make_user("viewer"))

@pytest.fixture
def feed(client, editor_headers):
    runners = client.post("/personas", headers=editor_headers, json={"name": "Runners", "platforms": ["Instagram", "TikTok"]}).json()
    platforms = {p["name"]: p["id"] for p in runners["platforms"]}

    def add(title, status, persona=None, platform=None):
        return client.post("/content", headers=editor_headers, json={
            "title": title,
            "type": "video",
            "status": status,
            "personas": [persona] if persona else [],
            "platforms": [platforms[platform]] if platform else [],
        }).json()["id"]

    return {
        "insta": add("Insta reel", "published", runners["id"], "Instagram"),
        "tiktok": add("TikTok clip", "published", None, "TikTok"),
        "draft": add("Unreleased", "draft", runners["id"], "Instagram"),
    }

def titles(resp):
    return sorted(c["title"] for c in resp.json())

def test_feed_shows_published_only(client, viewer_headers, feed):
    assert titles(client.get("/feed", headers=viewer_headers)) == ["Insta reel", "TikTok clip"]

def test_feed_by_persona_name_and_platforms(client, viewer_headers, feed):
    assert titles(client.get("/feed", headers=viewer_headers, params={"persona": "runners"})) == ["Insta reel"]
    assert titles(client.get("/feed", headers=viewer_headers, params={"platforms": "tiktok, youtube"})) == ["TikTok clip"]

def test_engagement_increments_one_counter(client, viewer_headers, feed):
    url = f"/feed/{feed['insta']}/engagement"
    client.post(url, headers=viewer_headers, json={"type": "like"})
    resp = client.post(url, headers=viewer_headers, json={"type": "like"})

    assert resp.json()["likes"] == 2
    assert resp.json()["views"] == 0
    assert client.post(url, headers=viewer_headers, json={"type": "dislike"}).status_code == 422
    assert client.post("/feed/9999/engagement", headers=viewer_headers, json={"type": "view"}).status_code == 404

def test_feed_requires_session(client):
    assert client.get("/feed").status_code == 401

def test_insight_crud_and_filters(client, editor_headers, viewer_headers):
    created = client.post("/insights", headers=editor_headers, json={
        "title": "Video beats static",
        "description": "Demos outperform photos",
        "date": "2025-05-12",
        "actionable": True,
        "category": "Content",
        "tags": ["video"],
    })
    assert created.status_code == 201
    client.post("/insights", headers=editor_headers, json={"title": "Audience shift", "date": "2025-04-01", "category": "Audience"})

    def list_titles(**params):
        return [i["title"] for i in client.get("/insights", headers=viewer_headers, params=params).json()]

    assert list_titles() == ["Video beats static", "Audience shift"]
    assert list_titles(category="Audience") == ["Audience shift"]
    assert list_titles(actionable="true") == ["Video beats static"]
    assert list_titles(q="photos") == ["Video beats static"]

    insight_id = created.json()["id"]
    updated = client.put(f"/insights/{insight_id}", headers=editor_headers, json={"trend": "+45%"})
    assert updated.json()["trend"] == "+45%"
    assert updated.json()["tags"] == ["video"]

    assert client.post("/insights", headers=viewer_headers, json={"title": "Nope", "date": "2025-01-01"}).status_code == 403
    assert client.delete(f"/insights/{insight_id}", headers=editor_headers).status_code == 200
    assert client.get(f"/insights/{insight_id}", headers=viewer_headers).status_code == 404

def test_insight_category_is_checked(client, editor_headers):
    resp = client.post("/insights", headers=editor_headers, json={"title": "Odd one", "date": "2025-01-01", "category": "Gossip"})
    assert resp.status_code == 422
