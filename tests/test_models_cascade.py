import pytest
from sqlalchemy import func, insert, select
from sqlalchemy.exc import IntegrityError

from dashboard.errors import ReferentialViolation
from dashboard.models import (
    Content, Interest, Persona, Platform, User,
    content_personas, content_platforms, persona_interests, persona_platforms,
)
from dashboard.services.targeting import (
    delete_content, delete_persona, find_or_create_by_name,
    set_content_targets, set_persona_targets,
)

def count(db, table):
    return db.execute(select(func.count()).select_from(table)).scalar_one()

@pytest.fixture
def author(make_user):
    return make_user("editor")

@pytest.fixture
def graph(db, author):
    """Persona linked to 2 platforms, 1 interest, and a content item targeting it."""
    persona = Persona(name="Trail Runners")
    db.add(persona)
    set_persona_targets(db, persona, ["Instagram", "TikTok"], ["Running"])
    content = Content(title="Trail shoes drop", type="video", status="published", author_id=author.id)
    db.add(content)
    db.flush()
    set_content_targets(db, content, [persona.id], [persona.platforms[0].id])
    db.commit()
    return persona, content

def test_deleting_persona_removes_every_link(db, graph):
    persona, content = graph

    assert delete_persona(db, persona.id)

    assert count(db, persona_platforms) == 0
    assert count(db, persona_interests) == 0
    assert count(db, content_personas) == 0
    # reference rows and content survive
    assert count(db, Platform.__table__) == 2
    assert count(db, Interest.__table__) == 1
    assert db.get(Content, content.id).personas == []

def test_deleting_content_removes_its_links(db, graph):
    persona, content = graph

    assert delete_content(db, content.id)

    assert count(db, content_personas) == 0
    assert count(db, content_platforms) == 0
    assert db.get(Persona, persona.id).content_count == 0

def test_raw_delete_cascades_at_storage_layer(db, graph):
    persona, _ = graph
    db.execute(Persona.__table__.delete().where(Persona.__table__.c.id == persona.id))
    db.commit()
    assert count(db, persona_platforms) == 0

def test_deleting_missing_rows_reports_false(db):
    assert delete_persona(db, 9999) is False
    assert delete_content(db, 9999) is False

def test_duplicate_link_is_rejected(db, graph):
    persona, _ = graph
    platform_id = persona.platforms[0].id
    with pytest.raises(IntegrityError):
        db.execute(insert(persona_platforms).values(persona_id=persona.id, platform_id=platform_id))
    db.rollback()

def test_link_to_missing_parent_is_rejected(db, graph):
    persona, _ = graph
    with pytest.raises(IntegrityError):
        db.execute(insert(persona_platforms).values(persona_id=persona.id, platform_id=424242))
    db.rollback()

def test_content_requires_existing_author(db):
    db.add(Content(title="Orphan", type="article", author_id=31337))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_unique_email(db, make_user):
    make_user(email="dup@acme.io")
    db.add(User(name="Second", email="dup@acme.io", password_hash="x", role="viewer", status="active"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_counters_cannot_go_negative(db, author):
    db.add(Content(title="Negative", type="article", author_id=author.id, views=-1))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_enumerated_columns_are_checked(db):
    db.add(User(name="Bad Role", email="bad@acme.io", password_hash="x", role="owner", status="active"))
    with pytest.raises(IntegrityError):
        db.commit()
    db.rollback()

def test_find_or_create_is_idempotent_by_name(db):
    first = find_or_create_by_name(db, Platform, ["Instagram", "instagram ", "Pinterest"])
    second = find_or_create_by_name(db, Platform, ["Pinterest", "Instagram"])
    db.commit()

    assert [p.name for p in first] == ["Instagram", "Pinterest"]
    assert {p.id for p in second} == {p.id for p in first}
    assert count(db, Platform.__table__) == 2

def test_set_content_targets_rejects_unknown_ids(db, graph):
    _, content = graph
    with pytest.raises(ReferentialViolation) as exc_info:
        set_content_targets(db, content, persona_ids=[content.personas[0].id, 777, 778])
    assert exc_info.value.entity == "persona"
    assert exc_info.value.ids == [777, 778]
