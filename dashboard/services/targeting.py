"""Writes to the persona/content targeting graph.

Links live in the four junction tables; removal of a persona or content row
is a plain DELETE and the ON DELETE CASCADE foreign keys take the links with
it, so every delete path gets the same cleanup.
"""

import logging
from typing import Iterable

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from ..errors import ReferentialViolation
from ..models import Content, Interest, Persona, Platform

logger = logging.getLogger(__name__)

def _clean_names(names: Iterable[str]) -> list[str]:
    seen: dict[str, str] = {}
    for raw in names:
        name = (raw or "").strip()
        if name and name.lower() not in seen:
            seen[name.lower()] = name
    return list(seen.values())

def find_or_create_by_name(db: Session, model, names: Iterable[str]) -> list:
    """Resolve reference rows by name, inserting the missing ones."""
    wanted = _clean_names(names)
    if not wanted:
        return []
    lowered = [name.lower() for name in wanted]
    existing = db.execute(select(model).where(func.lower(model.name).in_(lowered))).scalars().all()
    by_name = {row.name.lower(): row for row in existing}
    rows = []
    for name in wanted:
        row = by_name.get(name.lower())
        if row is None:
            row = model(name=name)
            db.add(row)
            logger.info(f"Created {model.__tablename__[:-1]} '{name}'")
        rows.append(row)
    db.flush()
    return rows

def resolve_ids(db: Session, model, ids: Iterable[int], entity: str) -> list:
    """Load rows for ids, raising ReferentialViolation if any are missing."""
    wanted = list(dict.fromkeys(ids))
    if not wanted:
        return []
    rows = db.execute(select(model).where(model.id.in_(wanted))).scalars().all()
    missing = set(wanted) - {row.id for row in rows}
    if missing:
        raise ReferentialViolation(entity, missing)
    order = {id_: i for i, id_ in enumerate(wanted)}
    return sorted(rows, key=lambda row: order[row.id])

def set_persona_targets(
    db: Session,
    persona: Persona,
    platforms: Iterable[str] | None = None,
    interests: Iterable[str] | None = None,
) -> Persona:
    if platforms is not None:
        persona.platforms = find_or_create_by_name(db, Platform, platforms)
    if interests is not None:
        persona.interests = find_or_create_by_name(db, Interest, interests)
    return persona

def set_content_targets(
    db: Session,
    content: Content,
    persona_ids: Iterable[int] | None = None,
    platform_ids: Iterable[int] | None = None,
) -> Content:
    if persona_ids is not None:
        content.personas = resolve_ids(db, Persona, persona_ids, "persona")
    if platform_ids is not None:
        content.platforms = resolve_ids(db, Platform, platform_ids, "platform")
    return content

def delete_persona(db: Session, persona_id: int) -> bool:
    result = db.execute(delete(Persona).where(Persona.id == persona_id))
    db.commit()
    db.expire_all()
    return result.rowcount > 0

def delete_content(db: Session, content_id: int) -> bool:
    result = db.execute(delete(Content).where(Content.id == content_id))
    db.commit()
    db.expire_all()
    return result.rowcount > 0
