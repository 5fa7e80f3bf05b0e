from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload

from ..db import get_db
from ..models import Content, Persona, Platform, User
from ..schemas import ContentOut, EngagementIn
from ..security.auth import require_viewer
from .content import increment_counters

router = APIRouter(prefix="/feed", tags=["feed"])

ENGAGEMENT_COUNTERS = {"view": "views", "like": "likes", "comment": "comments", "share": "shares"}

def _persona_filter(persona: str):
    persona = persona.strip()
    if persona.isdigit():
        return Content.personas.any(Persona.id == int(persona))
    return Content.personas.any(func.lower(Persona.name) == persona.lower())

@router.get("", response_model=list[ContentOut])
def get_feed(
    persona: str | None = None,
    platforms: str | None = None,
    limit: int = 50,
    db: Session = Depends(get_db),
    user: User = Depends(require_viewer),
):
    """Published content, optionally narrowed to a persona (id or name) and platform names."""
    query = (
        db.query(Content)
        .options(selectinload(Content.personas), selectinload(Content.platforms))
        .filter(Content.status == "published")
    )
    if persona:
        query = query.filter(_persona_filter(persona))

    names = [p.strip().lower() for p in (platforms or "").split(",") if p.strip()]
    if names:
        query = query.filter(Content.platforms.any(func.lower(Platform.name).in_(names)))

    limit = max(1, min(limit, 200))
    return query.order_by(Content.publish_date.desc(), Content.id.desc()).limit(limit).all()

@router.post("/{content_id}/engagement", response_model=ContentOut)
def record_engagement(
    content_id: int,
    payload: EngagementIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_viewer),
):
    if not db.get(Content, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    increment_counters(db, content_id, **{ENGAGEMENT_COUNTERS[payload.type]: 1})
    return db.get(Content, content_id)
