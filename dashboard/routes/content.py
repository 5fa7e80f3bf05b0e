from datetime import datetime, timezone as dt_timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import update
from sqlalchemy.orm import Session, selectinload

from ..db import get_db
from ..models import METRIC_FIELDS, Content, Persona, Platform, User
from ..schemas import ContentCreate, ContentOut, ContentUpdate, MetricsIn
from ..security.auth import require_editor, require_viewer
from ..services.targeting import delete_content as remove_content, set_content_targets

router = APIRouter(prefix="/content", tags=["content"])

def _get_content_or_404(db: Session, content_id: int) -> Content:
    content = db.get(Content, content_id)
    if not content:
        raise HTTPException(status_code=404, detail="Content not found")
    return content

def increment_counters(db: Session, content_id: int, **deltas: int) -> None:
    """Add non-negative deltas to the engagement counters in one UPDATE."""
    values = {}
    for field, delta in deltas.items():
        if field not in METRIC_FIELDS:
            raise ValueError(f"Unknown metric '{field}'")
        if delta < 0:
            raise ValueError(f"Metric '{field}' cannot decrease")
        if delta:
            values[field] = getattr(Content, field) + delta
    if values:
        db.execute(update(Content).where(Content.id == content_id).values(**values))
    db.commit()
    db.expire_all()

@router.get("", response_model=list[ContentOut])
def list_content(
    status_filter: str | None = Query(default=None, alias="status"),
    type_filter: str | None = Query(default=None, alias="type"),
    persona_id: int | None = None,
    platform_id: int | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_viewer),
):
    query = db.query(Content).options(selectinload(Content.personas), selectinload(Content.platforms))
    if status_filter:
        query = query.filter(Content.status == status_filter)
    if type_filter:
        query = query.filter(Content.type == type_filter)
    if persona_id:
        query = query.filter(Content.personas.any(Persona.id == persona_id))
    if platform_id:
        query = query.filter(Content.platforms.any(Platform.id == platform_id))
    return query.order_by(Content.created_at.desc(), Content.id.desc()).all()

@router.get("/{content_id}", response_model=ContentOut)
def get_content(content_id: int, db: Session = Depends(get_db), user: User = Depends(require_viewer)):
    return _get_content_or_404(db, content_id)

@router.post("", response_model=ContentOut, status_code=status.HTTP_201_CREATED)
def create_content(payload: ContentCreate, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    data = payload.model_dump(exclude={"personas", "platforms"})
    content = Content(**data, author_id=user.id)
    if content.status == "published":
        content.publish_date = datetime.now(dt_timezone.utc)
    db.add(content)
    set_content_targets(db, content, payload.personas, payload.platforms)
    db.commit()
    db.refresh(content)
    return content

@router.put("/{content_id}", response_model=ContentOut)
def update_content(
    content_id: int,
    payload: ContentUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    content = _get_content_or_404(db, content_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"personas", "platforms"})
    for field in ("title", "type", "status"):
        if field in changes and changes[field] is None:
            changes.pop(field)

    if changes.get("status") == "published" and content.status != "published":
        content.publish_date = datetime.now(dt_timezone.utc)
    for field, value in changes.items():
        setattr(content, field, value)
    set_content_targets(db, content, payload.personas, payload.platforms)
    db.commit()
    db.refresh(content)
    return content

@router.delete("/{content_id}")
def delete_content(content_id: int, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    if not remove_content(db, content_id):
        raise HTTPException(status_code=404, detail="Content not found")
    return {"message": "Content deleted successfully"}

@router.post("/{content_id}/publish", response_model=ContentOut)
def publish_content(content_id: int, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    content = _get_content_or_404(db, content_id)
    if content.status == "published":
        raise HTTPException(status_code=400, detail="Content is already published")
    content.status = "published"
    content.publish_date = datetime.now(dt_timezone.utc)
    db.commit()
    db.refresh(content)
    return content

@router.post("/{content_id}/metrics", response_model=ContentOut)
def add_metrics(
    content_id: int,
    payload: MetricsIn,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    _get_content_or_404(db, content_id)
    increment_counters(db, content_id, **payload.model_dump())
    return _get_content_or_404(db, content_id)
