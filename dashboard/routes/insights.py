from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import or_
from sqlalchemy.orm import Session

from ..db import get_db
from ..errors import ReferentialViolation
from ..models import Company, Insight, User
from ..schemas import InsightCreate, InsightOut, InsightUpdate
from ..security.auth import require_editor, require_viewer

router = APIRouter(prefix="/insights", tags=["insights"])

def _get_insight_or_404(db: Session, insight_id: int) -> Insight:
    insight = db.get(Insight, insight_id)
    if not insight:
        raise HTTPException(status_code=404, detail="Insight not found")
    return insight

@router.get("", response_model=list[InsightOut])
def list_insights(
    category: str | None = None,
    actionable: bool | None = None,
    q: str | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_viewer),
):
    query = db.query(Insight)
    if category:
        query = query.filter(Insight.category == category)
    if actionable is not None:
        query = query.filter(Insight.actionable == actionable)
    if q:
        pattern = f"%{q.strip()}%"
        query = query.filter(or_(Insight.title.ilike(pattern), Insight.description.ilike(pattern)))
    return query.order_by(Insight.date.desc(), Insight.id.desc()).all()

@router.get("/{insight_id}", response_model=InsightOut)
def get_insight(insight_id: int, db: Session = Depends(get_db), user: User = Depends(require_viewer)):
    return _get_insight_or_404(db, insight_id)

@router.post("", response_model=InsightOut, status_code=status.HTTP_201_CREATED)
def create_insight(payload: InsightCreate, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    if payload.company_id is not None and db.get(Company, payload.company_id) is None:
        raise ReferentialViolation("company", [payload.company_id])
    insight = Insight(**payload.model_dump(), author_id=user.id)
    db.add(insight)
    db.commit()
    db.refresh(insight)
    return insight

@router.put("/{insight_id}", response_model=InsightOut)
def update_insight(
    insight_id: int,
    payload: InsightUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    insight = _get_insight_or_404(db, insight_id)
    changes = payload.model_dump(exclude_unset=True)
    for field in ("title", "date", "actionable", "tags"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if changes.get("company_id") is not None and db.get(Company, changes["company_id"]) is None:
        raise ReferentialViolation("company", [changes["company_id"]])

    for field, value in changes.items():
        setattr(insight, field, value)
    db.commit()
    db.refresh(insight)
    return insight

@router.delete("/{insight_id}")
def delete_insight(insight_id: int, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    insight = _get_insight_or_404(db, insight_id)
    db.delete(insight)
    db.commit()
    return {"message": "Insight deleted successfully"}
