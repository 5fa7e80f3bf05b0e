from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session, selectinload

from ..db import get_db
from ..errors import ReferentialViolation
from ..models import Company, Interest, Persona, Platform, User
from ..schemas import InterestOut, PersonaCreate, PersonaOut, PersonaUpdate, PlatformOut
from ..security.auth import require_editor, require_viewer
from ..services.targeting import delete_persona as remove_persona, set_persona_targets

router = APIRouter(prefix="/personas", tags=["personas"])

def _get_persona_or_404(db: Session, persona_id: int) -> Persona:
    persona = db.get(Persona, persona_id)
    if not persona:
        raise HTTPException(status_code=404, detail="Persona not found")
    return persona

def _check_company(db: Session, company_id: int | None) -> None:
    if company_id is not None and db.get(Company, company_id) is None:
        raise ReferentialViolation("company", [company_id])

# Reference lists are declared before "/{persona_id}" so they are not shadowed.
@router.get("/platforms/all", response_model=list[PlatformOut])
def all_platforms(db: Session = Depends(get_db), user: User = Depends(require_viewer)):
    return db.query(Platform).order_by(Platform.name).all()

@router.get("/interests/all", response_model=list[InterestOut])
def all_interests(db: Session = Depends(get_db), user: User = Depends(require_viewer)):
    return db.query(Interest).order_by(Interest.name).all()

@router.get("", response_model=list[PersonaOut])
def list_personas(
    company_id: int | None = None,
    active: bool | None = None,
    db: Session = Depends(get_db),
    user: User = Depends(require_viewer),
):
    query = db.query(Persona).options(
        selectinload(Persona.platforms),
        selectinload(Persona.interests),
        selectinload(Persona.content),
    )
    if company_id is not None:
        query = query.filter(Persona.company_id == company_id)
    if active is not None:
        query = query.filter(Persona.active == active)
    return query.order_by(Persona.name).all()

@router.get("/{persona_id}", response_model=PersonaOut)
def get_persona(persona_id: int, db: Session = Depends(get_db), user: User = Depends(require_viewer)):
    return _get_persona_or_404(db, persona_id)

@router.post("", response_model=PersonaOut, status_code=status.HTTP_201_CREATED)
def create_persona(payload: PersonaCreate, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    _check_company(db, payload.company_id)
    persona = Persona(**payload.model_dump(exclude={"platforms", "interests"}))
    db.add(persona)
    set_persona_targets(db, persona, payload.platforms, payload.interests)
    db.commit()
    db.refresh(persona)
    return persona

@router.put("/{persona_id}", response_model=PersonaOut)
def update_persona(
    persona_id: int,
    payload: PersonaUpdate,
    db: Session = Depends(get_db),
    user: User = Depends(require_editor),
):
    persona = _get_persona_or_404(db, persona_id)
    changes = payload.model_dump(exclude_unset=True, exclude={"platforms", "interests"})
    for field in ("name", "active"):
        if field in changes and changes[field] is None:
            changes.pop(field)
    if "company_id" in changes:
        _check_company(db, changes["company_id"])

    for field, value in changes.items():
        setattr(persona, field, value)
    set_persona_targets(db, persona, payload.platforms, payload.interests)
    db.commit()
    db.refresh(persona)
    return persona

@router.delete("/{persona_id}")
def delete_persona(persona_id: int, db: Session = Depends(get_db), user: User = Depends(require_editor)):
    if not remove_persona(db, persona_id):
        raise HTTPException(status_code=404, detail="Persona not found")
    return {"message": "Persona deleted successfully"}
