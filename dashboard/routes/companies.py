from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.orm import Session

from ..db import get_db
from ..models import Company, User
from ..schemas import CompanyCreate, CompanyOut, CompanyUpdate, UserOut
from ..security.auth import require_admin

router = APIRouter(prefix="/companies", tags=["companies"])

def _get_company_or_404(db: Session, company_id: int) -> Company:
    company = db.get(Company, company_id)
    if not company:
        raise HTTPException(status_code=404, detail="Company not found")
    return company

@router.get("", response_model=list[CompanyOut])
def list_companies(db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return db.query(Company).order_by(Company.name).all()

@router.get("/{company_id}", response_model=CompanyOut)
def get_company(company_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    return _get_company_or_404(db, company_id)

@router.get("/{company_id}/users", response_model=list[UserOut])
def company_users(company_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    company = _get_company_or_404(db, company_id)
    return db.query(User).filter(User.company_id == company.id).order_by(User.name).all()

@router.post("", response_model=CompanyOut, status_code=status.HTTP_201_CREATED)
def create_company(payload: CompanyCreate, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    company = Company(**payload.model_dump())
    db.add(company)
    db.commit()
    db.refresh(company)
    return company

@router.put("/{company_id}", response_model=CompanyOut)
def update_company(
    company_id: int,
    payload: CompanyUpdate,
    db: Session = Depends(get_db),
    admin: User = Depends(require_admin),
):
    company = _get_company_or_404(db, company_id)
    changes = payload.model_dump(exclude_unset=True)
    if changes.get("name", "") is None or changes.get("status", "") is None:
        raise HTTPException(status_code=422, detail="name and status cannot be null")
    for field, value in changes.items():
        setattr(company, field, value)
    db.commit()
    db.refresh(company)
    return company

@router.delete("/{company_id}")
def delete_company(company_id: int, db: Session = Depends(get_db), admin: User = Depends(require_admin)):
    company = _get_company_or_404(db, company_id)
    user_count = db.query(User).filter(User.company_id == company.id).count()
    if user_count:
        raise HTTPException(
            status_code=400,
            detail=f"Cannot delete company with {user_count} associated user(s)",
        )
    company.status = "inactive"
    db.commit()
    return {"message": "Company deleted successfully"}
